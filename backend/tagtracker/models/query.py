"""
Query Predicates
================

Store-agnostic filters. Routers and services build these; each store
turns them into whatever its engine understands (see ``to_mongo`` and
``matches`` below).

    Equals("sensor_id", "s-1")
    Range("timestamp", gte=10, lte=20)
    Or([Equals("sensor_id", "a"), Equals("sensor_id", "b")])
    And([Or([...]), Range("timestamp", gte=10)])

Author: Tag Tracker Team
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any


@dataclass(frozen=True)
class Range:
    """Inclusive range. At least one bound should be set."""
    field: str
    gte: Optional[int] = None
    lte: Optional[int] = None


@dataclass(frozen=True)
class Or:
    items: list = field(default_factory=list)


@dataclass(frozen=True)
class And:
    items: list = field(default_factory=list)


Predicate = Union[Equals, Range, Or, And]


def where(**fields) -> Predicate:
    """Shortcut for an equality conjunction: where(sensor_id="a", owner="o")."""
    items = [Equals(name, value) for name, value in fields.items()]
    if len(items) == 1:
        return items[0]
    return And(items)


# =============================================================================
# MONGODB TRANSLATION
# =============================================================================

def to_mongo(predicate: Optional[Predicate]) -> dict:
    """
    Translate a predicate into a MongoDB filter document.

    The shapes match what the service has always sent to Mongo:
        Equals          -> {field: value}
        Range(gte)      -> {field: {"$gte": n}}
        Range(lte)      -> {field: {"$lte": n}}
        Range(gte, lte) -> {"$and": [{field: {"$gte": a}}, {field: {"$lte": b}}]}
        Or              -> {"$or": [...]}
        And             -> children merged into one document, or
                           {"$and": [...]} when their keys clash
    """
    if predicate is None:
        return {}

    if isinstance(predicate, Equals):
        return {predicate.field: predicate.value}

    if isinstance(predicate, Range):
        if predicate.gte is not None and predicate.lte is not None:
            return {"$and": [
                {predicate.field: {"$gte": predicate.gte}},
                {predicate.field: {"$lte": predicate.lte}},
            ]}
        if predicate.gte is not None:
            return {predicate.field: {"$gte": predicate.gte}}
        if predicate.lte is not None:
            return {predicate.field: {"$lte": predicate.lte}}
        return {}

    if isinstance(predicate, Or):
        return {"$or": [to_mongo(item) for item in predicate.items]}

    if isinstance(predicate, And):
        parts = [to_mongo(item) for item in predicate.items]
        merged: dict = {}
        for part in parts:
            if merged.keys() & part.keys():
                return {"$and": parts}
            merged.update(part)
        return merged

    raise TypeError(f"Unsupported predicate: {predicate!r}")


# =============================================================================
# IN-PROCESS EVALUATION
# =============================================================================

def matches(predicate: Optional[Predicate], doc: Mapping[str, Any]) -> bool:
    """Evaluate a predicate against a plain document."""
    if predicate is None:
        return True

    if isinstance(predicate, Equals):
        return predicate.field in doc and doc[predicate.field] == predicate.value

    if isinstance(predicate, Range):
        value = doc.get(predicate.field)
        if value is None:
            return False
        if predicate.gte is not None and value < predicate.gte:
            return False
        if predicate.lte is not None and value > predicate.lte:
            return False
        return True

    if isinstance(predicate, Or):
        # Mongo rejects an empty $or; treat it as matching nothing
        return any(matches(item, doc) for item in predicate.items)

    if isinstance(predicate, And):
        return all(matches(item, doc) for item in predicate.items)

    raise TypeError(f"Unsupported predicate: {predicate!r}")
