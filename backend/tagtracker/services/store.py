"""
Document Store
==============

The thin layer between the app and the database.

WHAT IT DOES:
------------
Everything the app persists (sensors, tags, notifications, ...) goes
through one small async interface:

    find(collection, predicate, sort)   -> list of documents
    find_one(collection, predicate)     -> document or None
    insert(collection, doc)             -> InsertResult
    update(collection, predicate, changes) -> UpdateResult  ($set)
    delete_many(collection, predicate)  -> DeleteResult

Filters are the predicates from ``tagtracker.models.query``; each store
translates them for its own engine.

TWO IMPLEMENTATIONS:
-------------------
- MongoStore: the real thing, backed by pymongo's async client
- MemoryStore: keeps everything in dicts; used by the tests and by
  STORE_BACKEND=memory for local development

Documents always come back as plain dicts WITHOUT Mongo's ``_id``.

Author: Tag Tracker Team
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from pymongo import ASCENDING, DESCENDING, AsyncMongoClient

from tagtracker.models.query import Predicate, matches, to_mongo

logger = logging.getLogger(__name__)


# Collection names used across the app
SENSORS = "sensors"
TAGS = "tags"
NOTIFICATIONS = "notifications"
MAPS = "maps"
SECTORS = "sectors"
TOKENS = "tokens"


# Sort order: list of (field, direction) where direction is 1 or -1
Sort = list[tuple[str, int]]


@dataclass
class InsertResult:
    inserted_count: int


@dataclass
class UpdateResult:
    matched_count: int
    modified_count: int


@dataclass
class DeleteResult:
    deleted_count: int


class DocumentStore(Protocol):
    """What every store has to provide."""

    async def find(self, collection: str, predicate: Optional[Predicate] = None,
                   sort: Optional[Sort] = None) -> list[dict]: ...

    async def find_one(self, collection: str, predicate: Optional[Predicate] = None) -> Optional[dict]: ...

    async def insert(self, collection: str, doc: dict) -> InsertResult: ...

    async def update(self, collection: str, predicate: Predicate, changes: dict) -> UpdateResult: ...

    async def delete_many(self, collection: str, predicate: Predicate) -> DeleteResult: ...

    async def close(self) -> None: ...


# =============================================================================
# MONGODB
# =============================================================================

class MongoStore:
    """
    MongoDB-backed store.

    HOW TO USE:
    ----------
    store = MongoStore("mongodb://localhost:27017", "tagtracker")
    sensors = await store.find("sensors", where(owner="acme"))
    await store.close()
    """

    NO_ID = {"_id": 0}

    def __init__(self, uri: str, db_name: str, client: Optional[AsyncMongoClient] = None):
        self.client = client or AsyncMongoClient(uri)
        self.db = self.client[db_name]
        logger.info(f"MongoStore ready (database: {db_name})")

    async def find(self, collection: str, predicate: Optional[Predicate] = None,
                   sort: Optional[Sort] = None) -> list[dict]:
        cursor = self.db[collection].find(to_mongo(predicate), self.NO_ID)
        if sort:
            cursor = cursor.sort([(name, ASCENDING if direction >= 0 else DESCENDING) for name, direction in sort])
        return await cursor.to_list()

    async def find_one(self, collection: str, predicate: Optional[Predicate] = None) -> Optional[dict]:
        return await self.db[collection].find_one(to_mongo(predicate), self.NO_ID)

    async def insert(self, collection: str, doc: dict) -> InsertResult:
        # insert_one adds _id to the dict it gets; don't leak that to callers
        result = await self.db[collection].insert_one(dict(doc))
        return InsertResult(inserted_count=1 if result.acknowledged else 0)

    async def update(self, collection: str, predicate: Predicate, changes: dict) -> UpdateResult:
        result = await self.db[collection].update_one(to_mongo(predicate), {"$set": changes})
        return UpdateResult(matched_count=result.matched_count, modified_count=result.modified_count)

    async def delete_many(self, collection: str, predicate: Predicate) -> DeleteResult:
        result = await self.db[collection].delete_many(to_mongo(predicate))
        return DeleteResult(deleted_count=result.deleted_count)

    async def close(self) -> None:
        await self.client.close()


# =============================================================================
# IN MEMORY
# =============================================================================

class MemoryStore:
    """
    Dict-backed store with the same behaviour as MongoStore.

    Documents are kept in insertion order, which is also the order
    ``find`` returns them in when no sort is given (like a fresh Mongo
    collection without indexes).
    """

    def __init__(self, initial: Optional[dict[str, list[dict]]] = None):
        self._collections: dict[str, list[dict]] = {}
        for name, docs in (initial or {}).items():
            self._collections[name] = [copy.deepcopy(doc) for doc in docs]

    def _docs(self, collection: str) -> list[dict]:
        return self._collections.setdefault(collection, [])

    async def find(self, collection: str, predicate: Optional[Predicate] = None,
                   sort: Optional[Sort] = None) -> list[dict]:
        found = [copy.deepcopy(doc) for doc in self._docs(collection) if matches(predicate, doc)]
        # Apply keys last-to-first so the first key wins (stable sort)
        for name, direction in reversed(sort or []):
            found.sort(key=lambda doc: _sort_key(doc.get(name)), reverse=direction < 0)
        return found

    async def find_one(self, collection: str, predicate: Optional[Predicate] = None) -> Optional[dict]:
        for doc in self._docs(collection):
            if matches(predicate, doc):
                return copy.deepcopy(doc)
        return None

    async def insert(self, collection: str, doc: dict) -> InsertResult:
        self._docs(collection).append(copy.deepcopy(dict(doc)))
        return InsertResult(inserted_count=1)

    async def update(self, collection: str, predicate: Predicate, changes: dict) -> UpdateResult:
        for doc in self._docs(collection):
            if matches(predicate, doc):
                before = dict(doc)
                doc.update(copy.deepcopy(changes))
                return UpdateResult(matched_count=1, modified_count=int(doc != before))
        return UpdateResult(matched_count=0, modified_count=0)

    async def delete_many(self, collection: str, predicate: Predicate) -> DeleteResult:
        docs = self._docs(collection)
        kept = [doc for doc in docs if not matches(predicate, doc)]
        deleted = len(docs) - len(kept)
        self._collections[collection] = kept
        return DeleteResult(deleted_count=deleted)

    async def close(self) -> None:
        pass


def _sort_key(value: Any) -> tuple:
    # Missing values sort first, like Mongo's null ordering
    return (value is not None, value)
