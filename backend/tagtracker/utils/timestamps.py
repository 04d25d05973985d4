"""
Timestamp Range Parsing
=======================

Turns the ``:timestamp`` part of a notification URL into a filter.

GRAMMAR:
-------
    "1700000000000"         exactly this timestamp
    "1700000000000-"        at least this timestamp
    "-1700000000000"        at most this timestamp
    "1700000000000-1700000900000"   between, both ends included

The text is split at the FIRST dash and each side is trimmed. A lone
dash ("-") has no bound at all and is rejected as malformed, just like
any side that isn't a plain run of ASCII digits or doesn't fit in a
signed 64-bit integer.

Author: Tag Tracker Team
"""

import re
from dataclasses import dataclass
from typing import Optional

from tagtracker.models.query import Equals, Predicate, Range


class MalformedRangeError(ValueError):
    """Raised when a timestamp range can't be parsed."""


# Largest value MongoDB stores as an integer (signed 64-bit)
MAX_TIMESTAMP = 2**63 - 1

_DIGITS = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class TimestampFilter:
    """
    A parsed timestamp constraint.

    Either ``exact`` is set, or at least one of ``gte``/``lte``.
    """
    exact: Optional[int] = None
    gte: Optional[int] = None
    lte: Optional[int] = None

    @property
    def is_exact(self) -> bool:
        return self.exact is not None

    def to_predicate(self, field: str = "timestamp") -> Predicate:
        """Build the store predicate for this constraint."""
        if self.is_exact:
            return Equals(field, self.exact)
        return Range(field, gte=self.gte, lte=self.lte)


def _to_int(text: str, original: str) -> int:
    # Plain ASCII digits only: no sign, no underscores, no other scripts
    if not _DIGITS.fullmatch(text):
        raise MalformedRangeError(f"'{original}' is not a valid timestamp range")
    value = int(text)
    if value > MAX_TIMESTAMP:
        raise MalformedRangeError(f"'{original}' is out of range")
    return value


def parse_timestamp_range(text: Optional[str]) -> Optional[TimestampFilter]:
    """
    Parse a timestamp or timestamp range.

    Args:
        text: Raw value from the URL (may be None)

    Returns:
        A TimestampFilter, or None when no constraint was given

    Raises:
        MalformedRangeError: lone dash, or a bound that isn't a 64-bit integer
    """
    if text is None or not text.strip():
        return None

    if "-" not in text:
        return TimestampFilter(exact=_to_int(text.strip(), text))

    first, second = (part.strip() for part in text.split("-", 1))

    if not first and not second:
        raise MalformedRangeError(f"'{text}' has no bounds")

    gte = _to_int(first, text) if first else None
    lte = _to_int(second, text) if second else None
    return TimestampFilter(gte=gte, lte=lte)
