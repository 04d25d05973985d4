"""
Utility modules for the tag tracker backend.
"""

from tagtracker.utils.timestamps import (
    MalformedRangeError,
    TimestampFilter,
    parse_timestamp_range,
)
from tagtracker.utils.validation import extract_token, is_empty

__all__ = [
    "MalformedRangeError",
    "TimestampFilter",
    "parse_timestamp_range",
    "extract_token",
    "is_empty",
]
