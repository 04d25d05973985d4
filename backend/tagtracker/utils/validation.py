"""
Input Validation Utilities
===========================

Small checks shared by the routers and services.

Author: Tag Tracker Team
"""

from typing import Any, Optional


def is_empty(value: Any) -> bool:
    """
    Check whether a request value counts as "not provided".

    None, blank strings and empty collections are empty. Zero is NOT
    empty, since a sensor can legitimately sit at pos_x = 0.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def extract_token(authorization: Optional[str]) -> Optional[str]:
    """
    Pull the token out of an Authorization header.

    Accepts "Bearer <token>" as well as a bare token.

    Returns:
        The token, or None if the header is missing or blank
    """
    if authorization is None:
        return None

    value = authorization.strip()
    scheme, _, rest = value.partition(" ")
    if rest and scheme.lower() == "bearer":
        value = rest.strip()

    return value or None
