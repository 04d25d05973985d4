"""
Token Authentication
====================

Resolves the Authorization header of a request to the account (owner)
it belongs to. Tokens are issued elsewhere; here we only look them up in
the ``tokens`` collection:

    {"token": "abc123", "owner": "acme"}

Author: Tag Tracker Team
"""

import logging
from dataclasses import dataclass
from typing import Optional

from tagtracker.models.query import where
from tagtracker.services.store import TOKENS, DocumentStore
from tagtracker.utils.validation import extract_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Owner:
    """The authenticated account."""
    owner: str


class TokenAuthenticator:

    def __init__(self, store: DocumentStore):
        self.store = store

    async def authenticate(self, authorization: Optional[str]) -> Optional[Owner]:
        """
        Look up the caller.

        Args:
            authorization: Raw Authorization header ("Bearer <token>" or a bare token)

        Returns:
            The Owner, or None if the header is missing or the token unknown
        """
        token = extract_token(authorization)
        if token is None:
            return None

        record = await self.store.find_one(TOKENS, where(token=token))
        if not record or not record.get("owner"):
            logger.debug("Rejected unknown token")
            return None

        return Owner(owner=record["owner"])
