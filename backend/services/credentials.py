"""
Credential Allocator - Round-robin selection over the API key pool.

Each call hands out the key under the rotation cursor and advances it, so
consecutive synthesis requests spread across every key in the pool. A key
that is rate limited upstream is simply skipped by the next request.
No health checks or back-off are performed.
"""

import logging
from typing import Optional

from errors import NoCredentialAvailableError, best_effort
from .state_store import StateStore

logger = logging.getLogger(__name__)


def mask_credential(key: str) -> str:
    """Mask an API key for display, keeping a short prefix and suffix."""
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}…{key[-4:]}"


class CredentialAllocator:
    """Selects the next usable credential from the store's pool."""

    def __init__(self, store: StateStore):
        self._store = store

    @property
    def pool_size(self) -> int:
        return len(self._store.state.credentials)

    def peek(self) -> Optional[str]:
        """Next credential without advancing the cursor."""
        return self._store.state.peek()

    async def next(self) -> Optional[str]:
        """
        Return the next credential, or None when the pool is empty.

        The cursor change is persisted best effort: a failed write only
        costs rotation position after a restart, never the request.
        """
        key = self._store.state.rotate()
        if key is None:
            return None

        async with best_effort("persist rotation cursor", logger):
            await self._store.persist()
        return key

    async def acquire(self) -> str:
        """
        Like next(), but raises when the pool is empty.

        Raises:
            NoCredentialAvailableError: the pool is empty
        """
        key = await self.next()
        if key is None:
            raise NoCredentialAvailableError(
                "No API key available",
                details="An admin can add one with /addkey",
            )
        return key
