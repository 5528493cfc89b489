"""
Token Store Module

Keeps OAuth token sets keyed by ``"{provider}:{user_id}"`` so an
application can later call provider APIs on a user's behalf.

BaseTokenStore is the storage contract; TokenStore is the in-memory
default. Durable backends (Redis, a database, ...) implement the same
async methods and the ``size`` property.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

from ..models import TokenSet

logger = logging.getLogger(__name__)


class BaseTokenStore(ABC):
    """Storage contract for OAuth token sets."""

    @staticmethod
    def key(provider: str, user_id: str) -> str:
        """Build the storage key for a provider identity."""
        return f"{provider}:{user_id}"

    @abstractmethod
    async def set(self, key: str, tokens: TokenSet) -> None:
        """Store (fully replace) the token set under ``key``."""

    @abstractmethod
    async def get(self, key: str) -> Optional[TokenSet]:
        """Return the stored token set, or None."""

    @abstractmethod
    async def has(self, key: str) -> bool:
        """Whether a token set exists under ``key``."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove ``key``; True iff an entry existed."""

    @abstractmethod
    async def is_expired(self, key: str) -> bool:
        """
        Whether the stored access token has expired.

        True when nothing is stored; False when ``expires_at`` is unknown.
        """

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry."""

    @property
    @abstractmethod
    def size(self) -> int:
        """Number of stored token sets."""


class TokenStore(BaseTokenStore):
    """
    In-memory token store with no eviction.

    Args:
        clock: Returns the current time in epoch milliseconds
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        self._store: Dict[str, TokenSet] = {}
        self._clock = clock or (lambda: int(time.time() * 1000))

    async def set(self, key: str, tokens: TokenSet) -> None:
        self._store[key] = tokens.model_copy(update={"stored_at": self._clock()})
        logger.debug("Stored tokens", extra={"key": key})

    async def get(self, key: str) -> Optional[TokenSet]:
        return self._store.get(key)

    async def has(self, key: str) -> bool:
        return key in self._store

    async def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    async def is_expired(self, key: str) -> bool:
        tokens = self._store.get(key)
        if tokens is None:
            return True
        if tokens.expires_at is None:
            return False
        return self._clock() > tokens.expires_at

    async def clear(self) -> None:
        self._store.clear()

    @property
    def size(self) -> int:
        return len(self._store)
