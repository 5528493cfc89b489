"""
Multi-provider account linking.

Links provider identities (``provider``, ``provider_id``) to one
application user id. The store keeps a forward map
``app_user_id -> {provider: provider_id}`` and a reverse index
``"provider:provider_id" -> app_user_id``; the two are always updated
together.

Example, inside a success listener:

    linker = AccountLinker()

    async def on_login(event):
        user = event["user"]
        app_user_id = await linker.find_by_provider(user.provider, user.id)
        if app_user_id is None:
            await linker.link(current_app_user_id, user.provider, user.id)
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class BaseLinkStore(ABC):
    """Storage contract for account links."""

    @abstractmethod
    async def link(self, app_user_id: str, provider: str, provider_id: str) -> None:
        ...

    @abstractmethod
    async def unlink(self, app_user_id: str, provider: str) -> bool:
        ...

    @abstractmethod
    async def get_linked_accounts(self, app_user_id: str) -> Dict[str, str]:
        ...

    @abstractmethod
    async def find_by_provider(self, provider: str, provider_id: str) -> Optional[str]:
        ...

    @abstractmethod
    async def is_linked(self, app_user_id: str, provider: str) -> bool:
        ...


class InMemoryLinkStore(BaseLinkStore):
    """
    Dict-backed link store.

    Re-linking a provider to a new provider id drops the old reverse entry.
    Linking a provider identity that another user owns moves it to the new
    user, so each provider identity resolves to exactly one app user.
    """

    def __init__(self):
        self._forward: Dict[str, Dict[str, str]] = {}
        self._reverse: Dict[str, str] = {}

    @staticmethod
    def _reverse_key(provider: str, provider_id: str) -> str:
        return f"{provider}:{provider_id}"

    def _drop_forward(self, app_user_id: str, provider: str) -> Optional[str]:
        links = self._forward.get(app_user_id)
        if not links or provider not in links:
            return None

        provider_id = links.pop(provider)
        if not links:
            del self._forward[app_user_id]
        return provider_id

    async def link(self, app_user_id: str, provider: str, provider_id: str) -> None:
        reverse_key = self._reverse_key(provider, provider_id)

        previous_owner = self._reverse.get(reverse_key)
        if previous_owner is not None and previous_owner != app_user_id:
            self._drop_forward(previous_owner, provider)
            logger.info(
                "Moved provider identity to a different user",
                extra={"provider": provider, "from_user": previous_owner, "to_user": app_user_id},
            )

        stale_id = self._forward.get(app_user_id, {}).get(provider)
        if stale_id is not None and stale_id != provider_id:
            self._reverse.pop(self._reverse_key(provider, stale_id), None)

        self._forward.setdefault(app_user_id, {})[provider] = provider_id
        self._reverse[reverse_key] = app_user_id

    async def unlink(self, app_user_id: str, provider: str) -> bool:
        provider_id = self._drop_forward(app_user_id, provider)
        if provider_id is None:
            return False

        self._reverse.pop(self._reverse_key(provider, provider_id), None)
        return True

    async def get_linked_accounts(self, app_user_id: str) -> Dict[str, str]:
        return dict(self._forward.get(app_user_id, {}))

    async def find_by_provider(self, provider: str, provider_id: str) -> Optional[str]:
        return self._reverse.get(self._reverse_key(provider, provider_id))

    async def is_linked(self, app_user_id: str, provider: str) -> bool:
        return provider in self._forward.get(app_user_id, {})


class AccountLinker:
    """
    Facade over a link store.

    Args:
        store: Any BaseLinkStore implementation; in-memory by default
    """

    def __init__(self, store: Optional[BaseLinkStore] = None):
        self.store = store if store is not None else InMemoryLinkStore()

    async def link(self, app_user_id: str, provider: str, provider_id: str) -> None:
        """Link a provider account to an application user."""
        await self.store.link(app_user_id, provider, provider_id)

    async def unlink(self, app_user_id: str, provider: str) -> bool:
        """
        Unlink a provider from an application user.

        Returns:
            True if a link existed
        """
        return await self.store.unlink(app_user_id, provider)

    async def get_linked_accounts(self, app_user_id: str) -> Dict[str, str]:
        """All linked providers as ``{provider: provider_id}`` (empty if none)."""
        return await self.store.get_linked_accounts(app_user_id)

    async def find_by_provider(self, provider: str, provider_id: str) -> Optional[str]:
        """The application user id owning a provider identity, or None."""
        return await self.store.find_by_provider(provider, provider_id)

    async def is_linked(self, app_user_id: str, provider: str) -> bool:
        return await self.store.is_linked(app_user_id, provider)
