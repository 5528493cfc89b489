"""
Token Refresh Module

Returns usable access tokens for a stored provider identity, refreshing
them with the provider when they have expired.

A refresh token that fails once (``invalid_grant``, revoked consent, ...)
is treated as permanently dead: the stored entry is deleted and None is
returned, so the application knows to send the user through login again.
"""

import logging
from typing import TYPE_CHECKING, Optional

import httpx

from .. import events
from ..errors import ProviderError
from ..events import call_safely
from ..models import TokenSet
from .store import BaseTokenStore

if TYPE_CHECKING:
    from ..core import AuthSnap

logger = logging.getLogger(__name__)


class TokenRefresher:
    """
    Refreshes expired OAuth tokens held in an AuthSnap token store.

    Args:
        auth: The owning AuthSnap instance (provides providers, store,
            hooks and the event emitter)
    """

    def __init__(self, auth: "AuthSnap"):
        self.auth = auth

    async def get_valid_tokens(self, provider_name: str, user_id: str) -> Optional[TokenSet]:
        """
        Return a non-expired token set, refreshing it if needed.

        Returns:
            The current tokens if still valid, freshly refreshed tokens, or
            None when no tokens exist or they cannot be refreshed
        """
        store = self.auth.token_store
        key = BaseTokenStore.key(provider_name, user_id)

        tokens = await store.get(key)
        if tokens is None:
            return None

        if not await store.is_expired(key):
            return tokens

        if not tokens.refresh_token:
            logger.debug("Tokens expired with no refresh token", extra={"provider": provider_name})
            return None

        return await self._refresh(provider_name, user_id, tokens)

    async def force_refresh(self, provider_name: str, user_id: str) -> Optional[TokenSet]:
        """Refresh regardless of expiry. None if there is nothing to refresh."""
        key = BaseTokenStore.key(provider_name, user_id)
        tokens = await self.auth.token_store.get(key)
        if tokens is None or not tokens.refresh_token:
            return None

        return await self._refresh(provider_name, user_id, tokens)

    async def _refresh(self, provider_name: str, user_id: str, current: TokenSet) -> Optional[TokenSet]:
        store = self.auth.token_store
        key = BaseTokenStore.key(provider_name, user_id)
        provider = self.auth.get_provider(provider_name)

        try:
            new_tokens = await provider.refresh_tokens(current.refresh_token)
        except (ProviderError, httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning(
                f"Token refresh failed for {provider_name}; discarding stored tokens: {type(e).__name__}",
                extra={"provider": provider_name},
            )
            await store.delete(key)
            return None

        if not new_tokens.refresh_token:
            new_tokens = new_tokens.model_copy(update={"refresh_token": current.refresh_token})

        await store.set(key, new_tokens)
        logger.info("Refreshed provider tokens", extra={"provider": provider_name})

        await call_safely(
            self.auth.config.callbacks.on_token_refresh,
            new_tokens,
            provider_name,
            label="on_token_refresh",
        )
        await self.auth.emit(events.TOKEN_REFRESH, {"tokens": new_tokens, "provider": provider_name})

        return new_tokens
