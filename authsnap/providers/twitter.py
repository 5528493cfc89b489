"""
Twitter / X OAuth 2.0 provider.

Twitter requires PKCE even for confidential clients and authenticates the
client at the token endpoint with HTTP Basic auth. The S256 challenge is
built by the login flow from a per-login verifier; the verifier comes back
to ``exchange_code`` explicitly, so one provider instance can serve
concurrent logins.
"""

from typing import Any, Dict, Optional

from ..errors import ProviderError
from ..models import AuthUser
from .base import CLIENT_SECRET_BASIC, BaseProvider, ProviderEndpoints


PROFILE_FIELDS = "id,name,username,profile_image_url,verified"


class TwitterProvider(BaseProvider):
    name = "twitter"
    endpoints = ProviderEndpoints(
        authorization="https://twitter.com/i/oauth2/authorize",
        token="https://api.twitter.com/2/oauth2/token",
        userinfo="https://api.twitter.com/2/users/me",
    )
    default_scopes = ["users.read", "tweet.read"]
    uses_pkce = True
    token_auth_method = CLIENT_SECRET_BASIC

    async def fetch_profile(self, access_token: str, extra: Optional[Dict[str, Any]] = None) -> AuthUser:
        url = f"{self.endpoints.userinfo}?user.fields={PROFILE_FIELDS}"
        raw = await self._api_get(url, access_token)
        return self.normalize_profile(raw, extra or {})

    def normalize_profile(self, raw: Dict[str, Any], extra: Dict[str, Any]) -> AuthUser:
        user = raw.get("data")
        if not user:
            raise ProviderError("Twitter profile response has no data envelope", self.name)

        return AuthUser(
            id=str(user["id"]),
            # Email is not exposed by the v2 users/me endpoint
            email="",
            name=user.get("name") or user.get("username") or "",
            avatar=user.get("profile_image_url") or None,
            provider=self.name,
            email_verified=False,
            raw=user,
        )
