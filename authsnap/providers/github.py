"""GitHub OAuth 2.0 provider."""

import logging
from typing import Any, Dict, List, Optional

from ..models import AuthUser
from .base import BaseProvider, ProviderEndpoints

logger = logging.getLogger(__name__)


EMAILS_URL = "https://api.github.com/user/emails"


class GitHubProvider(BaseProvider):
    """
    GitHub OAuth 2.0.

    GitHub returns a null ``email`` when the user keeps it private; the
    primary (else first) address from ``/user/emails`` is used instead.
    """

    name = "github"
    endpoints = ProviderEndpoints(
        authorization="https://github.com/login/oauth/authorize",
        token="https://github.com/login/oauth/access_token",
        userinfo="https://api.github.com/user",
    )
    default_scopes = ["read:user", "user:email"]
    default_prompt = "select_account"

    async def fetch_profile(self, access_token: str, extra: Optional[Dict[str, Any]] = None) -> AuthUser:
        raw = await self._api_get(self.endpoints.userinfo, access_token)
        extra = dict(extra or {})

        if not raw.get("email"):
            logger.debug("GitHub profile has no public email; fetching /user/emails")
            extra["emails"] = await self._api_get(EMAILS_URL, access_token)

        return self.normalize_profile(raw, extra)

    def normalize_profile(self, raw: Dict[str, Any], extra: Dict[str, Any]) -> AuthUser:
        email = raw.get("email")
        email_verified = bool(email)

        if not email:
            primary = _primary_email(extra.get("emails") or [])
            if primary:
                email = primary.get("email")
                email_verified = bool(primary.get("verified", False))

        return AuthUser(
            id=str(raw["id"]),
            email=email or "",
            name=raw.get("name") or raw.get("login") or "",
            avatar=raw.get("avatar_url") or None,
            provider=self.name,
            email_verified=email_verified,
            raw=raw,
        )


def _primary_email(emails: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    for entry in emails:
        if entry.get("primary"):
            return entry
    return emails[0] if emails else None
