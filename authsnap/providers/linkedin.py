"""LinkedIn OAuth 2.0 provider (OpenID Connect userinfo)."""

from typing import Any, Dict

from ..models import AuthUser
from .base import BaseProvider, ProviderEndpoints


class LinkedInProvider(BaseProvider):
    name = "linkedin"
    endpoints = ProviderEndpoints(
        authorization="https://www.linkedin.com/oauth/v2/authorization",
        token="https://www.linkedin.com/oauth/v2/accessToken",
        userinfo="https://api.linkedin.com/v2/userinfo",
    )
    default_scopes = ["openid", "profile", "email"]

    def normalize_profile(self, raw: Dict[str, Any], extra: Dict[str, Any]) -> AuthUser:
        return AuthUser(
            id=str(raw["sub"]),
            email=raw.get("email") or "",
            name=raw.get("name") or "",
            avatar=raw.get("picture") or None,
            provider=self.name,
            email_verified=bool(raw.get("email_verified", False)),
            raw=raw,
        )
