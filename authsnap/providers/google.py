"""Google OAuth 2.0 provider."""

from typing import Any, Dict

from ..models import AuthUser
from .base import BaseProvider, ProviderEndpoints


class GoogleProvider(BaseProvider):
    """
    Google OAuth 2.0 / OIDC.

    ``access_type=offline`` is always requested so Google issues a refresh
    token; the default prompt shows both the account picker and the consent
    screen.
    """

    name = "google"
    endpoints = ProviderEndpoints(
        authorization="https://accounts.google.com/o/oauth2/v2/auth",
        token="https://oauth2.googleapis.com/token",
        userinfo="https://www.googleapis.com/oauth2/v2/userinfo",
    )
    default_scopes = ["openid", "email", "profile"]
    default_prompt = "select_account consent"
    extra_authorization_params = {"access_type": "offline"}

    def normalize_profile(self, raw: Dict[str, Any], extra: Dict[str, Any]) -> AuthUser:
        return AuthUser(
            id=str(raw["id"]),
            email=raw.get("email") or "",
            name=raw.get("name") or "",
            avatar=raw.get("picture") or None,
            provider=self.name,
            email_verified=bool(raw.get("verified_email", False)),
            raw=raw,
        )
