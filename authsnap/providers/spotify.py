"""Spotify OAuth 2.0 provider."""

from typing import Any, Dict

from ..models import AuthUser
from .base import BaseProvider, ProviderEndpoints


class SpotifyProvider(BaseProvider):
    name = "spotify"
    endpoints = ProviderEndpoints(
        authorization="https://accounts.spotify.com/authorize",
        token="https://accounts.spotify.com/api/token",
        userinfo="https://api.spotify.com/v1/me",
    )
    default_scopes = ["user-read-private", "user-read-email"]

    def normalize_profile(self, raw: Dict[str, Any], extra: Dict[str, Any]) -> AuthUser:
        images = raw.get("images") or []

        return AuthUser(
            id=str(raw["id"]),
            email=raw.get("email") or "",
            name=raw.get("display_name") or str(raw["id"]),
            avatar=images[0].get("url") if images else None,
            provider=self.name,
            # Spotify does not report whether the email is verified
            email_verified=False,
            raw=raw,
        )
