"""Discord OAuth 2.0 provider."""

from typing import Any, Dict, Optional

from ..models import AuthUser
from .base import BaseProvider, ProviderEndpoints


AVATAR_CDN = "https://cdn.discordapp.com/avatars"


class DiscordProvider(BaseProvider):
    name = "discord"
    endpoints = ProviderEndpoints(
        authorization="https://discord.com/api/oauth2/authorize",
        token="https://discord.com/api/oauth2/token",
        userinfo="https://discord.com/api/users/@me",
    )
    default_scopes = ["identify", "email"]
    default_prompt = "consent"

    def normalize_profile(self, raw: Dict[str, Any], extra: Dict[str, Any]) -> AuthUser:
        return AuthUser(
            id=str(raw["id"]),
            email=raw.get("email") or "",
            name=raw.get("global_name") or raw.get("username") or "",
            avatar=avatar_url(raw),
            provider=self.name,
            email_verified=bool(raw.get("verified", False)),
            raw=raw,
        )


def avatar_url(raw: Dict[str, Any]) -> Optional[str]:
    """Build the CDN URL for a Discord avatar hash (animated hashes start with ``a_``)."""
    avatar_hash = raw.get("avatar")
    if not avatar_hash:
        return None
    ext = "gif" if avatar_hash.startswith("a_") else "png"
    return f"{AVATAR_CDN}/{raw['id']}/{avatar_hash}.{ext}"
