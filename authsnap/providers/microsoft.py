"""Microsoft (Entra ID / personal accounts) OAuth 2.0 provider."""

from typing import Any, Dict, Optional

import httpx

from ..config import ProviderConfig
from ..models import AuthUser
from .base import BaseProvider, ProviderEndpoints


LOGIN_HOST = "https://login.microsoftonline.com"
GRAPH_ME = "https://graph.microsoft.com/v1.0/me"
DEFAULT_TENANT = "common"


class MicrosoftProvider(BaseProvider):
    """
    Microsoft identity platform v2.0.

    The authorization and token endpoints depend on the configured ``tenant``:
    ``common`` (default), ``organizations``, ``consumers`` or a tenant ID.
    Profile data comes from Microsoft Graph ``/me``.
    """

    name = "microsoft"
    default_scopes = ["openid", "email", "profile", "User.Read"]
    default_prompt = "select_account"
    extra_authorization_params = {"response_mode": "query"}

    def __init__(self, config: ProviderConfig, http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(config, http_client)
        self.tenant = config.tenant or DEFAULT_TENANT
        self.endpoints = ProviderEndpoints(
            authorization=f"{LOGIN_HOST}/{self.tenant}/oauth2/v2.0/authorize",
            token=f"{LOGIN_HOST}/{self.tenant}/oauth2/v2.0/token",
            userinfo=GRAPH_ME,
        )

    def normalize_profile(self, raw: Dict[str, Any], extra: Dict[str, Any]) -> AuthUser:
        return AuthUser(
            id=str(raw["id"]),
            email=raw.get("mail") or raw.get("userPrincipalName") or "",
            name=raw.get("displayName") or "",
            # Graph serves photos from a separate binary endpoint
            avatar=None,
            provider=self.name,
            email_verified=True,
            raw=raw,
        )
