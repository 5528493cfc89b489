"""
Sign in with Apple provider.

Apple differs from the other vendors in four ways:

1. The callback is a form POST (``response_mode=form_post``), not a GET
2. There is no userinfo endpoint; the profile comes from the ``id_token``
   returned by the token endpoint
3. The user's name is only sent once, on the first authorization, in the
   ``user`` form field of the callback
4. The client secret may be a short-lived ES256 JWT signed with the
   developer's private key
"""

import json
import logging
import time
from typing import Any, Dict, Optional

from jose import jwt
from jose.exceptions import JOSEError

from ..auth.utils import decode_token_without_verification
from ..errors import ProviderError
from ..models import AuthUser
from .base import BaseProvider, ProviderEndpoints

logger = logging.getLogger(__name__)


APPLE_AUDIENCE = "https://appleid.apple.com"
CLIENT_SECRET_TTL_SECONDS = 300


class AppleProvider(BaseProvider):
    name = "apple"
    endpoints = ProviderEndpoints(
        authorization="https://appleid.apple.com/auth/authorize",
        token="https://appleid.apple.com/auth/token",
    )
    default_scopes = ["name", "email"]
    extra_authorization_params = {"response_mode": "form_post"}

    async def client_secret(self) -> str:
        """
        Return the client secret for the token endpoint.

        When ``team_id``, ``key_id`` and ``private_key`` are all configured a
        5-minute ES256 JWT is generated; otherwise ``client_secret`` is used
        as a pre-generated secret.
        """
        team_id = self.config.team_id
        key_id = self.config.key_id
        private_key = self.config.private_key

        if not (team_id and key_id and private_key):
            return self.config.client_secret

        issued_at = int(time.time())
        claims = {
            "iss": team_id,
            "sub": self.config.client_id,
            "aud": APPLE_AUDIENCE,
            "iat": issued_at,
            "exp": issued_at + CLIENT_SECRET_TTL_SECONDS,
        }
        try:
            return jwt.encode(claims, private_key, algorithm="ES256", headers={"kid": key_id})
        except JOSEError as e:
            raise ProviderError(f"Could not sign Apple client secret: {e}", self.name) from e

    async def fetch_profile(self, access_token: str, extra: Optional[Dict[str, Any]] = None) -> AuthUser:
        """
        Build the profile from the id_token claims.

        Args:
            access_token: Unused; Apple has no profile API
            extra: Must carry ``id_token``; may carry the first-login ``user``
                payload as a dict or JSON string

        Raises:
            ProviderError: If the id_token is missing or undecodable
        """
        extra = extra or {}
        id_token = extra.get("id_token")
        if not id_token:
            raise ProviderError("Apple requires an id_token for profile data", self.name)

        try:
            claims = decode_token_without_verification(id_token)
        except JOSEError as e:
            raise ProviderError(f"Apple id_token could not be decoded: {e}", self.name) from e

        return self.normalize_profile(claims, extra)

    def normalize_profile(self, raw: Dict[str, Any], extra: Dict[str, Any]) -> AuthUser:
        user_data = _parse_user_payload(extra.get("user"))
        email = raw.get("email") or ""

        name_parts = user_data.get("name") or {}
        if name_parts:
            name = f"{name_parts.get('firstName') or ''} {name_parts.get('lastName') or ''}".strip()
        else:
            name = email.split("@")[0] if email else "Apple User"

        return AuthUser(
            id=str(raw["sub"]),
            email=email,
            name=name,
            avatar=None,
            provider=self.name,
            email_verified=raw.get("email_verified") in (True, "true"),
            raw={**raw, "user": user_data},
        )


def _parse_user_payload(user: Any) -> Dict[str, Any]:
    if not user:
        return {}
    if isinstance(user, dict):
        return user
    try:
        parsed = json.loads(user)
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed Apple user payload")
        return {}
    return parsed if isinstance(parsed, dict) else {}
