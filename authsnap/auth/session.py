"""
JWT Session Management Module
==============================

Creates and verifies the signed session tokens AuthSnap issues after a
successful login, and builds/parses their cookie representation.

Tokens are HS256 JWTs carrying exactly:
    user         - the normalized AuthUser (without roles/permissions)
    roles        - optional, from the application's success hook
    permissions  - optional, from the application's success hook
    iat / exp    - issued-at and expiry (iat + max_age), whole seconds
    iss          - the fixed issuer "authsnap"

The token is the only copy of session state; there is no server-side table.
"""

import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional, Union

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError
from pydantic import ValidationError

from ..config import SessionConfig
from ..errors import SessionError
from ..models import AuthUser, SuccessResult

logger = logging.getLogger(__name__)


ALGORITHM = "HS256"
ISSUER = "authsnap"


class SessionManager:
    """
    Issues and verifies session tokens for one session configuration.

    Args:
        config: Session settings (secret, max_age, cookie_name, secure)
        clock: Returns the current time in epoch seconds; used for ``iat``
    """

    def __init__(self, config: SessionConfig, clock: Callable[[], float] = time.time):
        self.config = config
        self.cookie_name = config.cookie_name
        self.max_age = config.max_age
        self.secure = config.secure
        self._clock = clock
        self._secret = self._key_material(config.secret)

    @staticmethod
    def _key_material(secret: Union[str, bytes]) -> bytes:
        if isinstance(secret, bytes):
            return secret
        return secret.encode("utf-8")

    # =========================================================================
    # Token Creation
    # =========================================================================

    def create_token(
        self,
        user: AuthUser,
        extra_claims: Optional[Union[SuccessResult, Mapping[str, Any]]] = None,
    ) -> str:
        """
        Create a signed session token for a user.

        Args:
            user: Normalized user profile
            extra_claims: Optional ``roles`` / ``permissions`` to embed. When
                omitted, roles/permissions already attached to ``user`` are used.

        Returns:
            Encoded JWT string
        """
        if isinstance(extra_claims, SuccessResult):
            extra: Dict[str, Any] = extra_claims.model_dump(exclude_none=True)
        else:
            extra = dict(extra_claims or {})

        roles = extra.get("roles", user.roles)
        permissions = extra.get("permissions", user.permissions)

        issued_at = int(self._clock())
        payload: Dict[str, Any] = {
            "user": user.identity_claims(),
            "iat": issued_at,
            "exp": issued_at + self.max_age,
            "iss": ISSUER,
        }
        if roles is not None:
            payload["roles"] = list(roles)
        if permissions is not None:
            payload["permissions"] = list(permissions)

        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM)

        logger.debug(
            "Created session token",
            extra={"provider": user.provider, "user_id": user.id, "expires_in_seconds": self.max_age},
        )
        return token

    # =========================================================================
    # Token Verification
    # =========================================================================

    def verify_token(self, token: Any) -> AuthUser:
        """
        Verify a session token and return the user it carries.

        Roles and permissions embedded in the token are reattached to the
        returned user.

        Raises:
            SessionError: If the token is malformed, tampered with, expired,
                or from another issuer. The reason is logged, not exposed.
        """
        if not token or not isinstance(token, str):
            raise SessionError()

        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=ISSUER,
                options={"require": ["exp", "iat", "iss"]},
            )
            user = AuthUser.model_validate(claims["user"])
        except ExpiredSignatureError:
            logger.debug("Session token expired")
            raise SessionError() from None
        except InvalidTokenError as e:
            logger.info(f"Rejected session token: {type(e).__name__}")
            raise SessionError() from None
        except (KeyError, TypeError, ValidationError):
            logger.warning("Session token carried a malformed user claim")
            raise SessionError() from None

        if claims.get("roles") is not None:
            user.roles = list(claims["roles"])
        if claims.get("permissions") is not None:
            user.permissions = list(claims["permissions"])
        return user

    # =========================================================================
    # Cookie Helpers
    # =========================================================================

    def build_cookie_header(self, token: str) -> str:
        """Build the Set-Cookie header value carrying a session token."""
        parts = [
            f"{self.cookie_name}={token}",
            f"Max-Age={self.max_age}",
            "Path=/",
            "HttpOnly",
            "SameSite=Lax",
        ]
        if self.secure:
            parts.append("Secure")
        return "; ".join(parts)

    def build_clear_cookie_header(self) -> str:
        """Build a Set-Cookie header value that clears the session."""
        return f"{self.cookie_name}=; Max-Age=0; Path=/; HttpOnly; SameSite=Lax"

    def get_token_from_request(self, request: Any) -> Optional[str]:
        """
        Extract the session token from a request-like object.

        Checks a pre-parsed cookie mapping first (``request.cookies``), then
        falls back to parsing the raw ``Cookie`` header. Accepts Starlette
        requests, plain dicts with ``cookies``/``headers`` keys, or any object
        exposing those attributes.

        Returns:
            Token string, or None if the session cookie is absent
        """
        cookies = _lookup(request, "cookies")
        if cookies and cookies.get(self.cookie_name):
            return cookies[self.cookie_name]

        headers = _lookup(request, "headers")
        cookie_header = (headers.get("cookie") or headers.get("Cookie")) if headers else None
        if not cookie_header:
            return None

        prefix = f"{self.cookie_name}="
        for part in cookie_header.split(";"):
            part = part.strip()
            if part.startswith(prefix):
                return part[len(prefix):] or None
        return None


def _lookup(request: Any, name: str) -> Optional[Mapping[str, Any]]:
    if isinstance(request, Mapping):
        return request.get(name)
    return getattr(request, name, None)


__all__ = [
    "SessionManager",
    "ALGORITHM",
    "ISSUER",
]
