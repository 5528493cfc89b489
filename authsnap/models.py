"""
Data Models Module

This module defines the Pydantic models shared by every AuthSnap component.

Models are organized by functional area:
- Identity models (normalized user profile)
- Credential models (OAuth token sets)
- Hook result models (what application callbacks may return)
- Flow result models (what the callback orchestrator hands to adapters)
"""

import time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


# ============================================================================
# Identity Models
# ============================================================================

class AuthUser(BaseModel):
    """
    Normalized identity returned by every provider.

    ``id`` and ``provider`` together are the stable external identity key.
    ``roles`` and ``permissions`` are never part of the provider profile; they
    are attached by the application's success hook and only live inside
    session tokens.
    """

    id: str = Field(..., description="Provider-scoped, stable user identifier")
    email: str = Field(default="", description="Primary email, empty if withheld")
    name: str = Field(default="", description="Display name")
    avatar: Optional[str] = Field(None, description="Profile picture URL")
    provider: str = Field(..., description="Provider tag (google, github, ...)")
    email_verified: bool = Field(default=False, description="Whether the provider verified the email")
    raw: Dict[str, Any] = Field(default_factory=dict, description="Provider-native profile fields")
    roles: Optional[List[str]] = Field(None, description="Roles embedded in the session")
    permissions: Optional[List[str]] = Field(None, description="Permissions embedded in the session")

    def identity_claims(self) -> Dict[str, Any]:
        """Profile fields without the transient RBAC attachments."""
        return self.model_dump(exclude={"roles", "permissions"})


# ============================================================================
# Credential Models
# ============================================================================

class TokenSet(BaseModel):
    """OAuth access/refresh credential bundle."""

    access_token: str = Field(..., description="OAuth access token")
    refresh_token: Optional[str] = Field(None, description="OAuth refresh token")
    expires_at: Optional[int] = Field(
        None,
        description="Absolute expiry as epoch milliseconds; None means unknown/never",
    )
    token_type: str = Field(default="Bearer", description="Token type")
    scope: Optional[str] = Field(None, description="Granted scopes")
    id_token: Optional[str] = Field(None, description="OIDC identity token, when issued")
    stored_at: Optional[int] = Field(None, description="Epoch ms when the store last saved this set")

    @classmethod
    def from_token_response(cls, data: Dict[str, Any], issued_at_ms: Optional[int] = None) -> "TokenSet":
        """
        Build a TokenSet from a provider token-endpoint JSON body.

        Args:
            data: Decoded JSON response (access_token, expires_in, ...)
            issued_at_ms: Reference time for ``expires_in``; defaults to now

        Returns:
            TokenSet with ``expires_at`` converted to absolute milliseconds
        """
        issued_at_ms = now_ms() if issued_at_ms is None else issued_at_ms
        expires_in = data.get("expires_in")

        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or None,
            expires_at=issued_at_ms + int(expires_in) * 1000 if expires_in else None,
            token_type=data.get("token_type") or "Bearer",
            scope=data.get("scope") or None,
            id_token=data.get("id_token") or None,
        )


# ============================================================================
# Hook Result Models
# ============================================================================

class SuccessResult(BaseModel):
    """What an ``on_success`` hook may return."""

    model_config = ConfigDict(extra="ignore")

    redirect: Optional[str] = Field(None, description="Where to send the user after login")
    roles: Optional[List[str]] = Field(None, description="Roles to embed in the session")
    permissions: Optional[List[str]] = Field(None, description="Permissions to embed in the session")


class ErrorResult(BaseModel):
    """What an ``on_error`` hook may return."""

    model_config = ConfigDict(extra="ignore")

    redirect: Optional[str] = Field(None, description="Where to send the user after a failed login")


# ============================================================================
# Flow Result Models
# ============================================================================

class LoginResult(BaseModel):
    """Outcome of starting a login."""

    redirect_url: str = Field(..., description="Provider authorization URL")
    csrf_state: str = Field(..., description="State value to store in the short-lived cookie")
    secure: bool = Field(..., description="Whether cookies should carry the Secure flag")
    code_verifier: Optional[str] = Field(None, description="PKCE verifier, for providers that need one")


class CallbackResult(BaseModel):
    """Outcome of a successful provider callback."""

    redirect_url: str = Field(..., description="Validated post-login redirect")
    session_cookie: str = Field(..., description="Set-Cookie header value for the session")


class ErrorRedirect(BaseModel):
    """Outcome of a failed provider callback."""

    redirect_url: str = Field(..., description="Validated post-error redirect")


class LogoutResult(BaseModel):
    """Outcome of a logout."""

    clear_cookie: str = Field(..., description="Set-Cookie header value clearing the session")
