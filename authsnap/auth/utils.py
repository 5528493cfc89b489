"""
Authentication utilities for the OAuth callback flow.

This module handles:
- CSRF state generation and comparison
- PKCE verifier / S256 challenge generation
- Post-login redirect validation (open-redirect protection)
- Unverified decoding of identity tokens received directly from a provider
"""

import base64
import hashlib
import secrets
from typing import Any, Dict, Optional, Sequence
from urllib.parse import urlsplit

from jose import jwt


# =============================================================================
# CSRF State
# =============================================================================

def generate_state() -> str:
    """
    Generate a CSRF state value.

    Returns:
        64 hex characters (32 random bytes)
    """
    return secrets.token_hex(32)


def states_match(returned_state: Optional[str], stored_state: Optional[str]) -> bool:
    """
    Compare the state echoed by the provider with the one stored in the cookie.

    Both values must be present; comparison is constant-time.
    """
    if not returned_state or not stored_state:
        return False
    return secrets.compare_digest(returned_state.encode("utf-8"), stored_state.encode("utf-8"))


# =============================================================================
# PKCE Helper Functions
# =============================================================================

def generate_code_verifier() -> str:
    """
    Generate a cryptographically random code verifier for PKCE.

    Returns:
        Base64-URL-encoded random string (43 characters)
    """
    verifier_bytes = secrets.token_bytes(32)
    return base64.urlsafe_b64encode(verifier_bytes).decode("utf-8").rstrip("=")


def generate_code_challenge(verifier: str) -> str:
    """
    Generate code challenge from verifier using S256 method.

    Args:
        verifier: Code verifier string

    Returns:
        Base64-URL-encoded SHA256 hash of verifier
    """
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("utf-8").rstrip("=")


# =============================================================================
# Redirect Safety
# =============================================================================

_DEFAULT_PORTS = {"http": 80, "https": 443}


def url_origin(url: str) -> Optional[str]:
    """
    Return the normalized origin (scheme://host[:port]) of an absolute URL.

    Scheme and host are lowercased and default ports dropped, so
    ``HTTPS://Good.com:443/x`` and ``https://good.com`` share an origin.

    Returns:
        Origin string, or None if ``url`` is not an absolute http(s)-style URL
    """
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return None

    if not parts.scheme or not parts.hostname:
        return None

    scheme = parts.scheme.lower()
    origin = f"{scheme}://{parts.hostname.lower()}"
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        origin = f"{origin}:{port}"
    return origin


def validate_redirect(redirect: Optional[str], allowed_redirects: Optional[Sequence[str]] = None) -> str:
    """
    Validate a post-login redirect target to prevent open redirects.

    - A path starting with exactly one "/" is same-origin and returned as-is
    - Protocol-relative targets ("//host", "/\\host") are rejected
    - Absolute URLs pass only if the exact URL or its origin is allow-listed
    - Anything else is not confidently relative and is rejected

    Args:
        redirect: Requested redirect target
        allowed_redirects: Allowed absolute URLs or origins

    Returns:
        A safe redirect target ("/" when the request was rejected)
    """
    if not redirect:
        return "/"

    if redirect.startswith("/") and not redirect.startswith(("//", "/\\")):
        return redirect

    if not allowed_redirects:
        return "/"

    origin = url_origin(redirect)
    if origin is None:
        return "/"

    for allowed in allowed_redirects:
        if redirect == allowed:
            return redirect
        if origin == allowed or origin == _origin_entry(allowed):
            return redirect

    return "/"


def _origin_entry(allowed: str) -> Optional[str]:
    # Only bare origins ("https://app.com" or "https://app.com/") match by origin
    try:
        parts = urlsplit(allowed)
    except ValueError:
        return None
    if parts.path not in ("", "/") or parts.query or parts.fragment:
        return None
    return url_origin(allowed)


# =============================================================================
# Identity Tokens
# =============================================================================

def decode_token_without_verification(token: str) -> Dict[str, Any]:
    """
    Decode a JWT without verifying its signature.

    Only used for identity tokens received directly from a provider's token
    endpoint over TLS.

    Raises:
        JWTError: If token is malformed
    """
    return jwt.get_unverified_claims(token)
