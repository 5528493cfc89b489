"""
Error taxonomy for AuthSnap.

Every error raised by the package derives from AuthSnapError and carries a
machine-readable ``code`` plus the HTTP status an adapter should map it to.

- ConfigError: missing or malformed setup, raised at construction time
- ProviderError: a vendor endpoint answered with a non-success status
- TokenExchangeError: ProviderError raised during the authorization-code exchange
- SessionError: a session token failed signature, expiry or issuer checks
- CallbackError: the provider callback itself was malformed (CSRF, missing code)
"""

from typing import Optional


class AuthSnapError(Exception):
    """Base exception for all AuthSnap errors"""

    def __init__(self, message: str, code: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


class ConfigError(AuthSnapError):
    """Invalid or incomplete configuration. Never recovered from."""

    def __init__(self, message: str):
        super().__init__(message, "CONFIG_ERROR", 500)


class ProviderError(AuthSnapError):
    """
    Non-success response from an identity provider.

    Attributes:
        provider: Name of the provider that failed (e.g. 'google')
        status: HTTP status returned by the provider, if any
        body: Raw response body, kept for diagnostics
    """

    def __init__(
        self,
        message: str,
        provider: str,
        status: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message, "PROVIDER_ERROR", 502)
        self.provider = provider
        self.status = status
        self.body = body


class TokenExchangeError(ProviderError):
    """The provider rejected the authorization-code exchange."""


class SessionError(AuthSnapError):
    """Session token is invalid or expired."""

    def __init__(self, message: str = "Invalid or expired session"):
        super().__init__(message, "SESSION_ERROR", 401)


class CallbackError(AuthSnapError):
    """The OAuth callback request could not be accepted."""

    def __init__(self, message: str, code: str = "CALLBACK_ERROR"):
        super().__init__(message, code, 400)


class CsrfMismatchError(CallbackError):
    def __init__(self, message: str = "Invalid state parameter - possible CSRF attack"):
        super().__init__(message, "CSRF_MISMATCH")


class MissingAuthorizationCodeError(CallbackError):
    def __init__(self, message: str = "No authorization code received from provider"):
        super().__init__(message, "MISSING_AUTHORIZATION_CODE")


__all__ = [
    "AuthSnapError",
    "ConfigError",
    "ProviderError",
    "TokenExchangeError",
    "SessionError",
    "CallbackError",
    "CsrfMismatchError",
    "MissingAuthorizationCodeError",
]
