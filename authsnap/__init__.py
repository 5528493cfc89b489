"""
AuthSnap: OAuth2 / OIDC login, signed sessions and route protection.

Unifies login across identity providers (Google, GitHub, Discord,
Twitter/X, Apple, Microsoft, LinkedIn, Spotify or a custom BaseProvider),
issues HS256 session cookies, and gates FastAPI routes on session validity
plus optional role/permission checks.
"""

from .config import AuthSnapConfig, ProviderConfig, RateLimitConfig, SessionConfig, validate_config
from .core import AuthSnap
from .errors import (
    AuthSnapError,
    CallbackError,
    ConfigError,
    CsrfMismatchError,
    MissingAuthorizationCodeError,
    ProviderError,
    SessionError,
    TokenExchangeError,
)
from .linking import AccountLinker, BaseLinkStore, InMemoryLinkStore
from .middleware import ProtectOptions, RateLimiter, create_rate_limiter
from .models import AuthUser, ErrorResult, SuccessResult, TokenSet
from .providers import BaseProvider
from .tokens import BaseTokenStore, TokenRefresher, TokenStore

__version__ = "1.0.0"

__all__ = [
    "AuthSnap",
    "AuthSnapConfig",
    "ProviderConfig",
    "RateLimitConfig",
    "SessionConfig",
    "validate_config",
    "AuthSnapError",
    "CallbackError",
    "ConfigError",
    "CsrfMismatchError",
    "MissingAuthorizationCodeError",
    "ProviderError",
    "SessionError",
    "TokenExchangeError",
    "AccountLinker",
    "BaseLinkStore",
    "InMemoryLinkStore",
    "ProtectOptions",
    "RateLimiter",
    "create_rate_limiter",
    "AuthUser",
    "ErrorResult",
    "SuccessResult",
    "TokenSet",
    "BaseProvider",
    "BaseTokenStore",
    "TokenRefresher",
    "TokenStore",
]
