"""
Configuration module for AuthSnap.

Two layers live here:

- Pydantic models (ProviderConfig, SessionConfig, RateLimitConfig,
  AuthCallbacks, AuthSnapConfig) describing everything the core consumes.
  ``validate_config`` normalizes user input into an AuthSnapConfig and turns
  any validation failure into a ConfigError.
- Pydantic Settings (Settings) for deployments that configure AuthSnap from
  environment variables or a .env file. ``Settings.to_config()`` bridges the
  two.
"""

import json
from functools import lru_cache
from typing import Any, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError


DEFAULT_COOKIE_NAME = "authsnap_session"


# =============================================================================
# Core Configuration Models
# =============================================================================

class ProviderConfig(BaseModel):
    """
    Per-provider OAuth client configuration.

    Vendor-specific options (Microsoft ``tenant``, Apple ``team_id`` /
    ``key_id`` / ``private_key``) are declared explicitly; anything else is
    kept as an extra attribute for custom providers.
    """

    model_config = ConfigDict(extra="allow", arbitrary_types_allowed=True)

    client_id: str = Field(default="", description="OAuth client ID")
    client_secret: str = Field(default="", description="OAuth client secret")
    scopes: Optional[List[str]] = Field(None, description="Scopes to request (provider defaults if omitted)")
    callback_url: Optional[str] = Field(None, description="Override for the auto-detected callback URL")
    prompt: Optional[str] = Field(None, description="Override for the provider's prompt parameter")

    tenant: Optional[str] = Field(None, description="Microsoft tenant (common, organizations, ...)")
    team_id: Optional[str] = Field(None, description="Apple Developer Team ID")
    key_id: Optional[str] = Field(None, description="Apple Sign In private key ID")
    private_key: Optional[str] = Field(None, description="Apple .p8 private key contents")

    provider: Optional[Any] = Field(None, description="Custom BaseProvider subclass")


class SessionConfig(BaseModel):
    """Session token and cookie settings."""

    secret: Union[str, bytes] = Field(default="", description="HS256 signing secret")
    max_age: int = Field(default=86400, ge=1, description="Session lifetime in seconds")
    cookie_name: str = Field(default=DEFAULT_COOKIE_NAME, min_length=1, description="Session cookie name")
    secure: bool = Field(default=True, description="Set the Secure flag on cookies")


class RateLimitConfig(BaseModel):
    """Sliding-window limit applied to login initiation."""

    window_ms: int = Field(default=60_000, ge=1, description="Window length in milliseconds")
    max_requests: int = Field(default=10, ge=1, description="Requests allowed per window per key")


class AuthCallbacks(BaseModel):
    """
    Optional application hooks. Each may be a plain function or a coroutine
    function; exceptions raised by a hook are logged and discarded.

    - on_before_auth(provider_name, request_context) -> None
    - on_success(user, tokens, provider_name) -> SuccessResult | dict | None
    - on_error(error, provider_name) -> ErrorResult | dict | None
    - on_token_refresh(tokens, provider_name) -> None
    """

    on_before_auth: Optional[Callable[..., Any]] = None
    on_success: Optional[Callable[..., Any]] = None
    on_error: Optional[Callable[..., Any]] = None
    on_token_refresh: Optional[Callable[..., Any]] = None


class AuthSnapConfig(BaseModel):
    """Complete, validated configuration consumed by AuthSnap."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    providers: Dict[str, ProviderConfig]
    session: SessionConfig = Field(default_factory=SessionConfig)
    callbacks: AuthCallbacks = Field(default_factory=AuthCallbacks)
    base_path: str = Field(default="/auth", description="Mount point for auth routes")
    base_url: Optional[str] = Field(None, description="Public base URL used to build callback URLs")
    allowed_redirects: Optional[List[str]] = Field(None, description="Allowed absolute redirect URLs/origins")
    rate_limit: Union[RateLimitConfig, Literal[False]] = Field(default_factory=RateLimitConfig)
    token_store: Optional[Any] = Field(None, description="Custom token store implementation")

    @field_validator("base_path")
    @classmethod
    def normalize_base_path(cls, v: str) -> str:
        v = (v or "/auth").rstrip("/")
        if not v.startswith("/"):
            v = f"/{v}"
        return v

    @field_validator("rate_limit", mode="before")
    @classmethod
    def expand_rate_limit(cls, v: Any) -> Any:
        if v is True or v is None:
            return RateLimitConfig()
        return v

    @model_validator(mode="after")
    def check_required(self) -> "AuthSnapConfig":
        if not self.providers:
            raise ValueError("At least one provider must be configured")

        for name, provider in self.providers.items():
            if not provider.client_id:
                raise ValueError(f'Provider "{name}" is missing client_id')
            if not provider.client_secret:
                raise ValueError(f'Provider "{name}" is missing client_secret')

        if not self.session.secret:
            raise ValueError(
                "Session secret is required. Set session.secret or AUTHSNAP_SESSION_SECRET env var."
            )
        return self


def _format_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    message = first.get("msg", "Invalid configuration")
    if message.startswith("Value error, "):
        return message[len("Value error, "):]

    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {message}" if location else message


def validate_config(config: Union[AuthSnapConfig, Dict[str, Any], None]) -> AuthSnapConfig:
    """
    Validate and normalize AuthSnap configuration.

    Args:
        config: An AuthSnapConfig or a plain dict of the same shape

    Returns:
        Normalized AuthSnapConfig with defaults applied

    Raises:
        ConfigError: If the configuration is missing or invalid
    """
    if config is None:
        raise ConfigError("AuthSnap configuration is required")

    if isinstance(config, AuthSnapConfig):
        return config

    try:
        return AuthSnapConfig.model_validate(config)
    except ValidationError as e:
        raise ConfigError(_format_validation_error(e)) from e


# =============================================================================
# Environment Settings
# =============================================================================

class Settings(BaseSettings):
    """
    Deployment settings loaded from environment variables (prefix AUTHSNAP_).

    PROVIDERS is a JSON object keyed by provider name, e.g.
    AUTHSNAP_PROVIDERS='{"google": {"client_id": "...", "client_secret": "..."}}'
    """

    SESSION_SECRET: str = Field(
        ...,
        description="Secret key for signing session tokens (32+ characters recommended)",
        min_length=1,
    )

    SESSION_MAX_AGE: int = Field(
        default=86400,
        description="Session lifetime in seconds",
        ge=1,
    )

    SESSION_COOKIE_NAME: str = Field(
        default=DEFAULT_COOKIE_NAME,
        description="Name of the session cookie",
    )

    SESSION_SECURE: bool = Field(
        default=True,
        description="Set the Secure flag on session cookies",
    )

    BASE_PATH: str = Field(default="/auth", description="Mount point for auth routes")

    BASE_URL: Optional[str] = Field(
        None,
        description="Public base URL (e.g. https://app.example.com); auto-detected when unset",
    )

    ALLOWED_REDIRECTS: Optional[str] = Field(
        None,
        description="Comma-separated list of allowed absolute redirect URLs/origins",
    )

    RATE_LIMIT_ENABLED: bool = Field(default=True, description="Throttle login initiation per client IP")
    RATE_LIMIT_WINDOW_MS: int = Field(default=60_000, ge=1)
    RATE_LIMIT_MAX: int = Field(default=10, ge=1)

    PROVIDERS: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict,
        description="Provider configurations keyed by provider name",
    )

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    HOST: str = Field(default="0.0.0.0", description="Host to bind the server")
    PORT: int = Field(default=8080, ge=1, le=65535, description="Port to bind the server")
    FORWARDED_ALLOW_IPS: str = Field(
        default="127.0.0.1",
        description="Comma-separated proxy IPs trusted to set X-Forwarded-For",
    )

    model_config = SettingsConfigDict(
        env_prefix="AUTHSNAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("PROVIDERS", mode="before")
    @classmethod
    def parse_providers(cls, v: Any) -> Any:
        if isinstance(v, str):
            return json.loads(v) if v.strip() else {}
        return v

    @property
    def allowed_redirects_list(self) -> List[str]:
        """
        Parse ALLOWED_REDIRECTS into a clean list.

        Returns:
            List of allowed URLs/origins, or empty list if not configured.
        """
        if not self.ALLOWED_REDIRECTS:
            return []

        return [
            entry.strip()
            for entry in self.ALLOWED_REDIRECTS.split(",")
            if entry.strip()
        ]

    def to_config(self, **overrides: Any) -> AuthSnapConfig:
        """
        Build a validated AuthSnapConfig from these settings.

        Args:
            **overrides: Extra AuthSnapConfig fields (callbacks, token_store, ...)

        Raises:
            ConfigError: If the resulting configuration is invalid
        """
        rate_limit: Any = False
        if self.RATE_LIMIT_ENABLED:
            rate_limit = {"window_ms": self.RATE_LIMIT_WINDOW_MS, "max_requests": self.RATE_LIMIT_MAX}

        data: Dict[str, Any] = {
            "providers": self.PROVIDERS,
            "session": {
                "secret": self.SESSION_SECRET,
                "max_age": self.SESSION_MAX_AGE,
                "cookie_name": self.SESSION_COOKIE_NAME,
                "secure": self.SESSION_SECURE,
            },
            "base_path": self.BASE_PATH,
            "base_url": self.BASE_URL,
            "allowed_redirects": self.allowed_redirects_list or None,
            "rate_limit": rate_limit,
        }
        data.update(overrides)
        return validate_config(data)


@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()


def validate_configuration(settings: Settings) -> Dict[str, Any]:
    """
    Check deployment settings and return a status report.

    Returns:
        Dictionary with ``valid``, ``errors`` and ``warnings`` keys.
    """
    errors = []
    warnings = []

    if len(settings.SESSION_SECRET) < 32:
        warnings.append("SESSION_SECRET is shorter than recommended (32+ characters)")

    if not settings.SESSION_SECURE:
        warnings.append("SESSION_SECURE is disabled; cookies will be sent over plain HTTP")

    if not settings.PROVIDERS:
        errors.append("No providers configured")

    for name, provider in settings.PROVIDERS.items():
        if not provider.get("client_id"):
            errors.append(f'Provider "{name}" is missing client_id')
        if not provider.get("client_secret"):
            errors.append(f'Provider "{name}" is missing client_secret')

    for entry in settings.allowed_redirects_list:
        if not entry.startswith(("http://", "https://")):
            warnings.append(f"ALLOWED_REDIRECTS entry '{entry}' is not an absolute URL")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "providers": sorted(settings.PROVIDERS),
        "session_max_age": settings.SESSION_MAX_AGE,
    }
