"""
AuthSnap
========

Top-level object tying the components together for one application:
validated configuration, provider registry, session manager, token store
and refresher, rate limiter, and the event emitter.

Example:
    auth = AuthSnap({
        "providers": {
            "google": {"client_id": "...", "client_secret": "..."},
            "github": {"client_id": "...", "client_secret": "..."},
        },
        "session": {"secret": os.environ["AUTHSNAP_SESSION_SECRET"]},
    })

    app = FastAPI()
    auth.mount(app)

    @app.get("/dashboard")
    async def dashboard(user: AuthUser = Depends(auth.protect())):
        ...
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
from fastapi import APIRouter, FastAPI

from .auth import flow
from .auth.routes import create_auth_router
from .auth.session import SessionManager
from .config import AuthSnapConfig, ProviderConfig, validate_config
from .errors import ConfigError
from .events import EventEmitter
from .middleware.protect import AccessDenied, ProtectOptions, access_denied_handler, create_protect_dependency
from .middleware.rate_limit import RateLimiter, create_rate_limiter
from .models import CallbackResult, ErrorRedirect, LoginResult, LogoutResult
from .providers import BUILT_IN_PROVIDERS, BaseProvider
from .tokens.refresh import TokenRefresher
from .tokens.store import BaseTokenStore, TokenStore

logger = logging.getLogger(__name__)


class AuthSnap:
    """
    OAuth login, sessions and route protection for one application.

    Args:
        config: AuthSnapConfig or a dict of the same shape
        http_client: Optional httpx.AsyncClient shared by all providers

    Raises:
        ConfigError: If the configuration is invalid or names an unknown
            provider
    """

    def __init__(
        self,
        config: Union[AuthSnapConfig, Dict[str, Any]],
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = validate_config(config)
        self.http_client = http_client

        self.providers: Dict[str, BaseProvider] = {}
        self.session_manager = SessionManager(self.config.session)
        self.token_store: BaseTokenStore = self.config.token_store or TokenStore()
        self.token_refresher = TokenRefresher(self)
        self.rate_limiter: Optional[RateLimiter] = (
            create_rate_limiter(self.config.rate_limit) if self.config.rate_limit is not False else None
        )
        self.events = EventEmitter()

        self._register_providers()

        logger.info(
            "AuthSnap configured",
            extra={
                "providers": list(self.providers),
                "base_path": self.config.base_path,
                "rate_limit": self.rate_limiter is not None,
            },
        )

    # =========================================================================
    # Providers
    # =========================================================================

    def _register_providers(self) -> None:
        for name, provider_config in self.config.providers.items():
            self.providers[name] = self._build_provider(name, provider_config)

    def _build_provider(self, name: str, provider_config: ProviderConfig) -> BaseProvider:
        custom_class = provider_config.provider
        if custom_class is not None:
            if not (isinstance(custom_class, type) and issubclass(custom_class, BaseProvider)):
                raise ConfigError(
                    f'Provider "{name}" has an invalid "provider" value - must be a BaseProvider subclass'
                )
            provider = custom_class(provider_config, http_client=self.http_client)
            if not provider.name:
                provider.name = name
            return provider

        provider_class = BUILT_IN_PROVIDERS.get(name)
        if provider_class is None:
            supported = ", ".join(BUILT_IN_PROVIDERS)
            raise ConfigError(
                f'Unknown provider "{name}". Supported: {supported}. '
                "For custom providers, pass a BaseProvider subclass as \"provider\"."
            )
        return provider_class(provider_config, http_client=self.http_client)

    def get_provider(self, name: str) -> BaseProvider:
        """
        Get a registered provider by name.

        Raises:
            ConfigError: If the provider is not configured
        """
        provider = self.providers.get(name)
        if provider is None:
            raise ConfigError(f'Provider "{name}" is not configured')
        return provider

    # =========================================================================
    # Flow Operations
    # =========================================================================

    async def begin_login(self, provider_name: str, callback_url: str, request_context: Any = None) -> LoginResult:
        return await flow.begin_login(self, provider_name, callback_url, request_context)

    async def complete_callback(
        self,
        provider_name: str,
        code: Optional[str],
        returned_state: Optional[str],
        stored_state: Optional[str],
        callback_url: str,
        code_verifier: Optional[str] = None,
        profile_extra: Optional[Dict[str, Any]] = None,
    ) -> CallbackResult:
        return await flow.complete_callback(
            self,
            provider_name,
            code,
            returned_state,
            stored_state,
            callback_url,
            code_verifier=code_verifier,
            profile_extra=profile_extra,
        )

    async def complete_callback_error(self, provider_name: str, error: Exception) -> ErrorRedirect:
        return await flow.complete_callback_error(self, provider_name, error)

    async def complete_logout(self) -> LogoutResult:
        return await flow.complete_logout(self)

    # =========================================================================
    # FastAPI Integration
    # =========================================================================

    def protect(
        self,
        options: Optional[ProtectOptions] = None,
        *,
        redirect_on_unauth: Optional[str] = None,
        required_roles: Optional[List[str]] = None,
        required_permissions: Optional[List[str]] = None,
        redirect_on_forbidden: Optional[str] = None,
    ) -> Callable[..., Any]:
        """
        FastAPI dependency protecting a route.

        Pass either a ProtectOptions or the individual keyword options.
        """
        if options is None:
            options = ProtectOptions(
                redirect_on_unauth=redirect_on_unauth,
                required_roles=required_roles or [],
                required_permissions=required_permissions or [],
                redirect_on_forbidden=redirect_on_forbidden,
            )
        return create_protect_dependency(self.session_manager, options)

    def router(self) -> APIRouter:
        """APIRouter with the login, callback, logout and error routes."""
        return create_auth_router(self)

    def mount(self, app: FastAPI) -> FastAPI:
        """Include the auth routes and the AccessDenied handler in ``app``."""
        app.include_router(self.router())
        app.add_exception_handler(AccessDenied, access_denied_handler)
        return app

    # =========================================================================
    # Events
    # =========================================================================

    def on(self, event: str, listener: Callable[..., Any]) -> "AuthSnap":
        self.events.on(event, listener)
        return self

    def once(self, event: str, listener: Callable[..., Any]) -> "AuthSnap":
        self.events.once(event, listener)
        return self

    def off(self, event: str, listener: Callable[..., Any]) -> "AuthSnap":
        self.events.off(event, listener)
        return self

    async def emit(self, event: str, data: Optional[Dict[str, Any]] = None) -> bool:
        """Deliver an event; listener errors are logged and discarded."""
        return await self.events.emit(event, data)
