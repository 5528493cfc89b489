"""
OAuth flow orchestration.

Framework-independent login, callback, error and logout handling. The
FastAPI routes (and any other adapter) read request data, call these
operations, and translate the returned records into HTTP responses.

Callback completion runs in a fixed order:

1. CSRF state check (both values present, constant-time equal)
2. Authorization code present
3. Code exchange with the provider
4. Profile fetch
5. Token persistence under ``provider:user_id``
6. ``on_success`` hook (may supply redirect / roles / permissions)
7. ``success`` event
8. Redirect safety
9. Session minting
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .. import events
from ..errors import CsrfMismatchError, MissingAuthorizationCodeError
from ..events import call_safely
from ..models import (
    CallbackResult,
    ErrorRedirect,
    ErrorResult,
    LoginResult,
    LogoutResult,
    SuccessResult,
)
from ..tokens.store import BaseTokenStore
from .utils import (
    generate_code_challenge,
    generate_code_verifier,
    generate_state,
    states_match,
    validate_redirect,
)

if TYPE_CHECKING:
    from ..core import AuthSnap

logger = logging.getLogger(__name__)

HookResult = TypeVar("HookResult", bound=BaseModel)


def _hook_result(value: Any, model: Type[HookResult]) -> HookResult:
    """Coerce a hook's return value (model, dict or None) into ``model``."""
    if isinstance(value, model):
        return value
    if value is None:
        return model()

    try:
        return model.model_validate(value)
    except ValidationError:
        logger.warning(f"Ignoring malformed hook result of type {type(value).__name__}")
        return model()


# =============================================================================
# Login
# =============================================================================

async def begin_login(
    auth: "AuthSnap",
    provider_name: str,
    callback_url: str,
    request_context: Any = None,
) -> LoginResult:
    """
    Start a login: generate CSRF state (and a PKCE verifier when the
    provider needs one) and build the provider's authorization URL.

    Args:
        auth: AuthSnap instance
        provider_name: Configured provider name
        callback_url: Full callback URL for this provider
        request_context: Framework request, forwarded to on_before_auth

    Raises:
        ConfigError: If the provider is not configured
    """
    provider = auth.get_provider(provider_name)
    state = generate_state()

    code_verifier = None
    code_challenge = None
    if provider.uses_pkce:
        code_verifier = generate_code_verifier()
        code_challenge = generate_code_challenge(code_verifier)

    await call_safely(
        auth.config.callbacks.on_before_auth,
        provider_name,
        request_context,
        label="on_before_auth",
    )
    await auth.emit(events.LOGIN, {"provider": provider_name, "request": request_context})

    redirect_url = provider.build_authorization_url(callback_url, state, code_challenge)

    logger.info("Login started", extra={"provider": provider_name, "pkce": provider.uses_pkce})

    return LoginResult(
        redirect_url=redirect_url,
        csrf_state=state,
        secure=auth.config.session.secure,
        code_verifier=code_verifier,
    )


# =============================================================================
# Callback
# =============================================================================

async def complete_callback(
    auth: "AuthSnap",
    provider_name: str,
    code: Optional[str],
    returned_state: Optional[str],
    stored_state: Optional[str],
    callback_url: str,
    code_verifier: Optional[str] = None,
    profile_extra: Optional[Dict[str, Any]] = None,
) -> CallbackResult:
    """
    Complete a provider callback and mint a session.

    Args:
        auth: AuthSnap instance
        provider_name: Configured provider name
        code: Authorization code from the provider
        returned_state: ``state`` echoed by the provider
        stored_state: State read back from the state cookie
        callback_url: The redirect_uri used at login
        code_verifier: PKCE verifier from login, for providers that use PKCE
        profile_extra: Extra callback data for profile building (Apple ``user``)

    Returns:
        CallbackResult with the safe redirect and session Set-Cookie value

    Raises:
        CsrfMismatchError: State missing or different
        MissingAuthorizationCodeError: No code in the callback
        ProviderError: Exchange or profile fetch failed
    """
    config = auth.config
    provider = auth.get_provider(provider_name)

    if not states_match(returned_state, stored_state):
        logger.warning("State mismatch on callback", extra={"provider": provider_name})
        raise CsrfMismatchError()

    if not code:
        raise MissingAuthorizationCodeError()

    tokens = await provider.exchange_code(code, callback_url, code_verifier)

    extra: Dict[str, Any] = dict(profile_extra or {})
    if tokens.id_token:
        extra["id_token"] = tokens.id_token
    user = await provider.fetch_profile(tokens.access_token, extra)

    if auth.token_store is not None:
        await auth.token_store.set(BaseTokenStore.key(provider_name, user.id), tokens)

    result = _hook_result(
        await call_safely(config.callbacks.on_success, user, tokens, provider_name, label="on_success"),
        SuccessResult,
    )

    await auth.emit(events.SUCCESS, {"user": user, "tokens": tokens, "provider": provider_name})

    redirect_url = validate_redirect(result.redirect or "/", config.allowed_redirects)

    session_token = auth.session_manager.create_token(user, result)

    logger.info("Login completed", extra={"provider": provider_name, "user_id": user.id})

    return CallbackResult(
        redirect_url=redirect_url,
        session_cookie=auth.session_manager.build_cookie_header(session_token),
    )


async def complete_callback_error(auth: "AuthSnap", provider_name: str, error: Exception) -> ErrorRedirect:
    """
    Handle a failed callback: run on_error, emit ``error`` and pick a safe
    redirect (``{base_path}/error`` unless the hook supplies one).
    """
    config = auth.config

    logger.warning(
        f"Login failed: {type(error).__name__}: {error}",
        extra={"provider": provider_name},
    )

    result = _hook_result(
        await call_safely(config.callbacks.on_error, error, provider_name, label="on_error"),
        ErrorResult,
    )

    await auth.emit(events.ERROR, {"error": error, "provider": provider_name})

    redirect = result.redirect or f"{config.base_path}/error"
    return ErrorRedirect(redirect_url=validate_redirect(redirect, config.allowed_redirects))


# =============================================================================
# Logout
# =============================================================================

async def complete_logout(auth: "AuthSnap") -> LogoutResult:
    """Emit ``logout`` and return the cookie-clearing header."""
    await auth.emit(events.LOGOUT, {})
    return LogoutResult(clear_cookie=auth.session_manager.build_clear_cookie_header())
