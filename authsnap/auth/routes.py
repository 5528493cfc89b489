"""
FastAPI routes for the OAuth login flow.

Routes (mounted under the configured base path, default /auth):

    GET       {base}/{provider}           Redirect to the provider's consent screen
    GET|POST  {base}/{provider}/callback  Validate state, exchange code, set session
    GET       {base}/logout               Clear the session cookie
    GET       {base}/error                Default landing page for failed logins

The handlers only translate between HTTP and the operations in
``authsnap.auth.flow``.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from ..errors import AuthSnapError, ConfigError
from . import flow

if TYPE_CHECKING:
    from ..core import AuthSnap

logger = logging.getLogger(__name__)


STATE_COOKIE = "authsnap_state"
PKCE_COOKIE = "authsnap_pkce"
FLOW_COOKIE_MAX_AGE = 600


# =============================================================================
# Request Helpers
# =============================================================================

def get_client_ip(request: Request) -> str:
    """
    Client IP for rate limiting.

    Uses the socket peer address only. Behind a reverse proxy, run uvicorn
    with proxy headers (or add ProxyHeadersMiddleware) and a trusted
    ``forwarded_allow_ips`` list so the peer address is rewritten from
    X-Forwarded-For for trusted proxies only.
    """
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_callback_url(auth: "AuthSnap", request: Request, provider_name: str) -> str:
    """Configured callback URL, else ``{base_url}{base_path}/{provider}/callback``."""
    provider = auth.get_provider(provider_name)
    if provider.config.callback_url:
        return provider.config.callback_url

    base_url = auth.config.base_url or str(request.base_url)
    return f"{base_url.rstrip('/')}{auth.config.base_path}/{provider_name}/callback"


async def _callback_params(request: Request) -> Dict[str, Any]:
    params: Dict[str, Any] = dict(request.query_params)
    if request.method == "POST":
        form = await request.form()
        params.update({key: value for key, value in form.items() if isinstance(value, str)})
    return params


def _set_flow_cookie(response: Response, name: str, value: str, secure: bool) -> None:
    response.set_cookie(
        name,
        value,
        max_age=FLOW_COOKIE_MAX_AGE,
        path="/",
        httponly=True,
        samesite="lax",
        secure=secure,
    )


# =============================================================================
# Router Factory
# =============================================================================

def create_auth_router(auth: "AuthSnap") -> APIRouter:
    """
    Build the auth router for one AuthSnap instance.

    Args:
        auth: Configured AuthSnap instance

    Returns:
        APIRouter with the login, callback, logout and error routes
    """
    router = APIRouter(prefix=auth.config.base_path, tags=["authentication"])
    limiter = auth.rate_limiter

    @router.get("/logout")
    async def logout() -> Response:
        result = await flow.complete_logout(auth)
        response = RedirectResponse(url="/", status_code=302)
        response.headers.append("set-cookie", result.clear_cookie)
        return response

    @router.get("/error")
    async def auth_error() -> JSONResponse:
        return JSONResponse({"error": "Authentication failed"}, status_code=401)

    @router.get("/{provider_name}")
    async def login(provider_name: str, request: Request) -> Response:
        """
        Start the OAuth flow for a provider.

        Sets the short-lived state cookie (and PKCE cookie when needed) and
        redirects to the provider's authorization URL.
        """
        if provider_name not in auth.providers:
            return JSONResponse({"error": f'Unknown provider "{provider_name}"'}, status_code=404)

        if limiter is not None and not limiter.check(get_client_ip(request)):
            return JSONResponse({"error": "Too many requests. Try again later."}, status_code=429)

        callback_url = get_callback_url(auth, request, provider_name)
        result = await flow.begin_login(auth, provider_name, callback_url, request)

        response = RedirectResponse(url=result.redirect_url, status_code=302)
        _set_flow_cookie(response, STATE_COOKIE, result.csrf_state, result.secure)
        if result.code_verifier:
            _set_flow_cookie(response, PKCE_COOKIE, result.code_verifier, result.secure)
        return response

    @router.api_route("/{provider_name}/callback", methods=["GET", "POST"])
    async def callback(provider_name: str, request: Request) -> Response:
        """
        Handle the provider redirect back to the application.

        Any failure (provider error parameter, CSRF mismatch, exchange or
        profile errors) is routed through the error flow.
        """
        if provider_name not in auth.providers:
            return JSONResponse({"error": f'Unknown provider "{provider_name}"'}, status_code=404)

        params = await _callback_params(request)
        stored_state = request.cookies.get(STATE_COOKIE)
        code_verifier = request.cookies.get(PKCE_COOKIE)

        redirect_url: str
        session_cookie: Optional[str] = None
        try:
            if params.get("error"):
                description = params.get("error_description") or params["error"]
                raise AuthSnapError(f"Provider returned an error: {description}", "PROVIDER_DENIED", 400)

            profile_extra = {"user": params["user"]} if params.get("user") else None

            result = await flow.complete_callback(
                auth,
                provider_name,
                params.get("code"),
                params.get("state"),
                stored_state,
                get_callback_url(auth, request, provider_name),
                code_verifier=code_verifier,
                profile_extra=profile_extra,
            )
            redirect_url = result.redirect_url
            session_cookie = result.session_cookie
        except ConfigError:
            raise
        except Exception as e:
            error_result = await flow.complete_callback_error(auth, provider_name, e)
            redirect_url = error_result.redirect_url

        response = RedirectResponse(url=redirect_url, status_code=302)
        response.delete_cookie(STATE_COOKIE, path="/")
        if code_verifier:
            response.delete_cookie(PKCE_COOKIE, path="/")
        if session_cookie:
            response.headers.append("set-cookie", session_cookie)
        return response

    return router


__all__ = [
    "create_auth_router",
    "get_callback_url",
    "get_client_ip",
    "STATE_COOKIE",
    "PKCE_COOKIE",
]
