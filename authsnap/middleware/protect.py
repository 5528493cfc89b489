"""
Authorization Gate
==================

Decides whether a request may reach a protected route:

1. No session token                          -> UNAUTHENTICATED
2. Token fails verification (any reason)     -> UNAUTHENTICATED
3. required_roles set and none held          -> FORBIDDEN
4. required_permissions set and none held    -> FORBIDDEN
5. Otherwise                                 -> AUTHORIZED (with the user)

Role and permission checks use OR semantics: holding any one of the
required values is enough. A request without any credential is always
UNAUTHENTICATED, never FORBIDDEN.

``evaluate_access`` is the pure decision. ``decision_to_response`` maps it
to a Starlette response and ``create_protect_dependency`` wraps both as a
FastAPI dependency.

Usage:
    require_admin = auth.protect(required_roles=["admin"])

    @app.get("/admin")
    async def admin(user: AuthUser = Depends(require_admin)):
        ...
"""

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional

from fastapi import Request
from pydantic import BaseModel, Field
from starlette.responses import JSONResponse, RedirectResponse, Response

from ..auth.session import SessionManager
from ..errors import SessionError
from ..models import AuthUser

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    AUTHORIZED = "authorized"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


class ProtectOptions(BaseModel):
    """Per-route protection requirements."""

    redirect_on_unauth: Optional[str] = Field(None, description="Redirect target for unauthenticated requests")
    required_roles: List[str] = Field(default_factory=list, description="At least one of these roles is required")
    required_permissions: List[str] = Field(
        default_factory=list,
        description="At least one of these permissions is required",
    )
    redirect_on_forbidden: Optional[str] = Field(None, description="Redirect target for forbidden requests")


class AccessDecision(BaseModel):
    outcome: Outcome
    user: Optional[AuthUser] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.AUTHORIZED


def _holds_any(held: Optional[List[str]], required: List[str]) -> bool:
    held_set = set(held or [])
    return any(value in held_set for value in required)


def evaluate_access(
    session_manager: SessionManager,
    request: Any,
    options: Optional[ProtectOptions] = None,
) -> AccessDecision:
    """
    Run the authorization decision for one request.

    Args:
        session_manager: Verifies the session token
        request: Starlette request, or any object/dict with cookies/headers
        options: Role/permission requirements (none by default)

    Returns:
        AccessDecision; ``user`` is set only when AUTHORIZED
    """
    options = options or ProtectOptions()

    token = session_manager.get_token_from_request(request)
    if not token:
        return AccessDecision(outcome=Outcome.UNAUTHENTICATED)

    try:
        user = session_manager.verify_token(token)
    except SessionError:
        return AccessDecision(outcome=Outcome.UNAUTHENTICATED)

    if options.required_roles and not _holds_any(user.roles, options.required_roles):
        logger.info("Access forbidden: missing role", extra={"user_id": user.id, "provider": user.provider})
        return AccessDecision(outcome=Outcome.FORBIDDEN)

    if options.required_permissions and not _holds_any(user.permissions, options.required_permissions):
        logger.info("Access forbidden: missing permission", extra={"user_id": user.id, "provider": user.provider})
        return AccessDecision(outcome=Outcome.FORBIDDEN)

    return AccessDecision(outcome=Outcome.AUTHORIZED, user=user)


def decision_to_response(decision: AccessDecision, options: Optional[ProtectOptions] = None) -> Optional[Response]:
    """
    Map a denied decision to an HTTP response.

    Returns:
        None for AUTHORIZED; otherwise a redirect (when configured) or a
        401/403 JSON error
    """
    options = options or ProtectOptions()

    if decision.outcome is Outcome.UNAUTHENTICATED:
        if options.redirect_on_unauth:
            return RedirectResponse(url=options.redirect_on_unauth, status_code=302)
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    if decision.outcome is Outcome.FORBIDDEN:
        if options.redirect_on_forbidden:
            return RedirectResponse(url=options.redirect_on_forbidden, status_code=302)
        return JSONResponse({"error": "Forbidden"}, status_code=403)

    return None


class AccessDenied(Exception):
    """Raised by the protect dependency; carries the response to send."""

    def __init__(self, response: Response, outcome: Outcome):
        super().__init__(outcome.value)
        self.response = response
        self.outcome = outcome


async def access_denied_handler(request: Request, exc: AccessDenied) -> Response:
    return exc.response


def create_protect_dependency(
    session_manager: SessionManager,
    options: Optional[ProtectOptions] = None,
) -> Callable[[Request], Awaitable[AuthUser]]:
    """
    Build a FastAPI dependency enforcing ``options``.

    The dependency returns the verified AuthUser (also stored on
    ``request.state.user``) or raises AccessDenied. Register
    ``access_denied_handler`` for AccessDenied on the application.
    """
    options = options or ProtectOptions()

    async def protect(request: Request) -> AuthUser:
        decision = evaluate_access(session_manager, request, options)
        if not decision.allowed:
            raise AccessDenied(decision_to_response(decision, options), decision.outcome)

        request.state.user = decision.user
        return decision.user

    return protect
