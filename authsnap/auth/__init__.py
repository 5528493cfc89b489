"""
Authentication module.

Session tokens, OAuth flow helpers, and the login/callback orchestration.
The FastAPI router lives in ``authsnap.auth.routes``.
"""

from .flow import begin_login, complete_callback, complete_callback_error, complete_logout
from .session import SessionManager
from .utils import generate_state, validate_redirect

__all__ = [
    "SessionManager",
    "begin_login",
    "complete_callback",
    "complete_callback_error",
    "complete_logout",
    "generate_state",
    "validate_redirect",
]
