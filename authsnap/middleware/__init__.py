"""Request gating: session/RBAC protection and login rate limiting."""

from .protect import (
    AccessDecision,
    AccessDenied,
    Outcome,
    ProtectOptions,
    access_denied_handler,
    create_protect_dependency,
    decision_to_response,
    evaluate_access,
)
from .rate_limit import RateLimiter, create_rate_limiter

__all__ = [
    "AccessDecision",
    "AccessDenied",
    "Outcome",
    "ProtectOptions",
    "access_denied_handler",
    "create_protect_dependency",
    "decision_to_response",
    "evaluate_access",
    "RateLimiter",
    "create_rate_limiter",
]
