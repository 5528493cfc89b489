"""
Events Module

Notification surface for the authentication lifecycle.

Event kinds and payloads:
    login          {"provider": str, "request": Any}
    success        {"user": AuthUser, "tokens": TokenSet, "provider": str}
    error          {"error": Exception, "provider": str}
    logout         {}
    token:refresh  {"tokens": TokenSet, "provider": str}

Listeners and application hooks may be plain functions or coroutine
functions. They run inline, in registration order, and any exception they
raise is logged and discarded so it can never break the auth flow.
"""

import inspect
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


LOGIN = "login"
SUCCESS = "success"
ERROR = "error"
LOGOUT = "logout"
TOKEN_REFRESH = "token:refresh"

EVENT_KINDS = (LOGIN, SUCCESS, ERROR, LOGOUT, TOKEN_REFRESH)


async def call_safely(func: Optional[Callable[..., Any]], *args: Any, label: str = "hook") -> Any:
    """
    Invoke a hook or listener, awaiting it if it returns an awaitable.

    Args:
        func: Callable to invoke (None is a no-op)
        *args: Positional arguments for the callable
        label: Name used in log messages

    Returns:
        The callable's return value, or None if it raised
    """
    if func is None:
        return None

    try:
        result = func(*args)
        if inspect.isawaitable(result):
            result = await result
        return result
    except Exception as e:
        logger.warning(
            f"{label} raised {type(e).__name__}; ignoring",
            exc_info=True,
            extra={"hook": label},
        )
        return None


class EventEmitter:
    """
    Multi-subscriber event emitter owned by one AuthSnap instance.

    Attributes:
        _listeners: Dict mapping event name to (listener, once) pairs
    """

    def __init__(self):
        self._listeners: Dict[str, List[Tuple[Callable[..., Any], bool]]] = defaultdict(list)

    def on(self, event: str, listener: Callable[..., Any]) -> "EventEmitter":
        """Subscribe to an event."""
        self._listeners[event].append((listener, False))
        return self

    def once(self, event: str, listener: Callable[..., Any]) -> "EventEmitter":
        """Subscribe to the next occurrence of an event only."""
        self._listeners[event].append((listener, True))
        return self

    def off(self, event: str, listener: Callable[..., Any]) -> "EventEmitter":
        """Remove the first registration of a listener for an event."""
        entries = self._listeners.get(event, [])
        for index, (registered, _) in enumerate(entries):
            if registered is listener or registered == listener:
                del entries[index]
                break

        if event in self._listeners and not self._listeners[event]:
            del self._listeners[event]
        return self

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    async def emit(self, event: str, data: Optional[Dict[str, Any]] = None) -> bool:
        """
        Deliver an event to its listeners in registration order.

        Returns:
            True if the event had listeners
        """
        entries = list(self._listeners.get(event, []))
        if not entries:
            return False

        remaining = [entry for entry in self._listeners[event] if not entry[1]]
        if remaining:
            self._listeners[event] = remaining
        else:
            del self._listeners[event]

        payload = data if data is not None else {}
        for listener, _ in entries:
            await call_safely(listener, payload, label=f"listener for '{event}'")

        logger.debug(f"Emitted {event}", extra={"event": event, "listeners": len(entries)})
        return True


__all__ = [
    "EventEmitter",
    "call_safely",
    "EVENT_KINDS",
    "LOGIN",
    "SUCCESS",
    "ERROR",
    "LOGOUT",
    "TOKEN_REFRESH",
]
