"""OAuth token storage and refresh."""

from .refresh import TokenRefresher
from .store import BaseTokenStore, TokenStore

__all__ = ["BaseTokenStore", "TokenStore", "TokenRefresher"]
