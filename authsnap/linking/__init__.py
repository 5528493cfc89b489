"""Multi-provider account linking."""

from .account_linker import AccountLinker, BaseLinkStore, InMemoryLinkStore

__all__ = ["AccountLinker", "BaseLinkStore", "InMemoryLinkStore"]
