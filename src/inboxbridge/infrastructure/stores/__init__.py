"""Store implementations."""

from inboxbridge.infrastructure.stores.token_store import TokenStore, get_token_store

__all__ = [
    "TokenStore",
    "get_token_store",
]
