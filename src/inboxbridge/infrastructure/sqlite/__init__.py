"""SQLite infrastructure for durable token and subscription storage."""

from inboxbridge.infrastructure.sqlite.client import (
    SQLiteClient,
    get_sqlite_client,
)

__all__ = [
    "SQLiteClient",
    "get_sqlite_client",
]
