"""Fetch coordination for message content."""

from inboxbridge.application.cache.email_cache import (
    DEFAULT_TTL_SECONDS,
    CacheEntry,
    EmailContentCache,
)

__all__ = [
    "DEFAULT_TTL_SECONDS",
    "CacheEntry",
    "EmailContentCache",
]
