"""Infrastructure layer - configuration, storage, crypto and provider adapters."""

from inboxbridge.infrastructure.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
