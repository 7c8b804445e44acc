"""Token encryption."""

from inboxbridge.infrastructure.crypto.cipher import TokenCipher, derive_key, get_cipher

__all__ = [
    "TokenCipher",
    "derive_key",
    "get_cipher",
]
