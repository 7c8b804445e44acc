"""Symmetric encryption for token blobs stored in cookies and SQLite.

Output format is ``hex(iv):hex(ciphertext)`` so a blob carries everything
needed to decrypt it except the key.
"""

from __future__ import annotations

import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from loguru import logger

from inboxbridge.domain.errors import DecryptError
from inboxbridge.infrastructure.settings import Settings, get_settings

KEY_LENGTH = 32  # AES-256
IV_LENGTH = 16  # AES block size
BLOCK_BITS = 128


def derive_key(secret: str) -> bytes:
    """Truncate or zero-pad the configured secret to the AES-256 key length."""
    raw = secret.encode("utf-8")[:KEY_LENGTH]
    return raw.ljust(KEY_LENGTH, b"\0")


class TokenCipher:
    """AES-256-CBC with a random IV per call."""

    def __init__(self, secret: str) -> None:
        if len(secret) < KEY_LENGTH:
            logger.warning(f"Encryption key is shorter than {KEY_LENGTH} characters; padding it")
        self._key = derive_key(secret)

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_LENGTH)
        padder = padding.PKCS7(BLOCK_BITS).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return f"{iv.hex()}:{ciphertext.hex()}"

    def decrypt(self, token: str) -> str:
        iv_hex, sep, data_hex = (token or "").partition(":")
        if not sep or not iv_hex or not data_hex:
            raise DecryptError("Malformed ciphertext: missing iv/ciphertext delimiter")

        try:
            iv = bytes.fromhex(iv_hex)
            ciphertext = bytes.fromhex(data_hex)
        except ValueError as e:
            raise DecryptError(f"Malformed ciphertext: {e}") from e

        if len(iv) != IV_LENGTH:
            raise DecryptError(f"Malformed ciphertext: IV must be {IV_LENGTH} bytes")
        if not ciphertext or len(ciphertext) % IV_LENGTH:
            raise DecryptError("Malformed ciphertext: length is not a multiple of the block size")

        try:
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(BLOCK_BITS).unpadder()
            plain = unpadder.update(padded) + unpadder.finalize()
            return plain.decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            # Wrong key or tampered blob
            raise DecryptError("Ciphertext could not be decrypted") from e


# Singleton instance
_cipher: TokenCipher | None = None


def get_cipher(settings: Settings | None = None) -> TokenCipher:
    """Get or create the cipher singleton."""
    global _cipher
    if _cipher is None:
        settings = settings or get_settings()
        _cipher = TokenCipher(settings.encryption_key.get_secret_value())
    return _cipher
