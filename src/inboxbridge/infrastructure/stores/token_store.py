"""Dual-tier token store: in-memory map over a durable backend."""

from __future__ import annotations

import asyncio

from loguru import logger

from inboxbridge.application.ports.token_backend import TokenBackend
from inboxbridge.domain.entities import TokenData

TokenKey = tuple[str, str]  # (provider, account_id)


class TokenStore:
    """Write-through token store with memory fallback.

    Writes always land in memory; the durable write is best-effort and a
    failure is logged, not raised. Reads prefer the durable backend and
    fall back to memory when it is unreachable. Records that could not be
    written durably stay pending until the next successful write or an
    explicit ``reconcile()``.
    """

    def __init__(self, backend: TokenBackend | None = None):
        self.backend = backend
        self._memory: dict[TokenKey, TokenData] = {}
        self._pending: set[TokenKey] = set()

    @property
    def pending(self) -> frozenset[TokenKey]:
        return frozenset(self._pending)

    async def store(self, account_id: str, token: TokenData) -> None:
        key = (token.provider, account_id)
        self._memory[key] = token

        if self.backend is None:
            return

        try:
            await self._flush_pending(exclude=key)
            await asyncio.to_thread(self.backend.save, account_id, token)
            self._pending.discard(key)
            logger.info(f"Stored {token.provider} token for {account_id}")
        except Exception as e:
            self._pending.add(key)
            logger.warning(
                f"Durable token store unavailable, keeping {token.provider} token for {account_id} in memory: {e}"
            )

    async def retrieve(self, account_id: str, provider: str) -> TokenData | None:
        key = (provider, account_id)
        if self.backend is None or key in self._pending:
            # The memory copy is newer than anything the backend holds
            return self._memory.get(key)

        try:
            token = await asyncio.to_thread(self.backend.load, provider, account_id)
        except Exception as e:
            logger.warning(f"Durable token store unavailable, using memory for {account_id}: {e}")
            return self._memory.get(key)

        if token is not None:
            self._memory[key] = token
            return token
        return self._memory.get(key)

    async def remove(self, account_id: str, provider: str) -> None:
        key = (provider, account_id)
        self._memory.pop(key, None)
        self._pending.discard(key)
        if self.backend is None:
            return
        try:
            await asyncio.to_thread(self.backend.delete, provider, account_id)
        except Exception as e:
            logger.warning(f"Could not delete durable token for {account_id}: {e}")

    async def reconcile(self) -> int:
        """Push memory-only records to the durable backend. Returns how many were written."""
        if self.backend is None or not self._pending:
            return 0
        try:
            return await self._flush_pending()
        except Exception as e:
            logger.warning(f"Token reconciliation deferred, {len(self._pending)} record(s) pending: {e}")
            return 0

    async def _flush_pending(self, exclude: TokenKey | None = None) -> int:
        flushed = 0
        for key in list(self._pending):
            if key == exclude:
                continue
            token = self._memory.get(key)
            if token is not None:
                await asyncio.to_thread(self.backend.save, key[1], token)
                flushed += 1
            self._pending.discard(key)
        if flushed:
            logger.info(f"Reconciled {flushed} pending token(s) to durable store")
        return flushed


# Singleton instance
_store: TokenStore | None = None


def get_token_store() -> TokenStore:
    """Get or create the process-wide token store."""
    global _store
    if _store is None:
        from inboxbridge.infrastructure.sqlite import get_sqlite_client

        backend: TokenBackend | None
        try:
            backend = get_sqlite_client()
        except Exception as e:
            logger.warning(f"SQLite unavailable, token store is memory-only: {e}")
            backend = None
        _store = TokenStore(backend)
    return _store
