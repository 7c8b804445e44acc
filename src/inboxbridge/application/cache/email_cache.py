"""In-memory content cache with in-flight fetch deduplication."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Hashable

from loguru import logger

from inboxbridge.domain.models import EmailContent

DEFAULT_TTL_SECONDS = 5 * 60


@dataclass(frozen=True)
class CacheEntry:
    content: EmailContent
    timestamp: float


class EmailContentCache:
    """Time-bounded cache of message content plus a registry of in-flight fetches.

    Keys are opaque; callers use ``(service, message_id)`` because ids are
    only unique within a provider. Expired entries are evicted when read.
    All bookkeeping happens between awaits, so a single event loop needs
    no locks.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, CacheEntry] = {}
        self._in_flight: dict[Hashable, asyncio.Future[EmailContent]] = {}
        # invalidate() bumps the epoch, invalidate(key) only that key's generation
        self._epoch = 0
        self._generations: dict[Hashable, int] = {}

    def _version(self, key: Hashable) -> tuple[int, int]:
        return self._epoch, self._generations.get(key, 0)

    def get(self, key: Hashable) -> EmailContent | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.timestamp > self.ttl_seconds:
            del self._entries[key]
            return None
        return entry.content

    def set(self, key: Hashable, content: EmailContent) -> None:
        self._entries[key] = CacheEntry(content=content, timestamp=self._clock())

    def get_in_flight(self, key: Hashable) -> asyncio.Future[EmailContent] | None:
        return self._in_flight.get(key)

    def register_in_flight(
        self, key: Hashable, pending: Awaitable[EmailContent]
    ) -> asyncio.Future[EmailContent]:
        """Track a pending fetch for ``key``; the entry removes itself when done.

        Removal only happens if the registry still holds this same future, so
        a late-finishing older fetch never evicts a newer one.
        """
        future = asyncio.ensure_future(pending)
        self._in_flight[key] = future

        def _release(done: asyncio.Future[EmailContent]) -> None:
            if self._in_flight.get(key) is done:
                del self._in_flight[key]
            if not done.cancelled() and done.exception() is not None:
                logger.debug(f"In-flight fetch for {key} failed: {done.exception()}")

        future.add_done_callback(_release)
        return future

    def invalidate(self, key: Hashable | None = None) -> None:
        """Drop one key (cache entry and in-flight registration) or everything."""
        if key is None:
            self._epoch += 1
            self._generations.clear()
            self._entries.clear()
            self._in_flight.clear()
            return
        self._generations[key] = self._generations.get(key, 0) + 1
        self._entries.pop(key, None)
        self._in_flight.pop(key, None)

    async def get_or_fetch(
        self, key: Hashable, fetch: Callable[[], Awaitable[EmailContent]]
    ) -> EmailContent:
        """Return cached content, join a running fetch, or start exactly one."""
        cached = self.get(key)
        if cached is not None:
            return cached

        pending = self.get_in_flight(key)
        if pending is None:
            # Registered before the first await so concurrent callers join it
            pending = self.register_in_flight(key, self._fetch_and_store(key, fetch, self._version(key)))

        return await asyncio.shield(pending)

    async def _fetch_and_store(
        self, key: Hashable, fetch: Callable[[], Awaitable[EmailContent]], version: tuple[int, int]
    ) -> EmailContent:
        # Content fetched across an invalidate of this key is returned but not cached
        content = await fetch()
        if version == self._version(key):
            self.set(key, content)
        return content

    def __len__(self) -> int:
        return len(self._entries)
