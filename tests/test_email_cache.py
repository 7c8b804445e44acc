"""Tests for the content cache and in-flight deduplication."""

import asyncio

import pytest

from inboxbridge.application.cache import EmailContentCache
from inboxbridge.domain.models import EmailContent, EmailService


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _content(message_id="m1", subject="s"):
    return EmailContent(id=message_id, subject=subject, service=EmailService.GMAIL)


class TestEmailContentCache:
    def setup_method(self):
        self.clock = FakeClock()
        self.cache = EmailContentCache(ttl_seconds=300, clock=self.clock)
        self.key = (EmailService.GMAIL, "m1")

    def test_get_returns_fresh_entry(self):
        self.cache.set(self.key, _content())
        assert self.cache.get(self.key).id == "m1"

    def test_expired_entry_is_absent_and_evicted(self):
        self.cache.set(self.key, _content())
        self.clock.now += 301
        assert self.cache.get(self.key) is None
        assert len(self.cache) == 0

    def test_keys_are_namespaced_by_service(self):
        self.cache.set((EmailService.GMAIL, "1"), _content("1", "gmail"))
        assert self.cache.get((EmailService.OUTLOOK, "1")) is None

    @pytest.mark.asyncio
    async def test_concurrent_get_or_fetch_dispatches_once(self):
        calls = 0
        release = asyncio.Event()

        async def fetch():
            nonlocal calls
            calls += 1
            await release.wait()
            return _content()

        first = asyncio.create_task(self.cache.get_or_fetch(self.key, fetch))
        second = asyncio.create_task(self.cache.get_or_fetch(self.key, fetch))
        await asyncio.sleep(0)
        release.set()

        results = await asyncio.gather(first, second)
        assert calls == 1
        assert results[0] is results[1]
        assert self.cache.get_in_flight(self.key) is None

    @pytest.mark.asyncio
    async def test_expired_entry_triggers_fresh_fetch(self):
        calls = 0

        async def fetch():
            nonlocal calls
            calls += 1
            return _content(subject=f"v{calls}")

        assert (await self.cache.get_or_fetch(self.key, fetch)).subject == "v1"
        assert (await self.cache.get_or_fetch(self.key, fetch)).subject == "v1"
        self.clock.now += 301
        assert (await self.cache.get_or_fetch(self.key, fetch)).subject == "v2"
        assert calls == 2

    @pytest.mark.asyncio
    async def test_failed_fetch_releases_registration(self):
        async def failing():
            raise RuntimeError("upstream down")

        with pytest.raises(RuntimeError):
            await self.cache.get_or_fetch(self.key, failing)
        assert self.cache.get_in_flight(self.key) is None
        assert self.cache.get(self.key) is None

    @pytest.mark.asyncio
    async def test_late_older_fetch_does_not_evict_newer_registration(self):
        old_release = asyncio.Event()

        async def slow():
            await old_release.wait()
            return _content(subject="old")

        async def never():
            await asyncio.Event().wait()

        old = self.cache.register_in_flight(self.key, slow())
        self.cache.invalidate(self.key)
        newer = self.cache.register_in_flight(self.key, never())

        old_release.set()
        await old
        await asyncio.sleep(0)

        assert self.cache.get_in_flight(self.key) is newer
        newer.cancel()
        with pytest.raises(asyncio.CancelledError):
            await newer

    @pytest.mark.asyncio
    async def test_fetch_spanning_invalidate_is_not_cached(self):
        release = asyncio.Event()

        async def fetch():
            await release.wait()
            return _content(subject="stale")

        task = asyncio.create_task(self.cache.get_or_fetch(self.key, fetch))
        await asyncio.sleep(0)
        self.cache.invalidate()
        release.set()

        assert (await task).subject == "stale"
        assert self.cache.get(self.key) is None

    @pytest.mark.asyncio
    async def test_invalidating_another_key_mid_fetch_still_caches(self):
        release = asyncio.Event()
        other = (EmailService.OUTLOOK, "A")

        async def fetch():
            await release.wait()
            return _content(subject="fresh")

        task = asyncio.create_task(self.cache.get_or_fetch(self.key, fetch))
        await asyncio.sleep(0)
        self.cache.invalidate(other)
        release.set()

        await task
        assert self.cache.get(self.key).subject == "fresh"

    @pytest.mark.asyncio
    async def test_invalidating_same_key_mid_fetch_is_not_cached(self):
        release = asyncio.Event()

        async def fetch():
            await release.wait()
            return _content(subject="stale")

        task = asyncio.create_task(self.cache.get_or_fetch(self.key, fetch))
        await asyncio.sleep(0)
        self.cache.invalidate(self.key)
        release.set()

        assert (await task).subject == "stale"
        assert self.cache.get(self.key) is None

    def test_invalidate_all(self):
        self.cache.set(self.key, _content())
        self.cache.set((EmailService.OUTLOOK, "x"), _content("x"))
        self.cache.invalidate()
        assert len(self.cache) == 0
