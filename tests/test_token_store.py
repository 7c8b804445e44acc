"""Tests for the dual-tier token store."""

import pytest

from inboxbridge.infrastructure.stores import TokenStore


class FlakyBackend:
    """TokenBackend whose availability can be toggled."""

    def __init__(self):
        self.available = True
        self.rows = {}
        self.saves = 0

    def _check(self):
        if not self.available:
            raise ConnectionError("database unreachable")

    def load(self, provider, account_id):
        self._check()
        return self.rows.get((provider, account_id))

    def save(self, account_id, token):
        self._check()
        self.saves += 1
        self.rows[(token.provider, account_id)] = token

    def delete(self, provider, account_id):
        self._check()
        self.rows.pop((provider, account_id), None)


class TestTokenStore:
    """Write-through and fallback semantics."""

    @pytest.mark.asyncio
    async def test_store_then_retrieve_with_backend_unreachable(self, google_token):
        backend = FlakyBackend()
        backend.available = False
        store = TokenStore(backend)

        await store.store("user@example.com", google_token)

        assert await store.retrieve("user@example.com", "gmail") == google_token
        assert ("gmail", "user@example.com") in store.pending

    @pytest.mark.asyncio
    async def test_memory_only_store(self, outlook_token):
        store = TokenStore()
        await store.store("user@example.com", outlook_token)
        assert await store.retrieve("user@example.com", "outlook") == outlook_token
        assert await store.retrieve("user@example.com", "gmail") is None

    @pytest.mark.asyncio
    async def test_backend_is_authoritative_and_refreshes_memory(self, google_token):
        backend = FlakyBackend()
        store = TokenStore(backend)
        newer = google_token.model_copy(update={"access_token": "from-db"})
        backend.rows[("gmail", "user@example.com")] = newer

        assert await store.retrieve("user@example.com", "gmail") == newer

        backend.available = False
        assert (await store.retrieve("user@example.com", "gmail")).access_token == "from-db"

    @pytest.mark.asyncio
    async def test_tokens_are_keyed_by_provider_and_account(self, google_token, outlook_token):
        store = TokenStore(FlakyBackend())
        await store.store("same@example.com", google_token)
        await store.store("same@example.com", outlook_token)

        assert (await store.retrieve("same@example.com", "gmail")).provider == "gmail"
        assert (await store.retrieve("same@example.com", "outlook")).provider == "outlook"

    @pytest.mark.asyncio
    async def test_pending_records_flush_on_next_successful_write(self, google_token, outlook_token):
        backend = FlakyBackend()
        store = TokenStore(backend)

        backend.available = False
        await store.store("a@example.com", google_token)
        backend.available = True
        await store.store("b@example.com", outlook_token)

        assert ("gmail", "a@example.com") in backend.rows
        assert ("outlook", "b@example.com") in backend.rows
        assert not store.pending

    @pytest.mark.asyncio
    async def test_reconcile(self, google_token):
        backend = FlakyBackend()
        store = TokenStore(backend)

        backend.available = False
        await store.store("a@example.com", google_token)
        assert await store.reconcile() == 0
        assert store.pending

        backend.available = True
        assert await store.reconcile() == 1
        assert backend.rows[("gmail", "a@example.com")] == google_token
        assert not store.pending

    @pytest.mark.asyncio
    async def test_pending_memory_copy_wins_over_stale_backend(self, google_token):
        backend = FlakyBackend()
        store = TokenStore(backend)
        backend.rows[("gmail", "a@example.com")] = google_token.model_copy(update={"access_token": "stale"})

        backend.available = False
        await store.store("a@example.com", google_token)
        backend.available = True

        assert (await store.retrieve("a@example.com", "gmail")).access_token == google_token.access_token

    @pytest.mark.asyncio
    async def test_remove(self, google_token):
        backend = FlakyBackend()
        store = TokenStore(backend)
        await store.store("a@example.com", google_token)
        await store.remove("a@example.com", "gmail")
        assert await store.retrieve("a@example.com", "gmail") is None
