"""Tests for webhook-driven mailbox refresh."""

import pytest

from conftest import FakeProvider, MemoryRegistry, pubsub_data
from inboxbridge.application.cache import EmailContentCache
from inboxbridge.application.use_cases.mailbox_refresh import (
    MailboxRefreshUseCase,
    OutlookChange,
    decode_gmail_push,
    message_id_from_resource,
)
from inboxbridge.domain.entities import Subscription
from inboxbridge.domain.errors import BadRequestError, ProviderApiError
from inboxbridge.domain.models import EmailService
from inboxbridge.infrastructure.stores import TokenStore


class TestResourceParsing:
    @pytest.mark.parametrize(
        "resource, expected",
        [
            ("Users/abc/Messages/AAMkAD=", "AAMkAD="),
            ("me/mailFolders('inbox')/messages/xyz", "xyz"),
            ("Users/abc/Messages/xyz/", "xyz"),
        ],
    )
    def test_final_segment(self, resource, expected):
        assert message_id_from_resource(resource) == expected

    @pytest.mark.parametrize("resource", [None, "", "xyz", "Users/abc/Events/1", 42])
    def test_malformed(self, resource):
        assert message_id_from_resource(resource) is None


class TestDecodeGmailPush:
    def test_valid(self):
        push = decode_gmail_push(pubsub_data({"emailAddress": "u@example.com", "historyId": 9876}))
        assert push.email_address == "u@example.com"
        assert push.history_id == "9876"

    @pytest.mark.parametrize(
        "data",
        [None, "", "!!!not base64!!!", pubsub_data({"emailAddress": "u@example.com"}), pubsub_data(["list"])],
    )
    def test_invalid(self, data):
        with pytest.raises(BadRequestError):
            decode_gmail_push(data)


class TestMailboxRefresh:
    def setup_method(self):
        self.gmail = FakeProvider(EmailService.GMAIL)
        self.outlook = FakeProvider(EmailService.OUTLOOK)
        self.cache = EmailContentCache()
        self.store = TokenStore()
        self.registry = MemoryRegistry(
            Subscription(id="sub-1", provider="outlook", expiration="", account_id="o@example.com")
        )
        self.use_case = MailboxRefreshUseCase(
            providers={EmailService.GMAIL: self.gmail, EmailService.OUTLOOK: self.outlook},
            cache=self.cache,
            token_store=self.store,
            registry=self.registry,
        )

    @pytest.mark.asyncio
    async def test_outlook_malformed_resource_does_not_stop_batch(self, outlook_token):
        await self.store.store("o@example.com", outlook_token)
        changes = [
            OutlookChange(subscription_id="sub-1", resource="Users/u/Messages/m1"),
            OutlookChange(subscription_id="sub-1", resource=None),
            OutlookChange(subscription_id="sub-1", resource="Users/u/Messages/m2"),
        ]

        processed = await self.use_case.refresh_outlook(changes)

        assert processed == 2
        assert self.outlook.calls["get_email"] == 2
        assert self.cache.get((EmailService.OUTLOOK, "m1")) is not None
        assert self.cache.get((EmailService.OUTLOOK, "m2")) is not None

    @pytest.mark.asyncio
    async def test_outlook_failure_is_isolated(self, outlook_token):
        await self.store.store("o@example.com", outlook_token)
        self.outlook.fail_ids.add("bad")
        changes = [
            OutlookChange(subscription_id="sub-1", resource="Users/u/Messages/bad"),
            OutlookChange(subscription_id="sub-1", resource="Users/u/Messages/good"),
        ]
        assert await self.use_case.refresh_outlook(changes) == 1

    @pytest.mark.asyncio
    async def test_outlook_unknown_subscription_skipped(self, outlook_token):
        await self.store.store("o@example.com", outlook_token)
        changes = [OutlookChange(subscription_id="other", resource="Users/u/Messages/m1")]
        assert await self.use_case.refresh_outlook(changes) == 0
        assert "get_email" not in self.outlook.calls

    @pytest.mark.asyncio
    async def test_gmail_unknown_account_is_not_an_error(self):
        assert await self.use_case.refresh_gmail("nobody@example.com", "1") == 0
        assert self.gmail.calls == {}

    @pytest.mark.asyncio
    async def test_gmail_without_history_warms_listing(self, google_token):
        await self.store.store("g@example.com", google_token)
        assert await self.use_case.refresh_gmail("g@example.com", "100") == 0
        assert self.gmail.calls["list_emails"] == 1

    @pytest.mark.asyncio
    async def test_gmail_history_prefetches_new_messages(self, google_token):
        await self.store.store("g@example.com", google_token)

        async def added(token, start):
            self.gmail.calls["start"] = start
            return ["n1", "n2"]

        self.gmail.added_message_ids = added
        await self.use_case.refresh_gmail("g@example.com", "100")
        assert await self.use_case.refresh_gmail("g@example.com", "200") == 2
        assert self.gmail.calls["start"] == "100"
        assert self.cache.get((EmailService.GMAIL, "n2")) is not None

    @pytest.mark.asyncio
    async def test_gmail_checkpoint_kept_when_history_fails(self, google_token):
        await self.store.store("g@example.com", google_token)
        starts = []

        async def added(token, start):
            starts.append(start)
            if len(starts) == 2:
                raise ProviderApiError("gmail", 404, "startHistoryId too old")
            return []

        self.gmail.added_message_ids = added
        await self.use_case.refresh_gmail("g@example.com", "100")
        assert await self.use_case.refresh_gmail("g@example.com", "200") == 0
        await self.use_case.refresh_gmail("g@example.com", "300")

        assert starts == ["100", "100", "100"]

    @pytest.mark.asyncio
    async def test_refreshed_token_is_persisted(self, google_token):
        newer = google_token.model_copy(update={"access_token": "refreshed"})
        self.gmail.refreshed_token = newer
        await self.store.store("g@example.com", google_token)

        await self.use_case.refresh_gmail("g@example.com", "1")

        assert (await self.store.retrieve("g@example.com", "gmail")).access_token == "refreshed"
