"""Shared fixtures and builders for the InboxBridge tests."""

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest

from inboxbridge.application.ports import MailSession
from inboxbridge.domain.entities import GoogleToken, OutlookToken
from inboxbridge.domain.errors import ProviderApiError
from inboxbridge.domain.models import (
    AttachmentPayload,
    EmailContent,
    EmailItem,
    EmailService,
)
from inboxbridge.infrastructure.crypto import TokenCipher

TEST_KEY = "test-encryption-key-0123456789abcdef"


def b64url(text: str) -> str:
    """Gmail-style unpadded base64url."""
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def pubsub_data(payload: dict) -> str:
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


def gmail_part(mime_type, data=None, filename="", attachment_id=None, headers=None, parts=None, size=0):
    body = {"size": size}
    if data is not None:
        body["data"] = b64url(data)
    if attachment_id is not None:
        body["attachmentId"] = attachment_id
    part = {
        "mimeType": mime_type,
        "filename": filename,
        "headers": [{"name": k, "value": v} for k, v in (headers or {}).items()],
        "body": body,
    }
    if parts is not None:
        part["parts"] = parts
    return part


def gmail_message(message_id, payload, snippet="", headers=None):
    payload = dict(payload)
    payload["headers"] = [{"name": k, "value": v} for k, v in (headers or {}).items()] + payload.get("headers", [])
    return {"id": message_id, "threadId": f"t-{message_id}", "snippet": snippet, "payload": payload}


@pytest.fixture
def cipher():
    return TokenCipher(TEST_KEY)


@pytest.fixture
def google_token():
    expiry = datetime.now(timezone.utc) + timedelta(hours=1)
    return GoogleToken(
        access_token="g-access",
        refresh_token="g-refresh",
        scope="https://www.googleapis.com/auth/gmail.readonly",
        expiry_date=int(expiry.timestamp() * 1000),
    )


@pytest.fixture
def outlook_token():
    return OutlookToken(
        access_token="o-access",
        refresh_token="o-refresh",
        scope="offline_access Mail.Read Mail.ReadWrite",
        expires_in=3600,
        expires_at=OutlookToken.expiry_from_seconds(3600),
    )


class FakeAuth:
    def __init__(self, missing=None):
        self._missing = list(missing or [])
        self.redirect_uri = "http://localhost:8080/auth/fake/callback"

    def missing_settings(self):
        return list(self._missing)


class FakeProvider:
    """In-memory MailProvider that counts upstream calls."""

    def __init__(self, service: EmailService, refreshed_token=None):
        self.service = service
        self.auth = FakeAuth()
        self.refreshed_token = refreshed_token
        self.calls: dict[str, int] = {}
        self.messages: dict[str, EmailContent] = {}
        self.fail_ids: set[str] = set()

    def _count(self, name):
        self.calls[name] = self.calls.get(name, 0) + 1

    async def ensure_session(self, token):
        self._count("ensure_session")
        if self.refreshed_token is not None:
            return MailSession(service=self.service, token=self.refreshed_token, refreshed=True)
        return MailSession(service=self.service, token=token)

    async def account_email(self, token):
        return "user@example.com"

    async def list_emails(self, token, query=None):
        self._count("list_emails")
        return [
            EmailItem(id=f"{self.service.value}-1", subject="Hello", from_="Alice", service=self.service),
        ]

    async def get_email(self, token, message_id):
        self._count("get_email")
        if message_id in self.fail_ids:
            raise ProviderApiError(self.service.value, 404, "not found")
        return self.messages.get(message_id) or EmailContent(
            id=message_id, subject="Subject", body="<p>hi</p>", service=self.service
        )

    async def get_attachment(self, token, message_id, attachment_id):
        self._count("get_attachment")
        return AttachmentPayload(name="report é.pdf", content_type="application/pdf", data=b"%PDF-1.4")

    async def watch(self, token):
        raise NotImplementedError

    async def added_message_ids(self, token, start_history_id):
        self._count("added_message_ids")
        return []


class MemoryRegistry:
    """SubscriptionRegistry backed by a dict."""

    def __init__(self, *subscriptions):
        self.subscriptions = {s.id: s for s in subscriptions}

    def save_subscription(self, subscription):
        self.subscriptions[subscription.id] = subscription

    def load_subscription(self, subscription_id):
        return self.subscriptions.get(subscription_id)
