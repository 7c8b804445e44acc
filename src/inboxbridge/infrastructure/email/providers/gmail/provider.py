"""Gmail implementation of the MailProvider port."""

from __future__ import annotations

import asyncio
import binascii
from datetime import datetime, timezone
from typing import Optional

from loguru import logger

from inboxbridge.application.ports import MailSession
from inboxbridge.domain.entities import GoogleToken, Subscription, TokenData
from inboxbridge.domain.errors import ConfigError, NotAuthenticatedError, ProviderApiError
from inboxbridge.domain.models import AttachmentPayload, EmailContent, EmailItem, EmailService
from inboxbridge.infrastructure.email.providers.gmail.auth import GoogleAuth
from inboxbridge.infrastructure.email.providers.gmail.client import GmailApiClient
from inboxbridge.infrastructure.email.providers.gmail.mapper import (
    DEFAULT_MAX_DEPTH,
    GmailPart,
    decode_base64url,
    normalize_detail,
    normalize_list,
)
from inboxbridge.infrastructure.settings import Settings


class GmailProvider:
    service = EmailService.GMAIL

    def __init__(
        self,
        auth: GoogleAuth,
        client: GmailApiClient,
        list_query: str = "has:attachment",
        max_results: int = 10,
        topic_name: str | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        self.auth = auth
        self.client = client
        self.list_query = list_query
        self.max_results = max_results
        self.topic_name = topic_name
        self.max_depth = max_depth

    @classmethod
    def from_settings(cls, settings: Settings, transport=None) -> "GmailProvider":
        return cls(
            auth=GoogleAuth.from_settings(settings, transport=transport),
            client=GmailApiClient(timeout=settings.http_timeout_seconds, transport=transport),
            list_query=settings.gmail_list_query,
            max_results=settings.gmail_max_results,
            topic_name=settings.pubsub_topic_name,
            max_depth=settings.max_mime_depth,
        )

    async def ensure_session(self, token: TokenData) -> MailSession:
        if not isinstance(token, GoogleToken):
            raise NotAuthenticatedError("Token does not belong to Gmail")
        current = await self.auth.refresh_if_needed(token)
        return MailSession(service=self.service, token=current, refreshed=current is not token)

    async def account_email(self, token: TokenData) -> str:
        profile = await self.client.get_profile(token.access_token)
        email = profile.get("emailAddress")
        if not email:
            raise ProviderApiError("gmail", 500, "profile has no emailAddress")
        return email

    async def list_emails(self, token: TokenData, query: Optional[str] = None) -> list[EmailItem]:
        ids = await self.client.list_message_ids(token.access_token, query or self.list_query, self.max_results)
        if not ids:
            return []
        messages = await self.client.get_messages(token.access_token, ids)
        return normalize_list(messages, self.max_depth)

    async def get_email(self, token: TokenData, message_id: str) -> EmailContent:
        message = await self.client.get_message(token.access_token, message_id)
        return normalize_detail(message, self.max_depth)

    async def get_attachment(self, token: TokenData, message_id: str, attachment_id: str) -> AttachmentPayload:
        message, body = await asyncio.gather(
            self.client.get_message(token.access_token, message_id),
            self.client.get_attachment(token.access_token, message_id, attachment_id),
        )
        if not body.get("data"):
            raise ProviderApiError("gmail", 404, f"attachment {attachment_id} has no data")

        name, content_type = "attachment", "application/octet-stream"
        root = GmailPart.from_payload(message.get("payload"), self.max_depth)
        for part in root.walk():
            if part.attachment_id == attachment_id:
                name = part.filename or name
                content_type = part.mime_type or content_type
                break

        try:
            data = decode_base64url(body["data"])
        except binascii.Error as e:
            raise ProviderApiError("gmail", 500, "attachment data is not valid base64url") from e
        return AttachmentPayload(name=name, content_type=content_type, data=data)

    async def watch(self, token: TokenData) -> Subscription:
        if not self.topic_name:
            raise ConfigError("gmail", ["PUBSUB_TOPIC_NAME"])
        data = await self.client.watch(token.access_token, self.topic_name)

        expiration = ""
        if data.get("expiration"):
            expiration = datetime.fromtimestamp(int(data["expiration"]) / 1000, tz=timezone.utc).isoformat()
        logger.info(f"Gmail watch established, historyId={data.get('historyId')}")
        return Subscription(
            id=str(data.get("historyId", "")),
            provider="gmail",
            expiration=expiration,
            resource=self.topic_name,
        )

    async def added_message_ids(self, token: TokenData, start_history_id: str) -> list[str]:
        """Ids of messages added since ``start_history_id``, oldest first, without duplicates."""
        data = await self.client.list_history(token.access_token, start_history_id)
        seen: dict[str, None] = {}
        for record in data.get("history", []):
            for added in record.get("messagesAdded", []):
                message_id = (added.get("message") or {}).get("id")
                if message_id:
                    seen.setdefault(message_id, None)
        return list(seen)
