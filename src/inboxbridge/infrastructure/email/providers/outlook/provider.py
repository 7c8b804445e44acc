"""Outlook (Microsoft Graph) implementation of the MailProvider port."""

from __future__ import annotations

import base64
import binascii
from datetime import datetime, timedelta, timezone
from typing import Optional

from loguru import logger

from inboxbridge.application.ports import MailSession
from inboxbridge.domain.entities import OutlookToken, Subscription, TokenData
from inboxbridge.domain.errors import NotAuthenticatedError, ProviderApiError
from inboxbridge.domain.models import AttachmentPayload, EmailContent, EmailItem, EmailService
from inboxbridge.infrastructure.email.providers.outlook.auth import OutlookAuth
from inboxbridge.infrastructure.email.providers.outlook.client import INBOX_RESOURCE, GraphClient
from inboxbridge.infrastructure.email.providers.outlook.mapper import normalize_detail, normalize_list
from inboxbridge.infrastructure.settings import Settings

SUBSCRIPTION_LIFETIME = timedelta(days=3)


def subscription_expiry(now: datetime | None = None) -> str:
    expires = (now or datetime.now(timezone.utc)) + SUBSCRIPTION_LIFETIME
    return expires.strftime("%Y-%m-%dT%H:%M:%S.000Z")


class OutlookProvider:
    service = EmailService.OUTLOOK

    def __init__(
        self,
        auth: OutlookAuth,
        client: GraphClient,
        notification_url: str,
        client_state: str,
        list_filter: str | None = "hasAttachments eq true",
        max_results: int = 20,
    ):
        self.auth = auth
        self.client = client
        self.notification_url = notification_url
        self.client_state = client_state
        self.list_filter = list_filter
        self.max_results = max_results

    @classmethod
    def from_settings(cls, settings: Settings, transport=None) -> "OutlookProvider":
        return cls(
            auth=OutlookAuth.from_settings(settings, transport=transport),
            client=GraphClient(timeout=settings.http_timeout_seconds, transport=transport),
            notification_url=settings.outlook_notification_url,
            client_state=settings.outlook_client_state.get_secret_value(),
            list_filter=settings.outlook_list_filter,
            max_results=settings.outlook_max_results,
        )

    async def ensure_session(self, token: TokenData) -> MailSession:
        if not isinstance(token, OutlookToken):
            raise NotAuthenticatedError("Token does not belong to Outlook")
        current = await self.auth.refresh_if_needed(token)
        return MailSession(service=self.service, token=current, refreshed=current is not token)

    async def account_email(self, token: TokenData) -> str:
        me = await self.client.get_me(token.access_token)
        email = me.get("mail") or me.get("userPrincipalName")
        if not email:
            raise ProviderApiError("outlook", 500, "profile has no mail or userPrincipalName")
        return email

    async def list_emails(self, token: TokenData, query: Optional[str] = None) -> list[EmailItem]:
        messages = await self.client.list_messages(token.access_token, query or self.list_filter, self.max_results)
        return normalize_list(messages)

    async def get_email(self, token: TokenData, message_id: str) -> EmailContent:
        message = await self.client.get_message(token.access_token, message_id)
        return normalize_detail(message)

    async def get_attachment(self, token: TokenData, message_id: str, attachment_id: str) -> AttachmentPayload:
        data = await self.client.get_attachment(token.access_token, message_id, attachment_id)
        content = data.get("contentBytes")
        if not content:
            raise ProviderApiError("outlook", 404, f"attachment {attachment_id} has no content")
        try:
            raw = base64.b64decode(content)
        except (binascii.Error, ValueError) as e:
            raise ProviderApiError("outlook", 500, "attachment content is not valid base64") from e
        return AttachmentPayload(
            name=data.get("name") or "attachment",
            content_type=data.get("contentType") or "application/octet-stream",
            data=raw,
        )

    async def watch(self, token: TokenData) -> Subscription:
        data = await self.client.create_subscription(
            token.access_token,
            notification_url=self.notification_url,
            client_state=self.client_state,
            expiration=subscription_expiry(),
        )
        logger.info(f"Outlook subscription {data.get('id')} created, expires {data.get('expirationDateTime')}")
        return Subscription(
            id=data["id"],
            provider="outlook",
            expiration=data.get("expirationDateTime") or "",
            resource=data.get("resource") or INBOX_RESOURCE,
        )

    async def renew(self, token: TokenData, subscription_id: str) -> Subscription:
        data = await self.client.renew_subscription(token.access_token, subscription_id, subscription_expiry())
        logger.info(f"Outlook subscription {subscription_id} renewed until {data.get('expirationDateTime')}")
        return Subscription(
            id=data.get("id") or subscription_id,
            provider="outlook",
            expiration=data.get("expirationDateTime") or "",
            resource=data.get("resource"),
        )
