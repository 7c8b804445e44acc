"""Re-enter the fetch path when a provider pushes a mailbox change."""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from inboxbridge.application.cache import EmailContentCache
from inboxbridge.application.ports import MailboxHistory, MailProvider, MailSession, SubscriptionRegistry
from inboxbridge.domain.errors import BadRequestError, InboxBridgeError
from inboxbridge.domain.models import EmailService
from inboxbridge.infrastructure.stores import TokenStore


@dataclass(frozen=True)
class GmailPush:
    """Decoded Pub/Sub payload of a Gmail watch notification."""

    email_address: str
    history_id: str


def decode_gmail_push(data: str | None) -> GmailPush:
    """Decode the base64 ``message.data`` of a Pub/Sub push envelope."""
    if not data:
        raise BadRequestError("Push message has no data")
    try:
        decoded = json.loads(base64.b64decode(data + "=" * (-len(data) % 4), altchars=b"-_"))
    except (binascii.Error, ValueError) as e:
        raise BadRequestError("Push message data is not base64-encoded JSON") from e

    if not isinstance(decoded, dict) or not decoded.get("emailAddress") or not decoded.get("historyId"):
        raise BadRequestError("Push message must carry emailAddress and historyId")
    return GmailPush(email_address=decoded["emailAddress"], history_id=str(decoded["historyId"]))


@dataclass(frozen=True)
class OutlookChange:
    """One Graph change notification after its batch passed the clientState check."""

    subscription_id: str | None
    resource: str | None
    change_type: str | None = None


def message_id_from_resource(resource: str | None) -> str | None:
    """Final path segment of ``.../messages/{id}``, or None when malformed."""
    if not resource or not isinstance(resource, str):
        return None
    segments = [s for s in resource.strip().split("/") if s]
    if len(segments) < 2 or segments[-2].lower() != "messages":
        return None
    return segments[-1]


class MailboxRefreshUseCase:
    """Invalidate and prefetch messages named by push notifications.

    Never raises: failures are logged so the webhook acknowledgement is not
    affected.
    """

    def __init__(
        self,
        providers: dict[EmailService, MailProvider],
        cache: EmailContentCache,
        token_store: TokenStore,
        registry: Optional[SubscriptionRegistry] = None,
    ) -> None:
        self.providers = providers
        self.cache = cache
        self.token_store = token_store
        self.registry = registry
        self._history_checkpoints: dict[str, str] = {}

    async def _session_for(self, service: EmailService, account_id: str) -> MailSession | None:
        token = await self.token_store.retrieve(account_id, service.value)
        if token is None:
            logger.warning(f"No stored {service.value} token for {account_id}, skipping refresh")
            return None
        session = await self.providers[service].ensure_session(token)
        if session.refreshed:
            await self.token_store.store(account_id, session.token)
        return session

    async def _prefetch(self, session: MailSession, message_id: str) -> None:
        key = (session.service, message_id)
        provider = self.providers[session.service]
        self.cache.invalidate(key)
        await self.cache.get_or_fetch(key, lambda: provider.get_email(session.token, message_id))

    # ------------------------------------------------------------------
    # Gmail
    # ------------------------------------------------------------------

    async def refresh_gmail(self, email_address: str, history_id: str) -> int:
        """Prefetch messages added since the last checkpoint for this account.

        Returns the number of messages prefetched.
        """
        try:
            session = await self._session_for(EmailService.GMAIL, email_address)
            if session is None:
                return 0

            provider = self.providers[EmailService.GMAIL]
            start = self._history_checkpoints.get(email_address, history_id)

            message_ids: list[str] = []
            if hasattr(provider, "added_message_ids"):
                history: MailboxHistory = provider
                message_ids = await history.added_message_ids(session.token, start)
            # Only advanced once the history window has been read
            self._history_checkpoints[email_address] = history_id

            if not message_ids:
                items = await provider.list_emails(session.token)
                logger.info(f"Gmail push for {email_address}: no history delta, warmed listing ({len(items)} items)")
                return 0

            prefetched = 0
            for message_id in message_ids:
                try:
                    await self._prefetch(session, message_id)
                    prefetched += 1
                except InboxBridgeError as e:
                    logger.warning(f"Gmail prefetch of {message_id} failed: {e.detail}")
            logger.info(f"Gmail push for {email_address}: prefetched {prefetched}/{len(message_ids)} message(s)")
            return prefetched
        except Exception as e:
            logger.exception(f"Gmail mailbox refresh for {email_address} failed: {e}")
            return 0

    # ------------------------------------------------------------------
    # Outlook
    # ------------------------------------------------------------------

    async def _account_for_subscription(self, subscription_id: str | None) -> str | None:
        if not subscription_id or self.registry is None:
            return None
        subscription = await asyncio.to_thread(self.registry.load_subscription, subscription_id)
        return subscription.account_id if subscription else None

    async def refresh_outlook(self, changes: list[OutlookChange]) -> int:
        """Process each change independently. Returns how many were prefetched."""
        processed = 0
        for change in changes:
            try:
                message_id = message_id_from_resource(change.resource)
                if message_id is None:
                    logger.warning(f"Malformed Outlook notification resource: {change.resource!r}")
                    continue

                account_id = await self._account_for_subscription(change.subscription_id)
                if account_id is None:
                    logger.warning(f"Unknown Outlook subscription {change.subscription_id}, skipping {message_id}")
                    continue

                session = await self._session_for(EmailService.OUTLOOK, account_id)
                if session is None:
                    continue

                await self._prefetch(session, message_id)
                processed += 1
            except Exception as e:
                logger.exception(f"Outlook notification for {change.resource!r} failed: {e}")
                continue

        logger.info(f"Outlook notifications processed: {processed}/{len(changes)}")
        return processed
