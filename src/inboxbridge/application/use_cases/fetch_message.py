"""Fetch one message's full content through the content cache."""

from __future__ import annotations

from inboxbridge.application.cache import EmailContentCache
from inboxbridge.application.ports import MailProvider, MailSession
from inboxbridge.domain.models import AttachmentPayload, EmailContent


class FetchMessageUseCase:
    """Resolve ``(service, message_id)`` to content, fetching at most once concurrently."""

    def __init__(self, provider: MailProvider, cache: EmailContentCache) -> None:
        self.provider = provider
        self.cache = cache

    async def execute(self, session: MailSession, message_id: str) -> EmailContent:
        key = (session.service, message_id)
        return await self.cache.get_or_fetch(
            key, lambda: self.provider.get_email(session.token, message_id)
        )

    async def attachment(self, session: MailSession, message_id: str, attachment_id: str) -> AttachmentPayload:
        return await self.provider.get_attachment(session.token, message_id, attachment_id)
