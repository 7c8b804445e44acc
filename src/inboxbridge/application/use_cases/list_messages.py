"""List message summaries for one or more connected providers."""

from __future__ import annotations

import asyncio
from typing import Optional

from loguru import logger

from inboxbridge.application.ports import MailProvider, MailSession
from inboxbridge.domain.errors import InboxBridgeError
from inboxbridge.domain.models import EmailItem, EmailService


class ListMessagesUseCase:
    def __init__(self, providers: dict[EmailService, MailProvider]) -> None:
        self.providers = providers

    async def execute(self, sessions: list[MailSession], query: Optional[str] = None) -> list[EmailItem]:
        """List each session's mailbox concurrently and merge the results.

        With a single session its error propagates. With several, a failing
        provider is logged and skipped unless every provider failed.
        """
        if len(sessions) == 1:
            session = sessions[0]
            return await self.providers[session.service].list_emails(session.token, query)

        results = await asyncio.gather(
            *(self.providers[s.service].list_emails(s.token, query) for s in sessions),
            return_exceptions=True,
        )

        emails: list[EmailItem] = []
        errors: list[InboxBridgeError] = []
        for session, result in zip(sessions, results):
            if isinstance(result, InboxBridgeError):
                logger.error(f"Listing {session.service.value} failed: {result.detail}")
                errors.append(result)
                continue
            if isinstance(result, BaseException):
                raise result
            emails.extend(result)

        if errors and len(errors) == len(sessions):
            raise errors[0]
        return emails
