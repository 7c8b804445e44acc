from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from inboxbridge.domain.entities import Subscription, TokenData
from inboxbridge.domain.models import AttachmentPayload, EmailContent, EmailItem, EmailService

@dataclass(frozen=True)
class MailSession:
    """A provider token after the lifecycle has made it usable.

    ``refreshed`` is set when the token differs from the one the caller
    presented, so the caller can persist it.
    """
    service: EmailService
    token: TokenData
    refreshed: bool = False

class MailProvider(Protocol):
    """One mail backend (Gmail, Outlook) behind the canonical model."""

    service: EmailService
    auth: Any  # provider OAuth lifecycle

    async def ensure_session(self, token: TokenData) -> MailSession: ...
    async def account_email(self, token: TokenData) -> str: ...
    async def list_emails(self, token: TokenData, query: Optional[str] = None) -> list[EmailItem]: ...
    async def get_email(self, token: TokenData, message_id: str) -> EmailContent: ...
    async def get_attachment(self, token: TokenData, message_id: str, attachment_id: str) -> AttachmentPayload: ...
    async def watch(self, token: TokenData) -> Subscription: ...

class MailboxHistory(Protocol):
    """Providers that can report messages added since a history checkpoint."""

    async def added_message_ids(self, token: TokenData, start_history_id: str) -> list[str]: ...
