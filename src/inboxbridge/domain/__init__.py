"""Domain models and entities."""

from inboxbridge.domain.models import (
    Attachment,
    AttachmentPayload,
    EmailAddress,
    EmailContent,
    EmailItem,
    EmailService,
)

__all__ = [
    "EmailService",
    "EmailAddress",
    "Attachment",
    "AttachmentPayload",
    "EmailItem",
    "EmailContent",
]
