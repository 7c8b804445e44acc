"""Canonical email models shared by both providers."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EmailService(str, Enum):
    """Mail providers an account can be connected to."""

    GMAIL = "gmail"
    OUTLOOK = "outlook"


class CanonicalModel(BaseModel):
    """Base for wire models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class EmailAddress(CanonicalModel):
    """A parsed mailbox: display name plus address."""

    name: str = ""
    email: str


class Attachment(CanonicalModel):
    """Attachment metadata. ``content_id`` is set only for inline-referenced parts."""

    id: str
    name: str
    content_type: str = "application/octet-stream"
    size: int = 0
    is_inline: bool = False
    content_id: str | None = None


class EmailItem(CanonicalModel):
    """List-view summary. Identity is ``(service, id)``."""

    id: str
    snippet: str = ""
    from_: str = Field(default="", alias="from")
    subject: str = ""
    date: str = ""
    has_attachments: bool = False
    service: EmailService


class EmailContent(CanonicalModel):
    """Full message view. ``body`` is sanitized HTML or plain text per ``content_type``."""

    id: str
    subject: str = ""
    from_: str = Field(default="", alias="from")
    sender: EmailAddress | None = None
    to: list[EmailAddress] = Field(default_factory=list)
    cc: list[EmailAddress] = Field(default_factory=list)
    bcc: list[EmailAddress] = Field(default_factory=list)
    reply_to: list[EmailAddress] = Field(default_factory=list)
    date: str = ""
    body: str = ""
    content_type: str = "html"
    attachments: list[Attachment] = Field(default_factory=list)
    service: EmailService


class AttachmentPayload(BaseModel):
    """Downloaded attachment bytes ready to stream back to the client."""

    name: str = "attachment"
    content_type: str = "application/octet-stream"
    data: bytes
