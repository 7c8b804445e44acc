"""Microsoft Graph message resource -> canonical email model."""

from __future__ import annotations

from typing import Any

from loguru import logger

from inboxbridge.domain.errors import NormalizationError
from inboxbridge.domain.models import Attachment, EmailAddress, EmailContent, EmailItem, EmailService
from inboxbridge.infrastructure.email.html import render_html_body, strip_content_id


def _recipient(entry: dict[str, Any] | None) -> EmailAddress | None:
    address = (entry or {}).get("emailAddress") or {}
    email = (address.get("address") or "").strip()
    if not email:
        return None
    return EmailAddress(name=(address.get("name") or "").strip(), email=email)


def _recipients(entries: list[dict[str, Any]] | None) -> list[EmailAddress]:
    out = []
    for entry in entries or []:
        recipient = _recipient(entry)
        if recipient is not None:
            out.append(recipient)
    return out


def display_from(message: dict[str, Any]) -> str:
    """Sender display string: name, or the address when there is no name."""
    sender = _recipient(message.get("from"))
    if sender is None:
        return ""
    return sender.name or sender.email


def normalize_attachment(raw: dict[str, Any]) -> Attachment:
    content_id = strip_content_id(raw.get("contentId"))
    return Attachment(
        id=raw["id"],
        name=raw.get("name") or "attachment",
        content_type=raw.get("contentType") or "application/octet-stream",
        size=int(raw.get("size") or 0),
        is_inline=bool(raw.get("isInline")),
        content_id=content_id,
    )


def _require_id(message: dict[str, Any]) -> str:
    message_id = message.get("id") if isinstance(message, dict) else None
    if not message_id:
        raise NormalizationError("Outlook message has no id")
    return message_id


def normalize_summary(message: dict[str, Any]) -> EmailItem:
    return EmailItem(
        id=_require_id(message),
        snippet=message.get("bodyPreview") or "",
        from_=display_from(message),
        subject=message.get("subject") or "",
        date=message.get("receivedDateTime") or "",
        has_attachments=bool(message.get("hasAttachments")),
        service=EmailService.OUTLOOK,
    )


def normalize_list(messages: list[dict[str, Any]]) -> list[EmailItem]:
    items = []
    for message in messages:
        try:
            items.append(normalize_summary(message))
        except NormalizationError as e:
            logger.warning(f"Skipping Outlook message in listing: {e.detail}")
    return items


def normalize_detail(message: dict[str, Any]) -> EmailContent:
    message_id = _require_id(message)

    attachments = []
    for raw in message.get("attachments") or []:
        if not raw.get("id"):
            logger.warning(f"Outlook attachment without id on message {message_id}")
            continue
        attachments.append(normalize_attachment(raw))

    body = message.get("body") or {}
    content = body.get("content") or ""
    if (body.get("contentType") or "html").lower() == "html":
        content_type = "html"
        content = render_html_body(content, attachments, message_id, EmailService.OUTLOOK)
    else:
        content_type = "text"

    reply_to = message.get("replyTo")
    return EmailContent(
        id=message_id,
        subject=message.get("subject") or "",
        from_=display_from(message),
        sender=_recipient(message.get("from")),
        to=_recipients(message.get("toRecipients")),
        cc=_recipients(message.get("ccRecipients")),
        bcc=_recipients(message.get("bccRecipients")),
        reply_to=_recipients(reply_to if isinstance(reply_to, list) else None),
        date=message.get("receivedDateTime") or "",
        body=content,
        content_type=content_type,
        attachments=attachments,
        service=EmailService.OUTLOOK,
    )
