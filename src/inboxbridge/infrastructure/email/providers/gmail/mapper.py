"""Gmail message resource -> canonical email model.

A Gmail payload is a recursive MIME part tree. It is first converted into an
immutable ``GmailPart`` tree (depth bounded by ``max_depth``) and then walked
depth-first for the body and attachment parts.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterator

from loguru import logger

from inboxbridge.domain.errors import NormalizationError
from inboxbridge.domain.models import Attachment, EmailContent, EmailItem, EmailService
from inboxbridge.infrastructure.email.html import render_html_body, strip_content_id, text_to_html
from inboxbridge.infrastructure.email.rfc822 import get_header, parse_address_list

DEFAULT_MAX_DEPTH = 32


@dataclass(frozen=True)
class GmailPart:
    mime_type: str = ""
    filename: str = ""
    headers: tuple[tuple[str, str], ...] = ()
    data: str | None = None
    attachment_id: str | None = None
    size: int = 0
    parts: tuple["GmailPart", ...] = field(default_factory=tuple)

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | None, max_depth: int = DEFAULT_MAX_DEPTH, _depth: int = 0) -> "GmailPart":
        payload = payload or {}
        body = payload.get("body") or {}

        children = payload.get("parts") or []
        if children and _depth >= max_depth:
            logger.warning(f"MIME tree deeper than {max_depth} levels, ignoring nested parts")
            children = []

        return cls(
            mime_type=(payload.get("mimeType") or "").lower(),
            filename=payload.get("filename") or "",
            headers=tuple(
                (h.get("name") or "", h.get("value") or "") for h in payload.get("headers") or []
            ),
            data=body.get("data") or None,
            attachment_id=body.get("attachmentId") or None,
            size=int(body.get("size") or 0),
            parts=tuple(cls.from_payload(p, max_depth, _depth + 1) for p in children),
        )

    def header(self, name: str) -> str:
        return get_header([{"name": n, "value": v} for n, v in self.headers], name)

    def walk(self) -> Iterator["GmailPart"]:
        """Depth-first, pre-order."""
        yield self
        for part in self.parts:
            yield from part.walk()


def decode_base64url(data: str) -> bytes:
    """Decode Gmail's unpadded base64url."""
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded)


def decode_text(data: str) -> str:
    return decode_base64url(data).decode("utf-8", errors="replace")


def find_body_text(root: GmailPart, mime_type: str) -> str | None:
    """Decoded body of the first ``mime_type`` part with usable inline data.

    Parts whose data is not valid base64url count as having no body.
    """
    for part in root.walk():
        if part.mime_type != mime_type or not part.data:
            continue
        try:
            return decode_text(part.data)
        except binascii.Error as e:
            logger.warning(f"Ignoring undecodable {mime_type} part: {e}")
    return None


def _content_id(part: GmailPart) -> str | None:
    content_id = strip_content_id(part.header("Content-ID"))
    if content_id is None and part.header("Content-Disposition").lower().startswith("inline"):
        # Gmail sets X-Attachment-Id on every attachment, not only inline ones
        content_id = strip_content_id(part.header("X-Attachment-Id"))
    return content_id


def extract_attachments(root: GmailPart) -> list[Attachment]:
    attachments = []
    for part in root.walk():
        if not (part.filename and part.attachment_id):
            continue
        content_id = _content_id(part)
        attachments.append(
            Attachment(
                id=part.attachment_id,
                name=part.filename,
                content_type=part.mime_type or "application/octet-stream",
                size=part.size,
                is_inline=content_id is not None,
                content_id=content_id,
            )
        )
    return attachments


def _message_date(root: GmailPart, message: dict[str, Any]) -> str:
    date = root.header("Date")
    if date:
        return date
    internal = message.get("internalDate")
    if internal:
        return datetime.fromtimestamp(int(internal) / 1000, tz=timezone.utc).isoformat()
    return ""


def _require_id(message: dict[str, Any]) -> str:
    message_id = message.get("id") if isinstance(message, dict) else None
    if not message_id:
        raise NormalizationError("Gmail message has no id")
    return message_id


def normalize_summary(message: dict[str, Any], max_depth: int = DEFAULT_MAX_DEPTH) -> EmailItem:
    message_id = _require_id(message)
    root = GmailPart.from_payload(message.get("payload"), max_depth)
    return EmailItem(
        id=message_id,
        snippet=message.get("snippet") or "",
        from_=root.header("From"),
        subject=root.header("Subject"),
        date=_message_date(root, message),
        has_attachments=any(p.filename and p.attachment_id for p in root.walk()),
        service=EmailService.GMAIL,
    )


def normalize_list(messages: list[dict[str, Any]], max_depth: int = DEFAULT_MAX_DEPTH) -> list[EmailItem]:
    items = []
    for message in messages:
        try:
            items.append(normalize_summary(message, max_depth))
        except NormalizationError as e:
            logger.warning(f"Skipping Gmail message in listing: {e.detail}")
    return items


def normalize_detail(message: dict[str, Any], max_depth: int = DEFAULT_MAX_DEPTH) -> EmailContent:
    message_id = _require_id(message)
    root = GmailPart.from_payload(message.get("payload"), max_depth)
    attachments = extract_attachments(root)

    html = find_body_text(root, "text/html")
    if html is not None:
        body = render_html_body(html, attachments, message_id, EmailService.GMAIL)
    else:
        text = find_body_text(root, "text/plain")
        body = text_to_html(text) if text is not None else ""

    from_header = root.header("From")
    senders = parse_address_list(from_header)
    return EmailContent(
        id=message_id,
        subject=root.header("Subject"),
        from_=from_header,
        sender=senders[0] if senders else None,
        to=parse_address_list(root.header("To")),
        cc=parse_address_list(root.header("Cc")),
        bcc=parse_address_list(root.header("Bcc")),
        reply_to=parse_address_list(root.header("Reply-To")),
        date=_message_date(root, message),
        body=body,
        content_type="html",
        attachments=attachments,
        service=EmailService.GMAIL,
    )
