"""HTML body post-processing shared by both providers."""

from __future__ import annotations

import html
import re
from urllib.parse import urlencode

import nh3

from inboxbridge.domain.models import Attachment, EmailService

ATTACHMENT_PATH = "/email/attachment"

SAFE_URL_SCHEMES = {"http", "https", "mailto", "tel", "cid", "data"}

# Presentational markup common in mail bodies on top of nh3's defaults
_EXTRA_TAGS = {"center", "font"}
_GENERIC_ATTRIBUTES = {"align", "dir", "lang", "style", "title", "class"}
_EXTRA_ATTRIBUTES = {
    "a": {"href", "name", "target", "title"},
    "img": {"src", "alt", "width", "height", "border"},
    "font": {"color", "face", "size"},
    "table": {"width", "border", "cellpadding", "cellspacing", "bgcolor"},
    "td": {"width", "height", "valign", "bgcolor", "colspan", "rowspan"},
    "th": {"width", "height", "valign", "bgcolor", "colspan", "rowspan"},
    "tr": {"valign", "bgcolor"},
}


def _allowed_attributes() -> dict[str, set[str]]:
    attributes = {tag: set(attrs) for tag, attrs in nh3.ALLOWED_ATTRIBUTES.items()}
    for tag, attrs in _EXTRA_ATTRIBUTES.items():
        attributes.setdefault(tag, set()).update(attrs)
    attributes["*"] = attributes.get("*", set()) | _GENERIC_ATTRIBUTES
    return attributes


_ALLOWED_TAGS = set(nh3.ALLOWED_TAGS) | _EXTRA_TAGS
_ALLOWED_ATTRIBUTES = _allowed_attributes()


def sanitize_html(body: str) -> str:
    """Strip scripts and event handlers, keeping only safe URL schemes."""
    if not body:
        return ""
    return nh3.clean(
        body,
        tags=_ALLOWED_TAGS,
        attributes=_ALLOWED_ATTRIBUTES,
        url_schemes=SAFE_URL_SCHEMES,
    )


def text_to_html(text: str) -> str:
    """Escape ``&<>`` and turn newlines into ``<br>``."""
    escaped = text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
    return escaped.replace("\r\n", "\n").replace("\n", "<br>")


def strip_content_id(content_id: str | None) -> str | None:
    if not content_id:
        return None
    stripped = content_id.strip().strip("<>").strip()
    return stripped or None


def attachment_url(service: EmailService, message_id: str, attachment_id: str, inline: bool = False) -> str:
    params = {
        "service": service.value,
        "messageId": message_id,
        "attachmentId": attachment_id,
    }
    if inline:
        params["disposition"] = "inline"
    return f"{ATTACHMENT_PATH}?{urlencode(params)}"


def rewrite_inline_images(
    body: str,
    attachments: list[Attachment],
    message_id: str,
    service: EmailService,
) -> str:
    """Point ``cid:<content-id>`` references at the attachment download route."""
    for attachment in attachments:
        content_id = strip_content_id(attachment.content_id)
        if not content_id:
            continue
        url = attachment_url(service, message_id, attachment.id, inline=True)
        pattern = re.compile(rf"cid:{re.escape(content_id)}(?=[\"'\s)>]|$)", re.IGNORECASE)
        body = pattern.sub(lambda _: html.escape(url, quote=False), body)
    return body


def render_html_body(
    body: str,
    attachments: list[Attachment],
    message_id: str,
    service: EmailService,
) -> str:
    """Rewrite inline image references, then sanitize. Provider HTML always goes through here."""
    return sanitize_html(rewrite_inline_images(body, attachments, message_id, service))
