"""Tests for HTML sanitization and inline image rewriting."""

from inboxbridge.domain.models import Attachment, EmailService
from inboxbridge.infrastructure.email.html import (
    attachment_url,
    rewrite_inline_images,
    sanitize_html,
    strip_content_id,
    text_to_html,
)


def test_sanitizer_allows_safe_schemes_and_target():
    html = (
        '<a href="mailto:a@example.com" target="_blank">m</a>'
        '<a href="tel:+15550100">t</a>'
        '<a href="https://example.com">h</a>'
        '<img src="data:image/png;base64,AAAA">'
    )
    clean = sanitize_html(html)
    assert 'href="mailto:a@example.com"' in clean
    assert 'target="_blank"' in clean
    assert 'href="tel:+15550100"' in clean
    assert 'href="https://example.com"' in clean
    assert "data:image/png;base64,AAAA" in clean


def test_sanitizer_strips_scripts_and_handlers():
    clean = sanitize_html('<img src="x" onerror="steal()"><script>bad()</script><iframe src="https://x"></iframe>')
    assert "onerror" not in clean
    assert "<script" not in clean
    assert "bad()" not in clean
    assert "<iframe" not in clean


def test_sanitize_empty():
    assert sanitize_html("") == ""


def test_text_to_html():
    assert text_to_html("a\r\nb\nc") == "a<br>b<br>c"
    assert text_to_html("<b>&") == "&lt;b&gt;&amp;"


def test_strip_content_id():
    assert strip_content_id("<abc@x>") == "abc@x"
    assert strip_content_id(" abc ") == "abc"
    assert strip_content_id("<>") is None
    assert strip_content_id(None) is None


def test_attachment_url_encodes_ids():
    url = attachment_url(EmailService.OUTLOOK, "AA/B+C=", "att 1")
    assert url == "/email/attachment?service=outlook&messageId=AA%2FB%2BC%3D&attachmentId=att+1"


def test_rewrite_does_not_touch_longer_content_ids():
    attachments = [Attachment(id="a1", name="i.png", content_id="img1", is_inline=True)]
    body = '<img src="cid:img1"><img src="cid:img10">'
    rewritten = rewrite_inline_images(body, attachments, "m", EmailService.GMAIL)
    assert "cid:img10" in rewritten
    assert rewritten.count("attachmentId=a1") == 1
