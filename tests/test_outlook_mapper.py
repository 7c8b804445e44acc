"""Tests for the Graph message normalizer."""

import pytest

from inboxbridge.domain.errors import NormalizationError
from inboxbridge.domain.models import EmailService
from inboxbridge.infrastructure.email.providers.outlook.mapper import (
    display_from,
    normalize_detail,
    normalize_list,
    normalize_summary,
)


def _graph_message(**overrides):
    message = {
        "id": "AAMk-1",
        "subject": "Invoice",
        "bodyPreview": "Please find attached",
        "receivedDateTime": "2024-01-01T10:00:00Z",
        "hasAttachments": True,
        "from": {"emailAddress": {"name": "Dana", "address": "dana@example.com"}},
        "toRecipients": [{"emailAddress": {"name": "", "address": "me@example.com"}}],
        "ccRecipients": [{"emailAddress": {"name": "Eve", "address": "eve@example.com"}}, {"emailAddress": {}}],
        "replyTo": [{"emailAddress": {"name": "Billing", "address": "billing@example.com"}}],
        "body": {"contentType": "html", "content": '<div>See <img src="CID:Logo@01">.</div>'},
        "attachments": [
            {
                "@odata.type": "#microsoft.graph.fileAttachment",
                "id": "att-1",
                "name": "logo.png",
                "contentType": "image/png",
                "size": 512,
                "isInline": True,
                "contentId": "<logo@01>",
            },
            {
                "@odata.type": "#microsoft.graph.fileAttachment",
                "id": "att-2",
                "name": "invoice.pdf",
                "contentType": "application/pdf",
                "size": 4096,
                "isInline": False,
                "contentId": None,
            },
        ],
    }
    message.update(overrides)
    return message


class TestOutlookNormalizeDetail:
    def test_inline_reference_rewritten_case_insensitively(self):
        content = normalize_detail(_graph_message())
        assert "CID:Logo@01" not in content.body
        assert "service=outlook&amp;messageId=AAMk-1&amp;attachmentId=att-1&amp;disposition=inline" in content.body
        assert content.content_type == "html"

    def test_attachments_normalized(self):
        content = normalize_detail(_graph_message())
        first, second = content.attachments
        assert first.is_inline is True
        assert first.content_id == "logo@01"
        assert second.is_inline is False
        assert second.content_id is None
        assert second.size == 4096

    def test_text_body_passes_through(self):
        content = normalize_detail(_graph_message(body={"contentType": "text", "content": "line1\n<b>line2</b>"}))
        assert content.content_type == "text"
        assert content.body == "line1\n<b>line2</b>"

    def test_missing_body_yields_empty_string(self):
        content = normalize_detail(_graph_message(body=None, attachments=None))
        assert content.body == ""
        assert content.attachments == []

    def test_recipients(self):
        content = normalize_detail(_graph_message())
        assert content.sender.email == "dana@example.com"
        assert content.from_ == "Dana"
        assert [r.email for r in content.to] == ["me@example.com"]
        assert [r.email for r in content.cc] == ["eve@example.com"]
        assert content.reply_to[0].name == "Billing"
        assert content.service is EmailService.OUTLOOK

    def test_missing_id_raises(self):
        with pytest.raises(NormalizationError):
            normalize_detail(_graph_message(id=None))


class TestOutlookListing:
    def test_summary(self):
        item = normalize_summary(_graph_message())
        assert item.id == "AAMk-1"
        assert item.snippet == "Please find attached"
        assert item.date == "2024-01-01T10:00:00Z"
        assert item.has_attachments is True

    def test_from_falls_back_to_address(self):
        message = _graph_message(**{"from": {"emailAddress": {"name": "", "address": "x@example.com"}}})
        assert display_from(message) == "x@example.com"
        assert display_from(_graph_message(**{"from": None})) == ""

    def test_list_skips_malformed(self):
        items = normalize_list([_graph_message(), {"subject": "no id"}])
        assert [i.id for i in items] == ["AAMk-1"]
