"""Tests for the best-effort address header parser."""

import pytest

from inboxbridge.infrastructure.email.rfc822 import get_header, parse_address, parse_address_list


class TestParseAddressList:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ('"Doe, Jane" <jane@example.com>', [("Doe, Jane", "jane@example.com")]),
            ("Jane Doe <jane@example.com>", [("Jane Doe", "jane@example.com")]),
            ("<jane@example.com>", [("", "jane@example.com")]),
            ("jane@example.com", [("", "jane@example.com")]),
            (
                "a@example.com, B <b@example.com>,\"C, Jr\" <c@example.com>",
                [("", "a@example.com"), ("B", "b@example.com"), ("C, Jr", "c@example.com")],
            ),
            ('"Say \\"hi\\"" <q@example.com>', [('Say "hi"', "q@example.com")]),
        ],
    )
    def test_accepted_forms(self, value, expected):
        assert [(a.name, a.email) for a in parse_address_list(value)] == expected

    @pytest.mark.parametrize(
        "value",
        [
            None,
            "",
            "   ",
            "undisclosed-recipients:;",
            "no at sign",
            "<>",
            "Jane <jane at example.com>",
            "two@@example.com",
            ",,,",
            12345,
        ],
    )
    def test_malformed_yields_empty_list(self, value):
        assert parse_address_list(value) == []

    def test_bad_segments_are_dropped_good_ones_kept(self):
        result = parse_address_list("garbage, ok@example.com, <also bad>")
        assert [a.email for a in result] == ["ok@example.com"]

    def test_unbalanced_quote_does_not_raise(self):
        assert parse_address_list('"Unclosed <x@example.com>, y@example.com') == []


def test_parse_address_single():
    assert parse_address("  Jane <j@example.com>  ").name == "Jane"
    assert parse_address("nope") is None


def test_get_header_is_case_insensitive():
    headers = [{"name": "Subject", "value": "Hi"}, {"name": "REPLY-TO", "value": "r@example.com"}]
    assert get_header(headers, "subject") == "Hi"
    assert get_header(headers, "Reply-To") == "r@example.com"
    assert get_header(headers, "Cc") == ""
    assert get_header(None, "Cc") == ""
