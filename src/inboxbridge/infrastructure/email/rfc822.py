"""Best-effort parsing of RFC 2822-style address headers.

Splitting and unquoting are done by ``email.utils.getaddresses``; each
result is then checked against a simple ``local@domain`` pattern. Accepted
forms, comma separated (commas inside double quotes do not split):

    "Display Name" <local@domain>
    Display Name <local@domain>
    <local@domain>
    local@domain

Anything else is dropped; a header with no usable segment
yields an empty list.
"""

from __future__ import annotations

import re
from email.utils import getaddresses

from inboxbridge.domain.models import EmailAddress

_ADDR = r"[^\s@<>\",;]+@[^\s@<>\",;]+"
_BARE_RE = re.compile(rf"^(?P<email>{_ADDR})$")

def parse_address(segment: str) -> EmailAddress | None:
    """Parse one address segment, or return None if it is not exactly one usable address."""
    addresses = parse_address_list(segment)
    return addresses[0] if len(addresses) == 1 else None


def parse_address_list(value: str | None) -> list[EmailAddress]:
    """Parse a header value into addresses. Never raises."""
    if not value or not isinstance(value, str):
        return []
    out: list[EmailAddress] = []
    for name, email in getaddresses([value]):
        email = email.strip()
        if _BARE_RE.match(email):
            out.append(EmailAddress(name=name.strip(), email=email))
    return out


def get_header(headers: list[dict] | None, name: str) -> str:
    """Case-insensitive header lookup over a provider ``[{name, value}]`` list."""
    wanted = name.lower()
    for header in headers or []:
        if (header.get("name") or "").lower() == wanted:
            return header.get("value") or ""
    return ""
