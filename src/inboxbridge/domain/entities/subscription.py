from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

@dataclass(frozen=True)
class Subscription:
    """A provider push subscription and the mailbox that owns it."""
    id: str
    provider: str
    expiration: str

    # Which account's token serves notifications for this subscription
    account_id: Optional[str] = None
    resource: Optional[str] = None
