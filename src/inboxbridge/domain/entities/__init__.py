"""Domain entities."""

from inboxbridge.domain.entities.subscription import Subscription
from inboxbridge.domain.entities.tokens import (
    GoogleToken,
    OutlookToken,
    TokenData,
    parse_token,
    token_expiry,
)

__all__ = [
    "GoogleToken",
    "OutlookToken",
    "TokenData",
    "parse_token",
    "token_expiry",
    "Subscription",
]
