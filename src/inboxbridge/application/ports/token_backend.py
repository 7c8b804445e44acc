from __future__ import annotations
from typing import Optional, Protocol

from inboxbridge.domain.entities import Subscription, TokenData

class TokenBackend(Protocol):
    """Durable source of truth for tokens, keyed by (provider, account)."""

    def load(self, provider: str, account_id: str) -> Optional[TokenData]: ...
    def save(self, account_id: str, token: TokenData) -> None: ...
    def delete(self, provider: str, account_id: str) -> None: ...

class SubscriptionRegistry(Protocol):
    def save_subscription(self, subscription: Subscription) -> None: ...
    def load_subscription(self, subscription_id: str) -> Optional[Subscription]: ...
