"""Ports implemented by infrastructure adapters."""

from inboxbridge.application.ports.mail_provider import MailboxHistory, MailProvider, MailSession
from inboxbridge.application.ports.token_backend import SubscriptionRegistry, TokenBackend

__all__ = [
    "MailboxHistory",
    "MailProvider",
    "MailSession",
    "SubscriptionRegistry",
    "TokenBackend",
]
