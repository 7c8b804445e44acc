from inboxbridge.infrastructure.email.providers.gmail.auth import GoogleAuth
from inboxbridge.infrastructure.email.providers.gmail.client import GmailApiClient
from inboxbridge.infrastructure.email.providers.gmail.provider import GmailProvider

__all__ = ["GoogleAuth", "GmailApiClient", "GmailProvider"]
