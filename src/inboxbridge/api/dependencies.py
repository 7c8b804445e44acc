"""Process-wide singletons and their FastAPI dependency functions."""

from __future__ import annotations

from fastapi import Depends
from loguru import logger

from inboxbridge.application.cache import EmailContentCache
from inboxbridge.application.ports import MailProvider, SubscriptionRegistry
from inboxbridge.application.use_cases.list_messages import ListMessagesUseCase
from inboxbridge.application.use_cases.mailbox_refresh import MailboxRefreshUseCase
from inboxbridge.domain.models import EmailService
from inboxbridge.infrastructure.crypto import TokenCipher, get_cipher
from inboxbridge.infrastructure.email.providers.gmail import GmailProvider
from inboxbridge.infrastructure.email.providers.outlook import OutlookProvider
from inboxbridge.infrastructure.http.session import SessionResolver
from inboxbridge.infrastructure.settings import Settings, get_settings
from inboxbridge.infrastructure.sqlite import get_sqlite_client
from inboxbridge.infrastructure.stores import TokenStore, get_token_store

_providers: dict[EmailService, MailProvider] | None = None
_cache: EmailContentCache | None = None
_refresh: MailboxRefreshUseCase | None = None


def get_providers() -> dict[EmailService, MailProvider]:
    global _providers
    if _providers is None:
        settings = get_settings()
        _providers = {
            EmailService.GMAIL: GmailProvider.from_settings(settings),
            EmailService.OUTLOOK: OutlookProvider.from_settings(settings),
        }
    return _providers


def get_email_cache() -> EmailContentCache:
    global _cache
    if _cache is None:
        _cache = EmailContentCache(ttl_seconds=get_settings().email_cache_ttl_seconds)
    return _cache


def get_subscription_registry() -> SubscriptionRegistry | None:
    """The SQLite registry, or None when the database cannot be opened."""
    try:
        return get_sqlite_client()
    except Exception as e:
        logger.warning(f"Subscription registry unavailable: {e}")
        return None


def cipher_dependency() -> TokenCipher:
    return get_cipher()


def token_store_dependency() -> TokenStore:
    return get_token_store()


def get_session_resolver(
    providers: dict[EmailService, MailProvider] = Depends(get_providers),
    token_store: TokenStore = Depends(token_store_dependency),
    cipher: TokenCipher = Depends(cipher_dependency),
    settings: Settings = Depends(get_settings),
) -> SessionResolver:
    return SessionResolver(providers, token_store, cipher, settings)


def get_list_messages(
    providers: dict[EmailService, MailProvider] = Depends(get_providers),
) -> ListMessagesUseCase:
    return ListMessagesUseCase(providers)


def get_mailbox_refresh() -> MailboxRefreshUseCase:
    """Singleton: it keeps per-account Gmail history checkpoints."""
    global _refresh
    if _refresh is None:
        _refresh = MailboxRefreshUseCase(
            providers=get_providers(),
            cache=get_email_cache(),
            token_store=get_token_store(),
            registry=get_subscription_registry(),
        )
    return _refresh
