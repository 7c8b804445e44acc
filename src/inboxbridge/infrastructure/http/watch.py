"""Push subscription management (Gmail users.watch, Graph subscriptions)."""

from __future__ import annotations

import asyncio
from dataclasses import replace

from fastapi import APIRouter, Depends, Request, Response
from loguru import logger

from inboxbridge.api.dependencies import (
    cipher_dependency,
    get_providers,
    get_session_resolver,
    get_subscription_registry,
)
from inboxbridge.application.ports import MailProvider, SubscriptionRegistry
from inboxbridge.domain.entities import Subscription
from inboxbridge.domain.errors import NotFoundError
from inboxbridge.domain.models import EmailService
from inboxbridge.infrastructure.crypto import TokenCipher
from inboxbridge.infrastructure.http.cookies import read_subscription_cookie, set_subscription_cookie
from inboxbridge.infrastructure.http.session import SessionResolver
from inboxbridge.infrastructure.settings import Settings, get_settings

router = APIRouter()


async def _record(registry: SubscriptionRegistry | None, subscription: Subscription) -> None:
    if registry is None:
        logger.warning(f"No subscription registry, {subscription.provider} subscription {subscription.id} not recorded")
        return
    try:
        await asyncio.to_thread(registry.save_subscription, subscription)
    except Exception as e:
        logger.warning(f"Could not record subscription {subscription.id}: {e}")


def _subscription_body(subscription: Subscription) -> dict:
    body = {
        "provider": subscription.provider,
        "id": subscription.id,
        "expiration": subscription.expiration,
    }
    if subscription.provider == EmailService.GMAIL.value:
        body["historyId"] = subscription.id
    else:
        body["subscriptionId"] = subscription.id
        body["expirationDateTime"] = subscription.expiration
    return body


@router.post("/watch/{provider}")
async def create_watch(
    provider: EmailService,
    request: Request,
    response: Response,
    resolver: SessionResolver = Depends(get_session_resolver),
    providers: dict[EmailService, MailProvider] = Depends(get_providers),
    registry: SubscriptionRegistry | None = Depends(get_subscription_registry),
    cipher: TokenCipher = Depends(cipher_dependency),
    settings: Settings = Depends(get_settings),
) -> dict:
    resolved = await resolver.resolve(provider, request, response)
    subscription = await providers[provider].watch(resolved.session.token)
    subscription = replace(subscription, account_id=resolved.account)

    await _record(registry, subscription)
    if provider is EmailService.OUTLOOK:
        set_subscription_cookie(response, subscription, cipher, settings)
    return _subscription_body(subscription)


@router.patch("/watch/outlook")
async def renew_outlook_watch(
    request: Request,
    response: Response,
    resolver: SessionResolver = Depends(get_session_resolver),
    providers: dict[EmailService, MailProvider] = Depends(get_providers),
    registry: SubscriptionRegistry | None = Depends(get_subscription_registry),
    cipher: TokenCipher = Depends(cipher_dependency),
    settings: Settings = Depends(get_settings),
) -> dict:
    current = read_subscription_cookie(request, cipher)
    if current is None:
        raise NotFoundError("No Outlook subscription to renew")

    resolved = await resolver.resolve(EmailService.OUTLOOK, request, response)
    subscription = await providers[EmailService.OUTLOOK].renew(resolved.session.token, current.id)
    subscription = replace(subscription, account_id=resolved.account)

    await _record(registry, subscription)
    set_subscription_cookie(response, subscription, cipher, settings)
    return _subscription_body(subscription)
