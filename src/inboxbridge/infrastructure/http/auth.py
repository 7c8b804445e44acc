"""OAuth entry points: consent redirect, callback, logout and a config report."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Response
from fastapi.responses import RedirectResponse
from loguru import logger

from inboxbridge.api.dependencies import cipher_dependency, get_providers, token_store_dependency
from inboxbridge.application.ports import MailProvider
from inboxbridge.domain.errors import BadRequestError
from inboxbridge.domain.models import EmailService
from inboxbridge.infrastructure.crypto import TokenCipher
from inboxbridge.infrastructure.http.cookies import (
    SUBSCRIPTION_COOKIE,
    auth_cookie_name,
    clear_cookie,
    set_token_cookie,
)
from inboxbridge.infrastructure.settings import DEFAULT_ENCRYPTION_KEY, Settings, get_settings
from inboxbridge.infrastructure.stores import TokenStore

router = APIRouter()


# ============================================================================
# Consent
# ============================================================================


@router.get("/auth/debug")
async def auth_debug(
    providers: dict[EmailService, MailProvider] = Depends(get_providers),
    settings: Settings = Depends(get_settings),
) -> dict:
    """Report which providers are configured. Never returns secret values."""
    key = settings.encryption_key.get_secret_value()
    warnings = []
    if len(key) < 32:
        warnings.append("ENCRYPTION_KEY is shorter than 32 characters")
    if key == DEFAULT_ENCRYPTION_KEY:
        warnings.append("ENCRYPTION_KEY is the built-in development default")

    report = {}
    for service, provider in providers.items():
        missing = provider.auth.missing_settings()
        report[service.value] = {
            "configured": not missing,
            "missing": missing,
            "redirectUri": provider.auth.redirect_uri,
        }

    return {
        "environment": settings.environment,
        "providers": report,
        "pubsubTopicConfigured": bool(settings.pubsub_topic_name),
        "warnings": warnings,
    }


@router.get("/auth/{provider}")
async def start_auth(
    provider: EmailService,
    providers: dict[EmailService, MailProvider] = Depends(get_providers),
) -> RedirectResponse:
    url = providers[provider].auth.build_authorization_url()
    logger.info(f"Redirecting to {provider.value} consent page")
    return RedirectResponse(url)


# ============================================================================
# Callback
# ============================================================================


@router.get("/auth/{provider}/callback")
async def auth_callback(
    provider: EmailService,
    code: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    providers: dict[EmailService, MailProvider] = Depends(get_providers),
    token_store: TokenStore = Depends(token_store_dependency),
    cipher: TokenCipher = Depends(cipher_dependency),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    if error:
        logger.warning(f"{provider.value} authorization rejected: {error} {error_description or ''}".strip())
        if provider is EmailService.OUTLOOK:
            return RedirectResponse("/?error=auth_rejected", status_code=302)
        raise BadRequestError(f"Authorization failed: {error}")
    if not code:
        raise BadRequestError("Missing authorization code")

    mail = providers[provider]
    token = await mail.auth.exchange_code(code)
    account = await mail.account_email(token)
    await token_store.store(account, token)
    logger.info(f"Connected {provider.value} account {account}")

    response = RedirectResponse(settings.dashboard_path, status_code=302)
    set_token_cookie(response, account, token, cipher, settings)
    return response


@router.post("/auth/{provider}/logout")
async def logout(
    provider: EmailService,
    response: Response,
    settings: Settings = Depends(get_settings),
) -> dict:
    clear_cookie(response, auth_cookie_name(provider), settings)
    if provider is EmailService.OUTLOOK:
        clear_cookie(response, SUBSCRIPTION_COOKIE, settings)
    logger.info(f"Cleared {provider.value} session cookie")
    return {"status": "logged_out", "provider": provider.value}
