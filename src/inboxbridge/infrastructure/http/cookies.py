"""Encrypted auth and subscription cookies."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import Request, Response
from pydantic import BaseModel, ValidationError

from inboxbridge.domain.entities import Subscription, TokenData
from inboxbridge.domain.errors import DecryptError
from inboxbridge.domain.models import EmailService
from inboxbridge.infrastructure.crypto import TokenCipher
from inboxbridge.infrastructure.settings import Settings

SUBSCRIPTION_COOKIE = "outlook_subscription"


class TokenCookie(BaseModel):
    """Cookie payload: the token plus the account it belongs to."""

    account: str
    token: TokenData


class SubscriptionCookie(BaseModel):
    id: str
    expiration: str
    account: str | None = None


def auth_cookie_name(service: EmailService) -> str:
    return f"{service.value}_auth_token"


def _set_cookie(response: Response, name: str, value: str, max_age: int, settings: Settings) -> None:
    response.set_cookie(
        key=name,
        value=value,
        max_age=max_age,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        path="/",
    )


def set_token_cookie(
    response: Response,
    account: str,
    token: TokenData,
    cipher: TokenCipher,
    settings: Settings,
) -> None:
    payload = TokenCookie(account=account, token=token).model_dump_json()
    _set_cookie(
        response,
        auth_cookie_name(EmailService(token.provider)),
        cipher.encrypt(payload),
        settings.token_cookie_max_age_seconds,
        settings,
    )


def read_token_cookie(request: Request, service: EmailService, cipher: TokenCipher) -> TokenCookie | None:
    """Decode the provider's auth cookie. Raises DecryptError when it is unreadable."""
    name = auth_cookie_name(service)
    blob = request.cookies.get(name)
    if not blob:
        return None
    try:
        cookie = TokenCookie.model_validate_json(cipher.decrypt(blob))
    except DecryptError as e:
        raise DecryptError(e.detail, cookie=name) from e
    except ValidationError as e:
        raise DecryptError("Auth cookie payload is not a token record", cookie=name) from e
    if cookie.token.provider != service.value:
        raise DecryptError("Auth cookie belongs to another provider", cookie=name)
    return cookie


def clear_cookie(response: Response, name: str, settings: Settings) -> None:
    response.delete_cookie(name, path="/", httponly=True, samesite="lax", secure=settings.secure_cookies)


def set_subscription_cookie(
    response: Response,
    subscription: Subscription,
    cipher: TokenCipher,
    settings: Settings,
) -> None:
    """Store the subscription until it expires."""
    max_age = settings.token_cookie_max_age_seconds
    if subscription.expiration:
        expires = datetime.fromisoformat(subscription.expiration.replace("Z", "+00:00"))
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        max_age = max(0, int((expires - datetime.now(timezone.utc)).total_seconds()))

    payload = SubscriptionCookie(
        id=subscription.id,
        expiration=subscription.expiration,
        account=subscription.account_id,
    ).model_dump_json()
    _set_cookie(response, SUBSCRIPTION_COOKIE, cipher.encrypt(payload), max_age, settings)


def read_subscription_cookie(request: Request, cipher: TokenCipher) -> SubscriptionCookie | None:
    blob = request.cookies.get(SUBSCRIPTION_COOKIE)
    if not blob:
        return None
    try:
        return SubscriptionCookie.model_validate_json(cipher.decrypt(blob))
    except DecryptError as e:
        raise DecryptError(e.detail, cookie=SUBSCRIPTION_COOKIE) from e
    except ValidationError as e:
        raise DecryptError("Subscription cookie is unreadable", cookie=SUBSCRIPTION_COOKIE) from e


def copy_set_cookies(source: Response, target: Response) -> Response:
    """Carry cookies set on an injected response over to a response returned directly."""
    for value in source.headers.getlist("set-cookie"):
        target.headers.append("set-cookie", value)
    return target
