"""Resolve a usable provider session from the request's auth cookie."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request, Response
from loguru import logger

from inboxbridge.application.ports import MailProvider, MailSession
from inboxbridge.domain.errors import NotAuthenticatedError
from inboxbridge.domain.models import EmailService
from inboxbridge.infrastructure.crypto import TokenCipher
from inboxbridge.infrastructure.http.cookies import auth_cookie_name, read_token_cookie, set_token_cookie
from inboxbridge.infrastructure.settings import Settings
from inboxbridge.infrastructure.stores import TokenStore


@dataclass(frozen=True)
class AccountSession:
    account: str
    session: MailSession


class SessionResolver:
    """Cookie -> token -> (refreshed) session.

    A refreshed token is written back to both the auth cookie on ``response``
    and the token store.
    """

    def __init__(
        self,
        providers: dict[EmailService, MailProvider],
        token_store: TokenStore,
        cipher: TokenCipher,
        settings: Settings,
    ) -> None:
        self.providers = providers
        self.token_store = token_store
        self.cipher = cipher
        self.settings = settings

    def connected(self, request: Request) -> list[EmailService]:
        """Services whose auth cookie is present, in declaration order."""
        return [s for s in EmailService if request.cookies.get(auth_cookie_name(s))]

    async def resolve(self, service: EmailService, request: Request, response: Response) -> AccountSession:
        cookie = read_token_cookie(request, service, self.cipher)
        if cookie is None:
            raise NotAuthenticatedError(f"Not authenticated with {service.value}")

        session = await self.providers[service].ensure_session(cookie.token)
        if session.refreshed:
            logger.info(f"Persisting refreshed {service.value} token for {cookie.account}")
            set_token_cookie(response, cookie.account, session.token, self.cipher, self.settings)
            await self.token_store.store(cookie.account, session.token)
        return AccountSession(account=cookie.account, session=session)

    async def resolve_all(self, request: Request, response: Response) -> list[AccountSession]:
        services = self.connected(request)
        if not services:
            raise NotAuthenticatedError("Not authenticated with any mail provider")
        return [await self.resolve(service, request, response) for service in services]
