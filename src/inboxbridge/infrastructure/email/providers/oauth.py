"""Shared OAuth2 token lifecycle for the mail providers.

Each provider subclass supplies its endpoints, credentials and the shape of
its token record. Tokens move UNISSUED -> ACTIVE -> EXPIRED -> ACTIVE (via
refresh) -> ABSENT; expiry is only noticed when a token is about to be used.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar
from urllib.parse import urlencode

import httpx
from loguru import logger

from inboxbridge.domain.entities import GoogleToken, OutlookToken
from inboxbridge.domain.errors import (
    AuthExchangeError,
    ConfigError,
    InboxBridgeError,
    TokenRefreshError,
)

T = TypeVar("T", GoogleToken, OutlookToken)


class OAuthLifecycle(Generic[T]):
    """Authorization-code exchange and refresh-token grant over HTTP."""

    provider: str = ""
    authorize_url: str = ""
    token_url: str = ""
    default_scopes: list[str] = []

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        redirect_uri: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout
        self._transport = transport
        self._validated = False

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def required_settings(self) -> dict[str, str | None]:
        """Map of environment variable name to configured value."""
        raise NotImplementedError

    def authorization_params(self, scopes: list[str]) -> dict[str, str]:
        raise NotImplementedError

    def token_from_response(self, data: dict[str, Any], previous: T | None = None) -> T:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    def missing_settings(self) -> list[str]:
        return [name for name, value in self.required_settings().items() if not value]

    def validate_config(self) -> None:
        """Raise ConfigError naming every missing credential. Remembered after success."""
        if self._validated:
            return
        missing = self.missing_settings()
        if missing:
            raise ConfigError(self.provider, missing)
        self._validated = True

    def build_authorization_url(self, scopes: list[str] | None = None, state: str | None = None) -> str:
        self.validate_config()
        params = self.authorization_params(scopes or self.default_scopes)
        if state:
            params["state"] = state
        return f"{self.authorize_url}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> T:
        self.validate_config()
        data = await self._token_request(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "redirect_uri": self.redirect_uri,
                "grant_type": "authorization_code",
            },
            error_cls=AuthExchangeError,
        )
        if not data.get("access_token"):
            logger.error(f"No access token received from {self.provider}")
            raise AuthExchangeError(f"{self.provider} did not return an access token")

        logger.info(f"Obtained {self.provider} tokens from authorization code")
        return self.token_from_response(data)

    async def refresh_if_needed(self, token: T) -> T:
        """Return ``token`` unchanged while valid, otherwise a refreshed copy."""
        if not token.is_expired():
            return token
        if not token.refresh_token:
            raise TokenRefreshError(f"{self.provider} token expired and no refresh token is available")

        self.validate_config()
        data = await self._token_request(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": token.refresh_token,
                "grant_type": "refresh_token",
            },
            error_cls=TokenRefreshError,
        )
        if not data.get("access_token"):
            raise TokenRefreshError(f"{self.provider} refresh returned no access token")

        logger.info(f"Refreshed {self.provider} access token")
        return self.token_from_response(data, previous=token)

    async def _token_request(
        self, form: dict[str, Any], error_cls: type[InboxBridgeError]
    ) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.token_url,
                    data=form,
                    headers={"Accept": "application/json"},
                )
        except httpx.TimeoutException as e:
            logger.error(f"{self.provider} token endpoint timeout")
            raise error_cls(f"{self.provider} token endpoint timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"{self.provider} token endpoint unreachable: {e}")
            raise error_cls(f"{self.provider} token endpoint unreachable: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.status_code != 200:
            reason = data.get("error_description") or data.get("error") or response.text[:200]
            logger.error(f"{self.provider} token endpoint error {response.status_code}: {reason}")
            # Rejected authorization codes surface as 400
            rejected = error_cls is AuthExchangeError and 400 <= response.status_code < 500
            raise error_cls(
                f"{self.provider} token request failed: {response.status_code} {reason}",
                status_code=400 if rejected else None,
            )
        return data
