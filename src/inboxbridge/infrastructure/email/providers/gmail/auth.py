"""Google OAuth2 token lifecycle."""

from __future__ import annotations

import time
from typing import Any

from inboxbridge.domain.entities import GoogleToken
from inboxbridge.infrastructure.email.providers.oauth import OAuthLifecycle
from inboxbridge.infrastructure.settings import Settings

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]


class GoogleAuth(OAuthLifecycle[GoogleToken]):
    """Exchanges and refreshes Google tokens. ``expiry_date`` is kept in epoch ms."""

    provider = "gmail"
    authorize_url = GOOGLE_AUTHORIZE_URL
    token_url = GOOGLE_TOKEN_URL
    default_scopes = GMAIL_SCOPES

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "GoogleAuth":
        secret = settings.google_client_secret
        return cls(
            client_id=settings.google_client_id,
            client_secret=secret.get_secret_value() if secret else None,
            redirect_uri=settings.google_redirect,
            timeout=settings.http_timeout_seconds,
            **kwargs,
        )

    def required_settings(self) -> dict[str, str | None]:
        return {
            "GOOGLE_CLIENT_ID": self.client_id,
            "GOOGLE_CLIENT_SECRET": self.client_secret,
        }

    def authorization_params(self, scopes: list[str]) -> dict[str, str]:
        return {
            "client_id": self.client_id or "",
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(scopes),
            "access_type": "offline",
            "prompt": "consent",
            "include_granted_scopes": "true",
        }

    def token_from_response(self, data: dict[str, Any], previous: GoogleToken | None = None) -> GoogleToken:
        expiry_date = None
        if data.get("expires_in"):
            expiry_date = int(time.time() * 1000) + int(data["expires_in"]) * 1000

        # Google omits the refresh token on refresh grants
        refresh_token = data.get("refresh_token") or (previous.refresh_token if previous else None)
        return GoogleToken(
            access_token=data["access_token"],
            refresh_token=refresh_token,
            scope=data.get("scope") or (previous.scope if previous else ""),
            token_type=data.get("token_type") or "Bearer",
            id_token=data.get("id_token") or (previous.id_token if previous else None),
            expiry_date=expiry_date,
        )
