"""Microsoft identity platform token lifecycle for Outlook mail."""

from __future__ import annotations

from typing import Any

from inboxbridge.domain.entities import OutlookToken
from inboxbridge.infrastructure.email.providers.oauth import OAuthLifecycle
from inboxbridge.infrastructure.settings import Settings

MICROSOFT_LOGIN_BASE = "https://login.microsoftonline.com"
OUTLOOK_SCOPES = ["offline_access", "Mail.Read", "Mail.ReadWrite"]


class OutlookAuth(OAuthLifecycle[OutlookToken]):
    """Exchanges and refreshes Microsoft tokens, recomputing ``expires_at`` each time."""

    provider = "outlook"
    default_scopes = OUTLOOK_SCOPES

    def __init__(self, *args, tenant: str = "common", **kwargs):
        super().__init__(*args, **kwargs)
        self.tenant = tenant
        self.authorize_url = f"{MICROSOFT_LOGIN_BASE}/{tenant}/oauth2/v2.0/authorize"
        self.token_url = f"{MICROSOFT_LOGIN_BASE}/{tenant}/oauth2/v2.0/token"

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "OutlookAuth":
        secret = settings.outlook_client_secret
        return cls(
            client_id=settings.outlook_client_id,
            client_secret=secret.get_secret_value() if secret else None,
            redirect_uri=settings.outlook_redirect,
            timeout=settings.http_timeout_seconds,
            tenant=settings.outlook_tenant,
            **kwargs,
        )

    def required_settings(self) -> dict[str, str | None]:
        return {
            "OUTLOOK_CLIENT_ID": self.client_id,
            "OUTLOOK_CLIENT_SECRET": self.client_secret,
        }

    def authorization_params(self, scopes: list[str]) -> dict[str, str]:
        return {
            "client_id": self.client_id or "",
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "response_mode": "query",
            "scope": " ".join(scopes),
        }

    def token_from_response(self, data: dict[str, Any], previous: OutlookToken | None = None) -> OutlookToken:
        expires_in = int(data["expires_in"]) if data.get("expires_in") else None
        return OutlookToken(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or (previous.refresh_token if previous else None),
            token_type=data.get("token_type") or "Bearer",
            scope=data.get("scope") or (previous.scope if previous else ""),
            expires_in=expires_in,
            ext_expires_in=data.get("ext_expires_in"),
            expires_at=OutlookToken.expiry_from_seconds(expires_in) if expires_in else None,
        )
