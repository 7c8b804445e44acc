"""Error hierarchy shared by every layer.

Each error carries a stable machine-readable ``code`` and the HTTP status
the API layer renders it with.
"""

from __future__ import annotations


class InboxBridgeError(Exception):
    """Base error for InboxBridge."""

    code = "internal_error"
    status_code = 500

    def __init__(self, detail: str = "", *, status_code: int | None = None) -> None:
        super().__init__(detail or self.__class__.__name__)
        self.detail = detail or self.__class__.__name__
        if status_code is not None:
            self.status_code = status_code


class ConfigError(InboxBridgeError):
    """Required configuration is missing."""

    code = "config_error"

    def __init__(self, provider: str, missing: list[str]) -> None:
        self.provider = provider
        self.missing = list(missing)
        super().__init__(
            f"Missing required {provider} OAuth environment variables: {', '.join(self.missing)}"
        )


class AuthExchangeError(InboxBridgeError):
    """The provider rejected an authorization code or omitted the access token."""

    code = "auth_exchange_failed"


class NotAuthenticatedError(InboxBridgeError):
    """No usable credentials for the requested provider."""

    code = "not_authenticated"
    status_code = 401


class DecryptError(NotAuthenticatedError):
    """An encrypted token blob could not be decrypted.

    ``cookie`` names the cookie the blob came from, if any, so it can be cleared.
    """

    code = "invalid_token"

    def __init__(self, detail: str = "", *, cookie: str | None = None) -> None:
        super().__init__(detail or "Stored credentials could not be decrypted")
        self.cookie = cookie


class TokenRefreshError(NotAuthenticatedError):
    """The access token expired and could not be refreshed."""

    code = "reauth_required"


class ProviderApiError(InboxBridgeError):
    """An upstream provider API call failed."""

    code = "provider_error"

    def __init__(self, provider: str, upstream_status: int, detail: str) -> None:
        self.provider = provider
        self.upstream_status = upstream_status
        super().__init__(
            f"{provider} API error: {upstream_status} {detail}",
            status_code=404 if upstream_status == 404 else 500,
        )


class NormalizationError(InboxBridgeError):
    """A provider message could not be shaped into the canonical model."""

    code = "normalization_error"


class NotFoundError(InboxBridgeError):
    code = "not_found"
    status_code = 404


class BadRequestError(InboxBridgeError):
    code = "bad_request"
    status_code = 400
