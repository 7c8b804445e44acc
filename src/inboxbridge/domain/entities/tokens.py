"""OAuth token records, one variant per provider."""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class GoogleToken(BaseModel):
    """Google token record. ``expiry_date`` is epoch milliseconds."""

    model_config = ConfigDict(extra="ignore")

    provider: Literal["gmail"] = "gmail"
    access_token: str
    refresh_token: str | None = None
    scope: str = ""
    token_type: str = "Bearer"
    id_token: str | None = None
    expiry_date: int | None = None

    @property
    def expires_at(self) -> datetime | None:
        if self.expiry_date is None:
            return None
        return datetime.fromtimestamp(self.expiry_date / 1000, tz=timezone.utc)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expiry_date is None:
            return False
        now_ms = (now.timestamp() if now else time.time()) * 1000
        return self.expiry_date <= now_ms


class OutlookToken(BaseModel):
    """Microsoft identity platform token record. ``expires_at`` is ISO-8601."""

    model_config = ConfigDict(extra="ignore")

    provider: Literal["outlook"] = "outlook"
    access_token: str
    refresh_token: str | None = None
    token_type: str = "Bearer"
    scope: str = ""
    expires_in: int | None = None
    ext_expires_in: int | None = None
    expires_at: str | None = None

    @property
    def expires_at_dt(self) -> datetime | None:
        if not self.expires_at:
            return None
        dt = datetime.fromisoformat(self.expires_at.replace("Z", "+00:00"))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt

    def is_expired(self, now: datetime | None = None) -> bool:
        expires = self.expires_at_dt
        if expires is None:
            return False
        return expires <= (now or datetime.now(timezone.utc))

    @staticmethod
    def expiry_from_seconds(expires_in: int, now: datetime | None = None) -> str:
        start = now or datetime.now(timezone.utc)
        return (start + timedelta(seconds=expires_in)).isoformat()


TokenData = Annotated[Union[GoogleToken, OutlookToken], Field(discriminator="provider")]

_token_adapter: TypeAdapter[TokenData] = TypeAdapter(TokenData)


def parse_token(data: dict[str, Any]) -> GoogleToken | OutlookToken:
    """Validate a raw token mapping into its provider variant.

    Records written before the ``provider`` tag existed are classified by
    their expiry field.
    """
    if "provider" not in data:
        data = dict(data)
        if "expiry_date" in data:
            data["provider"] = "gmail"
        elif "expires_at" in data or "expires_in" in data:
            data["provider"] = "outlook"
    return _token_adapter.validate_python(data)


def token_expiry(token: GoogleToken | OutlookToken) -> datetime | None:
    """Absolute expiry of either token variant."""
    if isinstance(token, GoogleToken):
        return token.expires_at
    return token.expires_at_dt
