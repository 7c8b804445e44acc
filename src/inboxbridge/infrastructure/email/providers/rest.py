"""Bearer-authenticated JSON client shared by the provider REST adapters."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
from loguru import logger

from inboxbridge.domain.errors import ProviderApiError


def path_segment(value: str) -> str:
    """Percent-encode an id for use as a single URL path segment."""
    return quote(value, safe="")


class BearerApiClient:
    """Issues one request per call with a fresh ``httpx.AsyncClient``."""

    provider: str = ""
    base_url: str = ""

    def __init__(self, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None):
        self.timeout = timeout
        self._transport = transport

    async def request(
        self,
        method: str,
        path: str,
        access_token: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, params=params, json=json, headers=headers)
        except httpx.TimeoutException as e:
            logger.error(f"{self.provider} API timeout: {method} {path}")
            raise ProviderApiError(self.provider, 504, "request timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"{self.provider} API unreachable: {method} {path}: {e}")
            raise ProviderApiError(self.provider, 502, str(e)) from e

        if response.status_code >= 400:
            detail = self._error_detail(response)
            logger.error(f"{self.provider} API error {response.status_code} on {method} {path}: {detail}")
            raise ProviderApiError(self.provider, response.status_code, detail)

        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ProviderApiError(self.provider, response.status_code, "invalid JSON response") from e

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text[:200]
        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict):
            return error.get("message") or error.get("code") or str(error)
        if isinstance(error, str):
            return data.get("error_description") or error
        return response.text[:200]
