"""Thin async wrapper over the Gmail REST API (users/me)."""

from __future__ import annotations

import asyncio
from typing import Any

from inboxbridge.infrastructure.email.providers.rest import BearerApiClient, path_segment

GMAIL_API_BASE = "https://gmail.googleapis.com/gmail/v1/users/me"


class GmailApiClient(BearerApiClient):
    provider = "gmail"
    base_url = GMAIL_API_BASE

    async def get_profile(self, access_token: str) -> dict[str, Any]:
        return await self.request("GET", "/profile", access_token)

    async def list_message_ids(self, access_token: str, query: str, max_results: int) -> list[str]:
        data = await self.request(
            "GET",
            "/messages",
            access_token,
            params={"q": query, "maxResults": max_results},
        )
        return [m["id"] for m in data.get("messages", []) if m.get("id")]

    async def get_message(self, access_token: str, message_id: str) -> dict[str, Any]:
        return await self.request(
            "GET", f"/messages/{path_segment(message_id)}", access_token, params={"format": "full"}
        )

    async def get_messages(self, access_token: str, message_ids: list[str]) -> list[dict[str, Any]]:
        return list(await asyncio.gather(*(self.get_message(access_token, mid) for mid in message_ids)))

    async def get_attachment(self, access_token: str, message_id: str, attachment_id: str) -> dict[str, Any]:
        path = f"/messages/{path_segment(message_id)}/attachments/{path_segment(attachment_id)}"
        return await self.request("GET", path, access_token)

    async def watch(self, access_token: str, topic_name: str) -> dict[str, Any]:
        return await self.request(
            "POST",
            "/watch",
            access_token,
            json={"topicName": topic_name, "labelIds": ["INBOX"]},
        )

    async def list_history(self, access_token: str, start_history_id: str) -> dict[str, Any]:
        return await self.request(
            "GET",
            "/history",
            access_token,
            params={"startHistoryId": start_history_id, "historyTypes": "messageAdded"},
        )
