"""Thin async wrapper over Microsoft Graph mail endpoints."""

from __future__ import annotations

from typing import Any

from inboxbridge.infrastructure.email.providers.rest import BearerApiClient, path_segment

GRAPH_API_BASE = "https://graph.microsoft.com/v1.0"
LIST_FIELDS = "id,subject,bodyPreview,from,receivedDateTime,hasAttachments"
INBOX_RESOURCE = "me/mailFolders('inbox')/messages"


class GraphClient(BearerApiClient):
    provider = "outlook"
    base_url = GRAPH_API_BASE

    async def get_me(self, access_token: str) -> dict[str, Any]:
        return await self.request("GET", "/me", access_token)

    async def list_messages(self, access_token: str, filter_: str | None, top: int) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"$top": top, "$select": LIST_FIELDS}
        if filter_:
            params["$filter"] = filter_
        data = await self.request("GET", "/me/messages", access_token, params=params)
        return data.get("value", [])

    async def get_message(self, access_token: str, message_id: str) -> dict[str, Any]:
        return await self.request(
            "GET", f"/me/messages/{path_segment(message_id)}", access_token, params={"$expand": "attachments"}
        )

    async def get_attachment(self, access_token: str, message_id: str, attachment_id: str) -> dict[str, Any]:
        path = f"/me/messages/{path_segment(message_id)}/attachments/{path_segment(attachment_id)}"
        return await self.request("GET", path, access_token)

    async def create_subscription(
        self, access_token: str, notification_url: str, client_state: str, expiration: str
    ) -> dict[str, Any]:
        return await self.request(
            "POST",
            "/subscriptions",
            access_token,
            json={
                "changeType": "created,updated",
                "notificationUrl": notification_url,
                "resource": INBOX_RESOURCE,
                "expirationDateTime": expiration,
                "clientState": client_state,
            },
        )

    async def renew_subscription(self, access_token: str, subscription_id: str, expiration: str) -> dict[str, Any]:
        return await self.request(
            "PATCH",
            f"/subscriptions/{path_segment(subscription_id)}",
            access_token,
            json={"expirationDateTime": expiration},
        )
