"""Push delivery endpoints for Gmail (Pub/Sub) and Outlook (Graph)."""

from __future__ import annotations

import hmac
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from inboxbridge.api.dependencies import get_mailbox_refresh
from inboxbridge.application.use_cases.mailbox_refresh import (
    MailboxRefreshUseCase,
    OutlookChange,
    decode_gmail_push,
)
from inboxbridge.domain.errors import BadRequestError, NotAuthenticatedError
from inboxbridge.infrastructure.settings import Settings, get_settings

router = APIRouter()


# ============================================================================
# Request Models
# ============================================================================


class PubSubMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    data: str | None = None
    message_id: str | None = Field(default=None, alias="messageId")
    attributes: dict[str, str] = Field(default_factory=dict)


class PubSubEnvelope(BaseModel):
    """Pub/Sub push delivery wrapping a Gmail watch notification."""

    message: PubSubMessage | None = None
    subscription: str | None = None


class GraphNotification(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    subscription_id: str | None = Field(default=None, alias="subscriptionId")
    client_state: str | None = Field(default=None, alias="clientState")
    change_type: str | None = Field(default=None, alias="changeType")
    resource: Any = None


class GraphNotificationBatch(BaseModel):
    value: list[GraphNotification] = Field(default_factory=list)


# ============================================================================
# Outlook
# ============================================================================


def _validation_echo(token: str) -> PlainTextResponse:
    logger.info("Answering Graph subscription validation handshake")
    return PlainTextResponse(token, status_code=200)


@router.get("/webhook/outlook")
async def outlook_validation(validationToken: Optional[str] = None):
    if validationToken is None:
        raise BadRequestError("Missing validationToken")
    return _validation_echo(validationToken)


@router.post("/webhook/outlook")
async def outlook_notifications(
    request: Request,
    background_tasks: BackgroundTasks,
    validationToken: Optional[str] = None,
    refresh: MailboxRefreshUseCase = Depends(get_mailbox_refresh),
    settings: Settings = Depends(get_settings),
):
    """Validation handshake, or a notification batch acknowledged with 202.

    Every notification must carry the configured clientState; one mismatch
    rejects the whole batch.
    """
    if validationToken is not None:
        return _validation_echo(validationToken)

    try:
        batch = GraphNotificationBatch.model_validate(await request.json())
    except (ValueError, ValidationError) as e:
        raise BadRequestError("Notification body is not a Graph notification batch") from e

    expected = settings.outlook_client_state.get_secret_value()
    for notification in batch.value:
        if not hmac.compare_digest((notification.client_state or "").encode(), expected.encode()):
            logger.warning(f"Outlook notification batch rejected: clientState mismatch ({len(batch.value)} items)")
            raise NotAuthenticatedError("Invalid clientState")

    changes = [
        OutlookChange(
            subscription_id=n.subscription_id,
            resource=n.resource if isinstance(n.resource, str) else None,
            change_type=n.change_type,
        )
        for n in batch.value
    ]
    logger.info(f"Outlook notification batch received: {len(changes)} items")
    background_tasks.add_task(refresh.refresh_outlook, changes)

    return JSONResponse(status_code=202, content={"status": "accepted", "count": len(changes)})


# ============================================================================
# Gmail
# ============================================================================


@router.post("/webhook/gmail")
async def gmail_notification(
    envelope: PubSubEnvelope,
    background_tasks: BackgroundTasks,
    refresh: MailboxRefreshUseCase = Depends(get_mailbox_refresh),
) -> dict:
    if envelope.message is None:
        raise BadRequestError("Push envelope has no message")

    push = decode_gmail_push(envelope.message.data)
    logger.info(f"Gmail push for {push.email_address}, historyId={push.history_id}")
    background_tasks.add_task(refresh.refresh_gmail, push.email_address, push.history_id)

    return {"status": "accepted", "messageId": envelope.message.message_id}
