"""Mail routes: listing, message content and attachment download."""

from __future__ import annotations

from typing import Literal, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, Request, Response

from inboxbridge.api.dependencies import get_email_cache, get_list_messages, get_providers, get_session_resolver
from inboxbridge.application.cache import EmailContentCache
from inboxbridge.application.ports import MailProvider
from inboxbridge.application.use_cases.fetch_message import FetchMessageUseCase
from inboxbridge.application.use_cases.list_messages import ListMessagesUseCase
from inboxbridge.domain.models import EmailService
from inboxbridge.infrastructure.http.cookies import copy_set_cookies
from inboxbridge.infrastructure.http.session import SessionResolver

router = APIRouter()


def content_disposition(name: str, inline: bool = False) -> str:
    kind = "inline" if inline else "attachment"
    ascii_name = name.encode("ascii", "ignore").decode().replace('"', "") or "attachment"
    return f"{kind}; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(name)}"


@router.get("/email/list")
async def list_emails(
    request: Request,
    response: Response,
    service: Optional[EmailService] = None,
    filter: Optional[str] = None,
    resolver: SessionResolver = Depends(get_session_resolver),
    use_case: ListMessagesUseCase = Depends(get_list_messages),
) -> dict:
    """List one provider, or every connected provider when ``service`` is omitted."""
    if service is not None:
        sessions = [await resolver.resolve(service, request, response)]
    else:
        sessions = await resolver.resolve_all(request, response)

    emails = await use_case.execute([s.session for s in sessions], filter)
    return {"emails": [e.model_dump(by_alias=True, mode="json") for e in emails]}


@router.get("/email/message")
async def get_message(
    request: Request,
    response: Response,
    service: EmailService,
    id: str = Query(..., min_length=1),
    resolver: SessionResolver = Depends(get_session_resolver),
    providers: dict[EmailService, MailProvider] = Depends(get_providers),
    cache: EmailContentCache = Depends(get_email_cache),
) -> dict:
    resolved = await resolver.resolve(service, request, response)
    content = await FetchMessageUseCase(providers[service], cache).execute(resolved.session, id)
    return content.model_dump(by_alias=True, mode="json")


@router.get("/email/attachment")
async def get_attachment(
    request: Request,
    response: Response,
    service: EmailService,
    message_id: str = Query(..., alias="messageId", min_length=1),
    attachment_id: str = Query(..., alias="attachmentId", min_length=1),
    disposition: Literal["attachment", "inline"] = "attachment",
    resolver: SessionResolver = Depends(get_session_resolver),
    providers: dict[EmailService, MailProvider] = Depends(get_providers),
    cache: EmailContentCache = Depends(get_email_cache),
) -> Response:
    resolved = await resolver.resolve(service, request, response)
    payload = await FetchMessageUseCase(providers[service], cache).attachment(
        resolved.session, message_id, attachment_id
    )
    download = Response(
        content=payload.data,
        media_type=payload.content_type,
        headers={"Content-Disposition": content_disposition(payload.name, disposition == "inline")},
    )
    return copy_set_cookies(response, download)
