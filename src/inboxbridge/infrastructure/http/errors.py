"""Exception handlers rendering errors as ``{"error": code, "detail": text}``."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from inboxbridge.domain.errors import DecryptError, InboxBridgeError
from inboxbridge.infrastructure.http.cookies import clear_cookie
from inboxbridge.infrastructure.settings import get_settings

_HTTP_CODES = {
    400: "bad_request",
    401: "not_authenticated",
    404: "not_found",
    405: "method_not_allowed",
}


def error_response(status_code: int, code: str, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": code, "detail": detail})


async def handle_domain_error(request: Request, exc: InboxBridgeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.detail}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}")

    response = error_response(exc.status_code, exc.code, exc.detail)
    if isinstance(exc, DecryptError) and exc.cookie:
        clear_cookie(response, exc.cookie, get_settings())
    return response


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part not in ("query", "body", "path"))
        problems.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return error_response(400, "bad_request", "; ".join(problems) or "Invalid request")


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_CODES.get(exc.status_code, "internal_error" if exc.status_code >= 500 else "http_error")
    return error_response(exc.status_code, code, str(exc.detail))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    detail = str(exc) if get_settings().is_development else "Internal server error"
    return error_response(500, "internal_error", detail)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InboxBridgeError, handle_domain_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected_error)
