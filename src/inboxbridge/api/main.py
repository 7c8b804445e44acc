"""FastAPI application entry point."""

import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from inboxbridge.infrastructure import get_settings
from inboxbridge.infrastructure.stores import get_token_store


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    try:
        reconciled = await get_token_store().reconcile()
        logger.info(f"Token store ready ({reconciled} pending record(s) reconciled)")
    except Exception as e:
        logger.warning(f"Token store reconciliation failed (non-fatal): {e}")

    yield

    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Gmail and Outlook mailbox bridge with a shared message model",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.app_base_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from inboxbridge.api.routes import router
    from inboxbridge.infrastructure.http.auth import router as auth_router
    from inboxbridge.infrastructure.http.email import router as email_router
    from inboxbridge.infrastructure.http.errors import register_exception_handlers
    from inboxbridge.infrastructure.http.watch import router as watch_router
    from inboxbridge.infrastructure.http.webhook import router as webhook_router

    register_exception_handlers(app)
    app.include_router(router)
    app.include_router(auth_router, tags=["auth"])
    app.include_router(email_router, tags=["email"])
    app.include_router(watch_router, tags=["watch"])
    app.include_router(webhook_router, tags=["webhook"])

    return app


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "inboxbridge.api.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


# Create app instance
app = create_app()
