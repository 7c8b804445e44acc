"""Health routes for the InboxBridge service."""

import asyncio
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from loguru import logger
from pydantic import BaseModel

from inboxbridge.api.dependencies import get_providers, get_subscription_registry, token_store_dependency
from inboxbridge.application.ports import MailProvider
from inboxbridge.domain.models import EmailService
from inboxbridge.infrastructure import get_settings
from inboxbridge.infrastructure.stores import TokenStore

router = APIRouter()


# ============================================================================
# Response Models
# ============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response with service status."""

    status: str
    timestamp: str
    services: dict[str, str]


# ============================================================================
# Health Endpoints
# ============================================================================


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check() -> HealthResponse:
    """Basic health check endpoint."""
    settings = get_settings()
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.app_version,
    )


@router.get("/health/ready", response_model=ReadinessResponse, tags=["health"])
async def readiness_check(
    providers: dict[EmailService, MailProvider] = Depends(get_providers),
    token_store: TokenStore = Depends(token_store_dependency),
) -> ReadinessResponse:
    """Readiness check: SQLite reachability, pending tokens and provider config."""
    services: dict[str, str] = {}

    registry = get_subscription_registry()
    if registry is None:
        services["sqlite"] = "unavailable"
    else:
        try:
            await asyncio.to_thread(registry.ping)
            services["sqlite"] = "healthy"
        except Exception as e:
            logger.warning(f"SQLite health check failed: {e}")
            services["sqlite"] = f"error: {str(e)[:50]}"

    if services["sqlite"] == "healthy":
        await token_store.reconcile()
    services["pending_tokens"] = str(len(token_store.pending))

    for service, provider in providers.items():
        services[service.value] = "configured" if not provider.auth.missing_settings() else "missing_credentials"

    status = "ready" if services["sqlite"] == "healthy" else "degraded"
    return ReadinessResponse(
        status=status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        services=services,
    )


@router.get("/health/live", tags=["health"])
async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness probe endpoint."""
    return {"status": "alive"}
