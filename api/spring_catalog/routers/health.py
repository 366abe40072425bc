"""Health, readiness and version endpoints."""

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

router = APIRouter()

HEALTH_VERSION = "1.0.0"
SERVICE_STARTED_AT = datetime.now(timezone.utc)


def _iso_utc(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _uptime_seconds(now: datetime) -> int:
    return max(0, int((now - SERVICE_STARTED_AT).total_seconds()))


class HealthResponse(BaseModel):
    """GET /api/health response."""

    model_config = ConfigDict(extra="forbid")
    status: Annotated[str, Field(description="Always 'ok'")]
    version: Annotated[str, Field(description="Semver MAJOR.MINOR.PATCH")]
    timestamp: Annotated[str, Field(description="ISO8601 UTC")]
    started_at: Annotated[str, Field(description="ISO8601 UTC when service process started")]
    uptime_seconds: Annotated[int, Field(description="Seconds service has been up")]


class ReadyResponse(BaseModel):
    """GET /api/ready response."""

    model_config = ConfigDict(extra="forbid")
    status: Annotated[str, Field(description="Always 'ready'")]
    version: Annotated[str, Field(description="Semver MAJOR.MINOR.PATCH")]
    projects: Annotated[int, Field(description="Projects currently in the catalog")]
    sync_running: Annotated[bool, Field(description="Whether a sync run holds the run lock")]


@router.get("/version")
async def version():
    """Return API version (lightweight, for dashboards)."""
    return {"version": HEALTH_VERSION}


@router.get("/ready", response_model=ReadyResponse)
async def ready(request: Request):
    """Readiness probe. 503 until the catalog store and sync service are wired."""
    store = getattr(request.app.state, "catalog_store", None)
    sync_service = getattr(request.app.state, "sync_service", None)
    if store is None or sync_service is None:
        raise HTTPException(status_code=503, detail="not ready")
    return ReadyResponse(
        status="ready",
        version=HEALTH_VERSION,
        projects=store.count_projects(),
        sync_running=sync_service.is_running(),
    )


@router.get("/health", response_model=HealthResponse)
async def health():
    """Return API health status."""
    now = datetime.now(timezone.utc)
    return HealthResponse(
        status="ok",
        version=HEALTH_VERSION,
        timestamp=_iso_utc(now),
        started_at=_iso_utc(SERVICE_STARTED_AT),
        uptime_seconds=_uptime_seconds(now),
    )
