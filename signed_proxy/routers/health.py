"""
Health check and monitoring endpoints.
"""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from signed_proxy.config import settings
from signed_proxy.models import HealthStatus
from signed_proxy.upstream import Upstream, get_upstream

router = APIRouter(tags=["monitoring"])

# Track application start time
START_TIME = time.time()


@router.get("/health", response_model=HealthStatus)
async def health_check(upstream: Upstream = Depends(get_upstream)):
    """
    Health check endpoint.

    Reports whether the upstream client is set up, the service
    uptime and the application version. The upstream itself is not
    contacted: every call to it is signed and has side effects.
    """
    ready = upstream.connected

    return HealthStatus(
        status="healthy" if ready else "unhealthy",
        version=settings.app_version,
        upstream="configured" if ready else "not configured",
        uptime_seconds=time.time() - START_TIME,
        timestamp=datetime.now(timezone.utc)
    )


@router.get("/health/live")
async def liveness_check():
    """
    Liveness probe.

    Simple check that the application is running.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(upstream: Upstream = Depends(get_upstream)):
    """Readiness probe: the upstream client must be set up."""
    if not upstream.connected:
        return Response(
            content='{"status": "not ready", "reason": "upstream not configured"}',
            status_code=503,
            media_type="application/json"
        )

    return {"status": "ready"}


@router.get(settings.metrics_path)
async def metrics():
    """
    Prometheus metrics endpoint.

    Upstream request counts and latency, observe calls per time
    sync, and audit entries and cursor resets.
    """
    if not settings.enable_metrics:
        return Response(status_code=404)

    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
