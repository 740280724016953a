"""
Health Check Module
===================
Liveness, readiness and component status for the bridge.
"""

import time
from enum import Enum
from typing import Dict, Optional

import structlog
from fastapi import APIRouter, Response
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from smpp_bridge.metrics import BridgeMetrics
from smpp_bridge.rate_limit import TokenBucketLimiter
from smpp_bridge.session import SmppSession
from smpp_bridge.status import ConnectionStatusReporter

logger = structlog.get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"


class ComponentHealth(BaseModel):
    status: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    status: HealthStatus
    service: str
    version: str
    components: Dict[str, ComponentHealth]
    counters: Dict[str, int]
    timestamp: float


def check_session(
    session: SmppSession,
    reporter: Optional[ConnectionStatusReporter] = None,
) -> ComponentHealth:
    """SMPP link state, with the last reported transition."""
    detail = None
    if reporter is not None and reporter.last_event is not None:
        detail = str(reporter.last_event)
    if session.is_connected:
        return ComponentHealth(status="connected", detail=detail)
    return ComponentHealth(status="disconnected", detail=detail)


def check_rate_limit(limiter: TokenBucketLimiter) -> ComponentHealth:
    """Submission bucket level; throttled while callers are queued."""
    state = limiter.state()
    detail = f"{state.remaining:.2f}/{state.limit} tokens at {state.rate:g}/s"
    if not state.allowed:
        detail += f", next in {state.retry_after:.2f}s"
    return ComponentHealth(status=state.result.value, detail=detail)


def create_health_router(
    service_name: str,
    session: SmppSession,
    version: str = "1.0.0",
    reporter: Optional[ConnectionStatusReporter] = None,
    metrics: Optional[BridgeMetrics] = None,
    limiter: Optional[TokenBucketLimiter] = None,
) -> APIRouter:
    """
    Create a health check router.

    Returns:
        FastAPI router with /health, /health/live, /health/ready and,
        when metrics are given, /metrics
    """
    router = APIRouter(tags=["Health"])

    @router.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        smpp = check_session(session, reporter)
        status = HealthStatus.HEALTHY if smpp.status == "connected" else HealthStatus.DEGRADED
        components = {"smpp": smpp}
        if limiter is not None:
            components["rate_limit"] = check_rate_limit(limiter)
        return HealthResponse(
            status=status,
            service=service_name,
            version=version,
            components=components,
            counters=metrics.snapshot() if metrics is not None else {},
            timestamp=time.time(),
        )

    @router.get("/health/live")
    async def liveness_probe():
        """Liveness probe - always returns 200 if the process is running."""
        return {"status": "alive"}

    @router.get("/health/ready")
    async def readiness_probe():
        """Readiness probe - submissions need a bound session."""
        if not session.is_connected:
            return Response(
                content='{"status": "not_ready", "reason": "smpp_unbound"}',
                status_code=503,
                media_type="application/json",
            )
        return {"status": "ready"}

    if metrics is not None:

        @router.get("/metrics", response_class=PlainTextResponse)
        async def prometheus_metrics() -> str:
            return metrics.export_prometheus()

    return router
