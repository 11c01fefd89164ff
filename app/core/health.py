"""
Health check utilities for the WeighIn API.

Provides structured status reporting for the database, the cache and the
runtime configuration.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import redis
from pydantic import BaseModel, Field

from app.core.config import settings
from app.core.database import get_supabase_client


class HealthStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    CRITICAL = "critical"
    NOT_CONFIGURED = "not_configured"


class HealthCheckResult(BaseModel):
    component: str
    status: HealthStatus
    details: str = ""
    latency_ms: Optional[float] = Field(default=None, ge=0)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class HealthReport(BaseModel):
    status: HealthStatus
    version: str
    environment: str
    timestamp: datetime
    checks: List[HealthCheckResult]


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


async def _check_supabase() -> HealthCheckResult:
    component = "supabase"
    start = time.perf_counter()

    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
        return HealthCheckResult(
            component=component,
            status=HealthStatus.NOT_CONFIGURED,
            details="Supabase credentials are not set",
        )

    try:
        supabase = get_supabase_client()
        response = await asyncio.to_thread(
            lambda: supabase.table("challenges").select("id").limit(1).execute()
        )

        return HealthCheckResult(
            component=component,
            status=HealthStatus.OK,
            details="Supabase reachable",
            latency_ms=_elapsed_ms(start),
            metadata={"rows_sampled": len(getattr(response, "data", []) or [])},
        )
    except Exception as exc:  # pragma: no cover - network failures
        return HealthCheckResult(
            component=component,
            status=HealthStatus.CRITICAL,
            details=f"Supabase request failed: {exc}",
            latency_ms=_elapsed_ms(start),
        )


async def _check_redis() -> HealthCheckResult:
    component = "redis"
    start = time.perf_counter()

    if not settings.REDIS_URL:
        return HealthCheckResult(
            component=component,
            status=HealthStatus.NOT_CONFIGURED,
            details="Redis URL is not configured",
        )

    try:
        client = redis.from_url(
            settings.redis_connection_url,
            socket_connect_timeout=2,
            socket_timeout=2,
            decode_responses=True,
        )
        await asyncio.to_thread(client.ping)

        return HealthCheckResult(
            component=component,
            status=HealthStatus.OK,
            details="Redis reachable",
            latency_ms=_elapsed_ms(start),
        )
    except Exception as exc:  # pragma: no cover - network failures
        # Leaderboards fall back to live computation without Redis
        return HealthCheckResult(
            component=component,
            status=HealthStatus.DEGRADED,
            details=f"Redis unreachable: {exc}",
            latency_ms=_elapsed_ms(start),
        )


async def _check_environment() -> HealthCheckResult:
    component = "environment"
    metadata = {
        "environment": settings.ENVIRONMENT,
        "debug": settings.DEBUG,
        "poll_interval_seconds": settings.POLL_INTERVAL_SECONDS,
    }

    if not settings.SECRET_KEY:
        return HealthCheckResult(
            component=component,
            status=HealthStatus.DEGRADED,
            details="SECRET_KEY is not set; bearer tokens cannot be verified",
            metadata=metadata,
        )

    return HealthCheckResult(
        component=component,
        status=HealthStatus.OK,
        details="Environment variables loaded",
        metadata=metadata,
    )


async def gather_health_checks() -> List[HealthCheckResult]:
    checks = await asyncio.gather(
        _check_environment(),
        _check_supabase(),
        _check_redis(),
    )

    return list(checks)


def _aggregate_status(checks: List[HealthCheckResult]) -> HealthStatus:
    if any(check.status == HealthStatus.CRITICAL for check in checks):
        return HealthStatus.CRITICAL

    if any(check.status == HealthStatus.DEGRADED for check in checks):
        return HealthStatus.DEGRADED

    if all(check.status == HealthStatus.NOT_CONFIGURED for check in checks):
        return HealthStatus.NOT_CONFIGURED

    return HealthStatus.OK


async def build_health_report(api_version: str) -> HealthReport:
    checks = await gather_health_checks()

    return HealthReport(
        status=_aggregate_status(checks),
        version=api_version,
        environment=settings.ENVIRONMENT,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )
