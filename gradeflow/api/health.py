"""Liveness, readiness and SLO status.

/health answers 200 even when degraded; the ``status`` field carries
the verdict.  /ready answers 503 when a configured database cannot be
reached, which takes the instance out of rotation without restarting it.
Redis and the hosted models are never critical: the rate limiter has no
fallback across instances but requests still succeed, and every AI check
has a heuristic.

SLO figures come from this process's Prometheus registry only, and p95
latency is approximated as twice the mean.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response, status
from prometheus_client import REGISTRY
from sqlalchemy.exc import SQLAlchemyError

from gradeflow.api.dependencies import ServicesDep
from gradeflow.core.slo import (
    evaluate_availability,
    evaluate_inference_success,
    evaluate_latency,
)
from gradeflow.db.redis import check_redis
from gradeflow.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _sum_samples(sample_name: str, label_filter: dict[str, str] | None = None) -> float:
    """Sum a metric's samples across every label combination matching the filter."""
    total = 0.0
    for metric in REGISTRY.collect():
        for sample in metric.samples:
            if sample.name != sample_name:
                continue
            if label_filter and not all(
                sample.labels.get(k) == v for k, v in label_filter.items()
            ):
                continue
            total += sample.value
    return total


def _server_errors() -> float:
    total = 0.0
    for metric in REGISTRY.collect():
        for sample in metric.samples:
            if sample.name == "http_requests_total" and sample.labels.get(
                "status_code", ""
            ).startswith("5"):
                total += sample.value
    return total


async def _database_ok(services: Services) -> bool:
    if services.database is None:
        return True
    try:
        await services.database.ping()
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Database ping failed: %s", exc)
        return False
    return True


@router.get("/health")
async def health(services: ServicesDep) -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if services.database is None:
        checks["database"] = "in_memory"
    elif await _database_ok(services):
        checks["database"] = "ok"
    else:
        checks["database"] = "degraded"
        overall = "degraded"

    if services.redis is None:
        checks["redis"] = "not_configured"
    elif await check_redis(services.redis):
        checks["redis"] = "ok"
    else:
        checks["redis"] = "degraded"
        overall = "degraded"

    checks["huggingface"] = (
        "configured" if services.huggingface is not None else "heuristic_only"
    )

    total = _sum_samples("http_requests_total")
    availability = evaluate_availability(int(total), int(_server_errors()))

    duration_sum = _sum_samples("http_request_duration_seconds_sum")
    duration_count = _sum_samples("http_request_duration_seconds_count")
    p95_estimate_ms = (
        (duration_sum / duration_count) * 1000 * 2.0 if duration_count else 0.0
    )
    latency = evaluate_latency(p95_estimate_ms)

    inference = evaluate_inference_success(
        int(_sum_samples("inference_requests_total")),
        int(_sum_samples("inference_requests_total", {"outcome": "error"})),
    )

    slos = {
        s.slo.name: {
            "current": s.current,
            "target": s.slo.target,
            "healthy": s.healthy,
        }
        for s in (availability, latency, inference)
    }

    return {"status": overall, "checks": checks, "slos": slos}


@router.get("/ready")
async def ready(services: ServicesDep) -> Response:
    if not await _database_ok(services):
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
