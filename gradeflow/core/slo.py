"""Service Level Objectives for gradeflow.

Pure functions: they take metric values as arguments and return a
status, so /health can feed them from the in-process Prometheus registry
and tests can feed them plain numbers.

  availability      99.5% of requests are not 5xx
  latency_p95       95% of non-AI requests finish under 500ms
  inference_success 90% of remote inference calls succeed

The inference objective is looser than the others because hosted models
cold-start (503 "model loading") and rate-limit free-tier tokens; every
failure still produces a heuristic score, so a miss here degrades
quality rather than availability.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SLODefinition:
    name: str
    description: str
    target: float
    window: str


@dataclass(frozen=True, slots=True)
class SLOStatus:
    """Current standing against one objective.

    budget_remaining is ``current - target``: negative means breached.
    """

    slo: SLODefinition
    current: float
    budget_remaining: float
    healthy: bool


AVAILABILITY_SLO = SLODefinition(
    name="availability",
    description="Percentage of non-5xx responses",
    target=99.5,
    window="30d",
)

LATENCY_SLO = SLODefinition(
    name="latency_p95",
    description="95th percentile response time under 500ms",
    target=95.0,
    window="30d",
)

INFERENCE_SUCCESS_SLO = SLODefinition(
    name="inference_success",
    description="Remote inference calls that return a usable result",
    target=90.0,
    window="7d",
)

ALL_SLOS = [AVAILABILITY_SLO, LATENCY_SLO, INFERENCE_SUCCESS_SLO]

_LATENCY_THRESHOLD_MS = 500.0


def _status(slo: SLODefinition, current: float) -> SLOStatus:
    return SLOStatus(
        slo=slo,
        current=round(current, 3),
        budget_remaining=round(current - slo.target, 3),
        healthy=current >= slo.target,
    )


def _success_ratio(total: int, failed: int) -> float:
    # nothing observed yet counts as fully successful
    if total == 0:
        return 100.0
    return ((total - failed) / total) * 100


def evaluate_availability(total_requests: int, error_requests: int) -> SLOStatus:
    """availability = (total - 5xx) / total × 100"""
    return _status(AVAILABILITY_SLO, _success_ratio(total_requests, error_requests))


def evaluate_latency(p95_ms: float) -> SLOStatus:
    """Approximate the share of requests under 500ms from a p95 estimate.

    At or below the threshold the share is at least 95%, scaling to 100%
    at zero latency.  Above it the share falls off linearly.
    """
    if p95_ms <= _LATENCY_THRESHOLD_MS:
        current = 95.0 + (_LATENCY_THRESHOLD_MS - p95_ms) / _LATENCY_THRESHOLD_MS * 5.0
        current = min(current, 100.0)
    else:
        overshoot = (p95_ms - _LATENCY_THRESHOLD_MS) / _LATENCY_THRESHOLD_MS
        current = max(0.0, 95.0 - overshoot * 95.0)
    return _status(LATENCY_SLO, current)


def evaluate_inference_success(total_calls: int, failed_calls: int) -> SLOStatus:
    return _status(INFERENCE_SUCCESS_SLO, _success_ratio(total_calls, failed_calls))
