from __future__ import annotations

import pytest

from gradeflow.core.slo import (
    ALL_SLOS,
    AVAILABILITY_SLO,
    INFERENCE_SUCCESS_SLO,
    evaluate_availability,
    evaluate_inference_success,
    evaluate_latency,
)


def test_all_slos_have_distinct_names() -> None:
    names = [s.name for s in ALL_SLOS]
    assert len(names) == len(set(names)) == 3


def test_availability_with_no_traffic_is_healthy() -> None:
    status = evaluate_availability(0, 0)
    assert status.current == 100.0
    assert status.healthy


@pytest.mark.parametrize(
    "total,errors,healthy",
    [
        (1000, 0, True),
        (1000, 4, True),
        (1000, 6, False),
        (10, 10, False),
    ],
)
def test_availability_threshold(total: int, errors: int, healthy: bool) -> None:
    status = evaluate_availability(total, errors)
    assert status.healthy is healthy
    assert status.slo is AVAILABILITY_SLO


def test_availability_budget_remaining_is_signed() -> None:
    status = evaluate_availability(100, 2)
    assert status.current == 98.0
    assert status.budget_remaining == pytest.approx(-1.5)


@pytest.mark.parametrize(
    "p95_ms,healthy",
    [(0.0, True), (250.0, True), (500.0, True), (501.0, False), (5000.0, False)],
)
def test_latency_threshold(p95_ms: float, healthy: bool) -> None:
    assert evaluate_latency(p95_ms).healthy is healthy


def test_latency_never_negative() -> None:
    assert evaluate_latency(100_000.0).current == 0.0


def test_inference_success_tolerates_ten_percent_failures() -> None:
    assert evaluate_inference_success(100, 10).healthy
    assert not evaluate_inference_success(100, 11).healthy
    assert evaluate_inference_success(0, 0).slo is INFERENCE_SUCCESS_SLO
