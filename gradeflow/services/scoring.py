"""Score aggregation: originality + rubric awards → a 0–10 grade.

    criteria_ratio       = sum(points) / sum(max_points)
    plagiarism_component = originality/100 × plagiarism_weight/100 × 10
    criteria_component   = criteria_ratio × criteria_weight/100 × 10
    final_score          = round2(plagiarism_component + criteria_component)

Weights are validated again here even though assignments are validated
on write: a document edited outside the API must not produce a grade
above 10.  Rounding is half-up, so 8.645 becomes 8.65 rather than the
banker's 8.64.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from gradeflow.core.errors import ValidationError
from gradeflow.models.score import CriterionAward
from gradeflow.services.validation import validate_weights

MAX_FINAL_SCORE = 10.0

_CENTS = Decimal("0.01")
_UNITS = Decimal("1")


def round2(value: float) -> float:
    return float(Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP))


def round_points(value: float) -> int:
    return int(Decimal(str(value)).quantize(_UNITS, rounding=ROUND_HALF_UP))


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    final_score: float
    plagiarism_component: float
    criteria_component: float
    total_criteria_points: float
    total_criteria_max_points: int
    criteria_ratio: float


def aggregate(
    originality_score: float,
    criteria_awards: Sequence[CriterionAward],
    plagiarism_weight: int,
    criteria_weight: int,
) -> ScoreBreakdown:
    validate_weights(plagiarism_weight, criteria_weight)

    if not 0 <= originality_score <= 100:
        raise ValidationError("plagiarism_score must be between 0 and 100")

    total_points = sum(a.points for a in criteria_awards)
    total_max = sum(a.max_points for a in criteria_awards)
    if total_max <= 0:
        raise ValidationError("Rubric criteria must have a positive point total")

    ratio = min(1.0, max(0.0, total_points / total_max))

    plagiarism_component = (originality_score / 100) * (plagiarism_weight / 100) * 10
    criteria_component = ratio * (criteria_weight / 100) * 10
    final = min(MAX_FINAL_SCORE, max(0.0, plagiarism_component + criteria_component))

    return ScoreBreakdown(
        final_score=round2(final),
        plagiarism_component=round2(plagiarism_component),
        criteria_component=round2(criteria_component),
        total_criteria_points=round2(total_points),
        total_criteria_max_points=total_max,
        criteria_ratio=ratio,
    )


def normalize(score: float, max_score: float = MAX_FINAL_SCORE) -> float:
    """Clamp an externally supplied score into [0, max_score], two decimals."""
    if not math.isfinite(score):
        raise ValidationError("Score must be a finite number")
    return round2(min(max_score, max(0.0, score)))
