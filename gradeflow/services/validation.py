"""Business-rule validation for grading inputs.

Request schemas already guarantee types; these checks enforce the rules
that span fields (weights summing to 100, rubric totals, file limits).
Each function collects every problem before raising one ValidationError
so a client can fix a form in a single round trip.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from datetime import datetime

from gradeflow.core.errors import ValidationError
from gradeflow.models.rubric import RUBRIC_TOTAL_POINTS, Criterion
from gradeflow.models.score import CriterionAward

logger = logging.getLogger(__name__)

ASSIGNMENT_TYPES = ("essay", "code")


def _raise_if(errors: list[str], message: str) -> None:
    if errors:
        logger.warning("%s: %s", message, "; ".join(errors))
        raise ValidationError(message, errors)


def _weight_errors(plagiarism: int, criteria: int) -> list[str]:
    errors = []
    if not 0 <= plagiarism <= 100:
        errors.append("plagiarism_weightage must be between 0 and 100")
    if not 0 <= criteria <= 100:
        errors.append("criteria_weightage must be between 0 and 100")
    if not errors and plagiarism + criteria != 100:
        errors.append("plagiarism_weightage + criteria_weightage must equal 100")
    return errors


def validate_assignment(
    *,
    title: str,
    description: str,
    type: str,
    due_date: datetime,
    plagiarism_weightage: int,
    criteria_weightage: int,
    allowed_file_types: Sequence[str] = (),
) -> None:
    errors = []
    if not title.strip():
        errors.append("title is required")
    if not description.strip():
        errors.append("description is required")
    if type not in ASSIGNMENT_TYPES:
        errors.append("type must be essay or code")
    if due_date.tzinfo is None:
        errors.append("due_date must include a timezone")
    for ext in allowed_file_types:
        if not ext.startswith("."):
            errors.append(f"file type {ext!r} must start with '.'")
    errors.extend(_weight_errors(plagiarism_weightage, criteria_weightage))
    _raise_if(errors, "Invalid assignment")


def validate_weights(plagiarism_weightage: int, criteria_weightage: int) -> None:
    _raise_if(_weight_errors(plagiarism_weightage, criteria_weightage), "Invalid weightage")


def validate_criteria(criteria: Sequence[Criterion]) -> None:
    errors = []
    if not criteria:
        errors.append("at least one criterion is required")
    for i, c in enumerate(criteria, start=1):
        if not c.name.strip():
            errors.append(f"criterion {i}: name is required")
        if c.max_points <= 0:
            errors.append(f"criterion {i}: max_points must be greater than 0")
    total = sum(c.max_points for c in criteria)
    if criteria and total != RUBRIC_TOTAL_POINTS:
        errors.append(
            f"criteria max_points must total {RUBRIC_TOTAL_POINTS} (got {total})"
        )
    _raise_if(errors, "Invalid rubric")


def file_extension(file_name: str) -> str:
    return os.path.splitext(file_name)[1].lower()


def validate_submission_file(
    *,
    file_name: str,
    content: str,
    allowed_file_types: Sequence[str],
    max_bytes: int,
) -> None:
    errors = []
    if not file_name.strip():
        errors.append("file_name is required")
    if not content.strip():
        errors.append("file content is required")
    size = len(content.encode("utf-8"))
    if size > max_bytes:
        errors.append(f"file is {size} bytes; the limit is {max_bytes}")
    allowed = {ext.lower() for ext in allowed_file_types}
    if file_name.strip() and allowed and file_extension(file_name) not in allowed:
        errors.append(f"file type must be one of: {', '.join(sorted(allowed))}")
    _raise_if(errors, "Invalid submission")


def validate_awards(
    awards: Sequence[CriterionAward], criteria: Sequence[Criterion]
) -> None:
    """Every rubric criterion awarded exactly once, within its max."""
    errors = []
    if not awards:
        errors.append("criteria_scores must not be empty")
    by_id = {c.id: c for c in criteria}
    seen: set[str] = set()
    for award in awards:
        criterion = by_id.get(award.criterion_id)
        if criterion is None:
            errors.append(f"unknown criterion {award.criterion_id!r}")
            continue
        if award.criterion_id in seen:
            errors.append(f"criterion {criterion.name!r} scored more than once")
        seen.add(award.criterion_id)
        if not 0 <= award.points <= criterion.max_points:
            errors.append(
                f"{criterion.name}: points must be between 0 and {criterion.max_points}"
            )
    missing = [c.name for c in criteria if c.id not in seen]
    if awards and missing:
        errors.append(f"missing scores for: {', '.join(missing)}")
    _raise_if(errors, "Invalid score")
