"""Evaluation workflows: manual grading, AI-assisted grading, overrides.

A score is created at most once per submission and never edited except
by a single professor override.  Every score creation and override is
written to the audit trail with the before/after values.

The "already evaluated" check and the insert are separate store calls,
so two concurrent evaluations of the same submission can both succeed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from gradeflow.core.errors import ConflictError, NotFoundError, ValidationError
from gradeflow.core.metrics import EVALUATIONS, SCORE_OVERRIDES
from gradeflow.models.audit import AuditLogEntry
from gradeflow.models.principal import Principal
from gradeflow.models.rubric import FALLBACK_CRITERIA, Criterion
from gradeflow.models.score import AI_EVALUATOR, CriterionAward, Score
from gradeflow.models.submission import Submission
from gradeflow.services.access import check_student_owns
from gradeflow.services.assignment_service import load_owned_assignment
from gradeflow.services.container import Services
from gradeflow.services.content import ContentEstimate, estimate_content
from gradeflow.services.inference import TextGenerator
from gradeflow.services.originality import OriginalityEstimate, estimate_originality
from gradeflow.services.scoring import (
    MAX_FINAL_SCORE,
    ScoreBreakdown,
    aggregate,
    normalize,
    round_points,
)
from gradeflow.services.validation import validate_awards

logger = logging.getLogger(__name__)

PROVIDERS = ("huggingface", "ollama")

_CONFIDENCE_ORDER = {"low": 0, "medium": 1, "high": 2}


@dataclass(frozen=True, slots=True)
class AiEvaluation:
    submission: Submission
    provider: str
    model: str
    criteria: tuple[Criterion, ...]
    rubric_found: bool
    originality: OriginalityEstimate
    content: ContentEstimate
    awards: tuple[CriterionAward, ...]
    breakdown: ScoreBreakdown
    feedback: str
    confidence: str
    evaluated_at: datetime
    score: Score | None = None


async def _load_submission(services: Services, submission_id: str) -> Submission:
    submission = await services.submissions.get(submission_id)
    if submission is None:
        raise NotFoundError("Submission not found")
    return submission


async def _reject_if_scored(services: Services, submission_id: str) -> None:
    existing = await services.scores.get_by_submission(submission_id)
    if existing is not None:
        logger.warning("Rejected duplicate evaluation submission=%s", submission_id)
        raise ConflictError("Submission has already been evaluated", existing=existing)


async def _record_score(services: Services, principal: Principal, score: Score) -> None:
    await services.scores.add(score)
    await services.audit.append(
        AuditLogEntry.new(
            actor_id=principal.user_id,
            actor_name=principal.display_name,
            action="score_created",
            entity_type="score",
            entity_id=score.id,
            after={
                "final_score": score.final_score,
                "plagiarism_score": score.plagiarism_score,
                "evaluated_by": score.evaluated_by,
            },
        )
    )


async def evaluate_manually(
    services: Services,
    principal: Principal,
    *,
    submission_id: str,
    plagiarism_score: float,
    points: Mapping[str, float],
    feedback: str = "",
) -> Score:
    """Grade a submission with professor-supplied awards.

    ``points`` maps criterion id to the points awarded; every rubric
    criterion must be present.
    """
    submission = await _load_submission(services, submission_id)
    assignment = await load_owned_assignment(services, principal, submission.assignment_id)
    await _reject_if_scored(services, submission_id)

    rubric = await services.rubrics.get_by_assignment(assignment.id)
    if rubric is None:
        raise NotFoundError("Rubric not found for this assignment")

    names = {c.id: c for c in rubric.criteria}
    awards = tuple(
        CriterionAward(
            criterion_id=criterion_id,
            name=names[criterion_id].name if criterion_id in names else "",
            points=value,
            max_points=names[criterion_id].max_points if criterion_id in names else 0,
        )
        for criterion_id, value in points.items()
    )
    validate_awards(awards, rubric.criteria)

    breakdown = aggregate(
        plagiarism_score,
        awards,
        assignment.plagiarism_weightage,
        assignment.criteria_weightage,
    )
    score = Score.new(
        submission_id=submission.id,
        assignment_id=assignment.id,
        student_id=submission.student_id,
        professor_id=principal.user_id,
        plagiarism_score=plagiarism_score,
        criteria_scores=awards,
        total_criteria_points=breakdown.total_criteria_points,
        total_criteria_max_points=breakdown.total_criteria_max_points,
        weighted_plagiarism_score=breakdown.plagiarism_component,
        weighted_criteria_score=breakdown.criteria_component,
        final_score=breakdown.final_score,
        evaluated_by=principal.user_id,
        feedback=feedback.strip(),
    )
    await _record_score(services, principal, score)
    EVALUATIONS.labels(mode="manual", provider="none").inc()
    logger.info(
        "Evaluated submission=%s final=%.2f",
        submission.id,
        score.final_score,
        extra={"submission_id": submission.id, "user_id": principal.user_id},
    )
    return score


def _generator_for(services: Services, provider: str) -> TextGenerator | None:
    if provider == "huggingface":
        return services.huggingface
    return services.ollama


def _awards_from(
    criteria: tuple[Criterion, ...], content: ContentEstimate
) -> tuple[CriterionAward, ...]:
    return tuple(
        CriterionAward(
            criterion_id=c.id,
            name=c.name,
            points=round_points(estimate.score * c.max_points / 100),
            max_points=c.max_points,
        )
        for c, estimate in zip(criteria, content.per_criterion)
    )


def _feedback_text(originality: OriginalityEstimate, content: ContentEstimate) -> str:
    lines = [content.summary]
    if content.strengths:
        lines.append("Strengths: " + "; ".join(content.strengths))
    if content.improvements:
        lines.append("Improvements: " + "; ".join(content.improvements))
    lines.append(originality.details)
    return "\n".join(lines)


async def run_ai_evaluation(
    services: Services,
    principal: Principal,
    submission_id: str,
    *,
    provider: str,
    persist: bool = False,
) -> AiEvaluation:
    """Evaluate a submission with hosted models, falling back to heuristics.

    Returns a proposal; with ``persist=True`` it is also stored as the
    submission's score with ``evaluated_by="ai"``.
    """
    if provider not in PROVIDERS:
        raise ValidationError(f"Unknown provider {provider!r}")

    submission = await _load_submission(services, submission_id)
    assignment = await load_owned_assignment(services, principal, submission.assignment_id)
    await _reject_if_scored(services, submission_id)

    rubric = await services.rubrics.get_by_assignment(assignment.id)
    criteria = rubric.criteria if rubric is not None else FALLBACK_CRITERIA
    if rubric is None:
        logger.info("No rubric for assignment=%s, using fallback criteria", assignment.id)

    others = [
        s.content
        for s in await services.submissions.list_by_assignment(assignment.id)
        if s.id != submission.id
    ][: services.settings.max_comparisons]

    generator = _generator_for(services, provider)
    originality, content = await asyncio.gather(
        estimate_originality(
            submission.content,
            others,
            inference=services.huggingface if provider == "huggingface" else None,
            policy=services.policy,
        ),
        estimate_content(
            submission.content, criteria, generator=generator, policy=services.policy
        ),
    )

    awards = _awards_from(criteria, content)
    breakdown = aggregate(
        originality.score,
        awards,
        assignment.plagiarism_weightage,
        assignment.criteria_weightage,
    )
    confidence = min(
        originality.confidence, content.confidence, key=_CONFIDENCE_ORDER.__getitem__
    )
    feedback = _feedback_text(originality, content)
    evaluated_at = datetime.now(UTC)

    score = None
    if persist:
        score = Score.new(
            submission_id=submission.id,
            assignment_id=assignment.id,
            student_id=submission.student_id,
            professor_id=principal.user_id,
            plagiarism_score=originality.score,
            criteria_scores=awards,
            total_criteria_points=breakdown.total_criteria_points,
            total_criteria_max_points=breakdown.total_criteria_max_points,
            weighted_plagiarism_score=breakdown.plagiarism_component,
            weighted_criteria_score=breakdown.criteria_component,
            final_score=breakdown.final_score,
            evaluated_by=AI_EVALUATOR,
            feedback=feedback,
            ai_details=_ai_details(provider, generator, originality, content, confidence),
        )
        await _record_score(services, principal, score)

    EVALUATIONS.labels(mode="ai", provider=provider).inc()
    logger.info(
        "AI evaluation submission=%s provider=%s final=%.2f confidence=%s persisted=%s",
        submission.id,
        provider,
        breakdown.final_score,
        confidence,
        persist,
        extra={"submission_id": submission.id, "user_id": principal.user_id},
    )
    return AiEvaluation(
        submission=submission,
        provider=provider,
        model=generator.model if generator is not None else "heuristic",
        criteria=criteria,
        rubric_found=rubric is not None,
        originality=originality,
        content=content,
        awards=awards,
        breakdown=breakdown,
        feedback=feedback,
        confidence=confidence,
        evaluated_at=evaluated_at,
        score=score,
    )


def _ai_details(
    provider: str,
    generator: TextGenerator | None,
    originality: OriginalityEstimate,
    content: ContentEstimate,
    confidence: str,
) -> dict[str, Any]:
    return {
        "provider": provider,
        "model": generator.model if generator is not None else "heuristic",
        "confidence": confidence,
        "content_source": content.source,
        "overall_quality": content.overall_quality,
        "risk_level": originality.risk_level,
        "ai_likelihood": originality.ai_likelihood,
        "ai_verdict": originality.ai_verdict,
        "compared_against": originality.compared_against,
        "max_similarity": originality.max_similarity,
        "criteria": [
            {"name": e.name, "score": e.score, "source": e.source}
            for e in content.per_criterion
        ],
    }


async def override_score(
    services: Services,
    principal: Principal,
    score_id: str,
    *,
    new_final_score: float,
    reason: str,
) -> Score:
    score = await services.scores.get(score_id)
    if score is None:
        raise NotFoundError("Score not found")
    await load_owned_assignment(services, principal, score.assignment_id)

    if score.overridden:
        raise ConflictError("Score has already been overridden", existing=score)
    if not reason.strip():
        raise ValidationError("Override reason is required")
    if not 0 <= new_final_score <= MAX_FINAL_SCORE:
        raise ValidationError(f"newFinalScore must be between 0 and {MAX_FINAL_SCORE:g}")
    final = normalize(new_final_score)

    updated = await services.scores.record_override(
        score_id,
        final_score=final,
        reason=reason.strip(),
        overridden_by=principal.user_id,
        overridden_at=datetime.now(UTC),
        original_final_score=score.final_score,
    )
    if updated is None:
        raise NotFoundError("Score not found")

    await services.audit.append(
        AuditLogEntry.new(
            actor_id=principal.user_id,
            actor_name=principal.display_name,
            action="score_overridden",
            entity_type="score",
            entity_id=score_id,
            before={"final_score": score.final_score, "evaluated_by": score.evaluated_by},
            after={"final_score": final, "reason": reason.strip()},
        )
    )
    SCORE_OVERRIDES.inc()
    logger.info(
        "Overrode score=%s %.2f -> %.2f",
        score_id,
        score.final_score,
        final,
        extra={"submission_id": score.submission_id, "user_id": principal.user_id},
    )
    return updated


async def list_assignment_scores(
    services: Services, principal: Principal, assignment_id: str
) -> list[Score]:
    await load_owned_assignment(services, principal, assignment_id)
    return await services.scores.list_by_assignment(assignment_id)


async def score_audit_trail(
    services: Services, principal: Principal, score_id: str
) -> list[AuditLogEntry]:
    score = await services.scores.get(score_id)
    if score is None:
        raise NotFoundError("Score not found")
    await load_owned_assignment(services, principal, score.assignment_id)
    return await services.audit.list_for_entity("score", score_id)


async def get_own_score(
    services: Services, principal: Principal, score_id: str
) -> Score:
    score = await services.scores.get(score_id)
    if score is None:
        raise NotFoundError("Score not found")
    check_student_owns(principal, score.student_id, "score")
    return score


async def get_own_score_for_assignment(
    services: Services, principal: Principal, assignment_id: str
) -> Score:
    score = await services.scores.get_for_student(assignment_id, principal.user_id)
    if score is None:
        raise NotFoundError("Score not found for this assignment")
    return score


async def get_evaluation(
    services: Services, principal: Principal, submission_id: str
) -> tuple[Submission, Score]:
    """Student view of their own submission together with its score."""
    submission = await _load_submission(services, submission_id)
    check_student_owns(principal, submission.student_id, "submission")
    score = await services.scores.get_by_submission(submission_id)
    if score is None:
        raise NotFoundError("Submission has not been evaluated yet")
    return submission, score
