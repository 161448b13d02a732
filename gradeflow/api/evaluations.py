"""Professor grading endpoints.

POST  /api/professor/evaluate                   manual grade (201, once per submission)
PATCH /api/professor/scores/{id}/override       one override per score
GET   /api/professor/scores/assignment/{id}
GET   /api/professor/scores/{id}/audit
POST  /api/professor/huggingface-evaluate       AI proposal, rate limited
POST  /api/professor/ollama-evaluate            AI proposal, rate limited
GET   /api/professor/ai-health                  upstream model status
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, status
from pydantic import BaseModel, ConfigDict, Field

from gradeflow.api.dependencies import Professor, ServicesDep
from gradeflow.api.ratelimit import RateLimitedProfessor
from gradeflow.api.schemas import AuditEntryOut, ScoreOut
from gradeflow.services import grading_service
from gradeflow.services.grading_service import AiEvaluation

router = APIRouter(prefix="/api/professor", tags=["evaluation"])


class AwardIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    criterion_id: str = Field(alias="criterionId")
    points: float


class EvaluateIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    submission_id: str = Field(alias="submissionId")
    plagiarism_score: float = Field(alias="plagiarismScore")
    criteria_scores: list[AwardIn] = Field(alias="criteriaScores")
    feedback: str = ""


class OverrideIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_final_score: float = Field(alias="newFinalScore")
    reason: str = Field(alias="overrideReason")


class AiEvaluateIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    submission_id: str = Field(alias="submissionId")
    persist: bool = False


class ScoreEnvelope(BaseModel):
    score: ScoreOut


class CriterionResultOut(BaseModel):
    criterion_id: str
    name: str
    max_points: int
    ai_score: int
    points: float
    reasoning: str
    source: str


class PlagiarismOut(BaseModel):
    score: int
    confidence: str
    risk_level: str
    details: str
    student_similarity_score: int
    max_similarity: float
    similar_count: int
    compared_against: int
    ai_detection_score: int
    ai_likelihood: int
    ai_verdict: str


class BreakdownOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    plagiarism_component: float
    criteria_component: float
    total_criteria_points: float
    total_criteria_max_points: int
    criteria_ratio: float
    final_score: float


class EvaluationOut(BaseModel):
    submission_id: str
    student_name: str
    plagiarism: PlagiarismOut
    plagiarism_score: int
    criteria_scores: list[CriterionResultOut]
    overall_quality: int
    strengths: list[str]
    improvements: list[str]
    feedback: str
    total_criteria_points: float
    total_criteria_max_points: int
    weighted_plagiarism_score: float
    weighted_criteria_score: float
    final_score: float
    breakdown: BreakdownOut
    confidence: str
    content_source: str


class AiEvaluationResponse(BaseModel):
    evaluation: EvaluationOut
    metadata: dict[str, Any]
    score: ScoreOut | None = None


def _evaluation_response(result: AiEvaluation) -> AiEvaluationResponse:
    o = result.originality
    content = result.content
    criteria = [
        CriterionResultOut(
            criterion_id=award.criterion_id,
            name=award.name,
            max_points=award.max_points,
            ai_score=estimate.score,
            points=award.points,
            reasoning=estimate.reasoning,
            source=estimate.source,
        )
        for award, estimate in zip(result.awards, content.per_criterion)
    ]
    evaluation = EvaluationOut(
        submission_id=result.submission.id,
        student_name=result.submission.student_name,
        plagiarism=PlagiarismOut(
            score=o.score,
            confidence=o.confidence,
            risk_level=o.risk_level,
            details=o.details,
            student_similarity_score=o.student_similarity_score,
            max_similarity=o.max_similarity,
            similar_count=o.similar_count,
            compared_against=o.compared_against,
            ai_detection_score=o.ai_detection_score,
            ai_likelihood=o.ai_likelihood,
            ai_verdict=o.ai_verdict,
        ),
        plagiarism_score=o.score,
        criteria_scores=criteria,
        overall_quality=content.overall_quality,
        strengths=list(content.strengths),
        improvements=list(content.improvements),
        feedback=result.feedback,
        total_criteria_points=result.breakdown.total_criteria_points,
        total_criteria_max_points=result.breakdown.total_criteria_max_points,
        weighted_plagiarism_score=result.breakdown.plagiarism_component,
        weighted_criteria_score=result.breakdown.criteria_component,
        final_score=result.breakdown.final_score,
        breakdown=BreakdownOut.model_validate(result.breakdown),
        confidence=result.confidence,
        content_source=content.source,
    )
    metadata: dict[str, Any] = {
        "provider": result.provider,
        "model": result.model,
        "rubric_found": result.rubric_found,
        "criteria_count": len(result.criteria),
        "evaluated_at": result.evaluated_at.isoformat(),
        "persisted": result.score is not None,
    }
    return AiEvaluationResponse(
        evaluation=evaluation,
        metadata=metadata,
        score=ScoreOut.model_validate(result.score) if result.score else None,
    )


@router.post(
    "/evaluate", response_model=ScoreEnvelope, status_code=status.HTTP_201_CREATED
)
async def evaluate(
    body: EvaluateIn, principal: Professor, services: ServicesDep
) -> ScoreEnvelope:
    score = await grading_service.evaluate_manually(
        services,
        principal,
        submission_id=body.submission_id,
        plagiarism_score=body.plagiarism_score,
        points={a.criterion_id: a.points for a in body.criteria_scores},
        feedback=body.feedback,
    )
    return ScoreEnvelope(score=ScoreOut.model_validate(score))


@router.patch("/scores/{score_id}/override", response_model=ScoreEnvelope)
async def override(
    score_id: str, body: OverrideIn, principal: Professor, services: ServicesDep
) -> ScoreEnvelope:
    score = await grading_service.override_score(
        services,
        principal,
        score_id,
        new_final_score=body.new_final_score,
        reason=body.reason,
    )
    return ScoreEnvelope(score=ScoreOut.model_validate(score))


@router.get("/scores/assignment/{assignment_id}", response_model=list[ScoreOut])
async def list_scores(
    assignment_id: str, principal: Professor, services: ServicesDep
) -> list[ScoreOut]:
    scores = await grading_service.list_assignment_scores(
        services, principal, assignment_id
    )
    return [ScoreOut.model_validate(s) for s in scores]


@router.get("/scores/{score_id}/audit", response_model=list[AuditEntryOut])
async def score_audit(
    score_id: str, principal: Professor, services: ServicesDep
) -> list[AuditEntryOut]:
    entries = await grading_service.score_audit_trail(services, principal, score_id)
    return [AuditEntryOut.model_validate(e) for e in entries]


@router.post("/huggingface-evaluate", response_model=AiEvaluationResponse)
async def huggingface_evaluate(
    body: AiEvaluateIn, principal: RateLimitedProfessor, services: ServicesDep
) -> AiEvaluationResponse:
    result = await grading_service.run_ai_evaluation(
        services,
        principal,
        body.submission_id,
        provider="huggingface",
        persist=body.persist,
    )
    return _evaluation_response(result)


@router.post("/ollama-evaluate", response_model=AiEvaluationResponse)
async def ollama_evaluate(
    body: AiEvaluateIn, principal: RateLimitedProfessor, services: ServicesDep
) -> AiEvaluationResponse:
    result = await grading_service.run_ai_evaluation(
        services,
        principal,
        body.submission_id,
        provider="ollama",
        persist=body.persist,
    )
    return _evaluation_response(result)


class AiHealthOut(BaseModel):
    huggingface: dict[str, Any]
    ollama: dict[str, Any]
    checked_at: datetime


@router.get("/ai-health", response_model=AiHealthOut)
async def ai_health(principal: Professor, services: ServicesDep) -> AiHealthOut:
    if services.huggingface is not None:
        huggingface = await services.huggingface.status()
    else:
        huggingface = {"running": False, "error": "HUGGINGFACE_API_TOKEN not set"}
    ollama = await services.ollama.status()
    return AiHealthOut(
        huggingface=huggingface,
        ollama=ollama,
        checked_at=datetime.now(UTC),
    )
