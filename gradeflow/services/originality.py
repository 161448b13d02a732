"""Originality estimation: how likely is a submission its author's own work?

Two independent checks, run concurrently:

  1. Similarity.  Embed the submission and every comparison text, take
     the highest cosine similarity, and score ``(1 - max) × 100``.  With
     nothing to compare against, a phrase/citation heuristic scores the
     text on its own.
  2. AI detection.  A hosted classifier returns a human-vs-machine
     distribution; the human probability becomes a 0–100 score.

The final originality score is the MINIMUM of the two, so either check
alone can flag a submission.

A failed remote call never fails the estimate.  The check that failed is
replaced by its heuristic, a fallback is counted in metrics, and the
estimate is reported with ``confidence="low"``.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from gradeflow.core.errors import UpstreamUnavailable
from gradeflow.core.metrics import HEURISTIC_FALLBACKS
from gradeflow.services.heuristics import (
    DEFAULT_POLICY,
    HeuristicPolicy,
    ai_verdict,
    clamp,
    human_likeness_heuristic,
    originality_heuristic,
    risk_level,
)
from gradeflow.services.inference import HuggingFaceInference, LabelScore

logger = logging.getLogger(__name__)

_HUMAN_LABELS = frozenset({"human", "label_0", "real"})
_AI_LABELS = frozenset({"ai", "chatgpt", "label_1", "fake"})


@dataclass(frozen=True, slots=True)
class OriginalityEstimate:
    score: int
    confidence: str  # low|medium|high
    details: str
    risk_level: str  # none|low|medium|high
    student_similarity_score: int
    max_similarity: float
    similar_count: int
    compared_against: int
    ai_detection_score: int
    ai_likelihood: int
    ai_verdict: str


@dataclass(frozen=True, slots=True)
class _SimilarityResult:
    score: int
    max_similarity: float
    similar_count: int
    compared_against: int
    degraded: bool


@dataclass(frozen=True, slots=True)
class _DetectionResult:
    score: int
    verdict: str
    decisive: bool
    degraded: bool


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def similarity_score(max_similarity: float) -> int:
    return int(round(clamp((1 - max_similarity) * 100)))


def human_score_from_labels(labels: Sequence[LabelScore]) -> int:
    human = next((item for item in labels if item.label.lower() in _HUMAN_LABELS), None)
    if human is not None:
        return int(clamp(round(human.score * 100)))
    machine = next((item for item in labels if item.label.lower() in _AI_LABELS), None)
    if machine is not None:
        return int(clamp(round((1 - machine.score) * 100)))
    # unknown label scheme: trust the top label as the human probability
    top = max(labels, key=lambda item: item.score)
    return int(clamp(round(top.score * 100)))


def _heuristic_similarity(text: str, policy: HeuristicPolicy) -> _SimilarityResult:
    HEURISTIC_FALLBACKS.labels(check="similarity").inc()
    return _SimilarityResult(
        score=originality_heuristic(text, policy),
        max_similarity=0.0,
        similar_count=0,
        compared_against=0,
        degraded=True,
    )


async def _similarity_check(
    text: str,
    comparison_set: Sequence[str],
    inference: HuggingFaceInference | None,
    policy: HeuristicPolicy,
) -> _SimilarityResult:
    if not comparison_set:
        # nothing to compare with: the heuristic is the primary path here
        return _SimilarityResult(
            score=originality_heuristic(text, policy),
            max_similarity=0.0,
            similar_count=0,
            compared_against=0,
            degraded=inference is None,
        )
    if inference is None:
        return _heuristic_similarity(text, policy)

    budget = policy.embedding_chars
    try:
        own = await inference.embed(text[:budget])
    except UpstreamUnavailable as exc:
        logger.warning("Embedding failed, using similarity heuristic: %s", exc.reason)
        return _heuristic_similarity(text, policy)

    results = await asyncio.gather(
        *(inference.embed(other[:budget]) for other in comparison_set),
        return_exceptions=True,
    )

    max_similarity = 0.0
    similar = 0
    compared = 0
    failed = 0
    for result in results:
        if isinstance(result, UpstreamUnavailable):
            failed += 1
            continue
        if isinstance(result, BaseException):
            raise result
        sim = cosine_similarity(own, result)
        compared += 1
        max_similarity = max(max_similarity, sim)
        if sim > policy.similarity_flag_threshold:
            similar += 1

    if failed:
        logger.warning(
            "Skipped %d of %d comparison embeddings after upstream errors",
            failed,
            len(comparison_set),
        )
    if compared == 0:
        return _heuristic_similarity(text, policy)

    return _SimilarityResult(
        score=similarity_score(max_similarity),
        max_similarity=max_similarity,
        similar_count=similar,
        compared_against=compared,
        degraded=failed > 0,
    )


async def _detection_check(
    text: str,
    inference: HuggingFaceInference | None,
    policy: HeuristicPolicy,
) -> _DetectionResult:
    if inference is not None:
        try:
            labels = await inference.classify(text[: policy.detector_chars])
        except UpstreamUnavailable as exc:
            logger.warning("AI detection failed, using heuristic: %s", exc.reason)
        else:
            score = human_score_from_labels(labels)
            return _DetectionResult(
                score=score,
                verdict=ai_verdict(score, policy),
                decisive=score > policy.decisive_high or score < policy.decisive_low,
                degraded=False,
            )

    HEURISTIC_FALLBACKS.labels(check="ai_detection").inc()
    score = human_likeness_heuristic(text, policy)
    return _DetectionResult(
        score=score,
        verdict=ai_verdict(score, policy),
        decisive=False,
        degraded=True,
    )


def _describe(
    similarity: _SimilarityResult,
    detection: _DetectionResult,
    final: int,
    risk: str,
) -> str:
    if similarity.compared_against:
        parts = [
            f"Similarity: {similarity.score}/100 "
            f"({similarity.compared_against} compared, "
            f"max {similarity.max_similarity * 100:.1f}%)."
        ]
    else:
        parts = [f"Similarity: {similarity.score}/100 (no comparisons)."]
    parts.append(
        f"AI detection: {detection.score}/100 "
        f"({100 - detection.score}% AI, {detection.verdict})."
    )
    parts.append(f"Final: {final}/100 ({risk} risk).")
    return " ".join(parts)


async def estimate_originality(
    text: str,
    comparison_set: Sequence[str],
    *,
    inference: HuggingFaceInference | None,
    policy: HeuristicPolicy = DEFAULT_POLICY,
) -> OriginalityEstimate:
    """Estimate originality of ``text`` against other submissions.

    ``inference=None`` means hosted models are not configured; both checks
    run as heuristics and the confidence is low.
    """
    similarity, detection = await asyncio.gather(
        _similarity_check(text, comparison_set, inference, policy),
        _detection_check(text, inference, policy),
    )

    final = min(similarity.score, detection.score)
    risk = risk_level(final, policy)

    if similarity.degraded or detection.degraded:
        confidence = "low"
    elif similarity.compared_against > 0 and detection.decisive:
        confidence = "high"
    else:
        confidence = "medium"

    return OriginalityEstimate(
        score=final,
        confidence=confidence,
        details=_describe(similarity, detection, final, risk),
        risk_level=risk,
        student_similarity_score=similarity.score,
        max_similarity=round(similarity.max_similarity, 4),
        similar_count=similarity.similar_count,
        compared_against=similarity.compared_against,
        ai_detection_score=detection.score,
        ai_likelihood=100 - detection.score,
        ai_verdict=detection.verdict,
    )
