"""Content-quality estimation against a rubric.

The primary path prompts a generative model (HuggingFace or Ollama) with
the rubric and the submission text and asks for a JSON review.  Model
output is free text, so parsing is explicit about failure:
``parse_model_output`` returns ``Parsed(review)`` for the first JSON
object in the text that satisfies the ``ModelReview`` schema, and
``Malformed(raw_text, reason)`` otherwise.

Each rubric criterion is matched to a model entry by case-insensitive
name, then by position.  A criterion the model did not score gets the
heuristic estimate for that criterion and is marked ``source="heuristic"``
instead of receiving a made-up neutral score.

When the model is unavailable or its output is malformed, every
criterion is scored by the text-statistics heuristic.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError

from gradeflow.core.errors import UpstreamUnavailable
from gradeflow.core.metrics import HEURISTIC_FALLBACKS
from gradeflow.models.rubric import Criterion
from gradeflow.services.heuristics import (
    DEFAULT_POLICY,
    HeuristicPolicy,
    TextStats,
    clamp,
    criterion_heuristic,
    strengths_and_improvements,
    summary_feedback,
    text_stats,
)
from gradeflow.services.inference import TextGenerator

logger = logging.getLogger(__name__)

_RESPONSE_FORMAT = """{
  "criteriaScores": [{"name": "<criterion name>", "score": <0-100>, "reasoning": "<one sentence>"}],
  "overallQuality": <0-100>,
  "strengths": ["<point>"],
  "improvements": ["<point>"],
  "detailedFeedback": "<2-3 sentences>"
}"""

# Chat template for zephyr-style instruction models on the hosted API.
_HF_TEMPLATE = (
    "<|system|>Strict academic evaluator. Return ONLY JSON.</s>\n"
    "<|user|>\n{body}</s>\n<|assistant|>"
)


class CriterionReview(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    score: float
    reasoning: str = ""


class ModelReview(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    criteria_scores: list[CriterionReview] = Field(alias="criteriaScores")
    overall_quality: float | None = Field(default=None, alias="overallQuality")
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    detailed_feedback: str = Field(default="", alias="detailedFeedback")


@dataclass(frozen=True, slots=True)
class Parsed:
    review: ModelReview


@dataclass(frozen=True, slots=True)
class Malformed:
    raw_text: str
    reason: str


ParseResult = Parsed | Malformed


@dataclass(frozen=True, slots=True)
class CriterionEstimate:
    name: str
    score: int
    reasoning: str
    source: str  # model|heuristic


@dataclass(frozen=True, slots=True)
class ContentEstimate:
    per_criterion: tuple[CriterionEstimate, ...]
    overall_quality: int
    strengths: tuple[str, ...]
    improvements: tuple[str, ...]
    summary: str
    source: str  # model|heuristic
    confidence: str  # low|medium


def parse_model_output(raw_text: str) -> ParseResult:
    """Find the first JSON object in ``raw_text`` that is a valid review."""
    decoder = json.JSONDecoder()
    reason = "no JSON object in model output"
    start = raw_text.find("{")
    while start != -1:
        try:
            candidate, _ = decoder.raw_decode(raw_text, start)
        except json.JSONDecodeError:
            start = raw_text.find("{", start + 1)
            continue
        if isinstance(candidate, dict):
            try:
                return Parsed(ModelReview.model_validate(candidate))
            except SchemaError as exc:
                reason = f"schema mismatch: {exc.error_count()} error(s)"
        start = raw_text.find("{", start + 1)
    return Malformed(raw_text=raw_text, reason=reason)


def build_prompt(
    text: str, criteria: Sequence[Criterion], policy: HeuristicPolicy = DEFAULT_POLICY
) -> str:
    lines = []
    for i, c in enumerate(criteria, start=1):
        line = f"{i}. {c.name} ({c.max_points} pts)"
        if c.description:
            line += f": {c.description}"
        lines.append(line)
    return (
        "Evaluate the student submission below against each criterion. "
        "Scores are 0-100. Be fair and constructive.\n\n"
        "Criteria:\n" + "\n".join(lines) + "\n\n"
        'Submission:\n"""\n' + text[: policy.prompt_chars] + '\n"""\n\n'
        "Respond with JSON only, in this format:\n" + _RESPONSE_FORMAT
    )


def _match(
    criterion: Criterion, index: int, reviews: list[CriterionReview]
) -> CriterionReview | None:
    wanted = criterion.name.strip().lower()
    for review in reviews:
        if review.name is not None and review.name.strip().lower() == wanted:
            return review
    if index < len(reviews):
        return reviews[index]
    return None


def _mean(values: Sequence[int]) -> int:
    return round(sum(values) / len(values)) if values else 0


def heuristic_content(
    text: str,
    criteria: Sequence[Criterion],
    policy: HeuristicPolicy = DEFAULT_POLICY,
    *,
    stats: TextStats | None = None,
) -> ContentEstimate:
    stats = stats or text_stats(text)
    per_criterion = []
    for c in criteria:
        score, reasoning = criterion_heuristic(c.name, stats, policy)
        per_criterion.append(CriterionEstimate(c.name, score, reasoning, "heuristic"))
    overall = _mean([e.score for e in per_criterion])
    strengths, improvements = strengths_and_improvements(stats, policy)
    summary = (
        f"{summary_feedback(overall, policy)} "
        f"({stats.word_count} words, {stats.paragraph_count} paragraphs.)"
    )
    return ContentEstimate(
        per_criterion=tuple(per_criterion),
        overall_quality=overall,
        strengths=tuple(strengths),
        improvements=tuple(improvements),
        summary=summary,
        source="heuristic",
        confidence="low",
    )


def _from_review(
    review: ModelReview,
    text: str,
    criteria: Sequence[Criterion],
    policy: HeuristicPolicy,
) -> ContentEstimate:
    stats = text_stats(text)
    per_criterion = []
    for i, c in enumerate(criteria):
        match = _match(c, i, review.criteria_scores)
        if match is None:
            logger.warning(
                "Model returned no score for criterion %r, using heuristic", c.name
            )
            score, reasoning = criterion_heuristic(c.name, stats, policy)
            per_criterion.append(CriterionEstimate(c.name, score, reasoning, "heuristic"))
            continue
        per_criterion.append(
            CriterionEstimate(
                name=c.name,
                score=int(round(clamp(match.score))),
                reasoning=match.reasoning or "Model assessment",
                source="model",
            )
        )

    scores = [e.score for e in per_criterion]
    overall = (
        int(round(clamp(review.overall_quality)))
        if review.overall_quality is not None
        else _mean(scores)
    )
    all_model = all(e.source == "model" for e in per_criterion)
    cap = policy.max_feedback_items
    return ContentEstimate(
        per_criterion=tuple(per_criterion),
        overall_quality=overall,
        strengths=tuple(review.strengths[:cap]),
        improvements=tuple(review.improvements[:cap]),
        summary=review.detailed_feedback or summary_feedback(overall, policy),
        source="model",
        confidence="medium" if all_model else "low",
    )


async def estimate_content(
    text: str,
    criteria: Sequence[Criterion],
    *,
    generator: TextGenerator | None,
    policy: HeuristicPolicy = DEFAULT_POLICY,
) -> ContentEstimate:
    if generator is None:
        HEURISTIC_FALLBACKS.labels(check="content").inc()
        return heuristic_content(text, criteria, policy)

    prompt = build_prompt(text, criteria, policy)
    if generator.provider == "huggingface":
        prompt = _HF_TEMPLATE.format(body=prompt)

    try:
        raw = await generator.generate(prompt)
    except UpstreamUnavailable as exc:
        logger.warning(
            "Content model %s failed, using heuristic: %s", generator.model, exc.reason
        )
        HEURISTIC_FALLBACKS.labels(check="content").inc()
        return heuristic_content(text, criteria, policy)

    result = parse_model_output(raw)
    if isinstance(result, Malformed):
        logger.warning(
            "Content model %s returned malformed output (%s), using heuristic",
            generator.model,
            result.reason,
        )
        HEURISTIC_FALLBACKS.labels(check="content").inc()
        return heuristic_content(text, criteria, policy)

    return _from_review(result.review, text, criteria, policy)
