"""Rule-based estimates used when hosted models are unavailable.

Every number the heuristics depend on lives in ``HeuristicPolicy`` so
the fallback behavior can be read, tested and tuned in one place.  The
estimators receive a policy explicitly; ``DEFAULT_POLICY`` reproduces
the scoring the service has always used.

The heuristics are deliberately crude: they look at phrases, citation
markers and text statistics, never at meaning.  Any estimate produced
here is reported with ``confidence="low"`` by the caller.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_CITATION_RE = re.compile(r"\[\d+\]|\(\d{4}\)|et al\.", re.IGNORECASE)
_REFERENCES_RE = re.compile(r"references|bibliography", re.IGNORECASE)
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")


@dataclass(frozen=True, slots=True)
class HeuristicPolicy:
    """Named thresholds for fallback scoring.  All scores are 0–100."""

    # Similarity fallback (no comparison set, or embedding failure)
    originality_base: int = 75
    copy_phrases: tuple[str, ...] = (
        "according to wikipedia",
        "copied from",
        "taken from",
    )
    copy_phrase_penalty: int = 15
    citation_bonus: int = 8
    references_bonus: int = 7

    # Cosine similarity above this counts a comparison as "similar"
    similarity_flag_threshold: float = 0.85

    # AI-likeness fallback
    human_likeness_base: int = 70
    assistant_phrases: tuple[str, ...] = (
        "as an ai",
        "i cannot",
        "certainly!",
        "happy to help",
    )
    assistant_phrase_penalty: int = 20

    # Detector verdict bands (human-likeness score)
    likely_human_min: int = 70
    possibly_assisted_min: int = 40
    # Detector output is "decisive" outside (decisive_low, decisive_high)
    decisive_high: int = 80
    decisive_low: int = 20

    # Combined originality risk bands
    risk_none_min: int = 80
    risk_low_min: int = 60
    risk_medium_min: int = 40

    # Content fallback
    default_criterion_score: int = 65
    word_count_bands: tuple[tuple[int, int], ...] = ((500, 85), (300, 75), (150, 60))
    word_count_floor: int = 40
    structure_rich: int = 85  # >= 5 paragraphs and > 15 sentences
    structure_ok: int = 70  # >= 3 paragraphs
    structure_floor: int = 50
    citations_and_references: int = 90
    citations_only: int = 70
    references_only: int = 50
    no_citations: int = 20
    sentence_length_range: tuple[int, int] = (10, 25)
    writing_good: int = 80
    writing_fair: int = 65

    # Feedback wording bands for the overall quality
    feedback_good_min: int = 80
    feedback_fair_min: int = 60
    max_feedback_items: int = 4

    # Truncation budgets (characters) for remote calls
    embedding_chars: int = 4000
    detector_chars: int = 2000
    prompt_chars: int = 2500

    criterion_keywords: dict[str, tuple[str, ...]] = field(
        default_factory=lambda: {
            "content": ("content", "quality"),
            "structure": ("structure", "organization", "organisation"),
            "citation": ("citation", "reference"),
            "writing": ("grammar", "writing"),
        }
    )


DEFAULT_POLICY = HeuristicPolicy()


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True, slots=True)
class TextStats:
    word_count: int
    paragraph_count: int
    sentence_count: int
    has_citations: bool
    has_references: bool

    @property
    def avg_sentence_length(self) -> float:
        return self.word_count / max(self.sentence_count, 1)


def text_stats(text: str) -> TextStats:
    words = text.split()
    paragraphs = [p for p in _PARAGRAPH_SPLIT_RE.split(text) if p.strip()]
    sentences = [s for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]
    return TextStats(
        word_count=len(words),
        paragraph_count=len(paragraphs),
        sentence_count=len(sentences),
        has_citations=bool(_CITATION_RE.search(text)),
        has_references=bool(_REFERENCES_RE.search(text)),
    )


def _count_phrases(text: str, phrases: tuple[str, ...]) -> int:
    lowered = text.lower()
    return sum(1 for p in phrases if p in lowered)


def originality_heuristic(text: str, policy: HeuristicPolicy = DEFAULT_POLICY) -> int:
    stats = text_stats(text)
    score = policy.originality_base
    score -= _count_phrases(text, policy.copy_phrases) * policy.copy_phrase_penalty
    if stats.has_citations:
        score += policy.citation_bonus
    if stats.has_references:
        score += policy.references_bonus
    return int(clamp(score))


def human_likeness_heuristic(
    text: str, policy: HeuristicPolicy = DEFAULT_POLICY
) -> int:
    hits = _count_phrases(text, policy.assistant_phrases)
    return int(clamp(policy.human_likeness_base - hits * policy.assistant_phrase_penalty))


def ai_verdict(human_score: float, policy: HeuristicPolicy = DEFAULT_POLICY) -> str:
    if human_score >= policy.likely_human_min:
        return "Likely human"
    if human_score >= policy.possibly_assisted_min:
        return "Possibly AI-assisted"
    return "Likely AI-generated"


def risk_level(originality: float, policy: HeuristicPolicy = DEFAULT_POLICY) -> str:
    if originality >= policy.risk_none_min:
        return "none"
    if originality >= policy.risk_low_min:
        return "low"
    if originality >= policy.risk_medium_min:
        return "medium"
    return "high"


def criterion_kind(name: str, policy: HeuristicPolicy = DEFAULT_POLICY) -> str | None:
    lowered = name.lower()
    for kind, keywords in policy.criterion_keywords.items():
        if any(k in lowered for k in keywords):
            return kind
    return None


def criterion_heuristic(
    name: str, stats: TextStats, policy: HeuristicPolicy = DEFAULT_POLICY
) -> tuple[int, str]:
    """Score one rubric criterion from text statistics.

    Returns (score, reasoning).
    """
    kind = criterion_kind(name, policy)

    if kind == "content":
        score = policy.word_count_floor
        for min_words, band_score in policy.word_count_bands:
            if stats.word_count > min_words:
                score = band_score
                break
        return score, f"Based on {stats.word_count} words of content"

    if kind == "structure":
        if stats.paragraph_count >= 5 and stats.sentence_count > 15:
            score = policy.structure_rich
        elif stats.paragraph_count >= 3:
            score = policy.structure_ok
        else:
            score = policy.structure_floor
        return (
            score,
            f"{stats.paragraph_count} paragraphs, {stats.sentence_count} sentences",
        )

    if kind == "citation":
        if stats.has_citations and stats.has_references:
            score = policy.citations_and_references
        elif stats.has_citations:
            score = policy.citations_only
        elif stats.has_references:
            score = policy.references_only
        else:
            score = policy.no_citations
        found = "found" if stats.has_citations or stats.has_references else "missing"
        return score, f"Citations and references {found}"

    if kind == "writing":
        low, high = policy.sentence_length_range
        avg = stats.avg_sentence_length
        score = policy.writing_good if low <= avg <= high else policy.writing_fair
        return score, f"Average sentence length {avg:.1f} words"

    return policy.default_criterion_score, "General assessment from text statistics"


def strengths_and_improvements(
    stats: TextStats, policy: HeuristicPolicy = DEFAULT_POLICY
) -> tuple[list[str], list[str]]:
    strengths: list[str] = []
    improvements: list[str] = []

    if stats.word_count > 300:
        strengths.append("Comprehensive content length")
    else:
        improvements.append("Expand the content with more detail")

    if stats.paragraph_count >= 3:
        strengths.append("Well-organized structure")
    else:
        improvements.append("Organize the work into clear paragraphs")

    if stats.has_citations:
        strengths.append("Includes citations")
    else:
        improvements.append("Add citations to support claims")

    if stats.has_references:
        strengths.append("Provides a references section")
    else:
        improvements.append("Include a references section")

    low, high = policy.sentence_length_range
    if low <= stats.avg_sentence_length <= high:
        strengths.append("Readable sentence length")
    else:
        improvements.append("Vary sentence length for readability")

    cap = policy.max_feedback_items
    return strengths[:cap], improvements[:cap]


def summary_feedback(overall: float, policy: HeuristicPolicy = DEFAULT_POLICY) -> str:
    if overall >= policy.feedback_good_min:
        return "Strong submission that meets most of the rubric expectations."
    if overall >= policy.feedback_fair_min:
        return "Adequate submission with clear room for improvement."
    return "The submission needs significant improvement against the rubric."
