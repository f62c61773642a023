"""Validation harness: replay a candidate rule over the historical corpus.

A synthesized rule is a hypothesis. Its verdict comes from applying it to the
source text of every recorded correction for the field and checking whether
it extracts the value the human entered (see ``pattern_rules`` for the fixed
normalization). Deterministic: no LLM, no I/O.

Tiering (defaults, configurable):
- pass_rate >= 0.9 and tested_against >= 10 -> high / auto_deploy
- pass_rate >= 0.7                          -> medium / review
- otherwise                                 -> low / needs_more_data
"""

from dataclasses import dataclass

from app.core.config import get_settings
from app.core.errors import ValidationError
from app.core.logging import get_logger
from app.core.pattern_rules import apply_pattern, compile_pattern, values_match
from app.core.schemas_patterns import (
    Correction,
    DeployRecommendation,
    PatternCandidate,
    PatternConfidence,
    PatternTestResult,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConfidenceThresholds:
    high_pass_rate: float = 0.9
    high_min_tested: int = 10
    medium_pass_rate: float = 0.7

    @classmethod
    def from_settings(cls) -> "ConfidenceThresholds":
        settings = get_settings()
        return cls(
            high_pass_rate=settings.PATTERN_HIGH_PASS_RATE,
            high_min_tested=settings.PATTERN_HIGH_MIN_TESTED,
            medium_pass_rate=settings.PATTERN_MEDIUM_PASS_RATE,
        )


def classify(
    pass_rate: float, tested_against: int, thresholds: ConfidenceThresholds
) -> tuple[PatternConfidence, DeployRecommendation]:
    """Map a pass rate and corpus size to a confidence tier. Same rules for every field."""
    if pass_rate >= thresholds.high_pass_rate and tested_against >= thresholds.high_min_tested:
        return PatternConfidence.HIGH, DeployRecommendation.AUTO_DEPLOY
    if pass_rate >= thresholds.medium_pass_rate:
        return PatternConfidence.MEDIUM, DeployRecommendation.REVIEW
    return PatternConfidence.LOW, DeployRecommendation.NEEDS_MORE_DATA


def _corpus_order(corpus: list[Correction]) -> list[Correction]:
    # Oldest first; id breaks created_at ties so reruns render identically
    return sorted(corpus, key=lambda c: (c.created_at, str(c.id)))


def validate(
    candidate: PatternCandidate,
    corpus: list[Correction],
    thresholds: ConfidenceThresholds | None = None,
) -> PatternCandidate:
    """
    Fill in the validation fields of a candidate.

    Args:
        candidate: Synthesized (or hand-written) rule for one field
        corpus: Every correction recorded for that field
        thresholds: Tier thresholds (defaults from settings)

    Returns:
        A copy of the candidate with confidence, pass_rate, tested_against,
        test_results and recommendation set. A rule that does not compile is
        returned with every record unmatched and ``error`` set.
    """
    thresholds = thresholds or ConfidenceThresholds.from_settings()
    ordered = _corpus_order([c for c in corpus if c.field_name == candidate.field_name])
    if len(ordered) != len(corpus):
        logger.warning(
            f"Ignored {len(corpus) - len(ordered)} corrections for other fields",
            extra={"field_name": candidate.field_name.value},
        )

    error: str | None = None
    try:
        compiled = compile_pattern(candidate.pattern)
    except ValidationError as e:
        compiled = None
        error = str(e)
        logger.warning(
            f"Candidate pattern does not compile: {e}",
            extra={"field_name": candidate.field_name.value},
        )

    results: list[PatternTestResult] = []
    for correction in ordered:
        extracted = (
            apply_pattern(candidate.field_name, compiled, correction.source_text)
            if compiled is not None
            else None
        )
        results.append(
            PatternTestResult(
                correction_id=correction.id,
                corrected_value=correction.corrected_value,
                matched=values_match(extracted, correction.corrected_value),
                extracted_value=extracted,
            )
        )

    tested_against = len(results)
    matched_count = sum(1 for r in results if r.matched)
    pass_rate = matched_count / tested_against if tested_against else 0.0
    confidence, recommendation = classify(pass_rate, tested_against, thresholds)

    logger.info(
        f"Pattern passed {matched_count}/{tested_against} ({pass_rate:.0%}) -> {confidence.value}",
        extra={"field_name": candidate.field_name.value},
    )

    return candidate.model_copy(
        update={
            "confidence": confidence,
            "pass_rate": pass_rate,
            "tested_against": tested_against,
            "test_results": results,
            "recommendation": recommendation,
            "error": error,
        }
    )
