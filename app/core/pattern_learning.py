"""Review workflow: synthesize candidates for a field and validate each one."""

from app.chains.synthesize_patterns import CandidateGenerator, run_synthesis
from app.core.errors import SynthesisError
from app.core.logging import get_logger
from app.core.pattern_registry import PatternRegistry
from app.core.schemas_patterns import MetadataField, PatternCandidate, SynthesisReport, parse_field_name
from app.core.validation_harness import ConfidenceThresholds, validate

logger = get_logger(__name__)


def synthesize_and_validate(
    field_name: str | MetadataField,
    generator: CandidateGenerator | None = None,
    registry: PatternRegistry | None = None,
    thresholds: ConfidenceThresholds | None = None,
) -> SynthesisReport:
    """
    Propose candidates and replay each against the field's full corpus.

    Candidates that match nothing are kept so the reviewer sees the evidence.

    Raises:
        InsufficientDataError: Field not ready
        SynthesisError: Generation or validation failed; carries the
            candidates validated before the failure
    """
    field = parse_field_name(field_name)
    candidates, skipped, corpus = run_synthesis(field, generator=generator, registry=registry)

    validated: list[PatternCandidate] = []
    for i, candidate in enumerate(candidates, start=1):
        try:
            validated.append(validate(candidate, corpus, thresholds))
        except Exception as e:
            logger.error(
                f"Validation of candidate {i} failed: {e}",
                extra={"field_name": field.value},
            )
            raise SynthesisError(
                f"Validation of candidate {i} failed: {e}", partial_candidates=validated
            ) from e

    validated.sort(key=lambda c: c.pass_rate or 0.0, reverse=True)
    return SynthesisReport(
        field_name=field,
        corpus_size=len(corpus),
        candidates=validated,
        skipped=skipped,
    )
