"""LLM chain for proposing extraction patterns from human corrections.

The model only proposes; every candidate is replayed by the validation
harness before anyone is asked to trust it. Failures are raised to the caller
as SynthesisError straight away; nothing is retried behind the operator's back.
"""

from typing import Protocol

import anthropic
from pydantic import ValidationError as SchemaValidationError

from app.core.config import Settings, get_settings
from app.core.correction_store import list_corrections
from app.core.errors import InsufficientDataError, SynthesisError
from app.core.llm import get_anthropic_client, parse_llm_json_dict
from app.core.logging import get_logger
from app.core.opportunity_tracker import get_opportunity
from app.core.pattern_inputs import build_pattern_prompt
from app.core.pattern_registry import PatternRegistry, get_pattern_registry
from app.core.schemas_patterns import (
    Correction,
    MetadataField,
    PatternCandidate,
    RawCandidate,
    parse_field_name,
)

logger = get_logger(__name__)


# ruff: noqa: E501
SYSTEM_PROMPT = """You are an expert at writing regular expressions that extract bibliographic metadata from the text layer of USPTO patent PDFs.

You will receive one field, examples where automatic extraction failed together with the value a human entered, and the patterns already deployed for that field.

You MUST output ONLY valid JSON matching this exact schema:

{
  "candidates": [
    {
      "pattern": "string - Python re pattern, no surrounding slashes",
      "description": "string - 1-2 sentences on what the pattern matches",
      "confidence": 0.0
    }
  ]
}

RULES:
1. Output ONLY the JSON object, no markdown, no explanation.
2. The extracted value MUST be capture group 1.
3. Patterns run with re.IGNORECASE; use (?s) at the start if the value may span lines.
4. Prefer non-greedy quantifiers and stop at the next INID label, e.g. "(72)", "(73)", "(21)", "Filed:", "Notice:".
5. Handle formatting noise: extra spaces, line breaks, asterisks, INID numbers like "(73)".
6. Be specific enough to avoid false positives on other fields.
7. confidence is your estimate (0.0-1.0) that the pattern generalizes.
8. Return 1 to 3 candidates. Return an empty list if no pattern could work."""


class CandidateGenerator(Protocol):
    """Capability that turns a corpus prompt into raw candidate text."""

    def generate_candidates(self, prompt: str) -> str:
        ...


class AnthropicCandidateGenerator:
    """CandidateGenerator backed by the Anthropic Messages API."""

    def __init__(self, settings: Settings | None = None, client: anthropic.Anthropic | None = None):
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self) -> anthropic.Anthropic:
        if self._client is None:
            self._client = get_anthropic_client()
        return self._client

    def generate_candidates(self, prompt: str) -> str:
        """
        Send the prompt and return the response text.

        Raises:
            SynthesisError: Service unreachable, misconfigured, or empty answer
        """
        model = self.settings.PATTERN_MODEL
        try:
            response = self.client.messages.create(
                model=model,
                max_tokens=self.settings.PATTERN_MAX_TOKENS,
                temperature=0,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            logger.error(f"Pattern synthesis call to {model} failed: {e}")
            raise SynthesisError(f"Generative service error: {e}") from e
        except RuntimeError as e:
            raise SynthesisError(str(e)) from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        if not text.strip():
            raise SynthesisError("Generative service returned an empty response")
        return text


def parse_candidates(
    field_name: MetadataField, raw_output: str
) -> tuple[list[PatternCandidate], list[str]]:
    """
    Parse the model answer into candidates.

    Returns:
        (candidates, skipped) where skipped lists why individual entries were dropped

    Raises:
        SynthesisError: Output is not the expected JSON, or every entry is malformed
    """
    try:
        payload = parse_llm_json_dict(raw_output)
    except ValueError as e:
        # Do NOT leak raw model output in the exception
        raise SynthesisError("Model output could not be parsed as JSON") from e

    entries = payload.get("candidates")
    if not isinstance(entries, list):
        raise SynthesisError("Model output has no 'candidates' list")

    candidates: list[PatternCandidate] = []
    skipped: list[str] = []
    for i, entry in enumerate(entries, start=1):
        try:
            raw = RawCandidate.model_validate(entry)
        except SchemaValidationError as e:
            reason = f"candidate {i}: {e.errors()[0]['msg']}"
            logger.warning(f"Dropping malformed candidate: {reason}", extra={"field_name": field_name.value})
            skipped.append(reason)
            continue
        candidates.append(
            PatternCandidate(
                field_name=field_name,
                pattern=raw.pattern.strip(),
                description=raw.description.strip() or "Pattern learned from corrections",
                suggested_confidence=raw.confidence,
            )
        )

    if entries and not candidates:
        raise SynthesisError(f"All {len(entries)} candidates were malformed: {'; '.join(skipped)}")

    return candidates, skipped


def run_synthesis(
    field_name: str | MetadataField,
    generator: CandidateGenerator | None = None,
    registry: PatternRegistry | None = None,
) -> tuple[list[PatternCandidate], list[str], list[Correction]]:
    """
    Synthesize candidates and hand back the corpus they were drawn from.

    Raises:
        ValidationError: Unknown field name
        InsufficientDataError: Field not ready yet
        SynthesisError: Generative service failure or unparseable output
    """
    field = parse_field_name(field_name)
    settings = get_settings()

    opportunity = get_opportunity(field)
    if not opportunity.ready:
        raise InsufficientDataError(field.value, opportunity.count, settings.PATTERN_READY_THRESHOLD)

    corpus = list_corrections(field)
    deployed = list((registry or get_pattern_registry()).active_chain(field))
    prompt = build_pattern_prompt(
        field,
        corpus,
        deployed,
        context_window=settings.PATTERN_CONTEXT_WINDOW,
        max_examples=settings.PATTERN_PROMPT_MAX_EXAMPLES,
    )

    logger.info(
        f"Requesting patterns from {len(corpus)} corrections ({settings.PATTERN_PROMPT_VERSION})",
        extra={"field_name": field.value},
    )

    generator = generator or AnthropicCandidateGenerator(settings)
    raw_output = generator.generate_candidates(prompt)
    candidates, skipped = parse_candidates(field, raw_output)

    logger.info(
        f"Model proposed {len(candidates)} candidates ({len(skipped)} dropped)",
        extra={"field_name": field.value},
    )
    return candidates, skipped, corpus


def synthesize(
    field_name: str | MetadataField,
    generator: CandidateGenerator | None = None,
    registry: PatternRegistry | None = None,
) -> list[PatternCandidate]:
    """Propose candidates for a field (validation fields left unset)."""
    candidates, _, _ = run_synthesis(field_name, generator=generator, registry=registry)
    return candidates
