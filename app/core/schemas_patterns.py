"""Pydantic models for metadata corrections and learned extraction patterns.

Lifecycle of a learned rule:
- Correction: a human-supplied value for one field of one document
- PatternCandidate: a synthesized rule, unvalidated until the harness fills it in
- DeployedPattern: an operator-approved rule the matcher walks by priority
"""

from datetime import datetime
from enum import Enum
from typing import Literal, get_args
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.errors import ValidationError


# =============================================================================
# Enums
# =============================================================================


class MetadataField(str, Enum):
    """Bibliographic fields the extractor populates."""

    ASSIGNEE = "assignee"
    INVENTORS = "inventors"
    FILING_DATE = "filingDate"
    ISSUE_DATE = "issueDate"
    PATENT_NUMBER = "patentNumber"
    APPLICATION_NUMBER = "applicationNumber"
    PATENT_CLASSIFICATION = "patentClassification"


class PatternConfidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DeployRecommendation(str, Enum):
    AUTO_DEPLOY = "auto_deploy"
    REVIEW = "review"
    NEEDS_MORE_DATA = "needs_more_data"


PatternSource = Literal["manual", "ai_generated", "original"]
# "original" is reserved for the built-in baselines
DeploySource = Literal["manual", "ai_generated"]
DEPLOY_SOURCES: tuple[str, ...] = get_args(DeploySource)


# =============================================================================
# Corrections
# =============================================================================


class Correction(BaseModel):
    """One human-entered value for one field of one document. Immutable."""

    id: UUID
    document_id: UUID
    field_name: MetadataField
    corrected_value: str
    source_text: str = ""
    original_value: str | None = None  # What extraction produced, if anything
    corrected_by: UUID | None = None
    created_at: datetime


class RecordCorrectionRequest(BaseModel):
    """Request body for POST /corrections."""

    document_id: UUID
    # Plain str so unknown names reach the store and raise our ValidationError
    field_name: str
    corrected_value: str
    source_text: str = ""
    original_value: str | None = None
    corrected_by: UUID | None = None


class FieldOpportunity(BaseModel):
    """Derived readiness view for one field."""

    field_name: MetadataField
    count: int = Field(..., ge=0, description="Corrections not yet spent on a deploy")
    ready: bool


# =============================================================================
# Candidates and validation
# =============================================================================


class PatternTestResult(BaseModel):
    """Verdict for one historical correction."""

    correction_id: UUID
    corrected_value: str
    matched: bool
    extracted_value: str | None = None


class PatternCandidate(BaseModel):
    """A synthesized rule. Validation fields stay unset until validate() runs."""

    field_name: MetadataField
    pattern: str
    description: str = ""
    suggested_confidence: float | None = Field(
        default=None, ge=0.0, le=1.0, description="Model's self-reported confidence (advisory)"
    )
    confidence: PatternConfidence | None = None
    pass_rate: float | None = Field(default=None, ge=0.0, le=1.0)
    tested_against: int | None = None
    test_results: list[PatternTestResult] = Field(default_factory=list)
    recommendation: DeployRecommendation | None = None
    error: str | None = Field(default=None, description="Compile error, if the pattern is invalid")


class RawCandidate(BaseModel):
    """One entry of the model's JSON response."""

    pattern: str = Field(..., min_length=1)
    description: str = ""
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)


class SynthesisReport(BaseModel):
    """Result of synthesize-and-validate for one field."""

    field_name: MetadataField
    corpus_size: int
    candidates: list[PatternCandidate] = Field(default_factory=list)
    skipped: list[str] = Field(
        default_factory=list, description="Reasons model entries were dropped during parsing"
    )


class AnalyzeRequest(BaseModel):
    """Request body for POST /patterns/analyze."""

    field_name: str


# =============================================================================
# Deployed rules and matching
# =============================================================================


class DeployedPattern(BaseModel):
    """A durable rule. Only is_active and usage counters ever change."""

    id: UUID
    field_name: MetadataField
    pattern: str
    description: str = ""
    priority: int
    source_correction_ids: list[UUID] = Field(default_factory=list)
    is_active: bool = True
    source: PatternSource = "ai_generated"
    supersedes_id: UUID | None = None
    created_by: UUID | None = None
    times_used: int = 0
    times_succeeded: int = 0
    created_at: datetime


class DeployRequest(BaseModel):
    """Request body for POST /patterns/deploy."""

    field_name: str
    pattern: str
    description: str = ""
    priority: int = Field(default=50, description="Lower is tried first; 50-99 is the AI band")
    correction_ids: list[UUID] = Field(default_factory=list)
    source: DeploySource = "ai_generated"
    created_by: UUID | None = None
    supersedes_id: UUID | None = None


class ToggleRequest(BaseModel):
    """Request body for POST /patterns/{pattern_id}/toggle."""

    is_active: bool


class RollbackResponse(BaseModel):
    field_name: MetadataField
    reactivated: DeployedPattern | None = None


class MatchResult(BaseModel):
    """First successful rule for a field."""

    value: str
    rule_id: UUID
    priority: int
    source: PatternSource


class MatchRequest(BaseModel):
    """Request body for POST /extraction/match."""

    field_name: str
    document_text: str


class DocumentExtractionRequest(BaseModel):
    """Request body for POST /extraction/documents."""

    document_id: UUID
    document_text: str


class DocumentExtractionResponse(BaseModel):
    document_id: UUID
    fields: dict[MetadataField, MatchResult | None]
    missing: list[MetadataField] = Field(default_factory=list)


def parse_field_name(value: str | MetadataField) -> MetadataField:
    """
    Resolve a field name to the closed enum.

    Raises:
        ValidationError: If the name is not a recognized field
    """
    if isinstance(value, MetadataField):
        return value
    try:
        return MetadataField(value)
    except ValueError as e:
        allowed = ", ".join(f.value for f in MetadataField)
        raise ValidationError(
            f"Unknown field name {value!r} (expected one of: {allowed})", field="field_name"
        ) from e
