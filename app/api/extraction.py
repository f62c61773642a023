"""Extraction endpoints called by the document ingestion pipeline."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query

from app.core.errors import ValidationError
from app.core.extraction_matcher import extract
from app.core.logging import get_logger
from app.core.metadata_extraction import extract_document_metadata
from app.core.schemas_patterns import (
    DocumentExtractionRequest,
    DocumentExtractionResponse,
    MatchRequest,
    MatchResult,
    parse_field_name,
)
from app.db.extraction_logs import list_document_logs, list_failed_extractions

logger = get_logger(__name__)

router = APIRouter()


@router.post("/extraction/match", response_model=MatchResult | None)
def match_field(request: MatchRequest) -> MatchResult | None:
    """First matching rule for one field, or null when the field is missing."""
    try:
        return extract(request.field_name, request.document_text)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post("/extraction/documents", response_model=DocumentExtractionResponse)
def extract_document(request: DocumentExtractionRequest) -> DocumentExtractionResponse:
    """Extract all fields of a document; missing fields go to human correction."""
    fields = extract_document_metadata(request.document_id, request.document_text)
    return DocumentExtractionResponse(
        document_id=request.document_id,
        fields=fields,
        missing=[field for field, result in fields.items() if result is None],
    )


@router.get("/extraction/failures")
def get_failed_extractions(
    field_name: str = Query(..., description="Field to inspect"),
    limit: int = Query(50, ge=1, le=500),
) -> list[dict[str, Any]]:
    """Recent failed extraction attempts for a field, newest first."""
    try:
        field = parse_field_name(field_name)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return list_failed_extractions(field.value, limit=limit)


@router.get("/extraction/documents/{document_id}/logs")
def get_document_logs(document_id: UUID) -> list[dict[str, Any]]:
    """Extraction attempts logged for one document."""
    return list_document_logs(document_id)
