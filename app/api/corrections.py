"""Correction endpoints used by the metadata correction panel."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query

from app.core.correction_store import (
    latest_corrections_for_document,
    list_corrections,
    record_correction,
)
from app.core.errors import ValidationError
from app.core.logging import get_logger
from app.core.schemas_patterns import Correction, MetadataField, RecordCorrectionRequest

logger = get_logger(__name__)

router = APIRouter()


@router.post("/corrections", response_model=Correction, status_code=201)
def create_correction(request: RecordCorrectionRequest) -> Correction:
    """
    Record a human correction for one field of one document.

    Raises:
        HTTPException 400: Unknown field or empty value (nothing is stored)
    """
    try:
        return record_correction(
            document_id=request.document_id,
            field_name=request.field_name,
            corrected_value=request.corrected_value,
            source_text=request.source_text,
            original_value=request.original_value,
            corrected_by=request.corrected_by,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Failed to record correction: {e}", extra={"document_id": str(request.document_id)})
        raise HTTPException(status_code=500, detail="Failed to record correction") from e


@router.get("/corrections", response_model=list[Correction])
def get_field_corrections(
    field_name: str = Query(..., description="Field to list the corpus for"),
) -> list[Correction]:
    """Full correction corpus for a field, oldest first."""
    try:
        return list_corrections(field_name)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.get("/documents/{document_id}/corrections", response_model=dict[MetadataField, Correction])
def get_document_corrections(document_id: UUID) -> dict[MetadataField, Correction]:
    """Authoritative (most recent) correction per field for one document."""
    return latest_corrections_for_document(document_id)
