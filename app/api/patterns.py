"""Pattern learning admin endpoints: opportunities, analysis, deploy, rollback."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query

from app.core.errors import (
    InsufficientDataError,
    PatternNotFoundError,
    RegistryError,
    SynthesisError,
    ValidationError,
)
from app.core.logging import get_logger
from app.core.opportunity_tracker import get_opportunities
from app.core.pattern_learning import synthesize_and_validate
from app.core.pattern_registry import get_pattern_registry
from app.core.schemas_patterns import (
    AnalyzeRequest,
    DeployedPattern,
    DeployRequest,
    FieldOpportunity,
    RollbackResponse,
    SynthesisReport,
    ToggleRequest,
    parse_field_name,
)

logger = get_logger(__name__)

router = APIRouter()


@router.get("/patterns/opportunities", response_model=list[FieldOpportunity])
def list_opportunities() -> list[FieldOpportunity]:
    """Unspent correction counts per field and whether each is ready for analysis."""
    try:
        return get_opportunities()
    except Exception as e:
        logger.error(f"Failed to compute pattern opportunities: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch opportunities") from e


@router.post("/patterns/analyze", response_model=SynthesisReport)
def analyze_field(request: AnalyzeRequest) -> SynthesisReport:
    """
    Synthesize candidate patterns for a field and validate each against its corpus.

    Raises:
        HTTPException 400: Unknown field
        HTTPException 409: Not enough corrections yet
        HTTPException 502: Generative service failed (safe to retry manually)
    """
    try:
        return synthesize_and_validate(request.field_name)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except InsufficientDataError as e:
        raise HTTPException(
            status_code=409,
            detail={"message": str(e), "count": e.count, "required": e.required},
        ) from e
    except SynthesisError as e:
        logger.error(f"Pattern synthesis failed: {e}", extra={"field_name": request.field_name})
        raise HTTPException(
            status_code=502,
            detail={
                "message": str(e),
                "partial_candidates": [c.model_dump(mode="json") for c in e.partial_candidates],
            },
        ) from e


@router.get("/patterns", response_model=list[DeployedPattern])
def list_deployed_patterns(
    field_name: str | None = Query(None, description="Filter by field"),
    include_inactive: bool = Query(True, description="Include rolled-back / superseded rules"),
) -> list[DeployedPattern]:
    """Registry history in match order."""
    try:
        return get_pattern_registry().list_patterns(field_name, include_inactive=include_inactive)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post("/patterns/deploy", response_model=DeployedPattern)
def deploy_pattern(request: DeployRequest) -> DeployedPattern:
    """Deploy a (possibly hand-edited) pattern."""
    try:
        return get_pattern_registry().deploy(
            field_name=request.field_name,
            pattern=request.pattern,
            description=request.description,
            priority=request.priority,
            source_correction_ids=request.correction_ids,
            source=request.source,
            created_by=request.created_by,
            supersedes_id=request.supersedes_id,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except RegistryError as e:
        logger.error(f"Deploy failed: {e}", extra={"field_name": request.field_name})
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.post("/patterns/{field_name}/rollback", response_model=RollbackResponse)
def rollback_field(field_name: str) -> RollbackResponse:
    """Undo the most recent deploy for a field."""
    try:
        field = parse_field_name(field_name)
        reactivated = get_pattern_registry().rollback(field)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except RegistryError as e:
        logger.error(f"Rollback failed: {e}", extra={"field_name": field_name})
        raise HTTPException(status_code=500, detail=str(e)) from e
    return RollbackResponse(field_name=field, reactivated=reactivated)


@router.post("/patterns/{pattern_id}/toggle", response_model=DeployedPattern)
def toggle_pattern(pattern_id: UUID, request: ToggleRequest) -> DeployedPattern:
    """Activate or deactivate a single deployed pattern."""
    try:
        return get_pattern_registry().set_active(pattern_id, request.is_active)
    except PatternNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except RegistryError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
