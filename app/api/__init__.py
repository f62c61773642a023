"""API router for v1 endpoints."""

from fastapi import APIRouter

from app.api import corrections, extraction, patterns

router = APIRouter()

# Ingestion pipeline: matching and per-document extraction passes
router.include_router(extraction.router, tags=["extraction"])

# Correction panel: append-only human corrections
router.include_router(corrections.router, tags=["corrections"])

# Operator surface: opportunities, synthesis review, deploy / rollback
router.include_router(patterns.router, tags=["patterns"])
