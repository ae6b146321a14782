"""Health check endpoints."""
from fastapi import APIRouter

from proptracker.db.session import is_db_configured

router = APIRouter()

VERSION = "0.1.0"


@router.get("/healthz")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "database": "configured" if is_db_configured() else "not configured",
    }


@router.get("/version")
async def version():
    """Version endpoint."""
    return {
        "version": VERSION,
        "api_version": "v1",
    }
