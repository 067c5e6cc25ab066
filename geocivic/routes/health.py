"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and basic connectivity tests.
"""

from fastapi import APIRouter, HTTPException
from geocivic.config.firebase import get_db
from geocivic.core.settings import settings
from geocivic.utils.firestore_helpers import utc_now


router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """
    Basic health check endpoint.
    Returns 200 if service is running.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "mock_db": settings.USE_MOCK_DB,
        "timestamp": utc_now().isoformat()
    }


@router.get("/db")
async def database_health():
    """
    Database connectivity check.
    Lists collections as a lightweight round trip to the store.
    """
    try:
        db = get_db()
        collections = list(db.collections())

        return {
            "status": "healthy",
            "database": "mock" if settings.USE_MOCK_DB else "firestore",
            "connected": True,
            "collections_count": len(collections),
            "timestamp": utc_now().isoformat()
        }
    except Exception as e:
        raise HTTPException(
            status_code=503,
            detail=f"Database connection failed: {str(e)}"
        )
