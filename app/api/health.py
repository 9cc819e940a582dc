import logging

from fastapi import APIRouter
from sqlalchemy import text

from app.database import engine
from app.utils.cache import cache_service

router = APIRouter(prefix="/health", tags=["Health"])
logger = logging.getLogger(__name__)


@router.get(
    "/",
    summary="Health check",
    description="Basic health check endpoint."
)
def health_check():
    """Simple health check."""
    return {"status": "healthy"}


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the database and, when caching is on, Redis are reachable."
)
def readiness_check():
    """
    Readiness check for all dependencies.

    Returns status of:
    - Database connection
    - Redis connection (skipped when caching is disabled)
    """
    checks = {"database": False}

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            checks["database"] = True
    except Exception as e:
        logger.warning("Database readiness check failed: %s", e)
        checks["database_error"] = str(e)

    if cache_service.enabled:
        checks["redis"] = False
        try:
            checks["redis"] = cache_service.ping()
        except Exception as e:
            logger.warning("Redis readiness check failed: %s", e)
            checks["redis_error"] = str(e)

    all_healthy = all(v for k, v in checks.items() if not k.endswith("_error"))

    return {
        "status": "ready" if all_healthy else "not_ready",
        "checks": checks
    }
