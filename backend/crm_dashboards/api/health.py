"""
Liveness and MongoDB readiness probes
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import PyMongoError

from crm_dashboards.config import settings
from crm_dashboards.database.mongo import get_db
from crm_dashboards.utils.datetime import utc_now

router = APIRouter()


@router.get("/health")
async def health_check():
    """The process is up; does not touch the database."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": utc_now().isoformat(),
    }


@router.get("/health/db")
def database_health(db: Database = Depends(get_db)):
    """Ping MongoDB; 503 when it cannot be reached."""
    checked_at = utc_now().isoformat()
    try:
        db.command("ping")
    except PyMongoError as exc:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "database": db.name,
                "error": str(exc),
                "timestamp": checked_at,
            },
        )

    return {"status": "healthy", "database": db.name, "timestamp": checked_at}
