"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running
and the database is reachable.
"""

from fastapi import APIRouter, Depends

from quill import __version__
from quill.db.engine import Database, get_database

router = APIRouter()


@router.get("/health")
async def health_check(db: Database = Depends(get_database)):
    """Check server health and database connectivity."""
    checks = {"server": "ok", "version": __version__}
    checks["database"] = "ok" if await db.ping() else "error"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
