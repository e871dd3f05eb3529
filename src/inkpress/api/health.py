"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running
and the database is reachable.
"""

from fastapi import APIRouter, Request

from inkpress import __version__

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check server health and database connectivity."""
    checks = {"server": "ok", "version": __version__}

    database = getattr(request.app.state, "database", None)
    if database is None:
        checks["storage"] = "memory"
    else:
        try:
            await database.ping()
            checks["postgres"] = "ok"
        except Exception as e:
            checks["postgres"] = f"error: {e}"

    status = "healthy" if checks.get("postgres", "ok") == "ok" else "degraded"
    return {"status": status, **checks}
