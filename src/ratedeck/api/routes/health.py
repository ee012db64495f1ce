"""Health check endpoints."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

router = APIRouter()

VERSION = "1.0.0"


@router.get("/health")
async def health_check():
    return {"status": "healthy", "service": "ratedeck-api", "version": VERSION}


@router.get("/health/live")
async def liveness():
    """Liveness probe: 200 whenever the process is serving."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(request: Request):
    """Readiness probe: checks database connectivity and reports the worker."""
    checks: dict[str, str] = {}
    overall_ok = True

    try:
        session_factory = request.app.state.db_session_factory
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"
        overall_ok = False

    supervisor = getattr(request.app.state, "supervisor", None)
    if supervisor is None:
        checks["worker"] = "disabled"
    else:
        checks["worker"] = "running" if supervisor.running else "stopped"

    return JSONResponse(
        status_code=200 if overall_ok else 503,
        content={
            "status": "ready" if overall_ok else "not_ready",
            "checks": checks,
        },
    )
