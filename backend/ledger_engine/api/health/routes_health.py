"""Liveness and readiness endpoints."""
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ledger_engine.readiness import is_ready, run_all_checks
from ledger_engine.settings import settings

router = APIRouter()


@router.get("")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "version": settings.app_version}


@router.get("/ready")
async def readiness():
    """Readiness endpoint: run all checks and return 200 if ready, 503 otherwise."""
    checks = await run_all_checks()
    ready, summary = is_ready(checks)
    if ready:
        return {"ready": True, "checks": summary}
    return JSONResponse(
        status_code=503,
        content={"ready": False, "checks": summary},
    )
