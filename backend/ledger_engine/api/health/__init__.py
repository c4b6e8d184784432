"""Health API routes."""
from fastapi import APIRouter

from ledger_engine.api.health import routes_health

router = APIRouter()

router.include_router(routes_health.router, prefix="/health", tags=["health"])
