"""Service sharing API routes."""
from fastapi import APIRouter

from ledger_engine.api.service_sharing import routes_service_sharing

router = APIRouter()

router.include_router(routes_service_sharing.router, prefix="/services", tags=["service-sharing"])
