"""Delivery API routes."""
from fastapi import APIRouter

from ledger_engine.api.delivery import routes_delivery

router = APIRouter()

router.include_router(routes_delivery.router, prefix="/delivery", tags=["delivery"])
