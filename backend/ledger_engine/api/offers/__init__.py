"""Offer API routes."""
from fastapi import APIRouter

from ledger_engine.api.offers import routes_offers

router = APIRouter()

router.include_router(routes_offers.router, prefix="/offers", tags=["offers"])
