"""Rewards API routes."""
from fastapi import APIRouter

from ledger_engine.api.rewards import routes_rewards

router = APIRouter()

router.include_router(routes_rewards.router, prefix="/rewards", tags=["rewards"])
