"""Balances, ledger history and surprise box routes."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ledger_engine.api.deps import get_current_user, get_ledger, get_workflow
from ledger_engine.domain.catalog.models import Product
from ledger_engine.domain.exchange.workflow import ExchangeWorkflow
from ledger_engine.domain.ledger.services import CreditLedger
from ledger_engine.domain.transactions.models import Participant

router = APIRouter()


class BalanceResponse(BaseModel):
    user_id: str
    points: int
    credits: int


class LedgerEntryResponse(BaseModel):
    id: str
    kind: str
    from_user_id: Optional[str]
    to_user_id: Optional[str]
    amount: int
    reason: str
    outcome: str
    created_at: datetime


class ProductResponse(BaseModel):
    id: str
    owner_id: str
    title: str
    thumbnail_url: Optional[str]
    kind: str

    @classmethod
    def from_entity(cls, product: Product) -> "ProductResponse":
        return cls(
            id=product.id,
            owner_id=product.owner_id,
            title=product.title,
            thumbnail_url=product.thumbnail_url,
            kind=product.kind.value,
        )


@router.get("/balance", response_model=BalanceResponse)
async def get_my_balance(
    current_user: Participant = Depends(get_current_user),
    ledger: CreditLedger = Depends(get_ledger),
):
    balance = await ledger.get_balance(current_user.user_id)
    return BalanceResponse(user_id=balance.user_id, points=balance.points, credits=balance.credits)


@router.get("/history", response_model=List[LedgerEntryResponse])
async def get_my_ledger_history(
    limit: int = Query(50, ge=1, le=200),
    current_user: Participant = Depends(get_current_user),
    ledger: CreditLedger = Depends(get_ledger),
):
    """Credit transfers and points adjustments, newest first."""
    entries = await ledger.history(current_user.user_id, limit=limit)
    return [
        LedgerEntryResponse(
            id=e.id,
            kind=e.kind.value,
            from_user_id=e.from_user_id,
            to_user_id=e.to_user_id,
            amount=e.amount,
            reason=e.reason,
            outcome=e.outcome.value,
            created_at=e.created_at,
        )
        for e in entries
    ]


@router.get("/surprise-box/items", response_model=List[ProductResponse])
async def list_surprise_box_items(
    current_user: Participant = Depends(get_current_user),
    workflow: ExchangeWorkflow = Depends(get_workflow),
):
    items = await workflow.surprise_box.list_available_items(current_user.user_id)
    return [ProductResponse.from_entity(p) for p in items]


@router.post("/surprise-box/redeem", response_model=ProductResponse)
async def redeem_surprise_box(
    current_user: Participant = Depends(get_current_user),
    workflow: ExchangeWorkflow = Depends(get_workflow),
):
    """Spend points on a random donated item."""
    product = await workflow.redeem_surprise_box(current_user.user_id)
    return ProductResponse.from_entity(product)
