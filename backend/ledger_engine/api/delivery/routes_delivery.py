"""Delivery code API routes."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from ledger_engine.api.deps import get_current_user, get_workflow
from ledger_engine.domain.common.errors import NotAuthorized
from ledger_engine.domain.delivery.models import DeliveryToken
from ledger_engine.domain.exchange.workflow import ExchangeWorkflow
from ledger_engine.domain.transactions.models import Participant

router = APIRouter()


class GenerateTokenRequest(BaseModel):
    """The caller is the seller handing the product over."""
    product_id: str
    buyer_id: str
    transaction_id: Optional[str] = None


class CodeRequest(BaseModel):
    """A scanned delivery code."""
    code: str


class DeliveryTokenResponse(BaseModel):
    token_id: str
    code: str
    product_id: str
    product_title: Optional[str]
    seller_id: str
    buyer_id: str
    transaction_id: Optional[str]
    created_at: datetime
    expires_at: datetime
    is_used: bool
    used_at: Optional[datetime]
    status: str
    is_expired: bool

    @classmethod
    def from_entity(cls, token: DeliveryToken, now: datetime) -> "DeliveryTokenResponse":
        return cls(
            token_id=token.id,
            code=token.code,
            product_id=token.product_id,
            product_title=token.product_title,
            seller_id=token.seller_id,
            buyer_id=token.buyer_id,
            transaction_id=token.transaction_id,
            created_at=token.created_at,
            expires_at=token.expires_at,
            is_used=token.is_used,
            used_at=token.used_at,
            status=token.status.value,
            is_expired=not token.is_used and token.is_expired(now),
        )


class RedeemResponse(BaseModel):
    token_id: str
    product_id: str
    transaction_id: Optional[str]
    transaction_status: Optional[str]


@router.post("/tokens", response_model=DeliveryTokenResponse, status_code=status.HTTP_201_CREATED)
async def generate_delivery_token(
    request: GenerateTokenRequest,
    current_user: Participant = Depends(get_current_user),
    workflow: ExchangeWorkflow = Depends(get_workflow),
):
    """Issue a delivery code for a reserved product."""
    token = await workflow.generate_delivery_token(
        request.product_id, current_user.user_id, request.buyer_id, request.transaction_id
    )
    return DeliveryTokenResponse.from_entity(token, workflow.tokens.clock())


@router.post("/validate", response_model=DeliveryTokenResponse)
async def validate_delivery_code(
    request: CodeRequest,
    current_user: Participant = Depends(get_current_user),
    workflow: ExchangeWorkflow = Depends(get_workflow),
):
    """Check a scanned code without consuming it."""
    token = await workflow.validate_delivery_token(request.code)
    return DeliveryTokenResponse.from_entity(token, workflow.tokens.clock())


@router.post("/redeem", response_model=RedeemResponse)
async def redeem_delivery_code(
    request: CodeRequest,
    current_user: Participant = Depends(get_current_user),
    workflow: ExchangeWorkflow = Depends(get_workflow),
):
    """Confirm a handoff. A code can be redeemed once."""
    redemption = await workflow.redeem_delivery_token(request.code, actor_id=current_user.user_id)
    return RedeemResponse(
        token_id=redemption.token.id,
        product_id=redemption.token.product_id,
        transaction_id=redemption.transaction.id if redemption.transaction else None,
        transaction_status=redemption.status.value if redemption.status else None,
    )


@router.get("/transactions/{transaction_id}/tokens", response_model=List[DeliveryTokenResponse])
async def list_transaction_tokens(
    transaction_id: str,
    current_user: Participant = Depends(get_current_user),
    workflow: ExchangeWorkflow = Depends(get_workflow),
):
    """Every code issued for a transaction, used and expired ones included."""
    transaction = await workflow.transactions.get_transaction(transaction_id)
    if not transaction.is_party(current_user.user_id):
        raise NotAuthorized("Only the buyer or the seller can view these delivery codes")
    now = workflow.tokens.clock()
    tokens = await workflow.tokens.list_for_transaction(transaction_id)
    return [DeliveryTokenResponse.from_entity(t, now) for t in tokens]
