"""Offer (transaction) API routes."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from ledger_engine.api.deps import get_current_user, get_workflow
from ledger_engine.domain.common.errors import NotAuthorized
from ledger_engine.domain.exchange.workflow import ExchangeWorkflow
from ledger_engine.domain.transactions.models import Participant, Transaction

router = APIRouter()


# Request/Response Models
class PurchaseRequest(BaseModel):
    """Request a SALE or DONATION product."""
    product_id: str


class TradeOfferRequest(BaseModel):
    """Offer one of your products for someone else's."""
    product_id: str
    offered_product_id: str
    message: Optional[str] = None


class RespondRequest(BaseModel):
    accept: bool


class TransactionResponse(BaseModel):
    """Transaction response."""
    id: str
    seller_id: str
    seller_name: Optional[str]
    buyer_id: str
    buyer_name: Optional[str]
    product_id: str
    product_title: str
    product_thumbnail_url: Optional[str]
    kind: str
    status: str
    offered_product_id: Optional[str]
    offered_product_title: Optional[str]
    offer_message: Optional[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, t: Transaction) -> "TransactionResponse":
        return cls(
            id=t.id,
            seller_id=t.seller_id,
            seller_name=t.seller_name,
            buyer_id=t.buyer_id,
            buyer_name=t.buyer_name,
            product_id=t.product_id,
            product_title=t.product_title,
            product_thumbnail_url=t.product_thumbnail_url,
            kind=t.kind.value,
            status=t.status.value,
            offered_product_id=t.offered_product_id,
            offered_product_title=t.offered_product_title,
            offer_message=t.offer_message,
            created_at=t.created_at,
            updated_at=t.updated_at,
        )


@router.post("/requests", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase_request(
    request: PurchaseRequest,
    current_user: Participant = Depends(get_current_user),
    workflow: ExchangeWorkflow = Depends(get_workflow),
):
    """Request a product (sale or donation)."""
    transaction = await workflow.create_purchase_request(request.product_id, current_user)
    return TransactionResponse.from_entity(transaction)


@router.post("/trades", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_trade_offer(
    request: TradeOfferRequest,
    current_user: Participant = Depends(get_current_user),
    workflow: ExchangeWorkflow = Depends(get_workflow),
):
    """Offer a trade."""
    transaction = await workflow.create_trade_offer(
        request.product_id, request.offered_product_id, request.message, current_user
    )
    return TransactionResponse.from_entity(transaction)


@router.get("/incoming", response_model=List[TransactionResponse])
async def list_incoming_offers(
    current_user: Participant = Depends(get_current_user),
    workflow: ExchangeWorkflow = Depends(get_workflow),
):
    """Offers received on my products."""
    offers = await workflow.transactions.get_incoming_offers(current_user.user_id)
    return [TransactionResponse.from_entity(t) for t in offers]


@router.get("/outgoing", response_model=List[TransactionResponse])
async def list_my_offers(
    current_user: Participant = Depends(get_current_user),
    workflow: ExchangeWorkflow = Depends(get_workflow),
):
    """Offers I sent."""
    offers = await workflow.transactions.get_my_offers(current_user.user_id)
    return [TransactionResponse.from_entity(t) for t in offers]


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_offer(
    transaction_id: str,
    current_user: Participant = Depends(get_current_user),
    workflow: ExchangeWorkflow = Depends(get_workflow),
):
    transaction = await workflow.transactions.get_transaction(transaction_id)
    if not transaction.is_party(current_user.user_id):
        raise NotAuthorized("Only the buyer or the seller can view this transaction")
    return TransactionResponse.from_entity(transaction)


@router.post("/{transaction_id}/respond", response_model=TransactionResponse)
async def respond_to_offer(
    transaction_id: str,
    request: RespondRequest,
    current_user: Participant = Depends(get_current_user),
    workflow: ExchangeWorkflow = Depends(get_workflow),
):
    """Seller accepts or rejects. Answering an accepted offer again returns it unchanged."""
    transaction = await workflow.respond_to_offer(transaction_id, request.accept, actor_id=current_user.user_id)
    return TransactionResponse.from_entity(transaction)


@router.post("/{transaction_id}/cancel", response_model=TransactionResponse)
async def cancel_offer(
    transaction_id: str,
    current_user: Participant = Depends(get_current_user),
    workflow: ExchangeWorkflow = Depends(get_workflow),
):
    transaction = await workflow.cancel_transaction(transaction_id, current_user.user_id)
    return TransactionResponse.from_entity(transaction)
