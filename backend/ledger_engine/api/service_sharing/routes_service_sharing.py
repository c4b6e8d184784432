"""Service sharing (time bank) API routes."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from ledger_engine.api.deps import get_current_user, get_service_sharing, get_workflow
from ledger_engine.domain.exchange.workflow import ExchangeWorkflow
from ledger_engine.domain.service_sharing.models import ServiceCategory, ServiceOffer, ServiceRequest
from ledger_engine.domain.service_sharing.services import ServiceSharingService
from ledger_engine.domain.transactions.models import Participant

router = APIRouter()


# Request/Response Models
class ServiceOfferRequest(BaseModel):
    category: ServiceCategory
    title: str
    description: Optional[str] = None
    time_credits: int = Field(gt=0)
    tags: List[str] = []


class PriceUpdateRequest(BaseModel):
    time_credits: int = Field(gt=0)


class ServiceRequestCreate(BaseModel):
    message: Optional[str] = None


class RespondRequest(BaseModel):
    accept: bool


class ServiceOfferResponse(BaseModel):
    id: str
    provider_id: str
    provider_name: Optional[str]
    category: str
    title: str
    description: Optional[str]
    time_credits: int
    is_available: bool
    tags: List[str]
    created_at: datetime

    @classmethod
    def from_entity(cls, offer: ServiceOffer) -> "ServiceOfferResponse":
        return cls(
            id=offer.id,
            provider_id=offer.provider_id,
            provider_name=offer.provider_name,
            category=offer.category.value,
            title=offer.title,
            description=offer.description,
            time_credits=offer.time_credits,
            is_available=offer.is_available,
            tags=offer.tags,
            created_at=offer.created_at,
        )


class ServiceRequestResponse(BaseModel):
    id: str
    service_id: str
    service_title: str
    provider_id: str
    requester_id: str
    requester_name: Optional[str]
    message: Optional[str]
    time_credit_value: int
    status: str
    requested_at: datetime
    completed_at: Optional[datetime]

    @classmethod
    def from_entity(cls, request: ServiceRequest) -> "ServiceRequestResponse":
        return cls(
            id=request.id,
            service_id=request.service_id,
            service_title=request.service_title,
            provider_id=request.provider_id,
            requester_id=request.requester_id,
            requester_name=request.requester_name,
            message=request.message,
            time_credit_value=request.time_credit_value,
            status=request.status.value,
            requested_at=request.requested_at,
            completed_at=request.completed_at,
        )


class MyServiceRequestsResponse(BaseModel):
    incoming: List[ServiceRequestResponse]
    outgoing: List[ServiceRequestResponse]


# Offers
@router.get("", response_model=List[ServiceOfferResponse])
async def list_service_offers(
    category: Optional[ServiceCategory] = None,
    service_sharing: ServiceSharingService = Depends(get_service_sharing),
):
    """Available services, optionally by category."""
    offers = await service_sharing.list_offers(category)
    return [ServiceOfferResponse.from_entity(o) for o in offers]


@router.post("", response_model=ServiceOfferResponse, status_code=status.HTTP_201_CREATED)
async def create_service_offer(
    request: ServiceOfferRequest,
    current_user: Participant = Depends(get_current_user),
    service_sharing: ServiceSharingService = Depends(get_service_sharing),
):
    offer = await service_sharing.create_offer(
        current_user,
        request.category,
        request.title,
        request.description,
        request.time_credits,
        request.tags,
    )
    return ServiceOfferResponse.from_entity(offer)


@router.get("/requests/me", response_model=MyServiceRequestsResponse)
async def get_my_service_requests(
    current_user: Participant = Depends(get_current_user),
    service_sharing: ServiceSharingService = Depends(get_service_sharing),
):
    """Requests for my services (incoming) and requests I made (outgoing)."""
    incoming, outgoing = await service_sharing.get_my_service_requests(current_user.user_id)
    return MyServiceRequestsResponse(
        incoming=[ServiceRequestResponse.from_entity(r) for r in incoming],
        outgoing=[ServiceRequestResponse.from_entity(r) for r in outgoing],
    )


@router.post("/requests/{request_id}/respond", response_model=ServiceRequestResponse)
async def respond_to_service_request(
    request_id: str,
    request: RespondRequest,
    current_user: Participant = Depends(get_current_user),
    service_sharing: ServiceSharingService = Depends(get_service_sharing),
):
    """Provider accepts or declines."""
    updated = await service_sharing.respond_to_request(request_id, current_user.user_id, request.accept)
    return ServiceRequestResponse.from_entity(updated)


@router.post("/requests/{request_id}/complete", response_model=ServiceRequestResponse)
async def complete_service_request(
    request_id: str,
    current_user: Participant = Depends(get_current_user),
    workflow: ExchangeWorkflow = Depends(get_workflow),
):
    """Requester confirms the service was received; the locked-in credits are paid."""
    completed = await workflow.complete_service_request(request_id, current_user.user_id)
    return ServiceRequestResponse.from_entity(completed)


@router.patch("/{service_id}/price", response_model=ServiceOfferResponse)
async def update_service_price(
    service_id: str,
    request: PriceUpdateRequest,
    current_user: Participant = Depends(get_current_user),
    service_sharing: ServiceSharingService = Depends(get_service_sharing),
):
    offer = await service_sharing.update_offer_price(service_id, current_user.user_id, request.time_credits)
    return ServiceOfferResponse.from_entity(offer)


@router.post("/{service_id}/requests", response_model=ServiceRequestResponse, status_code=status.HTTP_201_CREATED)
async def request_service(
    service_id: str,
    request: ServiceRequestCreate,
    current_user: Participant = Depends(get_current_user),
    service_sharing: ServiceSharingService = Depends(get_service_sharing),
):
    """Request a service at its current price."""
    created = await service_sharing.request_service(service_id, current_user, request.message)
    return ServiceRequestResponse.from_entity(created)
