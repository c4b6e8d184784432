"""Service sharing repository implementation."""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.domain.common.errors import NotFoundError
from ledger_engine.domain.service_sharing.models import (
    ServiceCategory,
    ServiceOffer,
    ServiceRequest,
    ServiceRequestStatus,
)
from ledger_engine.infra.db.models.service_sharing import ServiceOfferModel, ServiceRequestModel


class ServiceSharingRepositoryImpl:
    """Service sharing repository implementation."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # Offers
    async def create_offer(self, offer: ServiceOffer) -> ServiceOffer:
        model = ServiceOfferModel.from_entity(offer)
        self.session.add(model)
        await self.session.commit()
        await self.session.refresh(model)
        return model.to_entity()

    async def get_offer(self, service_id: str) -> Optional[ServiceOffer]:
        result = await self.session.execute(
            select(ServiceOfferModel)
            .where(ServiceOfferModel.id == service_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def list_offers(self, category: Optional[ServiceCategory] = None) -> List[ServiceOffer]:
        """Available offers, newest first."""
        q = (
            select(ServiceOfferModel)
            .where(ServiceOfferModel.is_available.is_(True))
            .order_by(ServiceOfferModel.created_at.desc())
        )
        if category is not None:
            q = q.where(ServiceOfferModel.category == category)
        result = await self.session.execute(q.execution_options(populate_existing=True))
        return [m.to_entity() for m in result.scalars().all()]

    async def update_offer_price(self, service_id: str, time_credits: int, updated_at: datetime) -> ServiceOffer:
        await self.session.execute(
            update(ServiceOfferModel)
            .where(ServiceOfferModel.id == service_id)
            .values(time_credits=time_credits, updated_at=updated_at)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        offer = await self.get_offer(service_id)
        if offer is None:
            raise NotFoundError("ServiceOffer", service_id)
        return offer

    # Requests
    async def create_request(self, request: ServiceRequest) -> ServiceRequest:
        model = ServiceRequestModel.from_entity(request)
        self.session.add(model)
        await self.session.commit()
        await self.session.refresh(model)
        return model.to_entity()

    async def get_request(self, request_id: str) -> Optional[ServiceRequest]:
        result = await self.session.execute(
            select(ServiceRequestModel)
            .where(ServiceRequestModel.id == request_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def update_request_status(
        self,
        request_id: str,
        expected_status: ServiceRequestStatus,
        expected_version: int,
        new_status: ServiceRequestStatus,
        updated_at: datetime,
    ) -> Optional[ServiceRequest]:
        """Conditional status write; completed_at follows the COMPLETED status."""
        completed_at = updated_at if new_status == ServiceRequestStatus.COMPLETED else None
        result = await self.session.execute(
            update(ServiceRequestModel)
            .where(
                ServiceRequestModel.id == request_id,
                ServiceRequestModel.status == expected_status,
                ServiceRequestModel.version == expected_version,
            )
            .values(
                status=new_status,
                version=ServiceRequestModel.version + 1,
                updated_at=updated_at,
                completed_at=completed_at,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        if result.rowcount == 0:
            return None
        return await self.get_request(request_id)

    async def list_requests_for_provider(self, provider_id: str) -> List[ServiceRequest]:
        return await self._list_requests(ServiceRequestModel.provider_id == provider_id)

    async def list_requests_by_requester(self, requester_id: str) -> List[ServiceRequest]:
        return await self._list_requests(ServiceRequestModel.requester_id == requester_id)

    async def _list_requests(self, condition) -> List[ServiceRequest]:
        result = await self.session.execute(
            select(ServiceRequestModel)
            .where(condition)
            .order_by(ServiceRequestModel.requested_at.desc())
            .execution_options(populate_existing=True)
        )
        return [m.to_entity() for m in result.scalars().all()]
