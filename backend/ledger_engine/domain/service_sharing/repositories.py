"""Service sharing repository protocol."""
from datetime import datetime
from typing import Optional, Protocol

from ledger_engine.domain.service_sharing.models import (
    ServiceCategory,
    ServiceOffer,
    ServiceRequest,
    ServiceRequestStatus,
)


class ServiceSharingRepository(Protocol):
    """Service offers and requests."""

    async def create_offer(self, offer: ServiceOffer) -> ServiceOffer:
        ...

    async def get_offer(self, service_id: str) -> Optional[ServiceOffer]:
        ...

    async def list_offers(self, category: Optional[ServiceCategory] = None) -> list[ServiceOffer]:
        """Available offers, newest first."""
        ...

    async def update_offer_price(self, service_id: str, time_credits: int, updated_at: datetime) -> ServiceOffer:
        ...

    async def create_request(self, request: ServiceRequest) -> ServiceRequest:
        ...

    async def get_request(self, request_id: str) -> Optional[ServiceRequest]:
        ...

    async def update_request_status(
        self,
        request_id: str,
        expected_status: ServiceRequestStatus,
        expected_version: int,
        new_status: ServiceRequestStatus,
        updated_at: datetime,
    ) -> Optional[ServiceRequest]:
        """Conditional status write. Returns None if status/version no longer match."""
        ...

    async def list_requests_for_provider(self, provider_id: str) -> list[ServiceRequest]:
        ...

    async def list_requests_by_requester(self, requester_id: str) -> list[ServiceRequest]:
        ...
