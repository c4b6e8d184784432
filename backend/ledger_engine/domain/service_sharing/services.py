"""Service sharing (time bank) domain services."""
import logging
from typing import Optional

from ledger_engine.domain.common.errors import (
    ConcurrencyConflict,
    InsufficientCredits,
    InvalidTransition,
    NotAcceptedYet,
    NotAuthorized,
    NotFoundError,
    ValidationError,
)
from ledger_engine.domain.common.types import generate_id, utcnow
from ledger_engine.domain.ledger.services import CreditLedger
from ledger_engine.domain.notifications.models import (
    NotificationKind,
    Notifier,
    notify_safely,
    service_request_ref,
)
from ledger_engine.domain.service_sharing.models import (
    SERVICE_REQUEST_TRANSITIONS,
    ServiceCategory,
    ServiceOffer,
    ServiceRequest,
    ServiceRequestStatus,
)
from ledger_engine.domain.service_sharing.repositories import ServiceSharingRepository
from ledger_engine.domain.transactions.models import Participant

logger = logging.getLogger(__name__)


class ServiceSharingService:
    """Service offers, requests and their credit settlement."""

    def __init__(
        self,
        repo: ServiceSharingRepository,
        ledger: CreditLedger,
        notifier: Optional[Notifier] = None,
    ):
        self.repo = repo
        self.ledger = ledger
        self.notifier = notifier

    # Offers
    async def create_offer(
        self,
        provider: Participant,
        category: ServiceCategory,
        title: str,
        description: Optional[str],
        time_credits: int,
        tags: Optional[list[str]] = None,
    ) -> ServiceOffer:
        """Publish a service for time credits."""
        if time_credits <= 0:
            raise ValidationError("Time credits must be positive")
        if not title.strip():
            raise ValidationError("Title is required")

        now = utcnow()
        offer = ServiceOffer(
            id=generate_id(),
            provider_id=provider.user_id,
            provider_name=provider.display_name,
            category=category,
            title=title.strip(),
            description=description,
            time_credits=time_credits,
            is_available=True,
            created_at=now,
            updated_at=now,
            tags=list(tags or []),
        )
        return await self.repo.create_offer(offer)

    async def get_offer(self, service_id: str) -> ServiceOffer:
        offer = await self.repo.get_offer(service_id)
        if offer is None:
            raise NotFoundError("ServiceOffer", service_id)
        return offer

    async def list_offers(self, category: Optional[ServiceCategory] = None) -> list[ServiceOffer]:
        """Available offers, optionally filtered by category."""
        return await self.repo.list_offers(category)

    async def update_offer_price(self, service_id: str, provider_id: str, time_credits: int) -> ServiceOffer:
        """Change an offer's price. Requests already made keep the price they locked in."""
        offer = await self.get_offer(service_id)
        if offer.provider_id != provider_id:
            raise NotAuthorized("Only the provider can change this offer")
        if time_credits <= 0:
            raise ValidationError("Time credits must be positive")
        return await self.repo.update_offer_price(service_id, time_credits, utcnow())

    # Requests
    async def request_service(
        self, service_id: str, requester: Participant, message: Optional[str] = None
    ) -> ServiceRequest:
        """Ask for a service, locking the offer's current price into the request."""
        offer = await self.get_offer(service_id)
        if offer.provider_id == requester.user_id:
            raise ValidationError("You cannot request your own service")
        if not offer.is_available:
            raise ValidationError("This service is not available")

        now = utcnow()
        request = ServiceRequest(
            id=generate_id(),
            service_id=offer.id,
            service_title=offer.title,
            provider_id=offer.provider_id,
            requester_id=requester.user_id,
            requester_name=requester.display_name,
            message=message,
            time_credit_value=offer.time_credits,
            status=ServiceRequestStatus.PENDING,
            requested_at=now,
            updated_at=now,
        )
        created = await self.repo.create_request(request)
        logger.info("Service request %s for %s at %d credits", created.id, service_id, created.time_credit_value)

        await notify_safely(
            self.notifier,
            offer.provider_id,
            NotificationKind.SERVICE_REQUESTED,
            "New service request",
            f"{requester.display_name or 'Someone'} requested '{offer.title}'.",
            service_request_ref(created.id),
        )
        return created

    async def get_request(self, request_id: str) -> ServiceRequest:
        request = await self.repo.get_request(request_id)
        if request is None:
            raise NotFoundError("ServiceRequest", request_id)
        return request

    async def get_my_service_requests(self, user_id: str) -> tuple[list[ServiceRequest], list[ServiceRequest]]:
        """(incoming requests as provider, outgoing requests as requester)."""
        incoming = await self.repo.list_requests_for_provider(user_id)
        outgoing = await self.repo.list_requests_by_requester(user_id)
        return incoming, outgoing

    async def respond_to_request(self, request_id: str, actor_id: str, accept: bool) -> ServiceRequest:
        """Provider accepts or declines a pending request."""
        request = await self.get_request(request_id)
        if actor_id != request.provider_id:
            raise NotAuthorized("Only the provider can respond to this request")

        target = ServiceRequestStatus.ACCEPTED if accept else ServiceRequestStatus.DECLINED
        if request.status == target:
            return request
        updated = await self._move(request, target)

        await notify_safely(
            self.notifier,
            updated.requester_id,
            NotificationKind.SERVICE_ACCEPTED if accept else NotificationKind.SERVICE_DECLINED,
            "Service request accepted" if accept else "Service request declined",
            f"Your request for '{updated.service_title}' was {'accepted' if accept else 'declined'}.",
            service_request_ref(updated.id),
        )
        return updated

    async def complete_request(self, request_id: str, actor_id: str) -> ServiceRequest:
        """Requester confirms the service was received; pays the locked-in credits.

        The COMPLETED status is claimed first so a repeated or concurrent call
        can never pay twice; if the transfer then fails the request goes back
        to ACCEPTED and the transfer error is raised.
        """
        request = await self.get_request(request_id)
        if actor_id != request.requester_id:
            raise NotAuthorized("Only the requester can confirm this service")
        if request.status == ServiceRequestStatus.COMPLETED:
            raise InvalidTransition("ServiceRequest", request.status.value, ServiceRequestStatus.COMPLETED.value)
        if request.status != ServiceRequestStatus.ACCEPTED:
            raise NotAcceptedYet(request_id, request.status.value)

        balance = await self.ledger.get_balance(request.requester_id)
        if balance.credits < request.time_credit_value:
            raise InsufficientCredits(request.requester_id, request.time_credit_value, balance.credits)

        completed = await self._move(request, ServiceRequestStatus.COMPLETED)
        try:
            await self.ledger.transfer(
                request.requester_id,
                request.provider_id,
                request.time_credit_value,
                f"service:{request.id}",
            )
        except Exception:
            reverted = await self.repo.update_request_status(
                request.id,
                expected_status=ServiceRequestStatus.COMPLETED,
                expected_version=completed.version,
                new_status=ServiceRequestStatus.ACCEPTED,
                updated_at=utcnow(),
            )
            if reverted is None:
                logger.error("Could not roll service request %s back to ACCEPTED", request.id)
            raise

        logger.info("Service request %s completed, %d credits paid", request.id, request.time_credit_value)
        await notify_safely(
            self.notifier,
            completed.provider_id,
            NotificationKind.SERVICE_COMPLETED,
            "Service completed",
            f"You earned {completed.time_credit_value} time credit(s) for '{completed.service_title}'.",
            service_request_ref(completed.id),
        )
        return completed

    async def _move(self, request: ServiceRequest, target: ServiceRequestStatus) -> ServiceRequest:
        if target not in SERVICE_REQUEST_TRANSITIONS[request.status]:
            raise InvalidTransition("ServiceRequest", request.status.value, target.value)
        updated = await self.repo.update_request_status(
            request.id,
            expected_status=request.status,
            expected_version=request.version,
            new_status=target,
            updated_at=utcnow(),
        )
        if updated is None:
            raise ConcurrencyConflict(f"Service request {request.id} changed concurrently")
        return updated
