"""Service sharing (time bank) domain models."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class ServiceCategory(str, Enum):
    """Service category enum."""
    EDUCATION = "EDUCATION"      # Tutoring, lecture notes
    TECHNICAL = "TECHNICAL"      # Computer repair, coding help
    COOKING = "COOKING"
    CHILDCARE = "CHILDCARE"
    PET_CARE = "PET_CARE"
    TRANSLATION = "TRANSLATION"
    MOVING = "MOVING"
    OTHER = "OTHER"


class ServiceRequestStatus(str, Enum):
    """Service request status enum."""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    COMPLETED = "COMPLETED"


SERVICE_REQUEST_TRANSITIONS: dict[ServiceRequestStatus, frozenset[ServiceRequestStatus]] = {
    ServiceRequestStatus.PENDING: frozenset({ServiceRequestStatus.ACCEPTED, ServiceRequestStatus.DECLINED}),
    ServiceRequestStatus.ACCEPTED: frozenset({ServiceRequestStatus.COMPLETED}),
    ServiceRequestStatus.DECLINED: frozenset(),
    ServiceRequestStatus.COMPLETED: frozenset(),
}


@dataclass
class ServiceOffer:
    """A service a provider offers for time credits."""
    id: str
    provider_id: str
    provider_name: Optional[str]
    category: ServiceCategory
    title: str
    description: Optional[str]
    time_credits: int  # Current price in hours
    is_available: bool
    created_at: datetime
    updated_at: datetime
    tags: list[str] = field(default_factory=list)


@dataclass
class ServiceRequest:
    """A request for a service, with the price locked in when it was made."""
    id: str
    service_id: str
    service_title: str
    provider_id: str
    requester_id: str
    requester_name: Optional[str]
    message: Optional[str]
    time_credit_value: int
    status: ServiceRequestStatus
    requested_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    version: int = 1
