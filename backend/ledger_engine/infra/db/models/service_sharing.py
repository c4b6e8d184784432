"""Service sharing database models."""
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)

from ledger_engine.domain.service_sharing.models import ServiceCategory, ServiceRequestStatus
from ledger_engine.infra.db.base import Base


class ServiceOfferModel(Base):
    """Service offered for time credits."""

    __tablename__ = "service_offers"

    id = Column(String, primary_key=True)
    provider_id = Column(String, nullable=False)
    provider_name = Column(String, nullable=True)
    category = Column(SAEnum(ServiceCategory, name="service_category", native_enum=False, length=16), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    time_credits = Column(Integer, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    tags = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("time_credits > 0", name="ck_service_offer_time_credits_positive"),
        Index("ix_service_offers_provider_id", "provider_id"),
        Index("ix_service_offers_category", "category"),
    )

    def to_entity(self):
        """Convert to domain entity."""
        from ledger_engine.domain.service_sharing.models import ServiceOffer
        return ServiceOffer(
            id=self.id,
            provider_id=self.provider_id,
            provider_name=self.provider_name,
            category=self.category,
            title=self.title,
            description=self.description,
            time_credits=self.time_credits,
            is_available=self.is_available,
            created_at=self.created_at,
            updated_at=self.updated_at,
            tags=list(self.tags or []),
        )

    @classmethod
    def from_entity(cls, entity):
        """Create from domain entity."""
        return cls(
            id=entity.id,
            provider_id=entity.provider_id,
            provider_name=entity.provider_name,
            category=entity.category,
            title=entity.title,
            description=entity.description,
            time_credits=entity.time_credits,
            is_available=entity.is_available,
            tags=list(entity.tags),
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )


class ServiceRequestModel(Base):
    """Request for a service; time_credit_value is the price locked in at request time."""

    __tablename__ = "service_requests"

    id = Column(String, primary_key=True)
    service_id = Column(String, ForeignKey("service_offers.id"), nullable=False)
    service_title = Column(String, nullable=False)
    provider_id = Column(String, nullable=False)
    requester_id = Column(String, nullable=False)
    requester_name = Column(String, nullable=True)
    message = Column(Text, nullable=True)
    time_credit_value = Column(Integer, nullable=False)
    status = Column(
        SAEnum(ServiceRequestStatus, name="service_request_status", native_enum=False, length=16), nullable=False
    )
    version = Column(Integer, default=1, nullable=False)
    requested_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("time_credit_value > 0", name="ck_service_request_value_positive"),
        Index("ix_service_requests_provider_id", "provider_id"),
        Index("ix_service_requests_requester_id", "requester_id"),
    )

    def to_entity(self):
        """Convert to domain entity."""
        from ledger_engine.domain.service_sharing.models import ServiceRequest
        return ServiceRequest(
            id=self.id,
            service_id=self.service_id,
            service_title=self.service_title,
            provider_id=self.provider_id,
            requester_id=self.requester_id,
            requester_name=self.requester_name,
            message=self.message,
            time_credit_value=self.time_credit_value,
            status=self.status,
            requested_at=self.requested_at,
            updated_at=self.updated_at,
            completed_at=self.completed_at,
            version=self.version,
        )

    @classmethod
    def from_entity(cls, entity):
        """Create from domain entity."""
        return cls(
            id=entity.id,
            service_id=entity.service_id,
            service_title=entity.service_title,
            provider_id=entity.provider_id,
            requester_id=entity.requester_id,
            requester_name=entity.requester_name,
            message=entity.message,
            time_credit_value=entity.time_credit_value,
            status=entity.status,
            version=entity.version,
            requested_at=entity.requested_at,
            updated_at=entity.updated_at,
            completed_at=entity.completed_at,
        )
