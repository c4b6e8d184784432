"""Catalog and profile database models."""
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Enum as SAEnum, Index, Integer, String

from ledger_engine.domain.catalog.models import ProductKind
from ledger_engine.infra.db.base import Base


class ProductModel(Base):
    """Product listing. Reservation and sold flags are written only through the reservation manager."""

    __tablename__ = "products"

    id = Column(String, primary_key=True)
    owner_id = Column(String, nullable=False)
    owner_name = Column(String, nullable=True)
    kind = Column(SAEnum(ProductKind, name="product_kind", native_enum=False, length=16), nullable=False)
    title = Column(String, nullable=False)
    thumbnail_url = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_reserved = Column(Boolean, default=False, nullable=False)
    is_sold = Column(Boolean, default=False, nullable=False)
    sold_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_products_owner_id", "owner_id"),
        Index("ix_products_kind_available", "kind", "is_active", "is_sold", "is_reserved"),
    )

    def to_entity(self):
        """Convert to domain entity."""
        from ledger_engine.domain.catalog.models import Product
        return Product(
            id=self.id,
            owner_id=self.owner_id,
            owner_name=self.owner_name,
            kind=self.kind,
            title=self.title,
            thumbnail_url=self.thumbnail_url,
            is_active=self.is_active,
            is_reserved=self.is_reserved,
            is_sold=self.is_sold,
            created_at=self.created_at,
            updated_at=self.updated_at,
            sold_at=self.sold_at,
        )

    @classmethod
    def from_entity(cls, entity):
        """Create from domain entity."""
        return cls(
            id=entity.id,
            owner_id=entity.owner_id,
            owner_name=entity.owner_name,
            kind=entity.kind,
            title=entity.title,
            thumbnail_url=entity.thumbnail_url,
            is_active=entity.is_active,
            is_reserved=entity.is_reserved,
            is_sold=entity.is_sold,
            sold_at=entity.sold_at,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )


class UserProfileModel(Base):
    """Per-user balances: gamification points and time credits."""

    __tablename__ = "user_profiles"

    user_id = Column(String, primary_key=True)
    display_name = Column(String, nullable=True)
    points = Column(Integer, default=0, nullable=False)
    credits = Column(Integer, default=0, nullable=False)
    version = Column(Integer, default=1, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("credits >= 0", name="ck_user_profile_credits_non_negative"),
    )

    def to_entity(self):
        """Convert to domain entity."""
        from ledger_engine.domain.ledger.models import Balance
        return Balance(
            user_id=self.user_id,
            display_name=self.display_name,
            points=self.points,
            credits=self.credits,
            version=self.version,
            updated_at=self.updated_at,
        )
