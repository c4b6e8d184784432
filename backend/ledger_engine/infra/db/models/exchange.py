"""Exchange database models: transactions and delivery tokens."""
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Enum as SAEnum, ForeignKey, Index, Integer, String, Text

from ledger_engine.domain.catalog.models import ProductKind
from ledger_engine.domain.delivery.models import DeliveryStatus
from ledger_engine.domain.transactions.models import TransactionStatus
from ledger_engine.infra.db.base import Base


class TransactionModel(Base):
    """Offer/request lifecycle between a buyer and a seller. Rows are never deleted."""

    __tablename__ = "transactions"

    id = Column(String, primary_key=True)
    seller_id = Column(String, nullable=False)
    seller_name = Column(String, nullable=True)
    buyer_id = Column(String, nullable=False)
    buyer_name = Column(String, nullable=True)
    product_id = Column(String, ForeignKey("products.id"), nullable=False)
    product_title = Column(String, nullable=False)  # Display snapshot
    product_thumbnail_url = Column(String, nullable=True)
    kind = Column(SAEnum(ProductKind, name="product_kind", native_enum=False, length=16), nullable=False)
    status = Column(
        SAEnum(TransactionStatus, name="transaction_status", native_enum=False, length=16), nullable=False
    )
    offered_product_id = Column(String, ForeignKey("products.id"), nullable=True)
    offered_product_title = Column(String, nullable=True)
    offer_message = Column(Text, nullable=True)
    version = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_transactions_seller_id", "seller_id"),
        Index("ix_transactions_buyer_id", "buyer_id"),
        Index("ix_transactions_product_id", "product_id"),
        Index("ix_transactions_status", "status"),
    )

    def to_entity(self):
        """Convert to domain entity."""
        from ledger_engine.domain.transactions.models import Transaction
        return Transaction(
            id=self.id,
            seller_id=self.seller_id,
            seller_name=self.seller_name,
            buyer_id=self.buyer_id,
            buyer_name=self.buyer_name,
            product_id=self.product_id,
            product_title=self.product_title,
            product_thumbnail_url=self.product_thumbnail_url,
            kind=self.kind,
            status=self.status,
            created_at=self.created_at,
            updated_at=self.updated_at,
            offered_product_id=self.offered_product_id,
            offered_product_title=self.offered_product_title,
            offer_message=self.offer_message,
            version=self.version,
        )

    @classmethod
    def from_entity(cls, entity):
        """Create from domain entity."""
        return cls(
            id=entity.id,
            seller_id=entity.seller_id,
            seller_name=entity.seller_name,
            buyer_id=entity.buyer_id,
            buyer_name=entity.buyer_name,
            product_id=entity.product_id,
            product_title=entity.product_title,
            product_thumbnail_url=entity.product_thumbnail_url,
            kind=entity.kind,
            status=entity.status,
            offered_product_id=entity.offered_product_id,
            offered_product_title=entity.offered_product_title,
            offer_message=entity.offer_message,
            version=entity.version,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )


class DeliveryTokenModel(Base):
    """Single-use delivery code. Expired rows are kept for audit."""

    __tablename__ = "delivery_tokens"

    id = Column(String, primary_key=True)
    code = Column(String, nullable=False)
    product_id = Column(String, ForeignKey("products.id"), nullable=False)
    product_title = Column(String, nullable=True)
    seller_id = Column(String, nullable=False)
    buyer_id = Column(String, nullable=False)
    transaction_id = Column(String, ForeignKey("transactions.id"), nullable=True)
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    is_used = Column(Boolean, default=False, nullable=False)
    used_at = Column(DateTime, nullable=True)
    status = Column(SAEnum(DeliveryStatus, name="delivery_status", native_enum=False, length=16), nullable=False)

    __table_args__ = (
        Index("ix_delivery_tokens_transaction_id", "transaction_id"),
        Index("ix_delivery_tokens_product_id", "product_id"),
    )

    def to_entity(self):
        """Convert to domain entity."""
        from ledger_engine.domain.delivery.models import DeliveryToken
        return DeliveryToken(
            id=self.id,
            code=self.code,
            product_id=self.product_id,
            product_title=self.product_title,
            seller_id=self.seller_id,
            buyer_id=self.buyer_id,
            transaction_id=self.transaction_id,
            created_at=self.created_at,
            expires_at=self.expires_at,
            is_used=self.is_used,
            used_at=self.used_at,
            status=self.status,
        )

    @classmethod
    def from_entity(cls, entity):
        """Create from domain entity."""
        return cls(
            id=entity.id,
            code=entity.code,
            product_id=entity.product_id,
            product_title=entity.product_title,
            seller_id=entity.seller_id,
            buyer_id=entity.buyer_id,
            transaction_id=entity.transaction_id,
            created_at=entity.created_at,
            expires_at=entity.expires_at,
            is_used=entity.is_used,
            used_at=entity.used_at,
            status=entity.status,
        )
