"""Database models."""
from ledger_engine.infra.db.models.catalog import ProductModel, UserProfileModel
from ledger_engine.infra.db.models.exchange import TransactionModel, DeliveryTokenModel
from ledger_engine.infra.db.models.ledger import LedgerEntryModel
from ledger_engine.infra.db.models.service_sharing import ServiceOfferModel, ServiceRequestModel
from ledger_engine.infra.db.models.notification import NotificationModel
