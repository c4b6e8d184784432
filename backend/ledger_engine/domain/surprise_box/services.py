"""Surprise box: trade points for a randomly chosen donated item."""
import logging
import random
from typing import Optional

from ledger_engine.domain.catalog.models import Product
from ledger_engine.domain.catalog.repositories import CatalogService
from ledger_engine.domain.common.errors import InsufficientPoints, NoItemsAvailable
from ledger_engine.domain.ledger.services import CreditLedger
from ledger_engine.domain.notifications.models import NotificationKind, Notifier, notify_safely
from ledger_engine.domain.reservations.services import ReservationManager

logger = logging.getLogger(__name__)


class SurpriseBoxService:
    """Redemption orchestrator for the surprise box.

    Points are debited before ownership changes hands. If handing the item
    over fails, the points are credited back so a failed redemption nets to
    zero.
    """

    def __init__(
        self,
        ledger: CreditLedger,
        catalog: CatalogService,
        reservations: ReservationManager,
        notifier: Optional[Notifier] = None,
        cost: int = 50,
        rng: Optional[random.Random] = None,
    ):
        self.ledger = ledger
        self.catalog = catalog
        self.reservations = reservations
        self.notifier = notifier
        self.cost = cost
        self.rng = rng or random.Random()

    async def list_available_items(self, user_id: str) -> list[Product]:
        """Donations the user could win."""
        return await self.catalog.list_available_donations(exclude_owner_id=user_id)

    async def redeem(self, user_id: str) -> Product:
        """Spend `cost` points on a random eligible donation and take ownership of it."""
        balance = await self.ledger.get_balance(user_id)
        if balance.points < self.cost:
            raise InsufficientPoints(user_id, self.cost, balance.points)

        items = await self.list_available_items(user_id)
        if not items:
            raise NoItemsAvailable()
        item = self.rng.choice(items)

        await self.ledger.add_points(user_id, -self.cost, f"surprise box: {item.id}")
        try:
            await self.reservations.finalize_sale(item.id, new_owner_id=user_id, require_unreserved=True)
        except Exception:
            await self._refund(user_id, item.id)
            raise

        won = await self.catalog.get_product(item.id) or item
        logger.info("User %s won product %s from the surprise box", user_id, item.id)
        await notify_safely(
            self.notifier,
            user_id,
            NotificationKind.SURPRISE_BOX_WON,
            "Surprise box opened!",
            f"You received '{won.title}' for {self.cost} points.",
            f"products/{won.id}",
        )
        return won

    async def _refund(self, user_id: str, product_id: str) -> None:
        try:
            await self.ledger.add_points(user_id, self.cost, "rollback")
        except Exception:
            logger.exception(
                "Surprise box rollback failed: %d points of %s were not restored (product %s)",
                self.cost, user_id, product_id,
            )
