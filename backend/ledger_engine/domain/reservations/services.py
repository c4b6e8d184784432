"""Reservation manager: the only writer of product reservation/sold flags."""
import logging
from typing import Optional

from ledger_engine.domain.catalog.models import Product
from ledger_engine.domain.catalog.repositories import CatalogService
from ledger_engine.domain.common.errors import AlreadyReserved, AlreadySold, NotFoundError

logger = logging.getLogger(__name__)


class ReservationManager:
    """Reservation manager."""

    def __init__(self, catalog: CatalogService):
        self.catalog = catalog

    async def _get(self, product_id: str) -> Product:
        product = await self.catalog.get_product(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    async def reserve(self, product_id: str) -> None:
        """Lock a product for one transaction. Raises AlreadyReserved for the losing caller."""
        product = await self._get(product_id)
        if product.is_sold:
            raise AlreadySold(product_id)
        if not await self.catalog.set_reserved(product_id, True):
            raise AlreadyReserved(product_id)
        logger.info("Reserved product %s", product_id)

    async def release(self, product_id: str) -> None:
        """Drop the reservation lock; releasing an unreserved product is a no-op."""
        if await self.catalog.set_reserved(product_id, False):
            logger.info("Released product %s", product_id)

    async def reserve_pair(self, product_id: str, other_product_id: Optional[str]) -> None:
        """Reserve two products as a unit: no partial lock survives a failure."""
        await self.reserve(product_id)
        if not other_product_id:
            return
        try:
            await self.reserve(other_product_id)
        except Exception:
            await self.release(product_id)
            raise

    async def finalize_sale(
        self, product_id: str, new_owner_id: Optional[str] = None, require_unreserved: bool = False
    ) -> None:
        """Mark sold (reservation cleared), optionally handing ownership to new_owner_id.

        require_unreserved is for handovers outside any transaction: a product
        an accepted offer has reserved is refused with AlreadyReserved.
        """
        await self._get(product_id)
        if not await self.catalog.set_sold(product_id, new_owner_id, require_unreserved=require_unreserved):
            current = await self._get(product_id)
            if current.is_sold:
                raise AlreadySold(product_id)
            raise AlreadyReserved(product_id)
        logger.info(
            "Finalized sale of product %s%s",
            product_id,
            f" to {new_owner_id}" if new_owner_id else "",
        )
