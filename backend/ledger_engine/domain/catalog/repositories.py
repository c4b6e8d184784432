"""Catalog service protocol (collaborator owned by the catalog subsystem)."""
from typing import Optional, Protocol

from ledger_engine.domain.catalog.models import Product


class CatalogService(Protocol):
    """Catalog service protocol.

    set_reserved and set_sold are compare-and-set writes: they return False
    when the product was already in the requested state (or missing), so two
    concurrent callers can never both win.
    """

    async def get_product(self, product_id: str) -> Optional[Product]:
        """Get product by ID."""
        ...

    async def set_reserved(self, product_id: str, reserved: bool) -> bool:
        """Flip the reservation flag; False if it already had that value."""
        ...

    async def set_sold(
        self, product_id: str, owner_id: Optional[str] = None, require_unreserved: bool = False
    ) -> bool:
        """Mark sold (clears reservation, optionally reassigns owner); False if already sold.

        With require_unreserved, also False while the product is reserved.
        """
        ...

    async def list_available_donations(self, exclude_owner_id: str) -> list[Product]:
        """Active, unsold, unreserved donations not owned by exclude_owner_id."""
        ...
