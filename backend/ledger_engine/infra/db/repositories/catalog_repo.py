"""Catalog repository implementation."""
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.domain.catalog.models import Product, ProductKind
from ledger_engine.domain.common.types import utcnow
from ledger_engine.infra.db.models.catalog import ProductModel


class CatalogRepositoryImpl:
    """Products table behind the CatalogService protocol.

    Flag writes are single conditional UPDATEs; the row count tells the
    caller whether it won.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add_product(self, product: Product) -> Product:
        """Insert a listing (seeding and catalog imports)."""
        model = ProductModel.from_entity(product)
        self.session.add(model)
        await self.session.commit()
        await self.session.refresh(model)
        return model.to_entity()

    async def get_product(self, product_id: str) -> Optional[Product]:
        """Get product by ID."""
        result = await self.session.execute(
            select(ProductModel)
            .where(ProductModel.id == product_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def set_reserved(self, product_id: str, reserved: bool) -> bool:
        """Compare-and-set the reservation flag."""
        conditions = [ProductModel.id == product_id, ProductModel.is_reserved.is_(not reserved)]
        if reserved:
            conditions.append(ProductModel.is_sold.is_(False))
        result = await self.session.execute(
            update(ProductModel)
            .where(*conditions)
            .values(is_reserved=reserved, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount > 0

    async def set_sold(
        self, product_id: str, owner_id: Optional[str] = None, require_unreserved: bool = False
    ) -> bool:
        """Mark sold and clear the reservation; reassign the owner when given."""
        conditions = [ProductModel.id == product_id, ProductModel.is_sold.is_(False)]
        if require_unreserved:
            conditions.append(ProductModel.is_reserved.is_(False))
        now = utcnow()
        values = {"is_sold": True, "is_reserved": False, "sold_at": now, "updated_at": now}
        if owner_id is not None:
            values["owner_id"] = owner_id
        result = await self.session.execute(
            update(ProductModel)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount > 0

    async def list_available_donations(self, exclude_owner_id: str) -> List[Product]:
        """Active, unsold, unreserved donations not owned by exclude_owner_id."""
        result = await self.session.execute(
            select(ProductModel)
            .where(
                ProductModel.kind == ProductKind.DONATION,
                ProductModel.is_active.is_(True),
                ProductModel.is_sold.is_(False),
                ProductModel.is_reserved.is_(False),
                ProductModel.owner_id != exclude_owner_id,
            )
            .order_by(ProductModel.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return [m.to_entity() for m in result.scalars().all()]
