# pos_edge/db/repositories/products.py
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import func, select

from pos_edge.db.models.products import Product


class ProductRepository:
    """Catalog accessor used by the commit engine."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_product(self, product_id: str) -> Optional[Product]:
        result = await self.db.execute(
            select(Product).where(Product.id == product_id)
        )
        return result.scalar_one_or_none()

    async def get_stock(self, product_id: str) -> int:
        result = await self.db.execute(
            select(Product.stock).where(Product.id == product_id)
        )
        return result.scalar_one_or_none() or 0

    async def try_decrement_stock(self, product_id: str, amount: int) -> bool:
        """Subtract ``amount`` from stock in a single conditional UPDATE.

        Returns False when no row matched, i.e. the product is inactive or has
        fewer than ``amount`` units at the moment the statement runs.
        """
        result = await self.db.execute(
            update(Product)
            .where(
                Product.id == product_id,
                Product.is_active.is_(True),
                Product.stock >= amount,
            )
            .values(stock=Product.stock - amount, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
