# pos_edge/db/repositories/sales.py
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from pos_edge.db.models.sales import Sale


class SaleRepository:
    """Sale ledger: appends committed sales and reads them back for re-printing."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append_sale(self, sale: Sale) -> Sale:
        self.db.add(sale)
        # flush inside the caller's transaction so the id is assigned and any
        # constraint violation surfaces before the decrements are committed
        await self.db.flush()
        return sale

    async def get_sale_by_id(self, sale_id: int) -> Optional[Sale]:
        result = await self.db.execute(
            select(Sale).where(Sale.id == sale_id)
        )
        return result.scalar_one_or_none()

    async def get_sale_by_request_id(self, request_id: str) -> Optional[Sale]:
        result = await self.db.execute(
            select(Sale).where(Sale.request_id == request_id)
        )
        return result.scalar_one_or_none()
