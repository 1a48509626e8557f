# pos_edge/db/models/products.py
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, Numeric, String
from sqlalchemy.sql import func

from pos_edge.db.base import Base


class Product(Base):
    __tablename__ = "products"

    """A sellable product and its on-hand stock.

    Stock is only ever changed by the commit engine through a conditional
    decrement (see ``ProductRepository.try_decrement_stock``). The cart
    sends the tendered unit price, so ``price`` here is the list price only.
    """

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    category = Column(String, nullable=False, default="")

    price = Column(Numeric(18, 2), nullable=False)

    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
    )
