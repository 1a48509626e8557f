# pos_edge/db/models/sales.py
from decimal import Decimal

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from pos_edge.db.base import Base


class Sale(Base):
    __tablename__ = "sales"

    """A committed sale (receipt header).

    Written exactly once by the commit engine together with the stock
    decrements for its lines. The stored total is the server-computed one;
    the client-declared total is never persisted.
    """

    id = Column(Integer, primary_key=True, autoincrement=True)
    request_id = Column(String, nullable=True, unique=True)

    timestamp = Column(DateTime(timezone=True), nullable=False)
    status = Column(String, nullable=False, default="completed")

    payment_method = Column(String, nullable=False, default="cash")
    service_type = Column(String, nullable=False, default="dineIn")
    service_fee = Column(Numeric(18, 2), nullable=False, default=0)
    total = Column(Numeric(18, 2), nullable=False)
    amount_received = Column(Numeric(18, 2), nullable=False, default=0)
    change = Column(Numeric(18, 2), nullable=False, default=0)

    customer_name = Column(String, nullable=False, default="")
    customer_phone = Column(String, nullable=True)
    customer_email = Column(String, nullable=True)
    customer_discount_type = Column(String, nullable=True)
    customer_discount_id = Column(String, nullable=True)

    notes = Column(Text, nullable=True)

    lines = relationship(
        "SaleLine",
        back_populates="sale",
        order_by="SaleLine.line_number",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_sales_timestamp", "timestamp"),
    )

    @property
    def customer(self) -> dict:
        return {
            "name": self.customer_name or "",
            "phone": self.customer_phone,
            "email": self.customer_email,
            "discount_type": self.customer_discount_type,
            "discount_id": self.customer_discount_id,
        }


class SaleLine(Base):
    __tablename__ = "sale_lines"

    """A product line of a sale, frozen at the time of sale.

    ``price`` is the tendered, tax-inclusive unit price and already includes
    the cost of ``add_ons`` (stored as a JSON list of name/price/quantity).
    """

    id = Column(Integer, primary_key=True, autoincrement=True)
    sale_id = Column(Integer, ForeignKey("sales.id", ondelete="CASCADE"), nullable=False)
    line_number = Column(Integer, nullable=False)

    product_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    category = Column(String, nullable=False, default="")

    price = Column(Numeric(18, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    temperature = Column(String, nullable=False, default="none")
    add_ons = Column(JSON, nullable=False, default=list)

    discount_type = Column(String, nullable=True)
    discount_percentage = Column(Numeric(5, 2), nullable=True)
    discount_amount = Column(Numeric(18, 2), nullable=True)

    sale = relationship("Sale", back_populates="lines")

    __table_args__ = (
        Index("ix_sale_lines_sale_line", "sale_id", "line_number", unique=True),
    )

    @property
    def discount(self) -> dict | None:
        if self.discount_amount is None:
            return None
        return {
            "type": self.discount_type or "",
            "percentage": self.discount_percentage or Decimal("0"),
            "amount": self.discount_amount,
        }
