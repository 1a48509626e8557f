# pos_edge/domain/checkout/service.py
"""Order commit engine.

Turns a proposed sale into a committed one. Stock is reserved with one
conditional UPDATE per product and the sale row is written in the same
unit of work, so a failure at any step leaves neither decremented stock
nor a sale behind.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pos_edge.core.config import settings
from pos_edge.core.errors import (
    InsufficientStock,
    PersistenceFailure,
    StockRaceLost,
    ValidationError,
)
from pos_edge.db.models.sales import Sale, SaleLine as SaleLineModel
from pos_edge.db.repositories.products import ProductRepository
from pos_edge.db.repositories.sales import SaleRepository
from .schemas import ProposedSale, SaleLine

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def is_cents(value: Decimal) -> bool:
    # money inputs are whole cents, so stored lines always sum to the stored total
    return Decimal(value) == to_money(value)


@dataclass(frozen=True)
class SaleTotals:
    items_subtotal: Decimal
    items_discount: Decimal
    service_fee: Decimal

    @property
    def net_subtotal(self) -> Decimal:
        return self.items_subtotal - self.items_discount

    @property
    def total(self) -> Decimal:
        return to_money(self.net_subtotal + self.service_fee)


@asynccontextmanager
async def unit_of_work(db: AsyncSession):
    """One database transaction around a whole commit.

    Commits on normal exit, rolls back on any exception. Database errors are
    re-raised as ``PersistenceFailure`` once the rollback has happened.
    """
    try:
        async with db.begin():
            yield db
    except SQLAlchemyError as exc:
        logger.error("Unit of work rolled back: %s", exc)
        raise PersistenceFailure("The sale could not be saved, no stock was changed") from exc


def validate_lines(lines: List[SaleLine]) -> None:
    if not lines:
        raise ValidationError("Transaction must contain at least one item")

    for line in lines:
        label = line.name or line.product_id or "?"
        if not line.product_id:
            raise ValidationError(f"Item '{label}' is missing ProductId")
        if line.quantity <= 0:
            raise ValidationError(f"Item '{label}' has invalid quantity: {line.quantity}")
        if line.price < 0 or not is_cents(line.price):
            raise ValidationError(f"Item '{label}' has invalid price: {line.price}")
        for add_on in line.add_ons:
            if add_on.price < 0 or not is_cents(add_on.price) or add_on.quantity < 1:
                raise ValidationError(
                    f"Item '{label}' has invalid add-on '{add_on.name}': "
                    f"{add_on.quantity} x {add_on.price}"
                )
        if line.discount is not None:
            amount = line.discount.amount
            if amount < 0 or not is_cents(amount) or amount > line.gross:
                raise ValidationError(
                    f"Item '{label}' has invalid discount amount: {amount}"
                )


def aggregate_quantities(lines: List[SaleLine]) -> Dict[str, int]:
    """Sum quantities per product id, keyed in sorted product order.

    Several cart entries for one product (different temperature or add-ons)
    draw from the same stock and must be checked as one requirement.
    """
    required: Dict[str, int] = {}
    for line in lines:
        required[line.product_id] = required.get(line.product_id, 0) + line.quantity
    return {product_id: required[product_id] for product_id in sorted(required)}


def compute_totals(lines: List[SaleLine], service_fee: Decimal) -> SaleTotals:
    return SaleTotals(
        items_subtotal=sum((line.price * line.quantity for line in lines), Decimal("0")),
        items_discount=sum(
            (line.discount.amount for line in lines if line.discount is not None), Decimal("0")
        ),
        service_fee=Decimal(service_fee),
    )


def reconcile_total(declared: Decimal, computed: Decimal, tolerance: Decimal) -> Decimal:
    """Return the total to persist. Always the computed one."""
    if declared and abs(Decimal(declared) - computed) > tolerance:
        logger.warning(
            "Client total %s differs from computed total %s, using computed",
            declared,
            computed,
        )
    return computed


class OrderCommitEngine:
    def __init__(
        self,
        db: AsyncSession,
        products: Optional[ProductRepository] = None,
        sales: Optional[SaleRepository] = None,
        tolerance: Decimal = settings.TOTAL_TOLERANCE,
    ):
        self.db = db
        self.products = products or ProductRepository(db)
        self.sales = sales or SaleRepository(db)
        self.tolerance = tolerance

    async def commit(self, data: ProposedSale) -> Sale:
        validate_lines(data.items)
        if data.service_fee < 0 or not is_cents(data.service_fee):
            raise ValidationError(f"Invalid service fee: {data.service_fee}")

        try:
            async with unit_of_work(self.db):
                if data.request_id:
                    existing = await self.sales.get_sale_by_request_id(data.request_id)
                    if existing is not None:
                        logger.info(
                            "Request %s already committed as sale %s", data.request_id, existing.id
                        )
                        return existing

                required = aggregate_quantities(data.items)
                await self._check_stock(required)
                await self._decrement_stock(required)

                sale = self._build_sale(data)
                await self.sales.append_sale(sale)
        except PersistenceFailure as exc:
            if data.request_id and isinstance(exc.__cause__, IntegrityError):
                existing = await self.sales.get_sale_by_request_id(data.request_id)
                if existing is not None:
                    logger.info(
                        "Request %s committed concurrently as sale %s", data.request_id, existing.id
                    )
                    return existing
            raise

        logger.info(
            "Committed sale %s: %d line(s), total %s", sale.id, len(sale.lines), sale.total
        )
        return sale

    async def _check_stock(self, required: Dict[str, int]) -> None:
        # advisory only: the conditional decrement below is authoritative
        for product_id, quantity in required.items():
            product = await self.products.get_product(product_id)
            if product is None:
                raise ValidationError(f"Product with ID {product_id} not found")
            if not product.is_active:
                raise ValidationError(f"Product {product.name} is not available")
            if product.stock < quantity:
                raise InsufficientStock(product_id, quantity, product.stock, name=product.name)

    async def _decrement_stock(self, required: Dict[str, int]) -> None:
        for product_id, quantity in required.items():
            if not await self.products.try_decrement_stock(product_id, quantity):
                current = await self.products.get_stock(product_id)
                logger.warning(
                    "Lost stock race for product %s. Current stock: %s, Required: %s",
                    product_id,
                    current,
                    quantity,
                )
                raise StockRaceLost(product_id)

    def _build_sale(self, data: ProposedSale) -> Sale:
        totals = compute_totals(data.items, data.service_fee)
        total = reconcile_total(data.total, totals.total, self.tolerance)
        amount_received = to_money(data.amount_received)
        change = max(Decimal("0.00"), amount_received - total)

        customer = data.customer_info
        return Sale(
            request_id=data.request_id,
            timestamp=datetime.now(timezone.utc),
            status="completed",
            payment_method=data.payment_method,
            service_type=data.service_type.value,
            service_fee=to_money(data.service_fee),
            total=total,
            amount_received=amount_received,
            change=to_money(change),
            customer_name=customer.name,
            customer_phone=customer.phone,
            customer_email=customer.email,
            customer_discount_type=customer.discount_type,
            customer_discount_id=customer.discount_id,
            notes=data.notes,
            lines=[
                self._build_line(number, line)
                for number, line in enumerate(data.items, start=1)
            ],
        )

    @staticmethod
    def _build_line(number: int, line: SaleLine) -> SaleLineModel:
        discount = line.discount
        return SaleLineModel(
            line_number=number,
            product_id=line.product_id,
            name=line.name,
            category=line.category,
            price=to_money(line.price),
            quantity=line.quantity,
            temperature=line.temperature.value,
            add_ons=[
                {"name": a.name, "price": str(to_money(a.price)), "quantity": a.quantity}
                for a in line.add_ons
            ],
            discount_type=discount.type if discount else None,
            discount_percentage=discount.percentage if discount else None,
            discount_amount=to_money(discount.amount) if discount else None,
        )


async def commit_sale(db: AsyncSession, data: ProposedSale) -> Sale:
    return await OrderCommitEngine(db).commit(data)


async def get_sale(db: AsyncSession, sale_id: int) -> Optional[Sale]:
    return await SaleRepository(db).get_sale_by_id(sale_id)
