from decimal import Decimal

import anyio
import pytest
from sqlalchemy.exc import OperationalError

from pos_edge.core.errors import (
    InsufficientStock,
    PersistenceFailure,
    StockRaceLost,
    ValidationError,
)
from pos_edge.db.repositories.products import ProductRepository
from pos_edge.db.repositories.sales import SaleRepository
from pos_edge.domain.checkout.schemas import ProposedSale
from pos_edge.domain.checkout.service import (
    OrderCommitEngine,
    commit_sale,
)

pytestmark = pytest.mark.anyio


def make_sale(*lines, **kwargs):
    items = []
    for product_id, quantity, price, *extra in lines:
        item = {"product_id": product_id, "name": f"Product {product_id}", "price": price, "quantity": quantity}
        if extra:
            item.update(extra[0])
        items.append(item)
    return ProposedSale(items=items, **kwargs)


async def test_commit_decrements_stock_and_records_sale(session_factory, seed, stock_of):
    seed(("P1", 5, "100.00"))

    async with session_factory() as db:
        sale = await commit_sale(db, make_sale(("P1", 3, "100.00")))

    assert sale.id is not None
    assert sale.total == Decimal("300.00")
    assert sale.status == "completed"
    assert [line.quantity for line in sale.lines] == [3]
    assert stock_of("P1") == 2


async def test_insufficient_stock_leaves_stock_untouched(session_factory, seed, stock_of):
    seed(("P1", 2, "100.00"))

    async with session_factory() as db:
        with pytest.raises(InsufficientStock) as excinfo:
            await commit_sale(db, make_sale(("P1", 3, "100.00")))

    err = excinfo.value
    assert (err.product_id, err.required, err.available) == ("P1", 3, 2)
    assert stock_of("P1") == 2


async def test_lines_for_same_product_are_checked_together(session_factory, seed, stock_of):
    seed(("P1", 4, "100.00"))
    proposed = make_sale(
        ("P1", 2, "100.00", {"temperature": "hot"}),
        ("P1", 3, "110.00", {"temperature": "cold"}),
    )

    async with session_factory() as db:
        with pytest.raises(InsufficientStock) as excinfo:
            await commit_sale(db, proposed)

    assert excinfo.value.required == 5
    assert stock_of("P1") == 4


@pytest.mark.parametrize(
    "proposed, message",
    [
        (ProposedSale(items=[]), "at least one item"),
        (make_sale(("", 1, "10.00")), "missing ProductId"),
        (make_sale(("P1", 0, "10.00")), "invalid quantity"),
        (make_sale(("P1", 1, "-1.00")), "invalid price"),
        (make_sale(("P1", 1, "10.00", {"discount": {"type": "senior", "amount": "11.00"}})), "invalid discount"),
        (make_sale(("P1", 3, "10.005")), "invalid price"),
        (make_sale(("P1", 1, "10.00", {"add_ons": [{"name": "Syrup", "price": "0.125"}]})), "invalid add-on"),
        (make_sale(("P1", 1, "10.00", {"discount": {"type": "manual", "amount": "1.005"}})), "invalid discount"),
        (make_sale(("P1", 1, "10.00"), service_fee="2.505"), "Invalid service fee"),
        (make_sale(("NOPE", 1, "10.00")), "not found"),
    ],
)
async def test_validation_errors(session_factory, seed, stock_of, proposed, message):
    seed(("P1", 5, "10.00"))

    async with session_factory() as db:
        with pytest.raises(ValidationError, match=message):
            await commit_sale(db, proposed)

    assert stock_of("P1") == 5


async def test_inactive_product_is_rejected(session_factory, seed, sync_engine, stock_of):
    seed(("P1", 5, "10.00"))
    with sync_engine.begin() as conn:
        conn.exec_driver_sql("UPDATE products SET is_active = 0 WHERE id = 'P1'")

    async with session_factory() as db:
        with pytest.raises(ValidationError, match="not available"):
            await commit_sale(db, make_sale(("P1", 1, "10.00")))

    assert stock_of("P1") == 5


async def test_client_total_is_never_persisted(session_factory, seed):
    seed(("P1", 10, "100.00"), ("P2", 10, "50.00"))
    proposed = make_sale(
        ("P1", 2, "100.00", {"discount": {"type": "senior", "percentage": "20", "amount": "40.00"}}),
        ("P2", 1, "50.00"),
        service_fee="4.20",
        total="999.99",
    )

    async with session_factory() as db:
        sale = await commit_sale(db, proposed)

    # (200 + 50) - 40 + 4.20
    assert sale.total == Decimal("214.20")


async def test_client_total_within_tolerance_still_uses_computed(session_factory, seed):
    seed(("P1", 10, "33.33"))

    async with session_factory() as db:
        sale = await commit_sale(db, make_sale(("P1", 3, "33.33"), total="100.00"))

    assert sale.total == Decimal("99.99")


async def test_change_is_computed_from_amount_received(session_factory, seed):
    seed(("P1", 10, "45.00"))

    async with session_factory() as db:
        sale = await commit_sale(db, make_sale(("P1", 1, "45.00"), amount_received="50.00"))
        short = await commit_sale(db, make_sale(("P1", 1, "45.00"), amount_received="20.00"))

    assert sale.change == Decimal("5.00")
    assert short.change == Decimal("0.00")


class StaleProductRepository(ProductRepository):
    """Reports more stock than there is, as if another checkout just took it."""

    async def get_product(self, product_id):
        product = await super().get_product(product_id)
        if product is not None:
            # detach so the inflated figure is never flushed back
            self.db.expunge(product)
            product.stock += 100
        return product


async def test_lost_race_aborts_and_rolls_back_earlier_decrements(session_factory, seed, stock_of):
    seed(("A", 5, "10.00"), ("B", 1, "10.00"))

    async with session_factory() as db:
        engine = OrderCommitEngine(db, products=StaleProductRepository(db))
        with pytest.raises(StockRaceLost) as excinfo:
            await engine.commit(make_sale(("A", 2, "10.00"), ("B", 3, "10.00")))

    assert excinfo.value.product_id == "B"
    assert stock_of("A") == 5
    assert stock_of("B") == 1


class FailingSaleRepository(SaleRepository):
    async def append_sale(self, sale):
        raise OperationalError("INSERT INTO sales", {}, Exception("disk I/O error"))


async def test_persistence_failure_rolls_back_stock(session_factory, seed, stock_of, sync_engine):
    seed(("P1", 5, "100.00"))

    async with session_factory() as db:
        engine = OrderCommitEngine(db, sales=FailingSaleRepository(db))
        with pytest.raises(PersistenceFailure):
            await engine.commit(make_sale(("P1", 3, "100.00")))

    assert stock_of("P1") == 5
    with sync_engine.connect() as conn:
        assert conn.exec_driver_sql("SELECT COUNT(*) FROM sales").scalar() == 0


async def test_same_request_id_commits_once(session_factory, seed, stock_of):
    seed(("P1", 5, "100.00"))
    proposed = make_sale(("P1", 2, "100.00"), request_id="till-1-0001")

    async with session_factory() as db:
        first = await commit_sale(db, proposed)
    async with session_factory() as db:
        second = await commit_sale(db, proposed)

    assert first.id == second.id
    assert stock_of("P1") == 3


async def test_concurrent_commits_never_oversell(session_factory, seed, stock_of):
    seed(("P1", 4, "100.00"))
    outcomes = []

    async def checkout():
        async with session_factory() as db:
            try:
                await commit_sale(db, make_sale(("P1", 3, "100.00")))
                outcomes.append("ok")
            except (InsufficientStock, StockRaceLost) as exc:
                outcomes.append(type(exc).__name__)

    async with anyio.create_task_group() as tg:
        tg.start_soon(checkout)
        tg.start_soon(checkout)

    assert outcomes.count("ok") == 1
    assert len(outcomes) == 2
    assert stock_of("P1") == 1
