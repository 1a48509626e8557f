import os
import tempfile
from decimal import Decimal
from pathlib import Path

import pytest

_TMP = tempfile.mkdtemp(prefix="pos-edge-")
os.environ.setdefault("DB_URL", f"sqlite+aiosqlite:///{Path(_TMP) / 'app.db'}")
os.environ.setdefault("DB_CREATE_ALL", "false")
os.environ.setdefault("PRINTER_NAME", "TestPrinter")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from pos_edge.core.errors import TransportFailure  # noqa: E402
from pos_edge.db.base import Base, build_engine, build_sessionmaker, get_db  # noqa: E402
from pos_edge.db.models.products import Product  # noqa: E402
from pos_edge.db.models import sales as _sales  # noqa: E402,F401
from pos_edge.domain.receipt.schemas import ReceiptContext  # noqa: E402
from pos_edge.printing.service import PrintService  # noqa: E402
from pos_edge.printing.transport import PrinterTransport  # noqa: E402


class FakeTransport(PrinterTransport):
    """Records jobs instead of talking to a printer."""

    def __init__(self, fail: bool = False):
        self.jobs = []
        self.fail = fail

    async def send_raw(self, printer_id, data, timeout):
        if self.fail:
            raise TransportFailure(f"Printer '{printer_id}' is offline", printer_id)
        self.jobs.append((printer_id, data, timeout))


TEST_CONTEXT = ReceiptContext(
    store_name="finnbites POS",
    subtitle="Point of Sale Terminal",
    timezone="UTC",
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def db_file(tmp_path):
    return tmp_path / "pos.db"


@pytest.fixture
def sync_engine(db_file):
    """Plain sqlite3 engine for seeding and inspecting the database."""
    engine = create_engine(f"sqlite:///{db_file}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def seed(sync_engine):
    def _seed(*products):
        with Session(sync_engine) as session:
            for product_id, stock, price in products:
                session.add(
                    Product(
                        id=product_id,
                        name=f"Product {product_id}",
                        category="Drinks",
                        price=Decimal(price),
                        stock=stock,
                        is_active=True,
                    )
                )
            session.commit()

    return _seed


@pytest.fixture
def stock_of(sync_engine):
    def _stock(product_id):
        with Session(sync_engine) as session:
            return session.get(Product, product_id).stock

    return _stock


@pytest.fixture
def session_factory(sync_engine, db_file):
    engine = build_engine(f"sqlite+aiosqlite:///{db_file}", poolclass=NullPool)
    return build_sessionmaker(engine)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(session_factory, transport):
    from pos_edge.api.v1.deps import get_print_service
    from pos_edge.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_print_service] = lambda: PrintService(
        transport=transport, printer_name="TestPrinter", timeout=1.0, context=TEST_CONTEXT
    )
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
