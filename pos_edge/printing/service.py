# pos_edge/printing/service.py
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pos_edge.core.config import settings
from pos_edge.core.errors import TransportFailure
from pos_edge.domain.checkout.schemas import (
    AddOn,
    CommittedSale,
    CommittedSaleLine,
    CustomerInfo,
    ServiceType,
    Temperature,
)
from pos_edge.domain.receipt.builder import build_receipt
from pos_edge.domain.receipt.schemas import ReceiptContext
from .escpos import encode_drawer_kick, encode_receipt
from .transport import PrinterJob, PrinterTransport

logger = logging.getLogger(__name__)


class PrintService:
    """Receipt and cash-drawer printing for committed sales.

    Runs strictly after a commit; a failure here leaves the sale untouched
    and the receipt can be re-printed later.
    """

    def __init__(
        self,
        transport: PrinterTransport,
        printer_name: Optional[str] = None,
        timeout: float = settings.PRINTER_TIMEOUT_SECONDS,
        context: Optional[ReceiptContext] = None,
    ):
        self.transport = transport
        self.printer_name = printer_name
        self.timeout = timeout
        self.context = context

    def _resolve_printer(self, printer_id: Optional[str]) -> str:
        name = printer_id or self.printer_name
        if not name:
            raise TransportFailure("No printer configured")
        return name

    async def _send(self, job: PrinterJob) -> None:
        await self.transport.send_raw(job.printer_id, job.data, self.timeout)
        logger.info(
            "Printed %d bytes to %s (drawer: %s)", len(job.data), job.printer_id, job.open_drawer
        )

    def render(self, sale: CommittedSale, open_drawer: bool = True) -> bytes:
        return encode_receipt(build_receipt(sale, self.context), open_drawer=open_drawer)

    async def print_receipt(
        self,
        sale: CommittedSale,
        open_drawer: bool = True,
        printer_id: Optional[str] = None,
    ) -> str:
        job = PrinterJob(
            printer_id=self._resolve_printer(printer_id),
            data=self.render(sale, open_drawer),
            open_drawer=open_drawer,
        )
        await self._send(job)
        return job.printer_id

    async def open_cash_drawer(self, printer_id: Optional[str] = None) -> str:
        job = PrinterJob(
            printer_id=self._resolve_printer(printer_id),
            data=encode_drawer_kick(),
            open_drawer=True,
        )
        await self._send(job)
        return job.printer_id

    async def test_print(self, printer_id: Optional[str] = None) -> str:
        return await self.print_receipt(sample_sale(), open_drawer=False, printer_id=printer_id)


def sample_sale() -> CommittedSale:
    """A fixed sale used to check printer wiring without touching the ledger."""
    return CommittedSale(
        id=0,
        timestamp=datetime.now(timezone.utc),
        status="test",
        items=[
            CommittedSaleLine(
                product_id="TEST-1",
                name="Test Item 1",
                category="Test",
                price=Decimal("10.00"),
                quantity=2,
                temperature=Temperature.NONE,
                add_ons=[],
            ),
            CommittedSaleLine(
                product_id="TEST-2",
                name="Test Item 2",
                category="Test",
                price=Decimal("25.50"),
                quantity=1,
                temperature=Temperature.HOT,
                add_ons=[AddOn(name="Extra Shot", price=Decimal("5.50"))],
            ),
        ],
        total=Decimal("45.50"),
        payment_method="cash",
        service_type=ServiceType.TAKE_OUT,
        service_fee=Decimal("0"),
        customer_info=CustomerInfo(name="Test Customer"),
        notes="This is a test receipt",
        amount_received=Decimal("50.00"),
        change=Decimal("4.50"),
    )
