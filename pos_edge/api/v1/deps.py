# pos_edge/api/v1/deps.py
from functools import lru_cache

from pos_edge.core.config import settings
from pos_edge.domain.receipt.builder import default_context
from pos_edge.printing.service import PrintService
from pos_edge.printing.transport import PrinterTransport, SpoolerTransport


@lru_cache
def get_printer_transport() -> PrinterTransport:
    return SpoolerTransport()


def get_print_service() -> PrintService:
    return PrintService(
        transport=get_printer_transport(),
        printer_name=settings.PRINTER_NAME,
        timeout=settings.PRINTER_TIMEOUT_SECONDS,
        context=default_context(),
    )
