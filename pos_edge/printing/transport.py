# pos_edge/printing/transport.py
import asyncio
import logging
import platform
from dataclasses import dataclass
from typing import List

from pos_edge.core.errors import TransportFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrinterJob:
    printer_id: str
    data: bytes
    open_drawer: bool = False


class PrinterTransport:
    """Sends raw bytes to a named printer. Raises ``TransportFailure``."""

    async def send_raw(self, printer_id: str, data: bytes, timeout: float) -> None:
        raise NotImplementedError


class SpoolerTransport(PrinterTransport):
    """Raw printing through the CUPS/BSD spooler (``lp`` or ``lpr``).

    The spooler queues jobs per device, so concurrent prints to the same
    printer are serialized there.
    """

    def __init__(self, system: str | None = None):
        self.system = system or platform.system()

    def command(self, printer_id: str) -> List[str]:
        if self.system == "Darwin":
            return ["lpr", "-P", printer_id, "-o", "raw"]
        return ["lp", "-d", printer_id, "-o", "raw"]

    async def send_raw(self, printer_id: str, data: bytes, timeout: float) -> None:
        argv = self.command(printer_id)
        logger.info("Sending %d bytes to printer %s", len(data), printer_id)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise TransportFailure(f"Cannot start {argv[0]}: {exc}", printer_id) from exc

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(data), timeout=timeout)
        except asyncio.TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise TransportFailure(
                f"Printer '{printer_id}' did not accept the job within {timeout}s", printer_id
            ) from exc

        if proc.returncode != 0:
            message = stderr.decode(errors="replace").strip() or f"exit code {proc.returncode}"
            raise TransportFailure(f"Failed to print to '{printer_id}': {message}", printer_id)
