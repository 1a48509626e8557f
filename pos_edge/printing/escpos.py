# pos_edge/printing/escpos.py
"""ESC/POS rendering of receipt documents for 58mm (32 column) thermal printers.

Every printed line is emitted with its own alignment and character-mode
bytes, taken from an immutable ``TextStyle``. Nothing is carried over from
the previous line, so a bold or enlarged line can never leak into the next
one.
"""
import enum
import textwrap
import unicodedata
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List

from pos_edge.core.errors import EncodingError
from pos_edge.domain.receipt.schemas import ReceiptDocument, ReceiptItem

LINE_WIDTH = 32
ADD_ON_WIDTH = 30
MAX_NAME_LENGTH = 18

ESC = b"\x1b"
GS = b"\x1d"

RESET = ESC + b"@"
# ESC p m t1 t2: pin 2 then pin 5, 100ms on / 500ms off
DRAWER_KICK = ESC + b"p\x00\x32\xfa" + ESC + b"p\x01\x32\xfa"
# GS V 65 n: feed n lines then partial cut
PARTIAL_CUT = GS + b"VA\x03"

CURRENCY = "Php"
SEPARATOR = "-" * LINE_WIDTH
ITEMS_HEADER = "Item                Qty  Amount".ljust(LINE_WIDTH)
TEMPERATURE_SUFFIXES = {"hot": " (hot)", "cold": " (Iced)"}

_GLYPHS = {
    "₱": CURRENCY,  # peso sign
    "‘": "'",
    "’": "'",
    "“": '"',
    "”": '"',
    "–": "-",
    "—": "-",
    "×": "x",
}


class Align(enum.IntEnum):
    LEFT = 0
    CENTER = 1


@dataclass(frozen=True)
class TextStyle:
    bold: bool = False
    double_height: bool = False
    double_width: bool = False

    @property
    def mode(self) -> int:
        # ESC ! n print-mode bits
        return (
            (0x08 if self.bold else 0)
            | (0x10 if self.double_height else 0)
            | (0x20 if self.double_width else 0)
        )


NORMAL = TextStyle()
BOLD = TextStyle(bold=True)
TITLE = TextStyle(bold=True, double_height=True)


def to_printable(text: str) -> str:
    """Reduce text to printable ASCII.

    Known glyphs are transliterated, accents are stripped, anything else
    becomes ``?``. Control characters are replaced with spaces so that user
    supplied text cannot inject printer commands.
    """
    out = []
    for ch in text:
        if ch in _GLYPHS:
            out.append(_GLYPHS[ch])
            continue
        if ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(" ")
            continue
        if ord(ch) < 0x80:
            out.append(ch)
            continue
        decomposed = unicodedata.normalize("NFKD", ch)
        stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
        if stripped and all(0x20 <= ord(c) < 0x7F for c in stripped):
            out.append(stripped)
        else:
            out.append("?")
    return "".join(out)


def format_price(amount: Decimal) -> str:
    return f"{CURRENCY} {Decimal(amount):.2f}"


def truncate(name: str, limit: int = MAX_NAME_LENGTH) -> str:
    if len(name) <= limit:
        return name
    if limit <= 2:
        return name[: max(limit, 0)]
    return name[: limit - 2] + ".."


def columns(label: str, amount: str, width: int = LINE_WIDTH) -> List[str]:
    """Lay out ``label`` and a right-aligned ``amount`` within ``width``.

    When both do not fit on one line the amount moves to a line of its own,
    still right-aligned, so no line grows past the paper width.
    """
    if len(label) + 1 + len(amount) <= width:
        spacing = max(1, width - len(label) - len(amount))
        return [f"{label}{' ' * spacing}{amount}"]
    return [label, amount.rjust(width)]


def wrap(text: str, width: int = LINE_WIDTH) -> List[str]:
    return textwrap.wrap(to_printable(text), width) or [""]


def line(text: str, style: TextStyle = NORMAL, align: Align = Align.LEFT) -> bytes:
    return (
        ESC + b"a" + bytes([align])
        + ESC + b"!" + bytes([style.mode])
        + to_printable(text).encode("ascii")
        + b"\n"
    )


def lines(texts: Iterable[str], style: TextStyle = NORMAL, align: Align = Align.LEFT) -> bytes:
    return b"".join(line(text, style, align) for text in texts)


def item_lines(item: ReceiptItem) -> List[str]:
    if item.quantity < 1:
        raise EncodingError(f"Receipt item '{item.name}' has quantity {item.quantity}")

    # the name gives up room to the suffix and quantity, never the other way round
    tail = f"{TEMPERATURE_SUFFIXES.get(item.temperature or '', '')} x{item.quantity}"
    name = truncate(to_printable(item.name), min(MAX_NAME_LENGTH, LINE_WIDTH - len(tail)))
    rendered = columns(name + tail, format_price(item.amount))

    for add_on in item.add_ons:
        prefix = f"  + {add_on.quantity}x " if add_on.quantity > 1 else "  + "
        add_on_name = truncate(
            to_printable(add_on.name), min(MAX_NAME_LENGTH, ADD_ON_WIDTH - len(prefix))
        )
        rendered.extend(columns(prefix + add_on_name, format_price(add_on.amount), ADD_ON_WIDTH))
    return rendered


def total_lines(doc: ReceiptDocument) -> bytes:
    totals = doc.totals
    out = lines(columns("Subtotal", format_price(totals.subtotal)))
    if totals.discount > 0:
        out += lines(columns(totals.discount_label, "-" + format_price(totals.discount)))
    if totals.service_fee > 0:
        out += lines(columns(totals.service_fee_label, format_price(totals.service_fee)))

    out += lines(columns("TOTAL", format_price(totals.total)), BOLD)

    vat_label = f"VAT ({totals.vat_rate * 100:.0f}%)"
    out += lines(columns("VATable Sales", format_price(totals.subtotal_ex_tax)))
    out += lines(columns(vat_label, format_price(totals.vat_amount)))

    if doc.tender is not None:
        out += line(SEPARATOR)
        out += lines(columns("Amount Received", format_price(doc.tender.amount_received)))
        out += lines(columns("Change", format_price(doc.tender.change)))
    return out


def encode_drawer_kick() -> bytes:
    """Drawer pulses only, for opening the till without a receipt."""
    return DRAWER_KICK


def encode_receipt(doc: ReceiptDocument, open_drawer: bool = False) -> bytes:
    out = bytearray(RESET)
    if open_drawer:
        # before any text, so the solenoid does not wait on the print buffer
        out += DRAWER_KICK

    header = doc.header
    out += lines(wrap(header.store_name), TITLE, Align.CENTER)
    out += lines(wrap(header.subtitle), NORMAL, Align.CENTER)
    out += line(header.timestamp.strftime("%b %d, %Y %I:%M %p"), NORMAL, Align.CENTER)
    out += line(SEPARATOR)

    meta = doc.meta
    out += lines(wrap(f"Receipt #: {meta.receipt_number}"))
    if meta.payment_method:
        out += lines(wrap(f"Payment: {meta.payment_method}"))
    if meta.service_type:
        out += lines(wrap(f"Service Type: {meta.service_type}"))
    if meta.customer_name:
        out += lines(wrap(f"Customer: {meta.customer_name}"))
    if meta.customer_phone:
        out += lines(wrap(f"Phone: {meta.customer_phone}"))
    if meta.customer_email:
        out += lines(wrap(f"Email: {meta.customer_email}"))
    out += line(SEPARATOR)

    out += line(ITEMS_HEADER, BOLD)
    for item in doc.items:
        out += lines(item_lines(item))
    out += line(SEPARATOR)

    out += total_lines(doc)

    if doc.notes:
        out += line(SEPARATOR)
        out += line("Notes:", BOLD)
        out += lines(wrap(doc.notes))

    out += line(SEPARATOR)
    for footer in doc.footer_lines:
        out += lines(wrap(footer), NORMAL, Align.CENTER)
    out += b"\n\n" + PARTIAL_CUT
    return bytes(out)
