# pos_edge/domain/receipt/builder.py
"""Maps a committed sale onto a printer-agnostic receipt document.

Pure: no I/O and no shared state, so a receipt can be rebuilt from the
stored sale for every print or re-print.
"""
from datetime import datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

from pos_edge.core.config import settings
from pos_edge.domain.checkout.schemas import (
    CommittedSale,
    CommittedSaleLine,
    ServiceType,
    Temperature,
)
from pos_edge.domain.checkout.service import to_money
from .schemas import (
    CashTender,
    ReceiptAddOn,
    ReceiptContext,
    ReceiptDocument,
    ReceiptHeader,
    ReceiptItem,
    ReceiptMeta,
    ReceiptTotals,
)

WALK_IN_CUSTOMER = "Walk-in Customer"

PAYMENT_LABELS = {
    "cash": "Cash",
    "card": "Card",
    "mobile": "Mobile Payment",
}

DISCOUNT_LABELS = {
    "senior": "Discount (Senior)",
    "pwd": "Discount (PWD)",
    "manual": "Discount (Custom)",
}

SERVICE_LABELS = {
    ServiceType.DINE_IN: "Dine-in",
    ServiceType.TAKE_OUT: "Take-out",
}


def default_context() -> ReceiptContext:
    return ReceiptContext(
        store_name=settings.STORE_NAME,
        subtitle=settings.STORE_SUBTITLE,
        timezone=settings.RECEIPT_TIMEZONE,
        vat_rate=settings.VAT_RATE,
    )


def payment_label(method: str) -> str:
    if not method:
        return ""
    return PAYMENT_LABELS.get(method.lower(), method[:1].upper() + method[1:])


def split_vat(total: Decimal, vat_rate: Decimal) -> tuple[Decimal, Decimal]:
    """Back-calculate (subtotal excluding tax, tax) from a tax-inclusive total.

    Done once on the grand total so per-line rounding cannot drift.
    """
    subtotal_ex_tax = to_money(Decimal(total) / (1 + Decimal(vat_rate)))
    return subtotal_ex_tax, to_money(total) - subtotal_ex_tax


def base_unit_price(line: CommittedSaleLine) -> Decimal:
    # the tendered price already carries add-ons and the temperature tier
    add_on_cost = sum((a.price * a.quantity for a in line.add_ons), Decimal("0"))
    return line.price - add_on_cost


def _build_item(line: CommittedSaleLine) -> ReceiptItem:
    base = base_unit_price(line)
    temperature = line.temperature.value if line.temperature != Temperature.NONE else None
    return ReceiptItem(
        name=line.name,
        quantity=line.quantity,
        temperature=temperature,
        base_price=to_money(base),
        amount=to_money(base * line.quantity),
        add_ons=[
            ReceiptAddOn(
                name=a.name,
                quantity=a.quantity,
                amount=to_money(a.price * a.quantity * line.quantity),
            )
            for a in line.add_ons
        ],
    )


def _local_time(ts: datetime, tz_name: str) -> datetime:
    if ts.tzinfo is None:
        # SQLite hands back naive datetimes; they are stored in UTC
        ts = ts.replace(tzinfo=timezone.utc)
    if tz_name == "UTC":
        return ts.astimezone(timezone.utc)
    return ts.astimezone(ZoneInfo(tz_name))


def build_receipt(sale: CommittedSale, context: ReceiptContext | None = None) -> ReceiptDocument:
    context = context or default_context()

    subtotal = sum((line.price * line.quantity for line in sale.items), Decimal("0"))
    discount = sum(
        (line.discount.amount for line in sale.items if line.discount is not None), Decimal("0")
    )
    total = to_money(sale.total)
    subtotal_ex_tax, vat_amount = split_vat(total, context.vat_rate)
    service_label = SERVICE_LABELS[sale.service_type]

    customer = sale.customer_info
    customer_name = customer.name if customer.name and customer.name != WALK_IN_CUSTOMER else None

    tender = None
    if sale.payment_method.lower() == "cash" and sale.amount_received > 0:
        tender = CashTender(
            amount_received=to_money(sale.amount_received),
            change=to_money(max(Decimal("0"), sale.amount_received - total)),
        )

    return ReceiptDocument(
        header=ReceiptHeader(
            store_name=context.store_name,
            subtitle=context.subtitle,
            timestamp=_local_time(sale.timestamp, context.timezone),
        ),
        meta=ReceiptMeta(
            receipt_number=str(sale.id),
            payment_method=payment_label(sale.payment_method),
            service_type=service_label,
            customer_name=customer_name,
            customer_phone=customer.phone or None,
            customer_email=customer.email or None,
        ),
        items=[_build_item(line) for line in sale.items],
        totals=ReceiptTotals(
            subtotal=to_money(subtotal),
            discount=to_money(discount),
            discount_label=DISCOUNT_LABELS.get(customer.discount_type or "", "Discount"),
            service_fee=to_money(sale.service_fee),
            service_fee_label=f"Service Fee ({service_label})",
            vat_rate=context.vat_rate,
            subtotal_ex_tax=subtotal_ex_tax,
            vat_amount=vat_amount,
            total=total,
        ),
        tender=tender,
        notes=sale.notes or None,
        footer_lines=list(context.footer_lines),
    )
