# pos_edge/domain/receipt/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ReceiptContext(_Frozen):
    store_name: str
    subtitle: str
    timezone: str = "UTC"
    vat_rate: Decimal = Decimal("0.12")
    footer_lines: List[str] = Field(
        default_factory=lambda: ["Thank you for your purchase!", "Please keep this receipt"]
    )


class ReceiptHeader(_Frozen):
    store_name: str
    subtitle: str
    timestamp: datetime


class ReceiptMeta(_Frozen):
    receipt_number: str
    payment_method: str
    service_type: str
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None


class ReceiptAddOn(_Frozen):
    name: str
    quantity: int
    amount: Decimal


class ReceiptItem(_Frozen):
    name: str
    quantity: int
    temperature: Optional[str] = None
    base_price: Decimal
    amount: Decimal
    add_ons: List[ReceiptAddOn] = Field(default_factory=list)


class ReceiptTotals(_Frozen):
    subtotal: Decimal
    discount: Decimal
    discount_label: str
    service_fee: Decimal
    service_fee_label: str
    vat_rate: Decimal
    subtotal_ex_tax: Decimal
    vat_amount: Decimal
    total: Decimal


class CashTender(_Frozen):
    amount_received: Decimal
    change: Decimal


class ReceiptDocument(_Frozen):
    header: ReceiptHeader
    meta: ReceiptMeta
    items: List[ReceiptItem]
    totals: ReceiptTotals
    tender: Optional[CashTender] = None
    notes: Optional[str] = None
    footer_lines: List[str] = Field(default_factory=list)
