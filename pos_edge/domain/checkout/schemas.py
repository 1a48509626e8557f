# pos_edge/domain/checkout/schemas.py
import enum
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ServiceType(str, enum.Enum):
    DINE_IN = "dineIn"
    TAKE_OUT = "takeOut"


class Temperature(str, enum.Enum):
    NONE = "none"
    HOT = "hot"
    COLD = "cold"


class AddOn(BaseModel):
    name: str
    price: Decimal = Decimal("0")
    quantity: int = 1


class Discount(BaseModel):
    type: str = ""
    percentage: Decimal = Decimal("0")
    amount: Decimal = Decimal("0")


class SaleLine(BaseModel):
    # quantity/price bounds are checked by the commit engine so the caller
    # gets a ValidationError naming the offending item
    product_id: str = ""
    name: str = ""
    category: str = ""
    price: Decimal
    quantity: int
    temperature: Temperature = Temperature.NONE
    add_ons: List[AddOn] = Field(default_factory=list)
    discount: Optional[Discount] = None

    @property
    def gross(self) -> Decimal:
        return self.price * self.quantity


class CustomerInfo(BaseModel):
    name: str = ""
    phone: Optional[str] = None
    email: Optional[str] = None
    discount_type: Optional[str] = None
    discount_id: Optional[str] = None


class ProposedSale(BaseModel):
    items: List[SaleLine] = Field(default_factory=list)
    payment_method: str = "cash"
    service_type: ServiceType = ServiceType.DINE_IN
    service_fee: Decimal = Decimal("0")
    customer_info: CustomerInfo = Field(default_factory=CustomerInfo)
    notes: Optional[str] = None
    total: Decimal = Decimal("0")
    amount_received: Decimal = Decimal("0")
    request_id: Optional[str] = None


class CommittedSaleLine(BaseModel):
    product_id: str
    name: str
    category: str
    price: Decimal
    quantity: int
    temperature: Temperature
    add_ons: List[AddOn]
    discount: Optional[Discount] = None

    model_config = ConfigDict(from_attributes=True, frozen=True)


class CommittedSale(BaseModel):
    id: int
    request_id: Optional[str] = None
    timestamp: datetime
    status: str
    items: List[CommittedSaleLine] = Field(validation_alias="lines")
    total: Decimal
    payment_method: str
    service_type: ServiceType
    service_fee: Decimal
    customer_info: CustomerInfo = Field(validation_alias="customer")
    notes: Optional[str] = None
    amount_received: Decimal
    change: Decimal

    model_config = ConfigDict(from_attributes=True, frozen=True, populate_by_name=True)
