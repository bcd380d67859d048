"""
Typed rows for the laundry back office tables

Rows coming back from the gateway are validated into these models before
they enter a store, including the nested objects produced by joins.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ServiceType(str, Enum):
    SIMPLE_WASH = "simple_wash"
    DRY_CLEAN = "dry_clean"
    IRONING = "ironing"
    WASH_IRON = "wash_iron"
    SPECIAL_WASH = "special_wash"

    @property
    def label(self) -> str:
        return _SERVICE_TYPE_LABELS[self]


class OrderStatus(str, Enum):
    RECEIVED = "received"
    IN_PROGRESS = "in_progress"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        return _ORDER_STATUS_LABELS[self]


class PaymentMethod(str, Enum):
    CASH = "cash"
    MOBILE_MONEY = "mobile_money"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"

    @property
    def label(self) -> str:
        return _PAYMENT_METHOD_LABELS[self]


_SERVICE_TYPE_LABELS = {
    ServiceType.SIMPLE_WASH: "Simple wash",
    ServiceType.DRY_CLEAN: "Dry clean",
    ServiceType.IRONING: "Ironing",
    ServiceType.WASH_IRON: "Wash + iron",
    ServiceType.SPECIAL_WASH: "Special wash",
}

_ORDER_STATUS_LABELS = {
    OrderStatus.RECEIVED: "Received",
    OrderStatus.IN_PROGRESS: "In progress",
    OrderStatus.READY: "Ready",
    OrderStatus.DELIVERED: "Delivered",
    OrderStatus.CANCELLED: "Cancelled",
}

_PAYMENT_METHOD_LABELS = {
    PaymentMethod.CASH: "Cash",
    PaymentMethod.MOBILE_MONEY: "Mobile money",
    PaymentMethod.BANK_TRANSFER: "Bank transfer",
    PaymentMethod.CARD: "Card",
}


class Principal(BaseModel):
    """The authenticated user that owns every row it creates"""
    id: str
    email: Optional[str] = None


class CustomerRef(BaseModel):
    """Customer columns embedded by the ``customers`` join"""
    id: str
    name: str
    contact: Optional[str] = None
    address: Optional[str] = None


class PaymentOrderRef(BaseModel):
    """Order columns embedded in a payment by the ``service_orders`` join"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    clothing_type: str
    quantity: int
    total: float
    customer: Optional[CustomerRef] = Field(default=None, alias="customers")


class Customer(BaseModel):
    id: str
    name: str
    contact: str
    address: str
    document: Optional[str] = None
    owner_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class ServiceOrder(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    customer_id: str
    service_type: ServiceType
    clothing_type: str
    quantity: int
    unit_price: float
    total: float
    expected_delivery: date
    status: OrderStatus
    notes: Optional[str] = None
    owner_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    # Only present when the row was read with the customers join
    customer: Optional[CustomerRef] = Field(default=None, alias="customers")


class Payment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    order_id: str
    amount: float
    method: PaymentMethod
    payment_date: date
    notes: Optional[str] = None
    owner_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    order: Optional[PaymentOrderRef] = Field(default=None, alias="service_orders")
