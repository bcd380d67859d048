"""
Field validation applied before any write is sent to the gateway

Each ``validate_*`` function either raises :class:`FieldError` for the first
failing rule or returns a cleaned, row-ready dict (trimmed strings, enum
values, ISO dates). Patch validators only look at the fields present in the
patch.
"""

import math
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional

from dateutil.parser import isoparse

from ..exceptions import FieldError
from ..models import OrderStatus, PaymentMethod, ServiceType

# Columns no caller may write
IMMUTABLE_FIELDS = frozenset({"id", "owner_id", "created_at", "updated_at"})

CUSTOMER_FIELDS = frozenset({"name", "contact", "address", "document"})
ORDER_FIELDS = frozenset({
    "customer_id", "service_type", "clothing_type", "quantity", "unit_price",
    "expected_delivery", "status", "notes",
})
PAYMENT_FIELDS = frozenset({"order_id", "amount", "method", "payment_date", "notes"})

MIN_NAME_LENGTH = 2
MIN_CONTACT_LENGTH = 9
MIN_ADDRESS_LENGTH = 5

# Money columns are numeric(_, 2)
CENTS = Decimal("0.01")


def to_cents(value: Any) -> float:
    """Round an amount to cents the way the database stores it"""
    return float(Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP))


# ===== FIELD RULES =====

def _text(field: str, value: Any, min_length: int, label: str) -> str:
    if value is None or not isinstance(value, str) or not value.strip():
        raise FieldError(field, f"{label} is required")
    cleaned = value.strip()
    if len(cleaned) < min_length:
        raise FieldError(field, f"{label} must be at least {min_length} characters")
    return cleaned


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def _reference(field: str, value: Any, label: str) -> str:
    if value is None or not str(value).strip():
        raise FieldError(field, f"{label} is required")
    return str(value).strip()


def _positive_number(field: str, value: Any, label: str) -> float:
    if value is None or value == "":
        raise FieldError(field, f"{label} is required")
    if isinstance(value, bool):
        raise FieldError(field, f"{label} must be a number")
    try:
        number = float(value) if isinstance(value, (int, float, Decimal)) else float(str(value).strip())
    except (TypeError, ValueError):
        raise FieldError(field, f"{label} must be a number")
    if math.isnan(number) or math.isinf(number):
        raise FieldError(field, f"{label} must be a number")
    try:
        amount = to_cents(number)
    except InvalidOperation:
        raise FieldError(field, f"{label} is too large")
    if amount <= 0:
        raise FieldError(field, f"{label} must be greater than zero")
    return amount


def _quantity(value: Any) -> int:
    if value is None or value == "":
        raise FieldError("quantity", "Quantity is required")
    if isinstance(value, bool):
        raise FieldError("quantity", "Quantity must be a whole number")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise FieldError("quantity", "Quantity must be a whole number")
    if not isinstance(value, int):
        raise FieldError("quantity", "Quantity must be a whole number")
    if value < 1:
        raise FieldError("quantity", "Quantity must be at least 1")
    return value


def _date(field: str, value: Any, label: str) -> str:
    if value is None or value == "":
        raise FieldError(field, f"{label} is required")
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    try:
        return isoparse(str(value).strip()).date().isoformat()
    except (TypeError, ValueError, OverflowError):
        raise FieldError(field, f"{label} is not a valid date")


def _choice(field: str, value: Any, enum_cls, label: str) -> str:
    if value is None or value == "":
        raise FieldError(field, f"{label} is required")
    try:
        return enum_cls(value).value
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise FieldError(field, f"{label} must be one of: {allowed}")


def _check_fields(fields: Dict[str, Any], allowed: Iterable[str],
                  ignored: Iterable[str] = ()) -> None:
    for name in fields:
        if name in IMMUTABLE_FIELDS:
            raise FieldError(name, f"{name} cannot be changed")
        if name not in allowed and name not in ignored:
            raise FieldError(name, f"Unknown field: {name}")


def _check_patch(patch: Dict[str, Any], allowed: Iterable[str]) -> None:
    if not patch:
        raise FieldError("patch", "Nothing to update")
    _check_fields(patch, allowed)


# ===== CUSTOMERS =====

def _customer_rules(fields: Dict[str, Any], partial: bool) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    if not partial or "name" in fields:
        cleaned["name"] = _text("name", fields.get("name"), MIN_NAME_LENGTH, "Name")
    if not partial or "contact" in fields:
        cleaned["contact"] = _text("contact", fields.get("contact"), MIN_CONTACT_LENGTH, "Contact")
    if not partial or "address" in fields:
        cleaned["address"] = _text("address", fields.get("address"), MIN_ADDRESS_LENGTH, "Address")
    if not partial or "document" in fields:
        cleaned["document"] = _optional_text(fields.get("document"))
    return cleaned


def validate_customer(fields: Dict[str, Any]) -> Dict[str, Any]:
    _check_fields(fields, CUSTOMER_FIELDS)
    return _customer_rules(fields, partial=False)


def validate_customer_patch(patch: Dict[str, Any]) -> Dict[str, Any]:
    _check_patch(patch, CUSTOMER_FIELDS)
    return _customer_rules(patch, partial=True)


# ===== SERVICE ORDERS =====

def _order_rules(fields: Dict[str, Any], partial: bool) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    if not partial or "customer_id" in fields:
        cleaned["customer_id"] = _reference("customer_id", fields.get("customer_id"), "Customer")
    if not partial or "service_type" in fields:
        cleaned["service_type"] = _choice("service_type", fields.get("service_type"),
                                          ServiceType, "Service type")
    if not partial or "clothing_type" in fields:
        cleaned["clothing_type"] = _text("clothing_type", fields.get("clothing_type"), 1,
                                         "Clothing type")
    if not partial or "quantity" in fields:
        cleaned["quantity"] = _quantity(fields.get("quantity"))
    if not partial or "unit_price" in fields:
        cleaned["unit_price"] = _positive_number("unit_price", fields.get("unit_price"),
                                                 "Unit price")
    if not partial or "expected_delivery" in fields:
        cleaned["expected_delivery"] = _date("expected_delivery", fields.get("expected_delivery"),
                                             "Expected delivery date")
    if "status" in fields:
        cleaned["status"] = _choice("status", fields.get("status"), OrderStatus, "Status")
    elif not partial:
        cleaned["status"] = OrderStatus.RECEIVED.value
    if not partial or "notes" in fields:
        cleaned["notes"] = _optional_text(fields.get("notes"))
    return cleaned


def validate_order(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a new order; the total is always computed here"""
    _check_fields(fields, ORDER_FIELDS, ignored=("total",))
    cleaned = _order_rules(fields, partial=False)
    cleaned["total"] = order_total(cleaned["quantity"], cleaned["unit_price"])
    return cleaned


def validate_order_patch(patch: Dict[str, Any]) -> Dict[str, Any]:
    _check_patch(patch, ORDER_FIELDS)
    return _order_rules(patch, partial=True)


def order_total(quantity: int, unit_price: float) -> float:
    """quantity x unit price, computed in decimal and rounded to cents"""
    return to_cents(Decimal(quantity) * Decimal(str(unit_price)))


# ===== PAYMENTS =====

def _payment_rules(fields: Dict[str, Any], partial: bool) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    if not partial or "order_id" in fields:
        cleaned["order_id"] = _reference("order_id", fields.get("order_id"), "Order")
    if not partial or "amount" in fields:
        cleaned["amount"] = _positive_number("amount", fields.get("amount"), "Payment amount")
    if not partial or "method" in fields:
        cleaned["method"] = _choice("method", fields.get("method"), PaymentMethod,
                                    "Payment method")
    if not partial or "payment_date" in fields:
        cleaned["payment_date"] = _date("payment_date", fields.get("payment_date"),
                                        "Payment date")
    if not partial or "notes" in fields:
        cleaned["notes"] = _optional_text(fields.get("notes"))
    return cleaned


def validate_payment(fields: Dict[str, Any]) -> Dict[str, Any]:
    _check_fields(fields, PAYMENT_FIELDS)
    return _payment_rules(fields, partial=False)


def validate_payment_patch(patch: Dict[str, Any]) -> Dict[str, Any]:
    _check_patch(patch, PAYMENT_FIELDS)
    return _payment_rules(patch, partial=True)
