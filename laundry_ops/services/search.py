"""
Client-side search and filtering used by the list views
"""

from typing import List, Optional, Sequence, Union

from ..models import Customer, OrderStatus, Payment, ServiceOrder
from .aggregates import unpaid_orders


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


def filter_customers(customers: Sequence[Customer], term: str = "") -> List[Customer]:
    """Match name or address (case-insensitive) or contact (as typed)"""
    if not term:
        return list(customers)
    needle = term.lower()
    return [
        customer for customer in customers
        if _contains(customer.name, needle)
        or term in customer.contact
        or _contains(customer.address, needle)
    ]


def filter_orders(orders: Sequence[ServiceOrder], term: str = "",
                  status: Optional[Union[OrderStatus, str]] = None) -> List[ServiceOrder]:
    """Match order id, customer name or clothing type; optionally one status only"""
    needle = term.lower()
    status_value = status.value if isinstance(status, OrderStatus) else status
    matches = []
    for order in orders:
        if status_value is not None and order.status.value != status_value:
            continue
        customer_name = order.customer.name if order.customer else None
        if (not needle
                or _contains(order.id, needle)
                or _contains(customer_name, needle)
                or _contains(order.clothing_type, needle)):
            matches.append(order)
    return matches


def filter_payments(payments: Sequence[Payment], term: str = "") -> List[Payment]:
    """Match payment id, order id or the order's customer name"""
    if not term:
        return list(payments)
    needle = term.lower()
    matches = []
    for payment in payments:
        customer = payment.order.customer if payment.order else None
        if (_contains(payment.id, needle)
                or _contains(payment.order_id, needle)
                or _contains(customer.name if customer else None, needle)):
            matches.append(payment)
    return matches


def payable_orders(orders: Sequence[ServiceOrder], payments: Sequence[Payment]) -> List[ServiceOrder]:
    """Orders the new-payment form may offer: those without a payment yet"""
    return unpaid_orders(orders, payments)
