"""
Dashboard and payment aggregates

Pure functions over the current store snapshots. Nothing is cached:
callers recompute from the snapshots every time they render.
"""

from dataclasses import dataclass
from datetime import datetime, time, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Union

from ..models import Customer, OrderStatus, Payment, ServiceOrder
from .validation import to_cents


@dataclass(frozen=True)
class DashboardStats:
    total_customers: int
    orders_received: int
    orders_in_progress: int
    orders_ready: int
    orders_delivered: int
    orders_cancelled: int
    # Sum of every loaded payment, not only the current month's (known defect, kept as is)
    monthly_profit: float
    total_profit: float


@dataclass(frozen=True)
class PaymentSummary:
    total_paid: float
    paid_orders: int
    pending_orders: int
    overdue_orders: int


def count_customers(customers: Sequence[Customer]) -> int:
    return len(customers)


def count_by_status(orders: Sequence[ServiceOrder], status: Union[OrderStatus, str]) -> int:
    """Exact, case-sensitive match on the status value"""
    value = status.value if isinstance(status, OrderStatus) else status
    return sum(1 for order in orders if order.status.value == value)


def orders_by_status(orders: Sequence[ServiceOrder]) -> Dict[OrderStatus, int]:
    counts = {status: 0 for status in OrderStatus}
    for order in orders:
        counts[order.status] += 1
    return counts


def total_paid(payments: Sequence[Payment]) -> float:
    return to_cents(sum(Decimal(str(payment.amount)) for payment in payments))


def unpaid_orders(orders: Sequence[ServiceOrder], payments: Sequence[Payment]) -> List[ServiceOrder]:
    """Orders with no payment referencing them, in snapshot order"""
    paid_ids = {payment.order_id for payment in payments}
    return [order for order in orders if order.id not in paid_ids]


def is_overdue(order: ServiceOrder, now: Optional[datetime] = None) -> bool:
    """True when the expected delivery day (midnight UTC) is strictly before ``now``"""
    now = _utc(now)
    due = datetime.combine(order.expected_delivery, time.min, tzinfo=timezone.utc)
    return due < now


def overdue_orders(orders: Sequence[ServiceOrder], payments: Sequence[Payment],
                   now: Optional[datetime] = None) -> List[ServiceOrder]:
    now = _utc(now)
    return [order for order in unpaid_orders(orders, payments) if is_overdue(order, now)]


def dashboard_stats(customers: Sequence[Customer], orders: Sequence[ServiceOrder],
                    payments: Sequence[Payment]) -> DashboardStats:
    counts = orders_by_status(orders)
    paid = total_paid(payments)
    return DashboardStats(
        total_customers=count_customers(customers),
        orders_received=counts[OrderStatus.RECEIVED],
        orders_in_progress=counts[OrderStatus.IN_PROGRESS],
        orders_ready=counts[OrderStatus.READY],
        orders_delivered=counts[OrderStatus.DELIVERED],
        orders_cancelled=counts[OrderStatus.CANCELLED],
        monthly_profit=paid,
        total_profit=paid,
    )


def payment_summary(orders: Sequence[ServiceOrder], payments: Sequence[Payment],
                    now: Optional[datetime] = None) -> PaymentSummary:
    now = _utc(now)
    pending = unpaid_orders(orders, payments)
    return PaymentSummary(
        total_paid=total_paid(payments),
        paid_orders=len(payments),
        pending_orders=len(pending),
        overdue_orders=sum(1 for order in pending if is_overdue(order, now)),
    )


def recent_orders(orders: Sequence[ServiceOrder], limit: int = 3) -> List[ServiceOrder]:
    return list(orders[:limit])


def recent_customers(customers: Sequence[Customer], limit: int = 3) -> List[Customer]:
    return list(customers[:limit])


def _utc(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now
