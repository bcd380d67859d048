"""
Payments store

Payments are read with their order (and the order's customer) embedded.
One payment per order is the business intent, but it is only enforced by
which orders the payment form offers (see ``search.payable_orders``).
"""

from typing import Any, Dict, List

from ..models import Payment
from .entity_store import EntityStore
from .validation import validate_payment, validate_payment_patch

PAYMENT_SELECT = (
    "*, service_orders!order_id(id, clothing_type, quantity, total, "
    "customers!customer_id(id, name, contact))"
)


class PaymentStore(EntityStore[Payment]):
    table = "payments"
    model = Payment
    select = PAYMENT_SELECT
    id_prefix = "PAY"

    label = "payment"
    plural = "payments"
    created_title = "Payment recorded"

    def validate_create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        return validate_payment(fields)

    def validate_update(self, row_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        return validate_payment_patch(patch)

    def for_order(self, order_id: str) -> List[Payment]:
        return [payment for payment in self._items if payment.order_id == order_id]
