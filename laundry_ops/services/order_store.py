"""
Service orders store

Orders are read with their customer embedded and get client-side ids
("ORD-<ms timestamp>"). The stored total is kept equal to
quantity x unit price whenever either side changes.
"""

import logging
from typing import Any, Dict, List, Union

from ..exceptions import GatewayError
from ..models import OrderStatus, ServiceOrder
from .entity_store import EntityStore
from .validation import order_total, validate_order, validate_order_patch

logger = logging.getLogger(__name__)

ORDER_SELECT = "*, customers!customer_id(id, name, contact, address)"


class ServiceOrderStore(EntityStore[ServiceOrder]):
    table = "service_orders"
    model = ServiceOrder
    select = ORDER_SELECT
    id_prefix = "ORD"
    reconcile_after_create = True

    label = "order"
    plural = "orders"

    def validate_create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        return validate_order(fields)

    def validate_update(self, row_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        return validate_order_patch(patch)

    async def complete_update(self, row_id: str, cleaned: Dict[str, Any]) -> Dict[str, Any]:
        """Recompute ``total`` whenever quantity or unit price changes"""
        if "quantity" not in cleaned and "unit_price" not in cleaned:
            return cleaned

        if "quantity" in cleaned and "unit_price" in cleaned:
            quantity, unit_price = cleaned["quantity"], cleaned["unit_price"]
        else:
            current = self.get(row_id)
            if current is None:
                logger.info(f"🔍 Order {row_id} not loaded; reading it to recompute the total")
                rows = await self.gateway.query(self.table, filters={"id": row_id})
                if not rows:
                    raise GatewayError(f"No {self.table} row with id {row_id}", code="not_found")
                current = self._parse(rows[0])
            quantity = cleaned.get("quantity", current.quantity)
            unit_price = cleaned.get("unit_price", current.unit_price)

        return {**cleaned, "total": order_total(quantity, unit_price)}

    async def update_status(self, row_id: str, status: Union[OrderStatus, str]) -> ServiceOrder:
        """Move an order to any status; there is no enforced transition graph"""
        return await self.update(row_id, {"status": status})

    def for_customer(self, customer_id: str) -> List[ServiceOrder]:
        return [order for order in self._items if order.customer_id == customer_id]
