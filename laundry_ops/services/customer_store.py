"""
Customers store
"""

from typing import Any, Dict

from ..models import Customer
from .entity_store import EntityStore
from .validation import validate_customer, validate_customer_patch


class CustomerStore(EntityStore[Customer]):
    table = "customers"
    model = Customer
    reconcile_after_create = True

    label = "customer"
    plural = "customers"

    def validate_create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        return validate_customer(fields)

    def validate_update(self, row_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        return validate_customer_patch(patch)
