import pytest
import pytest_asyncio

from fakes import InMemoryGateway
from laundry_ops.services.customer_store import CustomerStore
from laundry_ops.services.notifications import CollectingNotificationSink
from laundry_ops.services.order_store import ServiceOrderStore
from laundry_ops.services.payment_store import PaymentStore

# Long enough that reconciliation never fires unless a test asks for it
NO_RECONCILE = 60.0


@pytest.fixture
def gateway():
    """In-memory gateway signed in as the default owner"""
    return InMemoryGateway()


@pytest.fixture
def sink():
    return CollectingNotificationSink()


@pytest_asyncio.fixture
async def customer_store(gateway, sink):
    store = CustomerStore(gateway, sink, reconcile_delay=NO_RECONCILE)
    yield store
    await store.close()


@pytest_asyncio.fixture
async def order_store(gateway, sink):
    store = ServiceOrderStore(gateway, sink, reconcile_delay=NO_RECONCILE)
    yield store
    await store.close()


@pytest_asyncio.fixture
async def payment_store(gateway, sink):
    store = PaymentStore(gateway, sink, reconcile_delay=NO_RECONCILE)
    yield store
    await store.close()


@pytest.fixture
def seeded_customer(gateway):
    """One stored customer row"""
    return gateway.seed("customers", {
        "id": "C1",
        "name": "Ana Machava",
        "contact": "841234567",
        "address": "Av. Julius Nyerere 100",
        "document": None,
        "owner_id": "user-1",
    })


@pytest.fixture
def seeded_order(gateway, seeded_customer):
    """One stored order for the seeded customer"""
    return gateway.seed("service_orders", {
        "id": "ORD-1",
        "customer_id": seeded_customer["id"],
        "service_type": "simple_wash",
        "clothing_type": "Trousers",
        "quantity": 2,
        "unit_price": 40.0,
        "total": 80.0,
        "expected_delivery": "2025-02-01",
        "status": "received",
        "notes": None,
        "owner_id": "user-1",
    })
