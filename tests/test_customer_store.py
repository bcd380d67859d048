import asyncio
import pytest
from unittest.mock import Mock

from fakes import InMemoryGateway, customer_fields
from laundry_ops.exceptions import AuthError, FieldError, GatewayError
from laundry_ops.services.customer_store import CustomerStore
from laundry_ops.services.notifications import CollectingNotificationSink


class TestCustomerStoreFetch:
    """fetch_all replaces the snapshot with the authoritative collection"""

    def test_initial_state(self, customer_store):
        assert customer_store.items == []
        assert customer_store.loading is False
        assert customer_store.closed is False

    @pytest.mark.asyncio
    async def test_fetch_orders_newest_first(self, customer_store, gateway):
        gateway.seed("customers", {"id": "old", **customer_fields(name="Old"), "owner_id": "user-1"})
        gateway.seed("customers", {"id": "new", **customer_fields(name="New"), "owner_id": "user-1"})

        items = await customer_store.fetch_all()

        assert [c.id for c in items] == ["new", "old"]
        assert customer_store.loading is False

    @pytest.mark.asyncio
    async def test_fetch_is_full_replace(self, customer_store, gateway, seeded_customer):
        await customer_store.fetch_all()
        gateway.tables["customers"].clear()

        await customer_store.fetch_all()
        assert customer_store.items == []

    @pytest.mark.asyncio
    async def test_loading_flag_during_fetch(self, customer_store, seeded_customer):
        seen = []
        customer_store.subscribe(lambda store: seen.append(store.loading))

        await customer_store.fetch_all()

        assert seen[0] is True
        assert seen[-1] is False

    @pytest.mark.asyncio
    async def test_loading_stays_up_while_any_fetch_runs(self, customer_store, gateway, seeded_customer):
        gateway.hold_queries = True
        first = asyncio.create_task(customer_store.fetch_all())
        second = asyncio.create_task(customer_store.refetch())
        while len(gateway.held_queries) < 2:
            await asyncio.sleep(0)

        gateway.held_queries[0].set()
        await first
        assert customer_store.loading is True

        gateway.held_queries[1].set()
        await second
        assert customer_store.loading is False

    @pytest.mark.asyncio
    async def test_fetch_failure_keeps_snapshot(self, customer_store, gateway, sink, seeded_customer):
        await customer_store.fetch_all()
        gateway.fail_next["query"] = GatewayError("connection reset")

        with pytest.raises(GatewayError):
            await customer_store.fetch_all()

        assert [c.id for c in customer_store.items] == ["C1"]
        assert customer_store.loading is False
        notification = sink.drain()[-1]
        assert notification.title == "Error loading customers"
        assert notification.description == "connection reset"
        assert notification.is_error

    @pytest.mark.asyncio
    async def test_fetch_requires_principal(self, sink):
        store = CustomerStore(InMemoryGateway(principal=None), sink)

        with pytest.raises(AuthError):
            await store.fetch_all()
        assert sink.drain()[-1].is_error

    @pytest.mark.asyncio
    async def test_malformed_row_is_rejected(self, customer_store, gateway):
        gateway.seed("customers", {"id": "bad", "name": "No contact"})

        with pytest.raises(GatewayError) as exc:
            await customer_store.fetch_all()
        assert exc.value.code == "invalid_row"
        assert customer_store.items == []


class TestCustomerStoreCreate:
    """create validates, inserts and prepends the stored row"""

    @pytest.mark.asyncio
    async def test_create_then_fetch_preserves_fields(self, customer_store):
        created = await customer_store.create(customer_fields(document="110100123456B"))

        items = await customer_store.fetch_all()

        matching = [c for c in items if c.id == created.id]
        assert len(matching) == 1
        assert matching[0] == created
        assert matching[0].document == "110100123456B"
        assert matching[0].owner_id == "user-1"

    @pytest.mark.asyncio
    async def test_create_prepends(self, customer_store, seeded_customer):
        await customer_store.fetch_all()

        created = await customer_store.create(customer_fields(name="Beatriz"))

        assert [c.id for c in customer_store.items] == [created.id, "C1"]

    @pytest.mark.asyncio
    async def test_short_name_makes_no_network_call(self, customer_store, gateway, sink):
        with pytest.raises(FieldError) as exc:
            await customer_store.create(customer_fields(name=" A "))

        assert exc.value.field == "name"
        assert gateway.calls == []
        assert customer_store.items == []
        notification = sink.drain()[-1]
        assert notification.title == "Error creating customer"
        assert notification.description == exc.value.message

    @pytest.mark.asyncio
    async def test_create_requires_principal(self, sink):
        gateway = InMemoryGateway(principal=None)
        store = CustomerStore(gateway, sink)

        with pytest.raises(AuthError):
            await store.create(customer_fields())
        assert gateway.network_calls() == []
        await store.close()

    @pytest.mark.asyncio
    async def test_insert_tagged_with_owner(self, customer_store, gateway):
        await customer_store.create(customer_fields())

        insert_call = gateway.network_calls()[0]
        assert insert_call[0] == "insert"
        assert insert_call[2]["owner_id"] == "user-1"
        # Customer ids are generated by the backend
        assert "id" not in insert_call[2]

    @pytest.mark.asyncio
    async def test_gateway_failure_leaves_snapshot(self, customer_store, gateway, sink):
        gateway.fail_next["insert"] = GatewayError("permission denied for table customers")

        with pytest.raises(GatewayError):
            await customer_store.create(customer_fields())

        assert customer_store.items == []
        assert sink.drain()[-1].description == "permission denied for table customers"

    @pytest.mark.asyncio
    async def test_unexpected_error_uses_fallback_message(self, customer_store, gateway, sink):
        gateway.fail_next["insert"] = RuntimeError()

        with pytest.raises(RuntimeError):
            await customer_store.create(customer_fields())
        assert sink.drain()[-1].description == "Unknown error while creating customer"

    @pytest.mark.asyncio
    async def test_success_notification(self, customer_store, sink):
        await customer_store.create(customer_fields())

        notification = sink.drain()[-1]
        assert notification.title == "Customer created"
        assert not notification.is_error

    @pytest.mark.asyncio
    async def test_prepend_follows_response_arrival(self, customer_store, gateway):
        gateway.hold_inserts = True
        task_a = asyncio.create_task(customer_store.create(customer_fields(name="Alice")))
        task_b = asyncio.create_task(customer_store.create(customer_fields(name="Bruno")))
        while len(gateway.held_inserts) < 2:
            await asyncio.sleep(0)

        # B's response arrives first, then A's
        gateway.held_inserts[1].set()
        await task_b
        gateway.held_inserts[0].set()
        await task_a

        assert [c.name for c in customer_store.items] == ["Alice", "Bruno"]

    @pytest.mark.asyncio
    async def test_fetch_during_create_leaves_single_copy(self, customer_store, gateway, seeded_customer):
        gateway.hold_inserts = True
        gateway.hold_after_write = True
        task = asyncio.create_task(customer_store.create(customer_fields(name="Alice")))
        while not gateway.held_inserts:
            await asyncio.sleep(0)

        # The row is already stored, so this fetch picks it up before the insert answers
        await customer_store.fetch_all()
        assert len(customer_store.items) == 2

        gateway.held_inserts[0].set()
        created = await task

        assert [c.id for c in customer_store.items] == [created.id, "C1"]


class TestCustomerStoreUpdateDelete:
    """update replaces in place; delete removes by id"""

    @pytest.mark.asyncio
    async def test_update_replaces_in_place(self, customer_store, gateway, seeded_customer):
        gateway.seed("customers", {"id": "C2", **customer_fields(name="Carlos"), "owner_id": "user-1"})
        await customer_store.fetch_all()

        updated = await customer_store.update("C1", {"contact": "  849999999 "})

        assert updated.contact == "849999999"
        assert [c.id for c in customer_store.items] == ["C2", "C1"]
        assert customer_store.get("C1").contact == "849999999"
        assert gateway.network_calls()[-1] == ("update", "customers", "C1", {"contact": "849999999"})

    @pytest.mark.asyncio
    async def test_invalid_patch_makes_no_call(self, customer_store, gateway, seeded_customer):
        await customer_store.fetch_all()
        calls_before = len(gateway.calls)

        with pytest.raises(FieldError):
            await customer_store.update("C1", {"name": ""})
        assert len(gateway.calls) == calls_before

    @pytest.mark.asyncio
    async def test_update_missing_row(self, customer_store, seeded_customer, sink):
        await customer_store.fetch_all()
        before = customer_store.items

        with pytest.raises(GatewayError):
            await customer_store.update("nope", {"name": "Zed Zulu"})
        assert customer_store.items == before
        assert sink.drain()[-1].title == "Error updating customer"

    @pytest.mark.asyncio
    async def test_delete_removes_only_that_id(self, customer_store, gateway, seeded_customer):
        gateway.seed("customers", {"id": "C2", **customer_fields(name="Carlos"), "owner_id": "user-1"})
        await customer_store.fetch_all()

        await customer_store.delete("C1")

        assert [c.id for c in customer_store.items] == ["C2"]

    @pytest.mark.asyncio
    async def test_delete_nonexistent_surfaces_gateway_error(self, customer_store, sink, seeded_customer):
        await customer_store.fetch_all()
        before = customer_store.items

        with pytest.raises(GatewayError) as exc:
            await customer_store.delete("missing")

        assert exc.value.code == "not_found"
        assert customer_store.items == before
        assert sink.drain()[-1].title == "Error removing customer"

    @pytest.mark.asyncio
    async def test_delete_requires_principal(self, customer_store, gateway, seeded_customer):
        await customer_store.fetch_all()
        gateway.principal = None

        with pytest.raises(AuthError):
            await customer_store.delete("C1")
        assert len(customer_store.items) == 1


class TestCustomerStoreLifecycle:
    """Listeners, reconciliation and close"""

    @pytest.mark.asyncio
    async def test_subscribe_and_unsubscribe(self, customer_store):
        listener = Mock()
        unsubscribe = customer_store.subscribe(listener)

        await customer_store.create(customer_fields())
        assert listener.call_count == 1

        unsubscribe()
        await customer_store.create(customer_fields(name="Other"))
        assert listener.call_count == 1

    @pytest.mark.asyncio
    async def test_broken_listener_does_not_break_store(self, customer_store):
        customer_store.subscribe(Mock(side_effect=RuntimeError("boom")))

        created = await customer_store.create(customer_fields())
        assert customer_store.get(created.id) is not None

    @pytest.mark.asyncio
    async def test_reconciliation_fetch_after_create(self, gateway):
        store = CustomerStore(gateway, CollectingNotificationSink(), reconcile_delay=0)

        await store.create(customer_fields())
        assert store.pending_reconciliations == 1
        while store.pending_reconciliations:
            await asyncio.sleep(0.01)

        assert [call[0] for call in gateway.network_calls()] == ["insert", "query"]
        await store.close()

    @pytest.mark.asyncio
    async def test_close_cancels_reconciliation(self, gateway):
        store = CustomerStore(gateway, CollectingNotificationSink(), reconcile_delay=60)
        await store.create(customer_fields())
        assert store.pending_reconciliations == 1

        await store.close()

        assert store.pending_reconciliations == 0
        assert all(call[0] != "query" for call in gateway.calls)

    @pytest.mark.asyncio
    async def test_closed_store_ignores_late_responses(self, customer_store, gateway):
        gateway.hold_inserts = True
        task = asyncio.create_task(customer_store.create(customer_fields()))
        while not gateway.held_inserts:
            await asyncio.sleep(0)

        await customer_store.close()
        gateway.held_inserts[0].set()
        await task

        assert customer_store.items == []
        assert customer_store.pending_reconciliations == 0

    @pytest.mark.asyncio
    async def test_refetch_is_fetch(self, customer_store, seeded_customer):
        items = await customer_store.refetch()
        assert [c.id for c in items] == ["C1"]
