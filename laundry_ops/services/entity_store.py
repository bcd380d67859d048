"""
Entity Store

Keeps one table's rows in memory, newest first, in sync with the remote
gateway. Writes are applied to the local snapshot as soon as the gateway
answers, using the row the gateway returned; creates can additionally
schedule a delayed full fetch to pick up joined columns.

Every operation reports its outcome to the notification sink. Failures are
reported and then re-raised so callers can react (keep a dialog open, etc.);
the local snapshot is left untouched on failure.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Generic, List, Optional, Set, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..exceptions import AuthError, GatewayError
from ..models import Principal
from .gateway import RemoteDataGateway
from .notifications import (
    DEFAULT,
    DESTRUCTIVE,
    LoggingNotificationSink,
    Notification,
    NotificationSink,
    safe_notify,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

Listener = Callable[["EntityStore"], None]


class EntityStore(Generic[T]):
    """Observable, newest-first snapshot of one table

    Subclasses set the table/model attributes and provide the validation
    hooks; everything else (auth gating, optimistic updates, reconciliation,
    error reporting) lives here.
    """

    table: str = ""
    model: Type[T]
    select: str = "*"
    # When set, ids are synthesized client-side as "<prefix>-<ms timestamp>"
    id_prefix: Optional[str] = None
    reconcile_after_create: bool = False

    label: str = "record"
    plural: str = "records"
    created_title: Optional[str] = None

    def __init__(self, gateway: RemoteDataGateway,
                 sink: Optional[NotificationSink] = None,
                 reconcile_delay: float = 0.5):
        """
        Initialize the store

        Args:
            gateway: Backend used for every read and write
            sink: Where outcome notifications go (logged when omitted)
            reconcile_delay: Seconds between a create and its reconciliation fetch
        """
        self.gateway = gateway
        self.sink = sink or LoggingNotificationSink()
        self.reconcile_delay = reconcile_delay

        self.loading = False
        self.closed = False
        self._items: List[T] = []
        self._listeners: List[Listener] = []
        self._reconcile_tasks: Set[asyncio.Task] = set()
        self._last_id_ms = 0
        self._fetches_in_flight = 0

    # ===== READ MODEL =====

    @property
    def items(self) -> List[T]:
        """Copy of the current snapshot, newest first"""
        return list(self._items)

    def get(self, row_id: str) -> Optional[T]:
        for item in self._items:
            if item.id == row_id:
                return item
        return None

    def __len__(self) -> int:
        return len(self._items)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(store)`` after every change; returns an unsubscribe function"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def pending_reconciliations(self) -> int:
        return len(self._reconcile_tasks)

    # ===== VALIDATION HOOKS =====

    def validate_create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Return a cleaned row for insert or raise FieldError"""
        raise NotImplementedError

    def validate_update(self, row_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        """Return a cleaned patch or raise FieldError"""
        raise NotImplementedError

    async def complete_update(self, row_id: str, cleaned: Dict[str, Any]) -> Dict[str, Any]:
        """Add derived columns to a validated patch; may read from the gateway"""
        return cleaned

    # ===== OPERATIONS =====

    async def fetch_all(self) -> List[T]:
        """Replace the snapshot with the gateway's full, newest-first collection"""
        if self.closed:
            return self.items

        self._fetches_in_flight += 1
        self._set_loading(True)
        try:
            principal = await self._require_principal(f"fetching {self.plural}")
            logger.info(f"📥 Fetching {self.plural} for user {principal.id}")
            rows = await self.gateway.query(
                self.table, select=self.select, order_by="created_at", descending=True
            )
            items = [self._parse(row) for row in rows]
        except Exception as e:
            self._report_failure(f"Error loading {self.plural}", f"loading {self.plural}", e)
            raise
        finally:
            # Overlapping fetches keep the flag up until the last one finishes
            self._fetches_in_flight -= 1
            self._set_loading(self._fetches_in_flight > 0)

        self._commit(items)
        logger.info(f"✅ Loaded {len(items)} {self.plural}")
        return self.items

    async def refetch(self) -> List[T]:
        """Manual retry of :meth:`fetch_all`"""
        return await self.fetch_all()

    async def create(self, fields: Dict[str, Any]) -> T:
        """
        Validate, insert and prepend a new entity

        Args:
            fields: Column values supplied by the form

        Returns:
            The entity built from the row the gateway stored

        Raises:
            FieldError: A validation rule failed (no gateway call was made)
            AuthError: Nobody is signed in
            GatewayError: The backend rejected the insert
        """
        try:
            cleaned = self.validate_create(dict(fields))
            principal = await self._require_principal(f"creating {self.label}")
            row = self._build_row(cleaned, principal)
            logger.info(f"➕ Creating {self.label} for user {principal.id}")
            stored = await self.gateway.insert(self.table, row, select=self.select)
            entity = self._parse(stored)
        except Exception as e:
            self._report_failure(f"Error creating {self.label}", f"creating {self.label}", e)
            raise

        # Prepend against the snapshot as it is now, not as it was when the call started;
        # a fetch that landed meanwhile may already hold this row
        self._commit([entity] + [item for item in self._items if item.id != entity.id])
        logger.info(f"✅ Created {self.label} {entity.id}")
        self._notify(
            self.created_title or f"{self.label.capitalize()} created",
            f"{self.label.capitalize()} added successfully.",
        )

        if self.reconcile_after_create:
            self._schedule_reconcile()
        return entity

    async def update(self, row_id: str, patch: Dict[str, Any]) -> T:
        """Apply a partial patch; only the fields present are validated"""
        try:
            cleaned = self.validate_update(row_id, dict(patch))
            principal = await self._require_principal(f"updating {self.label}")
            cleaned = await self.complete_update(row_id, cleaned)
            logger.info(f"📝 Updating {self.label} {row_id} for user {principal.id}: {sorted(cleaned)}")
            stored = await self.gateway.update(self.table, row_id, cleaned, select=self.select)
            entity = self._parse(stored)
        except Exception as e:
            self._report_failure(f"Error updating {self.label}", f"updating {self.label}", e)
            raise

        self._commit([entity if item.id == row_id else item for item in self._items])
        logger.info(f"✅ Updated {self.label} {row_id}")
        self._notify(
            f"{self.label.capitalize()} updated",
            f"{self.label.capitalize()} updated successfully.",
        )
        return entity

    async def delete(self, row_id: str) -> None:
        """Delete by id; no cascade to rows that reference it"""
        try:
            principal = await self._require_principal(f"removing {self.label}")
            logger.info(f"🗑️ Deleting {self.label} {row_id} for user {principal.id}")
            await self.gateway.delete(self.table, row_id)
        except Exception as e:
            self._report_failure(f"Error removing {self.label}", f"removing {self.label}", e)
            raise

        self._commit([item for item in self._items if item.id != row_id])
        logger.info(f"✅ Deleted {self.label} {row_id}")
        self._notify(
            f"{self.label.capitalize()} removed",
            f"{self.label.capitalize()} removed successfully.",
        )

    async def close(self) -> None:
        """Cancel pending reconciliation and stop accepting snapshot writes"""
        self.closed = True
        tasks = list(self._reconcile_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._reconcile_tasks.clear()
        self._listeners.clear()

    # ===== RECONCILIATION =====

    def _schedule_reconcile(self) -> None:
        if self.closed:
            return
        task = asyncio.get_running_loop().create_task(self._reconcile())
        self._reconcile_tasks.add(task)
        task.add_done_callback(self._reconcile_tasks.discard)

    async def _reconcile(self) -> None:
        await asyncio.sleep(self.reconcile_delay)
        if self.closed:
            return
        try:
            await self.fetch_all()
        except Exception as e:
            # Already reported by fetch_all; nobody awaits this task
            logger.warning(f"⚠️ Reconciliation fetch of {self.plural} failed: {e}")

    # ===== HELPERS =====

    async def _require_principal(self, action: str) -> Principal:
        principal = await self.gateway.get_current_principal()
        if principal is None:
            logger.info(f"🔐 User not authenticated while {action}")
            raise AuthError()
        return principal

    def _build_row(self, cleaned: Dict[str, Any], principal: Principal) -> Dict[str, Any]:
        row = dict(cleaned)
        row["owner_id"] = principal.id
        if self.id_prefix:
            row["id"] = self._next_id()
        return row

    def _next_id(self) -> str:
        # Strictly increasing so two creates in the same millisecond get distinct ids
        now_ms = int(time.time() * 1000)
        self._last_id_ms = max(now_ms, self._last_id_ms + 1)
        return f"{self.id_prefix}-{self._last_id_ms}"

    def _parse(self, row: Dict[str, Any]) -> T:
        try:
            return self.model.model_validate(row)
        except ValidationError as e:
            logger.error(f"❌ Malformed {self.table} row from gateway: {e}")
            raise GatewayError(f"Malformed {self.label} data received from server",
                               code="invalid_row", details=e.errors()) from e

    def _commit(self, items: List[T]) -> None:
        if self.closed:
            logger.debug(f"Ignoring {self.table} snapshot write on closed store")
            return
        self._items = items
        self._emit()

    def _set_loading(self, loading: bool) -> None:
        if self.closed:
            return
        self.loading = loading
        self._emit()

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception(f"❌ {self.table} store listener failed")

    def _notify(self, title: str, description: str) -> None:
        safe_notify(self.sink, Notification(title, description, DEFAULT))

    def _report_failure(self, title: str, action: str, error: Exception) -> None:
        message = getattr(error, "message", None) or str(error) or f"Unknown error while {action}"
        logger.error(f"❌ {title}: {message}")
        safe_notify(self.sink, Notification(title, message, DESTRUCTIVE))
