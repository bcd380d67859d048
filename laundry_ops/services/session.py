"""
Per-session wiring of stores, connection status and aggregates

One LaundrySession is created per signed-in session and handed to every
view; views read ``session.customers.items`` etc. and call the store
operations directly.
"""

import asyncio
import logging
from datetime import datetime
from typing import List, Optional

from ..config import Settings, get_settings
from ..logging_conf import configure_logging
from ..models import ServiceOrder
from . import aggregates
from .connection_status import ConnectionMonitor
from .customer_store import CustomerStore
from .gateway import RemoteDataGateway
from .notifications import LoggingNotificationSink, NotificationSink
from .order_store import ServiceOrderStore
from .payment_store import PaymentStore

logger = logging.getLogger(__name__)


class LaundrySession:
    """Owns the three entity stores for one user session"""

    def __init__(self, gateway: RemoteDataGateway,
                 sink: Optional[NotificationSink] = None,
                 settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.gateway = gateway
        self.sink = sink or LoggingNotificationSink()

        delay = settings.RECONCILE_DELAY_SECONDS
        self.customers = CustomerStore(gateway, self.sink, reconcile_delay=delay)
        self.orders = ServiceOrderStore(gateway, self.sink, reconcile_delay=delay)
        self.payments = PaymentStore(gateway, self.sink, reconcile_delay=delay)
        self.connection = ConnectionMonitor(gateway, self.sink)

    @classmethod
    async def connect(cls, settings: Optional[Settings] = None,
                      sink: Optional[NotificationSink] = None) -> "LaundrySession":
        """Build a session backed by Supabase, configuring logging on first use"""
        from .supabase_gateway import SupabaseGateway

        settings = settings or get_settings()
        configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
        gateway = await SupabaseGateway.connect(settings)
        return cls(gateway, sink=sink, settings=settings)

    async def start(self) -> None:
        """Probe the connection, listen for auth changes and load everything"""
        self.connection.start()
        result = await self.connection.test_connection()
        if result.success and result.principal is not None:
            await self.connection.check_admin()
            await self.refresh_all()

    async def refresh_all(self) -> None:
        """Fetch the three collections concurrently; failures were already reported"""
        results = await asyncio.gather(
            self.customers.fetch_all(),
            self.orders.fetch_all(),
            self.payments.fetch_all(),
            return_exceptions=True,
        )
        failed = [r for r in results if isinstance(r, Exception)]
        if failed:
            logger.warning(f"⚠️ {len(failed)} collection(s) failed to refresh")

    @property
    def loading(self) -> bool:
        return self.customers.loading or self.orders.loading or self.payments.loading

    # ===== AGGREGATES =====

    def dashboard(self) -> aggregates.DashboardStats:
        return aggregates.dashboard_stats(
            self.customers.items, self.orders.items, self.payments.items
        )

    def payment_summary(self, now: Optional[datetime] = None) -> aggregates.PaymentSummary:
        return aggregates.payment_summary(self.orders.items, self.payments.items, now)

    def unpaid_orders(self) -> List[ServiceOrder]:
        return aggregates.unpaid_orders(self.orders.items, self.payments.items)

    def overdue_orders(self, now: Optional[datetime] = None) -> List[ServiceOrder]:
        return aggregates.overdue_orders(self.orders.items, self.payments.items, now)

    # ===== LIFETIME =====

    async def close(self) -> None:
        self.connection.stop()
        await asyncio.gather(
            self.customers.close(),
            self.orders.close(),
            self.payments.close(),
        )
        logger.info("Session closed")

    async def __aenter__(self) -> "LaundrySession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
