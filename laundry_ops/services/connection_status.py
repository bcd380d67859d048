"""
Connection and authentication status

Tracks whether the backend is reachable and who is signed in, for the
status indicator and the sign-in / sign-out toasts.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..models import Principal
from .gateway import AuthEvent, RemoteDataGateway, Unsubscribe
from .notifications import (
    DEFAULT,
    DESTRUCTIVE,
    LoggingNotificationSink,
    Notification,
    NotificationSink,
    safe_notify,
)

logger = logging.getLogger(__name__)

PROBE_TABLE = "customers"
ADMIN_CHECK_FUNCTION = "current_user_is_admin"


@dataclass
class ConnectionResult:
    success: bool
    principal: Optional[Principal] = None
    error: Optional[str] = None


class ConnectionMonitor:
    """Connectivity / identity state driven by probes and auth events"""

    def __init__(self, gateway: RemoteDataGateway, sink: Optional[NotificationSink] = None):
        self.gateway = gateway
        self.sink = sink or LoggingNotificationSink()
        self.is_connected: Optional[bool] = None
        self.principal: Optional[Principal] = None
        self.is_admin = False
        self.loading = True
        self._unsubscribe: Optional[Unsubscribe] = None

    async def test_connection(self) -> ConnectionResult:
        """Probe the backend, then read the signed-in user; never raises"""
        try:
            logger.info("🔍 Testing backend connection...")
            await self.gateway.count(PROBE_TABLE)
            principal = await self.gateway.get_current_principal()

            logger.info(f"✅ Backend connection OK (user: {principal.id if principal else 'none'})")
            self.is_connected = True
            self.principal = principal
            return ConnectionResult(success=True, principal=principal)
        except Exception as e:
            message = getattr(e, "message", None) or str(e) or "Failed to connect to the database"
            logger.error(f"❌ Backend connection failed: {message}")
            self.is_connected = False
            self.principal = None
            safe_notify(self.sink, Notification("Connection error", message, DESTRUCTIVE))
            return ConnectionResult(success=False, error=message)
        finally:
            self.loading = False

    async def retry_connection(self) -> ConnectionResult:
        return await self.test_connection()

    async def check_auth_status(self) -> Optional[Principal]:
        try:
            principal = await self.gateway.get_current_principal()
        except Exception as e:
            logger.error(f"❌ Error checking authentication: {e}")
            self.principal = None
            return None

        logger.info(f"🔍 Auth status: {'authenticated' if principal else 'not authenticated'}")
        self.principal = principal
        return principal

    async def check_admin(self) -> bool:
        """Ask the backend whether the signed-in user is an admin"""
        if self.principal is None:
            self.is_admin = False
            return False
        try:
            self.is_admin = bool(await self.gateway.rpc(ADMIN_CHECK_FUNCTION))
        except Exception as e:
            logger.error(f"❌ Error checking user role: {e}")
            self.is_admin = False
        return self.is_admin

    def start(self) -> None:
        """Listen for auth changes (idempotent)"""
        if self._unsubscribe is None:
            self._unsubscribe = self.gateway.on_auth_change(self.handle_auth_event)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def handle_auth_event(self, event: AuthEvent) -> None:
        logger.info(f"🔄 Auth state changed: {event.event} {event.principal.id if event.principal else 'no user'}")
        self.principal = event.principal

        if event.event == "SIGNED_IN":
            self.is_connected = True
            safe_notify(self.sink, Notification("Connected", "User signed in successfully.", DEFAULT))
        elif event.event == "SIGNED_OUT":
            self.is_connected = False
            self.is_admin = False
            safe_notify(self.sink, Notification("Disconnected", "User signed out.", DEFAULT))
