"""
Service layer for the laundry back office.

This module contains:
- The remote data gateway contract and its Supabase implementation
- Entity stores for customers, service orders and payments
- Field validation, aggregates and client-side search
- Notifications and connection status
"""

from .customer_store import CustomerStore
from .entity_store import EntityStore
from .gateway import AuthEvent, RemoteDataGateway
from .notifications import (
    CollectingNotificationSink,
    LoggingNotificationSink,
    Notification,
    NotificationSink,
)
from .order_store import ServiceOrderStore
from .payment_store import PaymentStore
from .session import LaundrySession

__all__ = [
    'AuthEvent',
    'CollectingNotificationSink',
    'CustomerStore',
    'EntityStore',
    'LaundrySession',
    'LoggingNotificationSink',
    'Notification',
    'NotificationSink',
    'PaymentStore',
    'RemoteDataGateway',
    'ServiceOrderStore',
]
