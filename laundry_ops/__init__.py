"""
Laundry Ops Package

Client-side data layer for a laundry service back office:
- Customers, service orders and payments kept in sync with Supabase
- Field validation before any write reaches the backend
- Dashboard and payment aggregates computed from the loaded snapshots
- Connection / authentication status tracking
"""

__version__ = "1.0.0"
__author__ = "Laundry Ops Team"

# Stores and the session are imported from laundry_ops.services on demand
# so that importing the package does not pull in the Supabase client.
