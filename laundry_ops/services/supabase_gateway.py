"""
Supabase implementation of the remote data gateway
Uses the async supabase-py client; row-level security on the project scopes
every table to the signed-in user.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from postgrest.exceptions import APIError
from postgrest.types import CountMethod
from supabase import AsyncClient, acreate_client

from ..config import Settings, get_supabase_config
from ..exceptions import GatewayError
from ..models import Principal
from .gateway import AuthCallback, AuthEvent, RemoteDataGateway, Unsubscribe

logger = logging.getLogger(__name__)


class SupabaseGateway(RemoteDataGateway):
    """Table CRUD and auth on top of a Supabase project"""

    def __init__(self, client: AsyncClient):
        self.client = client

    @classmethod
    async def connect(cls, settings: Optional[Settings] = None) -> "SupabaseGateway":
        """Create the async client from settings"""
        config = get_supabase_config(settings)
        client = await acreate_client(config["url"], config["anon_key"])
        logger.info(f"✅ Supabase gateway initialized: {config['url']}")
        return cls(client)

    # ===== AUTH =====

    async def get_current_principal(self) -> Optional[Principal]:
        try:
            response = await self.client.auth.get_user()
        except Exception as e:
            logger.error(f"❌ Error reading authenticated user: {e}")
            raise GatewayError(str(e) or "Failed to read authenticated user") from e

        user = getattr(response, "user", None) if response else None
        if user is None:
            return None
        return Principal(id=str(user.id), email=getattr(user, "email", None))

    def on_auth_change(self, callback: AuthCallback) -> Unsubscribe:
        def _listener(event, session) -> None:
            user = getattr(session, "user", None) if session else None
            principal = None
            if user is not None:
                principal = Principal(id=str(user.id), email=getattr(user, "email", None))
            callback(AuthEvent(event=str(getattr(event, "value", event)), principal=principal))

        subscription = self.client.auth.on_auth_state_change(_listener)
        return subscription.unsubscribe

    # ===== TABLES =====

    async def query(self, table: str, select: str = "*",
                    filters: Optional[Dict[str, Any]] = None,
                    order_by: Optional[str] = None,
                    descending: bool = False) -> List[Dict[str, Any]]:
        request = self.client.table(table).select(select)
        for column, value in (filters or {}).items():
            request = request.eq(column, value)
        if order_by:
            request = request.order(order_by, desc=descending)

        response = await self._execute(request, f"query {table}")
        return list(response.data or [])

    async def insert(self, table: str, row: Dict[str, Any], select: str = "*") -> Dict[str, Any]:
        response = await self._execute(self.client.table(table).insert(row), f"insert into {table}")
        if not response.data:
            raise GatewayError(f"Insert into {table} returned no row")

        stored = response.data[0]
        if select != "*":
            # Re-read so the returned row carries the requested joins
            return await self._read_one(table, stored["id"], select)
        return stored

    async def update(self, table: str, row_id: str, patch: Dict[str, Any],
                     select: str = "*") -> Dict[str, Any]:
        request = self.client.table(table).update(patch).eq("id", row_id)
        response = await self._execute(request, f"update {table}")
        if not response.data:
            raise GatewayError(f"No {table} row with id {row_id}", code="not_found")

        if select != "*":
            return await self._read_one(table, row_id, select)
        return response.data[0]

    async def delete(self, table: str, row_id: str) -> None:
        request = self.client.table(table).delete().eq("id", row_id)
        response = await self._execute(request, f"delete from {table}")
        if not response.data:
            raise GatewayError(f"No {table} row with id {row_id}", code="not_found")

    async def count(self, table: str) -> int:
        request = self.client.table(table).select("id", count=CountMethod.exact).limit(1)
        response = await self._execute(request, f"count {table}")
        return response.count or 0

    async def rpc(self, function: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self._execute(self.client.rpc(function, params or {}), f"rpc {function}")
        return response.data

    # ===== HELPERS =====

    async def _read_one(self, table: str, row_id: str, select: str) -> Dict[str, Any]:
        rows = await self.query(table, select=select, filters={"id": row_id})
        if not rows:
            raise GatewayError(f"No {table} row with id {row_id}", code="not_found")
        return rows[0]

    async def _execute(self, request, action: str):
        """Run a postgrest request, mapping client errors to GatewayError"""
        try:
            return await request.execute()
        except APIError as e:
            logger.error(f"❌ Supabase error on {action}: {e.message}")
            raise GatewayError(e.message or f"Supabase error on {action}",
                               code=e.code, details=e.details) from e
        except httpx.HTTPError as e:
            logger.error(f"❌ Network error on {action}: {e}")
            raise GatewayError(str(e) or f"Network error on {action}", code="network") from e
