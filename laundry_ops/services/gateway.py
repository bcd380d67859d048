"""
Remote data gateway interface
The stores only ever talk to the backend through this contract
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..models import Principal


@dataclass
class AuthEvent:
    """Authentication state change pushed by the gateway"""
    event: str  # e.g. "SIGNED_IN", "SIGNED_OUT", "TOKEN_REFRESHED"
    principal: Optional[Principal] = None


AuthCallback = Callable[[AuthEvent], None]
Unsubscribe = Callable[[], None]


class RemoteDataGateway(ABC):
    """Abstract base class for table-style backends with authentication"""

    @abstractmethod
    async def get_current_principal(self) -> Optional[Principal]:
        """Return the signed-in principal, or None"""
        pass

    @abstractmethod
    def on_auth_change(self, callback: AuthCallback) -> Unsubscribe:
        """Register a callback for auth events; returns an unsubscribe function"""
        pass

    @abstractmethod
    async def query(self, table: str, select: str = "*",
                    filters: Optional[Dict[str, Any]] = None,
                    order_by: Optional[str] = None,
                    descending: bool = False) -> List[Dict[str, Any]]:
        """Read rows, optionally filtered by column equality and ordered"""
        pass

    @abstractmethod
    async def insert(self, table: str, row: Dict[str, Any], select: str = "*") -> Dict[str, Any]:
        """Insert one row and return the stored row"""
        pass

    @abstractmethod
    async def update(self, table: str, row_id: str, patch: Dict[str, Any],
                     select: str = "*") -> Dict[str, Any]:
        """Patch one row by id and return the stored row"""
        pass

    @abstractmethod
    async def delete(self, table: str, row_id: str) -> None:
        """Delete one row by id"""
        pass

    @abstractmethod
    async def count(self, table: str) -> int:
        """Count visible rows; used as a connectivity probe"""
        pass

    @abstractmethod
    async def rpc(self, function: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Call a database function"""
        pass
