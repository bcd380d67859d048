"""
Laundry Ops Exceptions

Error taxonomy shared by the gateway adapters and the entity stores.
"""

from typing import Any, Optional


class LaundryError(Exception):
    """Base exception for every failure surfaced by the data layer"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class FieldError(LaundryError):
    """Local validation failure; never reaches the gateway"""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def __repr__(self) -> str:
        return f"FieldError(field={self.field!r}, message={self.message!r})"


class AuthError(LaundryError):
    """No authenticated principal at the time of the operation"""

    def __init__(self, message: str = "User not authenticated. Please sign in again."):
        super().__init__(message)


class GatewayError(LaundryError):
    """Network or storage failure reported by the remote gateway"""

    def __init__(self, message: str, code: Optional[str] = None,
                 details: Optional[Any] = None):
        super().__init__(message)
        self.code = code
        self.details = details
