"""
Shopbell exception hierarchy.

Every error in the system inherits from ShopbellError.
Each subsystem has its own error class for targeted catching.

Usage:
    try:
        await backend.list_deliveries(day)
    except TransportError as e:
        # Network failure, fall back or retry later
    except ShopbellError as e:
        # Handle any Shopbell error
"""


class ShopbellError(Exception):
    """Base exception for all Shopbell errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ━━━ Layer 0: Core Errors ━━━


class ConfigError(ShopbellError):
    """Configuration is invalid, missing, or malformed."""

    pass


class StorageError(ShopbellError):
    """Storage backend failure — database errors, corruption, etc."""

    pass


# ━━━ Layer 1: Backend Errors ━━━


class TransportError(ShopbellError):
    """Network failure talking to the shop server: connect, HTTP status or stream drop."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retryable: bool = True,
        details: dict | None = None,
    ):
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(message, details)


class DecodeError(ShopbellError):
    """A delivery payload could not be turned into an alert."""

    def __init__(self, message: str, field: str = "", details: dict | None = None):
        self.field = field
        super().__init__(message, details)


class PrinterError(ShopbellError):
    """Receipt printer bridge unreachable or refused the job."""

    pass


# ━━━ Layer 2: User Action Errors ━━━


class ActionError(ShopbellError):
    """Accept/reject of a delivery failed on the server."""

    def __init__(
        self,
        message: str,
        order_id: int = 0,
        action: str = "",
        details: dict | None = None,
    ):
        self.order_id = order_id
        self.action = action
        super().__init__(message, details)
