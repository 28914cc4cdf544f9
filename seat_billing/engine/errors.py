from __future__ import annotations
from typing import Optional


class SeatManagerError(ValueError):
    """
    Base class for seat-change failures.

    `kind` is a stable machine-readable tag; the exception message is the
    human-readable text surfaced to callers.
    """

    kind: str = "seat_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(SeatManagerError):
    kind = "not_found"


class ConfigurationError(SeatManagerError):
    """Subscription record is missing an external identifier."""

    kind = "configuration_error"


class NoOpError(SeatManagerError):
    kind = "no_op"


class UnknownBillingTypeError(SeatManagerError):
    kind = "unknown_billing_type"


class BillingAPIError(SeatManagerError):
    """Non-success response (or exhausted transport failure) from the billing API."""

    kind = "billing_api_error"

    def __init__(self, message: str, *, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.body = body
