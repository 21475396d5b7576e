# typed failures raised by the ledger components

from __future__ import annotations

from typing import Optional


class LedgerError(Exception):
    """Base for every failure the ledger reports to its callers."""

    default_message = "ledger operation failed"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(LedgerError, LookupError):
    default_message = "Product not found"


class EmptyCartError(LedgerError):
    default_message = "Your cart is empty"

    def __init__(
        self, message: Optional[str] = None, state=None, stages=()
    ) -> None:
        super().__init__(message)
        # CheckoutState the attempt stopped in, and the ones it passed through
        self.state = state
        self.stages = tuple(stages)


class InvalidCodeError(LedgerError):
    default_message = "Invalid or already used discount code"


class InvalidArgumentError(LedgerError, ValueError):
    default_message = "Invalid argument"


class UnauthenticatedError(LedgerError):
    default_message = "User not found"


class ConflictError(LedgerError):
    default_message = "Discount code already exists"
