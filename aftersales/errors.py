"""Error kinds raised by the registry and ledger.

Both are raised before any state is touched, so a failed call never
leaves a partial effect behind.
"""

from __future__ import annotations


class AfterSalesError(Exception):
    """Base class for all aftersales domain errors."""


class Unauthorized(AfterSalesError):
    """Caller failed the role or ownership check required by an operation."""

    def __init__(self, operation: str, caller: str) -> None:
        super().__init__(f"Caller {caller!r} is not authorized to {operation}")
        self.operation = operation
        self.caller = caller


class PreconditionViolated(AfterSalesError):
    """Input was rejected by validation (strict mode or bounded accessors)."""

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(f"{operation}: {reason}")
        self.operation = operation
        self.reason = reason
