"""Exception hierarchy for the position ledger.

Every error raised by the store, the ledger engine and the aggregator is a
``LedgerError`` carrying a machine-readable ``kind`` plus the affected id or
codes, so a client can render a message without parsing text.
"""

from typing import Any, Optional


class LedgerError(Exception):
    """Base exception for all ledger errors."""

    kind = "LEDGER_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        """Structured fields identifying what the error is about."""
        return {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for a client."""
        return {"kind": self.kind, "message": self.message, **self.details()}


class ValidationError(LedgerError):
    """Raised when input is malformed. Never mutates state."""

    kind = "VALIDATION"

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        return {"field": self.field}


class NotFoundError(LedgerError):
    """Raised when an operation references an unknown position id."""

    kind = "NOT_FOUND"

    def __init__(self, position_id: str):
        self.position_id = position_id
        super().__init__(f"Position not found: {position_id}")

    def details(self) -> dict[str, Any]:
        return {"id": self.position_id}


class InvalidStateError(LedgerError):
    """Raised when an operation is not legal for a position's status."""

    kind = "INVALID_STATE"

    def __init__(self, position_id: str, status: str, operation: str = "operation"):
        self.position_id = position_id
        self.status = status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} position {position_id}: status is {status}"
        )

    def details(self) -> dict[str, Any]:
        return {"id": self.position_id, "status": self.status}


class QuoteUnavailableError(LedgerError):
    """Raised when one or more instrument codes have no usable price."""

    kind = "QUOTE_UNAVAILABLE"

    def __init__(self, codes: list[str], reason: Optional[str] = None):
        self.codes = list(codes)
        self.reason = reason
        message = f"No quote available for: {', '.join(self.codes)}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        return {"codes": self.codes, "reason": self.reason}


class StorageError(LedgerError):
    """Raised when the underlying database fails."""

    kind = "STORAGE"


class ConfigurationError(LedgerError):
    """Raised when the configuration file cannot be read."""

    kind = "CONFIGURATION"
