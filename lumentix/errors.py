"""Error taxonomy shared by the ticketing core and its collaborators."""

from __future__ import annotations

from enum import Enum
from typing import ClassVar


class ErrorKind(str, Enum):
    """Categories a caller can act upon."""

    INVALID_REQUEST = "invalid_request"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"


class TicketingError(RuntimeError):
    """Base error carrying a taxonomy kind and a descriptive message."""

    kind: ClassVar[ErrorKind]

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequestError(TicketingError):
    """Raised when a caller or data precondition is violated."""

    kind = ErrorKind.INVALID_REQUEST


class NotFoundError(TicketingError):
    """Raised when a referenced entity does not exist."""

    kind = ErrorKind.NOT_FOUND


class ForbiddenError(TicketingError):
    """Raised when the caller is not allowed to perform the operation."""

    kind = ErrorKind.FORBIDDEN


class DuplicateTicketError(RuntimeError):
    """Raised by a ticket store when a transaction hash already has a ticket."""

    def __init__(self, transaction_hash: str) -> None:
        super().__init__(f"Ticket for transaction {transaction_hash} already exists")
        self.transaction_hash = transaction_hash


class LedgerError(RuntimeError):
    """Raised when the ledger returns a transaction resource that cannot be read."""
