from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PaymentStatus(str, Enum):
    """States a payment moves through in the payments service."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    REFUNDED = "refunded"


@dataclass(slots=True, frozen=True)
class Payment:
    """Payment record as seen by the ticketing core."""

    id: str
    status: PaymentStatus
    transaction_hash: str | None
    event_id: str
    user_id: str
    currency: str
