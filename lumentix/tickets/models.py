from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class TicketStatus(str, Enum):
    """Lifecycle flag of an issued ticket. Only valid tickets can change hands."""

    VALID = "valid"
    REDEEMED = "redeemed"
    REVOKED = "revoked"

    @property
    def transferable(self) -> bool:
        return self is TicketStatus.VALID


@dataclass(slots=True)
class Ticket:
    """Event ticket minted for a confirmed on-chain payment."""

    id: str | None
    event_id: str
    owner_id: str
    asset_code: str
    transaction_hash: str
    status: TicketStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None
