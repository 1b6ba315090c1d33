"""Ticket issuance and transfer domain."""

from .models import Ticket, TicketStatus
from .repository import TicketRepository
from .service import TicketService

__all__ = [
    "Ticket",
    "TicketRepository",
    "TicketService",
    "TicketStatus",
]
