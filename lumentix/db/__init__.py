"""Database models and utilities."""

from .health import DatabaseHealthCheck
from .models import PaymentTable, TicketTable

__all__ = [
    "DatabaseHealthCheck",
    "PaymentTable",
    "TicketTable",
]
