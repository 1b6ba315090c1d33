"""Read-only access to payment records."""

from .models import Payment, PaymentStatus
from .repository import PaymentRepository

__all__ = [
    "Payment",
    "PaymentRepository",
    "PaymentStatus",
]
