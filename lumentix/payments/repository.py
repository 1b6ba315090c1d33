from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lumentix.db.models import PaymentTable
from lumentix.errors import NotFoundError

from .models import Payment, PaymentStatus


class PaymentRepository:
    """Look up payments written by the payments service."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_payment_by_id(self, payment_id: str) -> Payment:
        async with self._session_factory() as session:
            row = await session.get(PaymentTable, payment_id)
        if row is None:
            raise NotFoundError(f"Payment {payment_id} not found")
        return self._table_to_payment(row)

    @staticmethod
    def _table_to_payment(row: PaymentTable) -> Payment:
        return Payment(
            id=row.id,
            status=PaymentStatus(row.status),
            transaction_hash=row.transaction_hash,
            event_id=row.event_id,
            user_id=row.user_id,
            currency=row.currency,
        )
