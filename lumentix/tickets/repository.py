from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel, select

from lumentix.db.models import TicketTable
from lumentix.errors import DuplicateTicketError, NotFoundError

from .models import Ticket, TicketStatus


class TicketRepository:
    """Ticket store backed by the `tickets` table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine: AsyncEngine | None = engine

    async def ensure_schema(self) -> None:
        if self._engine is None:
            raise RuntimeError("Session factory is not bound to an async engine")
        async with self._engine.begin() as connection:
            await connection.run_sync(SQLModel.metadata.create_all, tables=[TicketTable.__table__])

    async def find_one(
        self,
        *,
        ticket_id: str | None = None,
        transaction_hash: str | None = None,
    ) -> Ticket | None:
        if (ticket_id is None) == (transaction_hash is None):
            raise ValueError("find_one expects exactly one of ticket_id or transaction_hash")

        async with self._session_factory() as session:
            if ticket_id is not None:
                row = await session.get(TicketTable, ticket_id)
            else:
                result = await session.execute(
                    select(TicketTable).where(TicketTable.transaction_hash == transaction_hash)
                )
                row = result.scalars().first()
        if row is None:
            return None
        return self._table_to_ticket(row)

    def create(
        self,
        *,
        event_id: str,
        owner_id: str,
        asset_code: str,
        transaction_hash: str,
        status: TicketStatus = TicketStatus.VALID,
    ) -> Ticket:
        return Ticket(
            id=None,
            event_id=event_id,
            owner_id=owner_id,
            asset_code=asset_code,
            transaction_hash=transaction_hash,
            status=status,
        )

    async def save(self, ticket: Ticket) -> Ticket:
        now = datetime.now(timezone.utc)
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    if ticket.id is None:
                        row = TicketTable(
                            id=str(uuid.uuid4()),
                            event_id=ticket.event_id,
                            owner_id=ticket.owner_id,
                            asset_code=ticket.asset_code,
                            transaction_hash=ticket.transaction_hash,
                            status=ticket.status.value,
                            created_at=now,
                            updated_at=now,
                        )
                        session.add(row)
                    else:
                        row = await session.get(TicketTable, ticket.id)
                        if row is None:
                            raise NotFoundError(f"Ticket {ticket.id} not found")
                        row.owner_id = ticket.owner_id
                        row.updated_at = now
            except IntegrityError as exc:
                raise DuplicateTicketError(ticket.transaction_hash) from exc
        return self._table_to_ticket(row)

    async def reassign_owner(
        self,
        ticket_id: str,
        *,
        current_owner_id: str,
        new_owner_id: str,
    ) -> Ticket | None:
        statement = (
            update(TicketTable)
            .where(
                TicketTable.id == ticket_id,
                TicketTable.owner_id == current_owner_id,
                TicketTable.status == TicketStatus.VALID.value,
            )
            .values(owner_id=new_owner_id, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(statement)
                if result.rowcount != 1:
                    return None
                row = await session.get(TicketTable, ticket_id, populate_existing=True)
        if row is None:
            return None
        return self._table_to_ticket(row)

    @staticmethod
    def _table_to_ticket(row: TicketTable) -> Ticket:
        return Ticket(
            id=row.id,
            event_id=row.event_id,
            owner_id=row.owner_id,
            asset_code=row.asset_code,
            transaction_hash=row.transaction_hash,
            status=TicketStatus(row.status),
            created_at=_ensure_datetime(row.created_at),
            updated_at=_ensure_datetime(row.updated_at),
        )


def _ensure_datetime(value: datetime | None) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    raise TypeError("Expected datetime value from database")
