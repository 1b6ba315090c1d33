"""SQLModel table definitions for the ticketing data layer."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, UniqueConstraint
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


class TicketTable(SQLModel, table=True):
    """Issued tickets, one per settled payment transaction."""

    __tablename__ = "tickets"
    __table_args__ = (UniqueConstraint("transaction_hash", name="uq_tickets_transaction_hash"),)

    id: str = Field(sa_column=Column(String(36), primary_key=True))
    event_id: str = Field(sa_column=Column(String(64), nullable=False))
    owner_id: str = Field(sa_column=Column(String(64), nullable=False, index=True))
    asset_code: str = Field(sa_column=Column(String(12), nullable=False))
    transaction_hash: str = Field(sa_column=Column(String(64), nullable=False))
    status: str = Field(sa_column=Column(String(20), nullable=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class PaymentTable(SQLModel, table=True):
    """Payments recorded by the payments service; read-only here."""

    __tablename__ = "payments"

    id: str = Field(primary_key=True, index=True)
    status: str = Field(sa_column=Column(String(20), nullable=False))
    transaction_hash: str | None = Field(default=None, sa_column=Column(String(64), nullable=True))
    event_id: str = Field(sa_column=Column(String(64), nullable=False))
    user_id: str = Field(sa_column=Column(String(64), nullable=False))
    currency: str = Field(sa_column=Column(String(12), nullable=False))
