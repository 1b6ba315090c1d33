"""Collaborator interfaces consumed by :class:`~lumentix.tickets.service.TicketService`."""

from __future__ import annotations

from typing import Protocol

from lumentix.payments.models import Payment
from lumentix.stellar.models import ChainTransaction

from .models import Ticket, TicketStatus


class PaymentLookup(Protocol):
    async def get_payment_by_id(self, payment_id: str) -> Payment:
        """Return the payment or raise :class:`~lumentix.errors.NotFoundError`."""
        ...


class TransactionFetcher(Protocol):
    async def get_transaction(self, tx_hash: str) -> ChainTransaction:
        ...


class TicketStore(Protocol):
    async def find_one(
        self,
        *,
        ticket_id: str | None = None,
        transaction_hash: str | None = None,
    ) -> Ticket | None:
        ...

    def create(
        self,
        *,
        event_id: str,
        owner_id: str,
        asset_code: str,
        transaction_hash: str,
        status: TicketStatus = TicketStatus.VALID,
    ) -> Ticket:
        """Build an unsaved ticket; nothing is written until :meth:`save`."""
        ...

    async def save(self, ticket: Ticket) -> Ticket:
        """Insert ``ticket``, or update the owner of an already stored one.

        Raises :class:`~lumentix.errors.DuplicateTicketError` when another ticket
        already holds the transaction hash.
        """
        ...

    async def reassign_owner(
        self,
        ticket_id: str,
        *,
        current_owner_id: str,
        new_owner_id: str,
    ) -> Ticket | None:
        """Move a valid ticket from ``current_owner_id`` to ``new_owner_id`` atomically.

        Returns ``None`` without writing when the ticket is gone, is owned by
        someone else, or is no longer valid at the time of the write.
        """
        ...
