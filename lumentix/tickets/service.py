from __future__ import annotations

import logging

from opentelemetry import trace

from lumentix.errors import DuplicateTicketError, ForbiddenError, InvalidRequestError, NotFoundError
from lumentix.payments.models import PaymentStatus

from .models import Ticket, TicketStatus
from .protocols import PaymentLookup, TicketStore, TransactionFetcher

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class TicketService:
    """Issue tickets against verified Stellar payments and transfer them between owners."""

    def __init__(
        self,
        store: TicketStore,
        payments: PaymentLookup,
        transactions: TransactionFetcher,
    ) -> None:
        self._store = store
        self._payments = payments
        self._transactions = transactions

    async def issue_ticket(self, payment_id: str) -> Ticket:
        """Mint the ticket paid for by ``payment_id``.

        The payment must be confirmed and point at a transaction whose text memo
        equals the payment id. Issuance is idempotent per transaction hash: an
        existing ticket is returned as-is without consulting the ledger again.
        """

        with tracer.start_as_current_span("tickets.issue") as span:
            span.set_attribute("payment.id", payment_id)
            payment = await self._payments.get_payment_by_id(payment_id)

            if payment.status != PaymentStatus.CONFIRMED:
                raise self._reject(payment_id, "Payment not confirmed")

            tx_hash = payment.transaction_hash
            if not tx_hash:
                raise self._reject(payment_id, "Payment has no transaction hash")
            span.set_attribute("stellar.transaction_hash", tx_hash)

            existing = await self._store.find_one(transaction_hash=tx_hash)
            if existing is not None:
                logger.info("Ticket %s already issued for transaction %s", existing.id, tx_hash)
                return existing

            transaction = await self._transactions.get_transaction(tx_hash)
            memo = transaction.text_memo
            if memo is None:
                raise self._reject(
                    payment_id, "Transaction is missing memo. Cannot verify payment reference."
                )
            if memo != payment.id:
                raise self._reject(
                    payment_id,
                    f'Transaction memo does not match paymentId. Expected "{payment.id}", got "{memo}".',
                )

            ticket = self._store.create(
                event_id=payment.event_id,
                owner_id=payment.user_id,
                asset_code=payment.currency,
                transaction_hash=tx_hash,
                status=TicketStatus.VALID,
            )
            try:
                saved = await self._store.save(ticket)
            except DuplicateTicketError:
                # A concurrent issuance won the unique constraint; hand back its ticket.
                winner = await self._store.find_one(transaction_hash=tx_hash)
                if winner is None:
                    raise
                logger.info("Concurrent issuance for transaction %s resolved to ticket %s", tx_hash, winner.id)
                return winner

            logger.info("Issued ticket %s for payment %s (transaction %s)", saved.id, payment_id, tx_hash)
            return saved

    async def transfer_ticket(self, ticket_id: str, caller_owner_id: str, new_owner_id: str) -> Ticket:
        """Hand a valid ticket over to ``new_owner_id`` on behalf of its current owner."""

        with tracer.start_as_current_span("tickets.transfer") as span:
            span.set_attribute("ticket.id", ticket_id)
            ticket = await self._store.find_one(ticket_id=ticket_id)
            self._authorize_transfer(ticket, ticket_id, caller_owner_id)

            updated = await self._store.reassign_owner(
                ticket_id,
                current_owner_id=caller_owner_id,
                new_owner_id=new_owner_id,
            )
            if updated is None:
                # The ticket changed hands or status after it was read.
                current = await self._store.find_one(ticket_id=ticket_id)
                self._authorize_transfer(current, ticket_id, caller_owner_id)
                raise InvalidRequestError("Ticket not transferable")

            logger.info("Transferred ticket %s from %s to %s", ticket_id, caller_owner_id, new_owner_id)
            return updated

    async def get_ticket(self, ticket_id: str) -> Ticket:
        ticket = await self._store.find_one(ticket_id=ticket_id)
        if ticket is None:
            raise NotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    @staticmethod
    def _authorize_transfer(ticket: Ticket | None, ticket_id: str, caller_owner_id: str) -> None:
        if ticket is None:
            raise NotFoundError("Ticket not found")

        if ticket.owner_id != caller_owner_id:
            logger.warning("Caller %s attempted to transfer ticket %s they do not own", caller_owner_id, ticket_id)
            raise ForbiddenError("Not ticket owner")

        if not ticket.status.transferable:
            logger.warning("Refusing transfer of ticket %s in status %s", ticket_id, ticket.status.value)
            raise InvalidRequestError("Ticket not transferable")

    @staticmethod
    def _reject(payment_id: str, reason: str) -> InvalidRequestError:
        logger.warning("Rejecting ticket issuance for payment %s: %s", payment_id, reason)
        return InvalidRequestError(reason)
