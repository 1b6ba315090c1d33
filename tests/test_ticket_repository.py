from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest
import pytest_asyncio
from sqlalchemy import UniqueConstraint, update
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from doubles import make_ticket, text_transaction
from lumentix.db.models import PaymentTable, TicketTable
from lumentix.errors import DuplicateTicketError, ForbiddenError, InvalidRequestError, NotFoundError
from lumentix.payments.models import PaymentStatus
from lumentix.payments.repository import PaymentRepository
from lumentix.tickets.models import Ticket, TicketStatus
from lumentix.tickets.repository import TicketRepository
from lumentix.tickets.service import TicketService


@pytest_asyncio.fixture
async def engine() -> AsyncEngine:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def repository(session_factory: async_sessionmaker, engine: AsyncEngine) -> TicketRepository:
    return TicketRepository(session_factory, engine=engine)


def _new_ticket(repository: TicketRepository, tx_hash: str = "tx1"):
    return repository.create(
        event_id="e1",
        owner_id="u1",
        asset_code="USDC",
        transaction_hash=tx_hash,
    )


@pytest.mark.asyncio
async def test_ensure_schema_creates_only_tickets_table(engine: AsyncEngine):
    factory = async_sessionmaker(engine, expire_on_commit=False)
    repository = TicketRepository(factory, engine=engine)

    await repository.ensure_schema()

    async with engine.begin() as conn:
        tables = await conn.run_sync(lambda sync_conn: set(sa_inspect(sync_conn).get_table_names()))

    assert "tickets" in tables
    assert "payments" not in tables


@pytest.mark.asyncio
async def test_ensure_schema_requires_engine(session_factory):
    repository = TicketRepository(session_factory)

    with pytest.raises(RuntimeError):
        await repository.ensure_schema()


def test_create_builds_unsaved_valid_ticket(repository: TicketRepository):
    ticket = _new_ticket(repository)

    assert ticket.id is None
    assert ticket.status == TicketStatus.VALID
    assert ticket.created_at is None


@pytest.mark.asyncio
async def test_save_inserts_and_assigns_identifier(repository: TicketRepository, session_factory):
    saved = await repository.save(_new_ticket(repository))

    assert saved.id is not None
    assert saved.created_at is not None
    assert saved.created_at.tzinfo is not None

    async with session_factory() as session:
        row = await session.get(TicketTable, saved.id)
    assert row is not None
    assert row.transaction_hash == "tx1"
    assert row.status == "valid"


@pytest.mark.asyncio
async def test_find_one_by_id_and_transaction_hash(repository: TicketRepository):
    saved = await repository.save(_new_ticket(repository))

    by_id = await repository.find_one(ticket_id=saved.id)
    by_hash = await repository.find_one(transaction_hash="tx1")

    assert by_id is not None and by_id.id == saved.id
    assert by_hash is not None and by_hash.id == saved.id
    assert await repository.find_one(transaction_hash="tx-unknown") is None
    assert await repository.find_one(ticket_id="missing") is None


@pytest.mark.asyncio
async def test_find_one_requires_exactly_one_criterion(repository: TicketRepository):
    with pytest.raises(ValueError):
        await repository.find_one()
    with pytest.raises(ValueError):
        await repository.find_one(ticket_id="t-1", transaction_hash="tx1")


@pytest.mark.asyncio
async def test_second_ticket_for_same_transaction_is_rejected(repository: TicketRepository):
    await repository.save(_new_ticket(repository))

    with pytest.raises(DuplicateTicketError) as excinfo:
        await repository.save(_new_ticket(repository))

    assert excinfo.value.transaction_hash == "tx1"


@pytest.mark.asyncio
async def test_save_updates_owner_of_existing_ticket(repository: TicketRepository):
    saved = await repository.save(_new_ticket(repository))

    updated = await repository.save(replace(saved, owner_id="u2"))
    reloaded = await repository.find_one(ticket_id=saved.id)

    assert updated.id == saved.id
    assert reloaded is not None
    assert reloaded.owner_id == "u2"
    assert reloaded.status == TicketStatus.VALID


async def _set_status(session_factory, ticket_id: str, status: str) -> None:
    async with session_factory() as session:
        async with session.begin():
            await session.execute(update(TicketTable).where(TicketTable.id == ticket_id).values(status=status))


@pytest.mark.asyncio
async def test_save_does_not_overwrite_status_changed_elsewhere(repository: TicketRepository, session_factory):
    stale = await repository.save(_new_ticket(repository))
    await _set_status(session_factory, stale.id, "revoked")

    await repository.save(replace(stale, owner_id="u2"))
    reloaded = await repository.find_one(ticket_id=stale.id)

    assert reloaded is not None
    assert reloaded.status == TicketStatus.REVOKED


@pytest.mark.asyncio
async def test_reassign_owner_moves_valid_ticket(repository: TicketRepository):
    saved = await repository.save(_new_ticket(repository))

    moved = await repository.reassign_owner(saved.id, current_owner_id="u1", new_owner_id="u2")

    assert moved is not None
    assert moved.owner_id == "u2"
    assert moved.status == TicketStatus.VALID
    assert (await repository.find_one(ticket_id=saved.id)).owner_id == "u2"


@pytest.mark.asyncio
async def test_reassign_owner_leaves_row_alone_when_conditions_fail(repository: TicketRepository, session_factory):
    saved = await repository.save(_new_ticket(repository))

    assert await repository.reassign_owner(saved.id, current_owner_id="u9", new_owner_id="u2") is None
    assert await repository.reassign_owner("missing", current_owner_id="u1", new_owner_id="u2") is None

    await _set_status(session_factory, saved.id, "redeemed")
    assert await repository.reassign_owner(saved.id, current_owner_id="u1", new_owner_id="u2") is None

    reloaded = await repository.find_one(ticket_id=saved.id)
    assert reloaded.owner_id == "u1"
    assert reloaded.status == TicketStatus.REDEEMED


@pytest.mark.asyncio
async def test_transfer_of_ticket_revoked_between_read_and_write(repository: TicketRepository, session_factory):
    saved = await repository.save(_new_ticket(repository))

    class RevokingRepository(TicketRepository):
        revoked = False

        async def find_one(self, **criteria):
            found = await super().find_one(**criteria)
            if not self.revoked:
                self.revoked = True
                await _set_status(session_factory, saved.id, "revoked")
            return found

    racing = RevokingRepository(session_factory)
    service = TicketService(racing, PaymentRepository(session_factory), object())

    with pytest.raises(InvalidRequestError, match="not transferable"):
        await service.transfer_ticket(saved.id, "u1", "u2")

    reloaded = await repository.find_one(ticket_id=saved.id)
    assert reloaded.owner_id == "u1"
    assert reloaded.status == TicketStatus.REVOKED


@pytest.mark.asyncio
async def test_concurrent_transfers_have_exactly_one_winner(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tickets.db'}")
    try:
        factory = async_sessionmaker(engine, expire_on_commit=False)
        repository = TicketRepository(factory, engine=engine)
        await repository.ensure_schema()
        saved = await repository.save(_new_ticket(repository))
        service = TicketService(repository, PaymentRepository(factory), object())

        outcomes = await asyncio.gather(
            service.transfer_ticket(saved.id, "u1", "u2"),
            service.transfer_ticket(saved.id, "u1", "u3"),
            return_exceptions=True,
        )

        winners = [outcome for outcome in outcomes if isinstance(outcome, Ticket)]
        losers = [outcome for outcome in outcomes if isinstance(outcome, ForbiddenError)]
        assert len(winners) == 1
        assert len(losers) == 1
        final = await repository.find_one(ticket_id=saved.id)
        assert final.owner_id == winners[0].owner_id
    finally:
        await engine.dispose()


def test_ticket_table_matches_migration_schema():
    table = TicketTable.__table__
    unique_names = {
        constraint.name for constraint in table.constraints if isinstance(constraint, UniqueConstraint)
    }

    assert table.c.id.type.length == 36
    assert unique_names == {"uq_tickets_transaction_hash"}
    assert {index.name for index in table.indexes} == {"ix_tickets_owner_id"}


@pytest.mark.asyncio
async def test_save_of_vanished_ticket_raises_not_found(repository: TicketRepository):
    with pytest.raises(NotFoundError):
        await repository.save(make_ticket("gone"))


@pytest.mark.asyncio
async def test_payment_repository_reads_payment_rows(session_factory):
    async with session_factory() as session:
        async with session.begin():
            session.add(
                PaymentTable(
                    id="p1",
                    status="confirmed",
                    transaction_hash="tx1",
                    event_id="e1",
                    user_id="u1",
                    currency="USDC",
                )
            )

    payment = await PaymentRepository(session_factory).get_payment_by_id("p1")

    assert payment.status == PaymentStatus.CONFIRMED
    assert payment.transaction_hash == "tx1"
    with pytest.raises(NotFoundError):
        await PaymentRepository(session_factory).get_payment_by_id("p2")


@pytest.mark.asyncio
async def test_issue_and_transfer_against_database(repository: TicketRepository, session_factory):
    async with session_factory() as session:
        async with session.begin():
            session.add(
                PaymentTable(
                    id="p1",
                    status="confirmed",
                    transaction_hash="tx1",
                    event_id="e1",
                    user_id="u1",
                    currency="USDC",
                )
            )

    class Ledger:
        async def get_transaction(self, tx_hash: str):
            return text_transaction("p1", tx_hash=tx_hash)

    service = TicketService(repository, PaymentRepository(session_factory), Ledger())

    issued = await service.issue_ticket("p1")
    again = await service.issue_ticket("p1")
    transferred = await service.transfer_ticket(issued.id, "u1", "u2")

    assert again.id == issued.id
    assert (issued.event_id, issued.owner_id, issued.asset_code) == ("e1", "u1", "USDC")
    assert transferred.owner_id == "u2"
    assert transferred.status == TicketStatus.VALID
