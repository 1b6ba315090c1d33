from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from doubles import InMemoryTicketStore, StubPaymentLookup, make_payment, text_transaction
from lumentix.tickets.service import TicketService


@pytest.fixture
def store() -> InMemoryTicketStore:
    return InMemoryTicketStore()


@pytest.fixture
def payments() -> StubPaymentLookup:
    return StubPaymentLookup(make_payment())


@pytest.fixture
def transactions() -> AsyncMock:
    fetcher = AsyncMock()
    fetcher.get_transaction = AsyncMock(return_value=text_transaction("p1"))
    return fetcher


@pytest.fixture
def service(store: InMemoryTicketStore, payments: StubPaymentLookup, transactions: AsyncMock) -> TicketService:
    return TicketService(store, payments, transactions)
