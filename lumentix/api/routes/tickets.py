from __future__ import annotations

from datetime import datetime
from typing import Annotated

import httpx
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from lumentix.dependencies.caller import CallerId
from lumentix.dependencies.tickets import get_ticket_service
from lumentix.errors import DuplicateTicketError, ErrorKind, LedgerError, TicketingError
from lumentix.tickets.models import Ticket, TicketStatus
from lumentix.tickets.service import TicketService

router = APIRouter(prefix="/tickets", tags=["tickets"])

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
}


class TicketIssueRequest(BaseModel):
    payment_id: str = Field(..., min_length=1, max_length=64)


class TicketTransferRequest(BaseModel):
    new_owner_id: str = Field(..., min_length=1, max_length=64)


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    event_id: str
    owner_id: str
    asset_code: str
    transaction_hash: str
    status: TicketStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None


TicketServiceDep = Annotated[TicketService, Depends(get_ticket_service)]


def _to_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse.model_validate(ticket)


def _to_http_error(exc: TicketingError) -> HTTPException:
    return HTTPException(status_code=_STATUS_BY_KIND[exc.kind], detail=exc.message)


@router.post("", response_model=TicketResponse)
async def issue_ticket(payload: TicketIssueRequest, service: TicketServiceDep) -> TicketResponse:
    try:
        ticket = await service.issue_ticket(payload.payment_id)
    except TicketingError as exc:
        raise _to_http_error(exc) from exc
    except DuplicateTicketError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except LedgerError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except httpx.HTTPError as exc:
        raise HTTPException(status_code=502, detail="Stellar ledger unavailable") from exc
    return _to_response(ticket)


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(ticket_id: str, service: TicketServiceDep) -> TicketResponse:
    try:
        ticket = await service.get_ticket(ticket_id)
    except TicketingError as exc:
        raise _to_http_error(exc) from exc
    return _to_response(ticket)


@router.post("/{ticket_id}/transfer", response_model=TicketResponse)
async def transfer_ticket(
    ticket_id: str,
    payload: TicketTransferRequest,
    service: TicketServiceDep,
    caller_id: CallerId,
) -> TicketResponse:
    try:
        ticket = await service.transfer_ticket(ticket_id, caller_id, payload.new_owner_id)
    except TicketingError as exc:
        raise _to_http_error(exc) from exc
    return _to_response(ticket)
