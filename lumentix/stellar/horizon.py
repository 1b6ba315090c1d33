from __future__ import annotations

import base64
import logging
from typing import Any, Mapping

import httpx

from lumentix.errors import LedgerError, NotFoundError

from .models import ChainTransaction, MemoType

logger = logging.getLogger(__name__)


class HorizonTransactionFetcher:
    """Fetch settled transactions from a Stellar Horizon server."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def get_transaction(self, tx_hash: str) -> ChainTransaction:
        response = await self._client.get(f"/transactions/{tx_hash}")
        if response.status_code == httpx.codes.NOT_FOUND:
            raise NotFoundError(f"Transaction {tx_hash} not found")
        response.raise_for_status()
        try:
            transaction = parse_transaction(response.json())
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Unreadable Horizon resource for transaction %s: %s", tx_hash, exc)
            raise LedgerError(f"Malformed ledger response for transaction {tx_hash}") from exc
        logger.debug("Fetched transaction %s from Horizon", tx_hash)
        return transaction


def parse_transaction(payload: Mapping[str, Any]) -> ChainTransaction:
    """Build a :class:`ChainTransaction` from a Horizon transaction resource."""

    if not isinstance(payload, Mapping):
        raise TypeError(f"Expected a transaction object, got {type(payload).__name__}")
    memo_type = MemoType(payload.get("memo_type") or MemoType.NONE.value)
    raw_memo = payload.get("memo")
    return ChainTransaction(
        hash=str(payload["hash"]),
        memo_type=memo_type,
        memo=_decode_memo(memo_type, raw_memo),
    )


def _decode_memo(memo_type: MemoType, raw: Any) -> str | int | bytes | None:
    if raw is None or memo_type is MemoType.NONE:
        return None
    if memo_type is MemoType.TEXT:
        return str(raw)
    if memo_type is MemoType.ID:
        return int(raw)
    # hash and return memos are 32-byte values, base64 encoded by Horizon
    return base64.b64decode(raw)
