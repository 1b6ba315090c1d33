"""Stellar ledger access used to verify ticket payments."""

from .horizon import HorizonTransactionFetcher
from .models import ChainTransaction, MemoType

__all__ = [
    "ChainTransaction",
    "HorizonTransactionFetcher",
    "MemoType",
]
