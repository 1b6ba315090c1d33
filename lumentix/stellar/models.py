from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class MemoType(str, Enum):
    """Memo encodings reported by Horizon."""

    NONE = "none"
    TEXT = "text"
    ID = "id"
    HASH = "hash"
    RETURN = "return"


@dataclass(slots=True, frozen=True)
class ChainTransaction:
    """Settled Stellar transaction, reduced to the fields ticketing inspects."""

    hash: str
    memo_type: MemoType
    memo: str | int | bytes | None = None

    @property
    def text_memo(self) -> str | None:
        """Return the memo only when it is a non-empty plain-text memo."""

        if self.memo_type is not MemoType.TEXT or not isinstance(self.memo, str):
            return None
        return self.memo or None
