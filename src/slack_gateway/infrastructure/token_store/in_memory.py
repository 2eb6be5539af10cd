from __future__ import annotations

from typing import Optional

from slack_gateway.domain.models import TokenRecord
from slack_gateway.ports.token_store import StoreResult, TokenStore


class InMemoryTokenStore(TokenStore):
    """In-memory storage for the installation token record."""

    def __init__(self, record: Optional[TokenRecord] = None, fail_saves: bool = False) -> None:
        self._record = record
        self.fail_saves = fail_saves
        self.saves = 0

    def save(self, record: TokenRecord) -> StoreResult:
        if self.fail_saves:
            return StoreResult(record=record, error=OSError("token storage is read-only"))
        self._record = record.model_copy(deep=True)
        self.saves += 1
        return StoreResult(record=record)

    def load(self) -> StoreResult:
        if self._record is None:
            return StoreResult(record=TokenRecord.empty(), error=LookupError("no token record stored"))
        return StoreResult(record=self._record.model_copy(deep=True))
