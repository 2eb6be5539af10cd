from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from slack_gateway.domain.models import TokenRecord


@dataclass(frozen=True)
class StoreResult:
    """Outcome of a token store operation.

    ``load`` folds failures into an empty record and keeps the error here for
    inspection. ``save`` callers are expected to ``unwrap`` so that write
    failures propagate.
    """

    record: TokenRecord
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> TokenRecord:
        if self.error is not None:
            raise self.error
        return self.record


class TokenStore(Protocol):
    """Storage for the installation's bot token record."""

    def save(self, record: TokenRecord) -> StoreResult:
        """Replace the stored record."""
        ...

    def load(self) -> StoreResult:
        """Read the stored record, or an empty one if nothing usable is stored."""
        ...
