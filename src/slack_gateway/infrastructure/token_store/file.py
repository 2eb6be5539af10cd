from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from slack_gateway.domain.models import TokenRecord
from slack_gateway.ports.token_store import StoreResult, TokenStore

logger = logging.getLogger(__name__)


class FileTokenStore(TokenStore):
    """File-based storage for the installation token record.

    The whole record is written as one JSON document on every save. There is
    no locking and no atomic rename: the last writer wins.
    """

    def __init__(self, storage_path: str | Path) -> None:
        """Initialize file-based token storage.

        Args:
            storage_path: Path to the JSON file holding the token record.
        """
        self.storage_path = Path(storage_path)

    def save(self, record: TokenRecord) -> StoreResult:
        """Overwrite the token file with ``record``."""
        try:
            self.storage_path.write_text(json.dumps(record.to_dict(), indent=2))
        except OSError as e:
            logger.error(f"Could not write token storage to {self.storage_path}: {e}")
            return StoreResult(record=record, error=e)
        return StoreResult(record=record)

    def load(self) -> StoreResult:
        """Load the token record from disk, falling back to an empty record."""
        try:
            with open(self.storage_path, "r") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise TypeError(f"expected a JSON object, got {type(data).__name__}")
            return StoreResult(record=TokenRecord(**data))
        except FileNotFoundError as e:
            logger.debug(f"No token storage at {self.storage_path}")
            return StoreResult(record=TokenRecord.empty(), error=e)
        except (OSError, json.JSONDecodeError, TypeError, ValidationError) as e:
            # Corrupted file counts as "not installed"
            logger.warning(f"Could not load token storage from {self.storage_path}: {e}")
            return StoreResult(record=TokenRecord.empty(), error=e)
