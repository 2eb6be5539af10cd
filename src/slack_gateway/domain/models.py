from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel


class TokenRecord(BaseModel):
    """Credentials of the single workspace installation."""

    bot_token: Optional[str] = None
    team: Optional[Dict[str, Any]] = None
    authed_user: Optional[Dict[str, Any]] = None

    @classmethod
    def empty(cls) -> "TokenRecord":
        return cls()

    def is_empty(self) -> bool:
        return self.bot_token is None and self.team is None and self.authed_user is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bot_token": self.bot_token,
            "team": self.team,
            "authed_user": self.authed_user,
        }
