from __future__ import annotations

import os
from typing import List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, model_validator

DEFAULT_PORT = 3000
DEFAULT_TOKENS_PATH = "tokens.json"
OAUTH_CALLBACK_PATH = "/slack/oauth/callback"

RECOMMENDED_ENV_VARS = [
    "SLACK_CLIENT_ID",
    "SLACK_CLIENT_SECRET",
]


class GatewayConfig(BaseModel):
    """Process-wide settings, read once at startup."""

    model_config = ConfigDict(frozen=True)

    port: int = DEFAULT_PORT
    base_url: str = ""
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    fallback_bot_token: Optional[str] = None
    tokens_path: str = DEFAULT_TOKENS_PATH

    @model_validator(mode="before")
    @classmethod
    def _default_base_url(cls, values):
        if isinstance(values, dict) and not values.get("base_url"):
            port = values.get("port", DEFAULT_PORT)
            values = {**values, "base_url": f"http://localhost:{port}"}
        return values

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GatewayConfig":
        """
        Build the configuration from environment variables.

        - PORT                 (default: 3000)
        - BASE_URL             (default: http://localhost:<PORT>)
        - SLACK_CLIENT_ID
        - SLACK_CLIENT_SECRET
        - SLACK_BOT_TOKEN      fallback when no installation is stored
        """
        env = os.environ if environ is None else environ
        raw_port = _get(env, "PORT")
        try:
            port = int(raw_port) if raw_port else DEFAULT_PORT
        except ValueError:
            raise ValueError(f"PORT must be an integer, got {raw_port!r}") from None
        return cls(
            port=port,
            base_url=_get(env, "BASE_URL") or "",
            client_id=_get(env, "SLACK_CLIENT_ID"),
            client_secret=_get(env, "SLACK_CLIENT_SECRET"),
            fallback_bot_token=_get(env, "SLACK_BOT_TOKEN"),
        )

    @property
    def redirect_uri(self) -> str:
        return f"{self.base_url}{OAUTH_CALLBACK_PATH}"

    def missing_oauth_settings(self) -> List[str]:
        present = {"SLACK_CLIENT_ID": self.client_id, "SLACK_CLIENT_SECRET": self.client_secret}
        return [name for name in RECOMMENDED_ENV_VARS if not present[name]]


def _get(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name)
    return value if value else None
