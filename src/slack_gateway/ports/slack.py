from __future__ import annotations

from typing import Any, Dict, Protocol

from slack_sdk import WebClient


class SlackClientFactory(Protocol):
    """Builds an authenticated Slack Web API client for a bot token."""

    def __call__(self, token: str) -> WebClient:
        ...


class OAuthExchangePort(Protocol):
    """Exchanges an OAuth authorization code for installation credentials."""

    def exchange_code(self, code: str, redirect_uri: str) -> Dict[str, Any]:
        """Return the raw ``oauth.v2.access`` response payload."""
        ...
