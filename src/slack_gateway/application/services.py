from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple
from urllib.parse import urlencode

from pydantic import ValidationError
from slack_sdk import WebClient

from slack_gateway.application.commands import (
    DeleteMessageCommand,
    HistoryQuery,
    ScheduleMessageCommand,
    SendMessageCommand,
    UpdateMessageCommand,
)
from slack_gateway.config import GatewayConfig
from slack_gateway.domain.models import TokenRecord
from slack_gateway.domain.numbers import coerce_number
from slack_gateway.ports.slack import OAuthExchangePort, SlackClientFactory
from slack_gateway.ports.token_store import TokenStore

SLACK_AUTHORIZE_URL = "https://slack.com/oauth/v2/authorize"
BOT_SCOPES = ("chat:write", "channels:read", "channels:history", "chat:write.public")
CHANNEL_PAGE_LIMIT = 200

# Checked in order; oauth.v2.access returns the first, legacy responses the second.
BOT_TOKEN_PATHS: Tuple[Tuple[str, ...], ...] = (
    ("access_token",),
    ("bot", "bot_access_token"),
)


class TokenNotFoundError(Exception):
    pass


class MissingCodeError(Exception):
    pass


class OAuthExchangeError(Exception):
    """Slack answered the code exchange with ``ok: false``."""

    def __init__(self, payload: Mapping[str, Any]) -> None:
        super().__init__(f"OAuth exchange rejected: {payload.get('error', 'unknown_error')}")
        self.payload = dict(payload)


class UnexpectedOAuthResponseError(Exception):
    """The code exchange answered with a body that does not describe an installation."""


def extract_bot_token(
    payload: Mapping[str, Any],
    paths: Iterable[Tuple[str, ...]] = BOT_TOKEN_PATHS,
) -> Optional[str]:
    """Return the first truthy value found along ``paths`` in ``payload``."""
    for path in paths:
        node: Any = payload
        for key in path:
            node = node.get(key) if isinstance(node, Mapping) else None
        if node:
            return node
    return None


class TokenResolver:
    """Picks the bot token for outgoing API calls."""

    def __init__(self, store: TokenStore, fallback_token: Optional[str] = None) -> None:
        self.store = store
        self.fallback_token = fallback_token
        self.logger = logging.getLogger(__name__)

    def resolve(self) -> str:
        # Read on every call; installs may replace the file at any time.
        token = self.store.load().record.bot_token or self.fallback_token
        self.logger.info("Using Slack token: %s", "FOUND" if token else "MISSING")
        if not token:
            raise TokenNotFoundError("Slack bot token not found. Install the app or set SLACK_BOT_TOKEN.")
        return token


class InstallationService:
    """OAuth v2 install flow: authorization redirect and code exchange."""

    def __init__(self, config: GatewayConfig, store: TokenStore, oauth_port: OAuthExchangePort) -> None:
        self.config = config
        self.store = store
        self.oauth_port = oauth_port
        self.logger = logging.getLogger(__name__)

    def authorize_url(self) -> str:
        # No state parameter is sent, so callbacks are not bound to a browser session.
        query = urlencode(
            {
                "client_id": self.config.client_id or "",
                "scope": ",".join(BOT_SCOPES),
                "redirect_uri": self.config.redirect_uri,
            },
            safe=",",
        )
        return f"{SLACK_AUTHORIZE_URL}?{query}"

    def complete_install(self, code: Optional[str]) -> TokenRecord:
        if not code:
            raise MissingCodeError("Missing code parameter.")

        payload = self.oauth_port.exchange_code(code, self.config.redirect_uri)
        if not isinstance(payload, Mapping):
            raise UnexpectedOAuthResponseError(f"expected a JSON object, got {type(payload).__name__}")
        if not payload.get("ok"):
            self.logger.warning("OAuth exchange rejected by Slack: %s", payload.get("error"))
            raise OAuthExchangeError(payload)

        try:
            record = TokenRecord(
                bot_token=extract_bot_token(payload),
                team=payload.get("team"),
                authed_user=payload.get("authed_user"),
            )
        except ValidationError as e:
            # Field names only; the payload carries the token.
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise UnexpectedOAuthResponseError(f"malformed installation fields: {fields}") from None
        self.store.save(record).unwrap()
        team = record.team or {}
        self.logger.info("Installed to workspace %s (%s)", team.get("name"), team.get("id"))
        return record


class MessagingService:
    """Forwards one Slack Web API call per operation and returns its payload."""

    def __init__(self, resolver: TokenResolver, client_factory: SlackClientFactory = WebClient) -> None:
        self.resolver = resolver
        self.client_factory = client_factory

    def list_channels(self) -> Dict[str, Any]:
        client = self._client()
        return _payload(client.conversations_list(limit=CHANNEL_PAGE_LIMIT))

    def send_message(self, command: SendMessageCommand) -> Dict[str, Any]:
        client = self._client()
        return _payload(client.chat_postMessage(channel=command.channel, text=command.text))

    def schedule_message(self, command: ScheduleMessageCommand) -> Dict[str, Any]:
        client = self._client()
        return _payload(
            client.chat_scheduleMessage(
                channel=command.channel,
                text=command.text,
                post_at=coerce_number(command.post_at),
            )
        )

    def list_scheduled_messages(self) -> Dict[str, Any]:
        client = self._client()
        return _payload(client.chat_scheduledMessages_list())

    def message_history(self, query: HistoryQuery) -> Dict[str, Any]:
        client = self._client()
        return _payload(client.conversations_history(channel=query.channel, limit=coerce_number(query.limit)))

    def update_message(self, command: UpdateMessageCommand) -> Dict[str, Any]:
        client = self._client()
        return _payload(client.chat_update(channel=command.channel, ts=command.ts, text=command.text))

    def delete_message(self, command: DeleteMessageCommand) -> Dict[str, Any]:
        client = self._client()
        return _payload(client.chat_delete(channel=command.channel, ts=command.ts))

    def _client(self) -> WebClient:
        return self.client_factory(self.resolver.resolve())


def _payload(response: Any) -> Dict[str, Any]:
    # SlackResponse keeps the parsed body on .data
    return getattr(response, "data", response)
