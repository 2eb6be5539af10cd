"""
FastAPI application factory.

Wires the token store, the OAuth exchange client and the Slack Web API client
factory into the install flow and the ``/api`` forwarding routes. Every
collaborator can be replaced, which is how the tests run without Slack.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slack_sdk import WebClient

from slack_gateway.adapters.http.routes import api_router, oauth_router, pages_router
from slack_gateway.adapters.slack.oauth import SlackOAuthClient
from slack_gateway.application.services import InstallationService, MessagingService, TokenResolver
from slack_gateway.config import GatewayConfig
from slack_gateway.infrastructure.token_store import FileTokenStore
from slack_gateway.ports.slack import OAuthExchangePort, SlackClientFactory
from slack_gateway.ports.token_store import TokenStore

logger = logging.getLogger(__name__)


def create_app(
    config: GatewayConfig,
    store: Optional[TokenStore] = None,
    client_factory: Optional[SlackClientFactory] = None,
    oauth_client: Optional[OAuthExchangePort] = None,
) -> FastAPI:
    """
    Build the gateway application.

    Args:
        config: Immutable process configuration.
        store: Token store; defaults to a JSON file at ``config.tokens_path``.
        client_factory: Builds a Slack ``WebClient`` for a bot token.
        oauth_client: Performs the ``oauth.v2.access`` code exchange.
    """
    store = store or FileTokenStore(Path(config.tokens_path))
    owned_oauth_client: Optional[SlackOAuthClient] = None
    if oauth_client is None:
        owned_oauth_client = SlackOAuthClient(config.client_id, config.client_secret)
        oauth_client = owned_oauth_client
    resolver = TokenResolver(store=store, fallback_token=config.fallback_bot_token)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # Injected clients belong to the caller.
        if owned_oauth_client is not None:
            owned_oauth_client.close()
            logger.info("Closed Slack OAuth client")

    app = FastAPI(title="Slack Gateway", version="0.1.0", lifespan=lifespan)
    app.state.config = config
    app.state.store = store
    app.state.oauth_client = oauth_client
    app.state.installation = InstallationService(config=config, store=store, oauth_port=oauth_client)
    app.state.messaging = MessagingService(resolver=resolver, client_factory=client_factory or WebClient)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning("Rejected request to %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=400,
            content={"error": "Validation error", "detail": jsonable_encoder(exc.errors())},
        )

    app.include_router(pages_router)
    app.include_router(oauth_router)
    app.include_router(api_router)
    return app
