from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from slack_gateway.ports.slack import OAuthExchangePort

logger = logging.getLogger(__name__)

SLACK_API_BASE_URL = "https://slack.com/api"


class SlackOAuthClient(OAuthExchangePort):
    """HTTP client for Slack's ``oauth.v2.access`` endpoint."""

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        base_url: str = SLACK_API_BASE_URL,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)
        logger.info(f"Initialized SlackOAuthClient with base_url={base_url}")

    def exchange_code(self, code: str, redirect_uri: str) -> Dict[str, Any]:
        # Credentials travel as query parameters with an empty body, like Slack's own examples.
        try:
            response = self.client.post(
                "/oauth.v2.access",
                params={
                    "client_id": self.client_id or "",
                    "client_secret": self.client_secret or "",
                    "code": code,
                    "redirect_uri": redirect_uri,
                },
            )
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            logger.error("Timeout calling oauth.v2.access")
            raise ConnectionError("Timeout calling Slack oauth.v2.access") from e
        except httpx.ConnectError as e:
            logger.error("Failed to connect to Slack oauth.v2.access")
            raise ConnectionError("Failed to connect to Slack oauth.v2.access") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"Slack oauth.v2.access returned error status {e.response.status_code}: {e.response.text}")
            raise ConnectionError(f"Slack OAuth error: {e.response.status_code}") from e
        except ValueError as e:
            logger.error(f"Slack oauth.v2.access returned a non-JSON body: {e}")
            raise ConnectionError("Slack oauth.v2.access returned a non-JSON body") from e
        except httpx.HTTPError as e:
            logger.error(f"Unexpected transport error calling oauth.v2.access: {type(e).__name__}")
            raise ConnectionError("Unexpected transport error calling Slack oauth.v2.access") from e

    def close(self) -> None:
        self.client.close()
