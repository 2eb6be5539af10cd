from __future__ import annotations

import logging
import os

import uvicorn
from dotenv import load_dotenv

from slack_gateway.adapters.http.app import create_app
from slack_gateway.config import GatewayConfig


def main() -> None:
    """
    Launch the Slack gateway HTTP server.

    Environment variables (a local .env file is honoured):
    - PORT                 (default: 3000)
    - BASE_URL             (default: http://localhost:<PORT>)
    - SLACK_CLIENT_ID      OAuth install flow
    - SLACK_CLIENT_SECRET  OAuth install flow
    - SLACK_BOT_TOKEN      used when no installation is stored
    - LOG_LEVEL            (default: INFO)
    """

    load_dotenv()
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    config = GatewayConfig.from_env()
    missing = config.missing_oauth_settings()
    if missing:
        logging.warning("OAuth install flow will not work, missing: %s", ", ".join(missing))

    app = create_app(config)
    logging.info("Slack gateway running: %s (port %s)", config.base_url, config.port)
    uvicorn.run(app, host="0.0.0.0", port=config.port, log_level="info")


if __name__ == "__main__":
    main()
