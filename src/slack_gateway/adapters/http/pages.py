from __future__ import annotations

import json
from html import escape

from slack_gateway.domain.models import TokenRecord

API_ENDPOINTS = [
    "GET  /api/channels",
    "POST /api/send-message",
    "POST /api/schedule-message",
    "GET  /api/scheduled",
    "GET  /api/messages?channel=CHANNEL_ID&limit=50",
    "POST /api/update-message",
    "POST /api/delete-message",
]


def index_page(install_url: str) -> str:
    endpoints = "\n".join(f"      <li>{escape(endpoint)}</li>" for endpoint in API_ENDPOINTS)
    return (
        "<h2>Slack Gateway</h2>\n"
        f'<p><a href="{escape(install_url)}">Install to Slack (OAuth)</a></p>\n'
        "<p>Use the API endpoints (curl / Postman) once installed.</p>\n"
        "<hr/>\n"
        "<p>Endpoints:</p>\n"
        "<ul>\n"
        f"{endpoints}\n"
        "</ul>\n"
    )


def installed_page(record: TokenRecord) -> str:
    stored = json.dumps(record.to_dict(), indent=2)
    return (
        "<p>App installed! Bot token saved. You can now close this window "
        "and use the API endpoints.</p>"
        f"<pre>{escape(stored)}</pre>"
    )


def oauth_failed_page(payload: dict) -> str:
    return escape("OAuth failed: " + json.dumps(payload))
