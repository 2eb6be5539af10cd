from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from slack_sdk.errors import SlackApiError

from slack_gateway.adapters.http.pages import index_page, installed_page, oauth_failed_page
from slack_gateway.application.commands import (
    DeleteMessageCommand,
    HistoryQuery,
    ScheduleMessageCommand,
    SendMessageCommand,
    UpdateMessageCommand,
)
from slack_gateway.application.services import (
    InstallationService,
    MessagingService,
    MissingCodeError,
    OAuthExchangeError,
    UnexpectedOAuthResponseError,
)

logger = logging.getLogger(__name__)

pages_router = APIRouter(tags=["pages"])
oauth_router = APIRouter(prefix="/slack", tags=["oauth"])
api_router = APIRouter(prefix="/api", tags=["api"])


def get_installation(request: Request) -> InstallationService:
    return request.app.state.installation


def get_messaging(request: Request) -> MessagingService:
    return request.app.state.messaging


async def read_body(request: Request) -> Dict[str, Any]:
    """Read a JSON or URL-encoded form body; anything but an object reads as ``{}``."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/x-www-form-urlencoded"):
        form = await request.form()
        return dict(form)

    body = await request.body()
    if not body:
        return {}
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.warning("Ignoring unparseable body on %s: %s", request.url.path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def _error_response(exc: Exception) -> JSONResponse:
    """Map a failed forward to the ``{error, detail}`` envelope."""
    detail = None
    if isinstance(exc, SlackApiError):
        detail = getattr(exc.response, "data", None)
        logger.warning("Slack API call failed: %s", exc)
    else:
        logger.error("Slack API forward failed: %s", exc, exc_info=True)
    return JSONResponse(status_code=500, content={"error": str(exc), "detail": detail})


@pages_router.get("/", response_class=HTMLResponse)
def index(installation: InstallationService = Depends(get_installation)):
    return HTMLResponse(index_page(installation.authorize_url()))


@oauth_router.get("/install")
def install(installation: InstallationService = Depends(get_installation)):
    return RedirectResponse(installation.authorize_url(), status_code=302)


@oauth_router.get("/oauth/callback", response_class=HTMLResponse)
def oauth_callback(
    request: Request,
    code: Optional[str] = Query(None),
    installation: InstallationService = Depends(get_installation),
):
    try:
        record = installation.complete_install(code)
    except MissingCodeError as exc:
        logger.warning("oauth callback without code: %s", request.url.query or "no query")
        return HTMLResponse(str(exc), status_code=400)
    except OAuthExchangeError as exc:
        return HTMLResponse(oauth_failed_page(exc.payload), status_code=500)
    except (ConnectionError, UnexpectedOAuthResponseError) as exc:
        logger.error("oauth callback error: %s", exc)
        return HTMLResponse("OAuth exchange failed. Check server logs.", status_code=500)
    return HTMLResponse(installed_page(record))


@api_router.get("/channels")
def list_channels(messaging: MessagingService = Depends(get_messaging)):
    try:
        return messaging.list_channels()
    except Exception as exc:  # noqa: BLE001
        return _error_response(exc)


@api_router.post("/send-message")
def send_message(
    payload: Dict[str, Any] = Depends(read_body),
    messaging: MessagingService = Depends(get_messaging),
):
    try:
        return messaging.send_message(SendMessageCommand(**payload))
    except Exception as exc:  # noqa: BLE001
        return _error_response(exc)


@api_router.post("/schedule-message")
def schedule_message(
    payload: Dict[str, Any] = Depends(read_body),
    messaging: MessagingService = Depends(get_messaging),
):
    try:
        return messaging.schedule_message(ScheduleMessageCommand(**payload))
    except Exception as exc:  # noqa: BLE001
        return _error_response(exc)


@api_router.get("/scheduled")
def list_scheduled(messaging: MessagingService = Depends(get_messaging)):
    try:
        return messaging.list_scheduled_messages()
    except Exception as exc:  # noqa: BLE001
        return _error_response(exc)


@api_router.get("/messages")
def message_history(
    channel: Optional[str] = Query(None),
    limit: str = Query("50"),
    messaging: MessagingService = Depends(get_messaging),
):
    try:
        return messaging.message_history(HistoryQuery(channel=channel, limit=limit))
    except Exception as exc:  # noqa: BLE001
        return _error_response(exc)


@api_router.post("/update-message")
def update_message(
    payload: Dict[str, Any] = Depends(read_body),
    messaging: MessagingService = Depends(get_messaging),
):
    try:
        return messaging.update_message(UpdateMessageCommand(**payload))
    except Exception as exc:  # noqa: BLE001
        return _error_response(exc)


@api_router.post("/delete-message")
def delete_message(
    payload: Dict[str, Any] = Depends(read_body),
    messaging: MessagingService = Depends(get_messaging),
):
    try:
        return messaging.delete_message(DeleteMessageCommand(**payload))
    except Exception as exc:  # noqa: BLE001
        return _error_response(exc)
