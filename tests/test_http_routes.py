import logging

import pytest
from fastapi.testclient import TestClient

from fakes import FakeOAuthExchange, FakeSlackClient, RecordingClientFactory, slack_error
from slack_gateway.adapters.http.app import create_app
from slack_gateway.config import GatewayConfig
from slack_gateway.domain.models import TokenRecord
from slack_gateway.infrastructure.token_store import FileTokenStore, InMemoryTokenStore

CONFIG = GatewayConfig(
    port=3000,
    base_url="https://gateway.example.com",
    client_id="123.456",
    client_secret="shh",
)

API_CALLS = [
    ("get", "/api/channels", {}),
    ("post", "/api/send-message", {"json": {"channel": "C1", "text": "hi"}}),
    ("post", "/api/schedule-message", {"json": {"channel": "C1", "text": "later", "post_at": 1700000000}}),
    ("get", "/api/scheduled", {}),
    ("get", "/api/messages", {"params": {"channel": "C1"}}),
    ("post", "/api/update-message", {"json": {"channel": "C1", "ts": "1593473566.000200", "text": "edited"}}),
    ("post", "/api/delete-message", {"json": {"channel": "C1", "ts": "1593473566.000200"}}),
]


def _gateway(store=None, slack=None, exchange=None, raise_server_exceptions=True):
    slack = slack or FakeSlackClient()
    factory = RecordingClientFactory(slack)
    exchange = exchange or FakeOAuthExchange()
    app = create_app(
        CONFIG,
        store=store if store is not None else InMemoryTokenStore(TokenRecord(bot_token="xoxb-stored")),
        client_factory=factory,
        oauth_client=exchange,
    )
    return TestClient(app, raise_server_exceptions=raise_server_exceptions), factory, exchange


def test_index_page_links_install_and_lists_endpoints():
    client, _, _ = _gateway()

    response = client.get("/")

    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]
    assert "https://slack.com/oauth/v2/authorize?client_id=123.456" in response.text
    for path in ["/api/channels", "/api/send-message", "/api/scheduled", "/api/delete-message"]:
        assert path in response.text


def test_install_redirects_to_slack_authorize():
    client, _, _ = _gateway()

    response = client.get("/slack/install", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"].startswith("https://slack.com/oauth/v2/authorize?")
    assert "redirect_uri=https%3A%2F%2Fgateway.example.com%2Fslack%2Foauth%2Fcallback" in response.headers["location"]


def test_callback_without_code_is_rejected_without_exchange():
    store = InMemoryTokenStore()
    client, _, exchange = _gateway(store=store)

    response = client.get("/slack/oauth/callback")

    assert response.status_code == 400
    assert "Missing code" in response.text
    assert exchange.calls == []
    assert store.saves == 0


def test_callback_persists_installation_and_echoes_record():
    store = InMemoryTokenStore()
    exchange = FakeOAuthExchange(payload={"ok": True, "access_token": "xoxb-1", "team": {"id": "T1", "name": "Acme"}})
    client, _, _ = _gateway(store=store, exchange=exchange)

    response = client.get("/slack/oauth/callback", params={"code": "abc"})

    assert response.status_code == 200
    assert "App installed!" in response.text
    assert "xoxb-1" in response.text
    assert store.load().record == TokenRecord(bot_token="xoxb-1", team={"id": "T1", "name": "Acme"}, authed_user=None)
    assert exchange.calls == [("abc", "https://gateway.example.com/slack/oauth/callback")]


def test_callback_stores_nested_bot_token():
    store = InMemoryTokenStore()
    exchange = FakeOAuthExchange(payload={"ok": True, "bot": {"bot_access_token": "xoxb-2"}, "team": {"id": "T2"}})
    client, _, _ = _gateway(store=store, exchange=exchange)

    client.get("/slack/oauth/callback", params={"code": "abc"})

    assert store.load().record.bot_token == "xoxb-2"


def test_callback_rejected_exchange_reports_payload_and_keeps_store():
    previous = TokenRecord(bot_token="xoxb-old")
    store = InMemoryTokenStore(previous)
    exchange = FakeOAuthExchange(payload={"ok": False, "error": "invalid_code"})
    client, _, _ = _gateway(store=store, exchange=exchange)

    response = client.get("/slack/oauth/callback", params={"code": "abc"})

    assert response.status_code == 500
    assert "OAuth failed" in response.text
    assert "invalid_code" in response.text
    assert store.saves == 0
    assert store.load().record == previous


def test_callback_transport_failure_returns_generic_error():
    exchange = FakeOAuthExchange(failure=ConnectionError("Failed to connect to Slack oauth.v2.access"))
    client, _, _ = _gateway(store=InMemoryTokenStore(), exchange=exchange)

    response = client.get("/slack/oauth/callback", params={"code": "abc"})

    assert response.status_code == 500
    assert response.text == "OAuth exchange failed. Check server logs."
    assert "shh" not in response.text


def test_callback_save_failure_is_not_handled():
    exchange = FakeOAuthExchange(payload={"ok": True, "access_token": "xoxb-1"})
    client, _, _ = _gateway(store=InMemoryTokenStore(fail_saves=True), exchange=exchange, raise_server_exceptions=False)

    response = client.get("/slack/oauth/callback", params={"code": "abc"})

    assert response.status_code == 500
    assert "App installed" not in response.text


def test_callback_writes_token_file_used_by_api_routes(tmp_path):
    store = FileTokenStore(tmp_path / "tokens.json")
    exchange = FakeOAuthExchange(payload={"ok": True, "access_token": "xoxb-file", "team": {"id": "T1"}})
    client, factory, _ = _gateway(store=store, exchange=exchange)

    client.get("/slack/oauth/callback", params={"code": "abc"})
    client.get("/api/channels")

    assert factory.tokens == ["xoxb-file"]


@pytest.mark.parametrize("method, path, kwargs", API_CALLS)
def test_api_routes_fail_without_token_and_skip_slack(method, path, kwargs):
    client, factory, _ = _gateway(store=InMemoryTokenStore())

    response = getattr(client, method)(path, **kwargs)

    assert response.status_code == 500
    assert "token not found" in response.json()["error"]
    assert response.json()["detail"] is None
    assert factory.tokens == []
    assert factory.client.calls == []


@pytest.mark.parametrize("method, path, kwargs", API_CALLS)
def test_api_routes_return_slack_payload_unmodified(method, path, kwargs):
    payload = {"ok": True, "channels": [{"id": "C1"}], "response_metadata": {"next_cursor": "abc"}}
    slack = FakeSlackClient(
        responses={
            name: payload
            for name in [
                "conversations.list",
                "chat.postMessage",
                "chat.scheduleMessage",
                "chat.scheduledMessages.list",
                "conversations.history",
                "chat.update",
                "chat.delete",
            ]
        }
    )
    client, factory, _ = _gateway(slack=slack)

    response = getattr(client, method)(path, **kwargs)

    assert response.status_code == 200
    assert response.json() == payload
    assert factory.tokens == ["xoxb-stored"]
    assert len(slack.calls) == 1


@pytest.mark.parametrize("method, path, kwargs", API_CALLS)
def test_api_routes_map_slack_failures_to_error_envelope(method, path, kwargs):
    slack = FakeSlackClient(failure=slack_error("channel_not_found"))
    client, _, _ = _gateway(slack=slack)

    response = getattr(client, method)(path, **kwargs)

    assert response.status_code == 500
    body = response.json()
    assert "channel_not_found" in body["error"]
    assert body["detail"] == {"ok": False, "error": "channel_not_found"}


def test_api_routes_use_fallback_token_when_not_installed():
    slack = FakeSlackClient()
    factory = RecordingClientFactory(slack)
    config = CONFIG.model_copy(update={"fallback_bot_token": "xoxb-env"})
    client = TestClient(create_app(config, store=InMemoryTokenStore(), client_factory=factory, oauth_client=FakeOAuthExchange()))

    assert client.get("/api/scheduled").status_code == 200
    assert factory.tokens == ["xoxb-env"]


def test_list_channels_requests_single_capped_page():
    slack = FakeSlackClient()
    client, _, _ = _gateway(slack=slack)

    client.get("/api/channels")

    assert slack.calls == [("conversations.list", {"limit": 200})]


def test_send_message_passes_fields_through():
    slack = FakeSlackClient()
    client, _, _ = _gateway(slack=slack)

    client.post("/api/send-message", json={"channel": "C1", "text": "  *hello*  ", "extra": "ignored"})

    assert slack.calls == [("chat.postMessage", {"channel": "C1", "text": "  *hello*  "})]


def test_schedule_message_coerces_post_at():
    slack = FakeSlackClient()
    client, _, _ = _gateway(slack=slack)

    client.post("/api/schedule-message", json={"channel": "C1", "text": "later", "post_at": "1672531200"})

    assert slack.calls == [("chat.scheduleMessage", {"channel": "C1", "text": "later", "post_at": 1672531200})]


def test_schedule_message_with_non_numeric_post_at_is_an_error():
    slack = FakeSlackClient()
    client, _, _ = _gateway(slack=slack)

    response = client.post("/api/schedule-message", json={"channel": "C1", "text": "later", "post_at": "tomorrow"})

    assert response.status_code == 500
    assert response.json()["detail"] is None
    assert slack.calls == []


def test_message_history_defaults_limit_and_coerces_it():
    slack = FakeSlackClient()
    client, _, _ = _gateway(slack=slack)

    client.get("/api/messages", params={"channel": "C1"})
    client.get("/api/messages", params={"channel": "C1", "limit": "10"})

    assert slack.calls == [
        ("conversations.history", {"channel": "C1", "limit": 50}),
        ("conversations.history", {"channel": "C1", "limit": 10}),
    ]


def test_update_and_delete_forward_channel_and_ts():
    slack = FakeSlackClient()
    client, _, _ = _gateway(slack=slack)

    client.post("/api/update-message", json={"channel": "C1", "ts": "1.2", "text": "edited"})
    client.post("/api/delete-message", json={"channel": "C1", "ts": "1.2"})

    assert slack.calls == [
        ("chat.update", {"channel": "C1", "ts": "1.2", "text": "edited"}),
        ("chat.delete", {"channel": "C1", "ts": "1.2"}),
    ]


def test_post_without_body_forwards_missing_fields():
    slack = FakeSlackClient()
    client, _, _ = _gateway(slack=slack)

    response = client.post("/api/delete-message")

    assert response.status_code == 200
    assert slack.calls == [("chat.delete", {"channel": None, "ts": None})]


def test_form_encoded_bodies_are_forwarded():
    slack = FakeSlackClient()
    client, _, _ = _gateway(slack=slack)

    sent = client.post("/api/send-message", data={"channel": "C1", "text": "hi"})
    scheduled = client.post("/api/schedule-message", data={"channel": "C1", "text": "later", "post_at": "1672531200"})

    assert sent.status_code == 200
    assert scheduled.status_code == 200
    assert slack.calls == [
        ("chat.postMessage", {"channel": "C1", "text": "hi"}),
        ("chat.scheduleMessage", {"channel": "C1", "text": "later", "post_at": 1672531200}),
    ]


@pytest.mark.parametrize("path", ["/api/send-message", "/api/schedule-message", "/api/update-message", "/api/delete-message"])
@pytest.mark.parametrize(
    "kwargs",
    [
        {"json": [1, 2]},
        {"json": "text"},
        {"content": b"{not json", "headers": {"content-type": "application/json"}},
    ],
)
def test_non_object_bodies_still_report_missing_token(path, kwargs):
    client, factory, _ = _gateway(store=InMemoryTokenStore())

    response = client.post(path, **kwargs)

    assert response.status_code == 500
    assert "token not found" in response.json()["error"]
    assert factory.client.calls == []


def test_non_object_body_forwards_missing_fields():
    slack = FakeSlackClient()
    client, _, _ = _gateway(slack=slack)

    response = client.post("/api/send-message", json=[1, 2])

    assert response.status_code == 200
    assert slack.calls == [("chat.postMessage", {"channel": None, "text": None})]


@pytest.mark.parametrize(
    "payload",
    [
        {"ok": True, "access_token": "xoxb-1", "team": "T1"},
        {"ok": True, "access_token": "xoxb-1", "authed_user": ["U1"]},
        ["ok", True],
    ],
)
def test_callback_malformed_exchange_returns_generic_error(payload):
    store = InMemoryTokenStore()
    client, _, _ = _gateway(store=store, exchange=FakeOAuthExchange(payload=payload))

    response = client.get("/slack/oauth/callback", params={"code": "abc"})

    assert response.status_code == 500
    assert response.text == "OAuth exchange failed. Check server logs."
    assert store.saves == 0


def test_callback_without_code_is_logged(caplog):
    client, _, _ = _gateway()

    with caplog.at_level(logging.WARNING, logger="slack_gateway.adapters.http.routes"):
        client.get("/slack/oauth/callback", params={"error": "access_denied"})

    assert any("without code" in record.getMessage() for record in caplog.records)


def test_shutdown_closes_oauth_client_created_by_gateway():
    app = create_app(CONFIG, store=InMemoryTokenStore(), client_factory=RecordingClientFactory(FakeSlackClient()))

    with TestClient(app):
        assert not app.state.oauth_client.client.is_closed

    assert app.state.oauth_client.client.is_closed


def test_shutdown_leaves_injected_oauth_client_alone():
    exchange = FakeOAuthExchange()
    exchange.close = lambda: pytest.fail("injected client closed by gateway")
    app = create_app(CONFIG, store=InMemoryTokenStore(), client_factory=RecordingClientFactory(FakeSlackClient()), oauth_client=exchange)

    with TestClient(app):
        pass
