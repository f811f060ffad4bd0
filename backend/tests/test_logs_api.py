"""Client log ingestion: POST /api/logs/client."""

from unittest.mock import MagicMock

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from portal.config import Settings
from portal.logger import ForwardingSink, LoggerFactory
from portal.main import create_app


class RecordingSink:
    def __init__(self):
        self.entries = []

    def emit(self, level, message, bindings, context):
        self.entries.append((level, message, dict(bindings), dict(context)))


class InlineExecutor:
    def submit(self, fn, *args, **kwargs):
        fn(*args, **kwargs)

    def shutdown(self, wait=True):
        pass


@pytest.fixture
def sink(app):
    recording = RecordingSink()
    app.state.logger_factory = LoggerFactory(recording, service="portal-test")
    return recording


class TestClientLogs:

    @pytest.mark.asyncio
    async def test_entry_is_reemitted(self, test_client, sink):
        response = await test_client.post(
            "/api/logs/client",
            json={
                "level": "error",
                "message": "Checkout button crashed",
                "context": {"component": "Checkout", "ip": "spoofed"},
                "clientInfo": {
                    "userAgent": "Mozilla/5.0",
                    "url": "https://portal.example.com/checkout",
                    "logContext": "browser",
                },
                "timestamp": "2024-01-01T00:00:00Z",
            },
            headers={"X-Forwarded-For": "203.0.113.9"},
        )

        assert response.status_code == 200
        assert response.json()["data"] == {"received": True}

        level, message, bindings, context = sink.entries[0]
        assert level == "error"
        assert message == "[CLIENT] Checkout button crashed"
        assert bindings["context"] == "client/browser"
        assert bindings["user_id"] == "anonymous"
        assert context["component"] == "Checkout"
        assert context["ip"] == "203.0.113.9"
        assert context["user_agent"] == "Mozilla/5.0"
        assert context["client_timestamp"] == "2024-01-01T00:00:00Z"

    @pytest.mark.asyncio
    async def test_session_user_is_bound(self, test_client, sink, regular_user, auth_headers):
        await test_client.post(
            "/api/logs/client",
            json={"level": "info", "message": "hello"},
            headers=auth_headers(regular_user),
        )
        _, _, bindings, _ = sink.entries[0]
        assert bindings["user_id"] == str(regular_user.id)
        assert bindings["user_email"] == "reader@example.com"
        assert bindings["context"] == "client/client"

    @pytest.mark.asyncio
    async def test_invalid_level(self, test_client, sink):
        response = await test_client.post(
            "/api/logs/client", json={"level": "verbose", "message": "hi"}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"
        assert sink.entries == []

    @pytest.mark.asyncio
    async def test_missing_message(self, test_client, sink):
        response = await test_client.post("/api/logs/client", json={"level": "info"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_rate_limited_per_ip(self, tmp_path, db_tables):
        app = create_app(Settings(storage_root=str(tmp_path / "s"), rate_limit_client_logs=1))
        app.state.logger_factory = LoggerFactory(RecordingSink())
        payload = {"level": "warn", "message": "slow render"}
        headers = {"X-Forwarded-For": "198.51.100.7"}

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            first = await client.post("/api/logs/client", json=payload, headers=headers)
            second = await client.post("/api/logs/client", json=payload, headers=headers)
            other_ip = await client.post(
                "/api/logs/client", json=payload, headers={"X-Forwarded-For": "198.51.100.8"}
            )

        assert first.status_code == 200
        assert second.status_code == 429
        assert other_ip.status_code == 200


class TestIngestionWithForwardingSink:

    @pytest.mark.asyncio
    async def test_ingested_errors_are_not_forwarded_again(self, app, test_client, test_settings):
        console = RecordingSink()
        client = MagicMock(spec=httpx.Client)
        app.state.logger_factory = LoggerFactory(
            ForwardingSink(
                test_settings.log_ingest_url,
                console=console,
                client=client,
                executor=InlineExecutor(),
            )
        )

        response = await test_client.post(
            "/api/logs/client", json={"level": "error", "message": "boom"}
        )

        assert response.status_code == 200
        client.post.assert_not_called()
        assert [(level, message) for level, message, _, _ in console.entries] == [
            ("error", "[CLIENT] boom")
        ]
