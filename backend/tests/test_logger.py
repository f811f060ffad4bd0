"""
Portal Backend - Logger Facade Tests
======================================

What:  Logger bindings, level validation, the structlog sink and the
       forwarding sink.
How:   structlog.testing.capture_logs for server-side records; a MagicMock
       httpx client and an inline executor for forwarding.
"""

from unittest.mock import MagicMock

import httpx
import pytest
from structlog.testing import capture_logs

from portal.config import Settings
from portal.logger import ForwardingSink, Logger, LoggerConfig, LoggerFactory, StructlogSink
from portal.roles import Role
from portal.security import SessionUser


class RecordingSink:
    def __init__(self):
        self.entries = []

    def emit(self, level, message, bindings, context):
        self.entries.append((level, message, dict(bindings), dict(context)))


class InlineExecutor:
    """Runs submitted work immediately so assertions need no waiting."""

    def __init__(self):
        self.shutdown_called = False

    def submit(self, fn, *args, **kwargs):
        fn(*args, **kwargs)

    def shutdown(self, wait=True):
        self.shutdown_called = True


class TestLoggerFacade:

    def setup_method(self):
        self.sink = RecordingSink()
        self.factory = LoggerFactory(self.sink, service="portal-test")

    def test_default_bindings(self):
        self.factory.create_logger().info("hello")
        level, message, bindings, context = self.sink.entries[0]
        assert (level, message, context) == ("info", "hello", {})
        assert bindings == {
            "service": "portal-test",
            "context": "app",
            "user_id": "anonymous",
            "user_email": None,
        }

    def test_config_overrides(self):
        log = self.factory.create_logger(LoggerConfig(service="worker", context="jobs", user_id="7"))
        log.warn("slow")
        _, _, bindings, _ = self.sink.entries[0]
        assert bindings["service"] == "worker"
        assert bindings["context"] == "jobs"
        assert bindings["user_id"] == "7"

    def test_get_logger_binds_session(self):
        session = SessionUser(user_id="u-1", role=Role.ADMIN, email="a@example.com")
        self.factory.get_logger("api/users", session).error("failed", target="x")
        level, _, bindings, context = self.sink.entries[0]
        assert level == "error"
        assert bindings["context"] == "api/users"
        assert bindings["user_email"] == "a@example.com"
        assert context == {"target": "x"}

    def test_bind_returns_child(self):
        parent = self.factory.create_logger()
        child = parent.bind(request_kind="upload")
        child.debug("child")
        assert "request_kind" not in parent.bindings
        assert self.sink.entries[0][2]["request_kind"] == "upload"

    def test_message_and_level_allowed_as_context_keys(self):
        self.factory.create_logger().info("outer", message="inner", level="x")
        assert self.sink.entries[0][3] == {"message": "inner", "level": "x"}

    def test_invalid_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            self.factory.create_logger().log("trace", "nope")

    def test_from_settings_picks_sink(self):
        assert isinstance(LoggerFactory.from_settings(Settings()).sink, StructlogSink)
        factory = LoggerFactory.from_settings(Settings(log_sink="forwarding"))
        try:
            assert isinstance(factory.sink, ForwardingSink)
        finally:
            factory.close()


class TestStructlogSink:

    def test_records_bindings_and_context(self):
        log = Logger(StructlogSink("portal-test"), {"service": "svc", "context": "ctx"})
        with capture_logs() as captured:
            log.warn("disk almost full", free_mb=12)
        entry = captured[0]
        assert entry["event"] == "disk almost full"
        assert entry["log_level"] == "warning"
        assert entry["service"] == "svc"
        assert entry["free_mb"] == 12

    def test_fatal_maps_to_critical(self):
        with capture_logs() as captured:
            Logger(StructlogSink()).fatal("down")
        assert captured[0]["log_level"] == "critical"

    def test_exception_under_error_is_normalized(self):
        exc = ValueError("bad input")
        with capture_logs() as captured:
            Logger(StructlogSink()).error("failed", error=exc)
        entry = captured[0]
        assert entry["err"] == "ValueError: bad input"
        assert entry["exc_info"] is exc
        assert "error" not in entry

    def test_event_key_does_not_clobber_message(self):
        with capture_logs() as captured:
            Logger(StructlogSink()).info("audit", event="login")
        assert captured[0]["event"] == "audit"
        assert captured[0]["context_event"] == "login"


class TestForwardingSink:

    def setup_method(self):
        self.console = RecordingSink()
        self.client = MagicMock(spec=httpx.Client)
        self.executor = InlineExecutor()
        self.sink = ForwardingSink(
            "http://logs.test/api/logs/client",
            console=self.console,
            client=self.client,
            executor=self.executor,
        )
        self.log = Logger(self.sink, {"service": "portal-backend", "context": "jobs"})

    def test_info_stays_local(self):
        self.log.info("ok")
        assert len(self.console.entries) == 1
        self.client.post.assert_not_called()

    def test_error_is_forwarded(self):
        self.log.error("upload failed", error=RuntimeError("disk"), bucket="uploads")

        self.client.post.assert_called_once()
        url = self.client.post.call_args.args[0]
        payload = self.client.post.call_args.kwargs["json"]
        assert url == "http://logs.test/api/logs/client"
        assert payload["level"] == "error"
        assert payload["message"] == "upload failed"
        assert payload["context"] == {
            "err": {"name": "RuntimeError", "message": "disk"},
            "bucket": "uploads",
        }
        assert payload["clientInfo"]["service"] == "portal-backend"
        assert payload["clientInfo"]["logContext"] == "jobs"
        assert "timestamp" in payload

    def test_server_logger_writes_locally(self):
        factory = LoggerFactory(self.sink, service="portal-backend")
        factory.server_logger("client/browser").error("from a browser")

        self.client.post.assert_not_called()
        level, message, bindings, _ = self.console.entries[0]
        assert (level, message) == ("error", "from a browser")
        assert bindings["context"] == "client/browser"

        factory.get_logger("jobs").error("from the server")
        self.client.post.assert_called_once()

    def test_forwarding_failure_is_swallowed(self):
        self.client.post.side_effect = httpx.ConnectError("refused")
        self.log.fatal("crash")
        assert self.console.entries[0][0] == "fatal"

    def test_unserializable_context_is_stringified(self):
        self.log.error("odd", thing=object())
        payload = self.client.post.call_args.kwargs["json"]
        assert isinstance(payload["context"]["thing"], str)

    def test_close_shuts_down(self):
        self.sink.close()
        assert self.executor.shutdown_called
        self.client.close.assert_called_once()
