"""
The Logger facade used by routes and services.

    factory = LoggerFactory(StructlogSink(), service="portal-backend")
    log = factory.get_logger("api/users", session)
    log.info("User updated", target_user_id=user_id)
    log.error("Update failed", error=exc)

Every entry carries the service, context, user_id and user_email bindings.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from portal.logger.sinks import ForwardingSink, LogSink, StructlogSink
from portal.security import SessionUser

LOG_LEVELS = ("debug", "info", "warn", "error", "fatal")

DEFAULT_CONTEXT = "app"
ANONYMOUS_USER = "anonymous"


@dataclass(frozen=True)
class LoggerConfig:
    service: Optional[str] = None
    context: Optional[str] = None
    user_id: Optional[str] = None
    user_email: Optional[str] = None


class Logger:
    def __init__(self, sink: LogSink, bindings: Optional[Mapping[str, Any]] = None):
        self._sink = sink
        self._bindings: Dict[str, Any] = dict(bindings or {})

    @property
    def bindings(self) -> Dict[str, Any]:
        return dict(self._bindings)

    def bind(self, **bindings: Any) -> "Logger":
        """Returns a child logger; this logger is left unchanged."""
        return Logger(self._sink, {**self._bindings, **bindings})

    def log(self, level: str, message: str, /, **context: Any) -> None:
        if level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level '{level}'. Must be one of: {', '.join(LOG_LEVELS)}")
        self._sink.emit(level, message, self._bindings, context)

    def debug(self, message: str, /, **context: Any) -> None:
        self.log("debug", message, **context)

    def info(self, message: str, /, **context: Any) -> None:
        self.log("info", message, **context)

    def warn(self, message: str, /, **context: Any) -> None:
        self.log("warn", message, **context)

    def error(self, message: str, /, **context: Any) -> None:
        self.log("error", message, **context)

    def fatal(self, message: str, /, **context: Any) -> None:
        self.log("fatal", message, **context)


class LoggerFactory:
    """Builds Logger instances that share one sink.

    `local_sink` never forwards: entries that arrived through the ingestion
    endpoint are written there, so a forwarding deployment cannot post them
    back to itself.
    """

    def __init__(self, sink: LogSink, service: str = "portal-backend"):
        self.sink = sink
        self.service = service
        self.local_sink: LogSink = sink.console if isinstance(sink, ForwardingSink) else sink

    @classmethod
    def from_settings(cls, settings) -> "LoggerFactory":
        if settings.log_sink == "forwarding":
            sink: LogSink = ForwardingSink(settings.log_ingest_url)
        else:
            sink = StructlogSink(settings.service_name)
        return cls(sink, service=settings.service_name)

    def create_logger(self, config: Optional[LoggerConfig] = None, local: bool = False) -> Logger:
        config = config or LoggerConfig()
        return Logger(
            self.local_sink if local else self.sink,
            {
                "service": config.service or self.service,
                "context": config.context or DEFAULT_CONTEXT,
                "user_id": config.user_id or ANONYMOUS_USER,
                "user_email": config.user_email,
            },
        )

    def get_logger(self, context: Optional[str] = None, session: Optional[SessionUser] = None) -> Logger:
        return self.create_logger(_config_for(context, session))

    def server_logger(self, context: Optional[str] = None, session: Optional[SessionUser] = None) -> Logger:
        """Like get_logger(), but always writes to the local sink."""
        return self.create_logger(_config_for(context, session), local=True)

    def close(self) -> None:
        close = getattr(self.sink, "close", None)
        if close is not None:
            close()


def _config_for(context: Optional[str], session: Optional[SessionUser]) -> LoggerConfig:
    return LoggerConfig(
        context=context,
        user_id=session.user_id if session else None,
        user_email=session.email if session else None,
    )
