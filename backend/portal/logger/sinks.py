"""
Log sinks behind the Logger facade.

A sink receives one fully-resolved entry at a time: the level name, the
message, the logger's bindings and the per-call context. Which sink a
process uses is decided once by the composition root (LOG_SINK).
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Protocol

import httpx
import structlog

logger = logging.getLogger(__name__)

# Facade level name -> stdlib/structlog method name
_METHODS = {
    "debug": "debug",
    "info": "info",
    "warn": "warning",
    "error": "error",
    "fatal": "critical",
}


class LogSink(Protocol):
    def emit(
        self,
        level: str,
        message: str,
        bindings: Mapping[str, Any],
        context: Mapping[str, Any],
    ) -> None:
        ...


def normalize_error_fields(context: Mapping[str, Any]) -> Dict[str, Any]:
    """Move an exception passed as `error` to `err`, unless `err` is already set."""
    fields = dict(context)
    if isinstance(fields.get("error"), BaseException) and "err" not in fields:
        fields["err"] = fields.pop("error")
    return fields


class StructlogSink:
    """Structured server-side records through structlog.

    An exception under `err` is rendered as `exc_info`, so tracebacks look the
    same whichever call site logged them.
    """

    def __init__(self, logger_name: str = "portal"):
        self._logger = structlog.get_logger(logger_name)

    def emit(
        self,
        level: str,
        message: str,
        bindings: Mapping[str, Any],
        context: Mapping[str, Any],
    ) -> None:
        fields = {**bindings, **normalize_error_fields(context)}
        # structlog reserves "event" for the message
        if "event" in fields:
            fields["context_event"] = fields.pop("event")
        err = fields.get("err")
        if isinstance(err, BaseException):
            fields["err"] = f"{type(err).__name__}: {err}"
            fields["exc_info"] = err
        getattr(self._logger, _METHODS[level])(message, **fields)


class ForwardingSink:
    """Console output plus remote forwarding of error and fatal entries.

    Forwarding is fire-and-forget: the POST runs on a background thread and
    every failure (network, HTTP status, serialization) is dropped.
    """

    FORWARDED_LEVELS = frozenset({"error", "fatal"})

    def __init__(
        self,
        ingest_url: str,
        console: Optional[LogSink] = None,
        client: Optional[httpx.Client] = None,
        executor: Optional[ThreadPoolExecutor] = None,
        timeout: float = 5.0,
    ):
        self._ingest_url = ingest_url
        self._console = console or StructlogSink()
        self._client = client or httpx.Client(timeout=timeout)
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="log-forwarder"
        )

    @property
    def console(self) -> LogSink:
        return self._console

    def emit(
        self,
        level: str,
        message: str,
        bindings: Mapping[str, Any],
        context: Mapping[str, Any],
    ) -> None:
        self._console.emit(level, message, bindings, context)
        if level not in self.FORWARDED_LEVELS:
            return
        try:
            payload = self._payload(level, message, bindings, context)
            self._executor.submit(self._forward, payload)
        except Exception as e:
            logger.debug("Dropped forwarded log entry: %s", e)

    def _payload(
        self,
        level: str,
        message: str,
        bindings: Mapping[str, Any],
        context: Mapping[str, Any],
    ) -> Dict[str, Any]:
        fields = normalize_error_fields(context)
        for key, value in list(fields.items()):
            if isinstance(value, BaseException):
                fields[key] = {"name": type(value).__name__, "message": str(value)}
        return {
            "level": level,
            "message": message,
            # default=str keeps arbitrary objects from breaking the request body
            "context": json.loads(json.dumps(fields, default=str)),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "clientInfo": {
                "userAgent": "portal-log-forwarder",
                "service": bindings.get("service"),
                "logContext": bindings.get("context"),
            },
        }

    def _forward(self, payload: Dict[str, Any]) -> None:
        try:
            self._client.post(self._ingest_url, json=payload)
        except Exception as e:
            logger.debug("Log forwarding failed: %s", e)

    def close(self) -> None:
        self._executor.shutdown(wait=True)
        self._client.close()
