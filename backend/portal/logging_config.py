# ─────────────────────────────────────────────────────────────────────────────
# Logging Configuration - structlog over the stdlib logging handler
# ─────────────────────────────────────────────────────────────────────────────


import logging
import sys

import structlog

# Chatty third-party loggers kept at WARNING unless LOG_LEVEL is DEBUG
_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore")


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """Configure structlog and stdlib logging to share one stdout handler.

    structlog loggers (the Logger facade) and plain `logging.getLogger(__name__)`
    loggers (infrastructure modules) both end up in the same ProcessorFormatter,
    so every line carries the timestamp, level, logger name and the request_id
    bound by RequestIDMiddleware.

    JSON lines are meant for log aggregation; the console renderer for local
    development.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    render_chain: list[structlog.types.Processor] = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
    ]
    if json_output:
        render_chain.append(structlog.processors.format_exc_info)
    render_chain.append(renderer)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )

    # foreign_pre_chain runs only for records from stdlib loggers; structlog
    # events already went through shared_processors above. ExtraAdder lifts
    # `extra=` fields (the access log) into the event.
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[*shared_processors, structlog.stdlib.ExtraAdder()],
        processors=render_chain,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper()))

    if log_level.upper() != "DEBUG":
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
