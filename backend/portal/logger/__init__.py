from portal.logger.facade import (
    LOG_LEVELS,
    Logger,
    LoggerConfig,
    LoggerFactory,
)
from portal.logger.sinks import ForwardingSink, LogSink, StructlogSink

__all__ = [
    "LOG_LEVELS",
    "ForwardingSink",
    "LogSink",
    "Logger",
    "LoggerConfig",
    "LoggerFactory",
    "StructlogSink",
]
