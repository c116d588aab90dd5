"""Leveled logger shared by the analysis components."""

import logging
from enum import IntEnum
from typing import Optional


class LogLevel(IntEnum):
    OFF, ERROR, INFO, DEBUG = -1, 0, 1, 2


_LOGGING_METHODS = {
    LogLevel.ERROR: "error",
    LogLevel.INFO: "info",
    LogLevel.DEBUG: "debug",
}


class AgentLogger:
    """Thin wrapper over :mod:`logging` filtered by a :class:`LogLevel`.

    Components receive an optional logger and call ``logger.log(msg, level=...)``;
    messages above the configured level are dropped before reaching ``logging``.
    """

    def __init__(self, level: LogLevel = LogLevel.INFO, name: str = "aliasflow",
                 log_file: Optional[str] = None):
        self.level = level
        self.logger = logging.getLogger(name)
        if not self.logger.handlers:
            handler = logging.FileHandler(log_file) if log_file else logging.StreamHandler()
            handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
            self.logger.addHandler(handler)
        self.logger.setLevel(logging.DEBUG if level >= LogLevel.DEBUG else logging.INFO)

    def log(self, message, level=LogLevel.INFO):
        if level <= self.level:
            getattr(self.logger, _LOGGING_METHODS.get(level, "info"))(message)
