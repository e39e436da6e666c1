from __future__ import annotations

from enum import Enum
from typing import Literal

LogLevelName = Literal[
    "trace",
    "debug",
    "info",
    "warn",
    "error",
    "critical",
    "fatal",
]


class LogLevel(Enum):
    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"
    FATAL = "FATAL"

    @property
    def rank(self) -> int:
        return _LEVEL_RANKS[self]

    @classmethod
    def to_level(cls, level_name: LogLevelName | str) -> LogLevel:
        level = cls.__members__.get(level_name.upper())
        if level is None:
            raise ValueError(f"Err. - unknown log level - {level_name}")

        return level


_LEVEL_RANKS = {
    LogLevel.TRACE: 0,
    LogLevel.DEBUG: 1,
    LogLevel.INFO: 2,
    LogLevel.WARN: 3,
    LogLevel.ERROR: 4,
    LogLevel.CRITICAL: 5,
    LogLevel.FATAL: 6,
}
