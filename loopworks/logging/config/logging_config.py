import contextvars
from enum import Enum
from typing import List, Literal

from loopworks.logging.models import LogLevel, LogLevelName

LogOutput = Literal["stdout", "stderr"]


class StreamType(Enum):
    STDOUT = "STDOUT"
    STDERR = "STDERR"


_global_log_level = contextvars.ContextVar("_global_log_level", default=LogLevel.INFO)
_global_disabled_loggers = contextvars.ContextVar(
    "_global_disabled_loggers", default=[]
)
_global_log_output_type = contextvars.ContextVar(
    "_global_log_output_type", default=StreamType.STDOUT
)
_global_logging_directory = contextvars.ContextVar(
    "_global_logging_directory", default=None
)


class LoggingConfig:
    def __init__(self) -> None:
        self._log_level: contextvars.ContextVar[LogLevel] = _global_log_level
        self._log_output_type: contextvars.ContextVar[StreamType] = (
            _global_log_output_type
        )
        self._log_directory: contextvars.ContextVar[str | None] = (
            _global_logging_directory
        )
        self._disabled_loggers: contextvars.ContextVar[List[str]] = (
            _global_disabled_loggers
        )

    def update(
        self,
        log_directory: str | None = None,
        log_level: LogLevelName | None = None,
        log_output: LogOutput | None = None,
    ):
        if log_directory:
            self._log_directory.set(log_directory)

        if log_level:
            self._log_level.set(LogLevel.to_level(log_level))

        if log_output:
            self._log_output_type.set(
                StreamType.STDOUT if log_output == "stdout" else StreamType.STDERR
            )

    def disable(self, logger_name: str):
        disabled = list(self._disabled_loggers.get())
        if logger_name not in disabled:
            disabled.append(logger_name)
            self._disabled_loggers.set(disabled)

    def enable(self, logger_name: str):
        self._disabled_loggers.set(
            [name for name in self._disabled_loggers.get() if name != logger_name]
        )

    def enabled(self, logger_name: str, log_level: LogLevel) -> bool:
        return (
            logger_name not in self._disabled_loggers.get()
            and log_level.rank >= self._log_level.get().rank
        )

    @property
    def level(self):
        return self._log_level.get()

    @property
    def output(self):
        return self._log_output_type.get()

    @property
    def directory(self):
        return self._log_directory.get()
