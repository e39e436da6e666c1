import os
from typing import Callable, Dict, Literal, Union

import psutil
from pydantic import BaseModel, StrictBool, StrictFloat, StrictInt, StrictStr

from loopworks.errors import ConfigurationError

from .time_parser import TimeParser

PrimaryType = Union[str, int, float, bytes, bool]

UnitType = Literal["process", "thread"]


def _to_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Env(BaseModel):
    LOOPWORKS_LAG_TICK_INTERVAL: StrictStr | StrictInt | StrictFloat = "1s"
    LOOPWORKS_LAG_MAX_DURATION: StrictStr | StrictInt | StrictFloat = "30s"
    LOOPWORKS_LAG_HISTORY_SIZE: StrictInt = 100
    LOOPWORKS_LAG_BACKGROUND_ACTIVITY: StrictBool = False
    LOOPWORKS_POOL_SIZE: StrictInt = psutil.cpu_count(logical=False) or 1
    LOOPWORKS_POOL_POLL_INTERVAL: StrictStr | StrictInt | StrictFloat = "10ms"
    LOOPWORKS_EXECUTION_UNIT: UnitType = "process"
    LOOPWORKS_BLOCKING_CHUNK_SIZE: StrictInt = 1_000_000
    LOOPWORKS_BLOCKING_TIMEOUT: StrictStr | StrictInt | StrictFloat = "10s"
    LOOPWORKS_CPU_LOOP_ITERATIONS: StrictInt = 20_000_000
    LOOPWORKS_SHARED_LOCK_STRIPES: StrictInt = 64
    LOOPWORKS_EXPOSE_GC: StrictBool = False
    LOOPWORKS_LOG_LEVEL: StrictStr = "info"
    LOOPWORKS_LOGS_DIRECTORY: StrictStr = os.getcwd()

    @classmethod
    def types_map(cls) -> Dict[str, Callable[[str], PrimaryType]]:
        return {
            "LOOPWORKS_LAG_TICK_INTERVAL": str,
            "LOOPWORKS_LAG_MAX_DURATION": str,
            "LOOPWORKS_LAG_HISTORY_SIZE": int,
            "LOOPWORKS_LAG_BACKGROUND_ACTIVITY": _to_bool,
            "LOOPWORKS_POOL_SIZE": int,
            "LOOPWORKS_POOL_POLL_INTERVAL": str,
            "LOOPWORKS_EXECUTION_UNIT": str,
            "LOOPWORKS_BLOCKING_CHUNK_SIZE": int,
            "LOOPWORKS_BLOCKING_TIMEOUT": str,
            "LOOPWORKS_CPU_LOOP_ITERATIONS": int,
            "LOOPWORKS_SHARED_LOCK_STRIPES": int,
            "LOOPWORKS_EXPOSE_GC": _to_bool,
            "LOOPWORKS_LOG_LEVEL": str,
            "LOOPWORKS_LOGS_DIRECTORY": str,
        }

    def _duration(self, name: str) -> float:
        try:
            return TimeParser(getattr(self, name)).time

        except ValueError as err:
            raise ConfigurationError(
                f"Err. - Invalid duration for {name} - {err}"
            ) from err

    @property
    def tick_interval(self) -> float:
        return self._duration("LOOPWORKS_LAG_TICK_INTERVAL")

    @property
    def monitor_max_duration(self) -> float:
        return self._duration("LOOPWORKS_LAG_MAX_DURATION")

    @property
    def pool_poll_interval(self) -> float:
        return self._duration("LOOPWORKS_POOL_POLL_INTERVAL")

    @property
    def blocking_timeout(self) -> float:
        return self._duration("LOOPWORKS_BLOCKING_TIMEOUT")
