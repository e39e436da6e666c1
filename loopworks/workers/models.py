from enum import Enum
from typing import Any, Dict

import msgspec

from .requests import Request


class PoolStatus(Enum):
    INITIALIZING = "INITIALIZING"
    ACCEPTING = "ACCEPTING"
    DRAINING = "DRAINING"
    TERMINATED = "TERMINATED"


class WorkerStatus(Enum):
    IDLE = "IDLE"
    BUSY = "BUSY"


class Task(msgspec.Struct, frozen=True):
    id: int
    payload: Request


class TaskResult(msgspec.Struct):
    id: int
    value: Any
    duration: float


class PoolStats(msgspec.Struct):
    pool_size: int
    unit_type: str
    status: str
    tasks_processed: int
    total_duration: float
    average_duration: float
    worker_tasks: Dict[int, int]
