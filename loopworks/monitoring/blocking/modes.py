from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Literal

from pydantic import BaseModel, Field, StrictInt, StrictStr

StoppedBy = Literal["completed", "signal", "timeout"]


class BlockingMode(str, Enum):
    CPU_LOOP = "cpu_loop"
    SYNC_FILE_READ = "sync_file_read"
    ASYNC_FILE_READ = "async_file_read"
    ASYNC_VS_SYNC = "async_vs_sync"
    CHUNKED_LOOP = "chunked_loop"
    INFINITE_LOOP = "infinite_loop"


class BlockingDemoParams(BaseModel):
    """
    Parameters for a blocking demonstration. Fields left as ``None``
    fall back to the ``Env`` defaults for the selected mode.
    """

    iterations: StrictInt | None = Field(default=None, ge=0)
    chunk_size: StrictInt | None = Field(default=None, gt=0)
    async_chunk_size: StrictInt = Field(default=10_000, gt=0)
    timeout: float | None = Field(default=None, gt=0)
    file_path: StrictStr | None = None
    encoding: StrictStr = "utf-8"
    preview_length: StrictInt = Field(default=100, ge=0)


@dataclass(slots=True)
class BlockingDemoResult:
    """
    Outcome of a blocking demonstration. Durations are milliseconds.
    """

    mode: BlockingMode
    duration: float
    result: float | int | None
    iterations: int
    stopped_by: StoppedBy = "completed"
    details: Dict[str, Any] = field(default_factory=dict)
