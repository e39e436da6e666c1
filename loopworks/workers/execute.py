import math
import random
import time
from typing import Any, Iterable

import cloudpickle
import msgspec

from loopworks.errors import UnknownRequestError
from loopworks.logging import LoggingConfig
from loopworks.logging.models import LogLevelName
from loopworks.shared.buffer import SharedBufferHandle, attach_buffers
from loopworks.shared.operations import process_range, random_update

from .requests import (
    CallableRequest,
    CpuIntensiveRequest,
    DelayedEchoRequest,
    PingRequest,
    ProcessRangeRequest,
    RandomUpdateRequest,
    Request,
    UnitResponse,
    decode_request,
)


def initialize_unit(
    handles: Iterable[SharedBufferHandle],
    log_level: LogLevelName = "info",
):
    LoggingConfig().update(log_level=log_level)
    attach_buffers(handles)


def cpu_intensive(iterations: int, jitter: float = 0) -> float:
    if iterations < 0:
        raise ValueError(
            f"Err. - Iterations must not be negative - got {iterations}"
        )

    result = 0.0
    for idx in range(iterations):
        result += math.sqrt(idx) + math.sin(idx) + math.cos(idx)

        if jitter and idx % 100_000 == 0:
            result += random.random() * jitter

    return result


def execute(request: Request) -> Any:
    match request:
        case PingRequest():
            return True

        case CpuIntensiveRequest(iterations=iterations, jitter=jitter):
            return cpu_intensive(iterations, jitter=jitter)

        case DelayedEchoRequest(delay=delay, value=value):
            time.sleep(delay)
            return value

        case CallableRequest(function=function, arguments=arguments):
            call = cloudpickle.loads(function)
            args, kwargs = cloudpickle.loads(arguments)

            return call(*args, **kwargs)

        case ProcessRangeRequest():
            return process_range(
                request.buffer_id,
                request.start,
                request.end,
                request.operation,
            )

        case RandomUpdateRequest():
            return random_update(
                request.buffer_id,
                request.worker_id,
                request.update_count,
                seed=request.seed,
                record_writes=request.record_writes,
            )

        case _:
            raise UnknownRequestError(
                f"Err. - Execution unit cannot handle request - {type(request).__name__}"
            )


def execute_encoded(data: bytes) -> UnitResponse:
    try:
        request = decode_request(data)

    except (msgspec.ValidationError, msgspec.DecodeError) as err:
        raise UnknownRequestError(
            f"Err. - Execution unit received an unknown request - {err}"
        ) from err

    start = time.perf_counter()
    value = execute(request)

    return UnitResponse(
        value=value,
        duration=(time.perf_counter() - start) * 1000,
    )
