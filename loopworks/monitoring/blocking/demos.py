"""
Demonstrations of operations that hold, or cooperatively release, the
event loop. Run one alongside a ``LagMonitor`` to see the effect on lag.
"""

import asyncio
import math
import time
from typing import Any, Dict

from pydantic import ValidationError

from loopworks.env import Env
from loopworks.errors import ConfigurationError
from loopworks.logging import Logger
from loopworks.logging.loopworks_logging_models import (
    BlockingDemoDebug,
    BlockingDemoInfo,
)

from .modes import BlockingDemoParams, BlockingDemoResult, BlockingMode

ASYNC_VS_SYNC_ITERATIONS = 1_000_000


def _elapsed(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def _sum_sqrt(start: int, end: int) -> float:
    result = 0.0
    for idx in range(start, end):
        result += math.sqrt(idx)

    return result


def _read_file(path: str, encoding: str) -> str:
    with open(path, encoding=encoding) as source:
        return source.read()


def _file_details(data: str, preview_length: int) -> Dict[str, Any]:
    return {
        "size_bytes": len(data.encode()),
        "characters": len(data),
        "preview": data[:preview_length],
    }


def _to_params(
    params: BlockingDemoParams | Dict[str, Any] | None,
) -> BlockingDemoParams:
    if params is None:
        return BlockingDemoParams()

    if isinstance(params, BlockingDemoParams):
        return params

    try:
        return BlockingDemoParams(**params)

    except ValidationError as err:
        raise ConfigurationError(
            f"Err. - Invalid blocking demo parameters - {err}"
        ) from err


def cpu_loop(params: BlockingDemoParams, env: Env) -> BlockingDemoResult:
    iterations = params.iterations
    if iterations is None:
        iterations = env.LOOPWORKS_CPU_LOOP_ITERATIONS

    start = time.perf_counter()
    result = _sum_sqrt(0, iterations)

    return BlockingDemoResult(
        mode=BlockingMode.CPU_LOOP,
        duration=_elapsed(start),
        result=result,
        iterations=iterations,
    )


def sync_file_read(params: BlockingDemoParams) -> BlockingDemoResult:
    start = time.perf_counter()
    data = _read_file(params.file_path, params.encoding)

    return BlockingDemoResult(
        mode=BlockingMode.SYNC_FILE_READ,
        duration=_elapsed(start),
        result=len(data),
        iterations=1,
        details=_file_details(data, params.preview_length),
    )


async def async_file_read(params: BlockingDemoParams) -> BlockingDemoResult:
    loop = asyncio.get_running_loop()

    start = time.perf_counter()
    data = await loop.run_in_executor(
        None,
        _read_file,
        params.file_path,
        params.encoding,
    )

    return BlockingDemoResult(
        mode=BlockingMode.ASYNC_FILE_READ,
        duration=_elapsed(start),
        result=len(data),
        iterations=1,
        details=_file_details(data, params.preview_length),
    )


async def async_vs_sync(params: BlockingDemoParams) -> BlockingDemoResult:
    iterations = params.iterations
    if iterations is None:
        iterations = ASYNC_VS_SYNC_ITERATIONS

    chunk_size = params.async_chunk_size

    sync_start = time.perf_counter()
    sync_result = 0
    for idx in range(iterations):
        sync_result += idx

    sync_duration = _elapsed(sync_start)

    async_start = time.perf_counter()
    async_result = 0
    for chunk_start in range(0, iterations, chunk_size):
        await asyncio.sleep(0)

        for idx in range(chunk_start, min(chunk_start + chunk_size, iterations)):
            async_result += idx

    async_duration = _elapsed(async_start)

    return BlockingDemoResult(
        mode=BlockingMode.ASYNC_VS_SYNC,
        duration=sync_duration + async_duration,
        result=sync_result,
        iterations=iterations,
        details={
            "sync_duration": sync_duration,
            "async_duration": async_duration,
            "slowdown": async_duration / sync_duration if sync_duration > 0 else None,
            "chunk_size": chunk_size,
            "async_result": async_result,
            "results_match": sync_result == async_result,
        },
    )


async def chunked_loop(params: BlockingDemoParams, env: Env) -> BlockingDemoResult:
    iterations = params.iterations
    if iterations is None:
        iterations = env.LOOPWORKS_CPU_LOOP_ITERATIONS

    chunk_size = params.chunk_size
    if chunk_size is None:
        chunk_size = env.LOOPWORKS_BLOCKING_CHUNK_SIZE

    start = time.perf_counter()
    result = 0.0
    chunks = 0

    for chunk_start in range(0, iterations, chunk_size):
        result += _sum_sqrt(chunk_start, min(chunk_start + chunk_size, iterations))
        chunks += 1

        await asyncio.sleep(0)

    return BlockingDemoResult(
        mode=BlockingMode.CHUNKED_LOOP,
        duration=_elapsed(start),
        result=result,
        iterations=iterations,
        details={
            "chunks": chunks,
            "chunk_size": chunk_size,
        },
    )


async def infinite_loop(
    params: BlockingDemoParams,
    env: Env,
    stop_signal: asyncio.Event | None = None,
) -> BlockingDemoResult:
    chunk_size = params.chunk_size
    if chunk_size is None:
        chunk_size = env.LOOPWORKS_BLOCKING_CHUNK_SIZE

    timeout = params.timeout
    if timeout is None:
        timeout = env.blocking_timeout

    if stop_signal is None:
        stop_signal = asyncio.Event()

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    start = time.perf_counter()
    result = 0.0
    iterations = 0
    chunks = 0

    while True:
        if stop_signal.is_set():
            stopped_by = "signal"
            break

        if loop.time() >= deadline:
            stopped_by = "timeout"
            break

        result += _sum_sqrt(0, chunk_size)
        iterations += chunk_size
        chunks += 1

        await asyncio.sleep(0)

    return BlockingDemoResult(
        mode=BlockingMode.INFINITE_LOOP,
        duration=_elapsed(start),
        result=result,
        iterations=iterations,
        stopped_by=stopped_by,
        details={
            "chunks": chunks,
            "chunk_size": chunk_size,
            "timeout": timeout,
        },
    )


async def run_blocking_demo(
    mode: BlockingMode | str,
    params: BlockingDemoParams | Dict[str, Any] | None = None,
    stop_signal: asyncio.Event | None = None,
    env: Env | None = None,
) -> BlockingDemoResult:
    try:
        mode = BlockingMode(mode)

    except ValueError as err:
        raise ConfigurationError(
            f"Err. - Unknown blocking demo mode - {mode}"
        ) from err

    params = _to_params(params)

    if env is None:
        env = Env()

    if (
        mode in (BlockingMode.SYNC_FILE_READ, BlockingMode.ASYNC_FILE_READ)
        and params.file_path is None
    ):
        raise ConfigurationError(
            f"Err. - Blocking demo mode {mode.value} requires a file path"
        )

    logger = Logger()
    async with logger.context(name="blocking_demo") as ctx:
        await ctx.log(
            BlockingDemoDebug(
                message=f"Running blocking demo - {mode.value}",
                mode=mode.value,
            )
        )

        match mode:
            case BlockingMode.CPU_LOOP:
                result = cpu_loop(params, env)

            case BlockingMode.SYNC_FILE_READ:
                result = sync_file_read(params)

            case BlockingMode.ASYNC_FILE_READ:
                result = await async_file_read(params)

            case BlockingMode.ASYNC_VS_SYNC:
                result = await async_vs_sync(params)

            case BlockingMode.CHUNKED_LOOP:
                result = await chunked_loop(params, env)

            case BlockingMode.INFINITE_LOOP:
                result = await infinite_loop(
                    params,
                    env,
                    stop_signal=stop_signal,
                )

        await ctx.log(
            BlockingDemoInfo(
                message=f"Blocking demo {mode.value} finished in {result.duration:.2f}ms",
                mode=mode.value,
                duration=result.duration,
                iterations=result.iterations,
            )
        )

    return result
