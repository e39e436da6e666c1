import asyncio
from typing import Any, Dict, Sequence

from loopworks.env import Env, UnitType
from loopworks.errors import ConfigurationError
from loopworks.logging import LoggingConfig
from loopworks.logging.models import LogLevelName
from loopworks.monitoring.blocking import (
    BlockingDemoParams,
    BlockingDemoResult,
    BlockingMode,
)
from loopworks.monitoring.blocking import run_blocking_demo as _run_blocking_demo
from loopworks.monitoring.lag import LagMonitor
from loopworks.reclaim import reclaim_memory
from loopworks.shared.buffer import SharedBuffer
from loopworks.shared.models import ProcessReport, UpdateSummary
from loopworks.shared.operations import Operation
from loopworks.shared.processor import concurrent_update as _concurrent_update
from loopworks.shared.processor import parallel_process as _parallel_process
from loopworks.workers import Task, TaskResult, WorkerPool


def configure_logging(
    env: Env | None = None,
    log_level: LogLevelName | None = None,
    log_directory: str | None = None,
):
    if env is None:
        env = Env()

    try:
        LoggingConfig().update(
            log_directory=log_directory or env.LOOPWORKS_LOGS_DIRECTORY,
            log_level=log_level or env.LOOPWORKS_LOG_LEVEL,
        )

    except ValueError as err:
        raise ConfigurationError(f"Err. - Invalid logging configuration - {err}") from err


async def start_lag_monitor(
    max_duration: float | None = None,
    interval: float | None = None,
    history_size: int | None = None,
    background_activity: bool | None = None,
    env: Env | None = None,
) -> LagMonitor:
    monitor = LagMonitor(
        interval=interval,
        max_duration=max_duration,
        history_size=history_size,
        background_activity=background_activity,
        env=env,
    )

    await monitor.start()

    return monitor


async def run_blocking_demo(
    mode: BlockingMode | str,
    params: BlockingDemoParams | Dict[str, Any] | None = None,
    stop_signal: asyncio.Event | None = None,
    env: Env | None = None,
) -> BlockingDemoResult:
    return await _run_blocking_demo(
        mode,
        params=params,
        stop_signal=stop_signal,
        env=env,
    )


async def initialize_pool(
    size: int | None = None,
    unit_type: UnitType | None = None,
    poll_interval: float | None = None,
    env: Env | None = None,
) -> WorkerPool:
    pool = WorkerPool(
        size=size,
        unit_type=unit_type,
        poll_interval=poll_interval,
        env=env,
    )

    return await pool.initialize()


async def schedule(pool: WorkerPool, tasks: Sequence[Task]) -> list[TaskResult]:
    return await pool.schedule(tasks)


async def cleanup_pool(pool: WorkerPool):
    await pool.cleanup()


async def parallel_process(
    buffer: SharedBuffer,
    worker_count: int,
    operation: Operation | str,
    unit_type: UnitType | None = None,
    env: Env | None = None,
) -> ProcessReport:
    return await _parallel_process(
        buffer,
        worker_count,
        operation,
        unit_type=unit_type,
        env=env,
    )


async def concurrent_update(
    buffer: SharedBuffer,
    worker_count: int,
    updates_each: int,
    seed: int | None = None,
    record_writes: bool = False,
    unit_type: UnitType | None = None,
    env: Env | None = None,
) -> UpdateSummary:
    return await _concurrent_update(
        buffer,
        worker_count,
        updates_each,
        seed=seed,
        record_writes=record_writes,
        unit_type=unit_type,
        env=env,
    )


async def release_buffer(buffer: SharedBuffer, env: Env | None = None):
    buffer.close()
    await reclaim_memory(env)
