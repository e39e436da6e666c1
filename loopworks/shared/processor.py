"""
Parallel operations over a ``SharedBuffer``.

``parallel_process`` hands each unit a disjoint range and lets it
mutate that range directly. ``concurrent_update`` lets every unit
write anywhere in the buffer, so every write goes through an atomic
store.
"""

import time

from loopworks.env import Env, UnitType
from loopworks.errors import ConfigurationError
from loopworks.logging import Logger
from loopworks.logging.loopworks_logging_models import (
    SharedMemoryDebug,
    SharedMemoryInfo,
)
from loopworks.workers.dispatch import dispatch_many
from loopworks.workers.requests import ProcessRangeRequest, RandomUpdateRequest

from .buffer import SharedBuffer
from .models import ProcessReport, UpdateSummary
from .operations import Operation
from .partition import partition_range


def _validate_worker_count(worker_count: int):
    if worker_count < 1:
        raise ConfigurationError(
            f"Err. - Worker count must be at least one - got {worker_count}"
        )


async def parallel_process(
    buffer: SharedBuffer,
    worker_count: int,
    operation: Operation | str,
    unit_type: UnitType | None = None,
    env: Env | None = None,
) -> ProcessReport:
    _validate_worker_count(worker_count)

    try:
        operation = Operation(operation)

    except ValueError as err:
        raise ConfigurationError(
            f"Err. - Unknown shared buffer operation - {operation}"
        ) from err

    ranges = partition_range(len(buffer), worker_count)

    logger = Logger()
    async with logger.context(name="shared_memory") as ctx:
        await ctx.log(
            SharedMemoryDebug(
                message=f"Processing {len(buffer)} elements across {worker_count} units",
                buffer_length=len(buffer),
                worker_count=worker_count,
                operation=operation.value,
            )
        )

        start = time.perf_counter()
        responses = await dispatch_many(
            [
                ProcessRangeRequest(
                    buffer_id=buffer.buffer_id,
                    start=range_start,
                    end=range_end,
                    operation=operation.value,
                )
                for range_start, range_end in ranges
            ],
            unit_type=unit_type,
            buffers=[buffer],
            env=env,
        )
        duration = (time.perf_counter() - start) * 1000

        await ctx.log(
            SharedMemoryInfo(
                message=f"Processed {len(buffer)} elements in {duration:.2f}ms",
                buffer_length=len(buffer),
                worker_count=worker_count,
                operation=operation.value,
                duration=duration,
            )
        )

    return ProcessReport(
        operation=operation.value,
        worker_count=worker_count,
        buffer_length=len(buffer),
        ranges=[response.value for response in responses],
        duration=duration,
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
    _validate_worker_count(worker_count)

    if updates_each < 0:
        raise ConfigurationError(
            f"Err. - Updates per worker must not be negative - got {updates_each}"
        )

    logger = Logger()
    async with logger.context(name="shared_memory") as ctx:
        await ctx.log(
            SharedMemoryDebug(
                message=f"Running {worker_count * updates_each} atomic updates across {worker_count} units",
                buffer_length=len(buffer),
                worker_count=worker_count,
                operation="store",
            )
        )

        start = time.perf_counter()
        responses = await dispatch_many(
            [
                RandomUpdateRequest(
                    buffer_id=buffer.buffer_id,
                    worker_id=worker_id,
                    update_count=updates_each,
                    seed=None if seed is None else seed + worker_id,
                    record_writes=record_writes,
                )
                for worker_id in range(worker_count)
            ],
            unit_type=unit_type,
            buffers=[buffer],
            env=env,
        )
        duration = (time.perf_counter() - start) * 1000

        reports = [response.value for response in responses]

        await ctx.log(
            SharedMemoryInfo(
                message=f"Completed {worker_count * updates_each} atomic updates in {duration:.2f}ms",
                buffer_length=len(buffer),
                worker_count=worker_count,
                operation="store",
                duration=duration,
            )
        )

    return UpdateSummary(
        worker_count=worker_count,
        updates_each=updates_each,
        total_updates=sum(report.updates for report in reports),
        reports=reports,
        duration=duration,
    )
