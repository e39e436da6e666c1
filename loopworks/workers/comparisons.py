"""
Side-by-side timings of running CPU work on the event loop's thread
versus on execution units.
"""

import time
from typing import List

import msgspec

from loopworks.env import Env, UnitType
from loopworks.errors import ConfigurationError

from .dispatch import dispatch_many, dispatch_single
from .execute import cpu_intensive
from .models import PoolStats, Task
from .pool import WorkerPool
from .requests import CpuIntensiveRequest

RESULT_TOLERANCE = 0.01


class UnitComparison(msgspec.Struct):
    iterations: int
    main_duration: float
    unit_duration: float
    speedup: float
    main_result: float
    unit_result: float
    results_match: bool


class SplitComparison(msgspec.Struct):
    total_iterations: int
    worker_count: int
    iterations_per_worker: int
    worker_results: List[float]
    total_result: float
    split_duration: float
    sequential_duration: float
    speedup: float


class PoolComparison(msgspec.Struct):
    task_count: int
    pool_size: int
    results: List[float]
    sequential_duration: float
    pool_duration: float
    speedup: float
    average_task_duration: float
    results_match: bool
    stats: PoolStats


def _elapsed(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def _speedup(baseline: float, candidate: float) -> float:
    return baseline / candidate if candidate > 0 else 0.0


async def compare_single_unit(
    iterations: int,
    unit_type: UnitType | None = None,
    env: Env | None = None,
) -> UnitComparison:
    if iterations < 0:
        raise ConfigurationError(
            f"Err. - Iterations must not be negative - got {iterations}"
        )

    # Deliberately runs on the loop's thread.
    main_start = time.perf_counter()
    main_result = cpu_intensive(iterations)
    main_duration = _elapsed(main_start)

    unit_start = time.perf_counter()
    response = await dispatch_single(
        CpuIntensiveRequest(iterations=iterations),
        unit_type=unit_type,
        env=env,
    )
    unit_duration = _elapsed(unit_start)

    return UnitComparison(
        iterations=iterations,
        main_duration=main_duration,
        unit_duration=unit_duration,
        speedup=_speedup(main_duration, unit_duration),
        main_result=main_result,
        unit_result=response.value,
        results_match=abs(main_result - response.value) < RESULT_TOLERANCE,
    )


async def run_split(
    total_iterations: int,
    worker_count: int = 4,
    unit_type: UnitType | None = None,
    env: Env | None = None,
) -> SplitComparison:
    if worker_count < 1:
        raise ConfigurationError(
            f"Err. - Worker count must be at least one - got {worker_count}"
        )

    iterations_per_worker = total_iterations // worker_count

    split_start = time.perf_counter()
    responses = await dispatch_many(
        [
            CpuIntensiveRequest(iterations=iterations_per_worker)
            for _ in range(worker_count)
        ],
        unit_type=unit_type,
        env=env,
    )
    split_duration = _elapsed(split_start)

    sequential_start = time.perf_counter()
    cpu_intensive(total_iterations)
    sequential_duration = _elapsed(sequential_start)

    worker_results = [response.value for response in responses]

    return SplitComparison(
        total_iterations=total_iterations,
        worker_count=worker_count,
        iterations_per_worker=iterations_per_worker,
        worker_results=worker_results,
        total_result=sum(worker_results),
        split_duration=split_duration,
        sequential_duration=sequential_duration,
        speedup=_speedup(sequential_duration, split_duration),
    )


async def compare_pool(
    task_count: int = 20,
    pool_size: int = 4,
    base_complexity: int = 1_000_000,
    complexity_step: int = 500_000,
    unit_type: UnitType | None = None,
    env: Env | None = None,
) -> PoolComparison:
    if task_count < 1:
        raise ConfigurationError(
            f"Err. - Task count must be at least one - got {task_count}"
        )

    complexities = [
        base_complexity + task_id * complexity_step for task_id in range(task_count)
    ]

    sequential_start = time.perf_counter()
    sequential_results = [cpu_intensive(complexity) for complexity in complexities]
    sequential_duration = _elapsed(sequential_start)

    async with WorkerPool(
        size=pool_size,
        unit_type=unit_type,
        env=env,
    ) as pool:
        pool_start = time.perf_counter()
        results = await pool.schedule(
            [
                Task(
                    id=task_id,
                    payload=CpuIntensiveRequest(iterations=complexity),
                )
                for task_id, complexity in enumerate(complexities)
            ]
        )
        pool_duration = _elapsed(pool_start)

        stats = pool.stats()

    values = [result.value for result in results]

    return PoolComparison(
        task_count=task_count,
        pool_size=pool_size,
        results=values,
        sequential_duration=sequential_duration,
        pool_duration=pool_duration,
        speedup=_speedup(sequential_duration, pool_duration),
        average_task_duration=pool_duration / task_count,
        results_match=all(
            abs(expected - value) < RESULT_TOLERANCE
            for expected, value in zip(sequential_results, values)
        ),
        stats=stats,
    )
