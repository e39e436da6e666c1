"""
Worker Pool - fixed-size set of execution units reused across tasks.

The pool owns its workers exclusively. Each worker holds at most one
task at a time, guarded by its ``busy`` flag.

Key responsibilities:
- Starting every execution unit up front, with no partial pool on failure
- Draining a FIFO of tasks onto idle workers
- Placing each result at the index of its task id
- Failing fast on the first task error
- Terminating every unit on cleanup
"""

import asyncio
import functools
from collections import deque
from typing import Dict, Iterable, List, Sequence

from loopworks.env import Env, UnitType
from loopworks.errors import (
    ConfigurationError,
    PoolInitializationError,
    PoolStateError,
    TaskExecutionError,
)
from loopworks.logging import Logger
from loopworks.logging.loopworks_logging_models import (
    PoolDebug,
    PoolError,
    PoolInfo,
    PoolTrace,
)
from loopworks.reclaim import reclaim_memory
from loopworks.shared.buffer import SharedBuffer

from .models import PoolStats, PoolStatus, Task, TaskResult
from .pool_worker import PoolWorker
from .unit import ExecutionUnit


class WorkerPool:
    """
    Schedules batches of tasks across a fixed set of execution units.

    Use as an async context manager so the units are always terminated:

        async with WorkerPool(size=4) as pool:
            results = await pool.schedule(tasks)
    """

    def __init__(
        self,
        size: int | None = None,
        unit_type: UnitType | None = None,
        poll_interval: float | None = None,
        buffers: Iterable[SharedBuffer] | None = None,
        env: Env | None = None,
    ) -> None:
        """
        Args:
            size: Number of execution units. Defaults to LOOPWORKS_POOL_SIZE.
            unit_type: "process" or "thread". Defaults to LOOPWORKS_EXECUTION_UNIT.
            poll_interval: Seconds to wait for any completion before the drain
                           loop re-checks for idle workers.
            buffers: Shared buffers every unit must be able to resolve.
            env: Configuration to draw defaults from.
        """
        if env is None:
            env = Env()

        self._env = env

        self.size = env.LOOPWORKS_POOL_SIZE if size is None else size
        self.unit_type: UnitType = (
            env.LOOPWORKS_EXECUTION_UNIT if unit_type is None else unit_type
        )
        self.poll_interval = (
            env.pool_poll_interval if poll_interval is None else poll_interval
        )

        if self.size < 1:
            raise ConfigurationError(
                f"Err. - Pool size must be at least one - got {self.size}"
            )

        if self.poll_interval <= 0:
            raise ConfigurationError(
                f"Err. - Pool poll interval must be greater than zero - got {self.poll_interval}"
            )

        if self.unit_type not in ("process", "thread"):
            raise ConfigurationError(
                f"Err. - Unknown execution unit type - {self.unit_type}"
            )

        self.status = PoolStatus.INITIALIZING
        self.workers: List[PoolWorker] = []

        self._buffers = list(buffers or [])
        self._logger = Logger()
        self._in_flight = 0

    async def __aenter__(self):
        if self.status == PoolStatus.INITIALIZING:
            await self.initialize()

        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.cleanup()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def initialize(self):
        if self.status != PoolStatus.INITIALIZING:
            raise PoolStateError(
                f"Err. - Pool cannot be initialized from status {self.status.value}"
            )

        async with self._logger.context(name="worker_pool") as ctx:
            await ctx.log(
                PoolDebug(
                    message=f"Starting {self.size} {self.unit_type} execution units",
                    **self._context(),
                )
            )

            units = [
                ExecutionUnit(
                    unit_id=unit_id,
                    unit_type=self.unit_type,
                    buffers=self._buffers,
                )
                for unit_id in range(self.size)
            ]

            started = await asyncio.gather(
                *[unit.start() for unit in units],
                return_exceptions=True,
            )

            failures = [
                result for result in started if isinstance(result, BaseException)
            ]

            if len(failures) > 0:
                for unit in units:
                    unit.terminate()

                self.status = PoolStatus.TERMINATED

                await ctx.log(
                    PoolError(
                        message=f"Failed to start {len(failures)} of {self.size} execution units",
                        **self._context(),
                    )
                )

                raise PoolInitializationError(
                    f"Err. - Failed to start {len(failures)} of {self.size} execution units - {failures[0]}"
                ) from failures[0]

            self.workers = [
                PoolWorker(unit.unit_id, unit) for unit in units
            ]

            self.status = PoolStatus.ACCEPTING

            await ctx.log(
                PoolInfo(
                    message=f"Pool accepting tasks with {self.size} workers",
                    **self._context(),
                )
            )

        return self

    async def cleanup(self):
        if self.status == PoolStatus.TERMINATED:
            return

        self.status = PoolStatus.DRAINING

        for worker in self.workers:
            worker.unit.terminate()
            worker.busy = False

        self.status = PoolStatus.TERMINATED

        await self._logger.batch(
            *[
                PoolDebug(
                    message=f"Worker {worker.worker_id} processed {worker.tasks_processed} tasks in {worker.total_duration:.2f}ms",
                    **self._context(),
                )
                for worker in self.workers
            ],
            PoolInfo(
                message=f"Terminated {len(self.workers)} execution units",
                **self._context(),
            ),
            name="worker_pool",
        )
        await self._logger.close()

        await reclaim_memory(self._env)

    # =========================================================================
    # Scheduling
    # =========================================================================

    async def schedule(self, tasks: Sequence[Task]) -> List[TaskResult]:
        """
        Run every task and return the results ordered by task id.

        Task ids must be exactly ``0..len(tasks) - 1``. The first task to
        fail raises ``TaskExecutionError`` and no partial results are
        returned. Workers still running other tasks of the batch are
        released as those tasks complete.
        """
        if self.status != PoolStatus.ACCEPTING:
            raise PoolStateError(
                f"Err. - Pool is not accepting tasks - status is {self.status.value}"
            )

        task_ids = sorted(task.id for task in tasks)
        if task_ids != list(range(len(tasks))):
            raise ConfigurationError(
                "Err. - Task ids of a batch must be exactly 0 to n - 1 with no gaps or duplicates"
            )

        results: List[TaskResult | None] = [None] * len(tasks)
        pending = deque(tasks)
        in_flight: Dict[asyncio.Future, tuple[PoolWorker, Task]] = {}

        async with self._logger.context(name="worker_pool") as ctx:
            await ctx.log(
                PoolDebug(
                    message=f"Scheduling {len(tasks)} tasks",
                    **self._context(pending=len(pending)),
                )
            )

            try:
                while pending or in_flight:
                    while pending and (worker := self._next_idle_worker()):
                        task = pending.popleft()
                        worker.acquire()

                        run = asyncio.ensure_future(worker.run(task))
                        in_flight[run] = (worker, task)
                        self._in_flight += 1

                        await ctx.log(
                            PoolTrace(
                                message=f"Dispatched task {task.id} to worker {worker.worker_id}",
                                **self._context(pending=len(pending)),
                            )
                        )

                    if len(in_flight) < 1:
                        # Every worker is held by another batch.
                        await asyncio.sleep(self.poll_interval)
                        continue

                    done, _ = await asyncio.wait(
                        in_flight.keys(),
                        timeout=self.poll_interval,
                        return_when=asyncio.FIRST_COMPLETED,
                    )

                    failure: tuple[Task, BaseException] | None = None

                    for run in done:
                        worker, task = in_flight.pop(run)
                        self._in_flight -= 1

                        error = self._run_error(run)
                        if error:
                            worker.release()

                            if failure is None or task.id < failure[0].id:
                                failure = (task, error)

                            continue

                        result: TaskResult = run.result()
                        worker.release(result.duration)
                        results[task.id] = result

                    if failure:
                        task, error = failure

                        await ctx.log(
                            PoolError(
                                message=f"Task {task.id} failed - {error}",
                                **self._context(pending=len(pending)),
                            )
                        )

                        raise TaskExecutionError(task.id, str(error)) from error

            finally:
                self._abandon(in_flight)

        return results

    def _next_idle_worker(self) -> PoolWorker | None:
        for worker in self.workers:
            if worker.busy is False:
                return worker

        return None

    def _run_error(self, run: asyncio.Future) -> BaseException | None:
        if run.cancelled():
            return asyncio.CancelledError("task was cancelled")

        return run.exception()

    def _abandon(self, in_flight: Dict[asyncio.Future, tuple[PoolWorker, Task]]):
        for run, (worker, _) in in_flight.items():
            run.add_done_callback(
                functools.partial(self._release_abandoned, worker),
            )

        in_flight.clear()

    def _release_abandoned(self, worker: PoolWorker, run: asyncio.Future):
        self._in_flight -= 1

        if run.cancelled() is False:
            # Retrieve so the failure is not reported as unhandled.
            run.exception()

        if self.status == PoolStatus.ACCEPTING:
            worker.release()

    # =========================================================================
    # Introspection
    # =========================================================================

    def stats(self) -> PoolStats:
        tasks_processed = sum(worker.tasks_processed for worker in self.workers)
        total_duration = sum(worker.total_duration for worker in self.workers)

        return PoolStats(
            pool_size=self.size,
            unit_type=self.unit_type,
            status=self.status.value,
            tasks_processed=tasks_processed,
            total_duration=total_duration,
            average_duration=(
                total_duration / tasks_processed if tasks_processed > 0 else 0.0
            ),
            worker_tasks={
                worker.worker_id: worker.tasks_processed for worker in self.workers
            },
        )

    def _context(self, pending: int = 0):
        return {
            "pool_size": self.size,
            "unit_type": self.unit_type,
            "pending": pending,
            "in_flight": self._in_flight,
        }
