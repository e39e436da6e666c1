import asyncio
import multiprocessing
import warnings
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from typing import Iterable, List, Set

from loopworks.env import UnitType
from loopworks.errors import PoolInitializationError, UnitTerminatedError
from loopworks.logging import LoggingConfig
from loopworks.shared.buffer import SharedBuffer

from .execute import execute_encoded, initialize_unit
from .requests import PingRequest, Request, UnitResponse, encode_request


class ExecutionUnit:
    """
    A single independent worker, backed by a one-worker executor.

    Process units run in a freshly spawned interpreter and receive any
    shared buffers through the executor initializer. Thread units run in
    this interpreter and resolve shared buffers from the local registry.
    """

    def __init__(
        self,
        unit_id: int = 0,
        unit_type: UnitType = "process",
        buffers: Iterable[SharedBuffer] | None = None,
    ) -> None:
        self.unit_id = unit_id
        self.unit_type = unit_type
        self.terminated = False

        self._buffers: List[SharedBuffer] = list(buffers or [])
        self._executor: Executor | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending: Set[asyncio.Future] = set()

    @property
    def started(self):
        return self._executor is not None

    @property
    def busy(self):
        return len(self._pending) > 0

    def _create_executor(self) -> Executor:
        if self.unit_type == "thread":
            return ThreadPoolExecutor(
                max_workers=1,
                thread_name_prefix=f"loopworks-unit-{self.unit_id}",
            )

        config = LoggingConfig()

        return ProcessPoolExecutor(
            max_workers=1,
            mp_context=multiprocessing.get_context("spawn"),
            initializer=initialize_unit,
            initargs=(
                [buffer.handle for buffer in self._buffers],
                config.level.name.lower(),
            ),
        )

    async def start(self):
        if self.terminated:
            raise UnitTerminatedError(
                f"Err. - Execution unit {self.unit_id} was terminated and cannot be restarted"
            )

        self._loop = asyncio.get_running_loop()

        try:
            self._executor = self._create_executor()
            await self.submit(PingRequest())

        except Exception as err:
            self.terminate()

            raise PoolInitializationError(
                f"Err. - Execution unit {self.unit_id} failed to start - {err}"
            ) from err

    async def submit(self, request: Request) -> UnitResponse:
        if self.terminated or self._executor is None:
            raise UnitTerminatedError(
                f"Err. - Execution unit {self.unit_id} is not running"
            )

        try:
            future = self._loop.run_in_executor(
                self._executor,
                execute_encoded,
                encode_request(request),
            )

        except RuntimeError as err:
            raise UnitTerminatedError(
                f"Err. - Execution unit {self.unit_id} is shut down - {err}"
            ) from err

        self._pending.add(future)
        future.add_done_callback(self._pending.discard)

        return await future

    def terminate(self):
        if self.terminated:
            return

        self.terminated = True

        executor = self._executor
        if executor is None:
            return

        busy = self.busy

        with warnings.catch_warnings():
            warnings.simplefilter("ignore")

            processes = []
            if isinstance(executor, ProcessPoolExecutor) and executor._processes:
                processes = list(executor._processes.values())

            executor.shutdown(wait=False, cancel_futures=True)

            # Idle processes exit on the shutdown sentinel. Busy ones are killed.
            if busy:
                for process in processes:
                    if process.is_alive():
                        process.terminate()
