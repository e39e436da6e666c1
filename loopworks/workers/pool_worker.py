from loopworks.errors import PoolStateError

from .models import Task, TaskResult, WorkerStatus
from .unit import ExecutionUnit


class PoolWorker:
    def __init__(self, worker_id: int, unit: ExecutionUnit) -> None:
        self.worker_id = worker_id
        self.unit = unit
        self.busy = False
        self.tasks_processed = 0
        self.total_duration = 0.0

    @property
    def status(self):
        return WorkerStatus.BUSY if self.busy else WorkerStatus.IDLE

    def acquire(self):
        if self.busy:
            raise PoolStateError(
                f"Err. - Worker {self.worker_id} is already running a task"
            )

        self.busy = True

    def release(self, duration: float | None = None):
        self.busy = False

        if duration is not None:
            self.tasks_processed += 1
            self.total_duration += duration

    async def run(self, task: Task) -> TaskResult:
        response = await self.unit.submit(task.payload)

        return TaskResult(
            id=task.id,
            value=response.value,
            duration=response.duration,
        )
