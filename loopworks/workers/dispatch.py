import asyncio
from typing import Iterable, List, Sequence

from loopworks.env import Env, UnitType
from loopworks.errors import TaskExecutionError, UnitTerminatedError
from loopworks.shared.buffer import SharedBuffer

from .requests import Request, UnitResponse
from .unit import ExecutionUnit


async def dispatch_single(
    request: Request,
    unit_type: UnitType | None = None,
    buffers: Iterable[SharedBuffer] | None = None,
    task_id: int = 0,
    env: Env | None = None,
) -> UnitResponse:
    """
    Start a dedicated unit, run one request on it and terminate it,
    whether the request succeeds or fails.
    """
    if env is None:
        env = Env()

    unit = ExecutionUnit(
        unit_id=task_id,
        unit_type=env.LOOPWORKS_EXECUTION_UNIT if unit_type is None else unit_type,
        buffers=buffers,
    )

    try:
        await unit.start()

        try:
            return await unit.submit(request)

        except UnitTerminatedError:
            raise

        except Exception as err:
            raise TaskExecutionError(task_id, str(err)) from err

    finally:
        unit.terminate()


async def dispatch_many(
    requests: Sequence[Request],
    unit_type: UnitType | None = None,
    buffers: Iterable[SharedBuffer] | None = None,
    env: Env | None = None,
) -> List[UnitResponse]:
    buffers = list(buffers or [])

    return await asyncio.gather(
        *[
            dispatch_single(
                request,
                unit_type=unit_type,
                buffers=buffers,
                task_id=task_id,
                env=env,
            )
            for task_id, request in enumerate(requests)
        ]
    )
