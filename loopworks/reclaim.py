import gc

from loopworks.env import Env
from loopworks.logging import Logger
from loopworks.logging.loopworks_logging_models import ReclaimInfo


async def reclaim_memory(env: Env | None = None) -> int | None:
    """
    Run a manual garbage collection when ``LOOPWORKS_EXPOSE_GC`` is set.
    Returns the number of unreachable objects found, or ``None`` when
    manual collection is not enabled.
    """
    if env is None:
        env = Env()

    if env.LOOPWORKS_EXPOSE_GC is False:
        return None

    collected = gc.collect()

    logger = Logger()
    await logger.log(
        ReclaimInfo(
            message=f"Manual collection found {collected} unreachable objects",
            collected=collected,
        ),
        name="reclaimer",
    )
    await logger.close()

    return collected
