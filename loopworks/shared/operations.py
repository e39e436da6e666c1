import time
from enum import Enum

import numpy as np

from .buffer import get_buffer
from .models import RangeReport, UpdateReport


class Operation(str, Enum):
    SQUARE = "square"
    SQRT = "sqrt"
    INCREMENT = "increment"


def apply_operation(view: np.ndarray, operation: Operation | str):
    match Operation(operation):
        case Operation.SQUARE:
            view[...] = np.square(view)

        case Operation.SQRT:
            view[...] = np.sqrt(view)

        case Operation.INCREMENT:
            view[...] = view + 1


def process_range(
    buffer_id: str,
    start: int,
    end: int,
    operation: Operation | str,
) -> RangeReport:
    # The range is exclusive to this unit, so no locks are taken.
    buffer = get_buffer(buffer_id)

    run_start = time.perf_counter()
    apply_operation(buffer.view(start, end), operation)

    return RangeReport(
        start=start,
        end=end,
        processed=end - start,
        duration=(time.perf_counter() - run_start) * 1000,
    )


def random_update(
    buffer_id: str,
    worker_id: int,
    update_count: int,
    seed: int | None = None,
    record_writes: bool = False,
) -> UpdateReport:
    buffer = get_buffer(buffer_id)
    generator = np.random.default_rng(seed)

    indices = generator.integers(0, buffer.length, size=update_count)

    writes: list[tuple[int, int]] = []
    for update_idx, index in enumerate(indices.tolist()):
        value = worker_id * update_count + update_idx + 1
        buffer.store(index, value)

        if record_writes:
            writes.append((index, value))

    return UpdateReport(
        worker_id=worker_id,
        updates=update_count,
        writes=writes,
    )
