from typing import List

from loopworks.errors import ConfigurationError


def partition_range(length: int, worker_count: int) -> List[tuple[int, int]]:
    """
    Split ``[0, length)`` into ``worker_count`` contiguous ``[start, end)``
    ranges. Every range but the last holds ``length // worker_count``
    elements and the last absorbs the remainder, so each index is
    covered exactly once.
    """

    if worker_count < 1:
        raise ConfigurationError(
            f"Err. - Worker count must be at least one - got {worker_count}"
        )

    if length < 0:
        raise ConfigurationError(
            f"Err. - Buffer length must not be negative - got {length}"
        )

    chunk = length // worker_count

    ranges: List[tuple[int, int]] = []
    for worker_idx in range(worker_count):
        start = worker_idx * chunk
        end = length if worker_idx == worker_count - 1 else start + chunk

        ranges.append((start, end))

    return ranges
