from typing import List

import msgspec


class RangeReport(msgspec.Struct):
    start: int
    end: int
    processed: int
    duration: float


class ProcessReport(msgspec.Struct):
    operation: str
    worker_count: int
    buffer_length: int
    ranges: List[RangeReport]
    duration: float


class UpdateReport(msgspec.Struct):
    worker_id: int
    updates: int
    writes: List[tuple[int, int]] = msgspec.field(default_factory=list)


class UpdateSummary(msgspec.Struct):
    worker_count: int
    updates_each: int
    total_updates: int
    reports: List[UpdateReport]
    duration: float
