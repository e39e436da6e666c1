import math

import pytest

import loopworks.reclaim as reclaim
from loopworks import concurrent_update, parallel_process, release_buffer
from loopworks.env import Env
from loopworks.errors import ConfigurationError
from loopworks.logging import LoggingConfig
from loopworks.shared import Operation, SharedBuffer, partition_range


class TestPartitionRange:
    @pytest.mark.parametrize(
        "length,worker_count",
        [(100, 4), (10, 3), (7, 7), (3, 5), (0, 2), (1, 1), (1001, 16)],
    )
    def test_ranges_cover_every_index_once(self, length: int, worker_count: int):
        ranges = partition_range(length, worker_count)

        covered = [0] * length
        for start, end in ranges:
            for index in range(start, end):
                covered[index] += 1

        assert len(ranges) == worker_count
        assert covered == [1] * length
        assert ranges[-1][1] == length

    def test_last_range_absorbs_remainder(self):
        assert partition_range(10, 3) == [(0, 3), (3, 6), (6, 10)]

    def test_ranges_are_contiguous(self):
        ranges = partition_range(1001, 16)

        for (_, previous_end), (next_start, _) in zip(ranges, ranges[1:]):
            assert previous_end == next_start

    def test_worker_count_must_be_positive(self):
        with pytest.raises(ConfigurationError):
            partition_range(10, 0)


class TestParallelProcess:
    @pytest.mark.asyncio
    async def test_squares_in_spawned_processes(self):
        buffer = SharedBuffer.from_values([0, 1, 2, 3], dtype="int32", lock_stripes=4)

        try:
            report = await parallel_process(
                buffer,
                2,
                Operation.SQUARE,
                unit_type="process",
            )

            assert buffer.to_list() == [0, 1, 4, 9]
            assert report.worker_count == 2
            assert [(item.start, item.end) for item in report.ranges] == [
                (0, 2),
                (2, 4),
            ]

        finally:
            await release_buffer(buffer)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "operation,expected",
        [
            ("square", [value * value for value in range(10)]),
            ("sqrt", [math.sqrt(value) for value in range(10)]),
            ("increment", [value + 1 for value in range(10)]),
        ],
    )
    async def test_operations(self, operation: str, expected: list[float]):
        buffer = SharedBuffer.from_values(range(10), lock_stripes=4)

        try:
            report = await parallel_process(buffer, 3, operation, unit_type="thread")

            assert buffer.to_list() == pytest.approx(expected)
            assert sum(item.processed for item in report.ranges) == 10
            assert report.operation == operation

        finally:
            buffer.close()

    @pytest.mark.asyncio
    async def test_unknown_operation_is_rejected(self, shared_buffer: SharedBuffer):
        with pytest.raises(ConfigurationError):
            await parallel_process(shared_buffer, 2, "cube", unit_type="thread")

    @pytest.mark.asyncio
    async def test_worker_count_must_be_positive(self, shared_buffer: SharedBuffer):
        with pytest.raises(ConfigurationError):
            await parallel_process(shared_buffer, 0, "square", unit_type="thread")


def assert_no_lost_writes(buffer: SharedBuffer, original: list[int], reports):
    last_writes: dict[int, set[int]] = {}
    all_values: list[int] = []

    for report in reports:
        worker_last: dict[int, int] = {}
        for index, value in report.writes:
            worker_last[index] = value
            all_values.append(value)

        for index, value in worker_last.items():
            last_writes.setdefault(index, set()).add(value)

    assert len(all_values) == len(set(all_values))

    final = buffer.to_list()
    for index, value in enumerate(final):
        if index in last_writes:
            assert value in last_writes[index]

        else:
            assert value == original[index]


class TestConcurrentUpdate:
    @pytest.mark.asyncio
    async def test_every_store_lands_in_threads(self, shared_buffer: SharedBuffer):
        original = shared_buffer.to_list()

        summary = await concurrent_update(
            shared_buffer,
            4,
            250,
            seed=7,
            record_writes=True,
            unit_type="thread",
        )

        assert summary.total_updates == 1000
        assert [report.worker_id for report in summary.reports] == [0, 1, 2, 3]
        assert all(len(report.writes) == 250 for report in summary.reports)

        assert_no_lost_writes(shared_buffer, original, summary.reports)

    @pytest.mark.asyncio
    async def test_every_store_lands_in_processes(self):
        buffer = SharedBuffer.from_values(range(50), dtype="int64", lock_stripes=8)
        original = buffer.to_list()

        try:
            summary = await concurrent_update(
                buffer,
                2,
                200,
                seed=11,
                record_writes=True,
                unit_type="process",
            )

            assert summary.total_updates == 400
            assert_no_lost_writes(buffer, original, summary.reports)

        finally:
            buffer.close()

    @pytest.mark.asyncio
    async def test_writes_are_optional(self, shared_buffer: SharedBuffer):
        summary = await concurrent_update(shared_buffer, 2, 10, unit_type="thread")

        assert summary.total_updates == 20
        assert all(report.writes == [] for report in summary.reports)

    @pytest.mark.asyncio
    async def test_negative_updates_are_rejected(self, shared_buffer: SharedBuffer):
        with pytest.raises(ConfigurationError):
            await concurrent_update(shared_buffer, 2, -1, unit_type="thread")


class TestReleaseBuffer:
    @pytest.mark.asyncio
    async def test_release_runs_collection_when_exposed(self, monkeypatch):
        collected: list[int] = []

        def fake_collect():
            collected.append(1)
            return 3

        monkeypatch.setattr(reclaim.gc, "collect", fake_collect)

        buffer = SharedBuffer(4, lock_stripes=1)
        await release_buffer(buffer, env=Env(LOOPWORKS_EXPOSE_GC=True))

        assert buffer.closed is True
        assert collected == [1]

    @pytest.mark.asyncio
    async def test_collection_is_logged(self, monkeypatch, capfd):
        LoggingConfig().update(log_level="info", log_output="stdout")
        monkeypatch.setattr(reclaim.gc, "collect", lambda: 7)

        collected = await reclaim.reclaim_memory(Env(LOOPWORKS_EXPOSE_GC=True))

        assert collected == 7
        assert "Manual collection found 7 unreachable objects" in capfd.readouterr().out

    @pytest.mark.asyncio
    async def test_release_skips_collection_by_default(self, monkeypatch):
        monkeypatch.setattr(
            reclaim.gc,
            "collect",
            lambda: pytest.fail("collection should not run"),
        )

        buffer = SharedBuffer(4, lock_stripes=1)
        await release_buffer(buffer)

        assert buffer.closed is True
