import asyncio
import math

import pytest

from loopworks import run_blocking_demo
from loopworks.env import Env
from loopworks.errors import ConfigurationError
from loopworks.monitoring.blocking import BlockingDemoParams, BlockingMode


def expected_sqrt_sum(iterations: int) -> float:
    result = 0.0
    for idx in range(iterations):
        result += math.sqrt(idx)

    return result


@pytest.fixture
def text_file(tmp_path) -> str:
    path = tmp_path / "large-file.txt"
    path.write_text("abc" * 100)

    return str(path)


class TestCpuLoop:
    @pytest.mark.asyncio
    async def test_sums_square_roots(self):
        result = await run_blocking_demo(
            BlockingMode.CPU_LOOP,
            {"iterations": 1000},
        )

        assert result.mode == BlockingMode.CPU_LOOP
        assert result.iterations == 1000
        assert result.result == pytest.approx(expected_sqrt_sum(1000))
        assert result.stopped_by == "completed"
        assert result.duration >= 0

    @pytest.mark.asyncio
    async def test_accepts_mode_names(self):
        result = await run_blocking_demo(
            "cpu_loop",
            BlockingDemoParams(iterations=10),
        )

        assert result.iterations == 10


class TestFileReads:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "mode",
        [BlockingMode.SYNC_FILE_READ, BlockingMode.ASYNC_FILE_READ],
    )
    async def test_reads_file(self, mode: BlockingMode, text_file: str):
        result = await run_blocking_demo(
            mode,
            {"file_path": text_file, "preview_length": 6},
        )

        assert result.mode == mode
        assert result.result == 300
        assert result.details["characters"] == 300
        assert result.details["size_bytes"] == 300
        assert result.details["preview"] == "abcabc"

    @pytest.mark.asyncio
    async def test_file_modes_require_a_path(self):
        with pytest.raises(ConfigurationError):
            await run_blocking_demo(BlockingMode.SYNC_FILE_READ)

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            await run_blocking_demo(
                BlockingMode.ASYNC_FILE_READ,
                {"file_path": str(tmp_path / "missing.txt")},
            )


class TestAsyncVsSync:
    @pytest.mark.asyncio
    async def test_results_match(self):
        result = await run_blocking_demo(
            BlockingMode.ASYNC_VS_SYNC,
            {"iterations": 50_000},
        )

        assert result.result == sum(range(50_000))
        assert result.details["async_result"] == result.result
        assert result.details["results_match"] is True
        assert result.details["chunk_size"] == 10_000


class TestChunkedLoop:
    @pytest.mark.asyncio
    async def test_processes_every_chunk(self):
        result = await run_blocking_demo(
            BlockingMode.CHUNKED_LOOP,
            {"iterations": 25, "chunk_size": 10},
        )

        assert result.details["chunks"] == 3
        assert result.iterations == 25
        assert result.result == pytest.approx(expected_sqrt_sum(25))

    @pytest.mark.asyncio
    async def test_yields_between_chunks(self):
        ran: list[int] = []

        async def observer():
            ran.append(1)

        observer_task = asyncio.ensure_future(observer())

        result = await run_blocking_demo(
            BlockingMode.CHUNKED_LOOP,
            {"iterations": 100, "chunk_size": 10},
        )

        assert observer_task.done()
        assert ran == [1]
        assert result.details["chunks"] == 10


class TestInfiniteLoop:
    @pytest.mark.asyncio
    async def test_stops_on_signal(self):
        stop_signal = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, stop_signal.set)

        result = await run_blocking_demo(
            BlockingMode.INFINITE_LOOP,
            {"chunk_size": 1000, "timeout": 5},
            stop_signal=stop_signal,
        )

        assert result.stopped_by == "signal"
        assert result.duration < 5000
        assert result.iterations % 1000 == 0
        assert result.iterations >= 1000

    @pytest.mark.asyncio
    async def test_stops_on_timeout(self):
        result = await run_blocking_demo(
            BlockingMode.INFINITE_LOOP,
            {"chunk_size": 1000, "timeout": 0.05},
        )

        assert result.stopped_by == "timeout"
        assert result.iterations >= 1000
        assert result.details["timeout"] == 0.05


class TestInvalidParameters:
    @pytest.mark.asyncio
    async def test_unknown_mode(self):
        with pytest.raises(ConfigurationError):
            await run_blocking_demo("spin_forever")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params",
        [
            {"chunk_size": 0},
            {"iterations": -1},
            {"timeout": 0},
            {"iterations": "many"},
        ],
    )
    async def test_invalid_params(self, params):
        with pytest.raises(ConfigurationError):
            await run_blocking_demo(BlockingMode.CHUNKED_LOOP, params)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("timeout", ["-5s", "10x"])
    async def test_malformed_env_timeout(self, timeout: str):
        with pytest.raises(ConfigurationError):
            await run_blocking_demo(
                BlockingMode.INFINITE_LOOP,
                {"chunk_size": 1000},
                env=Env(LOOPWORKS_BLOCKING_TIMEOUT=timeout),
            )
