"""
Shared fixtures for loopworks tests.

Most pool tests use thread units, which start in milliseconds. Tests
that need real spawned processes request ``process_env`` explicitly.
"""

from typing import AsyncGenerator

import pytest

from loopworks.env import Env
from loopworks.logging import LoggingConfig
from loopworks.monitoring.lag import LagMonitor
from loopworks.shared import SharedBuffer
from loopworks.workers import WorkerPool


@pytest.fixture(autouse=True)
def configure_log_level():
    LoggingConfig().update(log_level="critical")


@pytest.fixture(autouse=True)
def reset_active_monitor():
    yield
    LagMonitor._active = None


@pytest.fixture
def thread_env() -> Env:
    return Env(
        LOOPWORKS_EXECUTION_UNIT="thread",
        LOOPWORKS_POOL_SIZE=2,
        LOOPWORKS_POOL_POLL_INTERVAL="10ms",
    )


@pytest.fixture
def process_env() -> Env:
    return Env(
        LOOPWORKS_EXECUTION_UNIT="process",
        LOOPWORKS_POOL_SIZE=2,
    )


@pytest.fixture
async def thread_pool(thread_env: Env) -> AsyncGenerator[WorkerPool, None]:
    pool = WorkerPool(size=2, env=thread_env)
    await pool.initialize()
    yield pool
    await pool.cleanup()


@pytest.fixture
def shared_buffer() -> SharedBuffer:
    buffer = SharedBuffer.from_values(range(100), dtype="int64", lock_stripes=8)
    yield buffer
    buffer.close()
