"""
Structured logging models for loopworks components.

Each model carries the contextual fields needed to identify the
component instance that emitted it (monitor session, pool, shared
buffer) alongside the operation-specific measurements.
"""

from .models import Entry, LogLevel


# =============================================================================
# Lag Monitor
# =============================================================================


class MonitorTick(Entry, kw_only=True):
    lag: float
    avg_lag: float
    min_lag: float
    max_lag: float
    uptime: float
    level: LogLevel = LogLevel.INFO


class MonitorDebug(Entry, kw_only=True):
    interval: float
    max_duration: float
    history_size: int
    level: LogLevel = LogLevel.DEBUG


class MonitorInfo(Entry, kw_only=True):
    reason: str
    uptime: float
    samples: int
    level: LogLevel = LogLevel.INFO


class MonitorError(Entry, kw_only=True):
    reason: str
    uptime: float
    samples: int
    level: LogLevel = LogLevel.ERROR


# =============================================================================
# Blocking demonstrations
# =============================================================================


class BlockingDemoDebug(Entry, kw_only=True):
    mode: str
    level: LogLevel = LogLevel.DEBUG


class BlockingDemoInfo(Entry, kw_only=True):
    mode: str
    duration: float
    iterations: int
    level: LogLevel = LogLevel.INFO


# =============================================================================
# Worker Pool
# =============================================================================


class PoolTrace(Entry, kw_only=True):
    pool_size: int
    unit_type: str
    pending: int
    in_flight: int
    level: LogLevel = LogLevel.TRACE


class PoolDebug(Entry, kw_only=True):
    pool_size: int
    unit_type: str
    pending: int
    in_flight: int
    level: LogLevel = LogLevel.DEBUG


class PoolInfo(Entry, kw_only=True):
    pool_size: int
    unit_type: str
    pending: int
    in_flight: int
    level: LogLevel = LogLevel.INFO


class PoolError(Entry, kw_only=True):
    pool_size: int
    unit_type: str
    pending: int
    in_flight: int
    level: LogLevel = LogLevel.ERROR


# =============================================================================
# Shared memory
# =============================================================================


class SharedMemoryDebug(Entry, kw_only=True):
    buffer_length: int
    worker_count: int
    operation: str
    level: LogLevel = LogLevel.DEBUG


class SharedMemoryInfo(Entry, kw_only=True):
    buffer_length: int
    worker_count: int
    operation: str
    duration: float
    level: LogLevel = LogLevel.INFO


# =============================================================================
# Memory reclaimer
# =============================================================================


class ReclaimInfo(Entry, kw_only=True):
    collected: int
    level: LogLevel = LogLevel.INFO
