from dataclasses import dataclass
from enum import Enum


class StopReason(str, Enum):
    """Why a monitor session ended."""

    TIMEOUT = "timeout"  # max duration elapsed, a clean stop
    SIGNAL = "signal"  # explicit stop()
    ERROR = "error"  # a tick raised


@dataclass(slots=True, frozen=True)
class LagSample:
    """
    One measurement taken by a tick.

    Both fields are milliseconds on the event loop's monotonic clock.
    A negative lag means the tick fired before its expected time.
    """

    timestamp: float
    lag: float


@dataclass(slots=True, frozen=True)
class LagTick:
    """
    Per-tick observable output of a monitor session.

    Lag figures are in milliseconds and computed over the current
    history window. Uptime is in seconds since the session started.
    """

    lag: float
    avg_lag: float
    min_lag: float
    max_lag: float
    uptime: float
    samples: int


@dataclass(slots=True, frozen=True)
class MonitorStopped:
    """Terminal event of a monitor session."""

    reason: StopReason
    uptime: float
    samples: int
    error: str | None = None
