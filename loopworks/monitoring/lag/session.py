import statistics
from collections import deque

from .models import LagSample, LagTick, StopReason


class MonitorSession:
    """
    Lifecycle and history of a single lag monitor run.

    ``running`` starts True and flips to False exactly once, on the
    first call to ``stop()``. The history is a FIFO window: once it
    holds ``history_size`` samples, every new sample evicts the oldest.
    """

    def __init__(
        self,
        interval: float,
        start_time: float,
        history_size: int = 100,
    ) -> None:
        self.interval = interval
        self.start_time = start_time
        self.last_tick = start_time
        self.running = True
        self.stop_reason: StopReason | None = None
        self.history: deque[LagSample] = deque(maxlen=history_size)
        self.total_samples = 0

    def record(self, now: float) -> LagTick:
        expected = self.last_tick + self.interval
        lag = now - expected

        self.history.append(
            LagSample(
                timestamp=now,
                lag=lag,
            )
        )
        self.total_samples += 1
        self.last_tick = now

        lags = [sample.lag for sample in self.history]

        return LagTick(
            lag=lag,
            avg_lag=statistics.fmean(lags),
            min_lag=min(lags),
            max_lag=max(lags),
            uptime=self.uptime(now),
            samples=len(lags),
        )

    def uptime(self, now: float) -> float:
        return (now - self.start_time) / 1000

    def stop(self, reason: StopReason) -> bool:
        if self.running is False:
            return False

        self.running = False
        self.stop_reason = reason

        return True
