"""
Event-loop lag monitor.

A recurring timer is armed on the running loop. Each time it fires, the
difference between the actual and the expected firing time is recorded
as lag. A loop that is blocked by synchronous work fires late, so lag
grows in proportion to how long the loop was held.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Callable, ClassVar, List

from loopworks.env import Env
from loopworks.errors import ConfigurationError, MonitorAlreadyRunningError
from loopworks.logging import Logger, LoggerStream
from loopworks.logging.loopworks_logging_models import (
    MonitorDebug,
    MonitorError,
    MonitorInfo,
    MonitorTick,
)

from .models import LagTick, MonitorStopped, StopReason
from .session import MonitorSession

MonitorEvent = LagTick | MonitorStopped


class LagMonitor:
    """
    Samples event-loop lag on a fixed interval until stopped or timed out.

    Only one monitor may be running per process. Ticks are re-armed
    ``interval`` seconds from when the previous tick actually ran, so a
    blocked loop shows up as a single large lag rather than a burst of
    catch-up ticks.
    """

    _active: ClassVar[LagMonitor | None] = None

    background_interval: ClassVar[float] = 2.0

    def __init__(
        self,
        interval: float | None = None,
        max_duration: float | None = None,
        history_size: int | None = None,
        background_activity: bool | None = None,
        env: Env | None = None,
    ) -> None:
        if env is None:
            env = Env()

        self.interval = env.tick_interval if interval is None else interval
        self.max_duration = (
            env.monitor_max_duration if max_duration is None else max_duration
        )
        self.history_size = (
            env.LOOPWORKS_LAG_HISTORY_SIZE if history_size is None else history_size
        )
        self.background_activity = (
            env.LOOPWORKS_LAG_BACKGROUND_ACTIVITY
            if background_activity is None
            else background_activity
        )

        if self.interval <= 0:
            raise ConfigurationError(
                f"Err. - Lag monitor interval must be greater than zero - got {self.interval}"
            )

        if self.max_duration <= 0:
            raise ConfigurationError(
                f"Err. - Lag monitor max duration must be greater than zero - got {self.max_duration}"
            )

        if self.history_size < 1:
            raise ConfigurationError(
                f"Err. - Lag monitor history size must be at least one - got {self.history_size}"
            )

        self.session: MonitorSession | None = None
        self.background_callbacks = 0

        self._loop: asyncio.AbstractEventLoop | None = None
        self._tick_handle: asyncio.TimerHandle | None = None
        self._timeout_handle: asyncio.TimerHandle | None = None
        self._background_handle: asyncio.TimerHandle | None = None
        self._events: asyncio.Queue[MonitorEvent] | None = None
        self._stopped: asyncio.Future[MonitorStopped] | None = None
        self._on_tick: List[Callable[[LagTick], None]] = []

        self._logger = Logger()
        self._stream: LoggerStream | None = None

    @property
    def running(self) -> bool:
        return self.session is not None and self.session.running

    @property
    def history(self):
        if self.session is None:
            return []

        return list(self.session.history)

    def on_tick(self, callback: Callable[[LagTick], None]):
        self._on_tick.append(callback)

    async def start(self) -> MonitorSession:
        active = LagMonitor._active
        if active is not None and active.running:
            raise MonitorAlreadyRunningError(
                "Err. - A lag monitor session is already running in this process"
            )

        if self.session is not None:
            raise MonitorAlreadyRunningError(
                "Err. - This lag monitor has already been started"
            )

        self._loop = asyncio.get_running_loop()
        self._events = asyncio.Queue(maxsize=self.history_size)
        self._stopped = self._loop.create_future()

        self._stream = self._logger.get_stream(name="lag_monitor")
        await self._stream.initialize()

        self.session = MonitorSession(
            self.interval * 1000,
            self._now(),
            history_size=self.history_size,
        )

        LagMonitor._active = self

        self._stream.schedule(
            MonitorDebug(
                message="Starting lag monitor",
                interval=self.interval,
                max_duration=self.max_duration,
                history_size=self.history_size,
            )
        )

        self._tick_handle = self._loop.call_later(self.interval, self._tick)
        self._timeout_handle = self._loop.call_later(
            self.max_duration,
            self._finish,
            StopReason.TIMEOUT,
        )

        if self.background_activity:
            self._background_handle = self._loop.call_later(
                self.background_interval,
                self._run_background_activity,
            )

        return self.session

    def stop(self):
        if self.session is None:
            return

        self._finish(StopReason.SIGNAL)

    async def wait(self) -> MonitorStopped:
        if self._stopped is None:
            raise RuntimeError("Err. - Lag monitor was never started")

        try:
            return await asyncio.shield(self._stopped)

        finally:
            await self.close()

    async def events(self) -> AsyncIterator[MonitorEvent]:
        if self._events is None:
            raise RuntimeError("Err. - Lag monitor was never started")

        while True:
            event = await self._events.get()

            if isinstance(event, MonitorStopped):
                if event.error is not None:
                    # The error is delivered here, so wait() is not required.
                    self._stopped.exception()

                await self.close()
                yield event
                break

            yield event

    async def close(self):
        if self._stream and self.session and self.session.running is False:
            await self._stream.close()

    def _now(self) -> float:
        return self._loop.time() * 1000

    def _tick(self):
        self._tick_handle = None
        session = self.session

        if session.running is False:
            return

        try:
            tick = session.record(self._now())

            # Published before callbacks run, since a callback may stop the session.
            self._publish(tick)
            self._stream.schedule(
                MonitorTick(
                    message=f"Lag {tick.lag:.2f}ms (avg {tick.avg_lag:.2f}ms)",
                    lag=tick.lag,
                    avg_lag=tick.avg_lag,
                    min_lag=tick.min_lag,
                    max_lag=tick.max_lag,
                    uptime=tick.uptime,
                )
            )

            for callback in self._on_tick:
                callback(tick)

        except Exception as err:
            self._finish(StopReason.ERROR, error=err)
            return

        if session.running:
            self._tick_handle = self._loop.call_later(self.interval, self._tick)

    def _publish(self, event: MonitorEvent):
        # The queue holds at most one window of events. Without a reader
        # the oldest ticks are dropped, never the stop event.
        if self._events.full():
            self._events.get_nowait()

        self._events.put_nowait(event)

    def _run_background_activity(self):
        self._background_handle = None

        if self.session.running is False:
            return

        future = self._loop.create_future()
        future.add_done_callback(self._count_background_callback)

        self._loop.call_soon(self._count_background_callback)
        self._loop.call_soon(future.set_result, None)
        self._loop.call_later(0, self._count_background_callback)

        self._background_handle = self._loop.call_later(
            self.background_interval,
            self._run_background_activity,
        )

    def _count_background_callback(self, *_):
        self.background_callbacks += 1

    def _finish(
        self,
        reason: StopReason,
        error: Exception | None = None,
    ):
        session = self.session
        if session.stop(reason) is False:
            return

        for handle in (
            self._tick_handle,
            self._timeout_handle,
            self._background_handle,
        ):
            if handle is not None:
                handle.cancel()

        self._tick_handle = None
        self._timeout_handle = None
        self._background_handle = None

        if LagMonitor._active is self:
            LagMonitor._active = None

        stopped = MonitorStopped(
            reason=reason,
            uptime=session.uptime(self._now()),
            samples=session.total_samples,
            error=str(error) if error else None,
        )

        self._publish(stopped)

        if error:
            self._stream.schedule(
                MonitorError(
                    message=f"Lag monitor tick failed - {error}",
                    reason=reason.value,
                    uptime=stopped.uptime,
                    samples=stopped.samples,
                )
            )

            self._stopped.set_exception(error)

        else:
            self._stream.schedule(
                MonitorInfo(
                    message=f"Lag monitor stopped - {reason.value}",
                    reason=reason.value,
                    uptime=stopped.uptime,
                    samples=stopped.samples,
                )
            )

            self._stopped.set_result(stopped)
