import asyncio
import gc
import time

import pytest

from loopworks import start_lag_monitor
from loopworks.env import Env
from loopworks.errors import ConfigurationError, MonitorAlreadyRunningError
from loopworks.monitoring.lag import (
    LagMonitor,
    LagTick,
    MonitorSession,
    MonitorStopped,
    StopReason,
    render_lag_bar,
)


class TestMonitorSession:
    def test_lag_is_measured_against_expected_tick(self):
        session = MonitorSession(10, 0)

        tick = session.record(13)

        assert tick.lag == 3
        assert session.last_tick == 13

    def test_window_statistics(self):
        session = MonitorSession(10, 0)

        session.record(10)
        session.record(25)
        tick = session.record(35)

        assert tick.min_lag == 0
        assert tick.max_lag == 5
        assert tick.avg_lag == pytest.approx(5 / 3)
        assert tick.samples == 3
        assert tick.uptime == pytest.approx(0.035)

    def test_history_never_exceeds_capacity(self):
        session = MonitorSession(10, 0, history_size=100)

        for idx in range(1, 101):
            session.record(idx * 10)
            assert len(session.history) <= 100

        first_sample = session.history[0]
        session.record(1010)

        assert len(session.history) == 100
        assert first_sample not in session.history
        assert session.history[0].timestamp == 20
        assert session.total_samples == 101

    def test_stop_is_idempotent(self):
        session = MonitorSession(10, 0)

        assert session.stop(StopReason.SIGNAL) is True
        assert session.stop(StopReason.TIMEOUT) is False
        assert session.running is False
        assert session.stop_reason == StopReason.SIGNAL


class TestLagMonitorLifecycle:
    @pytest.mark.asyncio
    async def test_times_out_after_max_duration(self):
        monitor = await start_lag_monitor(max_duration=0.1, interval=0.016)

        stopped = await monitor.wait()

        assert stopped.reason == StopReason.TIMEOUT
        assert 5 <= stopped.samples <= 7
        assert 5 <= len(monitor.history) <= 7
        assert monitor.running is False
        assert monitor.session.running is False

    @pytest.mark.asyncio
    async def test_stop_ends_session_with_signal(self):
        monitor = await start_lag_monitor(max_duration=5, interval=0.01)
        await asyncio.sleep(0.05)

        monitor.stop()
        monitor.stop()

        stopped = await monitor.wait()

        assert stopped.reason == StopReason.SIGNAL
        assert monitor.running is False

    @pytest.mark.asyncio
    async def test_no_ticks_after_stop(self):
        monitor = await start_lag_monitor(max_duration=5, interval=0.005)
        await asyncio.sleep(0.03)

        monitor.stop()
        samples = monitor.session.total_samples

        await asyncio.sleep(0.03)
        await monitor.wait()

        assert monitor.session.total_samples == samples

    @pytest.mark.asyncio
    async def test_only_one_session_per_process(self):
        first = await start_lag_monitor(max_duration=5, interval=0.01)

        with pytest.raises(MonitorAlreadyRunningError):
            await start_lag_monitor(max_duration=5, interval=0.01)

        first.stop()
        await first.wait()

        second = await start_lag_monitor(max_duration=5, interval=0.01)
        second.stop()
        await second.wait()

    @pytest.mark.asyncio
    async def test_monitor_cannot_be_restarted(self):
        monitor = await start_lag_monitor(max_duration=5, interval=0.01)
        monitor.stop()
        await monitor.wait()

        with pytest.raises(MonitorAlreadyRunningError):
            await monitor.start()

    @pytest.mark.parametrize(
        "options",
        [
            {"interval": 0},
            {"interval": -1},
            {"max_duration": 0},
            {"history_size": 0},
        ],
    )
    def test_invalid_configuration_is_rejected(self, options):
        with pytest.raises(ConfigurationError):
            LagMonitor(**options)

    @pytest.mark.parametrize("duration", ["-5s", "10x"])
    def test_malformed_env_durations_are_rejected(self, duration: str):
        with pytest.raises(ConfigurationError):
            LagMonitor(env=Env(LOOPWORKS_LAG_MAX_DURATION=duration))


class TestLagMonitorEvents:
    @pytest.mark.asyncio
    async def test_events_end_with_stopped(self):
        monitor = await start_lag_monitor(max_duration=0.06, interval=0.01)

        events = [event async for event in monitor.events()]

        ticks = [event for event in events if isinstance(event, LagTick)]

        assert isinstance(events[-1], MonitorStopped)
        assert events[-1].reason == StopReason.TIMEOUT
        assert events[-1].samples == len(ticks)
        assert all(isinstance(event, LagTick) for event in events[:-1])

    @pytest.mark.asyncio
    async def test_blocked_loop_shows_as_lag(self):
        monitor = await start_lag_monitor(max_duration=5, interval=0.01)
        await asyncio.sleep(0.025)

        time.sleep(0.1)

        await asyncio.sleep(0.025)
        monitor.stop()
        await monitor.wait()

        assert max(sample.lag for sample in monitor.history) >= 50

    @pytest.mark.asyncio
    async def test_tick_error_stops_session(self):
        monitor = LagMonitor(interval=0.005, max_duration=5)

        def fail(tick: LagTick):
            raise RuntimeError("tick failed")

        monitor.on_tick(fail)
        await monitor.start()

        with pytest.raises(RuntimeError, match="tick failed"):
            await monitor.wait()

        assert monitor.session.stop_reason == StopReason.ERROR
        assert monitor.running is False

        events = [event async for event in monitor.events()]

        assert len(events) == 2
        assert isinstance(events[0], LagTick)
        assert events[1] == MonitorStopped(
            reason=StopReason.ERROR,
            uptime=events[1].uptime,
            samples=1,
            error="tick failed",
        )

    @pytest.mark.asyncio
    async def test_stop_from_callback_keeps_stopped_last(self):
        monitor = LagMonitor(interval=0.005, max_duration=5)
        seen: list[LagTick] = []

        def stop_on_third(tick: LagTick):
            seen.append(tick)
            if len(seen) == 3:
                monitor.stop()

        monitor.on_tick(stop_on_third)
        await monitor.start()

        events = [event async for event in monitor.events()]
        ticks = [event for event in events if isinstance(event, LagTick)]
        stops = [event for event in events if isinstance(event, MonitorStopped)]

        assert stops == [events[-1]]
        assert events[-1].reason == StopReason.SIGNAL
        assert len(ticks) == events[-1].samples == 3
        assert ticks == seen

    @pytest.mark.asyncio
    async def test_event_queue_is_bounded_without_a_reader(self):
        monitor = await start_lag_monitor(
            max_duration=0.3,
            interval=0.001,
            history_size=10,
        )

        stopped = await monitor.wait()

        assert stopped.samples > 10
        assert len(monitor._stream._scheduled) == 0

        events = [event async for event in monitor.events()]

        assert len(events) == 10
        assert events[-1] == stopped
        assert all(isinstance(event, LagTick) for event in events[:-1])
        assert [event.lag for event in events[:-1]] == [
            sample.lag for sample in monitor.history[-9:]
        ]

    @pytest.mark.asyncio
    async def test_error_read_from_events_is_retrieved(self):
        loop = asyncio.get_running_loop()
        contexts: list[dict] = []
        loop.set_exception_handler(lambda _, context: contexts.append(context))

        def fail(tick: LagTick):
            raise RuntimeError("tick failed")

        try:
            monitor = LagMonitor(interval=0.005, max_duration=5)
            monitor.on_tick(fail)
            await monitor.start()

            events = [event async for event in monitor.events()]
            assert events[-1].error == "tick failed"

            del monitor, events
            gc.collect()

        finally:
            loop.set_exception_handler(None)

        assert not any(
            "never retrieved" in context.get("message", "") for context in contexts
        )

    @pytest.mark.asyncio
    async def test_background_activity_runs_callbacks(self):
        monitor = LagMonitor(
            interval=0.005,
            max_duration=0.1,
            background_activity=True,
        )
        monitor.background_interval = 0.01

        await monitor.start()
        await monitor.wait()

        assert monitor.background_callbacks >= 3


class TestLagBar:
    def test_idle_bar_is_empty(self):
        bar, severity = render_lag_bar(0)

        assert bar == "░" * 40 + " 0.0ms"
        assert severity == "ok"

    def test_bar_scales_with_lag(self):
        bar, severity = render_lag_bar(50)

        assert bar.count("█") == 20
        assert severity == "critical"

    def test_warn_band(self):
        _, severity = render_lag_bar(20)

        assert severity == "warn"

    def test_bar_is_capped(self):
        bar, _ = render_lag_bar(250)

        assert bar.count("█") == 40
        assert bar.count("░") == 0
