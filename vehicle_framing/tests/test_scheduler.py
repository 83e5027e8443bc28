"""
Tests for the cooperative timer queue and the fixed tick.
"""

import pytest

from vehicle_framing.scheduler import FixedTick, TimerQueue


class TestTimerQueue:
    def test_fires_in_deadline_order(self, timers, clock):
        fired = []
        timers.call_later(2.0, fired.append, "b")
        timers.call_later(1.0, fired.append, "a")
        clock.advance(5)
        assert timers.run_due() == 2
        assert fired == ["a", "b"]

    def test_nothing_before_deadline(self, timers, clock):
        fired = []
        timers.call_later(1.0, fired.append, "x")
        clock.advance(0.5)
        assert timers.run_due() == 0
        assert timers.pending == 1

    def test_one_shot(self, timers, clock):
        fired = []
        timers.call_later(0.0, fired.append, 1)
        timers.run_due()
        clock.advance(10)
        timers.run_due()
        assert fired == [1]

    def test_cancel_and_cancel_all(self, timers, clock):
        fired = []
        handle = timers.call_later(1.0, fired.append, "cancelled")
        timers.call_later(1.0, fired.append, "dropped")
        handle.cancel()
        timers.cancel_all()
        clock.advance(5)
        timers.run_due()
        assert fired == []
        assert timers.pending == 0
        assert timers.next_due() is None

    def test_failing_callback_does_not_stop_others(self, timers, clock):
        fired = []

        def boom():
            raise RuntimeError("boom")

        timers.call_later(0.1, boom)
        timers.call_later(0.2, fired.append, "after")
        clock.advance(1)
        timers.run_due()
        assert fired == ["after"]


class TestFixedTick:
    def test_rejects_non_positive_period(self, timers):
        with pytest.raises(ValueError):
            FixedTick(timers, 0, lambda: None)

    def test_ticks_on_period(self, timers, clock):
        calls = []
        tick = FixedTick(timers, 1.0, lambda: calls.append(clock()))
        tick.start()
        timers.run_due()
        for _ in range(3):
            clock.advance(1.0)
            timers.run_due()
        assert calls == [100.0, 101.0, 102.0, 103.0]

    def test_reentrant_tick_is_skipped(self, timers, clock):
        calls = []
        tick = FixedTick(timers, 1.0, lambda: None)

        def body():
            calls.append("outer")
            # A nested attempt while the first is in flight
            assert tick.fire() is False

        tick.callback = body
        assert tick.fire() is True
        assert calls == ["outer"]
        assert tick.skipped == 1
        assert not tick.busy

    def test_overrun_skips_missed_slots(self, timers, clock):
        calls = []

        def slow():
            calls.append(clock())
            clock.advance(2.5)  # Takes longer than two periods

        tick = FixedTick(timers, 1.0, slow)
        tick.start()
        timers.run_due()
        assert calls == [100.0]
        assert tick.skipped == 2
        assert timers.next_due() == pytest.approx(103.0)

    def test_stop_prevents_further_ticks(self, timers, clock):
        calls = []
        tick = FixedTick(timers, 1.0, lambda: calls.append(1))
        tick.start()
        timers.run_due()
        tick.stop()
        clock.advance(10)
        timers.run_due()
        assert calls == [1]
        assert not tick.running

    def test_busy_flag_cleared_after_exception(self, timers):
        def boom():
            raise RuntimeError("tick failed")

        tick = FixedTick(timers, 1.0, boom)
        with pytest.raises(RuntimeError):
            tick.fire()
        assert not tick.busy

    def test_failing_tick_keeps_schedule(self, timers, clock):
        calls = []

        def flaky():
            calls.append(clock())
            if len(calls) == 1:
                raise RuntimeError("first tick failed")

        tick = FixedTick(timers, 1.0, flaky)
        tick.start()
        timers.run_due()
        clock.advance(1.0)
        timers.run_due()
        assert calls == [100.0, 101.0]
