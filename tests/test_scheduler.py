from __future__ import annotations

import threading

from tsw_inspector.scheduler import PollingScheduler, RepeatingTimer


def test_start_refuses_second_timer_for_same_key(scheduler, timers):
    assert scheduler.start("Cab.Speed", lambda: None) is True
    assert scheduler.start("Cab.Speed", lambda: None) is False

    assert len(timers.active()) == 1
    assert timers.active()[0].interval == 2.0


def test_stop_and_stop_all(scheduler, timers):
    scheduler.start("a", lambda: None)
    scheduler.start("b", lambda: None)

    assert scheduler.stop("a") is True
    assert scheduler.stop("a") is False
    assert scheduler.active_keys() == ["b"]

    assert scheduler.stop_all() == 1
    assert len(scheduler) == 0
    assert timers.active() == []


def test_repeating_timer_ticks_until_cancelled():
    ticked = threading.Event()
    count = []

    def tick():
        count.append(1)
        if len(count) >= 2:
            ticked.set()

    timer = RepeatingTimer(0.01, tick, name="test")
    timer.start()
    assert ticked.wait(timeout=2.0)
    timer.cancel()

    assert timer.cancelled


def test_repeating_timer_survives_failing_tick():
    ticked = threading.Event()
    calls = []

    def tick():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("remote hiccup")
        ticked.set()

    scheduler = PollingScheduler(0.01)
    scheduler.start("flaky", tick)
    try:
        assert ticked.wait(timeout=2.0)
    finally:
        scheduler.stop_all()
