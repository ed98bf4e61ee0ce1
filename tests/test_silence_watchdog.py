"""Tests for SilenceWatchdog."""

from __future__ import annotations

import time
from typing import Callable

import pytest

from silence_watchdog import SilenceWatchdog


class _ManualTimer:
    def __init__(self, interval: float, fn: Callable[[], None]) -> None:
        self.interval = interval
        self.fn = fn
        self.daemon = False
        self.cancelled = False

    def start(self) -> None:
        pass

    def cancel(self) -> None:
        self.cancelled = True


# ---------------------------------------------------------------
# Real timers
# ---------------------------------------------------------------

def test_continuous_resets_never_fire() -> None:
    fired: list[int] = []
    watchdog = SilenceWatchdog(on_fire=lambda: fired.append(1), interval_s=0.2)
    watchdog.arm()

    for _ in range(8):
        time.sleep(0.05)
        watchdog.reset()

    assert fired == []
    watchdog.cancel()


def test_quiet_interval_fires_exactly_once() -> None:
    fired: list[int] = []
    watchdog = SilenceWatchdog(on_fire=lambda: fired.append(1), interval_s=0.1)
    watchdog.arm()
    time.sleep(0.4)
    watchdog.reset()  # already fired for this arming
    time.sleep(0.2)

    assert fired == [1]
    assert watchdog.fired is True
    assert watchdog.deadline is None


def test_cancel_suppresses_firing() -> None:
    fired: list[int] = []
    watchdog = SilenceWatchdog(on_fire=lambda: fired.append(1), interval_s=0.1)
    watchdog.arm()
    watchdog.cancel()
    time.sleep(0.25)

    assert fired == []
    assert watchdog.armed is False


# ---------------------------------------------------------------
# Manual timers
# ---------------------------------------------------------------

def test_superseded_timer_is_ignored() -> None:
    timers: list[_ManualTimer] = []

    def factory(interval: float, fn: Callable[[], None]) -> _ManualTimer:
        timers.append(_ManualTimer(interval, fn))
        return timers[-1]

    fired: list[int] = []
    watchdog = SilenceWatchdog(on_fire=lambda: fired.append(1), interval_s=5.0, timer_factory=factory)
    watchdog.arm()
    watchdog.reset()

    assert timers[0].cancelled is True
    timers[0].fn()
    assert fired == []

    timers[1].fn()
    timers[1].fn()
    assert fired == [1]


def test_reset_before_arm_does_nothing() -> None:
    timers: list[_ManualTimer] = []

    def factory(interval: float, fn: Callable[[], None]) -> _ManualTimer:
        timers.append(_ManualTimer(interval, fn))
        return timers[-1]

    watchdog = SilenceWatchdog(on_fire=lambda: None, timer_factory=factory)
    watchdog.reset()

    assert timers == []
    assert watchdog.deadline is None


def test_deadline_tracks_interval() -> None:
    watchdog = SilenceWatchdog(on_fire=lambda: None, interval_s=5.0)
    before = time.monotonic()
    watchdog.arm()

    assert watchdog.deadline is not None
    assert before + 5.0 <= watchdog.deadline <= time.monotonic() + 5.0
    watchdog.cancel()


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        SilenceWatchdog(on_fire=lambda: None, interval_s=0)
