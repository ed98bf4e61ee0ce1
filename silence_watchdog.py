"""Restartable countdown that signals the end of an utterance."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger("voicecount.watchdog")

DEFAULT_INTERVAL_S = 5.0

TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]


class SilenceWatchdog:
    """Fires ``on_fire`` once after ``interval_s`` without a ``reset()``.

    Each ``reset()`` starts a new timer generation; a timer from an older
    generation that wakes up late is ignored. After firing or ``cancel()``
    the watchdog stays quiet until ``arm()`` is called again.
    """

    def __init__(
        self,
        on_fire: Callable[[], None],
        interval_s: float = DEFAULT_INTERVAL_S,
        timer_factory: Optional[TimerFactory] = None,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self._on_fire = on_fire
        self._interval_s = interval_s
        self._timer_factory = timer_factory or threading.Timer
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._deadline: Optional[float] = None
        self._fired = False
        self._cancelled = True

    @property
    def interval_s(self) -> float:
        return self._interval_s

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def armed(self) -> bool:
        return self._timer is not None

    def arm(self) -> None:
        with self._lock:
            self._fired = False
            self._cancelled = False
            self._schedule()

    def reset(self) -> None:
        with self._lock:
            if self._fired or self._cancelled:
                return
            self._schedule()

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            self._generation += 1
            self._stop_timer()

    def _schedule(self) -> None:
        self._stop_timer()
        self._generation += 1
        generation = self._generation
        timer = self._timer_factory(self._interval_s, lambda: self._expire(generation))
        timer.daemon = True
        self._timer = timer
        self._deadline = time.monotonic() + self._interval_s
        timer.start()

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._deadline = None

    def _expire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._fired or self._cancelled:
                return
            self._fired = True
            self._timer = None
            self._deadline = None
        logger.debug("silence interval of %.2fs elapsed", self._interval_s)
        self._on_fire()
