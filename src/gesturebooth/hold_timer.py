from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Callable, Iterable, Optional

from .config import GestureTimerConfig
from .events import GESTURE_ARMED, GESTURE_CANCELLED, GESTURE_COUNTDOWN, EventBus
from .scheduler import Scheduler, TimerHandle
from .types import GestureSymbol


logger = logging.getLogger(__name__)


class TimerState(str, Enum):
    IDLE = "idle"
    COUNTING = "counting"
    ARMED = "armed"
    COOLDOWN = "cooldown"


class GestureHoldTimer:
    """
    Fire an action once a gesture has been held for ``duration_ms``.

    While counting, ``gesture:countdown`` is emitted whenever the whole
    seconds remaining change. When the hold completes, ``gesture:armed`` is
    emitted, ``capture_action`` is invoked and the timer ignores the watched
    gesture for ``cooldown_ms`` so a sustained pose cannot re-trigger.
    """

    def __init__(
        self,
        events: EventBus,
        scheduler: Scheduler,
        config: Optional[GestureTimerConfig] = None,
        capture_action: Optional[Callable[[], None]] = None,
    ) -> None:
        self._events = events
        self._scheduler = scheduler
        self.config = (config or GestureTimerConfig()).validate()
        self.capture_action = capture_action

        self._state = TimerState.IDLE
        self._started_at: Optional[float] = None
        self._countdown: Optional[int] = None
        self._generation = 0
        self._cooldown_handle: Optional[TimerHandle] = None
        self.fired_count = 0

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def started_at(self) -> Optional[float]:
        return self._started_at

    @property
    def countdown(self) -> Optional[int]:
        """Seconds remaining while counting, else None."""
        return self._countdown

    def update(self, gestures: Iterable[GestureSymbol], now_ms: float) -> TimerState:
        """Feed the union of this frame's hand gestures."""
        if self._state in (TimerState.ARMED, TimerState.COOLDOWN):
            return self._state

        present = self.config.watched_symbol in set(gestures)
        if self._state == TimerState.IDLE:
            if not present:
                return self._state
            self._state = TimerState.COUNTING
            self._started_at = now_ms
            self._countdown = None
            logger.debug("'%s' detected, counting", self.config.watched_symbol.value)

        if not present:
            self._cancel_counting()
            return self._state

        elapsed = now_ms - self._started_at
        if elapsed >= self.config.duration_ms:
            self._arm(now_ms)
            return self._state

        remaining = int(math.ceil((self.config.duration_ms - elapsed) / 1000.0))
        if remaining != self._countdown:
            self._countdown = remaining
            self._events.emit(GESTURE_COUNTDOWN, remaining)
        return self._state

    def reset(self) -> None:
        """Return to idle, dropping any pending cooldown."""
        was_counting = self._state == TimerState.COUNTING
        self._generation += 1
        if self._cooldown_handle is not None:
            self._cooldown_handle.cancel()
            self._cooldown_handle = None
        self._state = TimerState.IDLE
        self._started_at = None
        self._countdown = None
        if was_counting:
            self._events.emit(GESTURE_CANCELLED)

    def _cancel_counting(self) -> None:
        logger.debug("'%s' lost, resetting timer", self.config.watched_symbol.value)
        self._state = TimerState.IDLE
        self._started_at = None
        self._countdown = None
        self._events.emit(GESTURE_CANCELLED)

    def _arm(self, now_ms: float) -> None:
        self._state = TimerState.ARMED
        self._countdown = None
        self.fired_count += 1
        logger.info("'%s' held for %.0f ms, firing", self.config.watched_symbol.value, self.config.duration_ms)
        self._events.emit(GESTURE_ARMED)
        if self.capture_action is not None:
            try:
                self.capture_action()
            except Exception:
                logger.warning("Capture action raised", exc_info=True)

        self._state = TimerState.COOLDOWN
        self._generation += 1
        generation = self._generation
        self._cooldown_handle = self._scheduler.call_at(
            now_ms + self.config.cooldown_ms,
            lambda: self._cooldown_done(generation),
        )

    def _cooldown_done(self, generation: int) -> None:
        if generation != self._generation:
            logger.debug("Discarding stale cooldown expiry")
            return
        self._cooldown_handle = None
        self._state = TimerState.IDLE
        self._started_at = None
