from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List


logger = logging.getLogger(__name__)

HOVER_ENTER = "hover:enter"
HOVER_LEAVE = "hover:leave"
PRESS = "press"
RELEASE = "release"
GESTURE_COUNTDOWN = "gesture:countdown"
GESTURE_CANCELLED = "gesture:cancelled"
GESTURE_ARMED = "gesture:armed"

EVENT_NAMES = (
    HOVER_ENTER,
    HOVER_LEAVE,
    PRESS,
    RELEASE,
    GESTURE_COUNTDOWN,
    GESTURE_CANCELLED,
    GESTURE_ARMED,
)


class EventBus:
    """
    Push-based event delivery to subscribers.

    Events:
        - ``hover:enter(target_id, pointer)``
        - ``hover:leave(target_id, pointer_or_none)``
        - ``press(target_id, pointer)``
        - ``release(target_id, pointer_or_none)``
        - ``gesture:countdown(seconds_remaining)``
        - ``gesture:cancelled()``
        - ``gesture:armed()``

    A subscriber that raises is logged and skipped; the remaining
    subscribers still receive the event.
    """

    def __init__(self) -> None:
        self._callbacks: Dict[str, List[Callable[..., Any]]] = {name: [] for name in EVENT_NAMES}

    def on(self, event: str, callback: Callable[..., Any]) -> Callable[[], None]:
        """Subscribe ``callback``; returns a function that unsubscribes it."""
        if event not in self._callbacks:
            raise ValueError(f"Unknown event '{event}'. Available: {list(EVENT_NAMES)}")
        self._callbacks[event].append(callback)
        return lambda: self.off(event, callback)

    def off(self, event: str, callback: Callable[..., Any]) -> None:
        callbacks = self._callbacks.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def emit(self, event: str, *args: Any) -> None:
        for callback in list(self._callbacks.get(event, [])):
            try:
                callback(*args)
            except Exception:
                logger.warning("Subscriber for '%s' raised", event, exc_info=True)

    def clear(self) -> None:
        for callbacks in self._callbacks.values():
            callbacks.clear()
