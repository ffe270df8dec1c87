"""
Virtual UI targets driven by hand pointers.

Each registered target runs a small state machine every frame::

    idle -> hovered -> (holding) -> activated -> (auto release) -> hovered/idle

Hover is true while any pointer lies within the target's activation radius of
its bounds centre; the closest qualifying pointer is the one reported in
events. A press fires once per hover session, either on the first hovered
frame or when the hold progress first reaches 1, and releases itself after a
fixed delay. Delayed releases carry a ``(target_id, generation)`` token and are
dropped if the target was released, reset or unregistered in the meantime.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, List, Optional

from .config import TargetConfig
from .errors import ConfigurationError, TargetRegistrationError
from .events import HOVER_ENTER, HOVER_LEAVE, PRESS, RELEASE, EventBus
from .scheduler import Scheduler, TimerHandle
from .types import Pointer, Rect
from .utils import clamp, distance
from .viewport import ViewportMapping, normalize_surface_point


logger = logging.getLogger(__name__)

BoundsAccessor = Callable[[], Optional[Rect]]


@dataclass
class TargetState:
    hovered: bool = False
    pressed: bool = False
    hold_started_at: Optional[float] = None
    hold_progress: float = 0.0
    activated: bool = False  # pressed during the current hover session


@dataclass(frozen=True)
class TargetStatus:
    """Read-only view of a target's runtime state."""

    id: str
    hovered: bool
    pressed: bool
    hold_progress: float


@dataclass
class VirtualTarget:
    id: str
    bounds: BoundsAccessor
    config: TargetConfig
    state: TargetState
    generation: int = 0
    pending_release: Optional[TimerHandle] = None
    press_pointer: Optional[Pointer] = None

    def status(self) -> TargetStatus:
        return TargetStatus(
            id=self.id,
            hovered=self.state.hovered,
            pressed=self.state.pressed,
            hold_progress=self.state.hold_progress,
        )


class TargetRegistry:
    """Owns every registered target and its runtime state."""

    def __init__(
        self,
        events: EventBus,
        scheduler: Scheduler,
        default_config: Optional[TargetConfig] = None,
        release_delay_ms: float = 200.0,
    ) -> None:
        self._events = events
        self._scheduler = scheduler
        self._default_config = (default_config or TargetConfig()).validate()
        self._release_delay_ms = release_delay_ms
        self._targets: Dict[str, VirtualTarget] = {}
        self._generations = itertools.count(1)
        self._pointer_count = 0

    def __len__(self) -> int:
        return len(self._targets)

    def __contains__(self, target_id: object) -> bool:
        return target_id in self._targets

    @property
    def default_config(self) -> TargetConfig:
        return self._default_config

    def ids(self) -> List[str]:
        return list(self._targets)

    def register(
        self,
        target_id: str,
        bounds: BoundsAccessor,
        config: Optional[TargetConfig] = None,
        **overrides: Any,
    ) -> TargetStatus:
        """
        Register a target.

        ``bounds`` is called every frame and must return the target's current
        rectangle on the destination surface (or None while it is hidden).
        Per-target settings start from ``config`` (or the registry default)
        with ``overrides`` applied on top.
        """
        if not isinstance(target_id, str) or not target_id:
            raise TargetRegistrationError(f"Target id must be a non-empty string, got {target_id!r}")
        if target_id in self._targets:
            raise TargetRegistrationError(f"Target '{target_id}' is already registered")
        if not callable(bounds):
            raise TargetRegistrationError(f"Bounds accessor for '{target_id}' is not callable")
        try:
            resolved = (config or self._default_config).validate().merged(overrides)
        except ConfigurationError as e:
            raise TargetRegistrationError(f"Invalid config for target '{target_id}': {e}") from e

        target = VirtualTarget(id=target_id, bounds=bounds, config=resolved, state=TargetState())
        self._targets[target_id] = target
        logger.info("Target '%s' registered (%s)", target_id, resolved)
        return target.status()

    def unregister(self, target_id: str) -> bool:
        target = self._targets.pop(target_id, None)
        if target is None:
            logger.debug("Ignoring unregister of unknown target '%s'", target_id)
            return False
        self._cancel_release(target)
        target.generation = next(self._generations)
        logger.info("Target '%s' unregistered", target_id)
        return True

    def update_defaults(
        self,
        activation_radius: Optional[float] = None,
        hold_duration_ms: Optional[float] = None,
        require_hold: Optional[bool] = None,
    ) -> TargetConfig:
        """Change the defaults used by future registrations."""
        changes: Dict[str, Any] = {}
        if activation_radius is not None:
            changes["activation_radius"] = activation_radius
        if hold_duration_ms is not None:
            changes["hold_duration_ms"] = hold_duration_ms
        if require_hold is not None:
            changes["require_hold"] = require_hold
        self._default_config = replace(self._default_config, **changes).validate()
        return self._default_config

    def get(self, target_id: str) -> Optional[TargetStatus]:
        target = self._targets.get(target_id)
        return None if target is None else target.status()

    def status(self) -> Dict[str, Any]:
        return {
            "hand_count": self._pointer_count,
            "target_count": len(self._targets),
            "targets": {tid: t.status() for tid, t in self._targets.items()},
        }

    def update(self, pointers: Iterable[Pointer], mapping: ViewportMapping, now_ms: float) -> None:
        """Advance every target by one frame."""
        pointers = list(pointers)
        self._pointer_count = len(pointers)
        for target in list(self._targets.values()):
            try:
                rect = target.bounds()
            except Exception:
                logger.warning("Bounds accessor for target '%s' raised; treating it as not hovered", target.id, exc_info=True)
                self._advance(target, False, None, now_ms)
                continue
            hovered, closest = self._hit_test(target, rect, pointers, mapping)
            self._advance(target, hovered, closest, now_ms)

    def clear(self) -> None:
        """Release and un-hover every target and drop pending releases."""
        for target in list(self._targets.values()):
            if target.state.pressed:
                self._release(target, None)
            self._cancel_release(target)
            target.generation = next(self._generations)
            was_hovered = target.state.hovered
            target.state = TargetState()
            if was_hovered:
                self._events.emit(HOVER_LEAVE, target.id, None)

    def _hit_test(
        self,
        target: VirtualTarget,
        rect: Optional[Rect],
        pointers: List[Pointer],
        mapping: ViewportMapping,
    ):
        if rect is None or not pointers:
            return False, None
        center = normalize_surface_point(rect.center, mapping)
        if center is None:
            return False, None

        closest: Optional[Pointer] = None
        best = float("inf")
        for p in pointers:
            d = distance((p.x, p.y), center)
            if d < target.config.activation_radius and d < best:
                best = d
                closest = p
        return closest is not None, closest

    def _advance(self, target: VirtualTarget, hovered: bool, pointer: Optional[Pointer], now_ms: float) -> None:
        st = target.state
        if hovered and not st.hovered:
            st.hovered = True
            self._events.emit(HOVER_ENTER, target.id, pointer)
        elif not hovered and st.hovered:
            if st.pressed:
                self._release(target, None)
            st.hovered = False
            st.activated = False
            self._reset_hold(st)
            self._events.emit(HOVER_LEAVE, target.id, None)

        if not hovered:
            self._reset_hold(st)
            return
        if st.activated:
            return

        if target.config.require_hold:
            if st.hold_started_at is None:
                st.hold_started_at = now_ms
            duration = target.config.hold_duration_ms
            if duration <= 0:
                st.hold_progress = 1.0
            else:
                st.hold_progress = clamp((now_ms - st.hold_started_at) / duration, 0.0, 1.0)
            if st.hold_progress >= 1.0:
                self._activate(target, pointer, now_ms)
        else:
            self._activate(target, pointer, now_ms)

    def _activate(self, target: VirtualTarget, pointer: Optional[Pointer], now_ms: float) -> None:
        st = target.state
        st.pressed = True
        st.activated = True
        target.press_pointer = pointer
        target.generation = next(self._generations)
        generation = target.generation
        target_id = target.id
        target.pending_release = self._scheduler.call_at(
            now_ms + self._release_delay_ms,
            lambda: self._release_due(target_id, generation),
        )
        logger.info("Target '%s' activated", target_id)
        self._events.emit(PRESS, target_id, pointer)

    def _release_due(self, target_id: str, generation: int) -> None:
        target = self._targets.get(target_id)
        if target is None or target.generation != generation:
            logger.debug("Discarding stale release for target '%s'", target_id)
            return
        target.pending_release = None
        self._release(target, target.press_pointer)

    def _release(self, target: VirtualTarget, pointer: Optional[Pointer]) -> None:
        if not target.state.pressed:
            return
        self._cancel_release(target)
        target.generation = next(self._generations)
        target.state.pressed = False
        target.press_pointer = None
        self._reset_hold(target.state)
        self._events.emit(RELEASE, target.id, pointer)

    @staticmethod
    def _cancel_release(target: VirtualTarget) -> None:
        if target.pending_release is not None:
            target.pending_release.cancel()
            target.pending_release = None

    @staticmethod
    def _reset_hold(st: TargetState) -> None:
        st.hold_started_at = None
        st.hold_progress = 0.0
