from __future__ import annotations

import json
import math
import os
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigurationError
from .types import GestureSymbol


@dataclass(frozen=True)
class TargetConfig:
    """Per-target interaction settings."""

    activation_radius: float = 0.05  # normalized surface units
    hold_duration_ms: float = 1000.0
    require_hold: bool = True

    def validate(self) -> "TargetConfig":
        _check_number("activation_radius", self.activation_radius)
        _check_number("hold_duration_ms", self.hold_duration_ms)
        if not isinstance(self.require_hold, bool):
            raise ConfigurationError(f"require_hold must be a bool, got {self.require_hold!r}")
        if not self.activation_radius > 0:
            raise ConfigurationError(f"activation_radius must be > 0, got {self.activation_radius!r}")
        if self.hold_duration_ms < 0:
            raise ConfigurationError(f"hold_duration_ms must be >= 0, got {self.hold_duration_ms!r}")
        return self

    def merged(self, overrides: Optional[Mapping[str, Any]]) -> "TargetConfig":
        if not overrides:
            return self
        return replace(self, **_checked_keys(TargetConfig, overrides)).validate()


@dataclass(frozen=True)
class GestureTimerConfig:
    """Hold-a-gesture-to-fire settings."""

    watched_symbol: GestureSymbol = GestureSymbol.PEACE
    duration_ms: float = 3000.0
    cooldown_ms: float = 2000.0

    def validate(self) -> "GestureTimerConfig":
        if not isinstance(self.watched_symbol, GestureSymbol):
            raise ConfigurationError(f"watched_symbol must be a GestureSymbol, got {self.watched_symbol!r}")
        _check_number("duration_ms", self.duration_ms)
        _check_number("cooldown_ms", self.cooldown_ms)
        if self.watched_symbol == GestureSymbol.UNKNOWN:
            raise ConfigurationError("watched_symbol cannot be 'unknown'")
        if self.duration_ms < 0 or self.cooldown_ms < 0:
            raise ConfigurationError("duration_ms and cooldown_ms must be >= 0")
        return self


@dataclass(frozen=True)
class EngineConfig:
    default_target: TargetConfig = field(default_factory=TargetConfig)
    gesture_timer: GestureTimerConfig = field(default_factory=GestureTimerConfig)
    release_delay_ms: float = 200.0
    pointer_landmark: int = 8  # index fingertip
    aspect_tolerance: float = 0.01

    def validate(self) -> "EngineConfig":
        self.default_target.validate()
        self.gesture_timer.validate()
        _check_number("release_delay_ms", self.release_delay_ms)
        _check_number("aspect_tolerance", self.aspect_tolerance)
        if not isinstance(self.pointer_landmark, int) or isinstance(self.pointer_landmark, bool):
            raise ConfigurationError(f"pointer_landmark must be an int, got {self.pointer_landmark!r}")
        if self.release_delay_ms < 0:
            raise ConfigurationError(f"release_delay_ms must be >= 0, got {self.release_delay_ms!r}")
        if not 0 <= self.pointer_landmark < 21:
            raise ConfigurationError(f"pointer_landmark must be a hand landmark index, got {self.pointer_landmark!r}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["gesture_timer"]["watched_symbol"] = self.gesture_timer.watched_symbol.value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EngineConfig":
        data = dict(_checked_keys(cls, data))
        if "default_target" in data:
            data["default_target"] = TargetConfig(**_checked_keys(TargetConfig, data["default_target"]))
        if "gesture_timer" in data:
            timer = dict(_checked_keys(GestureTimerConfig, data["gesture_timer"]))
            if "watched_symbol" in timer:
                timer["watched_symbol"] = parse_gesture(timer["watched_symbol"])
            data["gesture_timer"] = GestureTimerConfig(**timer)
        return cls(**data).validate()

    def save(self, path: str) -> None:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: str) -> "EngineConfig":
        """Load from JSON; a missing file yields the defaults."""
        if not os.path.exists(path):
            return cls()
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Could not parse config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")
        return cls.from_dict(data)


def _check_number(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ConfigurationError(f"{name} must be a finite number, got {value!r}")


def parse_gesture(value: Any) -> GestureSymbol:
    try:
        return GestureSymbol(value)
    except ValueError:
        available = [s.value for s in GestureSymbol]
        raise ConfigurationError(f"Unknown gesture '{value}'. Available: {available}") from None


def _checked_keys(cls: type, data: Mapping[str, Any]) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"{cls.__name__} settings must be a mapping, got {type(data).__name__}")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown {cls.__name__} keys: {unknown}")
    return data
