import logging

import pytest

from conftest import make_pointer
from gesturebooth.config import TargetConfig
from gesturebooth.errors import ConfigurationError, TargetRegistrationError
from gesturebooth.events import HOVER_ENTER, HOVER_LEAVE, PRESS, RELEASE
from gesturebooth.targets import TargetRegistry
from gesturebooth.types import Rect
from gesturebooth.viewport import compute_mapping

# Bounds in normalized units on a 1x1 surface.
MAPPING = compute_mapping(1, 1, 1, 1)
CENTER_RECT = Rect(0.45, 0.45, 0.1, 0.1)


@pytest.fixture
def registry(bus, scheduler):
    return TargetRegistry(bus, scheduler, release_delay_ms=200.0)


def tick(registry, scheduler, now, pointers):
    scheduler.run_due(now)
    registry.update(pointers, MAPPING, now)


def near():
    return [make_pointer(0.5, 0.51)]


class TestRegistration:
    def test_rejects_empty_id(self, registry):
        with pytest.raises(TargetRegistrationError):
            registry.register("", lambda: CENTER_RECT)

    def test_rejects_duplicate_id(self, registry):
        registry.register("a", lambda: CENTER_RECT)
        with pytest.raises(TargetRegistrationError):
            registry.register("a", lambda: CENTER_RECT)

    def test_rejects_non_callable_bounds(self, registry):
        with pytest.raises(TargetRegistrationError):
            registry.register("a", CENTER_RECT)

    @pytest.mark.parametrize("overrides", [{"activation_radius": 0}, {"hold_duration_ms": -1}, {"colour": "red"}])
    def test_rejects_bad_config(self, registry, overrides):
        with pytest.raises(TargetRegistrationError):
            registry.register("a", lambda: CENTER_RECT, **overrides)

    def test_registration_error_is_a_configuration_error(self):
        assert issubclass(TargetRegistrationError, ConfigurationError)

    def test_overrides_merge_over_defaults(self, registry):
        registry.register("a", lambda: CENTER_RECT, require_hold=False)
        assert "a" in registry
        assert len(registry) == 1
        assert registry.get("a").hovered is False

    def test_update_defaults_affects_future_registrations(self, registry):
        cfg = registry.update_defaults(activation_radius=0.2, hold_duration_ms=500)
        assert cfg == TargetConfig(activation_radius=0.2, hold_duration_ms=500, require_hold=True)
        assert registry.default_config.activation_radius == 0.2

    def test_unregister_unknown_is_a_noop(self, registry):
        assert registry.unregister("nope") is False
        assert registry.get("nope") is None


class TestImmediatePress:
    def test_single_press_per_hover(self, registry, scheduler, recorder):
        registry.register("btn", lambda: CENTER_RECT, require_hold=False)

        tick(registry, scheduler, 0, near())
        assert recorder.names() == [HOVER_ENTER, PRESS]
        assert registry.get("btn").pressed

        tick(registry, scheduler, 50, near())
        assert recorder.names() == [HOVER_ENTER, PRESS]

        tick(registry, scheduler, 200, near())
        assert recorder.names() == [HOVER_ENTER, PRESS, RELEASE]
        status = registry.get("btn")
        assert status.hovered and not status.pressed

        # Still hovering after the release: no new press until hover is re-entered.
        tick(registry, scheduler, 400, near())
        assert len(recorder.of(PRESS)) == 1

        tick(registry, scheduler, 450, [])
        tick(registry, scheduler, 500, near())
        assert len(recorder.of(PRESS)) == 2

    def test_release_carries_press_pointer(self, registry, scheduler, recorder):
        registry.register("btn", lambda: CENTER_RECT, require_hold=False)
        pointers = near()
        tick(registry, scheduler, 0, pointers)
        tick(registry, scheduler, 200, pointers)
        assert recorder.of(RELEASE) == [("btn", pointers[0])]


class TestHold:
    def test_progress_and_activation(self, registry, scheduler, recorder):
        registry.register("btn", lambda: CENTER_RECT, hold_duration_ms=1000)

        tick(registry, scheduler, 0, near())
        assert registry.get("btn").hold_progress == 0.0
        tick(registry, scheduler, 500, near())
        assert registry.get("btn").hold_progress == pytest.approx(0.5)
        tick(registry, scheduler, 999, near())
        assert not recorder.of(PRESS)

        tick(registry, scheduler, 1000, near())
        assert registry.get("btn").hold_progress == 1.0
        assert len(recorder.of(PRESS)) == 1

        tick(registry, scheduler, 1200, near())
        assert len(recorder.of(RELEASE)) == 1
        assert registry.get("btn").hold_progress == 0.0
        tick(registry, scheduler, 2500, near())
        assert len(recorder.of(PRESS)) == 1

    def test_losing_hover_restarts_from_zero(self, registry, scheduler, recorder):
        registry.register("btn", lambda: CENTER_RECT, hold_duration_ms=1000)

        tick(registry, scheduler, 0, near())
        tick(registry, scheduler, 500, [])
        assert registry.get("btn").hold_progress == 0.0
        assert recorder.names() == [HOVER_ENTER, HOVER_LEAVE]

        tick(registry, scheduler, 600, near())
        assert registry.get("btn").hold_progress == 0.0
        tick(registry, scheduler, 1100, near())
        assert registry.get("btn").hold_progress == pytest.approx(0.5)
        assert not recorder.of(PRESS)
        tick(registry, scheduler, 1600, near())
        assert len(recorder.of(PRESS)) == 1

    def test_zero_duration_fires_on_first_frame(self, registry, scheduler, recorder):
        registry.register("btn", lambda: CENTER_RECT, hold_duration_ms=0)
        tick(registry, scheduler, 0, near())
        assert recorder.names() == [HOVER_ENTER, PRESS]


class TestHover:
    def test_closest_pointer_is_reported(self, registry, scheduler, recorder):
        registry.register("btn", lambda: CENTER_RECT, require_hold=False, activation_radius=0.1)
        far = make_pointer(0.56, 0.5, hand_index=0)
        close = make_pointer(0.51, 0.5, hand_index=1)
        tick(registry, scheduler, 0, [far, close])
        assert recorder.of(HOVER_ENTER) == [("btn", close)]
        assert recorder.of(PRESS) == [("btn", close)]

    def test_any_qualifying_pointer_hovers(self, registry, scheduler):
        registry.register("btn", lambda: CENTER_RECT)
        tick(registry, scheduler, 0, [make_pointer(0.9, 0.9), make_pointer(0.5, 0.5)])
        assert registry.get("btn").hovered

    def test_out_of_radius_does_not_hover(self, registry, scheduler, recorder):
        registry.register("btn", lambda: CENTER_RECT)
        tick(registry, scheduler, 0, [make_pointer(0.5, 0.56)])
        assert not registry.get("btn").hovered
        assert recorder.events == []

    def test_losing_all_hands_clears_hover_in_same_frame(self, registry, scheduler, recorder):
        registry.register("a", lambda: CENTER_RECT)
        registry.register("b", lambda: Rect(0.1, 0.1, 0.1, 0.1))
        tick(registry, scheduler, 0, [make_pointer(0.5, 0.5), make_pointer(0.15, 0.15, hand_index=1)])
        assert registry.get("a").hovered and registry.get("b").hovered

        tick(registry, scheduler, 16, [])
        assert not registry.get("a").hovered
        assert not registry.get("b").hovered
        assert sorted(args for args in recorder.of(HOVER_LEAVE)) == [("a", None), ("b", None)]

    def test_leaving_one_target_does_not_affect_another(self, registry, scheduler):
        registry.register("a", lambda: CENTER_RECT)
        registry.register("b", lambda: Rect(0.1, 0.1, 0.1, 0.1))
        tick(registry, scheduler, 0, [make_pointer(0.5, 0.5), make_pointer(0.15, 0.15, hand_index=1)])
        tick(registry, scheduler, 100, [make_pointer(0.15, 0.15, hand_index=1)])
        assert not registry.get("a").hovered
        assert registry.get("b").hovered
        assert registry.get("b").hold_progress == pytest.approx(0.1)

    def test_bounds_are_reread_every_frame(self, registry, scheduler):
        rect = {"r": CENTER_RECT}
        registry.register("btn", lambda: rect["r"])
        tick(registry, scheduler, 0, near())
        assert registry.get("btn").hovered
        rect["r"] = Rect(0.0, 0.0, 0.1, 0.1)
        tick(registry, scheduler, 16, near())
        assert not registry.get("btn").hovered

    def test_hidden_target_is_not_hovered(self, registry, scheduler):
        registry.register("btn", lambda: None)
        tick(registry, scheduler, 0, near())
        assert not registry.get("btn").hovered


class TestPressedInvariant:
    def test_leaving_while_pressed_releases_immediately(self, registry, scheduler, recorder):
        registry.register("btn", lambda: CENTER_RECT, require_hold=False)
        tick(registry, scheduler, 0, near())
        tick(registry, scheduler, 50, [])
        assert recorder.names() == [HOVER_ENTER, PRESS, RELEASE, HOVER_LEAVE]
        status = registry.get("btn")
        assert not status.pressed and not status.hovered

        # The pending auto-release is gone.
        tick(registry, scheduler, 200, [])
        assert len(recorder.of(RELEASE)) == 1
        assert scheduler.pending() == 0

    def test_unregister_cancels_pending_release(self, registry, scheduler, recorder):
        registry.register("btn", lambda: CENTER_RECT, require_hold=False)
        tick(registry, scheduler, 0, near())
        assert registry.unregister("btn") is True
        assert scheduler.pending() == 0
        tick(registry, scheduler, 300, near())
        assert not recorder.of(RELEASE)

    def test_reregistered_target_ignores_old_release(self, registry, scheduler, recorder):
        registry.register("btn", lambda: CENTER_RECT, require_hold=False)
        tick(registry, scheduler, 0, near())
        registry.unregister("btn")
        registry.register("btn", lambda: CENTER_RECT, require_hold=False)
        tick(registry, scheduler, 100, near())
        assert registry.get("btn").pressed
        tick(registry, scheduler, 200, near())
        # Released at 300 by its own timer, not at 200 by the old one.
        assert registry.get("btn").pressed
        tick(registry, scheduler, 300, near())
        assert not registry.get("btn").pressed


class TestIsolation:
    def test_failing_bounds_does_not_stop_other_targets(self, registry, scheduler, caplog):
        def broken():
            raise RuntimeError("layout gone")

        registry.register("broken", broken)
        registry.register("ok", lambda: CENTER_RECT)
        with caplog.at_level(logging.WARNING, logger="gesturebooth.targets"):
            tick(registry, scheduler, 0, near())
        assert registry.get("ok").hovered
        assert not registry.get("broken").hovered
        assert "broken" in caplog.text

    def test_failing_bounds_drops_hover_and_press(self, registry, scheduler, recorder, caplog):
        state = {"fail": False}

        def bounds():
            if state["fail"]:
                raise RuntimeError("layout gone")
            return CENTER_RECT

        registry.register("btn", bounds, require_hold=False)
        tick(registry, scheduler, 0, near())
        assert registry.get("btn").pressed

        state["fail"] = True
        with caplog.at_level(logging.WARNING, logger="gesturebooth.targets"):
            tick(registry, scheduler, 100, [])
        status = registry.get("btn")
        assert not status.hovered and not status.pressed
        assert recorder.names() == [HOVER_ENTER, PRESS, RELEASE, HOVER_LEAVE]

        # The cancelled auto-release must not fire later.
        tick(registry, scheduler, 300, [])
        assert len(recorder.of(RELEASE)) == 1

    def test_failing_subscriber_does_not_stop_processing(self, registry, scheduler, bus, recorder):
        def bad(*args):
            raise ValueError("boom")

        bus.on(HOVER_ENTER, bad)
        registry.register("btn", lambda: CENTER_RECT, require_hold=False)
        tick(registry, scheduler, 0, near())
        assert registry.get("btn").pressed
        assert PRESS in recorder.names()


def test_status_snapshot(registry, scheduler):
    registry.register("a", lambda: CENTER_RECT)
    tick(registry, scheduler, 0, near())
    status = registry.status()
    assert status["hand_count"] == 1
    assert status["target_count"] == 1
    assert status["targets"]["a"].hovered


def test_clear_releases_and_unhovers(registry, scheduler, recorder):
    registry.register("btn", lambda: CENTER_RECT, require_hold=False)
    tick(registry, scheduler, 0, near())
    registry.clear()
    assert recorder.names() == [HOVER_ENTER, PRESS, RELEASE, HOVER_LEAVE]
    assert registry.get("btn").hovered is False
    assert scheduler.pending() == 0
