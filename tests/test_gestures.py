# tests/test_gestures.py
"""
Tests for tap tiers, chrome clamping and swipe durations.
"""

import pytest

from uiauto_mobile.classifier import GeometryFilter
from uiauto_mobile.driver import Locator
from uiauto_mobile.element import Point
from uiauto_mobile.exceptions import InteractionFailedError, StaleElementError
from uiauto_mobile.gestures import (
    DOWN,
    TIER_COORDINATE,
    TIER_POSITIONAL,
    TIER_SEMANTIC,
    GestureExecutor,
    GestureSpec,
    Offset,
)
from uiauto_mobile.locators import BY_IOS_PREDICATE, Intent, LocatorStrategy, LocatorStrategyChain

from .fakes import FakeDriver, FakeNode


@pytest.fixture
def gestures(driver):
    return GestureExecutor(driver, status_bar_height=54, nav_bar_height=34)


def resolve(driver, label):
    return LocatorStrategyChain(driver).resolve(label).element


class TestTapTiers:
    """semantic -> positional -> coordinate."""

    def test_semantic_tap_first(self, gestures, driver):
        result = gestures.tap(resolve(driver, "Assets"))

        assert result
        assert result.tier == TIER_SEMANTIC
        assert result.failures == []
        assert driver.calls == [("click", "Assets")]

    def test_positional_after_click_fails(self):
        driver = FakeDriver(fixed=[FakeNode("Save", y=400, type="XCUIElementTypeButton", click_error=True)])
        gestures = GestureExecutor(driver, 54, 34)

        result = gestures.tap(resolve(driver, "Save"))

        assert result.tier == TIER_POSITIONAL
        assert result.point == Point(195, 430)
        assert [tier for tier, _ in result.failures] == [TIER_SEMANTIC]
        assert driver.calls == [("pointer_tap", 195, 430)]

    def test_coordinate_only_after_both_fail(self):
        driver = FakeDriver(fixed=[FakeNode("Save", y=400, type="XCUIElementTypeButton", click_error=True)])
        driver.gesture_error = True
        gestures = GestureExecutor(driver, 54, 34)

        result = gestures.tap(resolve(driver, "Save"))

        assert result.tier == TIER_COORDINATE
        assert [tier for tier, _ in result.failures] == [TIER_SEMANTIC, TIER_POSITIONAL]
        assert driver.calls == [("mobile: tap", {"x": 195, "y": 430})]

    def test_every_tier_failing_is_a_falsy_result(self):
        driver = FakeDriver(fixed=[FakeNode("Save", y=400, type="XCUIElementTypeButton", click_error=True)])
        driver.gesture_error = True
        driver.failing_commands.add("mobile: tap")
        gestures = GestureExecutor(driver, 54, 34)

        result = gestures.tap(resolve(driver, "Save"))

        assert not result
        assert len(result.failures) == 3
        assert isinstance(result.error, InteractionFailedError)
        assert result.error.tier == TIER_COORDINATE
        assert isinstance(result.error.cause, InteractionFailedError)
        with pytest.raises(InteractionFailedError):
            result.raise_for_failure()

    def test_tap_or_raise(self):
        driver = FakeDriver(fixed=[FakeNode("Save", click_error=True)])
        driver.gesture_error = True
        driver.failing_commands.add("mobile: tap")

        with pytest.raises(InteractionFailedError, match="all 3 tier"):
            GestureExecutor(driver).tap_or_raise(resolve(driver, "Save"))

    def test_recycled_row_fails_with_stale_cause(self, gestures, driver):
        row = resolve(driver, "Row 2")
        driver._move_list(down=True)

        result = gestures.tap(row)

        assert not result
        assert isinstance(result.error.cause, StaleElementError)
        assert driver.calls == []

    def test_stale_handle_never_tapped_by_cached_geometry(self, gestures, driver):
        rows = Intent("row_2", (LocatorStrategy(
            "in_list",
            Locator(BY_IOS_PREDICATE, "label == 'Row 2'"),
            geometry=GeometryFilter("y_range", y_min=200),
        ),))
        row = LocatorStrategyChain(driver).resolve(rows).element
        assert row.rect.y == 260
        driver._move_list(down=True)

        result = gestures.tap(row)

        assert not result
        assert [tier for tier, _ in result.failures] == [TIER_SEMANTIC]
        assert isinstance(result.error.cause, StaleElementError)
        assert driver.calls == []


class TestPointTaps:
    """Absolute and anchor-relative points."""

    def test_point_goes_straight_to_coordinate_tier(self, gestures, driver):
        result = gestures.tap(Point(100, 300))

        assert result.tier == TIER_COORDINATE
        assert driver.calls == [("mobile: tap", {"x": 100, "y": 300})]

    def test_rejected_mobile_tap_sends_pointer_tap(self, gestures, driver):
        driver.failing_commands.add("mobile: tap")

        result = gestures.tap(Point(100, 300))

        assert result.tier == TIER_COORDINATE
        assert driver.calls == [("pointer_tap", 100, 300)]

    def test_anchor_offsets(self, gestures, driver):
        anchor = resolve(driver, "Assets")  # rect (20, 60, 350, 44)

        below = GestureSpec(anchor=anchor, offset=Offset(dy=100))
        beside = GestureSpec(anchor=anchor, offset=Offset(dx=150), edge="bottom_left")
        centred = GestureSpec(anchor=anchor, offset=Offset(x_pct=0.25))

        assert gestures.resolve_point(below) == Point(195, 182)
        assert gestures.resolve_point(beside) == Point(170, 104)
        assert gestures.resolve_point(centred) == Point(97, 82)

    def test_top_left_edge(self, gestures, driver):
        spec = GestureSpec(anchor=resolve(driver, "Assets"), edge="top_left", offset=Offset(dx=5, dy=5))
        assert gestures.resolve_point(spec) == Point(25, 65)


class TestClamp:
    """Chrome exclusion zones."""

    def test_status_bar_zone(self, gestures):
        assert gestures.clamp(Point(10, 5)) == Point(10, 55)

    def test_bottom_right_corner(self, gestures):
        assert gestures.clamp(Point(500, 844)) == Point(389, 809)

    def test_inside_point_unchanged(self, gestures):
        assert gestures.clamp(Point(195, 400)) == Point(195, 400)

    def test_relative_point_is_clamped(self, gestures, driver):
        spec = GestureSpec(anchor=resolve(driver, "Assets"), offset=Offset(dy=-80))
        assert gestures.resolve_point(spec) == Point(195, 55)


class TestSwipes:
    """Durations and the native fallback."""

    def test_scroll_down_moves_finger_up(self, gestures, driver):
        result = gestures.scroll(DOWN)

        assert result
        assert driver.calls == [("swipe", 590, 253, 400)]

    def test_vertical_flick_uses_flick_duration(self, gestures, driver):
        gestures.flick(Point(195, 600), Point(195, 300))
        assert driver.calls == [("swipe", 600, 300, 200)]

    def test_rejected_pointer_swipe_falls_back_to_drag(self, gestures, driver):
        driver.gesture_error = True

        result = gestures.swipe(Point(195, 600), Point(195, 300), 400)

        assert result.tier == TIER_COORDINATE
        assert driver.calls == [("mobile: dragFromToForDuration", {
            "fromX": 195, "fromY": 600, "toX": 195, "toY": 300, "duration": 0.4,
        })]

    def test_non_positive_duration(self, gestures):
        with pytest.raises(ValueError):
            gestures.swipe(Point(1, 100), Point(1, 200), 0)

    def test_unknown_direction(self, gestures):
        with pytest.raises(ValueError):
            gestures.scroll("sideways")

    def test_native_scroll_params(self, gestures, driver):
        assert gestures.native_scroll(DOWN, "label == 'Row 9'")
        assert driver.calls == [("mobile: scroll", {"direction": "down", "predicateString": "label == 'Row 9'"})]
