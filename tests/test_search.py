# tests/test_search.py
"""
Tests for scroll-bounded searches over the recycling fake list.

The fake list shows 5 rows at a time and moves 3 rows per scroll, so
"Row 9" becomes visible after two downward scrolls.
"""

import pytest

from uiauto_mobile.driver import Locator
from uiauto_mobile.gestures import DOWN, UP, GestureExecutor
from uiauto_mobile.governor import ScrollPermission
from uiauto_mobile.locators import (
    BY_ACCESSIBILITY_ID,
    BY_CLASS_NAME,
    BY_IOS_PREDICATE,
    COLLECTION,
    Found,
    LocatorStrategy,
    LocatorStrategyChain,
    NotFound,
    NotFoundReason,
)
from uiauto_mobile.screen import ScreenContext
from uiauto_mobile.search import BoundedScrollSearch

from .fakes import FakeDriver

CELLS = LocatorStrategy("cells", Locator(BY_CLASS_NAME, "XCUIElementTypeCell"), COLLECTION)


@pytest.fixture
def search(driver):
    return BoundedScrollSearch(LocatorStrategyChain(driver), GestureExecutor(driver, 54, 34))


@pytest.fixture
def screen():
    return ScreenContext("asset_list", max_scroll_down=4)


class TestSearchWithScroll:
    """Single-target searches."""

    def test_found_after_two_scrolls(self, search, screen, driver):
        result = search.search_with_scroll("Row 9", screen)

        assert isinstance(result, Found)
        assert result.element.label == "Row 9"
        assert result.scrolls == 2
        assert screen.depth == 2
        assert driver.scroll_count() == 2

    def test_visible_target_needs_no_scroll(self, search, screen, driver):
        result = search.search_with_scroll("Row 2", screen)

        assert result.scrolls == 0
        assert driver.scroll_count() == 0
        assert screen.depth == 0

    def test_max_attempts_bounds_the_call(self, search, screen, driver):
        result = search.search_with_scroll("Row 20", screen, max_attempts=1)

        assert isinstance(result, NotFound)
        assert result.reason is NotFoundReason.ATTEMPTS_EXHAUSTED
        assert result.scrolls == 1
        assert driver.scroll_count() == 1

    def test_governor_denial_stops_search(self, search, screen, driver):
        """A ceiling of 4 stops the search at the fifth scroll request."""
        result = search.search_with_scroll("Row 20", screen, max_attempts=10)

        assert not result
        assert result.reason is NotFoundReason.SCROLL_LIMIT_REACHED
        assert result.scrolls == 4
        assert screen.depth == 4
        assert driver.scroll_count() == 4

    def test_depth_is_shared_across_searches_on_one_screen(self, search, screen, driver):
        assert search.search_with_scroll("Row 9", screen)
        result = search.search_with_scroll("Row 20", screen)

        assert result.reason is NotFoundReason.SCROLL_LIMIT_REACHED
        assert result.scrolls == 2
        assert screen.depth == 4

    def test_no_direction_resolves_once(self, search, screen, driver):
        result = search.search_with_scroll("Row 9", screen, direction=None)

        assert result.reason is NotFoundReason.NO_MATCH
        assert result.scrolls == 0
        assert driver.scroll_count() == 0

    def test_closed_screen_refuses_search(self, search, screen):
        screen.close()
        with pytest.raises(Exception, match="exited"):
            search.search_with_scroll("Row 1", screen)


class TestScrollGesture:
    """Which gesture performs each scroll."""

    def test_label_intent_uses_native_predicate_scroll(self, search, screen, driver):
        search.search_with_scroll("Row 9", screen)

        names = [c[0] for c in driver.calls]
        assert names == ["mobile: scroll", "mobile: scroll"]
        assert driver.calls[0][1]["direction"] == "down"
        assert "CONTAINS 'Row 9'" in driver.calls[0][1]["predicateString"]

    def test_intent_without_predicate_swipes(self, search, screen, driver):
        strategy = LocatorStrategy("exact", Locator(BY_ACCESSIBILITY_ID, "Row 9"))

        assert search.search_with_scroll(strategy, screen)

        swipes = [c for c in driver.calls if c[0] == "swipe"]
        assert swipes == [("swipe", 590, 253, 400)] * 2

    def test_rejected_native_scroll_falls_back_to_swipe(self, search, screen, driver):
        driver.failing_commands.add("mobile: scroll")

        result = search.search_with_scroll("Row 9", screen)

        assert result.scrolls == 2
        assert [c[0] for c in driver.calls] == ["swipe", "swipe"]


class TestCollect:
    """Collection searches and the stale-progress stop."""

    def test_short_list_ends_after_two_stale_iterations(self, screen):
        driver = FakeDriver(rows=["A", "B", "C"])
        search = BoundedScrollSearch(LocatorStrategyChain(driver), GestureExecutor(driver))

        result = search.collect(CELLS, screen)

        assert isinstance(result, Found)
        assert result.identities == [("label", "A"), ("label", "B"), ("label", "C")]
        assert result.stop_reason is NotFoundReason.END_OF_CONTENT
        assert result.scrolls == 2

    def test_unique_results_across_scrolls(self, screen):
        driver = FakeDriver(rows=[f"Item {i}" for i in range(1, 9)])
        search = BoundedScrollSearch(LocatorStrategyChain(driver), GestureExecutor(driver))

        result = search.collect(CELLS, screen)

        assert [key[1] for key in result.identities] == [f"Item {i}" for i in range(1, 9)]
        assert result.stop_reason is NotFoundReason.END_OF_CONTENT
        assert result.scrolls == 3

    def test_ceiling_stops_long_list(self, search, screen):
        result = search.collect(CELLS, screen, max_attempts=10)

        assert result.stop_reason is NotFoundReason.SCROLL_LIMIT_REACHED
        assert len(result.identities) == 17
        assert screen.depth == 4

    def test_custom_stale_threshold(self, screen):
        driver = FakeDriver(rows=["A", "B"])
        search = BoundedScrollSearch(LocatorStrategyChain(driver), GestureExecutor(driver))

        result = search.collect(CELLS, screen, stale_threshold=1)

        assert result.scrolls == 1
        assert result.stop_reason is NotFoundReason.END_OF_CONTENT

    def test_nothing_matches_spends_the_scroll_budget(self, search, screen):
        result = search.collect("Missing", screen)

        assert isinstance(result, NotFound)
        assert result.reason is NotFoundReason.ATTEMPTS_EXHAUSTED
        assert result.scrolls == 4

    def test_matches_further_down_are_still_collected(self, search, screen):
        """Empty screens before the first match do not count as end of content."""
        rows = LocatorStrategy(
            "rows_12_13",
            Locator(BY_IOS_PREDICATE, "label CONTAINS 'Row 12' OR label CONTAINS 'Row 13'"),
            COLLECTION,
        )

        result = search.collect(rows, screen, max_attempts=10)

        assert isinstance(result, Found)
        assert result.identities == [("label", "Row 12"), ("label", "Row 13")]
        assert result.stop_reason is NotFoundReason.SCROLL_LIMIT_REACHED
        assert result.scrolls == 4

    def test_invalid_threshold(self, search, screen):
        with pytest.raises(ValueError):
            search.collect(CELLS, screen, stale_threshold=0)


class TestReorient:
    """Scrolling back to the top after a denial."""

    def test_reorient_swipes_depth_plus_one(self, search, screen, driver):
        search.search_with_scroll("Row 9", screen)

        swipes = search.reorient(screen)

        assert swipes == 3
        assert screen.depth == 0
        assert driver.first == 0
        ups = [c for c in driver.calls if c[0] == "swipe"]
        assert all(c[1] < c[2] for c in ups)

    def test_denied_then_reorient_then_found(self, search, screen, driver):
        """Searching past the ceiling fails; after reorienting a row 4 scrolls down is reachable."""
        denied = search.search_with_scroll("Row 20", screen, max_attempts=10)
        assert denied.reason is NotFoundReason.SCROLL_LIMIT_REACHED

        search.reorient(screen)
        result = search.search_with_scroll("Row 15", screen)

        assert result
        assert result.scrolls == 4
        assert screen.depth == 4


class TestClaimScroll:

    def test_up_always_allowed(self, screen):
        assert BoundedScrollSearch.claim_scroll(screen, UP) is ScrollPermission.ALLOWED
        assert screen.depth == 0

    def test_down_counts(self, screen):
        assert BoundedScrollSearch.claim_scroll(screen, DOWN)
        assert screen.depth == 1

    def test_unknown_direction(self, screen):
        with pytest.raises(ValueError):
            BoundedScrollSearch.claim_scroll(screen, "left")

    def test_zero_threshold_rejected(self, driver):
        with pytest.raises(ValueError):
            BoundedScrollSearch(LocatorStrategyChain(driver), GestureExecutor(driver), stale_threshold=0)
