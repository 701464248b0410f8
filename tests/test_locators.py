# tests/test_locators.py
"""
Tests for the locator strategy chain.
"""

import pytest

from uiauto_mobile.classifier import ClassifierConfig, ElementClassifier, GeometryFilter
from uiauto_mobile.driver import Locator
from uiauto_mobile.exceptions import ConfigError, ElementNotFoundError, InteractionFailedError
from uiauto_mobile.locators import (
    BY_ACCESSIBILITY_ID,
    BY_CLASS_NAME,
    BY_IOS_PREDICATE,
    BY_XPATH,
    COLLECTION,
    Found,
    Intent,
    LocatorStrategy,
    LocatorStrategyChain,
    NotFound,
    NotFoundReason,
    as_intent,
    quote_predicate,
    strategies_from_specs,
)

from .fakes import FakeDriver, FakeNode


class ExplodingXPathDriver(FakeDriver):
    """XPath queries are rejected by the device."""

    def find(self, locator):
        if locator.by == BY_XPATH:
            self.queries.append(locator)
            raise InteractionFailedError("find", details="xpath not supported")
        return super().find(locator)


class TestFirstStrategyWins:
    """The first strategy with matches decides the result."""

    def test_modal_cancel_beats_background_contains(self):
        """
        Exact match finds the modal's Cancel only; the contains tier would
        also match the list row behind the modal but is never consulted.
        """
        driver = FakeDriver(fixed=[
            FakeNode("Cancel Subscription", y=300, type="XCUIElementTypeCell"),
            FakeNode("Cancel", y=700, height=44, type="XCUIElementTypeButton"),
        ])
        chain = LocatorStrategyChain(driver)

        result = chain.resolve("Cancel")

        assert isinstance(result, Found)
        assert result.strategy == "exact_label"
        assert len(result.elements) == 1
        assert result.element.label == "Cancel"
        assert len(driver.queries) == 1

    def test_lower_tiers_are_not_merged(self):
        """Both strategies match; only the first one's nodes come back."""
        driver = FakeDriver(fixed=[
            FakeNode("Save", y=100),
            FakeNode("Save Draft", y=200),
        ])
        intent = Intent("save", (
            LocatorStrategy("exact", Locator(BY_ACCESSIBILITY_ID, "Save"), COLLECTION),
            LocatorStrategy("contains", Locator(BY_IOS_PREDICATE, "label CONTAINS 'Save'"), COLLECTION),
        ))

        result = LocatorStrategyChain(driver).resolve(intent)

        assert [e.label for e in result.elements] == ["Save"]
        assert [a.strategy for a in result.attempts] == ["exact"]

    def test_raising_strategy_yields_to_next(self):
        driver = ExplodingXPathDriver(fixed=[FakeNode("Done", type="XCUIElementTypeButton")])
        intent = Intent("done", (
            LocatorStrategy("xpath", Locator(BY_XPATH, "//XCUIElementTypeButton[@name='Done']")),
            LocatorStrategy("exact", Locator(BY_ACCESSIBILITY_ID, "Done")),
        ))

        result = LocatorStrategyChain(driver).resolve(intent)

        assert result
        assert result.strategy == "exact"
        assert "xpath not supported" in result.attempts[0].error
        assert result.attempts[1].matched == 1


class TestNotFound:
    """Absence is a value."""

    def test_not_found_is_falsy_and_records_every_tier(self):
        driver = FakeDriver(fixed=[FakeNode("Assets")])
        result = LocatorStrategyChain(driver).resolve("Locations")

        assert isinstance(result, NotFound)
        assert not result
        assert result.reason is NotFoundReason.NO_MATCH
        assert [a.strategy for a in result.attempts] == [
            "exact_label", "typed_label", "content_contains", "broad_contains",
        ]

    def test_to_error_lists_attempts(self):
        result = LocatorStrategyChain(FakeDriver()).resolve("Locations")
        error = result.to_error("asset_list")

        assert isinstance(error, ElementNotFoundError)
        assert error.screen_name == "asset_list"
        assert "exact_label" in str(error)
        assert "no_match" in str(error)


class TestStrategyOptions:
    """Geometry filters, index and arity."""

    def test_in_content_filter_drops_navigation_title(self):
        """The nav-bar title and a list row share text; geometry keeps the row."""
        driver = FakeDriver(fixed=[
            FakeNode("Assets", y=60, height=44),
            FakeNode("Assets Overview", y=240, height=60),
        ])
        classifier = ElementClassifier(ClassifierConfig(content_top=150))
        intent = Intent("assets", (
            LocatorStrategy(
                "content",
                Locator(BY_IOS_PREDICATE, "label CONTAINS 'Assets'"),
                COLLECTION,
                geometry=GeometryFilter("in_content"),
            ),
        ))

        result = LocatorStrategyChain(driver).resolve(intent, classifier)

        assert [e.label for e in result.elements] == ["Assets Overview"]

    def test_filter_that_removes_everything_falls_through(self):
        driver = FakeDriver(fixed=[FakeNode("Assets", y=60, height=44)])
        classifier = ElementClassifier(ClassifierConfig(content_top=150))
        intent = Intent("assets", (
            LocatorStrategy("content", Locator(BY_ACCESSIBILITY_ID, "Assets"), geometry=GeometryFilter("in_content")),
            LocatorStrategy("any", Locator(BY_ACCESSIBILITY_ID, "Assets")),
        ))

        result = LocatorStrategyChain(driver, classifier).resolve(intent)

        assert result.strategy == "any"
        assert result.attempts[0].matched == 0

    def test_index_picks_nth_match(self):
        driver = FakeDriver(rows=["A", "B", "C"])
        strategy = LocatorStrategy("third_cell", Locator(BY_CLASS_NAME, "XCUIElementTypeCell"), index=2)

        result = LocatorStrategyChain(driver).resolve(strategy)

        assert result.element.label == "C"

    def test_index_out_of_range_is_empty(self):
        driver = FakeDriver(rows=["A"])
        strategy = LocatorStrategy("fifth_cell", Locator(BY_CLASS_NAME, "XCUIElementTypeCell"), index=4)

        assert not LocatorStrategyChain(driver).resolve(strategy)

    def test_single_arity_truncates(self):
        driver = FakeDriver(rows=["A", "B", "C"])
        single = LocatorStrategy("cell", Locator(BY_CLASS_NAME, "XCUIElementTypeCell"))
        many = LocatorStrategy("cells", Locator(BY_CLASS_NAME, "XCUIElementTypeCell"), COLLECTION)

        chain = LocatorStrategyChain(driver)
        assert len(chain.resolve(single).elements) == 1
        assert len(chain.resolve(many).elements) == 3


class TestIntentBuilding:
    """Intent construction helpers."""

    def test_label_chain_is_most_specific_first(self):
        intent = Intent.for_label("Save")
        names = [s.name for s in intent.strategies]

        assert names == ["exact_label", "typed_label", "content_contains", "broad_contains"]
        assert intent.strategies[0].locator == Locator(BY_ACCESSIBILITY_ID, "Save")
        assert intent.strategies[2].geometry == GeometryFilter("in_content")
        assert "CONTAINS 'Save'" in intent.scroll_predicate

    def test_quote_predicate_escapes(self):
        assert quote_predicate("Don't Save") == "'Don\\'t Save'"

    def test_empty_intent_rejected(self):
        with pytest.raises(ConfigError):
            Intent("nothing", ())

    def test_bad_arity_rejected(self):
        with pytest.raises(ConfigError):
            LocatorStrategy("x", Locator(BY_ACCESSIBILITY_ID, "x"), arity="many")

    def test_as_intent_rejects_garbage(self):
        with pytest.raises(TypeError):
            as_intent([1, 2, 3])

    def test_as_intent_wraps_locator(self):
        intent = as_intent(Locator(BY_ACCESSIBILITY_ID, "Done"))
        assert intent.name == "Done"
        assert len(intent.strategies) == 1

    def test_strategies_from_specs(self):
        strategies = strategies_from_specs([
            {"name": "exact", "by": "accessibility id", "value": "Save"},
            {"by": "-ios predicate string", "value": "label CONTAINS 'Save'",
             "arity": "collection", "geometry": {"rule": "y_range", "y_min": 100}},
        ])

        assert strategies[0].name == "exact"
        assert strategies[1].name == "strategy_2"
        assert strategies[1].arity == COLLECTION
        assert strategies[1].geometry == GeometryFilter("y_range", y_min=100)
