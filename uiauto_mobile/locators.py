# uiauto_mobile/locators.py
"""
@file locators.py
@brief Ordered fallback locator strategies and the Found/NotFound result.

Strategies are walked strictly in priority order and the first strategy
that yields anything wins; results are never merged or re-ranked across
strategies. A strategy that raises or comes back empty just hands over to
the next one. Absence is a normal return value (NotFound), not an exception.
"""

from __future__ import annotations
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Hashable, Iterable, List, Optional, Sequence, Tuple, Union

from .classifier import ElementClassifier, GeometryFilter
from .driver import IDriver, Locator
from .element import ElementRef
from .exceptions import ConfigError, ElementNotFoundError, LocatorAttempt

log = logging.getLogger("uiauto_mobile.locators")

# Locator "by" values understood by the Appium server.
BY_ACCESSIBILITY_ID = "accessibility id"
BY_IOS_PREDICATE = "-ios predicate string"
BY_IOS_CLASS_CHAIN = "-ios class chain"
BY_XPATH = "xpath"
BY_CLASS_NAME = "class name"
BY_ID = "id"

SINGLE = "single"
COLLECTION = "collection"

DEFAULT_TAPPABLE_TYPES = (
    "XCUIElementTypeButton",
    "XCUIElementTypeStaticText",
    "XCUIElementTypeCell",
)


def quote_predicate(text: str) -> str:
    """Quote a literal for use inside an NSPredicate string."""
    return "'" + text.replace("\\", "\\\\").replace("'", "\\'") + "'"


@dataclass(frozen=True)
class LocatorStrategy:
    """
    One tier of a fallback chain.

    index picks the n-th surviving match (after any geometry filter) and
    turns the strategy into a single-result one.
    """
    name: str
    locator: Locator
    arity: str = SINGLE
    geometry: Optional[GeometryFilter] = None
    index: Optional[int] = None

    def __post_init__(self) -> None:
        if self.arity not in (SINGLE, COLLECTION):
            raise ConfigError(f"strategy '{self.name}': arity must be '{SINGLE}' or '{COLLECTION}'")


@dataclass(frozen=True)
class Intent:
    """
    A named, ordered list of strategies describing one thing to find.

    scroll_predicate, when set, lets a search use the driver's native
    predicate scroll instead of a blind swipe.
    """
    name: str
    strategies: Tuple[LocatorStrategy, ...]
    scroll_predicate: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.strategies:
            raise ConfigError(f"intent '{self.name}' has no strategies")

    @property
    def is_collection(self) -> bool:
        return any(s.arity == COLLECTION for s in self.strategies)

    @classmethod
    def for_label(
        cls,
        label: str,
        element_types: Sequence[str] = DEFAULT_TAPPABLE_TYPES,
        arity: str = SINGLE,
    ) -> Intent:
        """
        Standard chain for a visible label, most specific first:
        exact accessibility id, typed exact label, in-content contains,
        broad contains.
        """
        q = quote_predicate(label)
        types = " OR ".join(f"type == {quote_predicate(t)}" for t in element_types)
        contains = f"label CONTAINS {q} OR name CONTAINS {q}"
        return cls(
            name=label,
            strategies=(
                LocatorStrategy("exact_label", Locator(BY_ACCESSIBILITY_ID, label), arity),
                LocatorStrategy(
                    "typed_label",
                    Locator(BY_IOS_PREDICATE, f"({types}) AND (label == {q} OR name == {q})"),
                    arity,
                ),
                LocatorStrategy(
                    "content_contains",
                    Locator(BY_IOS_PREDICATE, contains),
                    arity,
                    geometry=GeometryFilter("in_content"),
                ),
                LocatorStrategy("broad_contains", Locator(BY_IOS_PREDICATE, contains), arity),
            ),
            scroll_predicate=contains,
        )


IntentLike = Union[str, Intent, LocatorStrategy, Locator, Sequence[LocatorStrategy]]


def as_intent(value: IntentLike, name: Optional[str] = None) -> Intent:
    """Normalize the accepted intent spellings into an Intent."""
    if isinstance(value, Intent):
        return value
    if isinstance(value, str):
        return Intent.for_label(value)
    if isinstance(value, LocatorStrategy):
        return Intent(name or value.name, (value,))
    if isinstance(value, Locator):
        return Intent(name or value.value, (LocatorStrategy("locator", value),))
    strategies = tuple(value)
    if not strategies or not all(isinstance(s, LocatorStrategy) for s in strategies):
        raise TypeError(f"Cannot build an intent from {value!r}")
    return Intent(name or strategies[0].name, strategies)


class NotFoundReason(str, enum.Enum):
    NO_MATCH = "no_match"
    SCROLL_LIMIT_REACHED = "scroll_limit_reached"
    END_OF_CONTENT = "end_of_content"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"


@dataclass
class Found:
    """The first successful strategy's matches."""
    elements: List[ElementRef]
    strategy: str
    attempts: List[LocatorAttempt] = field(default_factory=list)
    scrolls: int = 0
    identities: List[Hashable] = field(default_factory=list)
    stop_reason: Optional[NotFoundReason] = None

    def __bool__(self) -> bool:
        return True

    @property
    def element(self) -> ElementRef:
        return self.elements[0]


@dataclass
class NotFound:
    """Every tier came back empty. Falsy, so callers can branch on it."""
    intent_name: str
    attempts: List[LocatorAttempt] = field(default_factory=list)
    reason: NotFoundReason = NotFoundReason.NO_MATCH
    scrolls: int = 0

    def __bool__(self) -> bool:
        return False

    def to_error(self, screen_name: Optional[str] = None) -> ElementNotFoundError:
        return ElementNotFoundError(
            intent_name=self.intent_name,
            screen_name=screen_name,
            attempts=self.attempts,
            reason=self.reason.value,
        )


Resolution = Union[Found, NotFound]


class LocatorStrategyChain:
    """Walks an intent's strategies against the live tree."""

    def __init__(self, driver: IDriver, classifier: Optional[ElementClassifier] = None):
        self.driver = driver
        self.classifier = classifier or ElementClassifier()

    def resolve(
        self,
        intent: IntentLike,
        classifier: Optional[ElementClassifier] = None,
    ) -> Resolution:
        """
        Resolve an intent.

        @param intent Intent, label string, strategy, locator or strategy list
        @param classifier Screen-specific classifier for geometry tiers
        @return Found for the first strategy with matches, else NotFound
        """
        intent = as_intent(intent)
        classifier = classifier or self.classifier
        attempts: List[LocatorAttempt] = []

        for strategy in intent.strategies:
            try:
                matches = self._run(strategy, classifier)
            except Exception as e:
                attempts.append(LocatorAttempt(
                    strategy=strategy.name,
                    locator=strategy.locator.to_dict(),
                    error=f"{type(e).__name__}: {e}",
                ))
                log.debug("Strategy %s for '%s' failed: %s", strategy.name, intent.name, e)
                continue

            attempts.append(LocatorAttempt(
                strategy=strategy.name,
                locator=strategy.locator.to_dict(),
                matched=len(matches),
            ))
            if matches:
                return Found(elements=matches, strategy=strategy.name, attempts=attempts)

        return NotFound(intent_name=intent.name, attempts=attempts)

    def _run(self, strategy: LocatorStrategy, classifier: ElementClassifier) -> List[ElementRef]:
        refs = [
            ElementRef(handle, self.driver, source=strategy.name)
            for handle in self.driver.find(strategy.locator)
        ]
        if strategy.geometry is not None:
            refs = classifier.filter(refs, strategy.geometry)

        if strategy.index is not None:
            idx = int(strategy.index)
            return [refs[idx]] if -len(refs) <= idx < len(refs) else []

        if strategy.arity == SINGLE:
            return refs[:1]
        return refs


def strategies_from_specs(specs: Iterable[Any]) -> Tuple[LocatorStrategy, ...]:
    """Build strategies from object-map dicts (see schemas/objectmap.schema.json)."""
    strategies: List[LocatorStrategy] = []
    for i, spec in enumerate(specs):
        geometry = spec.get("geometry")
        strategies.append(LocatorStrategy(
            name=str(spec.get("name") or f"strategy_{i + 1}"),
            locator=Locator(str(spec["by"]), str(spec["value"])),
            arity=str(spec.get("arity", SINGLE)),
            geometry=GeometryFilter.from_dict(geometry) if geometry else None,
            index=spec.get("index"),
        ))
    return tuple(strategies)
