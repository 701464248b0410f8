# uiauto_mobile/__init__.py
"""
uiauto-mobile - resilient element resolution and bounded interactions for
view-recycling mobile UIs driven through Appium.

- Engine: screen scoping and the interaction state machine
- LocatorStrategyChain: ordered fallback strategies (Found / NotFound)
- BoundedScrollSearch: scroll-bounded single and collection searches
- ScrollDepthGovernor: per-screen scroll ceiling
- GestureExecutor: semantic -> positional -> coordinate taps, swipes
- ElementClassifier: geometry disambiguation
- Repository: YAML object map

The Appium adapter lives in uiauto_mobile.appium_driver.
"""

from .classifier import ClassifierConfig, ElementClassifier, GeometryFilter
from .config import EngineSettings, TimeConfig
from .driver import IDriver, Locator, PointerSequence
from .element import ElementRef, Point, Rect
from .engine import Engine, InteractionState
from .exceptions import (
    ConfigError,
    ElementNotFoundError,
    InteractionFailedError,
    LocatorAttempt,
    StaleElementError,
    TimeoutError,
    UIAutoError,
)
from .gestures import GestureExecutor, GestureSpec, InteractionResult, Offset
from .governor import ScrollDepthGovernor, ScrollLimitReached, ScrollPermission
from .locators import (
    Found,
    Intent,
    LocatorStrategy,
    LocatorStrategyChain,
    NotFound,
    NotFoundReason,
)
from .repository import Repository
from .screen import ScreenContext
from .search import BoundedScrollSearch
from .waits import retry, wait_until, wait_until_passes

__all__ = [
    "BoundedScrollSearch",
    "ClassifierConfig",
    "ConfigError",
    "ElementClassifier",
    "ElementNotFoundError",
    "ElementRef",
    "Engine",
    "EngineSettings",
    "Found",
    "GeometryFilter",
    "GestureExecutor",
    "GestureSpec",
    "IDriver",
    "Intent",
    "InteractionFailedError",
    "InteractionResult",
    "InteractionState",
    "Locator",
    "LocatorAttempt",
    "LocatorStrategy",
    "LocatorStrategyChain",
    "NotFound",
    "NotFoundReason",
    "Offset",
    "Point",
    "PointerSequence",
    "Rect",
    "Repository",
    "ScreenContext",
    "ScrollDepthGovernor",
    "ScrollLimitReached",
    "ScrollPermission",
    "StaleElementError",
    "TimeConfig",
    "TimeoutError",
    "UIAutoError",
    "retry",
    "wait_until",
    "wait_until_passes",
]

__version__ = "1.0.0"
