# uiauto_mobile/screen.py
"""
@file screen.py
@brief ScreenContext: scope of interactions for one visible screen or sheet.
"""

from __future__ import annotations
from typing import Dict, Mapping, Optional

from .classifier import ClassifierConfig, ElementClassifier
from .exceptions import UIAutoError
from .governor import ScrollDepthGovernor
from .locators import Intent, IntentLike, as_intent


class ScreenContext:
    """
    Owns exactly one ScrollDepthGovernor and the screen's classifier
    thresholds. Created (depth 0) on navigation entry and discarded on
    exit; a closed context refuses further use.
    """

    def __init__(
        self,
        name: str,
        max_scroll_down: int = 4,
        classifier_config: Optional[ClassifierConfig] = None,
        intents: Optional[Mapping[str, Intent]] = None,
    ):
        self.name = name
        self.governor = ScrollDepthGovernor(max_scroll_down)
        self.classifier = ElementClassifier(classifier_config)
        self.intents: Dict[str, Intent] = dict(intents or {})
        self._closed = False

    def __repr__(self) -> str:
        return f"ScreenContext({self.name!r}, depth={self.depth}/{self.max_scroll_down})"

    @property
    def depth(self) -> int:
        return self.governor.depth

    @property
    def max_scroll_down(self) -> int:
        return self.governor.max_scroll_down

    @property
    def closed(self) -> bool:
        return self._closed

    def reset(self) -> None:
        self.governor.reset()

    def close(self) -> None:
        self._closed = True

    def ensure_open(self) -> None:
        if self._closed:
            raise UIAutoError(f"Screen context '{self.name}' was exited; enter the screen again")

    def intent(self, value: IntentLike) -> Intent:
        """Named intents from the object map win over the label fallback."""
        if isinstance(value, str) and value in self.intents:
            return self.intents[value]
        return as_intent(value)
