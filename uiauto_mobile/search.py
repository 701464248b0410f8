# uiauto_mobile/search.py
"""
@file search.py
@brief Scroll-bounded searches over a view-recycling tree.

The host only exposes nodes that are currently rendered, so "not found" can
mean "not scrolled into view yet". Each search alternates resolve and one
scroll, and every downward scroll is first claimed from the screen's
ScrollDepthGovernor. A denial ends the search with a NotFound instead of
raising.
"""

from __future__ import annotations
import logging
from typing import Dict, Hashable, List, Optional

from .actionlogger import ACTION_LOGGER
from .exceptions import LocatorAttempt, UIAutoError
from .gestures import DOWN, UP, GestureExecutor
from .governor import ScrollPermission
from .locators import Found, IntentLike, LocatorStrategyChain, NotFound, NotFoundReason, Resolution
from .screen import ScreenContext

log = logging.getLogger("uiauto_mobile.search")


class BoundedScrollSearch:
    """Search loop shared by every lookup that may need to scroll."""

    def __init__(
        self,
        chain: LocatorStrategyChain,
        gestures: GestureExecutor,
        stale_threshold: int = 2,
        reorient_extra_swipes: int = 1,
    ):
        if stale_threshold < 1:
            raise ValueError("stale_threshold must be >= 1")
        self.chain = chain
        self.gestures = gestures
        self.stale_threshold = stale_threshold
        self.reorient_extra_swipes = reorient_extra_swipes

    def search_with_scroll(
        self,
        intent: IntentLike,
        screen: ScreenContext,
        direction: Optional[str] = DOWN,
        max_attempts: Optional[int] = None,
    ) -> Resolution:
        """
        Resolve an intent, scrolling between attempts.

        @param intent Anything accepted by ScreenContext.intent()
        @param screen Active screen; its governor bounds downward scrolls
        @param direction "down", "up", or None to resolve once without scrolling
        @param max_attempts Scroll operations allowed in this call
            (defaults to the screen's max_scroll_down)
        @return Found with .scrolls set, or NotFound with a reason
        """
        screen.ensure_open()
        intent = screen.intent(intent)
        limit = screen.max_scroll_down if max_attempts is None else max_attempts
        scrolls = 0

        while True:
            result = self.chain.resolve(intent, screen.classifier)
            if result:
                result.scrolls = scrolls
                ACTION_LOGGER.log(
                    action="search", target=intent.name, screen=screen.name,
                    status="found", depth=screen.depth,
                    metadata={"strategy": result.strategy, "scrolls": scrolls},
                )
                return result

            reason = self._next_step(intent, screen, direction, scrolls, limit)
            if reason is not None:
                ACTION_LOGGER.log(
                    action="search", target=intent.name, screen=screen.name,
                    status="not_found", depth=screen.depth,
                    metadata={"reason": reason.value, "scrolls": scrolls},
                )
                return NotFound(intent.name, result.attempts, reason, scrolls)
            scrolls += 1

    def collect(
        self,
        intent: IntentLike,
        screen: ScreenContext,
        direction: str = DOWN,
        max_attempts: Optional[int] = None,
        stale_threshold: Optional[int] = None,
    ) -> Resolution:
        """
        Gather every unique match across scroll iterations.

        Once something has matched, stops early when stale_threshold
        consecutive iterations add nothing new (end of the scrollable region).
        Empty iterations before the first match only spend scroll budget.
        Handles gathered on earlier iterations may have been recycled by
        the time this returns; use Found.identities for the values seen.
        """
        screen.ensure_open()
        intent = screen.intent(intent)
        limit = screen.max_scroll_down if max_attempts is None else max_attempts
        threshold = self.stale_threshold if stale_threshold is None else stale_threshold
        if threshold < 1:
            raise ValueError("stale_threshold must be >= 1")

        seen: Dict[Hashable, object] = {}
        attempts: List[LocatorAttempt] = []
        strategy: Optional[str] = None
        stale = 0
        scrolls = 0
        iterations = 0

        while True:
            iterations += 1
            result = self.chain.resolve(intent, screen.classifier)
            attempts = result.attempts
            added = 0
            if result:
                strategy = result.strategy
                for ref in result.elements:
                    try:
                        key = ref.identity()
                    except UIAutoError as e:
                        log.debug("Skipping node recycled during collection: %s", e)
                        continue
                    if key not in seen:
                        seen[key] = ref
                        added += 1

            if added:
                stale = 0
            elif seen:
                stale += 1
            log.debug(
                "collect '%s' iteration %d: +%d (total %d, stale %d/%d)",
                intent.name, iterations, added, len(seen), stale, threshold,
            )

            if stale >= threshold:
                reason = NotFoundReason.END_OF_CONTENT
                break
            reason = self._next_step(intent, screen, direction, scrolls, limit)
            if reason is not None:
                break
            scrolls += 1

        ACTION_LOGGER.log(
            action="collect", target=intent.name, screen=screen.name,
            status="found" if seen else "not_found", depth=screen.depth,
            metadata={"unique": len(seen), "scrolls": scrolls, "iterations": iterations, "stop": reason.value},
        )
        if not seen:
            return NotFound(intent.name, attempts, reason, scrolls)
        return Found(
            elements=list(seen.values()),
            strategy=strategy or "",
            attempts=attempts,
            scrolls=scrolls,
            identities=list(seen.keys()),
            stop_reason=reason,
        )

    def reorient(self, screen: ScreenContext) -> int:
        """
        Scroll back to the top of the screen and reset its governor.

        Swipes up once per recorded depth plus reorient_extra_swipes.
        @return Number of upward swipes performed
        """
        screen.ensure_open()
        swipes = screen.depth + self.reorient_extra_swipes
        for _ in range(swipes):
            if not self.gestures.scroll(UP):
                log.warning("Upward swipe failed while reorienting '%s'", screen.name)
            screen.governor.scroll_up()
        screen.reset()
        ACTION_LOGGER.log(action="reorient", screen=screen.name, status="ok", depth=0,
                          metadata={"swipes": swipes})
        return swipes

    def _next_step(self, intent, screen, direction, scrolls, limit) -> Optional[NotFoundReason]:
        """Perform one scroll, or return the reason the search must stop."""
        if direction is None:
            return NotFoundReason.NO_MATCH
        if scrolls >= limit:
            return NotFoundReason.ATTEMPTS_EXHAUSTED
        if self.claim_scroll(screen, direction) is ScrollPermission.DENIED:
            log.info("Scroll limit reached on '%s' (depth %d)", screen.name, screen.depth)
            return NotFoundReason.SCROLL_LIMIT_REACHED
        self._scroll(intent, direction)
        return None

    @staticmethod
    def claim_scroll(screen: ScreenContext, direction: str) -> ScrollPermission:
        """Ask the governor for one scroll. Upward scrolls are always allowed."""
        if direction == DOWN:
            return screen.governor.scroll_down()
        if direction == UP:
            screen.governor.scroll_up()
            return ScrollPermission.ALLOWED
        raise ValueError(f"Unknown scroll direction: {direction}")

    def _scroll(self, intent, direction: str) -> None:
        if intent.scroll_predicate and self.gestures.native_scroll(direction, intent.scroll_predicate):
            return
        if not self.gestures.scroll(direction):
            log.warning("Scroll %s failed while searching for '%s'", direction, intent.name)
