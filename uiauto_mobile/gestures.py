# uiauto_mobile/gestures.py
"""
@file gestures.py
@brief Taps and swipes with semantic -> positional -> coordinate fallback.

Tier order for a tap on a resolved element:

1. semantic: the driver's native click on the handle
2. positional: a W3C touch tap at the centre of the nearest candidate
3. coordinate: the driver's native ``mobile: tap`` at derived coordinates

Coordinate taps only run after the first two tiers failed. Every computed
point is clamped out of the status bar and the home-indicator/nav zone.
Swipe duration decides which gesture the host recognises: 150-300 ms reads
as a flick (reveal, dismiss), 300-500 ms as a deliberate scroll.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from .actionlogger import ACTION_LOGGER
from .classifier import ElementClassifier
from .config import TimeConfig
from .driver import IDriver, PointerSequence
from .element import ElementRef, Point
from .exceptions import InteractionFailedError, StaleElementError, UIAutoError
from .waits import settle, wait_until_passes

log = logging.getLogger("uiauto_mobile.gestures")

TIER_SEMANTIC = "semantic"
TIER_POSITIONAL = "positional"
TIER_COORDINATE = "coordinate"

FLICK_MS = (150, 300)
SCROLL_MS = (300, 500)

UP = "up"
DOWN = "down"


@dataclass(frozen=True)
class Offset:
    """
    Displacement from a base point.

    x_pct/y_pct, when set, replace that axis with a fraction of the window
    size; dx/dy are then added as pixel deltas.
    """
    dx: int = 0
    dy: int = 0
    x_pct: Optional[float] = None
    y_pct: Optional[float] = None


@dataclass
class GestureSpec:
    """
    A tap point given either absolutely or relative to an anchor element.

    edge chooses the anchor reference point: "center", "top_left" or
    "bottom_left" (useful for "the field under this label").
    """
    point: Optional[Point] = None
    anchor: Optional[ElementRef] = None
    offset: Offset = field(default_factory=Offset)
    edge: str = "center"

    def base_point(self) -> Point:
        if self.point is not None:
            return self.point
        if self.anchor is None:
            return Point(0, 0)
        rect = self.anchor.rect
        if self.edge == "top_left":
            return Point(rect.left, rect.top)
        if self.edge == "bottom_left":
            return Point(rect.left, rect.bottom)
        return rect.center

    def resolve(self, window: Dict[str, int]) -> Point:
        base = self.base_point()
        x = int(window["width"] * self.offset.x_pct) if self.offset.x_pct is not None else base.x
        y = int(window["height"] * self.offset.y_pct) if self.offset.y_pct is not None else base.y
        return Point(x + self.offset.dx, y + self.offset.dy)


TapTarget = Union[ElementRef, Point, GestureSpec]


@dataclass
class InteractionResult:
    """
    Outcome of one interaction. Falsy when every tier failed.

    point is where the gesture landed, or for a failed tap the last
    coordinate that was tried.
    """
    ok: bool
    action: str
    tier: Optional[str] = None
    point: Optional[Point] = None
    failures: List[Tuple[str, str]] = field(default_factory=list)
    error: Optional[InteractionFailedError] = None
    trace: List[str] = field(default_factory=list)
    resolution: Optional[Any] = None

    def __bool__(self) -> bool:
        return self.ok

    def raise_for_failure(self) -> None:
        if not self.ok and self.error is not None:
            raise self.error


class GestureExecutor:
    """Performs taps and swipes through an IDriver."""

    def __init__(
        self,
        driver: IDriver,
        status_bar_height: int = 0,
        nav_bar_height: int = 0,
        scroll_duration_ms: int = 400,
        flick_duration_ms: int = 200,
        scroll_start_ratio: float = 0.7,
        scroll_end_ratio: float = 0.3,
    ):
        self.driver = driver
        self.status_bar_height = int(status_bar_height)
        self.nav_bar_height = int(nav_bar_height)
        self.scroll_duration_ms = int(scroll_duration_ms)
        self.flick_duration_ms = int(flick_duration_ms)
        self.scroll_start_ratio = scroll_start_ratio
        self.scroll_end_ratio = scroll_end_ratio
        self._window: Optional[Dict[str, int]] = None

    # -------------------------
    # geometry
    # -------------------------

    def window_size(self) -> Dict[str, int]:
        if self._window is None:
            setting = TimeConfig.current().window_size
            size = wait_until_passes(
                self.driver.get_window_size,
                timeout=setting.timeout,
                interval=setting.interval,
                exceptions=(UIAutoError,),
                description="window size",
            )
            self._window = {"width": int(size["width"]), "height": int(size["height"])}
        return self._window

    def refresh_window(self) -> None:
        self._window = None

    def clamp(self, point: Point) -> Point:
        """Keep a point inside the window and out of the reserved chrome."""
        win = self.window_size()
        min_y = self.status_bar_height + 1
        max_y = win["height"] - self.nav_bar_height - 1
        if max_y < min_y:
            max_y = min_y
        x = min(max(point.x, 1), win["width"] - 1)
        y = min(max(point.y, min_y), max_y)
        return Point(x, y)

    def resolve_point(self, target: Union[Point, GestureSpec]) -> Point:
        if isinstance(target, GestureSpec):
            return self.clamp(target.resolve(self.window_size()))
        return self.clamp(target)

    # -------------------------
    # taps
    # -------------------------

    def tap(
        self,
        target: TapTarget,
        candidates: Optional[Sequence[ElementRef]] = None,
        classifier: Optional[ElementClassifier] = None,
        name: Optional[str] = None,
    ) -> InteractionResult:
        """
        Tap an element or a point, walking the fallback tiers.

        @param target ElementRef, absolute Point or GestureSpec
        @param candidates Other nodes matched alongside target; the positional
            tier taps whichever of them is nearest to the target
        @param classifier Used for the nearest-candidate choice
        @param name Label used in logs and errors
        @return InteractionResult, falsy when every tier failed
        """
        label = name or _describe(target)
        tiers: List[Tuple[str, Callable[[], Optional[Point]]]] = []
        attempted: List[Point] = []

        def coordinate(locate: Callable[[], Point]) -> Point:
            point = locate()
            attempted.append(point)
            return self._coordinate_tap(point)

        if isinstance(target, ElementRef):
            tiers.append((TIER_SEMANTIC, lambda: self._semantic_tap(target)))
            tiers.append((TIER_POSITIONAL, lambda: self._positional_tap(target, candidates, classifier)))
            tiers.append((TIER_COORDINATE, lambda: coordinate(lambda: self.clamp(target.rect.center))))
        else:
            tiers.append((TIER_COORDINATE, lambda: coordinate(lambda: self.resolve_point(target))))

        result = self._walk("tap", label, tiers)
        if result.ok:
            settle(TimeConfig.current().after_tap_pause)
        elif attempted:
            result.point = attempted[-1]
        return result

    def tap_or_raise(self, target: TapTarget, **kwargs) -> InteractionResult:
        result = self.tap(target, **kwargs)
        result.raise_for_failure()
        return result

    def _semantic_tap(self, ref: ElementRef) -> None:
        self.driver.click(ref.handle)
        return None

    def _positional_tap(
        self,
        ref: ElementRef,
        candidates: Optional[Sequence[ElementRef]],
        classifier: Optional[ElementClassifier],
    ) -> Point:
        hint = ref.rect.center
        chosen = ref
        if candidates:
            nearest = (classifier or ElementClassifier()).nearest(candidates, hint)
            if nearest is not None:
                chosen = nearest
        point = self.clamp(chosen.rect.center)
        self.driver.perform_gesture(
            PointerSequence().move(point.x, point.y).down().pause(100).up()
        )
        return point

    def _coordinate_tap(self, point: Point) -> Point:
        try:
            self.driver.execute_driver_command("mobile: tap", {"x": point.x, "y": point.y})
        except UIAutoError as e:
            log.debug("mobile: tap rejected (%s), sending pointer tap at %s", e, point)
            self.driver.perform_gesture(
                PointerSequence().move(point.x, point.y).down().pause(100).up()
            )
        return point

    # -------------------------
    # swipes
    # -------------------------

    def swipe(
        self,
        start: Union[Point, GestureSpec],
        end: Union[Point, GestureSpec],
        duration_ms: Optional[int] = None,
    ) -> InteractionResult:
        """
        Swipe between two points.

        Falls back from a W3C pointer sequence to the native
        ``mobile: dragFromToForDuration`` command.
        """
        duration = int(duration_ms if duration_ms is not None else self.scroll_duration_ms)
        if duration <= 0:
            raise ValueError("duration_ms must be positive")
        p1 = self.resolve_point(start)
        p2 = self.resolve_point(end)

        def pointer() -> Point:
            self.driver.perform_gesture(
                PointerSequence().move(p1.x, p1.y).down().move(p2.x, p2.y, duration).up()
            )
            return p2

        def native() -> Point:
            self.driver.execute_driver_command("mobile: dragFromToForDuration", {
                "fromX": p1.x, "fromY": p1.y,
                "toX": p2.x, "toY": p2.y,
                "duration": duration / 1000.0,
            })
            return p2

        result = self._walk(
            "swipe",
            f"({p1.x},{p1.y})->({p2.x},{p2.y}) {duration}ms",
            [(TIER_POSITIONAL, pointer), (TIER_COORDINATE, native)],
        )
        if result.ok:
            settle(TimeConfig.current().after_swipe_pause)
        return result

    def flick(self, start: Union[Point, GestureSpec], end: Union[Point, GestureSpec]) -> InteractionResult:
        return self.swipe(start, end, self.flick_duration_ms)

    def scroll(self, direction: str) -> InteractionResult:
        """
        One deliberate content scroll. "down" reveals content further down
        the list, so the finger travels upward.
        """
        win = self.window_size()
        x = win["width"] // 2
        low = int(win["height"] * self.scroll_start_ratio)
        high = int(win["height"] * self.scroll_end_ratio)
        if direction == DOWN:
            start, end = Point(x, low), Point(x, high)
        elif direction == UP:
            start, end = Point(x, high), Point(x, low)
        else:
            raise ValueError(f"Unknown scroll direction: {direction}")
        return self.swipe(start, end, self.scroll_duration_ms)

    def native_scroll(self, direction: str, predicate: Optional[str] = None) -> InteractionResult:
        """Driver-native ``mobile: scroll``, optionally towards a predicate match."""
        params: Dict[str, str] = {"direction": direction}
        if predicate:
            params["predicateString"] = predicate

        def run() -> None:
            self.driver.execute_driver_command("mobile: scroll", params)
            return None

        result = self._walk("native_scroll", predicate or direction, [(TIER_COORDINATE, run)])
        if result.ok:
            settle(TimeConfig.current().after_scroll_pause)
        return result

    # -------------------------
    # tier walking
    # -------------------------

    def _walk(
        self,
        action: str,
        label: str,
        tiers: Sequence[Tuple[str, Callable[[], Optional[Point]]]],
    ) -> InteractionResult:
        failures: List[Tuple[str, str]] = []
        last_error: Optional[BaseException] = None

        for tier, run in tiers:
            try:
                point = run()
            except (UIAutoError, NotImplementedError) as e:
                last_error = e
                failures.append((tier, f"{type(e).__name__}: {e}"))
                ACTION_LOGGER.log(
                    action=action, target=label, tier=tier, status="tier_failed",
                    exception=e, event="tier_failed",
                )
                log.debug("%s on %s: tier %s failed: %s", action, label, tier, e)
                if isinstance(e, StaleElementError):
                    # Cached geometry belongs to whatever row recycled into that slot.
                    error = InteractionFailedError(
                        action, target=label, tier=tier, details="stale handle, resolve again", cause=e,
                    )
                    return InteractionResult(ok=False, action=action, failures=failures, error=error)
                continue

            ACTION_LOGGER.log(action=action, target=label, tier=tier, status="ok", event="gesture")
            return InteractionResult(ok=True, action=action, tier=tier, point=point, failures=failures)

        error = InteractionFailedError(
            action,
            target=label,
            tier=tiers[-1][0] if tiers else None,
            details=f"all {len(tiers)} tier(s) failed",
            cause=last_error,
        )
        log.warning("%s", error)
        return InteractionResult(ok=False, action=action, failures=failures, error=error)


def _describe(target: TapTarget) -> str:
    if isinstance(target, ElementRef):
        try:
            return target.label or repr(target)
        except UIAutoError:
            return repr(target)
    if isinstance(target, GestureSpec):
        return f"spec(point={target.point}, offset={target.offset})"
    return f"({target.x},{target.y})"
