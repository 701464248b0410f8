# uiauto_mobile/engine.py
"""
@file engine.py
@brief Engine facade: screen scoping and the per-interaction state machine.

Every interaction runs

    IDLE -> SEARCHING -> FOUND -> ACTING -> DONE
                      -> NOT_FOUND -> SCROLL_CHECK -> ALLOWED -> SCROLLING -> SEARCHING
                                                   -> DENIED -> FAILED

and the visited states are recorded on InteractionResult.trace.
"""

from __future__ import annotations
import enum
import logging
from contextlib import contextmanager
from typing import Generator, List, Optional, Sequence, Union

from .actionlogger import ACTION_LOGGER
from .artifacts import make_artifacts
from .classifier import ClassifierConfig, ElementClassifier
from .config import EngineSettings, TimeConfig
from .context import ActionContextManager, tracked_action
from .driver import IDriver, Locator
from .element import Point
from .exceptions import (
    ElementNotFoundError,
    InteractionFailedError,
    StaleElementError,
    TimeoutError,
    UIAutoError,
)
from .gestures import DOWN, GestureExecutor, GestureSpec, InteractionResult, Offset
from .governor import ScrollPermission
from .locators import (
    BY_ACCESSIBILITY_ID,
    BY_IOS_PREDICATE,
    Found,
    Intent,
    IntentLike,
    LocatorStrategy,
    LocatorStrategyChain,
    NotFound,
    NotFoundReason,
    Resolution,
    quote_predicate,
)
from .repository import Repository
from .screen import ScreenContext
from .search import BoundedScrollSearch
from .waits import retry, settle, wait_until

log = logging.getLogger("uiauto_mobile.engine")

DEFAULT_POPUP_LABELS = (
    "Not Now",
    "Don't Save",
    "Dont Save",
    "Never for This Website",
    "Cancel",
    "Never",
    "No",
)

KEYBOARD_DONE_PREDICATE = (
    "type == 'XCUIElementTypeButton' AND (name == 'Done' OR name == 'Return' OR name == 'return')"
)


class InteractionState(str, enum.Enum):
    IDLE = "IDLE"
    SEARCHING = "SEARCHING"
    FOUND = "FOUND"
    ACTING = "ACTING"
    DONE = "DONE"
    NOT_FOUND = "NOT_FOUND"
    SCROLL_CHECK = "SCROLL_CHECK"
    ALLOWED = "ALLOWED"
    SCROLLING = "SCROLLING"
    DENIED = "DENIED"
    FAILED = "FAILED"


class Engine:
    """
    Entry point for screen interactions.

    Typical use:

        engine = Engine(driver, repository=Repository("elements.yaml"))
        with engine.screen_scope("asset_list"):
            engine.tap("Create Asset")
    """

    def __init__(
        self,
        driver: IDriver,
        settings: Optional[EngineSettings] = None,
        repository: Optional[Repository] = None,
    ):
        self.driver = driver
        self.repository = repository
        if settings is None:
            settings = repository.settings if repository is not None else EngineSettings.load()
        self.settings = settings

        if settings.timing_preset != "default":
            TimeConfig.apply_preset(settings.timing_preset)

        self.gestures = GestureExecutor(
            driver,
            status_bar_height=settings.status_bar_height,
            nav_bar_height=settings.nav_bar_height,
            scroll_duration_ms=settings.scroll_duration_ms,
            flick_duration_ms=settings.flick_duration_ms,
            scroll_start_ratio=settings.scroll_start_ratio,
            scroll_end_ratio=settings.scroll_end_ratio,
        )
        self.chain = LocatorStrategyChain(driver)
        self.search = BoundedScrollSearch(
            self.chain,
            self.gestures,
            stale_threshold=settings.stale_threshold,
            reorient_extra_swipes=settings.reorient_extra_swipes,
        )
        self.screen: Optional[ScreenContext] = None

    # -------------------------
    # screen scoping
    # -------------------------

    def enter_screen(
        self,
        name: str,
        max_scroll_down: Optional[int] = None,
        classifier_config: Optional[ClassifierConfig] = None,
    ) -> ScreenContext:
        """
        Start a fresh ScreenContext (depth 0), discarding the previous one.

        Screens declared in the object map take their ceiling, classifier
        and intents from it. Without explicit thresholds the classifier is
        derived from the measured window and status bar.
        """
        self.exit_screen()
        self.gestures.refresh_window()

        if self.repository is not None and name in self.repository.list_screens():
            screen = self.repository.screen_context(name)
            if max_scroll_down is not None:
                screen.governor.max_scroll_down = int(max_scroll_down)
            has_thresholds = bool(self.repository.get_screen_spec(name).get("classifier"))
        else:
            screen = ScreenContext(
                name,
                max_scroll_down=self.settings.max_scroll_down if max_scroll_down is None else max_scroll_down,
            )
            has_thresholds = False

        if classifier_config is not None:
            screen.classifier = ElementClassifier(classifier_config)
        elif not has_thresholds:
            screen.classifier = ElementClassifier(self._chrome_classifier_config())

        self.screen = screen
        ACTION_LOGGER.log(action="enter_screen", screen=name, status="ok", depth=0,
                          metadata={"max_scroll_down": screen.max_scroll_down})
        return screen

    def exit_screen(self) -> None:
        if self.screen is not None:
            ACTION_LOGGER.log(action="exit_screen", screen=self.screen.name, status="ok",
                              depth=self.screen.depth)
            self.screen.close()
            self.screen = None

    @contextmanager
    def screen_scope(self, name: str, **kwargs) -> Generator[ScreenContext, None, None]:
        screen = self.enter_screen(name, **kwargs)
        try:
            yield screen
        finally:
            if self.screen is screen:
                self.exit_screen()

    def _active(self) -> ScreenContext:
        if self.screen is None:
            raise UIAutoError("No active screen; call enter_screen() first")
        self.screen.ensure_open()
        return self.screen

    def _chrome_classifier_config(self) -> ClassifierConfig:
        try:
            window = self.gestures.window_size()
        except UIAutoError as e:
            log.warning("Window size unavailable, classifier uses zero thresholds: %s", e)
            return ClassifierConfig()
        return ClassifierConfig.from_chrome(window, self.settings.status_bar_height)

    # -------------------------
    # lookups
    # -------------------------

    @tracked_action("resolve")
    def resolve(self, intent: IntentLike) -> Resolution:
        """Single pass over the strategy chain, no scrolling."""
        screen = self._active()
        return self.chain.resolve(screen.intent(intent), screen.classifier)

    def resolve_or_raise(self, intent: IntentLike) -> Found:
        result = self.resolve(intent)
        if not result:
            raise self._not_found_error(result)
        return result

    @tracked_action("search")
    def search_with_scroll(
        self,
        intent: IntentLike,
        direction: Optional[str] = DOWN,
        max_attempts: Optional[int] = None,
    ) -> Resolution:
        return self.search.search_with_scroll(intent, self._active(), direction, max_attempts)

    @tracked_action("collect")
    def collect(
        self,
        intent: IntentLike,
        direction: str = DOWN,
        max_attempts: Optional[int] = None,
        stale_threshold: Optional[int] = None,
    ) -> Resolution:
        return self.search.collect(intent, self._active(), direction, max_attempts, stale_threshold)

    def reorient(self) -> int:
        """Scroll back to the top of the active screen and reset its depth."""
        return self.search.reorient(self._active())

    @tracked_action("wait_for")
    def wait_for(self, intent: IntentLike, timeout: Optional[float] = None) -> Resolution:
        """
        Poll the strategy chain, without scrolling, until the intent
        resolves. Used after navigation, where the new screen renders
        some time after the tap.

        @param intent Anything accepted by ScreenContext.intent()
        @param timeout Seconds; defaults to the resolve_element timing
        @return Found, or the last NotFound once the timeout expires
        """
        screen = self._active()
        resolved = screen.intent(intent)
        setting = TimeConfig.current().resolve_element
        last: List[Resolution] = []

        def attempt() -> Resolution:
            result = self.chain.resolve(resolved, screen.classifier)
            last[:] = [result]
            return result

        try:
            return wait_until(
                attempt,
                timeout=setting.timeout if timeout is None else timeout,
                interval=setting.interval,
                description=f"'{resolved.name}' on '{screen.name}'",
            )
        except TimeoutError:
            return last[0] if last else NotFound(resolved.name)

    def exists(self, intent: IntentLike, timeout: Optional[float] = None) -> bool:
        """True when the intent resolves without scrolling (0 = immediate check)."""
        if timeout is None:
            timeout = TimeConfig.current().exists_wait.timeout
        if timeout <= 0:
            return bool(self.resolve(intent))
        return bool(self.wait_for(intent, timeout))

    # -------------------------
    # interactions
    # -------------------------

    @tracked_action("tap")
    def tap(
        self,
        target: Union[IntentLike, Point, GestureSpec],
        direction: Optional[str] = DOWN,
        max_attempts: Optional[int] = None,
    ) -> InteractionResult:
        """
        Find and tap.

        @param target Intent (or anything accepted as one), or a Point /
            GestureSpec for a coordinate tap
        @param direction Scroll direction while searching; None disables scrolling
        @param max_attempts Scroll operations allowed while searching
        @return InteractionResult; falsy when not found or every tier failed
        """
        if isinstance(target, (Point, GestureSpec)):
            self._active()
            return self._finish(self.gestures.tap(target), [InteractionState.IDLE, InteractionState.ACTING])

        screen = self._active()
        intent = screen.intent(target)
        trace: List[InteractionState] = [InteractionState.IDLE]
        stale_retries = TimeConfig.current().staleness_retry.retry_count or 0
        remaining = screen.max_scroll_down if max_attempts is None else max_attempts

        while True:
            found = self.search.search_with_scroll(intent, screen, direction, remaining)
            trace.extend(_search_trace(found))
            if not found:
                return self._not_found_result("tap", found, trace)
            remaining = max(0, remaining - found.scrolls)

            trace.append(InteractionState.ACTING)
            result = self.gestures.tap(
                found.element,
                candidates=found.elements,
                classifier=screen.classifier,
                name=intent.name,
            )
            if result or not _is_stale(result) or stale_retries <= 0:
                return self._finish(result, trace)

            # Node was recycled between lookup and tap: resolve from scratch.
            stale_retries -= 1
            log.info("'%s' went stale before the tap landed, resolving again", intent.name)

    def tap_or_raise(self, target: Union[IntentLike, Point, GestureSpec], **kwargs) -> InteractionResult:
        result = self.tap(target, **kwargs)
        result.raise_for_failure()
        return result

    @tracked_action("tap_relative")
    def tap_relative(
        self,
        anchor: IntentLike,
        dx: int = 0,
        dy: int = 0,
        edge: str = "center",
        x_pct: Optional[float] = None,
        y_pct: Optional[float] = None,
        direction: Optional[str] = DOWN,
    ) -> InteractionResult:
        """
        Tap at an offset from a resolved anchor, e.g. the input field that
        sits 150 px right of its label.
        """
        screen = self._active()
        trace: List[InteractionState] = [InteractionState.IDLE]
        found = self.search.search_with_scroll(anchor, screen, direction)
        trace.extend(_search_trace(found))
        if not found:
            return self._not_found_result("tap_relative", found, trace)

        trace.append(InteractionState.ACTING)
        spec = GestureSpec(anchor=found.element, offset=Offset(dx, dy, x_pct, y_pct), edge=edge)
        return self._finish(self.gestures.tap(spec, name=f"{screen.intent(anchor).name}+({dx},{dy})"), trace)

    @tracked_action("swipe")
    def swipe(
        self,
        start: Union[Point, GestureSpec],
        end: Union[Point, GestureSpec],
        duration_ms: Optional[int] = None,
    ) -> InteractionResult:
        """Raw swipe; it does not touch the scroll governor."""
        return self._finish(self.gestures.swipe(start, end, duration_ms),
                            [InteractionState.IDLE, InteractionState.ACTING])

    def flick(self, start: Union[Point, GestureSpec], end: Union[Point, GestureSpec]) -> InteractionResult:
        return self.swipe(start, end, self.settings.flick_duration_ms)

    @tracked_action("scroll")
    def scroll(self, direction: str = DOWN) -> InteractionResult:
        """One content scroll, claimed from the active screen's governor."""
        screen = self._active()
        trace = [InteractionState.IDLE, InteractionState.SCROLL_CHECK]
        if self.search.claim_scroll(screen, direction) is ScrollPermission.DENIED:
            trace += [InteractionState.DENIED, InteractionState.FAILED]
            error = InteractionFailedError(
                "scroll", target=screen.name,
                details=f"{NotFoundReason.SCROLL_LIMIT_REACHED.value} at depth {screen.depth}",
            )
            return InteractionResult(ok=False, action="scroll", error=error, trace=trace)
        trace += [InteractionState.ALLOWED, InteractionState.SCROLLING]
        return self._finish(self.gestures.scroll(direction), trace)

    @tracked_action("type_text")
    def type_text(self, target: IntentLike, text: str, clear: bool = True) -> InteractionResult:
        """
        Type into a field, resolving it again whenever the handle goes stale
        (bounded by the staleness_retry timing).
        """
        screen = self._active()
        intent = screen.intent(target)
        trace: List[InteractionState] = [InteractionState.IDLE]

        def attempt() -> None:
            trace.append(InteractionState.SEARCHING)
            found = self.search.search_with_scroll(intent, screen, DOWN)
            if not found:
                raise self._not_found_error(found)
            trace.extend([InteractionState.FOUND, InteractionState.ACTING])
            handle = found.element.handle
            if clear:
                try:
                    self.driver.clear(handle)
                except NotImplementedError:
                    log.debug("Driver cannot clear '%s', typing over existing text", intent.name)
            self.driver.send_keys(handle, text)

        stale = TimeConfig.current().staleness_retry
        try:
            retry(
                attempt,
                max_attempts=max(1, stale.retry_count or 1),
                interval=stale.interval,
                exceptions=(StaleElementError,),
                description=f"type into '{intent.name}'",
            )
        except (ElementNotFoundError, InteractionFailedError, TimeoutError) as e:
            error = e if isinstance(e, InteractionFailedError) else InteractionFailedError(
                "type_text", target=intent.name, details=str(e).splitlines()[0], cause=e,
            )
            result = InteractionResult(ok=False, action="type_text", error=error)
            return self._finish(result, trace)

        ACTION_LOGGER.log(action="type_text", target=intent.name, screen=screen.name,
                          status="ok", metadata={"text": text})
        settle(TimeConfig.current().after_type_pause)
        return self._finish(InteractionResult(ok=True, action="type_text", tier="semantic"), trace)

    def dismiss_popup(self, labels: Sequence[str] = DEFAULT_POPUP_LABELS) -> bool:
        """
        Dismiss a system alert or an in-app sheet if one is showing.

        Tries the native alert dismissal, then each label as an exact
        accessibility id, then one button predicate matching any label.
        @return True when something was dismissed
        """
        screen = self._active()
        try:
            self.driver.execute_driver_command("mobile: alert", {"action": "dismiss"})
            log.info("System alert dismissed")
            settle(TimeConfig.current().after_dismiss_pause)
            return True
        except UIAutoError as e:
            log.debug("No system alert to dismiss: %s", e)

        strategies = [
            LocatorStrategy(f"exact:{label}", Locator(BY_ACCESSIBILITY_ID, label)) for label in labels
        ]
        if labels:
            contains = " OR ".join(f"label CONTAINS {quote_predicate(label)}" for label in labels)
            strategies.append(LocatorStrategy(
                "button_contains",
                Locator(BY_IOS_PREDICATE, f"type == 'XCUIElementTypeButton' AND ({contains})"),
            ))
        if not strategies:
            return False

        found = self.chain.resolve(Intent("popup", tuple(strategies)), screen.classifier)
        if not found:
            log.info("No popup found")
            return False
        if not self.gestures.tap(found.element, name=found.strategy):
            return False
        ACTION_LOGGER.log(action="dismiss_popup", target=found.strategy, screen=screen.name, status="ok")
        settle(TimeConfig.current().after_dismiss_pause)
        return True

    def dismiss_keyboard(self) -> bool:
        """
        Hide the software keyboard: Done/Return button, then the native
        hide command, then a tap in the safe zone just below the status bar.
        """
        screen = self._active()
        done = self.chain.resolve(
            Intent("keyboard_done", (LocatorStrategy("done_button", Locator(BY_IOS_PREDICATE, KEYBOARD_DONE_PREDICATE)),)),
            screen.classifier,
        )
        if done and self.gestures.tap(done.element, name="keyboard_done"):
            return True
        try:
            self.driver.execute_driver_command("mobile: hideKeyboard", {})
            return True
        except UIAutoError as e:
            log.debug("hideKeyboard rejected: %s", e)
        window = self.gestures.window_size()
        return bool(self.gestures.tap(Point(window["width"] // 2, self.settings.status_bar_height + 46)))

    # -------------------------
    # results
    # -------------------------

    def _finish(self, result: InteractionResult, trace: List[InteractionState]) -> InteractionResult:
        trace.append(InteractionState.DONE if result else InteractionState.FAILED)
        result.trace = [s.value for s in trace]
        if not result and result.error is not None:
            self._attach_artifacts(result.error, result.point)
            _log_failure(result.error)
        return result

    def _not_found_result(self, action: str, found: NotFound, trace: List[InteractionState]) -> InteractionResult:
        cause = self._not_found_error(found)
        error = InteractionFailedError(
            action, target=found.intent_name, details=found.reason.value, cause=cause, artifacts=cause.artifacts,
        )
        result = InteractionResult(ok=False, action=action, error=error, resolution=found)
        result.trace = [s.value for s in trace]
        _log_failure(error)
        return result

    def _not_found_error(self, found: NotFound) -> ElementNotFoundError:
        screen_name = self.screen.name if self.screen is not None else None
        error = found.to_error(screen_name)
        self._attach_artifacts(error)
        return error

    def _attach_artifacts(self, error: Union[ElementNotFoundError, InteractionFailedError], mark: Optional[Point] = None) -> None:
        if not self.settings.capture_artifacts or error.artifacts:
            return
        screen = self.screen.name if self.screen is not None else "noscreen"
        error.artifacts = make_artifacts(self.driver, self.settings.artifacts_dir, f"{screen}_{error.__class__.__name__}", mark)


def _search_trace(resolution: Resolution) -> List[InteractionState]:
    """States visited by one bounded search, reconstructed from its outcome."""
    states: List[InteractionState] = []
    for _ in range(resolution.scrolls):
        states += [
            InteractionState.SEARCHING,
            InteractionState.NOT_FOUND,
            InteractionState.SCROLL_CHECK,
            InteractionState.ALLOWED,
            InteractionState.SCROLLING,
        ]
    states.append(InteractionState.SEARCHING)
    if resolution:
        states.append(InteractionState.FOUND)
        return states
    states.append(InteractionState.NOT_FOUND)
    if resolution.reason is NotFoundReason.SCROLL_LIMIT_REACHED:
        states += [InteractionState.SCROLL_CHECK, InteractionState.DENIED]
    states.append(InteractionState.FAILED)
    return states


def _log_failure(error: UIAutoError) -> None:
    context = ActionContextManager.current()
    if context is not None:
        log.warning("%s\n%s", str(error).splitlines()[0], context.format_trace())


def _is_stale(result: InteractionResult) -> bool:
    return result.error is not None and isinstance(result.error.cause, StaleElementError)
