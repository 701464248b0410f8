# uiauto_mobile/appium_driver.py
"""
@file appium_driver.py
@brief IDriver implementation over an Appium session.

Selenium errors are translated at this boundary:

* NoSuchElementException on lookup -> empty result
* StaleElementReferenceException -> StaleElementError
* any other WebDriverException -> InteractionFailedError
"""

from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Mapping, Optional

from appium import webdriver
from appium.options.android import UiAutomator2Options
from appium.options.ios import XCUITestOptions
from selenium.common.exceptions import (
    NoSuchElementException,
    StaleElementReferenceException,
    WebDriverException,
)
from selenium.webdriver.common.actions import interaction
from selenium.webdriver.common.actions.action_builder import ActionBuilder
from selenium.webdriver.common.actions.pointer_input import PointerInput

from .driver import IDriver, Locator, PointerSequence
from .exceptions import ConfigError, InteractionFailedError, StaleElementError

log = logging.getLogger("uiauto_mobile.appium")


def _message(error: WebDriverException) -> str:
    text = (getattr(error, "msg", None) or str(error) or "").strip()
    return text.splitlines()[0] if text else type(error).__name__


class AppiumDriver(IDriver):
    """Wraps an ``appium.webdriver.Remote`` session."""

    def __init__(self, remote: webdriver.Remote):
        self.remote = remote

    @classmethod
    def connect(
        cls,
        server_url: str,
        capabilities: Mapping[str, Any],
        implicit_wait: float = 0.0,
    ) -> AppiumDriver:
        """
        Open a session.

        @param server_url Appium server, e.g. http://127.0.0.1:4723
        @param capabilities Capability dict; platformName picks XCUITest or UiAutomator2
        @param implicit_wait Kept at 0 by default so empty lookups return at once
        """
        platform = str(capabilities.get("platformName") or capabilities.get("appium:platformName") or "").lower()
        if platform == "ios":
            options = XCUITestOptions()
        elif platform == "android":
            options = UiAutomator2Options()
        else:
            raise ConfigError(f"capabilities.platformName must be 'iOS' or 'Android', got {platform!r}")
        options.load_capabilities(dict(capabilities))

        log.info("Connecting to %s (%s)", server_url, platform)
        try:
            remote = webdriver.Remote(command_executor=server_url, options=options)
        except WebDriverException as e:
            raise InteractionFailedError("connect", target=server_url, details=_message(e), cause=e) from e
        remote.implicitly_wait(implicit_wait)
        log.info("Session %s started", remote.session_id)
        return cls(remote)

    def quit(self) -> None:
        try:
            self.remote.quit()
        except WebDriverException as e:
            log.warning("Session quit failed: %s", _message(e))

    @contextmanager
    def _translated(self, action: str, target: Optional[str] = None) -> Generator[None, None, None]:
        try:
            yield
        except StaleElementReferenceException as e:
            raise StaleElementError(target or action, _message(e)) from e
        except WebDriverException as e:
            raise InteractionFailedError(action, target=target, details=_message(e), cause=e) from e

    # -------------------------
    # IDriver
    # -------------------------

    def find(self, locator: Locator) -> List[Any]:
        try:
            with self._translated("find", locator.value):
                return list(self.remote.find_elements(locator.by, locator.value))
        except InteractionFailedError as e:
            if isinstance(e.cause, NoSuchElementException):
                return []
            raise

    def get_attribute(self, handle: Any, name: str) -> Optional[str]:
        with self._translated("get_attribute", name):
            return handle.get_attribute(name)

    def get_location(self, handle: Any) -> Dict[str, int]:
        with self._translated("get_location"):
            return dict(handle.location)

    def get_size(self, handle: Any) -> Dict[str, int]:
        with self._translated("get_size"):
            return dict(handle.size)

    def click(self, handle: Any) -> None:
        with self._translated("click"):
            handle.click()

    def send_keys(self, handle: Any, text: str) -> None:
        with self._translated("send_keys"):
            handle.send_keys(text)

    def clear(self, handle: Any) -> None:
        with self._translated("clear"):
            handle.clear()

    def perform_gesture(self, sequence: PointerSequence) -> None:
        builder = ActionBuilder(
            self.remote,
            mouse=PointerInput(interaction.POINTER_TOUCH, sequence.pointer_id),
        )
        pointer = builder.pointer_action
        for step in sequence.actions:
            if step.kind == "move":
                pointer.source.create_pointer_move(
                    duration=step.duration_ms, x=step.x, y=step.y, origin="viewport",
                )
            elif step.kind == "down":
                pointer.pointer_down()
            elif step.kind == "up":
                pointer.pointer_up()
            elif step.kind == "pause":
                pointer.pause(step.duration_ms / 1000.0)
            else:
                raise ValueError(f"Unknown pointer action: {step.kind}")
        with self._translated("perform_gesture"):
            builder.perform()

    def execute_driver_command(self, name: str, params: Dict[str, Any]) -> Any:
        with self._translated(name):
            return self.remote.execute_script(name, params)

    def get_window_size(self) -> Dict[str, int]:
        with self._translated("get_window_size"):
            size = self.remote.get_window_size()
        return {"width": int(size["width"]), "height": int(size["height"])}

    def get_screenshot_png(self) -> Optional[bytes]:
        with self._translated("screenshot"):
            return self.remote.get_screenshot_as_png()

    def get_page_source(self) -> Optional[str]:
        with self._translated("page_source"):
            return self.remote.page_source
