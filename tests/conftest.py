# tests/conftest.py
"""
Shared fixtures.
"""

import pytest

from uiauto_mobile.actionlogger import ACTION_LOGGER
from uiauto_mobile.config import EngineSettings, TimeConfig
from uiauto_mobile.context import ActionContextManager
from uiauto_mobile.engine import Engine

from .fakes import FakeDriver, FakeNode


@pytest.fixture(autouse=True)
def _quiet_and_fast():
    """No settle pauses, logging off, clean context stack."""
    ACTION_LOGGER.disable()
    ActionContextManager.clear()
    with TimeConfig.override(
        after_tap_pause=0,
        after_scroll_pause=0,
        after_swipe_pause=0,
        after_type_pause=0,
        after_dismiss_pause=0,
        staleness_retry={"interval": 0.0},
    ):
        yield
    ActionContextManager.clear()


@pytest.fixture
def driver():
    return FakeDriver(
        fixed=[FakeNode("Assets", y=60, height=44, type="XCUIElementTypeStaticText")],
        rows=[f"Row {i}" for i in range(1, 21)],
    )


@pytest.fixture
def settings():
    return EngineSettings()


@pytest.fixture
def engine(driver, settings):
    return Engine(driver, settings=settings)
