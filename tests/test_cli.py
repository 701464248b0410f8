# tests/test_cli.py
"""
Tests for the uiauto-mobile command line.
"""

import json
import os

import pytest

from uiauto_mobile.appium_driver import AppiumDriver
from uiauto_mobile.cli import _resolve_timing_options, main
from uiauto_mobile.config import TimeConfig

from .fakes import FakeDriver, FakeNode

EXAMPLE_MAP = os.path.join(os.path.dirname(__file__), "..", "object-maps", "elements.yaml")


class SessionDriver(FakeDriver):
    """FakeDriver with a session to close."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.quit_called = False

    def quit(self):
        self.quit_called = True


@pytest.fixture
def caps(tmp_path):
    path = tmp_path / "caps.json"
    path.write_text(json.dumps({"platformName": "iOS"}), encoding="utf-8")
    return str(path)


@pytest.fixture
def session(monkeypatch):
    driver = SessionDriver(
        fixed=[FakeNode("Assets", y=60, height=44)],
        rows=[f"Row {i}" for i in range(1, 21)],
    )
    monkeypatch.setattr(AppiumDriver, "connect", lambda server, capabilities: driver)
    return driver


class TestValidate:

    def test_valid_map(self, capsys):
        assert main(["validate", "--elements", EXAMPLE_MAP]) == 0
        out = capsys.readouterr().out
        assert "Object map is valid" in out
        assert "Screens: 3" in out

    def test_invalid_map(self, tmp_path, capsys):
        bad = tmp_path / "bad.yaml"
        bad.write_text("app:\n  max_scroll_down: -1\n", encoding="utf-8")

        assert main(["validate", "--elements", EXAMPLE_MAP, str(bad)]) == 2
        assert "Object map is invalid" in capsys.readouterr().err


class TestListScreens:

    def test_lists_intents_and_tiers(self, capsys):
        assert main(["list-screens", "--elements", EXAMPLE_MAP]) == 0
        out = capsys.readouterr().out
        assert "[asset_list] max_scroll_down=4" in out
        assert "- create_asset:" in out

    def test_missing_file(self, tmp_path, capsys):
        assert main(["list-screens", "--elements", str(tmp_path / "nope.yaml")]) == 1
        assert "Error loading object map" in capsys.readouterr().err


class TestPresets:

    def test_lists_every_preset(self, capsys):
        assert main(["presets"]) == 0
        out = capsys.readouterr().out
        for name in ("default", "fast", "slow", "ci"):
            assert f"{name}:" in out


class TestResolve:
    """Live lookups against a patched session."""

    def test_found_without_scrolling(self, session, caps, capsys):
        code = main(["resolve", "--caps", caps, "--screen", "asset_list", "--intent", "Assets"])

        assert code == 0
        assert "Found 'Assets' via exact_label after 0 scroll(s)" in capsys.readouterr().out
        assert session.quit_called

    def test_scroll_search(self, session, caps, capsys):
        code = main(["resolve", "--caps", caps, "--screen", "asset_list", "--intent", "Row 9", "--scroll"])

        assert code == 0
        assert "after 2 scroll(s)" in capsys.readouterr().out

    def test_not_found(self, session, caps, capsys):
        code = main(["resolve", "--caps", caps, "--screen", "asset_list", "--intent", "Row 9"])

        assert code == 2
        assert "Not found: 'Row 9' (no_match)" in capsys.readouterr().out
        assert session.scroll_count() == 0

    def test_wait_with_preset(self, session, caps, capsys):
        code = main([
            "resolve", "--caps", caps, "--screen", "asset_list",
            "--intent", "Assets", "--wait", "--fast",
        ])

        assert code == 0
        assert getattr(TimeConfig._local, "run_config", None) is None

    def test_missing_caps_file(self, tmp_path, capsys):
        code = main(["resolve", "--caps", str(tmp_path / "caps.json"), "--screen", "s", "--intent", "x"])

        assert code == 1
        assert "Error" in capsys.readouterr().err

    def test_presets_are_exclusive(self, caps):
        with pytest.raises(SystemExit):
            main(["resolve", "--caps", caps, "--screen", "s", "--intent", "x", "--ci", "--fast"])


class TestTimingOptions:

    def test_preset_flags(self):
        class Args:
            ci = False
            fast = True
            slow = False
            timeout = None

        assert _resolve_timing_options(Args()) == ("fast", {})

    def test_timeout_override(self):
        class Args:
            timeout = 10.0

        preset, overrides = _resolve_timing_options(Args())

        assert preset == "default"
        assert overrides["resolve_element"] == {"timeout": 10.0}
        assert overrides["exists_wait"] == {"timeout": 2.0}
