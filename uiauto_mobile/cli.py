# uiauto_mobile/cli.py
"""
@file cli.py
@brief Command-line interface for uiauto-mobile.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, List, Optional, Tuple

from .actionlogger import ACTION_LOGGER
from .config import TimeConfig, available_presets
from .context import ActionContextManager
from .exceptions import UIAutoError
from .repository import Repository


def _resolve_timing_options(args: argparse.Namespace) -> Tuple[str, Dict[str, Any]]:
    """Timing preset and --timeout overrides for a live command."""
    preset = "default"
    if getattr(args, "ci", False):
        preset = "ci"
    elif getattr(args, "fast", False):
        preset = "fast"
    elif getattr(args, "slow", False):
        preset = "slow"

    overrides: Dict[str, Any] = {}
    timeout = getattr(args, "timeout", None)
    if timeout is not None:
        overrides = {
            "resolve_element": {"timeout": timeout},
            "exists_wait": {"timeout": max(timeout / 5, 0.1)},
            "window_size": {"timeout": max(timeout / 2, 0.5)},
        }
    return preset, overrides


def _print_attempts(attempts) -> None:
    for i, a in enumerate(attempts, start=1):
        status = f"error={a.error}" if a.error else f"matched={a.matched}"
        print(f"  {i}. {a.strategy}: {a.locator['by']}={a.locator['value']!r} {status}")


def _cmd_validate(args: argparse.Namespace) -> int:
    errors = 0
    for path in args.elements:
        try:
            repo = Repository(path)
        except UIAutoError as e:
            errors += 1
            print(f"X Object map is invalid: {path}\n{e}", file=sys.stderr)
            continue
        screens = repo.list_screens()
        intents = sum(len(repo.list_intents(s)) for s in screens)
        print(f"+ Object map is valid: {path}")
        print(f"  - Screens: {len(screens)}")
        print(f"  - Intents: {intents}")
        print(f"  - max_scroll_down: {repo.settings.max_scroll_down}")
    return 2 if errors else 0


def _cmd_list_screens(args: argparse.Namespace) -> int:
    try:
        repo = Repository(args.elements)
    except UIAutoError as e:
        print(f"Error loading object map: {e}", file=sys.stderr)
        return 1

    screens = repo.list_screens()
    print(f"Screens ({len(screens)}):")
    for name in screens:
        ctx = repo.screen_context(name)
        print(f"\n  [{name}] max_scroll_down={ctx.max_scroll_down}")
        for intent_name in repo.list_intents(name):
            intent = repo.intent(name, intent_name)
            tiers = ", ".join(s.name for s in intent.strategies)
            print(f"    - {intent_name}: {tiers}")
    return 0


def _cmd_presets(args: argparse.Namespace) -> int:
    for name, overrides in available_presets().items():
        print(f"{name}: {len(overrides)} override(s)")
        for key, value in overrides.items():
            print(f"  {key} = {value}")
    return 0


def _cmd_resolve(args: argparse.Namespace) -> int:
    from .appium_driver import AppiumDriver
    from .engine import Engine

    try:
        with open(args.caps, "r", encoding="utf-8") as f:
            capabilities = json.load(f)
        repo = Repository(args.elements) if args.elements else None
        driver = AppiumDriver.connect(args.server, capabilities)
    except (OSError, ValueError, UIAutoError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    timing_preset, timing_overrides = _resolve_timing_options(args)

    try:
        engine = Engine(driver, repository=repo)
        # Command-line timing wins over the object map preset
        if timing_preset != "default" or timing_overrides:
            TimeConfig.install_run_config(
                TimeConfig.build_from(preset=timing_preset, overrides=timing_overrides)
            )
        with engine.screen_scope(args.screen):
            if args.scroll:
                result = engine.search_with_scroll(args.intent)
            elif args.wait:
                result = engine.wait_for(args.intent)
            else:
                result = engine.resolve(args.intent)
            if result:
                print(f"+ Found '{args.intent}' via {result.strategy} after {result.scrolls} scroll(s)")
                for ref in result.elements:
                    print(f"  - {ref.label!r} {ref.rect}")
            else:
                print(f"X Not found: '{args.intent}' ({result.reason.value})")
            _print_attempts(result.attempts)
            return 0 if result else 2
    except UIAutoError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        ActionContextManager.clear()
        TimeConfig.clear_run_config()
        driver.quit()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    argv = argv if argv is not None else sys.argv[1:]
    ACTION_LOGGER.configure_from_env()

    p = argparse.ArgumentParser(
        prog="uiauto-mobile",
        description="uiauto-mobile - resilient element resolution for Appium-driven mobile UIs",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # -------------------------
    # validate
    # -------------------------
    valp = sub.add_parser("validate", help="Validate object map files against the schema")
    valp.add_argument("--elements", "-e", required=True, nargs="+", help="Path(s) to elements.yaml")

    # -------------------------
    # list-screens
    # -------------------------
    listp = sub.add_parser("list-screens", help="List screens and their intents")
    listp.add_argument("--elements", "-e", required=True, help="Path to elements.yaml")

    # -------------------------
    # presets
    # -------------------------
    sub.add_parser("presets", help="Show timing presets")

    # -------------------------
    # resolve (live session)
    # -------------------------
    resp = sub.add_parser("resolve", help="Resolve one intent against a live Appium session")
    resp.add_argument("--server", default="http://127.0.0.1:4723", help="Appium server URL")
    resp.add_argument("--caps", required=True, help="Path to capabilities JSON")
    resp.add_argument("--elements", "-e", default=None, help="Path to elements.yaml (optional)")
    resp.add_argument("--screen", required=True, help="Screen name")
    resp.add_argument("--intent", required=True, help="Intent name or visible label")
    resp.add_argument("--scroll", action="store_true", help="Scroll down while searching")
    resp.add_argument("--wait", action="store_true", help="Poll without scrolling until resolve_element times out")
    resp.add_argument("--timeout", "-t", type=float, default=None, help="Override base timeouts in seconds (intervals stay from preset)")
    timing = resp.add_mutually_exclusive_group()
    timing.add_argument("--ci", action="store_true", help="Use CI-optimized timeout settings")
    timing.add_argument("--fast", action="store_true", help="Use fast timeout settings for local development")
    timing.add_argument("--slow", action="store_true", help="Use slow timeout settings for unstable environments")

    args = p.parse_args(argv)

    handlers = {
        "validate": _cmd_validate,
        "list-screens": _cmd_list_screens,
        "presets": _cmd_presets,
        "resolve": _cmd_resolve,
    }
    return handlers[args.cmd](args)


if __name__ == "__main__":
    sys.exit(main())
