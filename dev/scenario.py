#!/usr/bin/env python3
import json
import os
import sys

from uiauto_mobile import Engine, Repository
from uiauto_mobile.appium_driver import AppiumDriver
from uiauto_mobile.exceptions import UIAutoError


def main() -> int:
    """
    Developer-mode E2E run against the asset-management app.
    Uses the engine API directly, without the CLI.
    """

    # ===== PATH CONFIG =====
    ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    OBJECT_MAP = os.path.join(ROOT, "object-maps", "elements.yaml")
    CAPS_PATH = os.environ.get("UIAUTO_CAPS", os.path.join(ROOT, "object-maps", "caps.json"))
    SERVER = os.environ.get("UIAUTO_SERVER", "http://127.0.0.1:4723")

    ASSET_NAME = "Automation UPS 01"

    if not os.path.exists(CAPS_PATH):
        print(f"Capabilities file not found: {CAPS_PATH}")
        return 1

    with open(CAPS_PATH, "r", encoding="utf-8") as f:
        capabilities = json.load(f)

    # ===== LOAD OBJECT MAP =====
    repo = Repository(OBJECT_MAP)

    # ===== SESSION =====
    print("Connecting to Appium...")
    driver = AppiumDriver.connect(SERVER, capabilities)
    engine = Engine(driver, repository=repo)

    try:
        # ===== SITE =====
        print("Opening site list...")
        with engine.screen_scope("site_selection"):
            engine.dismiss_popup()
            engine.tap_or_raise("view_sites")
            sites = engine.collect("site_rows")
            print(f"Sites visible: {len(sites.identities) if sites else 0}")
            if sites:
                engine.reorient()
                engine.tap_or_raise("site_rows")

        # ===== CREATE ASSET =====
        print("Creating asset...")
        with engine.screen_scope("asset_list"):
            engine.tap_or_raise("create_asset")

        with engine.screen_scope("asset_details"):
            if not engine.wait_for("name_field"):
                print("Asset details form did not render")
                return 2
            typed = engine.type_text("name_field", ASSET_NAME)
            typed.raise_for_failure()
            engine.dismiss_keyboard()

            picker = engine.tap("asset_class")
            if not picker and picker.resolution is not None:
                # Ceiling hit before the row appeared: start over from the top.
                engine.reorient()
                engine.tap_or_raise("asset_class")
            engine.tap_or_raise("UPS")

            engine.tap_or_raise("save")

        # ===== DONE =====
        print("Asset creation E2E run completed.")
        return 0

    except UIAutoError as e:
        print("\nAutomation run failed!")
        print(e)
        return 2

    finally:
        # ===== CLEANUP =====
        driver.quit()


if __name__ == "__main__":
    sys.exit(main())
