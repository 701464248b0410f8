# uiauto_mobile/artifacts.py
"""
Failure artifacts: device screenshot (optionally annotated with the tap
point) and a page-source dump. Artifact errors never mask the real failure.
"""
from __future__ import annotations
import io
import logging
import os
import time
from typing import Dict, Mapping, Optional

from PIL import Image, ImageDraw

from .driver import IDriver
from .element import Point

log = logging.getLogger("uiauto_mobile.artifacts")


def _ts() -> str:
    return time.strftime("%Y%m%d_%H%M%S")


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _safe_prefix(prefix: str) -> str:
    return "".join(c if c.isalnum() or c in "-_" else "_" for c in prefix) or "artifact"


def save_screenshot(
    png: bytes,
    out_dir: str,
    name_prefix: str,
    mark: Optional[Point] = None,
    window_size: Optional[Mapping[str, int]] = None,
) -> str:
    """
    Write a PNG screenshot, drawing a red ring at mark when given.

    Screenshots are in device pixels while taps are in points, so the mark is
    scaled by image width / window width.
    """
    ensure_dir(out_dir)
    path = os.path.join(out_dir, f"{name_prefix}_{_ts()}.png")
    with Image.open(io.BytesIO(png)) as img:
        img = img.convert("RGB")
        if mark is not None:
            scale = 1.0
            if window_size and window_size.get("width"):
                scale = img.width / float(window_size["width"])
            x, y = int(mark.x * scale), int(mark.y * scale)
            radius = max(8, int(12 * scale))
            draw = ImageDraw.Draw(img)
            draw.ellipse([(x - radius, y - radius), (x + radius, y + radius)], outline="red", width=4)
            draw.text((x + radius + 6, y - radius), f"({mark.x},{mark.y})", fill="red")
        img.save(path)
    return path


def save_page_source(source: str, out_dir: str, name_prefix: str) -> str:
    ensure_dir(out_dir)
    path = os.path.join(out_dir, f"{name_prefix}_{_ts()}.xml")
    with open(path, "w", encoding="utf-8") as f:
        f.write(source)
    return path


def make_artifacts(
    driver: IDriver,
    out_dir: str,
    prefix: str,
    mark: Optional[Point] = None,
) -> Dict[str, str]:
    """
    Capture what the driver can provide.

    @param driver Driver exposing the optional artifact hooks
    @param out_dir Output directory
    @param prefix File prefix (sanitised)
    @param mark Optional tap point to annotate on the screenshot
    @return Dict of artifact type to file path
    """
    artifacts: Dict[str, str] = {}
    prefix = _safe_prefix(prefix)

    try:
        png = driver.get_screenshot_png()
        if png:
            window = driver.get_window_size() if mark is not None else None
            artifacts["screenshot"] = save_screenshot(png, out_dir, prefix + "_screenshot", mark, window)
    except Exception as e:
        log.warning("Screenshot capture failed: %s", e)

    try:
        source = driver.get_page_source()
        if source:
            artifacts["page_source"] = save_page_source(source, out_dir, prefix + "_source")
    except Exception as e:
        log.warning("Page source dump failed: %s", e)

    return artifacts
