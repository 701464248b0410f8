# uiauto_mobile/element.py
"""
@file element.py
@brief Geometry value types and the short-lived ElementRef handle.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Hashable, Optional

from .driver import IDriver


@dataclass(frozen=True)
class Point:
    x: int
    y: int

    def offset(self, dx: int = 0, dy: int = 0) -> Point:
        return Point(self.x + dx, self.y + dy)


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def top(self) -> int:
        return self.y

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def left(self) -> int:
        return self.x

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def center(self) -> Point:
        return Point(self.x + self.width // 2, self.y + self.height // 2)

    def contains_y(self, y: int) -> bool:
        return self.top <= y <= self.bottom

    def contains(self, point: Point) -> bool:
        return self.left <= point.x <= self.right and self.contains_y(point.y)

    @classmethod
    def from_driver(cls, location: Dict[str, Any], size: Dict[str, Any]) -> Rect:
        return cls(
            int(location["x"]),
            int(location["y"]),
            int(size["width"]),
            int(size["height"]),
        )


class ElementRef:
    """
    Handle to a live UI node.

    Treat as valid for one interaction only: a re-render or recycled row
    invalidates it, and the driver then raises StaleElementError. Geometry
    is read once per ref and cached for its short life.
    """

    LABEL_ATTRIBUTES = ("label", "name", "text", "content-desc", "value")

    def __init__(self, handle: Any, driver: IDriver, source: Optional[str] = None):
        """
        @param handle Raw driver handle
        @param driver Driver that produced the handle
        @param source Name of the strategy that matched this node
        """
        self.handle = handle
        self.driver = driver
        self.source = source
        self._rect: Optional[Rect] = None

    def __repr__(self) -> str:
        return f"ElementRef(handle={self.handle!r}, rect={self._rect}, source={self.source!r})"

    @property
    def rect(self) -> Rect:
        if self._rect is None:
            self._rect = Rect.from_driver(
                self.driver.get_location(self.handle),
                self.driver.get_size(self.handle),
            )
        return self._rect

    @property
    def center(self) -> Point:
        return self.rect.center

    def attribute(self, name: str) -> Optional[str]:
        value = self.driver.get_attribute(self.handle, name)
        if value is None:
            return None
        value = str(value)
        return value if value.strip() else None

    @property
    def label(self) -> Optional[str]:
        """First non-empty textual attribute, or None."""
        for name in self.LABEL_ATTRIBUTES:
            value = self.attribute(name)
            if value is not None:
                return value
        return None

    @property
    def element_type(self) -> Optional[str]:
        return self.attribute("type") or self.attribute("class")

    def identity(self) -> Hashable:
        """
        Key used to count unique results across scroll iterations.

        Textual identity survives view recycling; geometry is the last
        resort because the same row moves as the list scrolls.
        """
        label = self.label
        if label is not None:
            return ("label", label)
        handle_id = getattr(self.handle, "id", None)
        if handle_id is not None:
            return ("id", handle_id)
        r = self.rect
        return ("rect", r.x, r.y, r.width, r.height)
