# uiauto_mobile/classifier.py
"""
@file classifier.py
@brief Geometry-based disambiguation of structurally ambiguous nodes.

Textual identity is frequently null or duplicated across overlapping layers
(an overlay and the list behind it both expose a "Cancel"), so these rules
look at where a node sits rather than what it says. All thresholds are
per-screen configuration; see ClassifierConfig.from_chrome for deriving them
from the measured device chrome.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .element import ElementRef, Point, Rect
from .exceptions import ConfigError, UIAutoError

log = logging.getLogger("uiauto_mobile.classifier")

RULES = ("in_content", "list_entry", "y_range", "row_member", "nearest")


@dataclass(frozen=True)
class ClassifierConfig:
    """
    Thresholds for one screen.

    content_top: nodes whose top edge is above this Y belong to the
        navigation/status chrome rather than the screen content
    min_list_entry_height: list rows are at least this tall; compact
        navigation rows and section headers are shorter
    row_tolerance: slack in pixels when testing row membership
    """
    content_top: int = 0
    min_list_entry_height: int = 0
    row_tolerance: int = 4

    def __post_init__(self) -> None:
        for name in ("content_top", "min_list_entry_height", "row_tolerance"):
            if getattr(self, name) < 0:
                raise ConfigError(f"classifier.{name} must be >= 0")

    @classmethod
    def from_chrome(
        cls,
        window_size: Mapping[str, Any],
        status_bar_height: int,
        navigation_bar_height: int = 0,
        header_height: int = 0,
        min_list_entry_height: Optional[int] = None,
        row_tolerance: int = 4,
    ) -> ClassifierConfig:
        """
        Derive thresholds from measured chrome instead of fixed pixels.

        content_top is the sum of the top chrome: status bar, navigation bar
        and any fixed header.

        Without an explicit list-entry height, rows are taken to be at least
        6% of the window height, which separates two-line list cells from
        single-line navigation rows on phone-sized windows.
        """
        height = int(window_size["height"])
        if min_list_entry_height is None:
            min_list_entry_height = max(1, int(height * 0.06))
        return cls(
            content_top=int(status_bar_height) + int(navigation_bar_height) + int(header_height),
            min_list_entry_height=int(min_list_entry_height),
            row_tolerance=row_tolerance,
        )

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> ClassifierConfig:
        data = data or {}
        try:
            return cls(
                content_top=int(data.get("content_top", 0)),
                min_list_entry_height=int(data.get("min_list_entry_height", 0)),
                row_tolerance=int(data.get("row_tolerance", 4)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid classifier config: {dict(data)}") from e


@dataclass(frozen=True)
class GeometryFilter:
    """
    A geometry rule attached to a locator strategy.

    rule is "in_content", "list_entry" or "y_range"; y_range uses
    y_min/y_max (either may be open).
    """
    rule: str
    y_min: Optional[int] = None
    y_max: Optional[int] = None

    def __post_init__(self) -> None:
        if self.rule not in ("in_content", "list_entry", "y_range"):
            raise ConfigError(f"Unknown geometry filter rule: {self.rule}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GeometryFilter:
        return cls(rule=str(data["rule"]), y_min=data.get("y_min"), y_max=data.get("y_max"))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"rule": self.rule}
        if self.y_min is not None:
            data["y_min"] = self.y_min
        if self.y_max is not None:
            data["y_max"] = self.y_max
        return data


class ElementClassifier:
    """Applies geometry rules to candidate nodes."""

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self.config = config or ClassifierConfig()

    @staticmethod
    def _rect(ref: ElementRef) -> Optional[Rect]:
        try:
            return ref.rect
        except UIAutoError as e:
            log.debug("Dropping candidate without readable geometry: %s", e)
            return None

    def is_in_content(self, ref: ElementRef) -> bool:
        rect = self._rect(ref)
        return rect is not None and rect.top >= self.config.content_top

    def is_list_entry(self, ref: ElementRef) -> bool:
        rect = self._rect(ref)
        return rect is not None and rect.height >= self.config.min_list_entry_height

    def is_in_y_range(self, ref: ElementRef, y_min: Optional[int], y_max: Optional[int]) -> bool:
        rect = self._rect(ref)
        if rect is None:
            return False
        if y_min is not None and rect.top < y_min:
            return False
        if y_max is not None and rect.top > y_max:
            return False
        return True

    def is_row_member(self, ref: ElementRef, cell: Rect) -> bool:
        """True when the node's vertical centre falls within the cell's bounds."""
        rect = self._rect(ref)
        if rect is None:
            return False
        tol = self.config.row_tolerance
        return cell.top - tol <= rect.center.y <= cell.bottom + tol

    def filter(self, candidates: Iterable[ElementRef], geometry: GeometryFilter) -> List[ElementRef]:
        if geometry.rule == "in_content":
            return [c for c in candidates if self.is_in_content(c)]
        if geometry.rule == "list_entry":
            return [c for c in candidates if self.is_list_entry(c)]
        return [c for c in candidates if self.is_in_y_range(c, geometry.y_min, geometry.y_max)]

    def row_members(self, candidates: Iterable[ElementRef], cell: Rect) -> List[ElementRef]:
        return [c for c in candidates if self.is_row_member(c, cell)]

    def nearest(self, candidates: Iterable[ElementRef], point: Point) -> Optional[ElementRef]:
        """Candidate whose centre is closest to point."""
        best: Optional[ElementRef] = None
        best_dist: Optional[int] = None
        for c in candidates:
            rect = self._rect(c)
            if rect is None:
                continue
            center = rect.center
            dist = (center.x - point.x) ** 2 + (center.y - point.y) ** 2
            if best_dist is None or dist < best_dist:
                best, best_dist = c, dist
        return best

    def best_match(
        self,
        candidates: Iterable[ElementRef],
        rule: str,
        *,
        cell: Optional[Rect] = None,
        point: Optional[Point] = None,
        y_min: Optional[int] = None,
        y_max: Optional[int] = None,
    ) -> Optional[ElementRef]:
        """
        Return the best match for a rule, or None.

        For the filtering rules the topmost surviving node wins, since the
        foreground layer of a sheet is laid out above the content behind it.
        """
        if rule not in RULES:
            raise ValueError(f"Unknown classifier rule: {rule}")
        if rule == "nearest":
            if point is None:
                raise ValueError("rule 'nearest' needs a point")
            return self.nearest(candidates, point)
        if rule == "row_member":
            if cell is None:
                raise ValueError("rule 'row_member' needs a cell rect")
            matches = self.row_members(candidates, cell)
        else:
            matches = self.filter(candidates, GeometryFilter(rule, y_min=y_min, y_max=y_max))
        if not matches:
            return None
        return min(matches, key=lambda c: (c.rect.top, c.rect.left))
