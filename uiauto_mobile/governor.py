# uiauto_mobile/governor.py
"""
@file governor.py
@brief Per-screen bounded scroll-depth counter.

The host UI recycles off-screen rows, so scrolling down without bound can
push a reference node (a section header used for relative geometry) out of
any addressable state. The ceiling makes callers reorient (scroll back to
the top) instead of drifting further.
"""

import enum


class ScrollPermission(enum.Enum):
    ALLOWED = "allowed"
    DENIED = "denied"

    def __bool__(self) -> bool:
        return self is ScrollPermission.ALLOWED


# Denial is reported as a value, never raised.
ScrollLimitReached = ScrollPermission.DENIED


class ScrollDepthGovernor:
    """Integer depth held in [0, max_scroll_down]."""

    def __init__(self, max_scroll_down: int = 4):
        if max_scroll_down < 0:
            raise ValueError("max_scroll_down must be >= 0")
        self.max_scroll_down = int(max_scroll_down)
        self._depth = 0

    def __repr__(self) -> str:
        return f"ScrollDepthGovernor(depth={self._depth}, max_scroll_down={self.max_scroll_down})"

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def remaining(self) -> int:
        return self.max_scroll_down - self._depth

    def can_scroll_down(self) -> bool:
        return self._depth < self.max_scroll_down

    def scroll_down(self) -> ScrollPermission:
        """Claim one downward scroll. DENIED at the ceiling (no-op)."""
        if self._depth >= self.max_scroll_down:
            return ScrollPermission.DENIED
        self._depth += 1
        return ScrollPermission.ALLOWED

    def scroll_up(self) -> int:
        """Record one upward scroll, floored at 0. Returns the new depth."""
        if self._depth > 0:
            self._depth -= 1
        return self._depth

    def reset(self) -> None:
        self._depth = 0
