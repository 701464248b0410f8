# uiauto_mobile/driver.py
"""
@file driver.py
@brief Interface consumed from the remote automation driver.

The engine never interprets query values: a Locator is handed to the driver
as-is. Concrete implementations translate their own transport errors into
the engine's exceptions:

* nothing matched -> empty list from find() (never an exception)
* handle no longer attached -> StaleElementError
* command rejected by the device -> InteractionFailedError
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Locator:
    """One query in the host driver's query language."""
    by: str
    value: str

    def to_dict(self) -> Dict[str, str]:
        return {"by": self.by, "value": self.value}


@dataclass(frozen=True)
class PointerAction:
    """
    A single step of a touch pointer sequence.

    kind is one of "move", "down", "up", "pause". Coordinates are viewport
    pixels; duration_ms applies to "move" and "pause".
    """
    kind: str
    x: Optional[int] = None
    y: Optional[int] = None
    duration_ms: int = 0


@dataclass
class PointerSequence:
    """Ordered touch actions for one finger."""
    pointer_id: str = "finger"
    actions: List[PointerAction] = field(default_factory=list)

    def move(self, x: int, y: int, duration_ms: int = 0) -> "PointerSequence":
        self.actions.append(PointerAction("move", x, y, duration_ms))
        return self

    def down(self) -> "PointerSequence":
        self.actions.append(PointerAction("down"))
        return self

    def up(self) -> "PointerSequence":
        self.actions.append(PointerAction("up"))
        return self

    def pause(self, duration_ms: int) -> "PointerSequence":
        self.actions.append(PointerAction("pause", duration_ms=duration_ms))
        return self


class IDriver(ABC):
    """
    Abstract automation driver.

    Handles returned by find() are opaque to the engine and only ever passed
    back into this interface.
    """

    @abstractmethod
    def find(self, locator: Locator) -> List[Any]:
        """
        Run a query against the live tree.

        Returns:
            Raw handles in document order; empty list when nothing matched
        """
        pass

    @abstractmethod
    def get_attribute(self, handle: Any, name: str) -> Optional[str]:
        pass

    @abstractmethod
    def get_location(self, handle: Any) -> Dict[str, int]:
        """Return ``{"x": ..., "y": ...}`` in viewport pixels."""
        pass

    @abstractmethod
    def get_size(self, handle: Any) -> Dict[str, int]:
        """Return ``{"width": ..., "height": ...}``."""
        pass

    @abstractmethod
    def click(self, handle: Any) -> None:
        pass

    @abstractmethod
    def send_keys(self, handle: Any, text: str) -> None:
        pass

    @abstractmethod
    def perform_gesture(self, sequence: PointerSequence) -> None:
        """Perform a synthesized W3C touch sequence."""
        pass

    @abstractmethod
    def execute_driver_command(self, name: str, params: Dict[str, Any]) -> Any:
        """
        Run a native driver command such as ``mobile: tap`` or
        ``mobile: scroll``.
        """
        pass

    @abstractmethod
    def get_window_size(self) -> Dict[str, int]:
        pass

    def clear(self, handle: Any) -> None:
        """Clear a text input. Optional; the default cannot clear."""
        raise NotImplementedError(f"{type(self).__name__} does not support clear()")

    def get_screenshot_png(self) -> Optional[bytes]:
        """Optional artifact hook."""
        return None

    def get_page_source(self) -> Optional[str]:
        """Optional artifact hook."""
        return None
