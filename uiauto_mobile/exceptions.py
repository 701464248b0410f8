# uiauto_mobile/exceptions.py
"""
@file exceptions.py
@brief Exception classes for the mobile interaction engine.

Only ConfigError is raised at load time. Everything else is recovered by the
next fallback tier wherever one exists; exhaustion is reported to callers as
a falsy result value that carries the last error.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


class UIAutoError(Exception):
    """Base exception for the engine."""
    pass


class ConfigError(UIAutoError):
    """Raised when the YAML object map or environment configuration is invalid."""
    pass


class TimeoutError(UIAutoError):
    """
    Raised when a wait/retry times out.

    Attributes:
        original_exception: The last exception that was raised before timeout
        description: Human-readable description of what was being waited for
        timeout: The timeout value in seconds
        attempt_count: Number of attempts made (if applicable)
        elapsed_time: Actual elapsed time in seconds (if applicable)
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.original_exception: Optional[BaseException] = None
        self.description: Optional[str] = None
        self.timeout: Optional[float] = None
        self.attempt_count: Optional[int] = None
        self.elapsed_time: Optional[float] = None

    def __str__(self) -> str:
        base_msg = super().__str__()

        details = []
        if self.original_exception is not None:
            details.append(f"Original exception: {type(self.original_exception).__name__}")
        if self.attempt_count is not None:
            details.append(f"Attempts: {self.attempt_count}")
        if self.elapsed_time is not None:
            details.append(f"Elapsed: {self.elapsed_time:.2f}s")

        if details:
            return f"{base_msg} [{', '.join(details)}]"
        return base_msg

    def get_root_cause(self) -> Optional[BaseException]:
        """
        Get the root cause exception by traversing the chain.

        @return The deepest original_exception in the chain, or None
        """
        current = self.original_exception
        while current is not None:
            if getattr(current, "original_exception", None) is not None:
                current = current.original_exception
            else:
                return current
        return None


@dataclass
class LocatorAttempt:
    """Records a single strategy attempt for debugging."""
    strategy: str
    locator: Dict[str, Any]
    error: Optional[str] = None
    matched: int = 0


class ElementNotFoundError(UIAutoError):
    """
    Raised by the *_or_raise helpers when every strategy tier came back empty.

    Contains detailed information about all strategy attempts made,
    including which screen was searched.
    """

    def __init__(
        self,
        intent_name: str,
        screen_name: Optional[str],
        attempts: List[LocatorAttempt],
        reason: Optional[str] = None,
        artifacts: Optional[Dict[str, str]] = None,
    ):
        self.intent_name = intent_name
        self.screen_name = screen_name
        self.attempts = attempts
        self.reason = reason
        self.artifacts = artifacts or {}
        super().__init__(self.__str__())

    def __str__(self) -> str:
        lines = [
            f"ElementNotFoundError: intent='{self.intent_name}' screen='{self.screen_name}'",
        ]
        if self.reason:
            lines.append(f"Reason: {self.reason}")
        lines.append("Attempts:")
        for i, a in enumerate(self.attempts, start=1):
            lines.append(f"  {i}. {a.strategy}: {a.locator} err={a.error}")
        if self.artifacts:
            lines.append(f"Artifacts: {self.artifacts}")
        return "\n".join(lines)


class InteractionFailedError(UIAutoError):
    """
    Raised when a gesture or driver command fails.

    Contains information about the interaction, the tier that was running
    and the underlying cause.
    """

    def __init__(
        self,
        action: str,
        target: Optional[str] = None,
        tier: Optional[str] = None,
        details: Optional[str] = None,
        cause: Optional[BaseException] = None,
        artifacts: Optional[Dict[str, str]] = None,
    ):
        self.action = action
        self.target = target
        self.tier = tier
        self.details = details
        self.cause = cause
        self.artifacts = artifacts or {}
        super().__init__(self.__str__())

    def __str__(self) -> str:
        base = f"InteractionFailedError: action='{self.action}'"
        if self.target:
            base += f" target='{self.target}'"
        if self.tier:
            base += f" tier={self.tier}"
        if self.details:
            base += f" details='{self.details}'"
        if self.cause:
            base += f" cause='{type(self.cause).__name__}: {self.cause}'"
        if self.artifacts:
            base += f" artifacts={self.artifacts}"
        return base

    def get_cause_traceback(self) -> str:
        """
        Get a formatted traceback string from the cause exception.

        @return Formatted traceback string or empty string if no cause
        """
        if self.cause is None:
            return ""

        import traceback
        return "".join(traceback.format_exception(
            type(self.cause),
            self.cause,
            self.cause.__traceback__
        ))


class StaleElementError(UIAutoError):
    """Raised when a previously resolved handle no longer matches the live UI."""

    def __init__(self, element_name: str, message: Optional[str] = None):
        self.element_name = element_name
        msg = f"Element '{element_name}' is stale (re-rendered or recycled)"
        if message:
            msg += f": {message}"
        super().__init__(msg)
