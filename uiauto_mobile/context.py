# uiauto_mobile/context.py
"""
@file context.py
@brief Interaction context stack for traces in logs and error messages.
"""

from __future__ import annotations
import functools
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Generator, List, Optional
from uuid import uuid4

from .actionlogger import ACTION_LOGGER


@dataclass
class ActionContext:
    """Context information for a single interaction."""
    action_id: str = field(default_factory=lambda: str(uuid4())[:8])
    action_name: str = ""
    target: Optional[str] = None
    screen_name: Optional[str] = None
    start_time: float = field(default_factory=time.monotonic)
    metadata: Dict[str, Any] = field(default_factory=dict)
    parent_context: Optional[ActionContext] = None

    @property
    def description(self) -> str:
        parts = [self.action_name]
        if self.target:
            parts.append(f"on '{self.target}'")
        if self.screen_name:
            parts.append(f"in screen '{self.screen_name}'")
        return " ".join(parts)

    @property
    def elapsed_time(self) -> float:
        return time.monotonic() - self.start_time

    def get_full_trace(self) -> List[ActionContext]:
        """Get the full chain of parent contexts, innermost first."""
        trace = [self]
        current = self.parent_context
        while current is not None:
            trace.append(current)
            current = current.parent_context
        return trace

    def format_trace(self) -> str:
        """Format the full interaction trace for error messages."""
        lines = ["Action trace (most recent first):"]
        for i, ctx in enumerate(self.get_full_trace()):
            prefix = "  -> " if i > 0 else "  X "
            lines.append(f"{prefix}{ctx.description} [{ctx.elapsed_time:.2f}s]")
        return "\n".join(lines)


class ActionContextManager:
    """Per-thread stack of interaction contexts."""

    _local = threading.local()

    @classmethod
    def _get_stack(cls) -> List[ActionContext]:
        if not hasattr(cls._local, "stack"):
            cls._local.stack = []
        return cls._local.stack

    @classmethod
    def current(cls) -> Optional[ActionContext]:
        stack = cls._get_stack()
        return stack[-1] if stack else None

    @classmethod
    @contextmanager
    def action(
        cls,
        action_name: str,
        target: Optional[str] = None,
        screen_name: Optional[str] = None,
        **metadata: Any
    ) -> Generator[ActionContext, None, None]:
        """Context manager for tracking an interaction."""
        stack = cls._get_stack()
        context = ActionContext(
            action_name=action_name,
            target=target,
            screen_name=screen_name,
            metadata=metadata,
            parent_context=stack[-1] if stack else None,
        )
        stack.append(context)
        try:
            yield context
        finally:
            stack.pop()

    @classmethod
    def clear(cls) -> None:
        """Clear the context stack (useful for test cleanup)."""
        cls._local.stack = []


def _describe_target(value: Any) -> Optional[str]:
    if value is None:
        return None
    name = getattr(value, "name", None)
    if isinstance(name, str):
        return name
    return str(value)


def tracked_action(action_name: Optional[str] = None):
    """
    Decorator for engine methods of the form ``method(self, target, ...)``.

    Pushes an ActionContext, logs the outcome and returns the wrapped result
    unchanged. A falsy result is logged with status "not_found".
    """
    def decorator(func):
        name = action_name or func.__name__

        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            target = _describe_target(args[0] if args else kwargs.get("target") or kwargs.get("intent"))
            screen = getattr(getattr(self, "screen", None), "name", None)
            start_time = time.monotonic()
            with ActionContextManager.action(name, target=target, screen_name=screen) as context:
                try:
                    result = func(self, *args, **kwargs)
                except Exception as exc:
                    ACTION_LOGGER.log(
                        action=name,
                        target=target,
                        screen=screen,
                        status="error",
                        duration_ms=int((time.monotonic() - start_time) * 1000),
                        exception=exc,
                        action_id=context.action_id,
                        event="action_finish",
                    )
                    raise
                ACTION_LOGGER.log(
                    action=name,
                    target=target,
                    screen=screen,
                    status="ok" if result or result is None else "not_found",
                    duration_ms=int((time.monotonic() - start_time) * 1000),
                    action_id=context.action_id,
                    event="action_finish",
                )
                return result

        return wrapper

    return decorator
