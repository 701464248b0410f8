# uiauto_mobile/actionlogger.py
"""
@file actionlogger.py
@brief Central interaction/timing log facility.

Two channels share one writer: interaction events (resolve, search, scroll,
tap, swipe) and timing events emitted by the wait helpers. Each channel is
switched on independently, normally from UIAUTO_ACTION_LOGGING and
UIAUTO_TIMING_LOGGING.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

log = logging.getLogger("uiauto_mobile")

_TRUTHY = {"1", "true", "yes", "on"}
_SENSITIVE_KEYS = {"password", "passwd", "secret", "token"}


class ActionLogger:
    """Thread-safe interaction logger with line/jsonl output."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._enabled = False
        self._timing_enabled = False
        self._console = True
        self._file_path: Optional[str] = None
        self._level = "INFO"
        self._format = "line"
        self._max_traceback_chars = 4000

    def configure(
        self,
        *,
        console: bool = True,
        file_path: Optional[str] = None,
        level: str = "INFO",
        format: str = "line",
        max_traceback_chars: int = 4000,
    ) -> None:
        """Configure logger settings."""
        fmt = (format or "line").lower()
        if fmt not in {"line", "jsonl"}:
            raise ValueError("ActionLogger format must be 'line' or 'jsonl'")

        with self._lock:
            self._console = bool(console)
            self._file_path = file_path
            self._level = level.upper()
            self._format = fmt
            self._max_traceback_chars = max(256, int(max_traceback_chars))

    def configure_from_env(self, environ: Optional[Mapping[str, str]] = None) -> None:
        """Configure both channels from UIAUTO_* environment variables."""
        environ = os.environ if environ is None else environ
        self.configure(
            console=True,
            file_path=environ.get("UIAUTO_ACTION_LOG_FILE") or None,
            level=environ.get("UIAUTO_ACTION_LOG_LEVEL", "INFO"),
            format=environ.get("UIAUTO_ACTION_LOG_FORMAT", "line"),
            max_traceback_chars=int(environ.get("UIAUTO_ACTION_LOG_MAX_TRACEBACK", "4000")),
        )
        with self._lock:
            self._enabled = environ.get("UIAUTO_ACTION_LOGGING", "").lower() in _TRUTHY
            self._timing_enabled = environ.get("UIAUTO_TIMING_LOGGING", "").lower() in _TRUTHY

    def enable(self, timing: bool = False) -> None:
        """Enable interaction logging (and optionally timing logging)."""
        with self._lock:
            self._enabled = True
            if timing:
                self._timing_enabled = True

    def disable(self) -> None:
        """Disable both channels."""
        with self._lock:
            self._enabled = False
            self._timing_enabled = False

    def is_enabled(self) -> bool:
        return self._enabled

    def is_timing_enabled(self) -> bool:
        return self._timing_enabled

    def log(
        self,
        *,
        action: str,
        target: Optional[str] = None,
        screen: Optional[str] = None,
        status: str = "ok",
        tier: Optional[str] = None,
        depth: Optional[int] = None,
        duration_ms: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        exception: Optional[BaseException] = None,
        action_id: Optional[str] = None,
        event: Optional[str] = None,
    ) -> None:
        """Emit an interaction event."""
        if not self._enabled:
            return

        event_obj: Dict[str, Any] = {
            "timestamp": time.strftime("%H:%M:%S"),
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": self._level,
            "event": event or "action",
            "action": action,
            "action_id": action_id,
            "target": target,
            "screen": screen,
            "tier": tier,
            "depth": depth,
            "status": status,
            "duration_ms": duration_ms,
            "metadata": self._redact_metadata(action, dict(metadata or {})),
        }
        if exception is not None:
            event_obj["exception"] = self._format_exception(exception)

        self._emit(event_obj)

    def timing(
        self,
        *,
        event: str,
        description: Optional[str] = None,
        status: str = "info",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Emit a wait/retry timing event."""
        if not self._timing_enabled:
            return

        self._emit({
            "timestamp": time.strftime("%H:%M:%S"),
            "level": self._level,
            "event": event,
            "action": "timing",
            "target": description,
            "status": status,
            "metadata": dict(metadata or {}),
        })

    def _emit(self, event_obj: Dict[str, Any]) -> None:
        line = self._format_output(event_obj)

        if self._console:
            print(line, flush=True)

        if self._file_path:
            self._write_file(line)

    def _write_file(self, line: str) -> None:
        try:
            os.makedirs(os.path.dirname(os.path.abspath(self._file_path)) or ".", exist_ok=True)
            with open(self._file_path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            log.warning("Could not write action log %s: %s", self._file_path, e)

    def _format_output(self, event: Dict[str, Any]) -> str:
        if self._format == "jsonl":
            return json.dumps(event, ensure_ascii=False, separators=(",", ":"), default=str)
        return self._format_line(event)

    def _format_line(self, event: Dict[str, Any]) -> str:
        parts = [
            event.get("timestamp", ""),
            event.get("level", "INFO"),
            event.get("action", ""),
        ]

        for key in ("event", "action_id", "screen", "tier", "depth", "status", "duration_ms"):
            value = event.get(key)
            if value is not None and value != "":
                parts.append(f"{key}={value}")

        target = event.get("target")
        if target:
            parts.append(f"target='{target}'")

        for key, value in (event.get("metadata") or {}).items():
            parts.append(f"{key}={value}")

        exc = event.get("exception")
        if exc:
            parts.append(f"exc_type={exc.get('type')}")
            parts.append(f"exc_message={exc.get('message')}")

        return " | ".join(parts)

    def _redact_metadata(self, action: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
        redacted = {}
        for key, value in metadata.items():
            if key.lower() in _SENSITIVE_KEYS:
                redacted[key] = "***"
            elif action == "type_text" and key == "text":
                redacted[key] = self._mask_text(str(value))
            else:
                redacted[key] = value
        return redacted

    @staticmethod
    def _mask_text(text: str, max_visible: int = 3) -> str:
        if len(text) <= max_visible:
            return "*" * len(text)
        return f"{text[:max_visible]}{'*' * (len(text) - max_visible)}"

    def _format_exception(self, exception: BaseException) -> Dict[str, Any]:
        tb = "".join(traceback.format_exception(type(exception), exception, exception.__traceback__))
        if len(tb) > self._max_traceback_chars:
            tb = tb[: self._max_traceback_chars] + "...<truncated>"

        cause = getattr(exception, "__cause__", None)
        return {
            "type": type(exception).__name__,
            "message": str(exception),
            "traceback": tb.strip(),
            "cause_type": type(cause).__name__ if cause is not None else None,
        }


ACTION_LOGGER = ActionLogger()
