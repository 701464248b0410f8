# uiauto_mobile/config.py
"""
@file config.py
@brief Centralized timing configuration and engine settings.

Timing precedence per run: base defaults -> preset -> overrides.
Engine settings precedence: UIAUTO_* environment -> object map app block -> defaults.
"""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from copy import deepcopy
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Generator, Mapping, Optional

from .exceptions import ConfigError
from .timings import PAUSE_FIELDS, TIMEOUT_FIELDS, build_preset_values, list_presets


@dataclass
class TimeoutSettings:
    """Individual timeout settings for a specific operation type."""
    timeout: float
    interval: float
    retry_count: Optional[int] = None

    def with_overrides(
        self,
        timeout: Optional[float] = None,
        interval: Optional[float] = None,
        retry_count: Optional[int] = None,
    ) -> TimeoutSettings:
        """Create a new settings instance with overrides applied."""
        return TimeoutSettings(
            timeout=timeout if timeout is not None else self.timeout,
            interval=interval if interval is not None else self.interval,
            retry_count=retry_count if retry_count is not None else self.retry_count,
        )


class TimeConfig:
    """
    Timeout and settle-pause configuration.

    A process default is built lazily; a per-thread run config can be
    installed on top of it, and override() layers a temporary copy.
    """

    _default_instance: Optional[TimeConfig] = None
    _local = threading.local()
    _lock = threading.Lock()

    def __init__(self, preset: Optional[str] = None):
        self._apply_values(build_preset_values(preset or "default"))

    def _apply_values(self, values: Dict[str, Any]) -> None:
        for name in TIMEOUT_FIELDS:
            val = values.get(name)
            if isinstance(val, TimeoutSettings):
                setting = deepcopy(val)
            elif isinstance(val, dict):
                setting = TimeoutSettings(
                    timeout=float(val["timeout"]),
                    interval=float(val["interval"]),
                    retry_count=val.get("retry_count"),
                )
            else:
                raise ValueError(f"Invalid timeout setting for {name}: {val}")
            setattr(self, name, setting)

        for name in PAUSE_FIELDS:
            if name not in values:
                raise ValueError(f"Missing pause setting for {name}")
            setattr(self, name, float(values[name]))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for name in TIMEOUT_FIELDS:
            setting: TimeoutSettings = getattr(self, name)
            data[name] = {
                "timeout": setting.timeout,
                "interval": setting.interval,
                "retry_count": setting.retry_count,
            }
        for name in PAUSE_FIELDS:
            data[name] = getattr(self, name)
        return data

    def clone(self) -> TimeConfig:
        """Return a deep clone of this config."""
        clone = TimeConfig()
        clone._apply_values(self.to_dict())
        return clone

    @classmethod
    def build_from(
        cls,
        *,
        preset: str = "default",
        overrides: Optional[Dict[str, Any]] = None,
    ) -> TimeConfig:
        """Build a deterministic run-scope config snapshot."""
        cfg = cls(preset)
        if overrides:
            _apply_overrides(cfg, overrides)
        return cfg

    @classmethod
    def default(cls) -> TimeConfig:
        """Get the process default configuration (singleton)."""
        if cls._default_instance is None:
            with cls._lock:
                if cls._default_instance is None:
                    cls._default_instance = cls("default")
        return cls._default_instance

    @classmethod
    def install_run_config(cls, config: TimeConfig) -> None:
        """Install per-thread run configuration snapshot."""
        cls._local.run_config = config

    @classmethod
    def clear_run_config(cls) -> None:
        """Clear per-thread run configuration snapshot."""
        cls._local.run_config = None

    @classmethod
    def current(cls) -> TimeConfig:
        """Get the current effective configuration."""
        override = getattr(cls._local, "override", None)
        if override is not None:
            return override

        run_cfg = getattr(cls._local, "run_config", None)
        if run_cfg is not None:
            return run_cfg

        return cls.default()

    @classmethod
    def apply_preset(cls, preset: str) -> None:
        """Apply a named preset to the run-scope config."""
        cls.install_run_config(cls.build_from(preset=preset))

    @classmethod
    @contextmanager
    def override(cls, **kwargs: Any) -> Generator[TimeConfig, None, None]:
        """Context manager for temporary configuration overrides."""
        previous = getattr(cls._local, "override", None)
        new_config = cls.current().clone()
        _apply_overrides(new_config, kwargs)

        cls._local.override = new_config
        try:
            yield new_config
        finally:
            cls._local.override = previous

    @classmethod
    def reset_to_defaults(cls) -> None:
        """Reset default and clear all thread-local config state."""
        with cls._lock:
            cls._default_instance = cls("default")
        cls._local.override = None
        cls._local.run_config = None


def _apply_overrides(config: TimeConfig, overrides: Dict[str, Any]) -> None:
    for key, value in overrides.items():
        if key in TIMEOUT_FIELDS:
            base_setting: TimeoutSettings = getattr(config, key)
            if isinstance(value, TimeoutSettings):
                setattr(config, key, deepcopy(value))
            elif isinstance(value, dict):
                new_setting = base_setting.with_overrides(
                    timeout=value.get("timeout"),
                    interval=value.get("interval"),
                    retry_count=value.get("retry_count"),
                )
                setattr(config, key, new_setting)
            else:
                raise ValueError(f"Invalid override for {key}: {value}")
        elif key in PAUSE_FIELDS:
            setattr(config, key, float(value))
        else:
            raise ValueError(f"Unknown TimeConfig field: {key}")


def available_presets() -> Dict[str, Dict[str, Any]]:
    return list_presets()


ENV_PREFIX = "UIAUTO_"


@dataclass(frozen=True)
class EngineSettings:
    """
    Engine-wide knobs. Screens may override max_scroll_down and the
    classifier thresholds in the object map.
    """
    max_scroll_down: int = 4
    status_bar_height: int = 54
    nav_bar_height: int = 34
    scroll_duration_ms: int = 400
    flick_duration_ms: int = 200
    stale_threshold: int = 2
    reorient_extra_swipes: int = 1
    scroll_start_ratio: float = 0.7
    scroll_end_ratio: float = 0.3
    artifacts_dir: str = "artifacts"
    capture_artifacts: bool = False
    timing_preset: str = "default"

    def __post_init__(self) -> None:
        if self.max_scroll_down < 0:
            raise ConfigError(f"max_scroll_down must be >= 0, got {self.max_scroll_down}")
        if self.stale_threshold < 1:
            raise ConfigError(f"stale_threshold must be >= 1, got {self.stale_threshold}")
        if not 150 <= self.flick_duration_ms <= 300:
            raise ConfigError(f"flick_duration_ms must be within 150..300, got {self.flick_duration_ms}")
        if not 300 <= self.scroll_duration_ms <= 500:
            raise ConfigError(f"scroll_duration_ms must be within 300..500, got {self.scroll_duration_ms}")
        if not 0.0 < self.scroll_end_ratio < self.scroll_start_ratio < 1.0:
            raise ConfigError("scroll ratios must satisfy 0 < end < start < 1")

    @classmethod
    def load(
        cls,
        app_block: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> EngineSettings:
        """
        Build settings from an object map ``app:`` block, letting
        ``UIAUTO_<FIELD>`` environment variables win over the file.
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for f in fields(cls):
            raw: Any = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or str(raw).strip() == "":
                raw = (app_block or {}).get(f.name)
            if raw is None:
                continue
            values[f.name] = _coerce(f.name, raw, type(getattr(cls, f.name)))
        return replace(cls(), **values) if values else cls()


def _coerce(name: str, raw: Any, target: type) -> Any:
    try:
        if target is bool:
            if isinstance(raw, bool):
                return raw
            return str(raw).strip().lower() in {"1", "true", "yes", "on"}
        if target is int:
            return int(raw)
        if target is float:
            return float(raw)
        return str(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {raw!r}") from e
