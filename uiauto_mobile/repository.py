# uiauto_mobile/repository.py
from __future__ import annotations
import json
import os
from typing import Any, Dict, List, Mapping, Optional

import yaml
from jsonschema import Draft202012Validator

from .classifier import ClassifierConfig
from .config import EngineSettings
from .exceptions import ConfigError
from .locators import Intent, strategies_from_specs
from .screen import ScreenContext

DEFAULT_SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schemas", "objectmap.schema.json")


class Repository:
    """
    Loads an object map YAML: engine settings under ``app`` and, per screen,
    the scroll ceiling, classifier thresholds and named intents.
    """

    def __init__(self, path: str, schema_path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None):
        self.path = os.path.abspath(path)
        self._init(self._load_yaml(self.path), schema_path, environ)

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        schema_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> Repository:
        """Build a repository from an already-parsed mapping."""
        repo = cls.__new__(cls)
        repo.path = "<memory>"
        repo._init(dict(data), schema_path, environ)
        return repo

    def _init(self, raw: Dict[str, Any], schema_path: Optional[str], environ: Optional[Mapping[str, str]]) -> None:
        self._raw = raw
        self._validator = Draft202012Validator(self._load_schema(schema_path or DEFAULT_SCHEMA_PATH))
        self._validate()
        self._settings = EngineSettings.load(self._raw.get("app") or {}, environ)
        self._screens: Dict[str, Dict[str, Any]] = self._raw.get("screens") or {}
        self._intents: Dict[str, Dict[str, Intent]] = {
            name: self._parse_intents(name, spec.get("intents") or {})
            for name, spec in self._screens.items()
        }

    @staticmethod
    def _load_yaml(path: str) -> Dict[str, Any]:
        if not os.path.exists(path):
            raise ConfigError(f"Object map YAML not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError("Object map YAML must be a mapping at root.")
        return data

    @staticmethod
    def _load_schema(path: str) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigError(f"Cannot load object map schema {path}: {e}") from e

    def _validate(self) -> None:
        errors = sorted(self._validator.iter_errors(self._raw), key=lambda e: [str(p) for p in e.path])
        if errors:
            lines = [f"Object map validation failed ({self.path}):"]
            for e in errors:
                lines.append(f"- {'.'.join(str(p) for p in e.path) or '<root>'}: {e.message}")
            raise ConfigError("\n".join(lines))

    @staticmethod
    def _parse_intents(screen: str, specs: Mapping[str, Any]) -> Dict[str, Intent]:
        intents: Dict[str, Intent] = {}
        for name, spec in specs.items():
            try:
                intents[name] = Intent(
                    name=name,
                    strategies=strategies_from_specs(spec["strategies"]),
                    scroll_predicate=spec.get("scroll_predicate"),
                )
            except ConfigError as e:
                raise ConfigError(f"screens.{screen}.intents.{name}: {e}") from e
        return intents

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    def list_screens(self) -> List[str]:
        return sorted(self._screens.keys())

    def list_intents(self, screen: str) -> List[str]:
        self.get_screen_spec(screen)
        return sorted(self._intents[screen].keys())

    def get_screen_spec(self, name: str) -> Dict[str, Any]:
        if name not in self._screens:
            raise ConfigError(f"Unknown screen: {name}")
        return self._screens[name] or {}

    def intent(self, screen: str, name: str) -> Intent:
        self.get_screen_spec(screen)
        if name not in self._intents[screen]:
            raise ConfigError(f"Unknown intent '{name}' on screen '{screen}'")
        return self._intents[screen][name]

    def screen_context(self, name: str) -> ScreenContext:
        """A fresh context (depth 0) for a screen declared in the map."""
        spec = self.get_screen_spec(name)
        classifier = spec.get("classifier")
        return ScreenContext(
            name=name,
            max_scroll_down=int(spec.get("max_scroll_down", self._settings.max_scroll_down)),
            classifier_config=ClassifierConfig.from_dict(classifier) if classifier else None,
            intents=self._intents[name],
        )
