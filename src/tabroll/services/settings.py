"""Settings dataclass and its JSON persistence."""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from ..core.history import MAX_STACK_LENGTH
from ..core.reconciliation import DEFAULT_RECONCILE_INTERVAL
from ..core.suppression import DEFAULT_SUPPRESSION_TIMEOUT

__all__ = ["Settings", "SettingsStore", "DEFAULT_SHORTCUTS", "ENV_PREFIX"]

LOGGER = logging.getLogger(__name__)
ENV_PREFIX = "TABROLL_"
_SETTINGS_DIR = Path.home() / ".tabroll"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "TABROLL_DEBUG_LOGGING": "debug_logging",
    "TABROLL_TELEMETRY": "telemetry_opt_in",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "TABROLL_MAX_STACK_LENGTH": "max_stack_length",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "TABROLL_SUPPRESSION_TIMEOUT": "suppression_timeout",
    "TABROLL_RECONCILE_INTERVAL": "reconcile_interval",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}

DEFAULT_SHORTCUTS: Mapping[str, str] = {
    "roll-left": "Alt+Shift+Left",
    "roll-right": "Alt+Shift+Right",
    "clear-stacks": "Alt+Shift+Backspace",
}


@dataclass(slots=True)
class Settings:
    """User-configurable knobs. History itself is never persisted."""

    max_stack_length: int = MAX_STACK_LENGTH
    suppression_timeout: float = DEFAULT_SUPPRESSION_TIMEOUT
    reconcile_interval: float = DEFAULT_RECONCILE_INTERVAL
    debug_logging: bool = False
    telemetry_opt_in: bool = False
    shortcuts: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SHORTCUTS))
    demo_windows: int = 1
    demo_tabs: int = 4


class SettingsStore:
    """Persistence adapter for :class:`Settings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, then apply CLI and environment overrides."""

        payload = self._read_payload()
        settings = Settings()
        if payload:
            data = _filter_fields(payload)
            shortcuts = data.get("shortcuts")
            if isinstance(shortcuts, Mapping):
                merged = dict(DEFAULT_SHORTCUTS)
                merged.update({str(k): str(v) for k, v in shortcuts.items()})
                data["shortcuts"] = merged
            else:
                data.pop("shortcuts", None)
            try:
                settings = Settings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = Settings()
            LOGGER.debug("Settings loaded from %s", self._path)

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")
        settings = self._apply_env_overrides(settings)
        return _clamp(settings)

    def save(self, settings: Settings) -> Path:
        """Write settings atomically (temp file + replace)."""

        payload = asdict(settings)
        payload["version"] = _SETTINGS_VERSION
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: Settings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> Settings:
        allowed = {item.name for item in fields(Settings)}
        filtered = {key: value for key, value in overrides.items() if key in allowed and value is not None}
        shortcut_override = filtered.get("shortcuts")
        if isinstance(shortcut_override, Mapping):
            merged = dict(settings.shortcuts)
            merged.update(shortcut_override)
            filtered["shortcuts"] = merged
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = int(value, 10)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid integer", env_name, value)
        for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = float(value)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid float", env_name, value)
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {item.name for item in fields(Settings)}
    return {key: value for key, value in payload.items() if key in allowed}


def _clamp(settings: Settings) -> Settings:
    updates: Dict[str, Any] = {}
    if not _at_least_one(settings.max_stack_length):
        updates["max_stack_length"] = 1
    if not _positive(settings.suppression_timeout):
        updates["suppression_timeout"] = DEFAULT_SUPPRESSION_TIMEOUT
    if not _positive(settings.reconcile_interval):
        updates["reconcile_interval"] = DEFAULT_RECONCILE_INTERVAL
    if not _at_least_one(settings.demo_windows):
        updates["demo_windows"] = 1
    if not _at_least_one(settings.demo_tabs):
        updates["demo_tabs"] = 1
    if updates:
        LOGGER.warning("Clamped out-of-range settings: %s", sorted(updates))
        settings = replace(settings, **updates)
    return settings


def _positive(value: float) -> bool:
    try:
        return math.isfinite(value) and value > 0
    except TypeError:
        return False


def _at_least_one(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1
