"""Settings dataclass and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

__all__ = ["LiveFileSettings", "SettingsStore", "load_settings"]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".livefile"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "LIVEFILE_DIFF_TIMEOUT": "diff_timeout",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "LIVEFILE_DIFF_EDIT_COST": "diff_edit_cost",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "LIVEFILE_COMPACT_MESSAGES": "compact_messages",
    "LIVEFILE_REFRESH_ON_FOCUS": "refresh_on_focus",
    "LIVEFILE_DEBUG_LOGGING": "debug_logging",
}
_STR_ENV_OVERRIDES: Mapping[str, str] = {
    "LIVEFILE_ENCODING": "encoding",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}


@dataclass(slots=True)
class LiveFileSettings:
    """User-configurable knobs for live file reconciliation."""

    diff_timeout: float = 1.0
    diff_edit_cost: int = 4
    diff_check_lines: bool = True
    compact_messages: bool = False
    refresh_on_focus: bool = True
    encoding: str | None = None
    newline: str = "\n"
    atomic_writes: bool = True
    debug_logging: bool = False


class SettingsStore:
    """Persistence adapter for :class:`LiveFileSettings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> LiveFileSettings:
        """Load settings from disk, then apply caller and environment overrides."""

        payload = self._read_payload()
        settings = LiveFileSettings()
        if payload:
            data = _filter_fields(payload)
            try:
                settings = LiveFileSettings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = LiveFileSettings()

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="caller")
        return self._apply_env_overrides(settings)

    def save(self, settings: LiveFileSettings) -> Path:
        """Persist settings to disk with an atomic replace."""

        data = asdict(settings)
        data["version"] = _SETTINGS_VERSION
        body = json.dumps(data, indent=2, sort_keys=True)
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
        settings: LiveFileSettings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> LiveFileSettings:
        allowed = {field.name for field in fields(LiveFileSettings)}
        filtered = {key: value for key, value in overrides.items() if key in allowed and value is not None}
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: LiveFileSettings) -> LiveFileSettings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _STR_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                overrides[field_name] = value
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


def load_settings(
    path: Path | None = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> LiveFileSettings:
    """Load persisted settings or fall back to defaults."""

    env_path = os.environ.get("LIVEFILE_SETTINGS_PATH")
    if path is None and env_path:
        path = Path(env_path).expanduser()
    active_store = store or SettingsStore(path)
    try:
        return active_store.load(overrides=overrides)
    except OSError as exc:
        LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return LiveFileSettings()


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {field.name for field in fields(LiveFileSettings)}
    unknown = sorted(key for key in payload if key not in allowed and key != "version")
    if unknown:
        LOGGER.warning("Ignoring unknown settings keys: %s", unknown)
    return {key: value for key, value in payload.items() if key in allowed}
