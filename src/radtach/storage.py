"""JSON persistence for the editable configuration and the preferences.

Session metrics are never written: a restart begins a fresh session.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Union

from pydantic import BaseModel, ValidationError, field_validator

from .configuration import Configuration, migrate_legacy_keys, parse_rvu, parse_seconds

logger = logging.getLogger("radtach.storage")

PREFERENCE_NAMES = ("auto_start", "accessible_display")


class ParTimesDocument(BaseModel):
    values: dict[str, int]

    @field_validator("values", mode="before")
    @classmethod
    def _coerce(cls, value: Any) -> dict[str, int]:
        if not isinstance(value, dict):
            raise ValueError("par times must be a JSON object")
        return {str(k): parse_seconds(v) for k, v in migrate_legacy_keys(value).items()}


class RVUValuesDocument(BaseModel):
    values: dict[str, Union[float, dict[str, float]]]

    @field_validator("values", mode="before")
    @classmethod
    def _coerce(cls, value: Any) -> dict[str, Any]:
        if not isinstance(value, dict):
            raise ValueError("RVU values must be a JSON object")
        coerced: dict[str, Any] = {}
        for key, weight in migrate_legacy_keys(value).items():
            if isinstance(weight, dict):
                coerced[str(key)] = {str(k): parse_rvu(v) for k, v in weight.items()}
            else:
                coerced[str(key)] = parse_rvu(weight)
        return coerced


class PreferencesDocument(BaseModel):
    auto_start: bool | None = None
    accessible_display: bool | None = None


class SettingsStore:
    """Reads and writes the three settings files in one directory."""

    def __init__(self, par_times_path: Path, rvu_values_path: Path, preferences_path: Path):
        self.par_times_path = par_times_path
        self.rvu_values_path = rvu_values_path
        self.preferences_path = preferences_path

    @classmethod
    def in_directory(cls, home: Path) -> SettingsStore:
        return cls(
            par_times_path=home / "par_times.json",
            rvu_values_path=home / "rvu_values.json",
            preferences_path=home / "preferences.json",
        )

    # ---- Configuration ----

    def load_configuration(self) -> Configuration | None:
        """Saved configuration, or None on first run.

        A missing or unreadable half falls back to the defaults for that half.
        Legacy modality names are renamed on the way in.
        """
        par_times = self._read_document(self.par_times_path, ParTimesDocument)
        rvu_values = self._read_document(self.rvu_values_path, RVUValuesDocument)
        if par_times is None and rvu_values is None:
            return None

        config = Configuration.defaults()
        if par_times is not None:
            config.target_seconds = par_times.values
        if rvu_values is not None:
            config.unit_values = rvu_values.values
        return config

    def save_configuration(self, config: Configuration) -> None:
        self._write_json(self.par_times_path, config.target_seconds)
        self._write_json(self.rvu_values_path, config.unit_values)
        logger.info(f"Saved configuration to {self.par_times_path.parent}")

    # ---- Preferences ----

    def load_preference(self, name: str) -> bool | None:
        return getattr(self._read_preferences(), self._check_name(name))

    def save_preference(self, name: str, value: bool) -> None:
        prefs = self._read_preferences()
        setattr(prefs, self._check_name(name), bool(value))
        self._write_json(self.preferences_path, prefs.model_dump())
        logger.info(f"Saved preference {name}={bool(value)}")

    # ---- Internal ----

    @staticmethod
    def _check_name(name: str) -> str:
        if name not in PREFERENCE_NAMES:
            raise ValueError(f"Unknown preference '{name}'. Valid options: {', '.join(PREFERENCE_NAMES)}")
        return name

    def _read_preferences(self) -> PreferencesDocument:
        raw = self._read_json(self.preferences_path)
        if raw is None:
            return PreferencesDocument()
        try:
            return PreferencesDocument.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring invalid preferences in {self.preferences_path}: {e.error_count()} error(s)")
            return PreferencesDocument()

    def _read_document(self, path: Path, model: type[BaseModel]) -> Any:
        raw = self._read_json(path)
        if raw is None:
            return None
        try:
            return model.model_validate({"values": raw})
        except ValidationError as e:
            logger.warning(f"Ignoring invalid settings in {path}: {e.error_count()} error(s)")
            return None

    @staticmethod
    def _read_json(path: Path) -> Any:
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Error loading {path}: {e}")
            return None

    @staticmethod
    def _write_json(path: Path, data: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
