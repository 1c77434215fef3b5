"""Editable par-time and RVU configuration.

Both mappings are keyed by plain strings (the union of modality and
complication names) so edits and imports can carry keys outside the fixed
enumerations. Values are kept as entered; valuation treats anything
non-numeric as zero.
"""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class Modality(str, Enum):
    XR = "XR"
    FL = "FL"
    CT = "CT"
    US = "US"
    MR = "MR"
    NM = "NM"
    MA = "MA"
    PET_CT = "PET-CT"


class Complication(str, Enum):
    CANCER_FOLLOW = "Cancer Follow"
    PLUS_ONE_SECTION = "+1 Section"
    PLUS_TWO_SECTION = "+2 Section"
    MULTIPLE_PRIORS = "Multiple Priors"
    AGE_OVER_70 = "Age >70"
    COMPLEX_HX = "Complex Hx"
    PRIOR_SURG_HX = "Prior Surg Hx"
    CTA = "CTA"
    BILATERAL = "Bilateral"
    VASCULAR = "Vascular"


# Doubles the par time after every additive complication is summed.
DUPLICATE_SIDE_FLAG = Complication.BILATERAL.value

# Old modality names still found in saved settings.
LEGACY_KEYS: dict[str, str] = {
    "Plain Film": Modality.XR.value,
    "Fluoro": Modality.FL.value,
}

RVUValue = Union[float, dict[str, float]]

DEFAULT_PAR_TIMES: dict[str, int] = {
    "XR": 90,
    "FL": 120,
    "CT": 240,
    "US": 120,
    "MR": 240,
    "NM": 240,
    "MA": 240,
    "PET-CT": 600,
    "Cancer Follow": 240,
    "+1 Section": 120,
    "+2 Section": 240,
    "Multiple Priors": 120,
    "Age >70": 120,
    "Complex Hx": 120,
    "Prior Surg Hx": 120,
    "CTA": 180,
    "Bilateral": 0,
    "Vascular": 120,
}

DEFAULT_RVU_VALUES: dict[str, RVUValue] = {
    "XR": 0.2,
    "FL": 0.4,
    "CT": 1.0,
    "US": 0.5,
    "MR": 1.3,
    "NM": 0.6,
    "MA": 1.3,
    "PET-CT": 2.4,
    "+1 Section": {"CT": 0.5, "US": 0.5},
    "+2 Section": {"CT": 1.0},
    "CTA": {"CT": 0.4},
}


def parse_seconds(value: Any) -> int:
    """Parse a par-time field the way a form input would: bad input is 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(0, value)
    if not isinstance(value, float):
        try:
            value = float(str(value).strip())
        except (TypeError, ValueError):
            return 0
    if not math.isfinite(value):
        return 0
    return max(0, int(value))


def parse_rvu(value: Any) -> float:
    """Parse an RVU field; bad input (including inf and nan) is 0.0."""
    if isinstance(value, bool):
        return 0.0
    try:
        rvu = float(value) if isinstance(value, (int, float)) else float(str(value).strip())
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return rvu if math.isfinite(rvu) else 0.0


@dataclass
class Configuration:
    """Par times in seconds and RVU weights, keyed by modality or complication."""

    target_seconds: dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_PAR_TIMES))
    unit_values: dict[str, Any] = field(default_factory=lambda: copy.deepcopy(DEFAULT_RVU_VALUES))

    @classmethod
    def defaults(cls) -> Configuration:
        return cls()

    def copy(self) -> Configuration:
        return Configuration(
            target_seconds=dict(self.target_seconds),
            unit_values=copy.deepcopy(self.unit_values),
        )

    def set_target(self, key: str, value: Any) -> int:
        """Store a par time for `key`, returning the parsed seconds."""
        seconds = parse_seconds(value)
        self.target_seconds[key] = seconds
        return seconds

    def set_unit_value(self, key: str, value: Any, kind: str | None = None) -> float:
        """Store an RVU for `key`.

        With `kind`, the value goes into the per-modality sub-mapping for
        `key`, replacing a plain number if one was there.
        """
        rvu = parse_rvu(value)
        if kind:
            existing = self.unit_values.get(key)
            sub = dict(existing) if isinstance(existing, dict) else {}
            sub[kind] = rvu
            self.unit_values[key] = sub
        else:
            self.unit_values[key] = rvu
        return rvu

    def reset(self) -> None:
        defaults = Configuration.defaults()
        self.target_seconds = defaults.target_seconds
        self.unit_values = defaults.unit_values


def migrate_legacy_keys(mapping: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of `mapping` with legacy modality names renamed."""
    migrated = dict(mapping)
    for old, new in LEGACY_KEYS.items():
        if old in migrated:
            migrated[new] = migrated.pop(old)
    return migrated
