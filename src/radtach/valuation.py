"""Par time and RVU for a study selection.

Pure functions over a Configuration. Missing or non-numeric entries count as
zero so a half-edited settings field never breaks the dashboard.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from numbers import Real
from typing import Any

from .configuration import DUPLICATE_SIDE_FLAG, Configuration


@dataclass(frozen=True)
class WorkItemSelection:
    kind: str | None = None
    modifiers: frozenset[str] = field(default_factory=frozenset)

    def with_kind(self, kind: str | None) -> WorkItemSelection:
        return WorkItemSelection(kind=kind, modifiers=self.modifiers)

    def toggled(self, modifier: str) -> WorkItemSelection:
        if modifier in self.modifiers:
            return WorkItemSelection(kind=self.kind, modifiers=self.modifiers - {modifier})
        return WorkItemSelection(kind=self.kind, modifiers=self.modifiers | {modifier})


def _number(value: Any) -> float:
    # bool is a Real subclass; a checkbox value is not a weight
    if isinstance(value, Real) and not isinstance(value, bool):
        return value
    return 0


def target_duration(config: Configuration, selection: WorkItemSelection | None) -> int:
    """Par time in seconds; Bilateral doubles the sum of everything else."""
    if selection is None or not selection.kind:
        return 0

    total = _number(config.target_seconds.get(selection.kind))
    duplicate_side = False
    for tag in selection.modifiers:
        if tag == DUPLICATE_SIDE_FLAG:
            duplicate_side = True
        else:
            total += _number(config.target_seconds.get(tag))

    if duplicate_side:
        total *= 2

    return max(0, int(total))


def unit_value(config: Configuration, selection: WorkItemSelection | None) -> float:
    """RVU for the selection. Complication weights may depend on the modality."""
    if selection is None or not selection.kind:
        return 0.0

    total = _number(config.unit_values.get(selection.kind))
    for tag in selection.modifiers:
        weight = config.unit_values.get(tag)
        if isinstance(weight, dict):
            total += _number(weight.get(selection.kind))
        else:
            total += _number(weight)

    return float(total)
