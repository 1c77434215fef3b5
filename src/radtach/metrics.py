"""Session metrics: streak, variance, RVU totals, rate and single-level undo.

Rates are snapshots. `units_per_hour` and `rolling_unit_value` change only
when a study is completed or undone, never on a tick.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

MAX_STREAK = 6
ROLLING_WINDOW = timedelta(minutes=60)


@dataclass(frozen=True)
class CompletedWorkRecord:
    timestamp: datetime
    unit_value: float


@dataclass(frozen=True)
class UndoSnapshot:
    variance_seconds: int
    unit_value: float
    streak_before: int
    total_unit_value_before: float


def units_per_hour(total_unit_value: float, session_seconds: int) -> float:
    if session_seconds <= 0:
        return 0.0
    return total_unit_value / (session_seconds / 3600)


def rolling_unit_value(records: list[CompletedWorkRecord], now: datetime) -> float:
    """Sum of RVUs completed in the trailing hour, inclusive of the boundary."""
    cutoff = now - ROLLING_WINDOW
    return sum((r.unit_value for r in records if r.timestamp >= cutoff), 0.0)


@dataclass
class MetricsLedger:
    cumulative_variance_seconds: int = 0
    completed_count: int = 0
    total_unit_value: float = 0.0
    units_per_hour: float = 0.0
    rolling_unit_value: float = 0.0
    streak: int = 0
    records: list[CompletedWorkRecord] = field(default_factory=list)
    undo: UndoSnapshot | None = None

    def record_completion(
        self,
        variance_seconds: int,
        rvu: float,
        session_seconds: int,
        now: datetime,
    ) -> None:
        streak_before = self.streak
        if variance_seconds <= 0:
            self.streak = min(self.streak + 1, MAX_STREAK)
        else:
            self.streak = 0

        self.undo = UndoSnapshot(
            variance_seconds=variance_seconds,
            unit_value=rvu,
            streak_before=streak_before,
            total_unit_value_before=self.total_unit_value,
        )

        self.cumulative_variance_seconds += variance_seconds
        self.total_unit_value += rvu
        # Before the session clock has a second on it there is no rate to
        # report; keep whatever was shown last.
        if session_seconds > 0:
            self.units_per_hour = units_per_hour(self.total_unit_value, session_seconds)

        self.records.append(CompletedWorkRecord(timestamp=now, unit_value=rvu))
        self.rolling_unit_value = rolling_unit_value(self.records, now)
        self.completed_count += 1

    def undo_last(self, session_seconds: int) -> UndoSnapshot | None:
        """Revert the most recent completion. Returns None if there is none.

        The completion log keeps its record and `rolling_unit_value` keeps
        the value from the last completion; both only move forward.
        """
        snapshot = self.undo
        if snapshot is None:
            return None

        self.cumulative_variance_seconds -= snapshot.variance_seconds
        # Exact pre-completion total.
        self.total_unit_value = snapshot.total_unit_value_before
        self.streak = snapshot.streak_before
        self.units_per_hour = units_per_hour(self.total_unit_value, session_seconds)
        self.completed_count -= 1
        self.undo = None
        return snapshot
