"""RadTach: study timer, interstitial tracking and RVU metrics for a reading session."""

from .break_policy import BreakPolicyState, BreakSuggestion
from .configuration import Complication, Configuration, Modality
from .engine import (
    ActivityCategory,
    DraftSlot,
    Notice,
    SessionEngine,
    SessionEvent,
    SessionState,
    TransitionResult,
)
from .metrics import CompletedWorkRecord, MetricsLedger, UndoSnapshot
from .valuation import WorkItemSelection, target_duration, unit_value

__all__ = [
    "ActivityCategory",
    "BreakPolicyState",
    "BreakSuggestion",
    "CompletedWorkRecord",
    "Complication",
    "Configuration",
    "DraftSlot",
    "MetricsLedger",
    "Modality",
    "Notice",
    "SessionEngine",
    "SessionEvent",
    "SessionState",
    "TransitionResult",
    "UndoSnapshot",
    "WorkItemSelection",
    "target_duration",
    "unit_value",
]
