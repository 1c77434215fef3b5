"""Session engine: pure logic, no I/O.

One enumerated category accrues per tick. Every transition swaps the
category in a single assignment, so two categories can never accrue at once.
Wall-clock time is injected for completions so the rolling RVU window is
deterministic under test; ticks are whole seconds supplied by the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

from .break_policy import BreakPolicyState, BreakSuggestion
from .configuration import Complication, Configuration, Modality
from .metrics import MetricsLedger
from .valuation import WorkItemSelection, target_duration, unit_value

logger = logging.getLogger("radtach.engine")


class ActivityCategory(str, Enum):
    IDLE = "idle"
    WORKING = "working"
    INTERSTITIAL = "interstitial"
    ADMIN = "admin"
    COMMS = "comms"
    ON_BREAK = "on_break"
    QUICK_REVIEW = "quick_review"


# Categories with their own accrued-seconds counter (WORKING accrues into
# the study's elapsed time instead).
TIMED_CATEGORIES = (
    ActivityCategory.INTERSTITIAL,
    ActivityCategory.ADMIN,
    ActivityCategory.COMMS,
    ActivityCategory.ON_BREAK,
    ActivityCategory.QUICK_REVIEW,
)

# Categories whose entries are counted as events.
COUNTED_CATEGORIES = (
    ActivityCategory.ADMIN,
    ActivityCategory.COMMS,
    ActivityCategory.ON_BREAK,
    ActivityCategory.QUICK_REVIEW,
)


class SessionEvent(Enum):
    SESSION_STARTED = "session_started"
    SELECTION_CHANGED = "selection_changed"
    WORK_STARTED = "work_started"
    WORK_RESUMED = "work_resumed"
    WORK_PAUSED = "work_paused"
    AUTO_STARTED = "auto_started"
    WORK_COMPLETED = "work_completed"
    COMPLETION_UNDONE = "completion_undone"
    CATEGORY_STARTED = "category_started"
    CATEGORY_STOPPED = "category_stopped"
    BREAK_SUGGESTED = "break_suggested"
    BREAK_DECLINED = "break_declined"
    DRAFT_SAVED = "draft_saved"
    DRAFT_RESUMED = "draft_resumed"


class Notice(Enum):
    """Why a transition was refused. The value is the user-facing text."""

    NO_SELECTION = "Please select a modality first"
    TIMER_NOT_STARTED = "Start the timer by clicking Par Time before completing the study"
    NOTHING_TO_UNDO = "No study to undo"
    CONFIRM_RESET = "Reset all settings to defaults? This cannot be undone."
    NOT_WORKING = "No study timer is running"
    ALREADY_WORKING = "The study timer is already running"
    ALREADY_ACTIVE = "That timer is already running"
    NOT_ACTIVE = "That timer is not running"
    STUDY_IN_PROGRESS = "Double tap is unavailable while a study is in progress"
    DRAFT_OCCUPIED = "A draft study is already saved"
    NO_DRAFT = "No draft study to restore"
    STOP_BEFORE_RESUME = "Please stop the current study timer before resuming the draft"
    NO_BREAK_SUGGESTED = "No break suggestion is pending"


@dataclass
class TransitionResult:
    ok: bool = True
    events: list[SessionEvent] = field(default_factory=list)
    notice: Notice | None = None
    suggestion: BreakSuggestion | None = None
    variance_seconds: int | None = None


@dataclass(frozen=True)
class DraftSlot:
    selection: WorkItemSelection
    elapsed_seconds: int
    target_seconds: int


@dataclass
class SessionState:
    category: ActivityCategory = ActivityCategory.IDLE
    paused: bool = False
    auto_paused: bool = False
    selection: WorkItemSelection = field(default_factory=WorkItemSelection)
    elapsed_seconds: int = 0
    session_started: bool = False
    session_seconds: int = 0
    category_seconds: dict[ActivityCategory, int] = field(
        default_factory=lambda: {c: 0 for c in TIMED_CATEGORIES}
    )
    event_counts: dict[ActivityCategory, int] = field(
        default_factory=lambda: {c: 0 for c in COUNTED_CATEGORIES}
    )
    draft: DraftSlot | None = None
    pending_break: BreakSuggestion | None = None
    breaks: BreakPolicyState = field(default_factory=BreakPolicyState)
    metrics: MetricsLedger = field(default_factory=MetricsLedger)


class SessionEngine:
    """Owns one SessionState and applies transitions and ticks to it."""

    def __init__(
        self,
        config: Configuration | None = None,
        auto_start: bool = False,
        wall_clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config if config is not None else Configuration.defaults()
        self.auto_start = auto_start
        self._wall_clock = wall_clock
        self._state = SessionState()

    # ---- Read-only properties ----

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def category(self) -> ActivityCategory:
        return self._state.category

    @property
    def is_working(self) -> bool:
        return self._state.category == ActivityCategory.WORKING

    @property
    def paused(self) -> bool:
        return self._state.paused

    @property
    def selection(self) -> WorkItemSelection:
        return self._state.selection

    @property
    def elapsed_seconds(self) -> int:
        return self._state.elapsed_seconds

    @property
    def session_seconds(self) -> int:
        return self._state.session_seconds

    @property
    def metrics(self) -> MetricsLedger:
        return self._state.metrics

    @property
    def breaks(self) -> BreakPolicyState:
        return self._state.breaks

    @property
    def draft(self) -> DraftSlot | None:
        return self._state.draft

    @property
    def pending_break(self) -> BreakSuggestion | None:
        return self._state.pending_break

    @property
    def current_target(self) -> int:
        return target_duration(self.config, self._state.selection)

    @property
    def current_unit_value(self) -> float:
        return unit_value(self.config, self._state.selection)

    def seconds_in(self, category: ActivityCategory) -> int:
        return self._state.category_seconds.get(category, 0)

    def events_for(self, category: ActivityCategory) -> int:
        return self._state.event_counts.get(category, 0)

    # ---- Clock ----

    def tick(self, seconds: int = 1) -> None:
        """Advance every counter the current state makes eligible."""
        if seconds <= 0:
            return
        s = self._state
        if s.category == ActivityCategory.WORKING:
            s.elapsed_seconds += seconds
        elif s.category in s.category_seconds:
            s.category_seconds[s.category] += seconds

        if s.session_started:
            s.session_seconds += seconds
            if s.category != ActivityCategory.ON_BREAK:
                s.breaks.seconds_since_last_break += seconds

    # ---- Selection ----

    def select_kind(self, kind: Modality | str) -> TransitionResult:
        """Select a modality, keeping chosen complications. May auto-start."""
        s = self._state
        s.selection = s.selection.with_kind(Modality(kind).value)
        result = TransitionResult(events=[SessionEvent.SELECTION_CHANGED])

        if self.auto_start and not self.is_working and s.draft is None:
            started = self.start_work()
            if started.ok:
                result.events.extend(started.events)
                result.events.append(SessionEvent.AUTO_STARTED)
        return result

    def toggle_modifier(self, tag: Complication | str) -> TransitionResult:
        s = self._state
        s.selection = s.selection.toggled(Complication(tag).value)
        return TransitionResult(events=[SessionEvent.SELECTION_CHANGED])

    # ---- Study timer ----

    def start_work(self) -> TransitionResult:
        s = self._state
        if not s.selection.kind:
            return self._reject(Notice.NO_SELECTION)
        if s.category == ActivityCategory.WORKING:
            return self._reject(Notice.ALREADY_WORKING)

        result = TransitionResult()
        if not s.session_started:
            s.session_started = True
            result.events.append(SessionEvent.SESSION_STARTED)
            logger.info("Session clock started")

        resumed = s.paused
        self._activate(ActivityCategory.WORKING)
        s.paused = False
        s.auto_paused = False
        result.events.append(SessionEvent.WORK_RESUMED if resumed else SessionEvent.WORK_STARTED)
        logger.info(f"Study {'resumed' if resumed else 'started'}: {s.selection.kind} par={self.current_target}s")
        return result

    def pause_work(self) -> TransitionResult:
        s = self._state
        if s.category != ActivityCategory.WORKING:
            return self._reject(Notice.NOT_WORKING)
        self._activate(ActivityCategory.INTERSTITIAL)
        s.paused = True
        logger.info(f"Study paused at {s.elapsed_seconds}s")
        return TransitionResult(events=[SessionEvent.WORK_PAUSED])

    def toggle_work(self) -> TransitionResult:
        if self.is_working:
            return self.pause_work()
        return self.start_work()

    def complete_work(self, now: datetime | None = None) -> TransitionResult:
        """Close out the current study and fold it into the metrics."""
        s = self._state
        if not s.selection.kind:
            return self._reject(Notice.NO_SELECTION)
        if s.elapsed_seconds == 0 and s.category != ActivityCategory.WORKING:
            return self._reject(Notice.TIMER_NOT_STARTED)

        target = target_duration(self.config, s.selection)
        rvu = unit_value(self.config, s.selection)
        variance = s.elapsed_seconds - target

        s.metrics.record_completion(
            variance_seconds=variance,
            rvu=rvu,
            session_seconds=s.session_seconds,
            now=now if now is not None else self._wall_clock(),
        )
        logger.info(
            f"Study completed: {s.selection.kind} elapsed={s.elapsed_seconds}s "
            f"par={target}s variance={variance:+d}s rvu={rvu:.2f} streak={s.metrics.streak}"
        )

        self._activate(ActivityCategory.INTERSTITIAL)
        s.selection = WorkItemSelection()
        s.elapsed_seconds = 0
        s.paused = False
        s.auto_paused = False

        result = TransitionResult(events=[SessionEvent.WORK_COMPLETED], variance_seconds=variance)
        suggestion = s.breaks.evaluate()
        if suggestion is not None:
            s.pending_break = suggestion
            result.suggestion = suggestion
            result.events.append(SessionEvent.BREAK_SUGGESTED)
            logger.info(f"Break suggested after {suggestion.hours_worked}h without one")
        return result

    def undo_last_completion(self) -> TransitionResult:
        s = self._state
        snapshot = s.metrics.undo_last(s.session_seconds)
        if snapshot is None:
            return self._reject(Notice.NOTHING_TO_UNDO)
        logger.info(f"Undid completion: variance={snapshot.variance_seconds:+d}s rvu={snapshot.unit_value:.2f}")
        return TransitionResult(
            events=[SessionEvent.COMPLETION_UNDONE],
            variance_seconds=snapshot.variance_seconds,
        )

    # ---- Admin / Comms ----

    def start_admin(self) -> TransitionResult:
        return self._start_side_task(ActivityCategory.ADMIN)

    def stop_admin(self) -> TransitionResult:
        return self._stop_side_task(ActivityCategory.ADMIN)

    def toggle_admin(self) -> TransitionResult:
        if self.category == ActivityCategory.ADMIN:
            return self.stop_admin()
        return self.start_admin()

    def start_comms(self) -> TransitionResult:
        return self._start_side_task(ActivityCategory.COMMS)

    def stop_comms(self) -> TransitionResult:
        return self._stop_side_task(ActivityCategory.COMMS)

    def toggle_comms(self) -> TransitionResult:
        if self.category == ActivityCategory.COMMS:
            return self.stop_comms()
        return self.start_comms()

    # ---- Breaks ----

    def start_break(self) -> TransitionResult:
        s = self._state
        if s.category == ActivityCategory.ON_BREAK:
            return self._reject(Notice.ALREADY_ACTIVE)

        result = TransitionResult()
        if s.category == ActivityCategory.WORKING:
            s.paused = True
            result.events.append(SessionEvent.WORK_PAUSED)
        # A break ends any admin/comms interruption; the study stays paused.
        s.auto_paused = False

        self._activate(ActivityCategory.ON_BREAK)
        s.breaks.reset()
        s.pending_break = None
        s.event_counts[ActivityCategory.ON_BREAK] += 1
        result.events.append(SessionEvent.CATEGORY_STARTED)
        logger.info(f"Break started (#{s.event_counts[ActivityCategory.ON_BREAK]})")
        return result

    def stop_break(self) -> TransitionResult:
        s = self._state
        if s.category != ActivityCategory.ON_BREAK:
            return self._reject(Notice.NOT_ACTIVE)
        self._activate(ActivityCategory.INTERSTITIAL)
        logger.info("Break ended")
        return TransitionResult(events=[SessionEvent.CATEGORY_STOPPED])

    def toggle_break(self) -> TransitionResult:
        if self.category == ActivityCategory.ON_BREAK:
            return self.stop_break()
        return self.start_break()

    def accept_break(self) -> TransitionResult:
        if self._state.pending_break is None:
            return self._reject(Notice.NO_BREAK_SUGGESTED)
        return self.start_break()

    def decline_break(self) -> TransitionResult:
        s = self._state
        if s.pending_break is None:
            return self._reject(Notice.NO_BREAK_SUGGESTED)
        s.breaks.decline()
        s.pending_break = None
        logger.info(f"Break declined at {s.breaks.decline_mark_seconds}s since last break")
        return TransitionResult(events=[SessionEvent.BREAK_DECLINED])

    # ---- Quick review (double tap) ----

    def start_quick_review(self) -> TransitionResult:
        s = self._state
        if s.selection.kind or s.elapsed_seconds > 0:
            return self._reject(Notice.STUDY_IN_PROGRESS)
        if s.category == ActivityCategory.QUICK_REVIEW:
            return self._reject(Notice.ALREADY_ACTIVE)
        self._activate(ActivityCategory.QUICK_REVIEW)
        s.event_counts[ActivityCategory.QUICK_REVIEW] += 1
        logger.info("Double tap started")
        return TransitionResult(events=[SessionEvent.CATEGORY_STARTED])

    def stop_quick_review(self) -> TransitionResult:
        s = self._state
        if s.category != ActivityCategory.QUICK_REVIEW:
            return self._reject(Notice.NOT_ACTIVE)
        duration = s.category_seconds[ActivityCategory.QUICK_REVIEW]
        self._activate(ActivityCategory.INTERSTITIAL)
        logger.info(f"Double tap ended after {duration}s")
        return TransitionResult(events=[SessionEvent.CATEGORY_STOPPED])

    def toggle_quick_review(self) -> TransitionResult:
        if self.category == ActivityCategory.QUICK_REVIEW:
            return self.stop_quick_review()
        return self.start_quick_review()

    # ---- Draft slot ----

    def enter_draft(self) -> TransitionResult:
        s = self._state
        if not s.selection.kind:
            return self._reject(Notice.NO_SELECTION)
        if s.draft is not None:
            return self._reject(Notice.DRAFT_OCCUPIED)

        s.draft = DraftSlot(
            selection=s.selection,
            elapsed_seconds=s.elapsed_seconds,
            target_seconds=target_duration(self.config, s.selection),
        )
        s.selection = WorkItemSelection()
        s.elapsed_seconds = 0
        s.paused = False
        s.auto_paused = False
        self._activate(ActivityCategory.INTERSTITIAL)
        logger.info(f"Drafted {s.draft.selection.kind} at {s.draft.elapsed_seconds}s")
        return TransitionResult(events=[SessionEvent.DRAFT_SAVED])

    def resume_draft(self) -> TransitionResult:
        """Restore the drafted study. The timer stays stopped until started."""
        s = self._state
        if s.draft is None:
            return self._reject(Notice.NO_DRAFT)
        if s.category == ActivityCategory.WORKING:
            return self._reject(Notice.STOP_BEFORE_RESUME)

        draft = s.draft
        s.selection = draft.selection
        s.elapsed_seconds = draft.elapsed_seconds
        s.draft = None
        logger.info(f"Resumed draft {draft.selection.kind} at {draft.elapsed_seconds}s")
        return TransitionResult(events=[SessionEvent.DRAFT_RESUMED])

    def toggle_draft(self) -> TransitionResult:
        if self._state.draft is None:
            return self.enter_draft()
        return self.resume_draft()

    # ---- Serialization ----

    def snapshot(self) -> dict:
        """Plain dict view of the session (snake_case keys)."""
        s = self._state
        m = s.metrics
        return {
            "category": s.category.value,
            "paused": s.paused,
            "auto_paused": s.auto_paused,
            "kind": s.selection.kind,
            "modifiers": sorted(s.selection.modifiers),
            "elapsed_seconds": s.elapsed_seconds,
            "target_seconds": self.current_target,
            "unit_value": self.current_unit_value,
            "session_seconds": s.session_seconds,
            "category_seconds": {c.value: v for c, v in s.category_seconds.items()},
            "event_counts": {c.value: v for c, v in s.event_counts.items()},
            "draft_kind": s.draft.selection.kind if s.draft else None,
            "seconds_since_last_break": s.breaks.seconds_since_last_break,
            "decline_mark_seconds": s.breaks.decline_mark_seconds,
            "cumulative_variance_seconds": m.cumulative_variance_seconds,
            "completed_count": m.completed_count,
            "total_unit_value": m.total_unit_value,
            "units_per_hour": m.units_per_hour,
            "rolling_unit_value": m.rolling_unit_value,
            "streak": m.streak,
            "can_undo": m.undo is not None,
        }

    # ---- Internal ----

    def _activate(self, category: ActivityCategory) -> None:
        """Make `category` the only accruing one."""
        s = self._state
        if s.category == category:
            return
        # Double-tap duration is per event.
        if s.category == ActivityCategory.QUICK_REVIEW:
            s.category_seconds[ActivityCategory.QUICK_REVIEW] = 0
        s.category = category

    def _start_side_task(self, category: ActivityCategory) -> TransitionResult:
        s = self._state
        if s.category == category:
            return self._reject(Notice.ALREADY_ACTIVE)

        result = TransitionResult()
        if s.category == ActivityCategory.WORKING:
            s.paused = True
            s.auto_paused = True
            result.events.append(SessionEvent.WORK_PAUSED)

        self._activate(category)
        s.event_counts[category] += 1
        result.events.append(SessionEvent.CATEGORY_STARTED)
        logger.info(f"{category.value.title()} started (#{s.event_counts[category]})")
        return result

    def _stop_side_task(self, category: ActivityCategory) -> TransitionResult:
        s = self._state
        if s.category != category:
            return self._reject(Notice.NOT_ACTIVE)

        self._activate(ActivityCategory.INTERSTITIAL)
        result = TransitionResult(events=[SessionEvent.CATEGORY_STOPPED])
        logger.info(f"{category.value.title()} stopped")

        if s.auto_paused:
            s.auto_paused = False
            if s.selection.kind:
                self._activate(ActivityCategory.WORKING)
                s.paused = False
                result.events.append(SessionEvent.WORK_RESUMED)
                logger.info(f"Study resumed after {category.value}")
        return result

    def _reject(self, notice: Notice) -> TransitionResult:
        logger.debug(f"Refused: {notice.value}")
        return TransitionResult(ok=False, notice=notice)
