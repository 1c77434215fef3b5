"""Unit tests for SessionEngine: transitions and ticks, no live clock."""

import random
from datetime import datetime, timedelta

import pytest

from radtach.engine import (
    ActivityCategory,
    Notice,
    SessionEngine,
    SessionEvent,
    TIMED_CATEGORIES,
)
from radtach.metrics import MAX_STREAK

NOW = datetime(2026, 2, 11, 9, 0, 0)


# ---- Helpers ----

def make_engine(auto_start: bool = False) -> SessionEngine:
    return SessionEngine(auto_start=auto_start, wall_clock=lambda: NOW)


def advance(engine: SessionEngine, seconds: int) -> None:
    """Advance the engine in 1-second ticks."""
    for _ in range(seconds):
        engine.tick()


def start_study(engine: SessionEngine, kind: str = "CT", *modifiers: str) -> None:
    engine.select_kind(kind)
    for tag in modifiers:
        engine.toggle_modifier(tag)
    result = engine.start_work()
    assert result.ok


def accrued(engine: SessionEngine) -> int:
    return engine.elapsed_seconds + sum(engine.seconds_in(c) for c in TIMED_CATEGORIES)


# ---- Initial state / ticks ----

class TestInitialState:
    def test_starts_idle(self):
        engine = make_engine()
        assert engine.category == ActivityCategory.IDLE
        assert not engine.paused
        assert engine.selection.kind is None

    def test_idle_ticks_accrue_nothing(self):
        engine = make_engine()
        advance(engine, 30)
        assert engine.session_seconds == 0
        assert accrued(engine) == 0
        assert engine.breaks.seconds_since_last_break == 0


class TestTick:
    def test_working_accrues_elapsed_and_session(self):
        engine = make_engine()
        start_study(engine)
        advance(engine, 45)
        assert engine.elapsed_seconds == 45
        assert engine.session_seconds == 45
        assert engine.breaks.seconds_since_last_break == 45

    def test_batched_tick_equals_single_ticks(self):
        a, b = make_engine(), make_engine()
        start_study(a)
        start_study(b)
        advance(a, 90)
        b.tick(90)
        assert a.snapshot() == b.snapshot()

    def test_non_positive_tick_is_ignored(self):
        engine = make_engine()
        start_study(engine)
        engine.tick(0)
        engine.tick(-5)
        assert engine.elapsed_seconds == 0

    def test_session_clock_keeps_running_between_studies(self):
        engine = make_engine()
        start_study(engine)
        advance(engine, 10)
        engine.complete_work()
        advance(engine, 20)
        assert engine.session_seconds == 30
        assert engine.seconds_in(ActivityCategory.INTERSTITIAL) == 20

    def test_admin_before_session_start_does_not_start_session(self):
        engine = make_engine()
        engine.start_admin()
        advance(engine, 15)
        assert engine.seconds_in(ActivityCategory.ADMIN) == 15
        assert engine.session_seconds == 0

    def test_break_does_not_accrue_time_since_break(self):
        engine = make_engine()
        start_study(engine)
        advance(engine, 10)
        engine.start_break()
        advance(engine, 60)
        assert engine.breaks.seconds_since_last_break == 0
        assert engine.seconds_in(ActivityCategory.ON_BREAK) == 60
        assert engine.session_seconds == 70


# ---- Study timer ----

class TestStartWork:
    def test_requires_selection(self):
        engine = make_engine()
        result = engine.start_work()
        assert not result.ok
        assert result.notice == Notice.NO_SELECTION
        assert engine.category == ActivityCategory.IDLE

    def test_first_start_starts_session(self):
        engine = make_engine()
        engine.select_kind("CT")
        result = engine.start_work()
        assert SessionEvent.SESSION_STARTED in result.events
        assert SessionEvent.WORK_STARTED in result.events
        assert engine.state.session_started
        assert engine.category == ActivityCategory.WORKING

    def test_second_study_does_not_restart_session(self):
        engine = make_engine()
        start_study(engine)
        engine.complete_work()
        engine.select_kind("XR")
        result = engine.start_work()
        assert SessionEvent.SESSION_STARTED not in result.events

    def test_start_while_working_refused(self):
        engine = make_engine()
        start_study(engine)
        result = engine.start_work()
        assert result.notice == Notice.ALREADY_WORKING

    def test_start_from_admin_ends_admin(self):
        engine = make_engine()
        engine.select_kind("CT")
        engine.start_admin()
        engine.start_work()
        assert engine.category == ActivityCategory.WORKING


class TestPauseWork:
    def test_pause_requires_working(self):
        engine = make_engine()
        result = engine.pause_work()
        assert result.notice == Notice.NOT_WORKING

    def test_pause_shifts_accrual_to_interstitial(self):
        engine = make_engine()
        start_study(engine)
        advance(engine, 20)
        result = engine.pause_work()
        assert SessionEvent.WORK_PAUSED in result.events
        assert engine.paused
        assert engine.category == ActivityCategory.INTERSTITIAL
        advance(engine, 15)
        assert engine.elapsed_seconds == 20
        assert engine.seconds_in(ActivityCategory.INTERSTITIAL) == 15

    def test_resume_after_pause(self):
        engine = make_engine()
        start_study(engine)
        engine.pause_work()
        result = engine.start_work()
        assert SessionEvent.WORK_RESUMED in result.events
        assert not engine.paused

    def test_toggle_work(self):
        engine = make_engine()
        engine.select_kind("CT")
        engine.toggle_work()
        assert engine.is_working
        engine.toggle_work()
        assert engine.paused


class TestCompleteWork:
    def test_under_par_scenario(self):
        """CT + '+1 Section', 300s elapsed: par 360, RVU 1.5, variance -60."""
        engine = make_engine()
        start_study(engine, "CT", "+1 Section")
        assert engine.current_target == 360
        assert engine.current_unit_value == pytest.approx(1.5)
        advance(engine, 300)

        result = engine.complete_work()

        assert result.ok
        assert result.variance_seconds == -60
        assert engine.metrics.cumulative_variance_seconds == -60
        assert engine.metrics.total_unit_value == pytest.approx(1.5)
        assert engine.metrics.streak == 1
        assert engine.metrics.completed_count == 1

    def test_bilateral_scenario(self):
        engine = make_engine()
        start_study(engine, "CT", "+1 Section", "Bilateral")
        assert engine.current_target == 720

    def test_completion_resets_study(self):
        engine = make_engine()
        start_study(engine, "CT", "CTA")
        advance(engine, 30)
        engine.complete_work()
        assert engine.selection.kind is None
        assert engine.selection.modifiers == frozenset()
        assert engine.elapsed_seconds == 0
        assert not engine.paused
        assert engine.category == ActivityCategory.INTERSTITIAL

    def test_requires_selection(self):
        engine = make_engine()
        result = engine.complete_work()
        assert result.notice == Notice.NO_SELECTION
        assert engine.metrics.completed_count == 0

    def test_requires_started_timer(self):
        engine = make_engine()
        engine.select_kind("CT")
        result = engine.complete_work()
        assert result.notice == Notice.TIMER_NOT_STARTED
        assert engine.metrics.completed_count == 0
        assert engine.selection.kind == "CT"

    def test_working_with_zero_elapsed_can_complete(self):
        engine = make_engine()
        start_study(engine)
        assert engine.complete_work().ok

    def test_paused_study_can_complete(self):
        engine = make_engine()
        start_study(engine)
        advance(engine, 5)
        engine.pause_work()
        result = engine.complete_work()
        assert result.ok
        assert result.variance_seconds == 5 - 240

    def test_over_par_resets_streak(self):
        engine = make_engine()
        start_study(engine, "XR")
        engine.complete_work()
        assert engine.metrics.streak == 1
        start_study(engine, "XR")
        advance(engine, 91)
        engine.complete_work()
        assert engine.metrics.streak == 0

    def test_exactly_par_keeps_streak(self):
        engine = make_engine()
        start_study(engine, "XR")
        advance(engine, 90)
        result = engine.complete_work()
        assert result.variance_seconds == 0
        assert engine.metrics.streak == 1

    def test_streak_clamps(self):
        engine = make_engine()
        for _ in range(MAX_STREAK + 3):
            start_study(engine, "XR")
            engine.complete_work()
        assert engine.metrics.streak == MAX_STREAK

    def test_units_per_hour(self):
        engine = make_engine()
        start_study(engine, "CT")
        advance(engine, 1800)
        engine.complete_work()
        assert engine.metrics.units_per_hour == pytest.approx(2.0)

    def test_units_per_hour_is_not_recomputed_on_tick(self):
        engine = make_engine()
        start_study(engine, "CT")
        advance(engine, 1800)
        engine.complete_work()
        advance(engine, 1800)
        assert engine.metrics.units_per_hour == pytest.approx(2.0)

    def test_rolling_value_uses_wall_clock(self):
        times = iter([NOW, NOW + timedelta(minutes=30), NOW + timedelta(minutes=70)])
        engine = SessionEngine(wall_clock=lambda: next(times))
        for _ in range(3):
            start_study(engine, "CT")
            engine.complete_work()
        assert engine.metrics.rolling_unit_value == pytest.approx(2.0)
        assert engine.metrics.total_unit_value == pytest.approx(3.0)

    def test_explicit_now_overrides_wall_clock(self):
        engine = make_engine()
        start_study(engine, "CT")
        engine.complete_work(now=NOW - timedelta(hours=3))
        assert engine.metrics.records[0].timestamp == NOW - timedelta(hours=3)


class TestUndo:
    def test_undo_restores_metrics(self):
        engine = make_engine()
        start_study(engine, "CT")
        advance(engine, 200)
        engine.complete_work()
        before = engine.snapshot()

        start_study(engine, "MR")
        advance(engine, 400)
        engine.complete_work()
        result = engine.undo_last_completion()

        after = engine.snapshot()
        assert result.ok
        assert SessionEvent.COMPLETION_UNDONE in result.events
        for key in ("cumulative_variance_seconds", "completed_count", "streak"):
            assert after[key] == before[key]
        assert after["total_unit_value"] == before["total_unit_value"]

    def test_undo_restores_total_exactly(self):
        """0.2 + 1.4 - 1.4 is not 0.2 in floating point."""
        engine = make_engine()
        start_study(engine, "XR")
        engine.complete_work()
        start_study(engine, "CT", "CTA")
        engine.complete_work()

        engine.undo_last_completion()

        assert engine.metrics.total_unit_value == 0.2
        assert engine.metrics.completed_count == 1

    def test_second_undo_is_refused(self):
        engine = make_engine()
        start_study(engine)
        engine.complete_work()
        engine.undo_last_completion()
        snapshot = engine.snapshot()
        result = engine.undo_last_completion()
        assert result.notice == Notice.NOTHING_TO_UNDO
        assert engine.snapshot() == snapshot

    def test_undo_without_completion(self):
        engine = make_engine()
        assert engine.undo_last_completion().notice == Notice.NOTHING_TO_UNDO

    def test_undo_recomputes_rate(self):
        engine = make_engine()
        start_study(engine, "CT")
        advance(engine, 1800)
        engine.complete_work()
        engine.undo_last_completion()
        assert engine.metrics.units_per_hour == 0.0


# ---- Admin / Comms ----

class TestAdminComms:
    def test_admin_auto_pauses_and_resumes_study(self):
        engine = make_engine()
        start_study(engine)
        advance(engine, 10)

        started = engine.start_admin()
        assert SessionEvent.WORK_PAUSED in started.events
        assert engine.category == ActivityCategory.ADMIN
        assert engine.paused
        advance(engine, 30)
        assert engine.elapsed_seconds == 10
        assert engine.seconds_in(ActivityCategory.ADMIN) == 30

        stopped = engine.stop_admin()
        assert SessionEvent.WORK_RESUMED in stopped.events
        assert engine.category == ActivityCategory.WORKING
        assert not engine.paused
        assert engine.elapsed_seconds == 10

    def test_stop_admin_without_study_returns_to_interstitial(self):
        engine = make_engine()
        engine.start_admin()
        engine.stop_admin()
        assert engine.category == ActivityCategory.INTERSTITIAL

    def test_manual_pause_is_not_resumed(self):
        engine = make_engine()
        start_study(engine)
        engine.pause_work()
        engine.start_comms()
        engine.stop_comms()
        assert engine.category == ActivityCategory.INTERSTITIAL
        assert engine.paused

    def test_comms_replaces_admin(self):
        engine = make_engine()
        engine.start_admin()
        engine.start_comms()
        assert engine.category == ActivityCategory.COMMS
        advance(engine, 5)
        assert engine.seconds_in(ActivityCategory.ADMIN) == 0
        assert engine.seconds_in(ActivityCategory.COMMS) == 5

    def test_interrupted_study_resumes_after_switching_side_task(self):
        engine = make_engine()
        start_study(engine)
        engine.start_admin()
        engine.start_comms()
        engine.stop_comms()
        assert engine.is_working

    def test_event_counters(self):
        engine = make_engine()
        for _ in range(3):
            engine.toggle_admin()
            engine.toggle_admin()
        engine.toggle_comms()
        assert engine.events_for(ActivityCategory.ADMIN) == 3
        assert engine.events_for(ActivityCategory.COMMS) == 1

    def test_start_twice_refused_without_counting(self):
        engine = make_engine()
        engine.start_admin()
        result = engine.start_admin()
        assert result.notice == Notice.ALREADY_ACTIVE
        assert engine.events_for(ActivityCategory.ADMIN) == 1

    def test_stop_when_not_running_refused(self):
        engine = make_engine()
        assert engine.stop_comms().notice == Notice.NOT_ACTIVE

    def test_completion_during_admin_clears_auto_pause(self):
        engine = make_engine()
        start_study(engine)
        advance(engine, 5)
        engine.start_admin()
        engine.complete_work()
        engine.start_admin()
        engine.stop_admin()
        assert engine.category == ActivityCategory.INTERSTITIAL


# ---- Breaks ----

class TestBreaks:
    def test_start_break_resets_policy(self):
        engine = make_engine()
        start_study(engine)
        advance(engine, 100)
        engine.breaks.decline_mark_seconds = 50
        engine.start_break()
        assert engine.category == ActivityCategory.ON_BREAK
        assert engine.breaks.seconds_since_last_break == 0
        assert engine.breaks.decline_mark_seconds == 0
        assert engine.events_for(ActivityCategory.ON_BREAK) == 1

    def test_break_pauses_study_without_auto_resume(self):
        engine = make_engine()
        start_study(engine)
        engine.start_break()
        assert engine.paused
        engine.stop_break()
        assert engine.category == ActivityCategory.INTERSTITIAL
        assert engine.paused

    def test_stop_break_requires_break(self):
        engine = make_engine()
        assert engine.stop_break().notice == Notice.NOT_ACTIVE

    def test_break_ends_admin(self):
        engine = make_engine()
        engine.start_admin()
        engine.start_break()
        advance(engine, 3)
        assert engine.seconds_in(ActivityCategory.ADMIN) == 0


class TestBreakSuggestion:
    def _complete_after(self, engine: SessionEngine, seconds: int):
        start_study(engine, "CT")
        engine.tick(seconds)
        return engine.complete_work()

    def test_suggested_after_two_hours(self):
        engine = make_engine()
        result = self._complete_after(engine, 7200)
        assert SessionEvent.BREAK_SUGGESTED in result.events
        assert result.suggestion.hours_worked == 2
        assert engine.pending_break is not None

    def test_not_suggested_before_two_hours(self):
        engine = make_engine()
        result = self._complete_after(engine, 7199)
        assert result.suggestion is None

    def test_decline_then_cooldown(self):
        engine = make_engine()
        self._complete_after(engine, 7200)
        engine.decline_break()
        assert engine.breaks.decline_mark_seconds == 7200
        assert engine.pending_break is None

        assert self._complete_after(engine, 3599).suggestion is None
        assert self._complete_after(engine, 1).suggestion is not None

    def test_accept_starts_break(self):
        engine = make_engine()
        self._complete_after(engine, 7200)
        result = engine.accept_break()
        assert result.ok
        assert engine.category == ActivityCategory.ON_BREAK
        assert engine.pending_break is None
        assert engine.breaks.seconds_since_last_break == 0

    def test_answer_without_suggestion_refused(self):
        engine = make_engine()
        assert engine.accept_break().notice == Notice.NO_BREAK_SUGGESTED
        assert engine.decline_break().notice == Notice.NO_BREAK_SUGGESTED


# ---- Quick review (double tap) ----

class TestQuickReview:
    def test_blocked_while_modality_selected(self):
        engine = make_engine()
        engine.select_kind("CT")
        result = engine.start_quick_review()
        assert result.notice == Notice.STUDY_IN_PROGRESS
        assert engine.events_for(ActivityCategory.QUICK_REVIEW) == 0

    def test_duration_is_per_event(self):
        engine = make_engine()
        engine.start_quick_review()
        advance(engine, 40)
        assert engine.seconds_in(ActivityCategory.QUICK_REVIEW) == 40
        engine.stop_quick_review()
        assert engine.seconds_in(ActivityCategory.QUICK_REVIEW) == 0
        assert engine.category == ActivityCategory.INTERSTITIAL

        engine.toggle_quick_review()
        advance(engine, 5)
        assert engine.seconds_in(ActivityCategory.QUICK_REVIEW) == 5
        assert engine.events_for(ActivityCategory.QUICK_REVIEW) == 2

    def test_stop_when_not_running_refused(self):
        engine = make_engine()
        assert engine.stop_quick_review().notice == Notice.NOT_ACTIVE


# ---- Draft slot ----

class TestDraft:
    def test_requires_selection(self):
        engine = make_engine()
        assert engine.enter_draft().notice == Notice.NO_SELECTION

    def test_enter_draft_saves_and_clears(self):
        engine = make_engine()
        start_study(engine, "CT", "+1 Section")
        advance(engine, 50)
        result = engine.enter_draft()

        assert SessionEvent.DRAFT_SAVED in result.events
        assert engine.draft.selection.kind == "CT"
        assert engine.draft.elapsed_seconds == 50
        assert engine.draft.target_seconds == 360
        assert engine.selection.kind is None
        assert engine.elapsed_seconds == 0
        assert engine.category == ActivityCategory.INTERSTITIAL
        assert engine.metrics.completed_count == 0

    def test_single_slot(self):
        engine = make_engine()
        start_study(engine, "CT")
        engine.enter_draft()
        engine.select_kind("XR")
        assert engine.enter_draft().notice == Notice.DRAFT_OCCUPIED
        assert engine.selection.kind == "XR"

    def test_resume_restores_without_starting(self):
        engine = make_engine()
        start_study(engine, "CT", "CTA")
        advance(engine, 50)
        engine.enter_draft()
        result = engine.resume_draft()

        assert SessionEvent.DRAFT_RESUMED in result.events
        assert engine.selection.kind == "CT"
        assert engine.selection.modifiers == frozenset({"CTA"})
        assert engine.elapsed_seconds == 50
        assert engine.category == ActivityCategory.INTERSTITIAL
        assert engine.draft is None

    def test_resume_refused_while_working(self):
        engine = make_engine()
        start_study(engine, "CT")
        engine.enter_draft()
        start_study(engine, "XR")
        result = engine.resume_draft()
        assert result.notice == Notice.STOP_BEFORE_RESUME
        assert engine.draft is not None

    def test_resume_without_draft(self):
        engine = make_engine()
        assert engine.resume_draft().notice == Notice.NO_DRAFT

    def test_toggle_draft(self):
        engine = make_engine()
        start_study(engine, "US")
        engine.toggle_draft()
        assert engine.draft is not None
        engine.toggle_draft()
        assert engine.draft is None
        assert engine.selection.kind == "US"


# ---- Auto-start ----

class TestAutoStart:
    def test_select_starts_timer(self):
        engine = make_engine(auto_start=True)
        result = engine.select_kind("CT")
        assert SessionEvent.AUTO_STARTED in result.events
        assert engine.is_working

    def test_disabled_by_default(self):
        engine = make_engine()
        engine.select_kind("CT")
        assert not engine.is_working

    def test_suppressed_while_draft_held(self):
        engine = make_engine(auto_start=True)
        engine.select_kind("CT")
        engine.enter_draft()
        engine.select_kind("XR")
        assert not engine.is_working

    def test_changing_modality_while_working_keeps_timer(self):
        engine = make_engine(auto_start=True)
        engine.select_kind("CT")
        advance(engine, 10)
        result = engine.select_kind("MR")
        assert SessionEvent.AUTO_STARTED not in result.events
        assert engine.elapsed_seconds == 10


# ---- Mutual exclusion ----

class TestMutualExclusion:
    OPERATIONS = (
        "start_work", "pause_work", "complete_work", "undo_last_completion",
        "start_admin", "stop_admin", "start_comms", "stop_comms",
        "start_break", "stop_break", "start_quick_review", "stop_quick_review",
        "enter_draft", "resume_draft", "accept_break", "decline_break",
    )

    @pytest.mark.parametrize("seed", range(5))
    def test_at_most_one_counter_accrues_per_tick(self, seed):
        rng = random.Random(seed)
        engine = make_engine(auto_start=bool(seed % 2))
        for _ in range(400):
            roll = rng.random()
            if roll < 0.15:
                engine.select_kind(rng.choice(["XR", "CT", "MR"]))
            elif roll < 0.2:
                engine.toggle_modifier(rng.choice(["CTA", "Bilateral"]))
            else:
                getattr(engine, rng.choice(self.OPERATIONS))()

            before = accrued(engine)
            engine.tick()
            expected = 0 if engine.category == ActivityCategory.IDLE else 1
            assert accrued(engine) - before == expected
            assert 0 <= engine.metrics.streak <= MAX_STREAK


class TestSnapshot:
    def test_snapshot_fields(self):
        engine = make_engine()
        start_study(engine, "CT", "CTA")
        advance(engine, 12)
        snap = engine.snapshot()
        assert snap["category"] == "working"
        assert snap["kind"] == "CT"
        assert snap["modifiers"] == ["CTA"]
        assert snap["elapsed_seconds"] == 12
        assert snap["target_seconds"] == 420
        assert snap["can_undo"] is False
        assert snap["category_seconds"]["interstitial"] == 0
