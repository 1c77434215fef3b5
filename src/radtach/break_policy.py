"""When to suggest a break.

A suggestion needs two hours since the last break and, if the user has
already turned one down, another hour since that decline. Nothing is ever
forced.
"""

from __future__ import annotations

from dataclasses import dataclass

SUGGEST_AFTER_MINUTES = 120
DECLINE_COOLDOWN_MINUTES = 60


@dataclass(frozen=True)
class BreakSuggestion:
    seconds_since_last_break: int
    hours_worked: int


@dataclass
class BreakPolicyState:
    seconds_since_last_break: int = 0
    decline_mark_seconds: int = 0

    def evaluate(self) -> BreakSuggestion | None:
        minutes = self.seconds_since_last_break / 60
        if self.decline_mark_seconds > 0:
            since_decline = (self.seconds_since_last_break - self.decline_mark_seconds) / 60
        else:
            since_decline = minutes

        if minutes >= SUGGEST_AFTER_MINUTES and since_decline >= DECLINE_COOLDOWN_MINUTES:
            return BreakSuggestion(
                seconds_since_last_break=self.seconds_since_last_break,
                hours_worked=int(minutes // 60),
            )
        return None

    def decline(self) -> None:
        self.decline_mark_seconds = self.seconds_since_last_break

    def reset(self) -> None:
        self.seconds_since_last_break = 0
        self.decline_mark_seconds = 0
