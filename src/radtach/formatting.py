"""Text helpers shared by the dashboard and the CLI."""

from __future__ import annotations

STREAK_WORD = "STREAK"

# Seconds left on par at which the elapsed clock changes colour.
WARNING_SECONDS = 30
CRITICAL_SECONDS = 15

MINUS_SIGN = "−"


def format_clock(seconds: int) -> str:
    """Format seconds as '[-]M:SS'."""
    sign = "-" if seconds < 0 else ""
    mins, secs = divmod(abs(seconds), 60)
    return f"{sign}{mins}:{secs:02d}"


def format_variance(seconds: int, accessible: bool = False) -> str:
    """Cumulative variance. Accessible mode shows an explicit sign glyph
    because it has no red/green to carry the direction."""
    if not accessible:
        return format_clock(seconds)
    if seconds > 0:
        sign = "+"
    elif seconds < 0:
        sign = MINUS_SIGN
    else:
        sign = ""
    return sign + format_clock(abs(seconds))


def elapsed_status(elapsed: int, target: int) -> str:
    """Banding for the elapsed clock: neutral, ok, warning, critical or over."""
    if target == 0 or elapsed == 0:
        return "neutral"
    if elapsed > target:
        return "over"
    remaining = target - elapsed
    if remaining <= CRITICAL_SECONDS:
        return "critical"
    if remaining <= WARNING_SECONDS:
        return "warning"
    return "ok"


def streak_letters(streak: int) -> tuple[str, str]:
    """Split STREAK into the lit prefix and the unlit rest."""
    lit = max(0, min(streak, len(STREAK_WORD)))
    return STREAK_WORD[:lit], STREAK_WORD[lit:]
