"""Rich rendering of a session.

Everything here reads the engine; nothing mutates it. Accessible display
drops colour and flashing and leans on sign glyphs and text markers instead.
"""

from __future__ import annotations

from rich.console import Group
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .configuration import Complication, Modality
from .engine import ActivityCategory, SessionEngine
from .formatting import elapsed_status, format_clock, format_variance, streak_letters
from .logbuffer import recent_entries

MODALITY_KEYS: dict[str, Modality] = {str(i + 1): m for i, m in enumerate(Modality)}
COMPLICATION_KEYS: dict[str, Complication] = dict(zip("!@#$%^&*()", Complication))

KEY_LEGEND = (
    "space=par/pause  enter=complete  u=undo  a=admin  c=comms  b=break  "
    "t=double tap  d=draft  o=auto  s=stealth  y/n=break prompt  q=quit"
)

ELAPSED_STYLES = {
    "neutral": "white",
    "ok": "bold green",
    "warning": "bold yellow",
    "critical": "bold blink red",
    "over": "bold red",
}

CATEGORY_STYLES = {
    ActivityCategory.IDLE: "dim",
    ActivityCategory.WORKING: "bold blue",
    ActivityCategory.INTERSTITIAL: "yellow",
    ActivityCategory.ADMIN: "dark_orange",
    ActivityCategory.COMMS: "cyan",
    ActivityCategory.ON_BREAK: "red",
    ActivityCategory.QUICK_REVIEW: "yellow",
}


def _style(style: str, accessible: bool) -> str:
    # Stealth keeps emphasis but loses every colour cue.
    if not accessible:
        return style
    return "bold" if "bold" in style else ""


def create_header_text(engine: SessionEngine, accessible: bool) -> Text:
    lit, unlit = streak_letters(engine.metrics.streak)
    text = Text(justify="center")
    text.append("RadTach  ", style="bold white")
    text.append(" ".join(lit), style=_style("bold yellow", accessible))
    if lit and unlit:
        text.append(" ")
    text.append(" ".join(unlit), style="dim")

    category = engine.category
    label = category.value.replace("_", " ").title()
    if engine.paused and category != ActivityCategory.WORKING:
        label += " (study paused)"
    text.append("   ")
    text.append(f"[{label}]", style=_style(CATEGORY_STYLES[category], accessible))
    if engine.auto_start:
        text.append("  AUTO", style=_style("bold green", accessible))
    return text


def create_main_timers_table(engine: SessionEngine, accessible: bool) -> Table:
    """Above/below par, par time and elapsed, side by side."""
    metrics = engine.metrics
    variance = metrics.cumulative_variance_seconds
    if variance > 0:
        variance_style = "bold red"
    elif variance < 0:
        variance_style = "bold green"
    else:
        variance_style = "bold white"

    status = elapsed_status(engine.elapsed_seconds, engine.current_target)

    table = Table(expand=True, show_edge=False, box=None)
    table.add_column("Above/Below Par", justify="center")
    table.add_column("Par Time", justify="center")
    table.add_column("Elapsed", justify="center")

    elapsed = Text(format_clock(engine.elapsed_seconds), style=_style(ELAPSED_STYLES[status], accessible))
    if accessible and status == "over":
        elapsed.append(" OVER")
    table.add_row(
        Text(format_variance(variance, accessible), style=_style(variance_style, accessible)),
        Text(format_clock(engine.current_target), style=_style("bold blue", accessible)),
        elapsed,
    )
    table.add_row(
        Text(f"{metrics.completed_count} done", style="dim"),
        Text(f"{engine.current_unit_value:.1f} RVU", style="dim"),
        Text("paused" if engine.paused else "", style="dim"),
    )
    return table


def create_side_timers_table(engine: SessionEngine, accessible: bool) -> Table:
    """Session, interstitial, rate and the per-category timers with event counts."""
    metrics = engine.metrics
    current = engine.category

    table = Table(expand=True, show_header=False, box=None)
    table.add_column("Timer", style="dim")
    table.add_column("Value", justify="right")
    table.add_column("Events", justify="right", style="dim")

    def row(label: str, value: str, category: ActivityCategory | None = None, events: str = ""):
        active = category is not None and current == category
        style = CATEGORY_STYLES[category] if active else "white"
        marker = "▶ " if active else "  "
        table.add_row(marker + label, Text(value, style=_style(style, accessible)), events)

    row("Session", format_clock(engine.session_seconds))
    row("Interstitial", format_clock(engine.seconds_in(ActivityCategory.INTERSTITIAL)), ActivityCategory.INTERSTITIAL)
    row("RVU/hr", f"{metrics.units_per_hour:.1f}")
    row("RVU/last hr", f"{metrics.rolling_unit_value:.1f}")
    row(
        "Break",
        format_clock(engine.seconds_in(ActivityCategory.ON_BREAK)),
        ActivityCategory.ON_BREAK,
        f"x{engine.events_for(ActivityCategory.ON_BREAK)}",
    )
    row(
        "Admin",
        format_clock(engine.seconds_in(ActivityCategory.ADMIN)),
        ActivityCategory.ADMIN,
        f"x{engine.events_for(ActivityCategory.ADMIN)}",
    )
    row(
        "Comms",
        format_clock(engine.seconds_in(ActivityCategory.COMMS)),
        ActivityCategory.COMMS,
        f"x{engine.events_for(ActivityCategory.COMMS)}",
    )
    row(
        "Double Tap",
        format_clock(engine.seconds_in(ActivityCategory.QUICK_REVIEW)),
        ActivityCategory.QUICK_REVIEW,
        f"x{engine.events_for(ActivityCategory.QUICK_REVIEW)}",
    )
    return table


def create_selection_panel(engine: SessionEngine, accessible: bool) -> Panel:
    selection = engine.selection

    modalities = Text()
    for key, modality in MODALITY_KEYS.items():
        chosen = selection.kind == modality.value
        label = f"[{modality.value}]" if chosen else f" {modality.value} "
        modalities.append(f"{key}", style="dim")
        modalities.append(label, style=_style("bold white on blue", accessible) if chosen else "")
        modalities.append("  ")

    complications = Text()
    for key, complication in COMPLICATION_KEYS.items():
        chosen = complication.value in selection.modifiers
        label = f"[{complication.value}]" if chosen else f" {complication.value} "
        complications.append(f"{key}", style="dim")
        complications.append(label, style=_style("bold white on dark_orange", accessible) if chosen else "")
        complications.append(" ")

    body = [modalities, complications]
    draft = engine.draft
    if draft is not None:
        body.append(Text(
            f"DRAFT: {draft.selection.kind} "
            f"({format_clock(draft.elapsed_seconds)} / {format_clock(draft.target_seconds)}) "
            "- press d to resume",
            style=_style("bold magenta", accessible),
        ))
    return Panel(Group(*body), title="Modality / Complications", border_style=_style("blue", accessible))


def create_notices_panel(engine: SessionEngine, accessible: bool, max_lines: int = 4) -> Panel:
    lines: list[Text] = []
    suggestion = engine.pending_break
    if suggestion is not None:
        lines.append(Text(
            f"You have been working for {suggestion.hours_worked} hours. "
            "Take a break? (y/n)",
            style=_style("bold red", accessible),
        ))
    for entry in recent_entries(max_lines):
        lines.append(Text(f"{entry['timestamp']} {entry['message']}", style="dim"))
    if not lines:
        lines.append(Text("No notices", style="dim"))
    return Panel(Group(*lines), title="Notices", border_style=_style("magenta", accessible))


def render_dashboard(engine: SessionEngine, accessible: bool = False) -> Layout:
    """Full dashboard layout for one frame."""
    layout = Layout()
    layout.split_column(
        Layout(name="header", size=3),
        Layout(name="main"),
        Layout(name="selection", size=6),
        Layout(name="notices", size=7),
        Layout(name="footer", size=1),
    )
    layout["header"].update(Panel(create_header_text(engine, accessible), border_style=_style("cyan", accessible)))

    layout["main"].split_row(
        Layout(name="timers", ratio=3),
        Layout(name="sidebar", ratio=2),
    )
    layout["timers"].update(Panel(create_main_timers_table(engine, accessible), border_style=_style("blue", accessible)))
    layout["sidebar"].update(Panel(create_side_timers_table(engine, accessible), border_style=_style("purple", accessible)))

    layout["selection"].update(create_selection_panel(engine, accessible))
    layout["notices"].update(create_notices_panel(engine, accessible))
    layout["footer"].update(Text(KEY_LEGEND, style="dim", no_wrap=True, overflow="ellipsis"))
    return layout
