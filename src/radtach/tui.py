"""Live terminal dashboard.

Controls:
  1-8        - Select modality (XR FL CT US MR NM MA PET-CT)
  !@#$%^&*() - Toggle complications, in the order shown
  space      - Start / pause the study timer (Par Time)
  Enter      - Complete the study
  u          - Undo the last completion
  a / c      - Toggle admin / comms time
  b          - Toggle break
  t          - Toggle double tap
  d          - Save to draft / resume draft
  y / n      - Accept / decline a break suggestion
  o          - Toggle auto-start on modality select
  s          - Toggle stealth (accessible) display
  q          - Quit
"""

from __future__ import annotations

import logging
import sys
import threading
import time

from rich.console import Console
from rich.layout import Layout
from rich.live import Live

from .clock import TickSource
from .dashboard import COMPLICATION_KEYS, MODALITY_KEYS, render_dashboard
from .engine import SessionEngine, TransitionResult
from .storage import SettingsStore

logger = logging.getLogger("radtach.tui")

POLL_INTERVAL = 0.05  # seconds


class DashboardController:
    """Maps keypresses to engine transitions and preference changes."""

    def __init__(self, engine: SessionEngine, store: SettingsStore | None = None, accessible: bool = False):
        self.engine = engine
        self.store = store
        self.accessible = accessible
        self._actions = {
            " ": engine.toggle_work,
            "\r": engine.complete_work,
            "\n": engine.complete_work,
            "u": engine.undo_last_completion,
            "a": engine.toggle_admin,
            "c": engine.toggle_comms,
            "b": engine.toggle_break,
            "t": engine.toggle_quick_review,
            "d": engine.toggle_draft,
            "y": engine.accept_break,
            "n": engine.decline_break,
        }

    def handle_key(self, key: str) -> TransitionResult | None:
        """Apply one keypress. Unknown keys are ignored."""
        if key in MODALITY_KEYS:
            result = self.engine.select_kind(MODALITY_KEYS[key])
        elif key in COMPLICATION_KEYS:
            result = self.engine.toggle_modifier(COMPLICATION_KEYS[key])
        elif key in self._actions:
            result = self._actions[key]()
        elif key == "o":
            self.engine.auto_start = not self.engine.auto_start
            self._save_preference("auto_start", self.engine.auto_start)
            return None
        elif key == "s":
            self.accessible = not self.accessible
            self._save_preference("accessible_display", self.accessible)
            return None
        else:
            return None

        if not result.ok and result.notice is not None:
            logger.warning(result.notice.value)
        return result

    def render(self) -> Layout:
        return render_dashboard(self.engine, self.accessible)

    def _save_preference(self, name: str, value: bool) -> None:
        logger.info(f"{name.replace('_', ' ')} {'on' if value else 'off'}")
        if self.store is not None:
            self.store.save_preference(name, value)


def run_dashboard(controller: DashboardController, console: Console | None = None) -> None:
    """Run the live dashboard until q or Ctrl+C."""
    import select as sel
    import termios
    import tty

    console = console or Console()
    quit_flag = threading.Event()
    action_queue: list[str] = []
    action_lock = threading.Lock()

    original_terminal_settings = termios.tcgetattr(sys.stdin)

    def key_listener():
        """Listen for keypresses."""
        try:
            tty.setcbreak(sys.stdin.fileno())
            while not quit_flag.is_set():
                if not sel.select([sys.stdin], [], [], 0.02)[0]:
                    continue
                key = sys.stdin.read(1)
                if key == "q":
                    quit_flag.set()
                    break
                if key == "\x1b":
                    # Arrow keys and other escape sequences have no binding.
                    if sel.select([sys.stdin], [], [], 0.05)[0]:
                        sys.stdin.read(2)
                    continue
                with action_lock:
                    action_queue.append(key)
        finally:
            termios.tcsetattr(sys.stdin, termios.TCSADRAIN, original_terminal_settings)

    listener_thread = threading.Thread(target=key_listener, daemon=True)
    listener_thread.start()

    ticks = TickSource(time.monotonic())
    logger.info("Dashboard started")
    try:
        with Live(controller.render(), console=console, refresh_per_second=4, screen=True) as live:
            while not quit_flag.is_set():
                # Seconds that passed before a keypress belong to the old state.
                due = ticks.due(time.monotonic())
                if due:
                    controller.engine.tick(due)

                with action_lock:
                    keys = action_queue.copy()
                    action_queue.clear()
                for key in keys:
                    controller.handle_key(key)

                if due or keys:
                    live.update(controller.render())
                time.sleep(POLL_INTERVAL)
    except KeyboardInterrupt:
        pass
    finally:
        quit_flag.set()
        listener_thread.join(timeout=0.5)
        termios.tcsetattr(sys.stdin, termios.TCSADRAIN, original_terminal_settings)
