"""
Dashboard - Live view of a TAP test run

Single-threaded loop: render, wait for a key until the next tick, repeat.
Re-running the tests blocks the loop until the run is over.
"""

import sys
import tty
import time
import termios
import select
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from rich.console import Console, ConsoleOptions, RenderableType, RenderResult
from rich.layout import Layout
from rich.panel import Panel
from rich.text import Text
from rich.live import Live
from rich import box

from .config_loader import GlobalSettings
from .errors import LaunchError, PreviewSourceMissing
from .models import FailureRecord, Location, SkipRecord, Status
from .preview import SourcePreview, window
from .runner import RunOrchestrator, RunState
from .widgets import ColoredList

logger = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS
# ============================================================================

# Key -> (action, description)
SHORTCUTS: Dict[str, Tuple[str, str]] = {
    "q": ("quit", "Quit"),
    "CTRL_C": ("quit", "Quit"),
    "r": ("rerun", "Re-run"),
    "j": ("next", "Next failure"),
    "DOWN": ("next", "Next failure"),
    "k": ("previous", "Previous failure"),
    "UP": ("previous", "Previous failure"),
    "ESC": ("unselect", "Clear selection"),
}

STATUS_COLORS = {
    Status.SUCCESS: "green",
    Status.FAIL: "red",
    Status.SKIP: "yellow",
}

MAX_STATUS_ROWS = 6
MAX_ERROR_ROWS = 10


# ============================================================================
# KEYBOARD HANDLER
# ============================================================================

class KeyboardHandler:
    """Non-blocking keyboard input handler"""

    def __init__(self):
        self.fd = sys.stdin.fileno()
        self.old_settings = None

    def start(self):
        """Enter raw mode for keyboard capture"""
        self.old_settings = termios.tcgetattr(self.fd)
        tty.setraw(self.fd)

    def stop(self):
        """Restore terminal settings"""
        if self.old_settings:
            termios.tcsetattr(self.fd, termios.TCSADRAIN, self.old_settings)

    def get_key(self, timeout: float = 0.1) -> Optional[str]:
        """Get key press with timeout (non-blocking)"""
        rlist, _, _ = select.select([sys.stdin], [], [], timeout)
        if rlist:
            ch = sys.stdin.read(1)
            # Handle escape sequences (arrows)
            if ch == '\x1b':
                rlist2, _, _ = select.select([sys.stdin], [], [], 0.01)
                if rlist2:
                    ch2 = sys.stdin.read(1)
                    if ch2 == '[':
                        ch3 = sys.stdin.read(1)
                        if ch3 == 'A': return 'UP'
                        if ch3 == 'B': return 'DOWN'
                        return None  # other CSI keys are not bound
                return 'ESC'
            elif ch == '\x03':  # Ctrl+C
                return 'CTRL_C'
            return ch
        return None


# ============================================================================
# SOURCE PREVIEW
# ============================================================================

class PreviewCache:
    """
    Last rendered preview, keyed by (file, line, width).

    The highlighter runs once per selection; a failure is reported once
    through `on_error`.
    """

    def __init__(self, preview: SourcePreview, on_error: Callable[[Exception], None]):
        self.preview = preview
        self.on_error = on_error
        self._key: Optional[Tuple[str, int, int]] = None
        self._text: Optional[Text] = None
        self._error: Optional[str] = None

    def get(self, location: Location, width: int) -> Tuple[Optional[Text], Optional[str]]:
        key = (location.file, location.line, width)
        if key != self._key:
            self._key = key
            try:
                self._text = self.preview.render(location.file, width, location.line)
                self._error = None
            except (PreviewSourceMissing, LaunchError) as e:
                logger.warning("Preview of %s failed: %s", location, e)
                self._text = None
                self._error = str(e)
                self.on_error(e)
        return self._text, self._error


class SourceView:
    """Highlighted excerpt sized to the area it is drawn in"""

    def __init__(self, cache: PreviewCache, location: Location):
        self.cache = cache
        self.location = location

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        height = options.height if options.height is not None else console.height
        text, error = self.cache.get(self.location, options.max_width)
        if text is None:
            yield Text(error or "No preview available", style="dim")
            return
        yield window(text, height, self.location.line)


# ============================================================================
# PANEL BUILDERS
# ============================================================================

class StatusPanel:
    """One coloured cell per result, counts in the title"""

    def __init__(self, orchestrator: RunOrchestrator):
        self.orchestrator = orchestrator

    def rows(self, width: int) -> int:
        """Rows of cells needed at `width`, capped"""
        inner = max(1, width - 4)
        count = len(self.orchestrator.statuses)
        return min(MAX_STATUS_ROWS, max(1, -(-count // inner)))

    def render(self) -> Panel:
        orch = self.orchestrator
        if not orch.could_run and orch.state == RunState.FAILED:
            return Panel(
                Text("Build failed, tests were not run", style="red bold"),
                title="RESULTS",
                border_style="red",
                box=box.ROUNDED,
            )

        if not orch.statuses:
            content: RenderableType = Text("No results", style="dim")
        else:
            content = ColoredList([STATUS_COLORS[s] for s in orch.statuses])

        passed = orch.statuses.count(Status.SUCCESS)
        failed = orch.statuses.count(Status.FAIL)
        skipped = orch.statuses.count(Status.SKIP)
        title = Text()
        title.append("RESULTS  ")
        title.append(f"✓ {passed}", style="green")
        title.append("  ")
        title.append(f"✗ {failed}", style="red")
        title.append("  ")
        title.append(f"○ {skipped}", style="yellow")

        return Panel(
            content,
            title=title,
            border_style="red" if failed else "green",
            box=box.ROUNDED,
        )


def failure_item(record: FailureRecord) -> Text:
    text = Text()
    text.append(record.identifier, style="red bold")
    if record.description:
        text.append(f" {record.description}", style="white")
    if record.location:
        text.append(f"  {record.location}", style="dim")
    return text


def skip_item(record: SkipRecord) -> Text:
    text = Text()
    text.append(record.identifier, style="yellow bold")
    if record.description:
        text.append(f" {record.description}", style="white")
    if record.reason:
        text.append(f"  ({record.reason})", style="dim")
    return text


class FailuresPanel:
    """Selectable list of failing results"""

    def __init__(self, orchestrator: RunOrchestrator, highlight_color: str):
        self.orchestrator = orchestrator
        self.highlight_color = highlight_color

    def render(self, focused: bool = True) -> Panel:
        failures = self.orchestrator.failures
        if len(failures):
            content: RenderableType = failures.render(failure_item, self.highlight_color)
        else:
            content = Text("No failures", style="dim")
        return Panel(
            content,
            title=f"FAILURES ({len(failures)})",
            border_style="cyan bold" if focused else "dim",
            box=box.ROUNDED,
        )


class SkippedPanel:
    """Skipped results with their reason"""

    def __init__(self, orchestrator: RunOrchestrator):
        self.orchestrator = orchestrator

    def render(self) -> Panel:
        skipped = self.orchestrator.skipped
        if skipped:
            content = Text("\n").join(skip_item(r) for r in skipped)
            content.no_wrap = True
            content.overflow = "ellipsis"
        else:
            content = Text("Nothing skipped", style="dim")
        return Panel(
            content,
            title=f"SKIPPED ({len(skipped)})",
            border_style="dim",
            box=box.ROUNDED,
        )


class DetailsPanel:
    """Selected failure: source preview when available, else its diagnostics"""

    def __init__(self, cache: Optional[PreviewCache]):
        self.cache = cache

    def render(self, record: FailureRecord) -> Panel:
        title = Text(record.identifier)
        if record.description:
            title.append(f" {record.description}")

        if self.cache is not None and record.location is not None:
            content: RenderableType = SourceView(self.cache, record.location)
            title.append(f"  {record.location}")
        elif record.diagnostic_text.strip():
            content = Text(record.diagnostic_text)
        else:
            content = Text("No diagnostics", style="dim")

        return Panel(
            content,
            title=title,
            title_align="left",
            border_style="cyan",
            box=box.ROUNDED,
        )


class ErrorPanel:
    """Transient error, until it expires"""

    @staticmethod
    def rows(message: str) -> int:
        return min(MAX_ERROR_ROWS, len(message.splitlines()) or 1)

    @staticmethod
    def render(message: str) -> Panel:
        return Panel(
            Text(message, style="red"),
            title="ERROR",
            border_style="red bold",
            box=box.ROUNDED,
        )


# ============================================================================
# MAIN DASHBOARD
# ============================================================================

@dataclass
class LoopStats:
    """Counters for the current session"""
    runs: int = 0
    ticks: int = 0


class Dashboard:
    """Main dashboard controller"""

    def __init__(self,
                 orchestrator: RunOrchestrator,
                 settings: Optional[GlobalSettings] = None,
                 preview: Optional[SourcePreview] = None,
                 console: Optional[Console] = None,
                 keyboard: Optional[KeyboardHandler] = None):
        self.orchestrator = orchestrator
        self.settings = settings or GlobalSettings()
        self.console = console or Console(no_color=not self.settings.ui.colors)
        self.keyboard = keyboard
        self.stats = LoopStats()
        self.status_message = ""

        cache = PreviewCache(preview, orchestrator.show) if preview is not None else None

        # Panels
        self.status_panel = StatusPanel(orchestrator)
        self.failures_panel = FailuresPanel(orchestrator, self.settings.ui.highlight_color)
        self.skipped_panel = SkippedPanel(orchestrator)
        self.details_panel = DetailsPanel(cache)

    def _build_layout(self) -> Panel:
        """Build the full screen, sized to the console"""
        orch = self.orchestrator
        width = self.console.size.width - 4

        sections = [
            Layout(self.status_panel.render(), name="status",
                   size=self.status_panel.rows(width) + 2),
            Layout(name="lists", ratio=1),
        ]
        sections[1].split_row(
            Layout(self.failures_panel.render(), name="failures", ratio=3),
            Layout(self.skipped_panel.render(), name="skipped", ratio=2),
        )

        selected = orch.failures.selected_item
        if selected is not None:
            sections.append(Layout(self.details_panel.render(selected), name="details", ratio=2))

        if orch.error is not None:
            sections.append(Layout(ErrorPanel.render(orch.error.message), name="error",
                                   size=ErrorPanel.rows(orch.error.message) + 2))

        sections.append(Layout(self._build_footer(), name="footer", size=1))

        layout = Layout(name="root")
        layout.split_column(*sections)

        subtitle = self.status_message or f"run #{self.stats.runs}"
        return Panel(
            layout,
            title="TAP Runner",
            title_align="center",
            subtitle=subtitle,
            box=box.ROUNDED,
            border_style="cyan",
        )

    def _build_footer(self) -> Text:
        """Key hints"""
        text = Text()
        text.append("[r]", style="cyan bold")
        text.append(" Re-run  ", style="dim")
        text.append("[j/k]", style="cyan bold")
        text.append(" Navigate  ", style="dim")
        text.append("[Esc]", style="cyan bold")
        text.append(" Clear  ", style="dim")
        text.append("[q]", style="cyan bold")
        text.append(" Quit", style="dim")
        return text

    # ==================== INPUT ====================

    def _handle_input(self, key: str) -> Optional[str]:
        """
        Handle keyboard input.

        Returns:
            - None: key not bound
            - action name: one of quit, rerun, next, previous, unselect
        """
        if key not in SHORTCUTS:
            return None
        action = SHORTCUTS[key][0]

        failures = self.orchestrator.failures
        if action == "next":
            failures.next()
        elif action == "previous":
            failures.previous()
        elif action == "unselect":
            failures.unselect()
        return action

    def rerun(self, live: Optional[Live] = None) -> RunState:
        """Run the tests, blocking until done"""
        self.status_message = "running..."
        if live is not None:
            live.update(self._build_layout(), refresh=True)

        state = self.orchestrator.run()
        self.stats.runs += 1
        self.status_message = ""
        return state

    def on_tick(self, now: Optional[float] = None) -> None:
        self.stats.ticks += 1
        self.orchestrator.expire_error(self.settings.ui.error_ttl, now)

    def run(self) -> None:
        """
        Main dashboard loop.

        Runs the tests once, then redraws every tick until the user quits.
        """
        tick_rate = self.settings.ui.tick_rate
        keyboard = self.keyboard or KeyboardHandler()
        keyboard.start()

        try:
            with Live(self._build_layout(), console=self.console,
                      auto_refresh=False, screen=True) as live:
                self.rerun(live)
                last_tick = time.monotonic()

                while True:
                    live.update(self._build_layout(), refresh=True)

                    timeout = max(0.0, tick_rate - (time.monotonic() - last_tick))
                    key = keyboard.get_key(timeout=timeout)

                    if key:
                        action = self._handle_input(key)
                        if action == "quit":
                            break
                        if action == "rerun":
                            self.rerun(live)

                    if time.monotonic() - last_tick >= tick_rate:
                        self.on_tick()
                        last_tick = time.monotonic()
        finally:
            keyboard.stop()


# ============================================================================
# ENTRY POINT
# ============================================================================

def run_dashboard(orchestrator: RunOrchestrator,
                  settings: Optional[GlobalSettings] = None,
                  preview: Optional[SourcePreview] = None) -> Dashboard:
    """
    Run the dashboard until the user quits.

    Returns:
        The dashboard, for its final state
    """
    dashboard = Dashboard(orchestrator, settings, preview)
    dashboard.run()
    return dashboard
