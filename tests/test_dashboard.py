"""
Unit tests for tap_runner/dashboard.py
"""

import select
from io import StringIO

import pytest
from rich.console import Console
from rich.text import Text

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tap_runner.config_loader import GlobalSettings
from tap_runner.dashboard import Dashboard, KeyboardHandler, PreviewCache, StatusPanel
from tap_runner.errors import PreviewSourceMissing
from tap_runner.models import Location
from tap_runner.preview import SourcePreview
from tap_runner.query import CompiledFilter
from tap_runner.runner import ProcessOutput, RunOrchestrator, TransientError


FAILING_OUTPUT = (
    b"ok 1 - first\n"
    b"not ok 2 - second\n"
    b"  ---\n"
    b"  at: src/lib.c:3\n"
    b"  ...\n"
    b"not ok 3 - third\n"
    b"ok 4 - fourth # SKIP slow\n"
)


class FakeKeyboard:
    """Tastiera scriptata: restituisce i tasti in ordine"""

    def __init__(self, keys):
        self.keys = list(keys)
        self.started = False
        self.stopped = False

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def get_key(self, timeout=0.1):
        return self.keys.pop(0) if self.keys else "q"


class FakePreview(SourcePreview):
    """Highlighter finto che conta le chiamate"""

    def __init__(self, missing=False):
        super().__init__("fake")
        self.missing = missing
        self.calls = 0

    def render(self, path, width, highlight_line):
        self.calls += 1
        if self.missing:
            raise PreviewSourceMissing(path)
        return Text("\n".join(f"line {n}" for n in range(1, 6)))


def make_orchestrator(output=FAILING_OUTPUT, build_output=None):
    def invoker(command):
        if command[0] == "make":
            return ProcessOutput(*build_output)
        return ProcessOutput(0, output)

    return RunOrchestrator(
        ["tests"],
        build_command=["make"] if build_output else None,
        location_filter=CompiledFilter.compile(".at"),
        invoker=invoker,
    )


def make_dashboard(orchestrator=None, preview=None, keys=()):
    console = Console(file=StringIO(), width=100, height=30, color_system=None)
    return Dashboard(
        orchestrator or make_orchestrator(),
        settings=GlobalSettings(),
        preview=preview,
        console=console,
        keyboard=FakeKeyboard(keys),
    )


def screen(dashboard):
    """Render the layout once and return the plain text"""
    dashboard.console.print(dashboard._build_layout())
    return dashboard.console.file.getvalue()


# ============================================================================
# INPUT
# ============================================================================

class TestHandleInput:
    """Scorciatoie da tastiera"""

    def test_unbound_key(self):
        dashboard = make_dashboard()
        assert dashboard._handle_input("x") is None

    def test_navigation(self):
        dashboard = make_dashboard()
        dashboard.orchestrator.run()
        failures = dashboard.orchestrator.failures

        assert dashboard._handle_input("j") == "next"
        assert failures.selected == 0
        assert dashboard._handle_input("DOWN") == "next"
        assert failures.selected == 1
        assert dashboard._handle_input("k") == "previous"
        assert failures.selected == 0
        assert dashboard._handle_input("ESC") == "unselect"
        assert failures.selected is None

    def test_navigation_without_failures(self):
        dashboard = make_dashboard(make_orchestrator(b"ok 1\n"))
        dashboard.orchestrator.run()
        dashboard._handle_input("j")
        dashboard._handle_input("UP")
        assert dashboard.orchestrator.failures.selected is None

    def test_quit_and_rerun(self):
        dashboard = make_dashboard()
        assert dashboard._handle_input("q") == "quit"
        assert dashboard._handle_input("CTRL_C") == "quit"
        assert dashboard._handle_input("r") == "rerun"


class TestTick:
    """Scadenza errore ad ogni tick"""

    def test_error_expires(self):
        dashboard = make_dashboard()
        dashboard.orchestrator.error = TransientError("boom", created_at=0.0)

        dashboard.on_tick(now=1.0)
        assert dashboard.orchestrator.error is not None

        dashboard.on_tick(now=8.0)
        assert dashboard.orchestrator.error is None
        assert dashboard.stats.ticks == 2


# ============================================================================
# LAYOUT
# ============================================================================

class TestLayout:
    """Render dello schermo"""

    def test_counts_and_lists(self):
        dashboard = make_dashboard()
        dashboard.rerun()
        output = screen(dashboard)

        assert "TAP Runner" in output
        assert "FAILURES (2)" in output
        assert "SKIPPED (1)" in output
        assert "second" in output
        assert "slow" in output

    def test_details_show_diagnostics_without_preview(self):
        dashboard = make_dashboard()
        dashboard.rerun()
        dashboard._handle_input("j")
        output = screen(dashboard)
        assert "src/lib.c:3" in output

    def test_build_failure(self):
        orchestrator = make_orchestrator(build_output=(1, b"link error"))
        dashboard = make_dashboard(orchestrator)
        dashboard.rerun()
        output = screen(dashboard)

        assert "Build failed, tests were not run" in output
        assert "ERROR" in output
        assert "link error" in output

    def test_console_follows_color_setting(self):
        settings = GlobalSettings()
        settings.ui.colors = False
        dashboard = Dashboard(make_orchestrator(), settings=settings)
        assert dashboard.console.no_color is True

        assert Dashboard(make_orchestrator()).console.no_color is False

    def test_status_rows(self):
        orchestrator = make_orchestrator(b"ok\n" * 300)
        orchestrator.run()
        panel = StatusPanel(orchestrator)
        assert panel.rows(104) == 3
        assert panel.rows(20) == 6


class TestPreview:
    """Anteprima del sorgente selezionato"""

    def test_preview_rendered_once_per_selection(self):
        preview = FakePreview()
        dashboard = make_dashboard(preview=preview)
        dashboard.rerun()
        dashboard._handle_input("j")

        output = screen(dashboard)
        screen(dashboard)

        assert "line 3" in output
        assert preview.calls == 1

    def test_missing_source_is_reported(self):
        preview = FakePreview(missing=True)
        dashboard = make_dashboard(preview=preview)
        dashboard.rerun()
        dashboard._handle_input("j")

        screen(dashboard)
        screen(dashboard)

        assert preview.calls == 1
        assert "Source file not found" in dashboard.orchestrator.error.message

    def test_cache_key_includes_width(self):
        preview = FakePreview()
        errors = []
        cache = PreviewCache(preview, errors.append)
        location = Location("src/lib.c", 3)

        cache.get(location, 80)
        cache.get(location, 80)
        cache.get(location, 60)

        assert preview.calls == 2
        assert errors == []


# ============================================================================
# LOOP
# ============================================================================

class TestLoop:
    """Loop principale con tastiera finta"""

    def test_runs_until_quit(self):
        dashboard = make_dashboard(keys=["j", "r", "q"])
        dashboard.run()

        assert dashboard.stats.runs == 2
        assert dashboard.keyboard.started is True
        assert dashboard.keyboard.stopped is True

    def test_keyboard_restored_on_error(self):
        dashboard = make_dashboard()

        def boom():
            raise RuntimeError("boom")

        dashboard.orchestrator.run = boom
        with pytest.raises(RuntimeError):
            dashboard.run()
        assert dashboard.keyboard.stopped is True


# ============================================================================
# KEYBOARD
# ============================================================================

class FakeStdin(StringIO):
    """stdin finto con un file descriptor"""

    def fileno(self):
        return 0


class TestKeyboardHandler:
    """Decodifica dei tasti letti in raw mode"""

    @pytest.fixture
    def read_key(self, monkeypatch):
        monkeypatch.setattr(select, "select", lambda r, w, x, timeout: (r, w, x))

        def read(data):
            monkeypatch.setattr(sys, "stdin", FakeStdin(data))
            return KeyboardHandler().get_key()

        return read

    def test_arrows(self, read_key):
        assert read_key("\x1b[A") == "UP"
        assert read_key("\x1b[B") == "DOWN"

    def test_unbound_arrows_are_dropped(self, read_key):
        assert read_key("\x1b[C") is None
        assert read_key("\x1b[D") is None

    def test_escape(self, read_key):
        assert read_key("\x1bx") == "ESC"

    def test_ctrl_c(self, read_key):
        assert read_key("\x03") == "CTRL_C"

    def test_plain_keys(self, read_key):
        assert read_key("j") == "j"
        assert read_key("\r") == "\r"
