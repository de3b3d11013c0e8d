"""
UI Module - CLI output with Rich, outside the dashboard

Handles:
- Formatted messages with colors (startup errors, final summary)
- Tables
"""

import os
import sys
from enum import Enum
from typing import List, Optional

from rich.console import Console
from rich.table import Table


class UIStyle(Enum):
    """Predefined styles"""
    SUCCESS = "green"
    ERROR = "red"
    WARNING = "yellow"


class ConsoleUI:
    """
    Console interface with Rich.

    Plain print() when colors are off (not a TTY, NO_COLOR, TERM=dumb).

    Usage:
        ui = ConsoleUI()
        ui.error("Preview requires bat")
    """

    def __init__(self, use_colors: bool = True, quiet: bool = False):
        """
        Initialize the console.

        Args:
            use_colors: Enable colors (default True, auto-detect TTY)
            quiet: Only errors are printed
        """
        self.quiet = quiet

        is_tty = sys.stdout.isatty()
        no_color_env = os.environ.get('NO_COLOR')
        term_dumb = os.environ.get('TERM', '').lower() == 'dumb'

        if not is_tty or no_color_env or term_dumb:
            use_colors = False

        self.use_colors = use_colors
        self.is_tty = is_tty

        if self.use_colors:
            self.console = Console()
            self.err_console = Console(stderr=True)
        else:
            self.console = None
            self.err_console = None

    # ==================== BASE OUTPUT ====================

    def print(self, message: str, style: Optional[str] = None) -> None:
        """Print message"""
        if self.quiet:
            return
        if self.console:
            self.console.print(message, style=style, highlight=False)
        else:
            print(message)

    def success(self, message: str) -> None:
        """Success message"""
        self.print(f"✓ {message}", UIStyle.SUCCESS.value)

    def error(self, message: str) -> None:
        """Error message, always shown, on stderr"""
        if self.err_console:
            self.err_console.print(f"✗ {message}", style=UIStyle.ERROR.value,
                                   highlight=False, markup=False)
        else:
            print(f"✗ {message}", file=sys.stderr)

    def warning(self, message: str) -> None:
        """Warning message"""
        self.print(f"! {message}", UIStyle.WARNING.value)

    # ==================== TABLES ====================

    def table(self,
              headers: List[str],
              rows: List[List[str]],
              title: str = "") -> None:
        """Print table"""
        if self.quiet:
            return
        if self.console:
            table = Table(title=title, show_header=True, header_style="bold")

            for h in headers:
                table.add_column(h)

            for row in rows:
                table.add_row(*row)

            self.console.print(table)
        else:
            if title:
                print(f"\n{title}")

            print(" | ".join(headers))
            print("-" * (sum(len(h) for h in headers) + len(headers) * 3))

            for row in rows:
                print(" | ".join(row))


# ==================== SINGLETON ====================

_default_ui: Optional[ConsoleUI] = None


def get_ui(use_colors: bool = True, quiet: bool = False) -> ConsoleUI:
    """
    Get global UI instance.

    Args:
        use_colors: Enable colors (auto-detect TTY if True)
        quiet: Minimal output (errors only)
    """
    global _default_ui
    if _default_ui is None:
        _default_ui = ConsoleUI(use_colors, quiet)
    return _default_ui


def reset_ui() -> None:
    """Reset UI instance (useful for testing)"""
    global _default_ui
    _default_ui = None
