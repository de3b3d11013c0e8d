"""
Source Preview - Highlighted excerpt of the line a failure points at

The excerpt is rendered by an external highlighter (bat by default) and then
windowed so that the failing line sits as close to the middle of the panel
as the file allows.
"""

import shutil
import logging
import subprocess
from pathlib import Path
from typing import List

from rich.text import Text

from .errors import ConfigurationError, LaunchError, PreviewSourceMissing

logger = logging.getLogger(__name__)


def center(total_lines: int, viewport_height: int, target_line: int) -> int:
    """
    Number of leading lines to drop so `target_line` (1-based) is centered.

    The window never scrolls past the point where fewer than
    `viewport_height` lines would remain. Callers skip windowing when the
    excerpt is shorter than the viewport.
    """
    if target_line <= viewport_height:
        return 0

    overflow = target_line - viewport_height
    centered = overflow + viewport_height // 2
    remaining = total_lines - centered

    if remaining > viewport_height:
        return centered
    return max(0, centered - (viewport_height - remaining))


def window(text: Text, height: int, target_line: int) -> Text:
    """Cut the `height` lines around `target_line` out of a rendered excerpt"""
    lines = text.split("\n")
    if height <= 0 or len(lines) < height:
        return text
    offset = center(len(lines), height, target_line)
    excerpt = Text("\n").join(lines[offset:offset + height])
    excerpt.no_wrap = True
    excerpt.overflow = "crop"
    return excerpt


class SourcePreview:
    """
    Wrapper around the highlighter command.

    Usage:
        preview = SourcePreview("bat")
        preview.check_available()
        text = preview.render("src/lib.c", width=80, highlight_line=42)
    """

    def __init__(self, highlighter: str = "bat"):
        self.highlighter = highlighter

    def check_available(self) -> None:
        """
        Raises:
            ConfigurationError: the highlighter is not on PATH
        """
        if shutil.which(self.highlighter) is None:
            raise ConfigurationError(
                f"Preview requires '{self.highlighter}' to be installed and on PATH"
            )

    def command(self, path: str, width: int, highlight_line: int) -> List[str]:
        return [
            self.highlighter,
            "--color=always",
            "--paging=never",
            "--wrap=never",
            "--style=numbers",
            f"--terminal-width={width}",
            f"--highlight-line={highlight_line}",
            path,
        ]

    def render(self, path: str, width: int, highlight_line: int) -> Text:
        """
        Render `path` with `highlight_line` highlighted.

        Raises:
            PreviewSourceMissing: `path` does not exist
            LaunchError: the highlighter could not run or failed
        """
        if not Path(path).is_file():
            raise PreviewSourceMissing(path)

        cmd = self.command(path, width, highlight_line)
        logger.debug("Rendering preview: %s", " ".join(cmd))
        try:
            proc = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        except OSError as e:
            raise LaunchError(cmd, str(e)) from e

        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", errors="replace").strip()
            raise LaunchError(cmd, stderr or f"exit status {proc.returncode}")

        return Text.from_ansi(proc.stdout.decode("utf-8", errors="replace"))
