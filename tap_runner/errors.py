"""
Errors - Taxonomy of failures raised by tap-runner.

Startup failures (ConfigurationError, FilterCompileError) are fatal and stop
the dashboard from opening. Everything else is caught by the run orchestrator
and turned into a transient error shown on screen.
"""

from typing import List, Optional


class TapRunnerError(Exception):
    """Base class for all tap-runner errors"""


class ConfigurationError(TapRunnerError):
    """Invalid combination of options or missing external tool"""


class LaunchError(TapRunnerError):
    """A build, test or highlighter executable could not be started"""

    def __init__(self, command: List[str], reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"Could not launch '{' '.join(command)}': {reason}")


class BuildFailure(TapRunnerError):
    """The build step exited with a non-zero status"""

    def __init__(self, returncode: int, output: str):
        self.returncode = returncode
        self.output = output
        super().__init__(f"Build failed (exit {returncode}):\n{output}")


class ProcessOutputError(TapRunnerError):
    """Captured process output is not valid UTF-8"""


class ProtocolParseError(TapRunnerError):
    """The TAP stream could not be turned into a result document"""

    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class StructuredDocumentError(TapRunnerError):
    """A diagnostic payload is not a parseable YAML document"""


class FilterCompileError(TapRunnerError):
    """The location filter could not be compiled"""

    def __init__(self, text: str, diagnostics: List[str]):
        self.text = text
        self.diagnostics = diagnostics
        super().__init__(
            f"Invalid filter '{text}':\n" + "\n".join(f"  {d}" for d in diagnostics)
        )


class FilterEvaluationError(TapRunnerError):
    """The location filter failed while running against a payload"""


class LocationFormatError(TapRunnerError):
    """Extracted text is not of the form 'file:line'"""


class PreviewSourceMissing(TapRunnerError):
    """The file referenced by a failure does not exist"""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Source file not found: {path}")
