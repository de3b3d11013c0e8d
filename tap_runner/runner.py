"""
Run Orchestrator - Build, run the tests and assemble the dashboard state

States:
    IDLE -> BUILDING -> TESTING -> PARSED -> READY
                  \__________\_________\___> FAILED

Every error raised during a run is caught here and kept as the run's
transient error; only the first one of a run is kept.
"""

import time
import logging
import subprocess
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, List, Optional, Sequence

from .classifier import classify
from .errors import BuildFailure, LaunchError, ProcessOutputError, TapRunnerError
from .flattener import flatten
from .location import extract
from .models import FailureRecord, ResultNode, SkipRecord, Status
from .parsing import parse
from .query import CompiledFilter
from .widgets import StatefulList

logger = logging.getLogger(__name__)


class RunState(Enum):
    """Phases of a run"""
    IDLE = auto()
    BUILDING = auto()
    TESTING = auto()
    PARSED = auto()
    READY = auto()
    FAILED = auto()


@dataclass
class TransientError:
    """Error message shown for a limited time"""
    message: str
    created_at: float = field(default_factory=time.monotonic)

    def is_expired(self, ttl: float, now: Optional[float] = None) -> bool:
        if now is None:
            now = time.monotonic()
        return now - self.created_at >= ttl


@dataclass
class ProcessOutput:
    """Exit status and merged stdout+stderr of a finished process"""
    returncode: int
    output: bytes


def invoke(command: Sequence[str]) -> ProcessOutput:
    """
    Run a command to completion, stderr merged into stdout.

    Raises:
        LaunchError: the executable could not be started
    """
    logger.info("Running: %s", " ".join(command))
    try:
        proc = subprocess.run(
            list(command),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except OSError as e:
        raise LaunchError(list(command), str(e)) from e
    logger.info("Exit status %d: %s", proc.returncode, command[0])
    return ProcessOutput(returncode=proc.returncode, output=proc.stdout)


class RunOrchestrator:
    """
    Owns the dashboard state and rebuilds it on every run.

    Usage:
        orchestrator = RunOrchestrator(["./tests"], build_command=["make"])
        orchestrator.run()
        orchestrator.statuses, orchestrator.failures, orchestrator.error
    """

    def __init__(self,
                 test_command: List[str],
                 build_command: Optional[List[str]] = None,
                 location_filter: Optional[CompiledFilter] = None,
                 invoker: Callable[[Sequence[str]], ProcessOutput] = invoke,
                 grammar: Callable[[str], List[ResultNode]] = parse):
        self.test_command = test_command
        self.build_command = build_command
        self.location_filter = location_filter
        self._invoke = invoker
        self._parse = grammar

        self.state = RunState.IDLE
        self.could_run = False
        self.statuses: List[Status] = []
        self.skipped: List[SkipRecord] = []
        self.failures: StatefulList[FailureRecord] = StatefulList.empty()
        self.error: Optional[TransientError] = None

    # ==================== RUN ====================

    def run(self) -> RunState:
        """Run the optional build, then the tests, and repopulate the state"""
        self.error = None
        self.could_run = False
        self.statuses = []
        self.skipped = []
        self.failures.replace([])

        try:
            if self.build_command:
                self.state = RunState.BUILDING
                self._build()

            self.could_run = True
            self.state = RunState.TESTING
            output = self._run_tests()

            document = self._parse(output)
            self.state = RunState.PARSED
            self._populate(document)
            self.state = RunState.READY
        except TapRunnerError as e:
            logger.error("Run failed during %s: %s", self.state.name.lower(), e)
            self.state = RunState.FAILED
            self.report(e)

        return self.state

    def _build(self) -> None:
        result = self._invoke(self.build_command)
        if result.returncode != 0:
            output = result.output.decode("utf-8", errors="replace")
            raise BuildFailure(result.returncode, output)

    def _run_tests(self) -> str:
        result = self._invoke(self.test_command)
        try:
            return result.output.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProcessOutputError(f"Test output is not valid UTF-8: {e}") from e

    def _populate(self, document: List[ResultNode]) -> None:
        statuses: List[Status] = []
        skipped: List[SkipRecord] = []
        failures: List[FailureRecord] = []

        for result in flatten(document):
            extraction = extract(result.diagnostic_text, self.location_filter)
            if extraction.error is not None:
                logger.debug("Location of %s: %s", result.identifier, extraction.error)
                self.report(extraction.error)
            result.location = extraction.location

            classification = classify(result)
            statuses.append(classification.status)
            if classification.status == Status.FAIL:
                failures.append(FailureRecord(
                    identifier=result.identifier,
                    description=result.description,
                    diagnostic_text=result.diagnostic_text,
                    location=result.location,
                ))
            elif classification.status == Status.SKIP:
                skipped.append(SkipRecord(
                    identifier=result.identifier,
                    description=result.description,
                    reason=classification.reason,
                ))

        self.statuses = statuses
        self.skipped = skipped
        self.failures.replace(failures)
        logger.info(
            "Run complete: %d results, %d failed, %d skipped",
            len(statuses), len(failures), len(skipped),
        )

    # ==================== ERRORS ====================

    def report(self, error: Exception) -> None:
        """Keep `error` as the transient error unless one is already set"""
        if self.error is None:
            self.error = TransientError(str(error))

    def show(self, error: Exception) -> None:
        """Replace the transient error, for errors raised outside a run"""
        self.error = TransientError(str(error))

    def expire_error(self, ttl: float, now: Optional[float] = None) -> bool:
        """Drop the transient error once it is older than `ttl` seconds"""
        if self.error is not None and self.error.is_expired(ttl, now):
            logger.debug("Transient error expired")
            self.error = None
            return True
        return False
