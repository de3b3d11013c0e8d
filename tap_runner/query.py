"""
Query - Location filter backed by jq

The filter runs against the YAML diagnostic payload of a failing test and is
expected to produce a 'file:line' string, e.g.

    .at | "\\(.file):\\(.line)"
"""

import datetime
import logging
from typing import Any, List, Mapping

import jq

from .errors import FilterCompileError, FilterEvaluationError, StructuredDocumentError

logger = logging.getLogger(__name__)


def to_filter_value(value: Any) -> Any:
    """
    Convert a YAML value into the JSON model jq works on.

    Raises:
        StructuredDocumentError: the value has no JSON equivalent
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (list, tuple)):
        return [to_filter_value(v) for v in value]
    if isinstance(value, Mapping):
        return {_key(k): to_filter_value(v) for k, v in value.items()}
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise StructuredDocumentError(f"Binary value is not UTF-8: {e}") from e
    raise StructuredDocumentError(f"Unsupported value of type {type(value).__name__}")


def _key(key: Any) -> str:
    if isinstance(key, str):
        return key
    if isinstance(key, bool) or key is None:
        # YAML true/false/null keys, spelled the JSON way
        return {True: "true", False: "false", None: "null"}[key]
    return str(to_filter_value(key))


class CompiledFilter:
    """
    A compiled jq program with no bound variables.

    Results are always read to the end: a jq iterator dropped half way
    through is not safe to release. first() stops jq itself after the first
    output instead.
    """

    def __init__(self, text: str, program, first_program):
        self.text = text
        self._program = program
        self._first_program = first_program

    @classmethod
    def compile(cls, text: str) -> "CompiledFilter":
        """
        Compile filter text.

        Raises:
            FilterCompileError: jq rejected the program
        """
        try:
            program = jq.compile(text)
            # Newlines keep a trailing comment in `text` from eating the ')'
            first_program = jq.compile(f"first(\n{text}\n)")
        except ValueError as e:
            diagnostics = [line for line in str(e).splitlines() if line.strip()]
            raise FilterCompileError(text, diagnostics or [str(e)]) from e
        logger.debug("Compiled location filter: %s", text)
        return cls(text, program, first_program)

    def run(self, value: Any) -> List[Any]:
        """
        Every output of the filter for `value`.

        Raises:
            FilterEvaluationError: jq failed on any output
        """
        return self._evaluate(self._program, value)

    def first(self, value: Any, default: Any = None) -> Any:
        """
        The first output for `value`, or `default` when there is none.

        Outputs after the first are never evaluated, so their errors do not
        count.

        Raises:
            FilterEvaluationError: jq failed before producing an output
        """
        outputs = self._evaluate(self._first_program, value)
        return outputs[0] if outputs else default

    @staticmethod
    def _evaluate(program, value: Any) -> List[Any]:
        try:
            return program.input_value(value).all()
        except ValueError as e:
            raise FilterEvaluationError(str(e)) from e

    def __repr__(self) -> str:
        return f"CompiledFilter({self.text!r})"
