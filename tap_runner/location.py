"""
Location Extractor - Finds the source line a failing test points at

The diagnostic payload is loaded as YAML, converted for jq, and the location
filter is run on it. Only the first output counts; it must be a
'file:line' string.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import yaml

from .errors import (
    FilterEvaluationError,
    LocationFormatError,
    StructuredDocumentError,
    TapRunnerError,
)
from .models import Location
from .query import CompiledFilter, to_filter_value

logger = logging.getLogger(__name__)

_NO_OUTPUT = object()


@dataclass(frozen=True)
class Extraction:
    """Outcome of a location lookup; at most one field is set"""
    location: Optional[Location] = None
    error: Optional[TapRunnerError] = None


def extract(diagnostic_text: str, location_filter: Optional[CompiledFilter]) -> Extraction:
    """
    Extract a Location from a diagnostic payload.

    Errors are returned, not raised, so one bad payload never stops the
    processing of the remaining results.
    """
    if location_filter is None or not diagnostic_text.strip():
        return Extraction()

    try:
        document = yaml.safe_load(diagnostic_text)
    except yaml.YAMLError as e:
        return Extraction(error=StructuredDocumentError(f"Invalid YAML diagnostic: {e}"))

    try:
        value = to_filter_value(document)
        first = location_filter.first(value, default=_NO_OUTPUT)
    except (StructuredDocumentError, FilterEvaluationError) as e:
        return Extraction(error=e)

    if first is _NO_OUTPUT:
        return Extraction()
    if not isinstance(first, str):
        return Extraction(error=LocationFormatError(
            f"Filter produced {type(first).__name__} value {first!r}, expected text"
        ))

    try:
        return Extraction(location=Location.parse(first))
    except LocationFormatError as e:
        return Extraction(error=e)
