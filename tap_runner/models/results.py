"""
Flattened results and the records the dashboard displays.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..errors import LocationFormatError
from .tree import Annotation


class Status(Enum):
    """Outcome of a classified result"""
    SUCCESS = "success"
    FAIL = "fail"
    SKIP = "skip"


@dataclass(frozen=True)
class Location:
    """Source reference extracted from a diagnostic payload"""
    file: str
    line: int

    @classmethod
    def parse(cls, text: str) -> "Location":
        """
        Parse a 'path:line' pair.

        The last ':' separates the line so that paths containing colons
        (drive letters) still parse.

        Raises:
            LocationFormatError: no separator, or the line is not a number
        """
        file, sep, line = text.rpartition(":")
        if not sep:
            raise LocationFormatError(f"Missing ':' in location '{text}'")
        line = line.strip()
        if not re.fullmatch(r"[0-9]+", line):
            raise LocationFormatError(f"Invalid line number '{line}' in location '{text}'")
        return cls(file=file, line=int(line))

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


@dataclass
class FlatResult:
    """A leaf outcome numbered and tagged with its ancestors"""
    passed: bool
    ordinal: int
    description: Optional[str] = None
    annotation: Optional[Annotation] = None
    diagnostic_text: str = ""
    location: Optional[Location] = None
    lineage: List[int] = field(default_factory=list)

    @property
    def identifier(self) -> str:
        """Dot-joined lineage followed by the ordinal, e.g. '0.2.1'"""
        return ".".join(str(n) for n in [*self.lineage, self.ordinal])


@dataclass(frozen=True)
class SkipRecord:
    """Entry of the skipped list"""
    identifier: str
    description: Optional[str]
    reason: Optional[str]


@dataclass(frozen=True)
class FailureRecord:
    """Entry of the failure list"""
    identifier: str
    description: Optional[str]
    diagnostic_text: str
    location: Optional[Location] = None
