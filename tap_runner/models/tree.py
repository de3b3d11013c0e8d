"""
Result document - Nodes produced by the TAP grammar.

A document is an ordered list of ResultNode. Each node is one of:
- LeafOutcome: a single `ok` / `not ok` line (plus its YAML block)
- Group: a subtest, its children and the trailing summary line
- Other: any statement that carries no outcome (comment, pragma, bail out)
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union


class AnnotationKind(Enum):
    """Directive attached to a test line"""
    SKIP = "skip"
    TODO = "todo"


@dataclass(frozen=True)
class Annotation:
    """SKIP or TODO directive with its optional reason"""
    kind: AnnotationKind
    reason: Optional[str] = None


@dataclass
class LeafOutcome:
    """One test line of the protocol"""
    passed: bool
    explicit_number: Optional[int] = None
    description: Optional[str] = None
    annotation: Optional[Annotation] = None
    diagnostic_text: str = ""


@dataclass
class Group:
    """Subtest block followed by the line summarizing it"""
    children: List["ResultNode"]
    summary: LeafOutcome
    name: Optional[str] = None


@dataclass
class Other:
    """Statement without an outcome"""
    kind: str
    text: str = ""


ResultNode = Union[LeafOutcome, Group, Other]
