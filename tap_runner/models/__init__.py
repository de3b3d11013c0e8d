"""
Shared Models - Data classes used across modules

- tree: nodes of the parsed TAP document (LeafOutcome, Group, Other)
- results: flattened results, locations and dashboard records
"""

from .tree import (
    Annotation,
    AnnotationKind,
    Group,
    LeafOutcome,
    Other,
    ResultNode,
)
from .results import (
    FailureRecord,
    FlatResult,
    Location,
    SkipRecord,
    Status,
)

__all__ = [
    'Annotation',
    'AnnotationKind',
    'Group',
    'LeafOutcome',
    'Other',
    'ResultNode',
    'FailureRecord',
    'FlatResult',
    'Location',
    'SkipRecord',
    'Status',
]
