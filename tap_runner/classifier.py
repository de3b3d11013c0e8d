"""
Classifier - Pass / fail / skip policy for flattened results

A failed line is always a failure, whatever its directive. A passing line is
skipped only when it carries SKIP; TODO on a passing line counts as success.
"""

from dataclasses import dataclass
from typing import Optional

from .models import AnnotationKind, FlatResult, Status


@dataclass(frozen=True)
class Classification:
    """Status of one result, plus the skip reason when skipped"""
    status: Status
    reason: Optional[str] = None


def classify(result: FlatResult) -> Classification:
    """Classify a flattened result"""
    if not result.passed:
        return Classification(Status.FAIL)
    if result.annotation is not None and result.annotation.kind == AnnotationKind.SKIP:
        return Classification(Status.SKIP, result.annotation.reason)
    return Classification(Status.SUCCESS)
