"""
Flattener - Turns the nested result document into a numbered list

Every leaf gets an ordinal (its explicit TAP number, or its position among
its siblings) and the ordinals of the groups enclosing it. A group emits its
children first, then its own summary at the group's depth.
"""

from typing import Iterable, List, Sequence

from .models import FlatResult, Group, LeafOutcome, ResultNode


def _to_flat(leaf: LeafOutcome, position: int, lineage: Sequence[int]) -> FlatResult:
    ordinal = leaf.explicit_number if leaf.explicit_number is not None else position
    return FlatResult(
        passed=leaf.passed,
        ordinal=ordinal,
        description=leaf.description,
        annotation=leaf.annotation,
        diagnostic_text=leaf.diagnostic_text,
        lineage=list(lineage),
    )


def _walk(nodes: Iterable[ResultNode], lineage: List[int], out: List[FlatResult]) -> None:
    for position, node in enumerate(nodes):
        if isinstance(node, LeafOutcome):
            out.append(_to_flat(node, position, lineage))
        elif isinstance(node, Group):
            _walk(node.children, lineage + [position], out)
            out.append(_to_flat(node.summary, position, lineage))


def flatten(document: Sequence[ResultNode]) -> List[FlatResult]:
    """
    Flatten a result document, depth first, children before group summary.

    Explicit numbers are passed through as-is: duplicates and out-of-order
    numbers are not checked.
    """
    results: List[FlatResult] = []
    _walk(document, [], results)
    return results
