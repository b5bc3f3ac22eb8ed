"""
Rollout Kernel — Hierarchy Invariant Checks v1.0

Hard-fail validation of a whole node set. Every check raises
ValidationError on the first failure.
"""

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List

from .domain_types import ALLOWED_CHILD_TYPES, Node, NodeType, ValidationError, validate_node
from .graph import find_cycle, find_orphans


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate_hierarchy(nodes: Iterable[Node]) -> None:
    """Run every node-set check. Raises ValidationError on the first failure."""
    nodes = list(nodes)
    for node in nodes:
        validate_node(node)
    _check_duplicate_ids(nodes)
    _check_single_root(nodes)
    _check_no_orphans(nodes)
    _check_no_cycles(nodes)
    _check_child_types(nodes)


def is_allowed_child(parent_type: NodeType, child_type: NodeType) -> bool:
    return child_type in ALLOWED_CHILD_TYPES[parent_type]


# ---------------------------------------------------------------------------
# Individual checks (private)
# ---------------------------------------------------------------------------

def _check_duplicate_ids(nodes: List[Node]) -> None:
    dupes = sorted(nid for nid, n in Counter(n.id for n in nodes).items() if n > 1)
    if dupes:
        raise ValidationError("duplicate_ids", f"Duplicate node ids: {', '.join(dupes)}")


def _check_single_root(nodes: List[Node]) -> None:
    """Exactly one parentless node, and it is the organisation."""
    roots = [n for n in nodes if n.parent_id is None]
    if len(roots) != 1:
        raise ValidationError(
            "single_root", f"Expected exactly one root node, found {len(roots)}"
        )
    if roots[0].type is not NodeType.ORGANISATION:
        raise ValidationError(
            "single_root",
            f"Root node {roots[0].name!r} has type {roots[0].type.value!r}, "
            f"expected 'organisation'",
        )
    others = [n for n in nodes if n.type is NodeType.ORGANISATION and n.parent_id is not None]
    if others:
        raise ValidationError(
            "single_root", f"Organisation node {others[0].name!r} has a parent"
        )


def _check_no_orphans(nodes: List[Node]) -> None:
    orphans = find_orphans(nodes)
    if orphans:
        raise ValidationError(
            "orphan",
            f"Node {orphans[0].name!r} references missing parent {orphans[0].parent_id!r}",
        )


def _check_no_cycles(nodes: List[Node]) -> None:
    cycle = find_cycle(nodes)
    if cycle:
        raise ValidationError("acyclic", f"Parent cycle: {' -> '.join(cycle)}")


def _check_child_types(nodes: List[Node]) -> None:
    """Child type must be allowed under the parent; cohorts have no children."""
    by_id: Dict[str, Node] = {n.id: n for n in nodes}
    for node in nodes:
        if node.parent_id is None:
            continue
        parent = by_id[node.parent_id]
        if parent.is_cohort:
            raise ValidationError(
                "cohort_children", f"Cohort {parent.name!r} has child {node.name!r}"
            )
        if not is_allowed_child(parent.type, node.type):
            raise ValidationError(
                "child_type",
                f"{node.type.value} {node.name!r} cannot sit under "
                f"{parent.type.value} {parent.name!r}",
            )
