"""
Rollout Kernel — Hierarchy Aggregation Walker v1.0

Dict-based parent -> children index and bottom-up walks over it.
Every walk is iterative DFS with explicit colour tracking, memoised per
node id, and hard-fails with CycleDetectedError on a parent-link cycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from .devices import (
    DeviceTotals,
    aggregate_device_counts,
    calculate_completion_percentage,
    normalise_count,
)
from .domain_types import Node, Status
from .status import calculate_status

T = TypeVar("T")

ChildrenIndex = Dict[Optional[str], List[Node]]


class CycleDetectedError(Exception):
    """Raised when parent links form a cycle."""

    def __init__(self, cycle: List[str]) -> None:
        self.cycle = cycle
        super().__init__(f"Parent cycle detected: {' -> '.join(cycle)}")


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------

def build_children_index(nodes: Iterable[Node]) -> ChildrenIndex:
    """parent_id -> direct children, in input order. Roots sit under None."""
    index: ChildrenIndex = {}
    for node in nodes:
        index.setdefault(node.parent_id, []).append(node)
    return index


# ---------------------------------------------------------------------------
# Generic bottom-up walk
# ---------------------------------------------------------------------------

def _walk_bottom_up(
    nodes: Sequence[Node],
    index: ChildrenIndex,
    leaf_value: Callable[[Node], T],
    combine: Callable[[Node, List[T]], T],
) -> Dict[str, T]:
    """
    Compute a value for every node, children before parents.

    Cohorts take their leaf value. Non-cohort nodes combine the values of
    their direct children (which may be empty). Children indexed under a
    cohort are still visited so a cycle through a cohort is caught.
    """
    WHITE, GREY, BLACK = 0, 1, 2
    colour: Dict[str, int] = {}
    results: Dict[str, T] = {}

    for start in nodes:
        if colour.get(start.id, WHITE) != WHITE:
            continue
        colour[start.id] = GREY
        stack: List[tuple] = [(start, 0)]

        while stack:
            node, idx = stack[-1]
            children = index.get(node.id, [])
            if idx < len(children):
                stack[-1] = (node, idx + 1)
                child = children[idx]
                state = colour.get(child.id, WHITE)
                if state == GREY:
                    path = [n.id for n, _ in stack]
                    raise CycleDetectedError(path[path.index(child.id):] + [child.id])
                if state == WHITE:
                    colour[child.id] = GREY
                    stack.append((child, 0))
            else:
                if node.is_cohort:
                    results[node.id] = leaf_value(node)
                else:
                    results[node.id] = combine(node, [results[c.id] for c in children])
                colour[node.id] = BLACK
                stack.pop()

    return results


def _resolve_index(nodes: Sequence[Node], index: Optional[ChildrenIndex]) -> ChildrenIndex:
    return index if index is not None else build_children_index(nodes)


# ---------------------------------------------------------------------------
# Device counts
# ---------------------------------------------------------------------------

def _own_counts(node: Node) -> DeviceTotals:
    return DeviceTotals(
        normalise_count(node.device_count),
        normalise_count(node.completed_count),
    )


def aggregate_counts(
    nodes: Iterable[Node],
    index: Optional[ChildrenIndex] = None,
) -> Dict[str, DeviceTotals]:
    """
    node id -> summed device / completed counts.

    A cohort reports its own counts; any other node sums its direct
    children's aggregates.
    """
    nodes = list(nodes)
    return _walk_bottom_up(
        nodes,
        _resolve_index(nodes, index),
        _own_counts,
        lambda _node, child_totals: aggregate_device_counts(child_totals),
    )


# ---------------------------------------------------------------------------
# Status roll-up
# ---------------------------------------------------------------------------

def rollup_statuses(
    nodes: Iterable[Node],
    index: Optional[ChildrenIndex] = None,
) -> Dict[str, Status]:
    """
    node id -> effective status.

    Cohorts report their manual status. Other nodes roll up the effective
    statuses of their direct children, falling back to their own manual
    status when they have no children.
    """
    nodes = list(nodes)
    return _walk_bottom_up(
        nodes,
        _resolve_index(nodes, index),
        lambda node: node.status,
        lambda node, child_statuses: calculate_status(child_statuses, fallback=node.status),
    )


# ---------------------------------------------------------------------------
# Combined query surface
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NodeAggregate:
    """Derived view of one node, recomputed on every call."""

    totals: DeviceTotals
    rollup_status: Status
    manual_status: Status

    @property
    def completion_percentage(self) -> int:
        return calculate_completion_percentage(
            self.totals.total_completed, self.totals.total_devices,
        )

    def to_dict(self) -> dict:
        return {
            "deviceCount": self.totals.total_devices,
            "completedCount": self.totals.total_completed,
            "completionPercentage": self.completion_percentage,
            "rollupStatus": self.rollup_status.value,
            "status": self.manual_status.value,
        }


def aggregate_hierarchy(
    nodes: Iterable[Node],
    index: Optional[ChildrenIndex] = None,
) -> Dict[str, NodeAggregate]:
    """Counts, completion percentage and roll-up status in a single walk."""
    nodes = list(nodes)

    def _leaf(node: Node) -> NodeAggregate:
        return NodeAggregate(_own_counts(node), node.status, node.status)

    def _combine(node: Node, children: List[NodeAggregate]) -> NodeAggregate:
        return NodeAggregate(
            totals=aggregate_device_counts(c.totals for c in children),
            rollup_status=calculate_status(
                [c.rollup_status for c in children], fallback=node.status,
            ),
            manual_status=node.status,
        )

    return _walk_bottom_up(nodes, _resolve_index(nodes, index), _leaf, _combine)


# ---------------------------------------------------------------------------
# Structural checks
# ---------------------------------------------------------------------------

def find_cycle(nodes: Iterable[Node]) -> Optional[List[str]]:
    """
    Follow parent links from every node. Return the first cycle found as
    a list of ids (first id repeated at the end), or None.
    """
    parent_of = {n.id: n.parent_id for n in nodes}
    done: set = set()

    for start in parent_of:
        path: List[str] = []
        position: Dict[str, int] = {}
        current: Optional[str] = start
        while current is not None and current in parent_of and current not in done:
            if current in position:
                return path[position[current]:] + [current]
            position[current] = len(path)
            path.append(current)
            current = parent_of[current]
        done.update(path)

    return None


def find_orphans(nodes: Iterable[Node]) -> List[Node]:
    """Nodes whose parent_id references no node in the set."""
    nodes = list(nodes)
    ids = {n.id for n in nodes}
    return [n for n in nodes if n.parent_id is not None and n.parent_id not in ids]
