"""
Rollout Kernel — Dashboard Diagnostics v1.0

Whole-estate summary counts for the dashboard.
"""

from __future__ import annotations

from typing import Iterable

from .devices import aggregate_device_counts, calculate_completion_percentage
from .domain_types import NodeType, Status
from .graph import find_orphans


def compute_diagnostics(nodes: Iterable) -> dict:
    """
    Return a diagnostic dict summarising rollout progress.

    Status counts use each node's manual status; device totals come from
    cohorts only.
    """
    nodes = list(nodes)
    cohorts = [n for n in nodes if n.is_cohort]
    totals = aggregate_device_counts(cohorts)

    status_counts = {s.value: 0 for s in Status}
    type_counts = {t.value: 0 for t in NodeType}
    for node in nodes:
        status_counts[node.status.value] += 1
        type_counts[node.type.value] += 1

    warnings: list[str] = []

    orphans = sorted(n.name for n in find_orphans(nodes))
    if orphans:
        warnings.append(f"{len(orphans)} orphaned node(s): {', '.join(orphans)}")

    uncounted = sorted(n.name for n in cohorts if n.device_count is None)
    if uncounted:
        warnings.append(
            f"{len(uncounted)} cohort(s) without a device count: {', '.join(uncounted)}"
        )

    over = sorted(
        n.name for n in cohorts
        if n.device_count is not None
        and n.completed_count is not None
        and n.completed_count > n.device_count
    )
    if over:
        warnings.append(
            f"{len(over)} cohort(s) report more completed than total devices: "
            f"{', '.join(over)}"
        )

    return {
        "node_count": len(nodes),
        "status_counts": status_counts,
        "type_counts": type_counts,
        "total_cohorts": len(cohorts),
        "total_devices": totals.total_devices,
        "completed_devices": totals.total_completed,
        "completion_percent": calculate_completion_percentage(
            totals.total_completed, totals.total_devices,
        ),
        "warnings": warnings,
    }
