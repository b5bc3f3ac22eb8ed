"""Search / filter over a node list. All criteria optional and AND-combined."""

from __future__ import annotations

from typing import Any, Iterable, List, Optional

from .domain_types import Node, parse_node_type, parse_status


def filter_nodes(
    nodes: Iterable[Node],
    query: str = "",
    status: Optional[Any] = None,
    node_type: Optional[Any] = None,
) -> List[Node]:
    """Case-insensitive name substring, exact status, exact type."""
    needle = query.strip().lower()
    wanted_status = parse_status(status) if status else None
    wanted_type = parse_node_type(node_type) if node_type else None

    result = []
    for node in nodes:
        if needle and needle not in node.name.lower():
            continue
        if wanted_status is not None and node.status is not wanted_status:
            continue
        if wanted_type is not None and node.type is not wanted_type:
            continue
        result.append(node)
    return result
