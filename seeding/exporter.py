"""
Flattened Seed Exporter.

Writes a parse_seed_data result plus metadata to a JSON file for bulk
loading. Output format:

{
    "metadata": {"organisation": str, "node_count": int, "generated_at": str},
    "nodes": [node.to_dict(), ...]
}
"""

from __future__ import annotations

import json
from typing import List

from rollout_kernel.domain_types import Node


def export_flattened_seed(nodes: List[Node], path: str) -> None:
    """Write flattened nodes (parents first, as given) with metadata."""
    root = nodes[0] if nodes else None
    doc = {
        "metadata": {
            "organisation": root.name if root else None,
            "node_count": len(nodes),
            "generated_at": root.created_at if root else None,
        },
        "nodes": [n.to_dict() for n in nodes],
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(doc, f, ensure_ascii=False, indent=2)
