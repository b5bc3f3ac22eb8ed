"""
Seed Flattener — nested seed description -> flat, parent-referencing nodes.

parse_seed_data(seed) -> List[Node]

Breadth-first: the root, then all its children, then all grandchildren.
A parent is always emitted before its children. Pure transform, no I/O.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Deque, Dict, List, Optional, Tuple, Union

from rollout_kernel.domain_types import Node, create_node, utc_timestamp

from .id_factory import IdFactory, random_id
from .seed_spec import SeedNode, parse_seed_description


def parse_seed_data(
    seed: Union[Dict[str, Any], SeedNode],
    id_factory: IdFactory = random_id,
    timestamp: Optional[str] = None,
) -> List[Node]:
    """
    Flatten a seed description into validated nodes.

    Every node gets a fresh id from ``id_factory``; its parent_id is the id
    just assigned to its seed parent. All nodes share one timestamp,
    captured once per call. status defaults to red and
    additional_contacts to an empty list.
    """
    root = seed if isinstance(seed, SeedNode) else parse_seed_description(seed)
    now = timestamp or utc_timestamp()

    nodes: List[Node] = []
    queue: Deque[Tuple[SeedNode, Optional[str]]] = deque([(root, None)])
    while queue:
        entry, parent_id = queue.popleft()
        node = create_node(
            parent_id=parent_id,
            timestamp=now,
            id_factory=id_factory,
            **entry.node_fields(),
        )
        nodes.append(node)
        for child in entry.children:
            queue.append((child, node.id))
    return nodes


def flatten_hierarchy(
    seed: Union[Dict[str, Any], SeedNode],
    id_factory: IdFactory = random_id,
    timestamp: Optional[str] = None,
) -> List[Node]:
    """Alias of parse_seed_data."""
    return parse_seed_data(seed, id_factory=id_factory, timestamp=timestamp)
