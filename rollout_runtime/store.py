"""
Async adapter exposing a NodeRepository as the reconciler's NodeStore.

Each call runs on a worker thread via asyncio.to_thread; calls are awaited
one at a time by the reconciler, so the sqlite connection is never shared
concurrently.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from rollout_kernel.domain_types import Node, NodeType

from .node_repository import NodeRepository


class RepositoryNodeStore:
    """NodeStore over a synchronous NodeRepository."""

    def __init__(self, repository: NodeRepository) -> None:
        self._repository = repository

    async def find_by_parent_and_name(self, parent_id: str, name: str) -> Optional[Node]:
        return await asyncio.to_thread(
            self._repository.find_by_parent_and_name, parent_id, name,
        )

    async def find_root_by_type_and_name(self, node_type: NodeType, name: str) -> Optional[Node]:
        return await asyncio.to_thread(
            self._repository.find_root_by_type_and_name, node_type, name,
        )

    async def create(self, fields: Dict[str, Any]) -> Node:
        return await asyncio.to_thread(self._repository.create, fields)
