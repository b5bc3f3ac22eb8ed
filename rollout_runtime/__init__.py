# file: rollout_runtime/__init__.py
"""
Rollout Runtime — Persistence Layer v1

sqlite3 node storage around the Rollout Kernel, plus the async store
adapter the seed reconciler consumes.
"""

from .node_repository import NodeRepository
from .store import RepositoryNodeStore

__all__ = [
    "NodeRepository",
    "RepositoryNodeStore",
]
