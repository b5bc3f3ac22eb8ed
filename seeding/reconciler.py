"""
Import Reconciler — idempotent, top-down upsert of a seed description.

import_seed_data(store, seed) -> ImportResult

Walks the seed tree itself (not via the flattener) so each existence
check is interleaved with creation:
  1. root: look up an organisation by name; reuse it or create it
  2. every child: look up by (parent id, name); reuse it or create it
  3. recurse with the found or created id as the next parent

Children of one parent are processed strictly one after another. Existence
is always queried from the store, never assumed from local state, so a
re-run after a partial failure picks up where the last one stopped.

Failure policy:
  - root lookup/creation failure  -> success=False, return immediately
  - child lookup/creation failure -> error recorded, subtree skipped,
                                     siblings continue, success untouched
  - anything unexpected           -> success=False, "Import failed: ..."
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

from rollout_kernel.domain_types import NodeType, ValidationError

from .seed_spec import SeedNode, parse_seed_description

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised by a storage collaborator that rejects a read or write."""


class NodeRef(Protocol):
    id: str


class NodeStore(Protocol):
    """Storage collaborator consumed by the reconciler."""

    async def find_by_parent_and_name(self, parent_id: str, name: str) -> Optional[NodeRef]:
        ...

    async def find_root_by_type_and_name(self, node_type: NodeType, name: str) -> Optional[NodeRef]:
        ...

    async def create(self, fields: Dict[str, Any]) -> NodeRef:
        ...


@dataclass
class ImportResult:
    success: bool = True
    nodes_created: int = 0
    nodes_skipped: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "nodesCreated": self.nodes_created,
            "nodesSkipped": self.nodes_skipped,
            "errors": list(self.errors),
        }


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def import_seed_data(
    store: NodeStore,
    seed: Union[Dict[str, Any], SeedNode],
) -> ImportResult:
    """
    Create every seed node missing from ``store``; skip the ones present.

    Per-child errors do not flip ``success``; only root failure or an
    unexpected exception does.
    """
    result = ImportResult()
    try:
        root = seed if isinstance(seed, SeedNode) else parse_seed_description(seed)

        try:
            existing = await store.find_root_by_type_and_name(NodeType.ORGANISATION, root.name)
            if existing is not None:
                root_id = existing.id
                result.nodes_skipped += 1
                logger.debug("Skipped existing organisation %r (%s)", root.name, root_id)
            else:
                created = await store.create({**root.node_fields(), "parent_id": None})
                root_id = created.id
                result.nodes_created += 1
                logger.debug("Created organisation %r (%s)", root.name, root_id)
        except (StoreError, ValidationError) as exc:
            logger.error("Failed to create organisation %r: %s", root.name, exc)
            result.success = False
            result.errors.append(f"Failed to create organisation {root.name!r}: {exc}")
            return result

        await _process_children(store, root.children, root_id, result)
    except Exception as exc:
        logger.exception("Seed import aborted")
        result.success = False
        result.errors.append(f"Import failed: {exc}")

    logger.info(
        "Seed import finished: created=%d skipped=%d errors=%d",
        result.nodes_created, result.nodes_skipped, len(result.errors),
    )
    return result


# ---------------------------------------------------------------------------
# Recursive descent
# ---------------------------------------------------------------------------

async def _process_children(
    store: NodeStore,
    children: Sequence[SeedNode],
    parent_id: str,
    result: ImportResult,
) -> None:
    for child in children:
        try:
            existing = await store.find_by_parent_and_name(parent_id, child.name)
            if existing is not None:
                child_id = existing.id
                result.nodes_skipped += 1
                logger.debug("Skipped existing %s %r (%s)", child.type.value, child.name, child_id)
            else:
                created = await store.create({**child.node_fields(), "parent_id": parent_id})
                child_id = created.id
                result.nodes_created += 1
                logger.debug("Created %s %r (%s)", child.type.value, child.name, child_id)
        except (StoreError, ValidationError) as exc:
            logger.warning("Failed to create %r under %s: %s", child.name, parent_id, exc)
            result.errors.append(f"Failed to create {child.name!r}: {exc}")
            continue

        await _process_children(store, child.children, child_id, result)
