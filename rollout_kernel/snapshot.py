# file: rollout_kernel/snapshot.py
"""
Rollout Kernel — Node Snapshot Encoder / Decoder v1.0

Canonical JSON serialization of a node list.

Rules:
  - Node order is preserved (parents-first order survives a round trip).
  - Keys sorted inside each node. No floats.
  - Decode checks field names and enum values; restore additionally runs
    validate_hierarchy.
"""

from __future__ import annotations

import hashlib
import json
import pathlib
from typing import Any, List, Sequence

from .domain_types import Node, ValidationError
from .invariants import validate_hierarchy

_NODE_FIELDS = frozenset({
    "id", "type", "name", "parentId", "status", "contact",
    "additionalContacts", "contactEmail", "headcount", "deviceType",
    "deviceCount", "completedCount", "location", "confluenceUrl",
    "jiraUrl", "notes", "createdAt", "updatedAt",
})
_REQUIRED_FIELDS = frozenset({"id", "type", "name", "parentId", "status"})


# ══════════════════════════════════════════════════════════════
# Exception Hierarchy
# ══════════════════════════════════════════════════════════════

class SnapshotError(Exception):
    """Base exception for all snapshot operations."""


class SerializationError(SnapshotError):
    """Raised when encoding nodes to JSON fails."""


class DeserializationError(SnapshotError):
    """Raised when decoding JSON to nodes fails."""


class HierarchySnapshotError(SnapshotError):
    """Wraps a ValidationError raised during restore."""

    def __init__(self, original: ValidationError) -> None:
        self.original = original
        super().__init__(f"Invalid hierarchy in snapshot: {original}")


# ══════════════════════════════════════════════════════════════
# Encoder
# ══════════════════════════════════════════════════════════════

def encode_nodes(nodes: Sequence[Node]) -> str:
    """Serialize nodes to canonical JSON. Identical input, identical bytes."""
    try:
        return json.dumps(
            {"nodes": [n.to_dict() for n in nodes]},
            ensure_ascii=False,
            separators=(",", ":"),
            sort_keys=True,
        )
    except Exception as exc:
        raise SerializationError(f"Failed to encode nodes: {exc}") from exc


# ══════════════════════════════════════════════════════════════
# Decoder
# ══════════════════════════════════════════════════════════════

def decode_nodes(json_str: str) -> List[Node]:
    """Decode canonical JSON into nodes. Field-level checks only."""
    try:
        raw = json.loads(json_str)
    except json.JSONDecodeError as exc:
        raise DeserializationError(f"Invalid JSON: {exc}") from exc

    if not isinstance(raw, dict) or not isinstance(raw.get("nodes"), list):
        raise DeserializationError("Snapshot must be an object with a 'nodes' array")
    _assert_no_floats(raw, "$")

    nodes: List[Node] = []
    for i, ndata in enumerate(raw["nodes"]):
        if not isinstance(ndata, dict):
            raise DeserializationError(f"Node [{i}] must be a JSON object")
        _check_fields(ndata, f"node [{i}]")
        try:
            nodes.append(Node.from_dict(ndata))
        except ValidationError as exc:
            raise DeserializationError(f"Node [{i}]: {exc}") from exc
    return nodes


def restore_nodes(json_str: str) -> List[Node]:
    """Decode, then validate the whole hierarchy. Hard fail."""
    nodes = decode_nodes(json_str)
    try:
        validate_hierarchy(nodes)
    except ValidationError as exc:
        raise HierarchySnapshotError(exc) from exc
    return nodes


# ══════════════════════════════════════════════════════════════
# File I/O
# ══════════════════════════════════════════════════════════════

def export_nodes_to_file(nodes: Sequence[Node], path: pathlib.Path) -> None:
    """Write canonical JSON. No validation on export. UTF-8 only."""
    pathlib.Path(path).write_text(encode_nodes(nodes), encoding="utf-8")


def import_nodes_from_file(path: pathlib.Path) -> List[Node]:
    """Read and restore a node snapshot. No silent repair."""
    try:
        text = pathlib.Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise DeserializationError(f"Failed to read snapshot file {path}: {exc}") from exc
    return restore_nodes(text)


# ══════════════════════════════════════════════════════════════
# Integrity Hash
# ══════════════════════════════════════════════════════════════

def snapshot_hash(nodes: Sequence[Node]) -> str:
    """SHA-256 of canonical JSON bytes. Lowercase hex."""
    return hashlib.sha256(encode_nodes(nodes).encode("utf-8")).hexdigest()


# ══════════════════════════════════════════════════════════════
# Internal Validation Helpers
# ══════════════════════════════════════════════════════════════

def _check_fields(data: dict, context: str) -> None:
    actual = set(data.keys())
    missing = _REQUIRED_FIELDS - actual
    unknown = actual - _NODE_FIELDS
    if missing:
        raise DeserializationError(f"Missing fields in {context}: {sorted(missing)}")
    if unknown:
        raise DeserializationError(f"Unknown fields in {context}: {sorted(unknown)}")


def _assert_no_floats(obj: Any, path: str) -> None:
    if isinstance(obj, float):
        raise DeserializationError(f"Float detected at {path}: {obj!r}")
    if isinstance(obj, dict):
        for k, v in obj.items():
            _assert_no_floats(v, f"{path}.{k}")
    elif isinstance(obj, list):
        for i, v in enumerate(obj):
            _assert_no_floats(v, f"{path}[{i}]")
