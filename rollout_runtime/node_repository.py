# file: rollout_runtime/node_repository.py
"""
Node Repository — sqlite3-backed node store.

Rows come back as fully-typed Node instances, in insertion order, so a
seed import reads back parents-first.

Creation enforces the construction-boundary rules:
  - field rules (validate_node)
  - parent must exist and allow the child's type
  - only one organisation root

Deletion cascades through the parent_id foreign key, so no orphans
survive a delete. sqlite failures surface as StoreError.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional

from rollout_kernel.domain_types import (
    Node,
    NodeType,
    ValidationError,
    create_node,
    parse_node_type,
    update_node,
)
from rollout_kernel.invariants import is_allowed_child
from seeding.reconciler import StoreError

logger = logging.getLogger(__name__)

_SCHEMA_PATH = Path(__file__).parent / "schema.sql"

_COLUMNS = (
    "id", "type", "name", "parent_id", "status", "contact",
    "additional_contacts", "contact_email", "headcount", "device_type",
    "device_count", "completed_count", "location", "confluence_url",
    "jira_url", "notes", "created_at", "updated_at",
)
_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM nodes"


def _row_to_node(row: tuple) -> Node:
    data = dict(zip(_COLUMNS, row))
    return Node.from_dict({
        "id": data["id"],
        "type": data["type"],
        "name": data["name"],
        "parentId": data["parent_id"],
        "status": data["status"],
        "contact": data["contact"],
        "additionalContacts": json.loads(data["additional_contacts"]),
        "contactEmail": data["contact_email"],
        "headcount": data["headcount"],
        "deviceType": data["device_type"],
        "deviceCount": data["device_count"],
        "completedCount": data["completed_count"],
        "location": data["location"],
        "confluenceUrl": data["confluence_url"],
        "jiraUrl": data["jira_url"],
        "notes": data["notes"],
        "createdAt": data["created_at"],
        "updatedAt": data["updated_at"],
    })


def _node_to_row(node: Node) -> tuple:
    return (
        node.id,
        node.type.value,
        node.name,
        node.parent_id,
        node.status.value,
        node.contact,
        json.dumps(node.additional_contacts, ensure_ascii=False),
        node.contact_email,
        node.headcount,
        node.device_type.value if node.device_type else None,
        node.device_count,
        node.completed_count,
        node.location,
        node.confluence_url,
        node.jira_url,
        node.notes,
        node.created_at,
        node.updated_at,
    )


class NodeRepository:
    """
    Node store backed by sqlite3.

    Single-writer assumed. The connection may be used from a worker
    thread (see RepositoryNodeStore), one call at a time.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = str(db_path)
        try:
            self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._ensure_schema()
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot open node store {self._db_path!r}: {exc}") from exc

    def _ensure_schema(self) -> None:
        schema_sql = _SCHEMA_PATH.read_text(encoding="utf-8")
        self._conn.executescript(schema_sql)
        logger.debug("Node schema ready at %s", self._db_path)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def create(self, fields: Dict[str, Any]) -> Node:
        """
        Validate and insert a new node built from ``fields`` (create_node
        keyword arguments). Returns the stored node with its new id.
        """
        node = create_node(**fields)
        self._check_placement(node)
        try:
            with self._conn:
                self._conn.execute(
                    f"INSERT INTO nodes ({', '.join(_COLUMNS)}) "
                    f"VALUES ({', '.join('?' for _ in _COLUMNS)})",
                    _node_to_row(node),
                )
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to insert {node.name!r}: {exc}") from exc
        return node

    def update(self, node_id: str, **changes: Any) -> Node:
        """Apply field-level changes. type and parent_id are immutable."""
        current = self.get(node_id)
        if current is None:
            raise StoreError(f"Node {node_id!r} not found")
        updated = update_node(current, **changes)
        row = _node_to_row(updated)
        assignments = ", ".join(f"{col} = ?" for col in _COLUMNS[1:])
        try:
            with self._conn:
                self._conn.execute(
                    f"UPDATE nodes SET {assignments} WHERE id = ?",
                    row[1:] + (node_id,),
                )
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to update {node_id!r}: {exc}") from exc
        return updated

    def delete(self, node_id: str) -> int:
        """Delete a node and its whole subtree. Returns rows removed."""
        try:
            with self._conn:
                before = self.count()
                self._conn.execute("DELETE FROM nodes WHERE id = ?", (node_id,))
                return before - self.count()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to delete {node_id!r}: {exc}") from exc

    def clear(self) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM nodes")

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, node_id: str) -> Optional[Node]:
        return self._fetch_one(f"{_SELECT} WHERE id = ?", (node_id,))

    def list_nodes(self) -> List[Node]:
        """Every node, in insertion order."""
        try:
            cursor = self._conn.execute(f"{_SELECT} ORDER BY rowid")
            return [_row_to_node(row) for row in cursor]
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to list nodes: {exc}") from exc

    def count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM nodes").fetchone()[0]

    def find_by_parent_and_name(self, parent_id: str, name: str) -> Optional[Node]:
        """Direct child of ``parent_id`` called ``name``."""
        return self._fetch_one(
            f"{_SELECT} WHERE parent_id = ? AND name = ?", (parent_id, name),
        )

    def find_root_by_type_and_name(self, node_type: Any, name: str) -> Optional[Node]:
        """Parentless node of ``node_type`` called ``name``."""
        return self._fetch_one(
            f"{_SELECT} WHERE parent_id IS NULL AND type = ? AND name = ?",
            (parse_node_type(node_type).value, name),
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _fetch_one(self, sql: str, params: tuple) -> Optional[Node]:
        try:
            row = self._conn.execute(sql, params).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Node lookup failed: {exc}") from exc
        return _row_to_node(row) if row else None

    def _check_placement(self, node: Node) -> None:
        """Parent exists and accepts this type; one organisation only."""
        if node.parent_id is None:
            if node.type is not NodeType.ORGANISATION:
                raise ValidationError(
                    "single_root", f"{node.type.value} {node.name!r} needs a parent"
                )
            existing = self._fetch_one(f"{_SELECT} WHERE parent_id IS NULL", ())
            if existing is not None:
                raise ValidationError(
                    "single_root",
                    f"Organisation {existing.name!r} already exists; "
                    f"cannot add {node.name!r}",
                )
            return

        parent = self.get(node.parent_id)
        if parent is None:
            raise ValidationError(
                "orphan", f"Parent {node.parent_id!r} of {node.name!r} does not exist"
            )
        if not is_allowed_child(parent.type, node.type):
            raise ValidationError(
                "child_type",
                f"{node.type.value} {node.name!r} cannot sit under "
                f"{parent.type.value} {parent.name!r}",
            )

    def close(self) -> None:
        self._conn.close()
