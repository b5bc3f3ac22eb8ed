"""
Rollout Kernel — Core Domain Types v1.0

Pure data plus construction-boundary validation. No roll-up logic.

────────────────────────────────────────────────
DOMAIN GLOSSARY
────────────────────────────────────────────────

RAGB:
    Red / Amber / Green / Blue status model. Red is worst, blue is best.

Cohort:
    Leaf grouping of devices of one type undergoing upgrade. The only
    node type that carries device counts.

Roll-up:
    A parent's status or counts derived from its descendants rather than
    stored on the parent.

────────────────────────────────────────────────
"""

from __future__ import annotations

import dataclasses
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse


class ValidationError(Exception):
    """Raised when a node or node set violates a data-model rule."""

    def __init__(self, rule: str, detail: str) -> None:
        self.rule = rule
        self.detail = detail
        super().__init__(f"[INVALID:{rule}] {detail}")


# ── Enumerations ──────────────────────────────────────────────

class NodeType(str, Enum):
    ORGANISATION = "organisation"
    DIRECTORATE = "directorate"
    DEPARTMENT = "department"
    SUBDEPARTMENT = "subdepartment"
    COHORT = "cohort"


class Status(str, Enum):
    """red: blocked / unknown, amber: in progress, green: planned, blue: done."""

    RED = "red"
    AMBER = "amber"
    GREEN = "green"
    BLUE = "blue"


class DeviceType(str, Enum):
    LAPTOP = "laptop"
    SHARED_DESKTOP = "sharedDesktop"
    KIOSK = "kiosk"
    DISPLAY_UNIT = "displayUnit"


# Fixed level chain, root first.
HIERARCHY_CHAIN: List[NodeType] = [
    NodeType.ORGANISATION,
    NodeType.DIRECTORATE,
    NodeType.DEPARTMENT,
    NodeType.SUBDEPARTMENT,
    NodeType.COHORT,
]

# Relaxed matrix: the next level down, or a cohort at any non-cohort level.
ALLOWED_CHILD_TYPES: Dict[NodeType, frozenset] = {
    NodeType.ORGANISATION: frozenset({NodeType.DIRECTORATE, NodeType.COHORT}),
    NodeType.DIRECTORATE: frozenset({NodeType.DEPARTMENT, NodeType.COHORT}),
    NodeType.DEPARTMENT: frozenset({NodeType.SUBDEPARTMENT, NodeType.COHORT}),
    NodeType.SUBDEPARTMENT: frozenset({NodeType.COHORT}),
    NodeType.COHORT: frozenset(),
}


def next_level(node_type: NodeType) -> Optional[NodeType]:
    """Immediate child level in the chain, None below cohort."""
    idx = HIERARCHY_CHAIN.index(node_type)
    if idx + 1 < len(HIERARCHY_CHAIN):
        return HIERARCHY_CHAIN[idx + 1]
    return None


def _coerce_enum(enum_cls, value: Any, rule: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(
            rule, f"{value!r} is not one of: {allowed}"
        ) from None


def parse_node_type(value: Any) -> NodeType:
    return _coerce_enum(NodeType, value, "node_type")


def parse_status(value: Any) -> Status:
    return _coerce_enum(Status, value, "status")


def parse_device_type(value: Any) -> DeviceType:
    return _coerce_enum(DeviceType, value, "device_type")


# ── Node ──────────────────────────────────────────────────────

@dataclass
class Node:
    """A single hierarchy node. The only entity in the model."""

    id: str
    type: NodeType
    name: str
    parent_id: Optional[str] = None
    status: Status = Status.RED
    contact: Optional[str] = None
    additional_contacts: List[str] = field(default_factory=list)
    contact_email: Optional[str] = None
    headcount: Optional[int] = None  # org-chart reference, not devices
    device_type: Optional[DeviceType] = None
    device_count: Optional[int] = None
    completed_count: Optional[int] = None
    location: Optional[str] = None
    confluence_url: Optional[str] = None
    jira_url: Optional[str] = None
    notes: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    @property
    def is_cohort(self) -> bool:
        return self.type is NodeType.COHORT

    def to_dict(self) -> dict:
        """Wire shape (camelCase keys), suitable for bulk insertion."""
        return {
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
            "parentId": self.parent_id,
            "status": self.status.value,
            "contact": self.contact,
            "additionalContacts": list(self.additional_contacts),
            "contactEmail": self.contact_email,
            "headcount": self.headcount,
            "deviceType": self.device_type.value if self.device_type else None,
            "deviceCount": self.device_count,
            "completedCount": self.completed_count,
            "location": self.location,
            "confluenceUrl": self.confluence_url,
            "jiraUrl": self.jira_url,
            "notes": self.notes,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        """
        Parse the wire shape. Enum strings are checked strictly;
        field-level rules are left to validate_node.
        """
        for key in ("id", "type", "name"):
            if key not in data:
                raise ValidationError("missing_field", f"Node is missing {key!r}")
        device_type = data.get("deviceType")
        return cls(
            id=str(data["id"]),
            type=parse_node_type(data["type"]),
            name=data["name"],
            parent_id=data.get("parentId"),
            status=parse_status(data["status"]) if "status" in data else Status.RED,
            contact=data.get("contact"),
            additional_contacts=list(data.get("additionalContacts") or []),
            contact_email=data.get("contactEmail"),
            headcount=data.get("headcount"),
            device_type=parse_device_type(device_type) if device_type is not None else None,
            device_count=data.get("deviceCount"),
            completed_count=data.get("completedCount"),
            location=data.get("location"),
            confluence_url=data.get("confluenceUrl"),
            jira_url=data.get("jiraUrl"),
            notes=data.get("notes"),
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )


# ── Field Validation ──────────────────────────────────────────

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _check_non_negative(node: Node, attr: str) -> None:
    value = getattr(node, attr)
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            "integer_field", f"Node {node.name!r}: {attr}={value!r} is not an integer"
        )
    if value < 0:
        raise ValidationError(
            "non_negative", f"Node {node.name!r}: {attr}={value} is negative"
        )


def _check_url(node: Node, attr: str) -> None:
    value = getattr(node, attr)
    if value is None:
        return
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(
            "url", f"Node {node.name!r}: {attr}={value!r} is not an http(s) URL"
        )


def validate_node(node: Node) -> None:
    """Check a single node's field rules. Hard fail."""
    if not isinstance(node.name, str) or not node.name.strip():
        raise ValidationError("name", f"Node {node.id!r} has an empty name")
    for attr in ("headcount", "device_count", "completed_count"):
        _check_non_negative(node, attr)
    if (
        node.device_count is not None
        and node.completed_count is not None
        and node.completed_count > node.device_count
    ):
        raise ValidationError(
            "completed_exceeds_devices",
            f"Node {node.name!r}: completedCount={node.completed_count} "
            f"exceeds deviceCount={node.device_count}",
        )
    if node.contact_email is not None and not EMAIL_PATTERN.match(node.contact_email):
        raise ValidationError(
            "contact_email",
            f"Node {node.name!r}: {node.contact_email!r} is not an e-mail address",
        )
    _check_url(node, "confluence_url")
    _check_url(node, "jira_url")


# ── Construction / Update Boundary ────────────────────────────

def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def new_node_id() -> str:
    return str(uuid.uuid4())


def create_node(
    type: Any,
    name: str,
    parent_id: Optional[str] = None,
    status: Any = None,
    additional_contacts: Optional[List[str]] = None,
    device_type: Any = None,
    node_id: Optional[str] = None,
    timestamp: Optional[str] = None,
    id_factory: Callable[[], str] = new_node_id,
    **fields: Any,
) -> Node:
    """
    Build and validate a new node.

    Defaults: fresh id, status=red, additional_contacts=[], every other
    optional field None, created_at == updated_at.
    """
    now = timestamp or utc_timestamp()
    node = Node(
        id=node_id or id_factory(),
        type=parse_node_type(type),
        name=name,
        parent_id=parent_id,
        status=parse_status(status) if status is not None else Status.RED,
        additional_contacts=list(additional_contacts or []),
        device_type=parse_device_type(device_type) if device_type is not None else None,
        created_at=now,
        updated_at=now,
        **fields,
    )
    validate_node(node)
    return node


_IMMUTABLE_FIELDS = frozenset({"id", "type", "parent_id", "created_at"})


def update_node(node: Node, timestamp: Optional[str] = None, **changes: Any) -> Node:
    """
    Return a copy of ``node`` with field-level changes applied and
    validated. ``type`` and ``parent_id`` are fixed at creation.
    """
    blocked = sorted(_IMMUTABLE_FIELDS.intersection(changes))
    if blocked:
        raise ValidationError(
            "immutable_field", f"Cannot update {', '.join(blocked)} on {node.name!r}"
        )
    if "status" in changes:
        changes["status"] = parse_status(changes["status"])
    if changes.get("device_type") is not None:
        changes["device_type"] = parse_device_type(changes["device_type"])
    updated = dataclasses.replace(node, updated_at=timestamp or utc_timestamp(), **changes)
    validate_node(updated)
    return updated
