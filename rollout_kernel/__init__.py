"""
Rollout Kernel v1.0
Pure, in-memory derived-state computation over a device-upgrade hierarchy:
status roll-up, device count aggregation, hierarchy validation.
"""

from .domain_types import (
    ALLOWED_CHILD_TYPES,
    HIERARCHY_CHAIN,
    DeviceType,
    Node,
    NodeType,
    Status,
    ValidationError,
    create_node,
    next_level,
    update_node,
    validate_node,
)
from .status import calculate_status, get_worst_status
from .devices import (
    DeviceTotals,
    aggregate_device_counts,
    calculate_completion_percentage,
)
from .graph import (
    CycleDetectedError,
    NodeAggregate,
    aggregate_counts,
    aggregate_hierarchy,
    build_children_index,
    rollup_statuses,
)
from .invariants import validate_hierarchy
from .diagnostics import compute_diagnostics
from .filtering import filter_nodes
from .snapshot import (
    SnapshotError,
    SerializationError,
    DeserializationError,
    HierarchySnapshotError,
    encode_nodes,
    decode_nodes,
    restore_nodes,
    export_nodes_to_file,
    import_nodes_from_file,
    snapshot_hash,
)

__all__ = [
    "ALLOWED_CHILD_TYPES",
    "HIERARCHY_CHAIN",
    "DeviceType",
    "Node",
    "NodeType",
    "Status",
    "ValidationError",
    "create_node",
    "next_level",
    "update_node",
    "validate_node",
    "calculate_status",
    "get_worst_status",
    "DeviceTotals",
    "aggregate_device_counts",
    "calculate_completion_percentage",
    "CycleDetectedError",
    "NodeAggregate",
    "aggregate_counts",
    "aggregate_hierarchy",
    "build_children_index",
    "rollup_statuses",
    "validate_hierarchy",
    "compute_diagnostics",
    "filter_nodes",
    "SnapshotError",
    "SerializationError",
    "DeserializationError",
    "HierarchySnapshotError",
    "encode_nodes",
    "decode_nodes",
    "restore_nodes",
    "export_nodes_to_file",
    "import_nodes_from_file",
    "snapshot_hash",
]
