"""
Rollout Kernel — Hierarchy Walker, Invariants and Diagnostics Tests

Covers:
  - children index order
  - count aggregation through mixed-depth cohorts
  - bottom-up status roll-up (not just immediate raw statuses)
  - cycle detection on every walker entry point
  - validate_hierarchy rules
  - node construction / update boundary
  - dashboard diagnostics and name/status/type filtering

Run:  py -3 -m rollout_kernel.test_hierarchy
"""

from __future__ import annotations

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rollout_kernel.devices import DeviceTotals
from rollout_kernel.diagnostics import compute_diagnostics
from rollout_kernel.domain_types import (
    Node,
    NodeType,
    Status,
    ValidationError,
    create_node,
    update_node,
)
from rollout_kernel.filtering import filter_nodes
from rollout_kernel.graph import (
    CycleDetectedError,
    aggregate_counts,
    aggregate_hierarchy,
    build_children_index,
    find_cycle,
    rollup_statuses,
)
from rollout_kernel.invariants import validate_hierarchy

_TS = "2026-01-01T00:00:00Z"


def _node(node_id, node_type, parent=None, status="red", devices=None, completed=None, name=None):
    return create_node(
        type=node_type,
        name=name or node_id.upper(),
        parent_id=parent,
        status=status,
        device_count=devices,
        completed_count=completed,
        node_id=node_id,
        timestamp=_TS,
    )


def _estate():
    """
    org
    ├── ops (directorate, amber)
    │   ├── c1 (cohort 10/4, green)
    │   ├── c2 (cohort 5/5, blue)
    │   └── eng (department, green)
    │       └── sub (subdepartment)
    │           └── c3 (cohort 20/10, blue)
    └── fin (directorate, blue, no children)
    """
    return [
        _node("org", "organisation"),
        _node("ops", "directorate", "org", status="amber"),
        _node("fin", "directorate", "org", status="blue"),
        _node("c1", "cohort", "ops", status="green", devices=10, completed=4),
        _node("c2", "cohort", "ops", status="blue", devices=5, completed=5),
        _node("eng", "department", "ops", status="green"),
        _node("sub", "subdepartment", "eng", status="red"),
        _node("c3", "cohort", "sub", status="blue", devices=20, completed=10),
    ]


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------

def test_children_index_keeps_input_order():
    index = build_children_index(_estate())
    assert [n.id for n in index[None]] == ["org"]
    assert [n.id for n in index["org"]] == ["ops", "fin"]
    assert [n.id for n in index["ops"]] == ["c1", "c2", "eng"]
    assert "c1" not in index


# ---------------------------------------------------------------------------
# Counts
# ---------------------------------------------------------------------------

def test_counts_roll_up_through_levels():
    counts = aggregate_counts(_estate())
    assert counts["c1"] == DeviceTotals(10, 4)
    assert counts["sub"] == DeviceTotals(20, 10)
    assert counts["eng"] == DeviceTotals(20, 10)
    assert counts["ops"] == DeviceTotals(35, 19)
    assert counts["fin"] == DeviceTotals(0, 0)
    assert counts["org"] == DeviceTotals(35, 19)
    assert len(counts) == 8


def test_counts_use_precomputed_index():
    nodes = _estate()
    index = build_children_index(nodes)
    assert aggregate_counts(nodes, index) == aggregate_counts(nodes)


def test_counts_cohort_without_values():
    nodes = [
        _node("org", "organisation"),
        _node("c", "cohort", "org"),
    ]
    assert aggregate_counts(nodes)["org"] == DeviceTotals(0, 0)


def test_counts_independent_of_input_order():
    nodes = _estate()
    assert aggregate_counts(list(reversed(nodes))) == aggregate_counts(nodes)


# ---------------------------------------------------------------------------
# Status roll-up
# ---------------------------------------------------------------------------

def test_rollup_is_bottom_up():
    statuses = rollup_statuses(_estate())
    # sub has only a blue cohort -> blue, even though its manual status is red
    assert statuses["sub"] is Status.BLUE
    assert statuses["eng"] is Status.BLUE
    # ops children: green, blue, blue(effective) -> green
    assert statuses["ops"] is Status.GREEN
    # leaf non-cohort falls back to its manual status
    assert statuses["fin"] is Status.BLUE
    assert statuses["org"] is Status.GREEN
    assert statuses["c1"] is Status.GREEN


def test_rollup_red_cohort_propagates_to_root():
    nodes = _estate()
    nodes[7] = _node("c3", "cohort", "sub", status="red", devices=20, completed=10)
    statuses = rollup_statuses(nodes)
    assert statuses["sub"] is Status.RED
    assert statuses["ops"] is Status.RED
    assert statuses["org"] is Status.RED


def test_aggregate_hierarchy_combines_views():
    aggregates = aggregate_hierarchy(_estate())
    ops = aggregates["ops"]
    assert ops.totals == DeviceTotals(35, 19)
    assert ops.rollup_status is Status.GREEN
    assert ops.manual_status is Status.AMBER
    assert ops.completion_percentage == 54
    assert ops.to_dict() == {
        "deviceCount": 35,
        "completedCount": 19,
        "completionPercentage": 54,
        "rollupStatus": "green",
        "status": "amber",
    }
    assert aggregates["fin"].completion_percentage == 0


# ---------------------------------------------------------------------------
# Cycles
# ---------------------------------------------------------------------------

def _cyclic():
    a = _node("a", "directorate", "b")
    b = _node("b", "department", "a")
    return [_node("org", "organisation"), a, b]


def test_cycle_detected_by_walkers():
    for walker in (aggregate_counts, rollup_statuses, aggregate_hierarchy):
        try:
            walker(_cyclic())
        except CycleDetectedError as exc:
            assert exc.cycle[0] == exc.cycle[-1]
            assert set(exc.cycle) == {"a", "b"}
            continue
        raise AssertionError(f"{walker.__name__} did not detect the cycle")


def test_self_parent_cycle():
    nodes = [_node("x", "directorate", "x")]
    try:
        aggregate_counts(nodes)
    except CycleDetectedError as exc:
        assert exc.cycle == ["x", "x"]
        return
    raise AssertionError("Expected CycleDetectedError")


def test_cycle_through_cohort_detected():
    nodes = [
        _node("org", "organisation"),
        _node("d", "department", "c", status="blue"),
        _node("c", "cohort", "d", devices=5, completed=1),
    ]
    for walker in (aggregate_counts, rollup_statuses, aggregate_hierarchy):
        try:
            walker(nodes)
        except CycleDetectedError as exc:
            assert set(exc.cycle) == {"c", "d"}
            continue
        raise AssertionError(f"{walker.__name__} missed a cycle through a cohort")


def test_find_cycle():
    assert find_cycle(_estate()) is None
    cycle = find_cycle(_cyclic())
    assert cycle is not None and set(cycle) == {"a", "b"}


# ---------------------------------------------------------------------------
# validate_hierarchy
# ---------------------------------------------------------------------------

def _expect_rule(nodes, rule):
    try:
        validate_hierarchy(nodes)
    except ValidationError as exc:
        assert exc.rule == rule, f"expected {rule}, got {exc.rule}: {exc}"
        return
    raise AssertionError(f"Expected ValidationError({rule})")


def test_valid_estate_passes():
    validate_hierarchy(_estate())


def test_two_roots_rejected():
    _expect_rule(_estate() + [_node("org2", "organisation")], "single_root")


def test_non_organisation_root_rejected():
    _expect_rule([_node("d", "directorate")], "single_root")


def test_orphan_rejected():
    _expect_rule(_estate() + [_node("lost", "cohort", "missing")], "orphan")


def test_cycle_rejected():
    _expect_rule(_cyclic(), "acyclic")


def test_child_type_matrix():
    # cohort directly under organisation is allowed
    validate_hierarchy([_node("org", "organisation"), _node("c", "cohort", "org")])
    # skipping a level for a non-cohort is not
    _expect_rule(
        [_node("org", "organisation"), _node("d", "department", "org")],
        "child_type",
    )


def test_cohort_children_rejected():
    _expect_rule(
        [
            _node("org", "organisation"),
            _node("c", "cohort", "org"),
            _node("c2", "cohort", "c"),
        ],
        "cohort_children",
    )


def test_duplicate_ids_rejected():
    _expect_rule(_estate() + [_node("c1", "cohort", "ops")], "duplicate_ids")


# ---------------------------------------------------------------------------
# Construction boundary
# ---------------------------------------------------------------------------

def test_create_node_defaults():
    node = create_node(type="directorate", name="Ops", parent_id="p", timestamp=_TS)
    assert node.status is Status.RED
    assert node.additional_contacts == []
    assert node.contact is None and node.device_count is None
    assert node.created_at == node.updated_at == _TS
    assert len(node.id) == 36


def test_completed_exceeding_devices_rejected():
    try:
        _node("c", "cohort", "p", devices=3, completed=4)
    except ValidationError as exc:
        assert exc.rule == "completed_exceeds_devices"
        return
    raise AssertionError("Expected ValidationError")


def test_bad_enum_and_fields_rejected():
    bad = [
        dict(type="region", name="X"),
        dict(type="cohort", name="X", status="purple"),
        dict(type="cohort", name="X", device_type="phone"),
        dict(type="cohort", name="   "),
        dict(type="cohort", name="X", headcount=-1),
        dict(type="cohort", name="X", contact_email="not-an-email"),
        dict(type="cohort", name="X", jira_url="ftp://example.com/x"),
    ]
    for fields in bad:
        try:
            create_node(**fields)
        except ValidationError:
            continue
        raise AssertionError(f"Accepted invalid fields {fields}")


def test_update_node():
    node = _node("c", "cohort", "p", devices=10, completed=2)
    updated = update_node(node, timestamp="2026-02-01T00:00:00Z", completed_count=10, status="blue")
    assert updated.completed_count == 10
    assert updated.status is Status.BLUE
    assert updated.updated_at == "2026-02-01T00:00:00Z"
    assert updated.created_at == _TS
    assert node.completed_count == 2
    for changes in ({"completed_count": 11}, {"type": "department"}, {"parent_id": "x"}):
        try:
            update_node(node, **changes)
        except ValidationError:
            continue
        raise AssertionError(f"Accepted invalid update {changes}")


def test_node_dict_round_trip():
    node = create_node(
        type="cohort", name="Kiosks", parent_id="p", status="amber",
        device_type="kiosk", device_count=4, completed_count=1,
        additional_contacts=["A", "B"], contact_email="a@b.co", timestamp=_TS,
    )
    data = node.to_dict()
    assert data["deviceType"] == "kiosk"
    assert data["parentId"] == "p"
    assert Node.from_dict(data) == node


# ---------------------------------------------------------------------------
# Diagnostics / filtering
# ---------------------------------------------------------------------------

def test_diagnostics():
    nodes = _estate() + [_node("c4", "cohort", "fin", status="amber")]
    diag = compute_diagnostics(nodes)
    assert diag["node_count"] == 9
    assert diag["status_counts"] == {"red": 2, "amber": 2, "green": 2, "blue": 3}
    assert diag["type_counts"] == {
        "organisation": 1, "directorate": 2, "department": 1,
        "subdepartment": 1, "cohort": 4,
    }
    assert diag["total_cohorts"] == 4
    assert diag["total_devices"] == 35
    assert diag["completed_devices"] == 19
    assert diag["completion_percent"] == 54
    assert len(diag["warnings"]) == 1
    assert "C4" in diag["warnings"][0]


def test_filter_nodes():
    nodes = _estate()
    assert [n.id for n in filter_nodes(nodes, query="c")] == ["c1", "c2", "c3"]
    assert [n.id for n in filter_nodes(nodes, status="blue")] == ["fin", "c2", "c3"]
    assert [n.id for n in filter_nodes(nodes, node_type=NodeType.COHORT, status="blue")] == ["c2", "c3"]
    assert filter_nodes(nodes) == nodes
    try:
        filter_nodes(nodes, status="purple")
    except ValidationError:
        return
    raise AssertionError("Expected ValidationError for unknown status filter")


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

def main() -> None:
    tests = [(name, fn) for name, fn in sorted(globals().items())
             if name.startswith("test_") and callable(fn)]
    failed = 0
    for name, fn in tests:
        try:
            fn()
            print(f"  [PASS] {name}")
        except Exception as exc:
            print(f"  [FAIL] {name}: {exc}")
            failed += 1
    print(f"\n{'='*60}")
    print(f"  {len(tests) - failed} passed, {failed} failed out of {len(tests)}")
    print(f"{'='*60}")
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
