"""
Seed handling: flatten nested seed descriptions into node lists and
reconcile them idempotently against a node store.
"""

from .seed_spec import SeedNode, parse_seed_description, resolve_child_type
from .id_factory import DeterministicIdFactory, random_id
from .flattener import flatten_hierarchy, parse_seed_data
from .reconciler import ImportResult, NodeStore, StoreError, import_seed_data
from .exporter import export_flattened_seed

__all__ = [
    "SeedNode",
    "parse_seed_description",
    "resolve_child_type",
    "DeterministicIdFactory",
    "random_id",
    "flatten_hierarchy",
    "parse_seed_data",
    "ImportResult",
    "NodeStore",
    "StoreError",
    "import_seed_data",
    "export_flattened_seed",
]
