"""
Import a seed JSON file into the sqlite node store, or flatten it to a
bulk-load file.

Usage:
  python import_seed.py seed-data.json [--db rollout.db]
  python import_seed.py seed-data.json --flatten-only nodes.json [--id-seed 42]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from rollout_kernel.domain_types import ValidationError
from rollout_runtime.node_repository import NodeRepository
from rollout_runtime.store import RepositoryNodeStore
from seeding.exporter import export_flattened_seed
from seeding.flattener import parse_seed_data
from seeding.id_factory import DeterministicIdFactory, random_id
from seeding.reconciler import StoreError, import_seed_data


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("seed_file", help="Nested seed description (JSON)")
    parser.add_argument(
        "--db",
        default=os.environ.get("DATABASE_PATH", "rollout.db"),
        help="sqlite database path (default: $DATABASE_PATH or rollout.db)",
    )
    parser.add_argument(
        "--flatten-only",
        metavar="OUT",
        help="Write the flattened node list to OUT instead of importing",
    )
    parser.add_argument(
        "--id-seed",
        type=int,
        help="Seed for reproducible ids when flattening",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "WARNING"),
    )
    return parser


def main(argv: list | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper())

    try:
        with open(args.seed_file, encoding="utf-8") as f:
            seed = json.load(f)
    except OSError as exc:
        print(f"Cannot read seed file: {exc}")
        return 1
    except json.JSONDecodeError as exc:
        print(f"Seed file is not valid JSON: {exc}")
        return 1

    if args.flatten_only:
        id_factory = DeterministicIdFactory(args.id_seed) if args.id_seed is not None else random_id
        try:
            nodes = parse_seed_data(seed, id_factory=id_factory)
        except ValidationError as exc:
            print(f"Invalid seed: {exc}")
            return 1
        export_flattened_seed(nodes, args.flatten_only)
        print(f"Flattened {len(nodes)} nodes -> {args.flatten_only}")
        return 0

    try:
        repo = NodeRepository(args.db)
    except StoreError as exc:
        print(f"Cannot open store: {exc}")
        return 1
    try:
        result = asyncio.run(import_seed_data(RepositoryNodeStore(repo), seed))
    finally:
        repo.close()

    print(f"Import complete: {result.nodes_created} created, {result.nodes_skipped} skipped")
    for error in result.errors:
        print(f"  - {error}")
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
