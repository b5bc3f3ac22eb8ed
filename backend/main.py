"""
FastAPI Backend — Rollout Tracker API v1.

Read-mostly: every request loads the full node set from the store and
recomputes derived state. No in-memory state between requests.

Endpoints:
  GET  /nodes        — list nodes (optional q / status / type filters)
  GET  /aggregates   — per-node device counts, completion %, roll-up status
  GET  /dashboard    — estate-wide diagnostics
  POST /import       — idempotent seed import into the store
  POST /flatten      — flatten a seed without storing it
"""
from __future__ import annotations

import logging
import os
import sys
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

env_path = os.path.join(os.path.dirname(__file__), ".env")
if os.path.exists(env_path):
    load_dotenv(env_path)

import uvicorn
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

# Add project root to path for kernel imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rollout_kernel.diagnostics import compute_diagnostics
from rollout_kernel.domain_types import ValidationError
from rollout_kernel.filtering import filter_nodes
from rollout_kernel.graph import CycleDetectedError, aggregate_hierarchy
from rollout_runtime.node_repository import NodeRepository
from rollout_runtime.store import RepositoryNodeStore
from seeding.flattener import parse_seed_data
from seeding.reconciler import StoreError, import_seed_data

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DATABASE_PATH = os.environ.get("DATABASE_PATH", "rollout.db")
FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:3000")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
HOST = os.environ.get("HOST", "127.0.0.1")
PORT = int(os.environ.get("PORT", "8000"))

logging.basicConfig(
    level=LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Rollout Tracker API",
    version="1.0.0",
    description="Device-upgrade rollout tracking — derived hierarchy state",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        FRONTEND_URL,
        "http://localhost:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SeedRequest(BaseModel):
    organisation: Dict[str, Any]


# ---------------------------------------------------------------------------
# Core helpers
# ---------------------------------------------------------------------------


def _get_repo() -> NodeRepository:
    if not DATABASE_PATH:
        raise HTTPException(
            status_code=500,
            detail="DATABASE_PATH not configured",
        )
    try:
        return NodeRepository(DATABASE_PATH)
    except StoreError as exc:
        raise HTTPException(status_code=503, detail=str(exc))


def _load_nodes() -> list:
    repo = _get_repo()
    try:
        return repo.list_nodes()
    except StoreError as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    finally:
        repo.close()


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/nodes")
def list_nodes(
    q: str = Query("", description="Case-insensitive name search"),
    status: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
) -> List[dict]:
    nodes = _load_nodes()
    try:
        matched = filter_nodes(nodes, query=q, status=status, node_type=type)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return [n.to_dict() for n in matched]


@app.get("/aggregates")
def get_aggregates() -> Dict[str, dict]:
    nodes = _load_nodes()
    try:
        aggregates = aggregate_hierarchy(nodes)
    except CycleDetectedError as exc:
        logger.error("Aggregation failed: %s", exc)
        raise HTTPException(status_code=409, detail=str(exc))
    return {node_id: agg.to_dict() for node_id, agg in aggregates.items()}


@app.get("/dashboard")
def get_dashboard() -> dict:
    return compute_diagnostics(_load_nodes())


@app.post("/import")
async def import_seed(req: SeedRequest) -> dict:
    repo = _get_repo()
    try:
        result = await import_seed_data(
            RepositoryNodeStore(repo), {"organisation": req.organisation},
        )
    finally:
        repo.close()
    if not result.success:
        logger.warning("Seed import failed: %s", result.errors)
    return result.to_dict()


@app.post("/flatten")
def flatten_seed(req: SeedRequest) -> dict:
    try:
        nodes = parse_seed_data({"organisation": req.organisation})
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return {"nodes": [n.to_dict() for n in nodes]}


@app.get("/health")
def health():
    return {"status": "ok", "version": "1.0.0"}


def run_server(host: Optional[str] = None, port: Optional[int] = None) -> None:
    host = host or HOST
    port = port or PORT
    logger.info("Rollout Tracker API on http://%s:%d (store: %s)", host, port, DATABASE_PATH)
    uvicorn.run(app, host=host, port=port, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    run_server()
