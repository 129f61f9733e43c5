"""
Flow REST routes.

All routes are mounted under /api by main.py.  Routes under /flow operate on
the flow held by `flow_state`; /validate, /execute and /generate are
stateless and take the whole document in the request body.

Handlers that run or edit a flow are plain functions: FastAPI calls them in
its threadpool, so a long run never blocks the event loop and `flow_state`
is guarded by its lock across worker threads.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, HTTPException, Query, Response
from pydantic import BaseModel, Field

from ...compiler import CodeMode, generate_code
from ...core.Blocks import Block
from ...core.Executor import Executor
from ...core.GraphPrimitives import Graph
from ...core.Validator import validate
from ...serializers.graph_serializer import (
    SchemaError, deserialize_flow, json_safe, serialize_edge, serialize_flow, serialize_node,
)
from ..state import flow_state
from ..trace.trace_emitter import global_tracer

logger = logging.getLogger(__name__)

router = APIRouter()


class FlowDocument(BaseModel):
    nodes: List[Dict[str, Any]] = Field(default_factory=list)
    edges: List[Dict[str, Any]] = Field(default_factory=list)


class GenerateBody(FlowDocument):
    mode: str = "logic"


class CreateNodeBody(BaseModel):
    type: str
    data: Optional[Dict[str, Any]] = None
    position: Optional[Dict[str, float]] = None


class UpdateNodeBody(BaseModel):
    data: Optional[Dict[str, Any]] = None
    position: Optional[Dict[str, float]] = None


class EdgeBody(BaseModel):
    source: str
    target: str
    sourceHandle: Optional[str] = None
    targetHandle: Optional[str] = None


def _load(doc: FlowDocument) -> Graph:
    try:
        return deserialize_flow(doc.model_dump(include={"nodes", "edges"}))
    except SchemaError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


def _run(graph: Graph) -> Dict[str, Any]:
    """Execute `graph` and replay the run to trace listeners."""
    visits: List[Tuple[str, str]] = []
    result = Executor(graph, on_node_visited=lambda node_id, label: visits.append((node_id, label))).execute()

    start = graph.start_node()
    global_tracer.replay(result, visits, start.id if start is not None else None)
    return json_safe(result.to_dict())


# ── GET /block-types ──────────────────────────────────────────────────────────

@router.get("/block-types")
async def get_block_types() -> List[Dict[str, Any]]:
    return [
        {"type": kind.value, "defaults": json_safe(Block.block_class(kind)().to_data())}
        for kind in Block.registered_kinds()
    ]


# ── GET/PUT /flow ─────────────────────────────────────────────────────────────

@router.get("/flow")
def get_flow() -> Dict[str, Any]:
    with flow_state.lock:
        return json_safe(serialize_flow(flow_state.graph))


@router.put("/flow")
def put_flow(doc: FlowDocument) -> Dict[str, Any]:
    graph = _load(doc)
    flow_state.replace(graph)
    logger.info("Flow replaced: %d nodes, %d edges", len(graph.nodes), len(graph.edges))
    return json_safe(serialize_flow(graph))


@router.post("/flow/reset")
def reset_flow(demo: bool = Query(False, description="Seed the hello-world demo")) -> Dict[str, Any]:
    flow_state.reset(seed_demo=demo)
    with flow_state.lock:
        return json_safe(serialize_flow(flow_state.graph))


# ── Nodes ─────────────────────────────────────────────────────────────────────

@router.post("/flow/nodes", status_code=201)
def create_node(body: CreateNodeBody) -> Dict[str, Any]:
    node = flow_state.create_node(body.type, body.data, body.position)
    return json_safe(serialize_node(node))


@router.patch("/flow/nodes/{node_id}")
def update_node(node_id: str, body: UpdateNodeBody) -> Dict[str, Any]:
    try:
        node = flow_state.update_node(node_id, body.data, body.position)
    except KeyError:
        raise HTTPException(status_code=404, detail="Node not found")
    return json_safe(serialize_node(node))


@router.delete("/flow/nodes/{node_id}", status_code=204)
def delete_node(node_id: str) -> Response:
    try:
        flow_state.delete_node(node_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Node not found")
    return Response(status_code=204)


# ── Edges ─────────────────────────────────────────────────────────────────────

@router.post("/flow/edges", status_code=201)
def create_edge(body: EdgeBody) -> Dict[str, Any]:
    try:
        edge = flow_state.connect(body.source, body.target, body.sourceHandle, body.targetHandle)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Node not found: {exc.args[0]}")
    return serialize_edge(edge)


@router.delete("/flow/edges/{edge_id}", status_code=204)
def delete_edge(edge_id: str) -> Response:
    try:
        flow_state.remove_edge(edge_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Edge not found")
    return Response(status_code=204)


# ── Run / validate / generate the open flow ──────────────────────────────────

@router.get("/flow/validate")
def validate_flow() -> Dict[str, Any]:
    with flow_state.lock:
        errors = validate(flow_state.graph)
    return {"valid": not errors, "errors": errors}


@router.post("/flow/run")
def run_flow() -> Dict[str, Any]:
    with flow_state.lock:
        return _run(flow_state.graph)


@router.get("/flow/code")
def get_flow_code(mode: str = Query("logic")) -> Dict[str, Any]:
    with flow_state.lock:
        code = generate_code(flow_state.graph, mode=mode)
    return {"mode": mode, "code": code}


# ── Stateless endpoints ──────────────────────────────────────────────────────

@router.post("/validate")
def validate_document(doc: FlowDocument) -> Dict[str, Any]:
    errors = validate(_load(doc))
    return {"valid": not errors, "errors": errors}


@router.post("/execute")
def execute_document(doc: FlowDocument) -> Dict[str, Any]:
    return _run(_load(doc))


@router.post("/generate")
def generate_document(body: GenerateBody) -> Dict[str, Any]:
    if CodeMode.parse(body.mode) is None:
        raise HTTPException(status_code=400, detail=f"Unknown code mode: {body.mode}")
    return {"mode": body.mode, "code": generate_code(_load(body), mode=body.mode)}
