"""
Flow document serializer
========================
Reads and writes the document the editor imports and exports:

    {
      "nodes": [
        {
          "id":       "start-1",                  // unique (str, required)
          "type":     "start",                    // block kind (str, required)
          "position": { "x": 250, "y": 50 },      // canvas position (object, optional)
          "data":     { "label": "Start" }        // block attributes (object, optional)
        }
      ],
      "edges": [
        {
          "id":           "estart-1-print-1",     // (str, optional; derived when absent)
          "source":       "start-1",              // source node id (str, required)
          "target":       "print-1",              // target node id (str, required)
          "sourceHandle": "out",                  // branch label (str or null, optional)
          "targetHandle": null                    // (str or null, optional)
        }
      ]
    }

Editor callbacks stored in `data` (updateNodeData, onNodeTap, ...) are
dropped on import.
"""

from __future__ import annotations

import json
import logging
import math
import warnings
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ..core.Evaluator import format_value
from ..core.GraphPrimitives import Edge, Graph, Node, as_graph
from ..core.Types import NodeKind

logger = logging.getLogger(__name__)


KNOWN_NODE_TYPES: frozenset = frozenset(kind.value for kind in NodeKind)


class SchemaError(ValueError):
    """Raised when a flow document fails structural validation."""


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise SchemaError(message)


def _require_keys(obj: Dict, keys: List[str], context: str) -> None:
    for key in keys:
        _require(key in obj, f"{context}: missing required field '{key}'")


def _optional_str(value: Any) -> bool:
    return value is None or isinstance(value, str)


# ── Validation ────────────────────────────────────────────────────────────────

def validate_document(data: Any, *, strict: bool = False) -> None:
    """
    Validate a parsed flow document.

    Args:
        data:   A pre-parsed dict (result of json.load / json.loads).
        strict: When True, raise SchemaError for unknown node types.
                When False (default), unknown types produce a warning.

    Raises:
        SchemaError: On any structural violation.
    """
    _require(isinstance(data, dict), "flow JSON must be a JSON object at the top level")
    _require_keys(data, ["nodes", "edges"], "flow root")
    _require(isinstance(data["nodes"], list), "nodes must be a list")
    _require(isinstance(data["edges"], list), "edges must be a list")

    node_ids: set = set()

    for i, node in enumerate(data["nodes"]):
        ctx = f"nodes[{i}]"
        _require(isinstance(node, dict), f"{ctx}: each node must be a JSON object")
        _require_keys(node, ["id", "type"], ctx)
        _require(isinstance(node["id"], str), f"{ctx}.id must be a string")
        _require(isinstance(node["type"], str), f"{ctx}.type must be a string")
        _require(node["id"] not in node_ids, f"{ctx}: duplicate node id '{node['id']}'")
        node_ids.add(node["id"])

        if node.get("data") is not None:
            _require(isinstance(node["data"], dict), f"{ctx}.data must be an object")
        if node.get("position") is not None:
            _require(isinstance(node["position"], dict), f"{ctx}.position must be an object")

        if node["type"] not in KNOWN_NODE_TYPES:
            msg = f"{ctx}: unknown node type '{node['type']}'"
            if strict:
                raise SchemaError(msg)
            logger.warning(msg)
            warnings.warn(msg + " (it will run as an unknown block)", stacklevel=3)

    for i, edge in enumerate(data["edges"]):
        ctx = f"edges[{i}]"
        _require(isinstance(edge, dict), f"{ctx}: each edge must be a JSON object")
        _require_keys(edge, ["source", "target"], ctx)

        for field in ("source", "target"):
            _require(isinstance(edge[field], str), f"{ctx}.{field} must be a string")
        for field in ("id", "sourceHandle", "targetHandle"):
            _require(_optional_str(edge.get(field)), f"{ctx}.{field} must be a string or null")

        _require(edge["source"] in node_ids, f"{ctx}: source '{edge['source']}' not found in nodes")
        _require(edge["target"] in node_ids, f"{ctx}: target '{edge['target']}' not found in nodes")


# ── Dict <-> Graph ────────────────────────────────────────────────────────────

def deserialize_flow(data: Dict[str, Any], *, strict: bool = False) -> Graph:
    """Validate `data` and build a Graph from it."""
    validate_document(data, strict=strict)

    graph = Graph()
    for raw in data["nodes"]:
        graph.add_node(Node.from_data(raw["id"], raw["type"], raw.get("data"), raw.get("position")))

    for raw in data["edges"]:
        source_handle = raw.get("sourceHandle")
        edge_id = raw.get("id") or Edge.make_id(raw["source"], raw["target"], source_handle)
        graph.add_edge(Edge(edge_id, raw["source"], raw["target"], source_handle, raw.get("targetHandle")))

    logger.debug("Deserialized flow: %d nodes, %d edges", len(graph.nodes), len(graph.edges))
    return graph


def serialize_node(node: Node) -> Dict[str, Any]:
    return {
        "id": node.id,
        "type": node.type_name,
        "position": dict(node.position),
        "data": node.to_data(),
    }


def serialize_edge(edge: Edge) -> Dict[str, Any]:
    return {
        "id": edge.id,
        "source": edge.source,
        "target": edge.target,
        "sourceHandle": edge.source_handle,
        "targetHandle": edge.target_handle,
    }


def serialize_flow(nodes: Union[Graph, Iterable[Node]], edges: Iterable[Edge] = ()) -> Dict[str, Any]:
    graph = as_graph(nodes, edges)
    return {
        "nodes": [serialize_node(n) for n in graph.nodes.values()],
        "edges": [serialize_edge(e) for e in graph.edges],
    }


def json_safe(value: Any) -> Any:
    """Replace NaN and infinities, which strict JSON cannot carry, with their display text."""
    if isinstance(value, float) and not math.isfinite(value):
        return format_value(value)
    if isinstance(value, dict):
        return {str(k): json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [json_safe(v) for v in value]
    return value


# ── Text and files ────────────────────────────────────────────────────────────

def loads_flow(text: str, *, strict: bool = False) -> Graph:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SchemaError(f"invalid JSON: {e}") from e
    return deserialize_flow(data, strict=strict)


def dumps_flow(graph: Graph, indent: Optional[int] = 2) -> str:
    return json.dumps(json_safe(serialize_flow(graph)), indent=indent, ensure_ascii=False)


def load_flow(path: Union[str, Path], *, strict: bool = False) -> Graph:
    """
    Load a flow document from disk.

    Raises:
        FileNotFoundError: If the file does not exist.
        SchemaError: If the file is not valid JSON or the flow structure is invalid.
    """
    path = Path(path)
    with path.open(encoding="utf-8") as fh:
        return loads_flow(fh.read(), strict=strict)


def dump_flow(graph: Graph, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.write_text(dumps_flow(graph) + "\n", encoding="utf-8")
    return path


__all__ = [
    "KNOWN_NODE_TYPES",
    "SchemaError",
    "deserialize_flow",
    "dump_flow",
    "dumps_flow",
    "json_safe",
    "load_flow",
    "loads_flow",
    "serialize_flow",
    "validate_document",
]
