"""
BlockFlow
=========
Validates, runs and renders visual programming flows: a graph of blocks
(start, variables, branches, loops, operators, print ...) joined by edges
whose source handle names the branch taken.

    from blockflow import FlowInterpreter

    interp = FlowInterpreter(nodes, edges)   # Graph, Node objects or editor dicts
    interp.validate()                        # -> List[str]
    result = interp.execute()                # -> ExecutionResult
    interp.generate_code("javascript")       # -> str
"""
from __future__ import annotations

from typing import Any, Iterable, List, Union

from .compiler import CodeMode, generate_code
from .core.Executor import ExecutionResult, Executor, NodeVisitedHook
from .core.GraphPrimitives import Edge, Graph, Node, as_graph
from .core.Validator import validate
from .serializers.graph_serializer import SchemaError, deserialize_flow, load_flow, serialize_flow

__version__ = "1.0.0"


class FlowInterpreter:
    """
    One graph snapshot, three pure operations.

    Each call works on the graph as it stood when the interpreter was built;
    `execute()` starts from an empty environment every time.
    """

    def __init__(self, nodes: Union[Graph, Iterable[Any]] = (), edges: Iterable[Any] = ()):
        self.graph = _coerce(nodes, edges)

    @classmethod
    def from_file(cls, path, *, strict: bool = False) -> 'FlowInterpreter':
        return cls(load_flow(path, strict=strict))

    def validate(self) -> List[str]:
        return validate(self.graph)

    def execute(self, on_node_visited: NodeVisitedHook = None) -> ExecutionResult:
        return Executor(self.graph, on_node_visited=on_node_visited).execute()

    def generate_code(self, mode: Union[str, CodeMode] = "logic") -> str:
        return generate_code(self.graph, mode=mode)


def _coerce(nodes: Union[Graph, Iterable[Any]], edges: Iterable[Any]) -> Graph:
    if isinstance(nodes, Graph):
        return nodes
    nodes, edges = list(nodes), list(edges)
    if any(isinstance(n, dict) for n in nodes) or any(isinstance(e, dict) for e in edges):
        return deserialize_flow({"nodes": nodes, "edges": edges})
    return as_graph(nodes, edges)


__all__ = [
    "CodeMode",
    "Edge",
    "ExecutionResult",
    "Executor",
    "FlowInterpreter",
    "Graph",
    "Node",
    "SchemaError",
    "deserialize_flow",
    "generate_code",
    "load_flow",
    "serialize_flow",
    "validate",
]
