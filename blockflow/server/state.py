"""
FlowState: the flow currently open in the editor.

Seeds a small demo on startup so the UI has something to display on first
load.  Every edit goes through the Graph helpers, so the editor's
connection-replacement policy applies to REST clients too.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

from ..core.GraphPrimitives import Edge, Graph, Node

logger = logging.getLogger(__name__)


class FlowState:
    """Holds the open Graph.  Mutations are serialised with a lock."""

    def __init__(self, seed_demo: bool = True) -> None:
        self.graph = Graph()
        self.lock = threading.RLock()
        if seed_demo:
            self._seed_demo()

    # ── Demo flow ───────────────────────────────────────────────────────────

    def _seed_demo(self) -> None:
        g = self.graph
        start = g.create_node("start", {"label": "Start"}, {"x": 250, "y": 50})
        greet = g.create_node("print", {"label": "Print", "value": '"Hello, World!"'}, {"x": 250, "y": 180})
        end = g.create_node("end", {"label": "End"}, {"x": 250, "y": 310})

        g.connect(start.id, greet.id, "out")
        g.connect(greet.id, end.id, "out")
        logger.debug("Seeded demo flow with %d nodes", len(g.nodes))

    # ── Editing ─────────────────────────────────────────────────────────────

    def replace(self, graph: Graph) -> None:
        with self.lock:
            self.graph = graph

    def reset(self, seed_demo: bool = False) -> None:
        with self.lock:
            self.graph = Graph()
            if seed_demo:
                self._seed_demo()

    def create_node(self, type_name: str, data: Optional[Dict[str, Any]] = None,
                    position: Optional[Dict[str, float]] = None) -> Node:
        with self.lock:
            return self.graph.create_node(type_name, data, position)

    def update_node(self, node_id: str, data: Optional[Dict[str, Any]] = None,
                    position: Optional[Dict[str, float]] = None) -> Node:
        with self.lock:
            node = self.graph.update_node_data(node_id, data or {})
            if position is not None:
                node.position = dict(position)
            return node

    def delete_node(self, node_id: str) -> Node:
        with self.lock:
            return self.graph.delete_node(node_id)

    def connect(self, source: str, target: str, source_handle: Optional[str] = None,
                target_handle: Optional[str] = None) -> Edge:
        with self.lock:
            return self.graph.connect(source, target, source_handle, target_handle)

    def remove_edge(self, edge_id: str) -> Edge:
        with self.lock:
            return self.graph.remove_edge(edge_id)


flow_state = FlowState()
