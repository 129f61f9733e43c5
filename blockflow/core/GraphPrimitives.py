from collections import defaultdict
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple

import logging

from .Blocks import Block
from .Types import Handle, NodeKind

logger = logging.getLogger(__name__)


# Edges are immutable; replacing a connection means removing and re-adding.
class Edge(NamedTuple):
    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None

    @property
    def handle(self) -> str:
        """Source handle with the unlabelled case normalised to `out`."""
        return self.source_handle or Handle.OUT

    @staticmethod
    def make_id(source: str, target: str, source_handle: Optional[str] = None) -> str:
        if source_handle:
            return f"e{source}-{source_handle}-{target}"
        return f"e{source}-{target}"

    def __repr__(self):
        return f"Edge({self.source}.{self.handle} -> {self.target})"


class Node:
    def __init__(self,
                 id: str,
                 type_name: str,
                 block: Optional[Block] = None,
                 label: Optional[str] = None,
                 position: Optional[Dict[str, float]] = None):
        self.id = id
        self.type_name = type_name
        self.block = block if block is not None else Block.from_data(type_name, {})
        self.label = label
        self.position = position or {"x": 0, "y": 0}

    @classmethod
    def from_data(cls, id: str, type_name: str, data: Optional[Dict[str, Any]] = None,
                  position: Optional[Dict[str, float]] = None) -> 'Node':
        data = data or {}
        label = data.get("label")
        return cls(id, type_name, Block.from_data(type_name, data),
                   label=str(label) if label is not None else None,
                   position=position)

    @property
    def kind(self) -> Optional[NodeKind]:
        return self.block.kind

    @property
    def display_name(self) -> str:
        """Label when one is set, otherwise the raw type name."""
        return self.label if self.label else self.type_name

    def to_data(self) -> Dict[str, Any]:
        data = self.block.to_data()
        if self.label is not None:
            data["label"] = self.label
        return data

    def __repr__(self):
        return f"Node({self.id}:{self.type_name})"


class Graph:
    """
    A block program: nodes in insertion order plus control-flow edges.

    Edges are indexed by (source, handle) and by target so the walker can look
    up a successor without scanning the edge list.
    """

    def __init__(self, nodes: Iterable[Node] = (), edges: Iterable[Edge] = ()):
        self.nodes: Dict[str, Node] = {}
        self.edges: List[Edge] = []
        self.outgoing_edges: Dict[Tuple[str, str], List[Edge]] = defaultdict(list)
        self.incoming_edges: Dict[str, List[Edge]] = defaultdict(list)
        self._counters: Dict[str, int] = defaultdict(int)

        for node in nodes:
            self.add_node(node)
        for edge in edges:
            self.add_edge(edge)

    # ── Lookup ────────────────────────────────────────────────────────────────

    def get_node(self, node_id: str) -> Optional[Node]:
        return self.nodes.get(node_id)

    def nodes_of_kind(self, kind: NodeKind) -> List[Node]:
        return [n for n in self.nodes.values() if n.kind == kind]

    def start_node(self) -> Optional[Node]:
        starts = self.nodes_of_kind(NodeKind.START)
        return starts[0] if starts else None

    def successor(self, node_id: str, handle: str = Handle.OUT) -> Optional[Node]:
        """First edge (in insertion order) leaving `node_id` through `handle`."""
        for edge in self.outgoing_edges.get((node_id, handle), []):
            target = self.nodes.get(edge.target)
            if target is not None:
                return target
        return None

    def get_outgoing_edges(self, node_id: str) -> List[Edge]:
        return [e for e in self.edges if e.source == node_id]

    def get_incoming_edges(self, node_id: str) -> List[Edge]:
        return list(self.incoming_edges.get(node_id, []))

    def has_incoming(self, node_id: str) -> bool:
        return bool(self.incoming_edges.get(node_id))

    def has_outgoing(self, node_id: str) -> bool:
        return bool(self.get_outgoing_edges(node_id))

    # ── Mutation ──────────────────────────────────────────────────────────────

    def add_node(self, node: Node) -> Node:
        if node.id in self.nodes:
            raise ValueError(f"Node with id '{node.id}' already exists in the graph")
        self.nodes[node.id] = node
        return node

    def create_node(self, type_name: str, data: Optional[Dict[str, Any]] = None,
                    position: Optional[Dict[str, float]] = None) -> Node:
        """Add a node of `type_name` under a fresh `<type>-<n>` id."""
        node_id = self._next_id(type_name)
        return self.add_node(Node.from_data(node_id, type_name, data, position))

    def _next_id(self, type_name: str) -> str:
        while True:
            self._counters[type_name] += 1
            node_id = f"{type_name}-{self._counters[type_name]}"
            if node_id not in self.nodes:
                return node_id

    def update_node_data(self, node_id: str, changes: Dict[str, Any]) -> Node:
        """Merge `changes` into the node's data and rebuild its block."""
        node = self.nodes.get(node_id)
        if node is None:
            raise KeyError(node_id)
        data = node.to_data()
        data.update(changes)
        rebuilt = Node.from_data(node.id, node.type_name, data, node.position)
        self.nodes[node_id] = rebuilt
        return rebuilt

    def delete_node(self, node_id: str) -> Node:
        node = self.nodes.pop(node_id, None)
        if node is None:
            raise KeyError(node_id)
        for edge in [e for e in self.edges if node_id in (e.source, e.target)]:
            self.remove_edge(edge.id)
        return node

    def add_edge(self, edge: Edge) -> Edge:
        self.edges.append(edge)
        self.outgoing_edges[(edge.source, edge.handle)].append(edge)
        self.incoming_edges[edge.target].append(edge)
        return edge

    def connect(self, source: str, target: str, source_handle: Optional[str] = None,
                target_handle: Optional[str] = None) -> Edge:
        """
        Editor-style connection: a node accepts one inbound edge, so any edge
        already pointing at `target` is replaced.
        """
        for missing in (source, target):
            if missing not in self.nodes:
                raise KeyError(missing)
        for edge in self.get_incoming_edges(target):
            logger.debug("Replacing %r with a connection from %s", edge, source)
            self.remove_edge(edge.id)
        edge = Edge(Edge.make_id(source, target, source_handle), source, target,
                    source_handle, target_handle)
        return self.add_edge(edge)

    def remove_edge(self, edge_id: str) -> Edge:
        for edge in self.edges:
            if edge.id == edge_id:
                break
        else:
            raise KeyError(edge_id)
        self.edges.remove(edge)
        self.outgoing_edges[(edge.source, edge.handle)].remove(edge)
        self.incoming_edges[edge.target].remove(edge)
        return edge

    def reset(self):
        self.nodes.clear()
        self.edges.clear()
        self.outgoing_edges.clear()
        self.incoming_edges.clear()
        self._counters.clear()

    def __repr__(self):
        return f"Graph(nodes={len(self.nodes)}, edges={len(self.edges)})"


def as_graph(nodes: Iterable[Node], edges: Iterable[Edge] = ()) -> Graph:
    """Index a node/edge snapshot.  A repeated node id keeps the first node."""
    if isinstance(nodes, Graph):
        return nodes
    graph = Graph()
    for node in nodes:
        if node.id in graph.nodes:
            logger.warning("Ignoring duplicate node id %r", node.id)
            continue
        graph.add_node(node)
    for edge in edges:
        graph.add_edge(edge)
    return graph
