from typing import Iterable, List, Optional

from .Blocks import is_blank
from .GraphPrimitives import Edge, Node, as_graph
from .Types import NodeKind


def validate(nodes: Iterable[Node], edges: Iterable[Edge] = ()) -> List[str]:
    """
    Structural checks run before execution.  Returns every problem found, in
    a fixed order; an empty list means the flow may run.  Never raises.
    """
    graph = as_graph(nodes, edges)
    errors: List[str] = []

    starts = graph.nodes_of_kind(NodeKind.START)
    ends = graph.nodes_of_kind(NodeKind.END)

    if not starts:
        errors.append("❌ Missing start node")
    if len(starts) > 1:
        errors.append("❌ Multiple start nodes found")
    if not ends:
        errors.append("❌ Missing end node")

    for node in graph.nodes.values():
        if node.kind == NodeKind.START:
            if not graph.has_outgoing(node.id):
                errors.append("❌ Start node is not connected to anything")
        elif node.kind == NodeKind.END:
            if not graph.has_incoming(node.id):
                errors.append("❌ End node has no incoming connections")
        elif not graph.has_incoming(node.id):
            errors.append(f"❌ Node \"{node.display_name}\" has no incoming connections")

    for node in graph.nodes.values():
        message = _attribute_error(node)
        if message:
            errors.append(message)

    return errors


def _attribute_error(node: Node) -> Optional[str]:
    name = node.block.required_name()
    if name is not None and is_blank(name):
        return "❌ Variable node missing variable name"

    condition = node.block.required_condition()
    if condition is not None and is_blank(condition):
        return "❌ Condition node missing condition"

    return None
