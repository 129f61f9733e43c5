from blockflow.core.GraphPrimitives import Edge, Graph, Node
from blockflow.core.Validator import validate


def build(nodes, edges=()):
    graph = Graph()
    for node_id, type_name, data in nodes:
        graph.add_node(Node.from_data(node_id, type_name, data))
    for source, target, handle in edges:
        graph.add_edge(Edge(Edge.make_id(source, target, handle), source, target, handle))
    return graph


class TestValidator:

    def test_valid_flow(self):
        graph = build(
            [("s", "start", {}), ("p", "print", {"value": '"hi"'}), ("e", "end", {})],
            [("s", "p", "out"), ("p", "e", "out")],
        )
        assert validate(graph) == []

    def test_empty_flow(self):
        assert validate([]) == ["❌ Missing start node", "❌ Missing end node"]

    def test_multiple_starts(self):
        graph = build(
            [("s1", "start", {}), ("s2", "start", {}), ("e", "end", {})],
            [("s1", "e", None), ("s2", "e", None)],
        )
        assert validate(graph) == ["❌ Multiple start nodes found"]

    def test_disconnected_nodes(self):
        graph = build([
            ("s", "start", {}),
            ("p", "print", {"label": "Say hi", "value": '"hi"'}),
            ("w", "whileLoop", {"condition": "true"}),
            ("e", "end", {}),
        ])
        assert validate(graph) == [
            "❌ Start node is not connected to anything",
            "❌ Node \"Say hi\" has no incoming connections",
            "❌ Node \"whileLoop\" has no incoming connections",
            "❌ End node has no incoming connections",
        ]

    def test_missing_attributes(self):
        graph = build(
            [
                ("s", "start", {}),
                ("d", "declareVariable", {"variableName": "  "}),
                ("c", "conditional", {}),
                ("e", "end", {}),
            ],
            [("s", "d", "out"), ("d", "c", "out"), ("c", "e", "true")],
        )
        assert validate(graph) == [
            "❌ Variable node missing variable name",
            "❌ Condition node missing condition",
        ]

    def test_accepts_node_and_edge_lists(self):
        nodes = [Node.from_data("s", "start"), Node.from_data("e", "end")]
        edges = [Edge("es-e", "s", "e")]
        assert validate(nodes, edges) == []

    def test_unknown_types_only_need_an_incoming_edge(self):
        graph = build(
            [("s", "start", {}), ("x", "teleport", {}), ("e", "end", {})],
            [("s", "x", "out"), ("x", "e", "out")],
        )
        assert validate(graph) == []
