from blockflow.compiler import CodeMode, generate_code
from blockflow.compiler.JavaScriptGenerator import js_expr, js_literal
from blockflow.compiler.PythonGenerator import py_expr, python_condition
from blockflow.core.GraphPrimitives import Edge, Graph, Node
from blockflow.core.Types import ValueType


def build(nodes, edges=()):
    graph = Graph()
    for node_id, type_name, data in nodes:
        graph.add_node(Node.from_data(node_id, type_name, data))
    for source, target, handle in edges:
        graph.add_edge(Edge(Edge.make_id(source, target, handle), source, target, handle))
    return graph


def hello_world():
    return build(
        [("start", "start", {}), ("p", "print", {"value": '"Hello, World!"'}), ("end", "end", {})],
        [("start", "p", "out"), ("p", "end", "out")],
    )


def count_to_three():
    return build(
        [
            ("start", "start", {}),
            ("decl", "declareVariable", {"variableName": "n", "variableValue": "1"}),
            ("loop", "whileLoop", {"condition": "n <= 3"}),
            ("show", "print", {"value": "n"}),
            ("step", "assignment", {"variableName": "n", "value": "n + 1"}),
            ("end", "end", {}),
        ],
        [
            ("start", "decl", "out"),
            ("decl", "loop", "out"),
            ("loop", "show", "loop"),
            ("show", "step", "out"),
            ("step", "loop", "out"),
            ("loop", "end", "out"),
        ],
    )


def if_else():
    return build(
        [
            ("start", "start", {}),
            ("if", "conditional", {"conditions": [{"condition": "x > 1 && !done"}]}),
            ("yes", "print", {"value": '"big"'}),
            ("no", "print", {"value": '"small"'}),
            ("end", "end", {}),
        ],
        [("start", "if", "out"), ("if", "yes", "true"), ("if", "no", "false"), ("if", "end", "out")],
    )


class TestGenerateCode:

    def test_empty_graph(self):
        for mode in ("logic", "javascript", "python"):
            assert generate_code([], mode=mode) == "// No blocks to generate code from"

    def test_unknown_mode(self):
        assert generate_code(hello_world(), mode="cobol") == "// Unknown code mode: cobol"

    def test_mode_aliases(self):
        assert CodeMode.parse("trace") is CodeMode.LOGIC
        assert CodeMode.parse("c-family") is CodeMode.JAVASCRIPT
        assert CodeMode.parse("indentation-based") is CodeMode.PYTHON
        assert CodeMode.parse("JS") is CodeMode.JAVASCRIPT
        assert CodeMode.parse("cobol") is None

    def test_output_is_stable(self):
        graph = count_to_three()
        for mode in ("logic", "javascript", "python"):
            assert generate_code(graph, mode=mode) == generate_code(graph, mode=mode)

    def test_missing_start(self):
        graph = build([("p", "print", {"value": "1"})])
        assert generate_code(graph, mode="logic") == "No start node found"
        assert "function executeFlow() {" in generate_code(graph, mode="javascript")


class TestLogicGenerator:

    def test_hello_world(self):
        assert generate_code(hello_world(), mode="logic") == "\n".join([
            "Logic Flow:",
            "🚀 START",
            '🖨️ PRINT "Hello, World!"',
            "🏁 END",
        ])

    def test_branches_are_indented(self):
        assert generate_code(if_else(), mode="trace") == "\n".join([
            "Logic Flow:",
            "🚀 START",
            "❓ IF (x > 1 && !done)",
            "  TRUE:",
            '    🖨️ PRINT "big"',
            "  FALSE:",
            '    🖨️ PRINT "small"',
            "🏁 END",
        ])

    def test_loop(self):
        assert generate_code(count_to_three(), mode="logic") == "\n".join([
            "Logic Flow:",
            "🚀 START",
            "📦 DECLARE number n = 1",
            "🔁 WHILE (n <= 3)",
            "  🖨️ PRINT n",
            "  📝 SET n = n + 1",
            "🏁 END",
        ])


class TestJavaScriptGenerator:

    def test_hello_world(self):
        assert generate_code(hello_world(), mode="javascript") == "\n".join([
            "// Generated JavaScript Code",
            "",
            "function executeFlow() {",
            '  console.log("🚀 Program started");',
            '  console.log("Hello, World!");',
            '  console.log("🏁 Program ended");',
            "}",
            "",
            "// Call the function",
            "executeFlow();",
        ])

    def test_while_loop_with_hoisted_declaration(self):
        assert generate_code(count_to_three(), mode="c-family") == "\n".join([
            "// Generated JavaScript Code",
            "",
            "function executeFlow() {",
            "  let n = 1;",
            "",
            '  console.log("🚀 Program started");',
            "  let whileCount = 0;",
            "  while ((n <= 3) && whileCount++ < 100) {",
            "    console.log(n);",
            "    n = n + 1;",
            "  }",
            '  console.log("🏁 Program ended");',
            "}",
            "",
            "// Call the function",
            "executeFlow();",
        ])

    def test_if_else(self):
        code = generate_code(if_else(), mode="javascript")
        assert "  if (x > 1 && !done) {\n    console.log(\"big\");\n  } else {\n" in code

    def test_for_loop_counter(self):
        graph = build(
            [
                ("start", "start", {}),
                ("for", "forLoop", {"init": "let i = 0", "condition": "i < 3", "increment": "i++"}),
                ("end", "end", {}),
            ],
            [("start", "for", "out"), ("for", "end", "out")],
        )
        code = generate_code(graph, mode="javascript")
        assert "  let forCount = 0;" in code
        assert "  for (let i = 0; (i < 3) && forCount++ < 100; i++) {" in code

    def test_operator_result(self):
        graph = build(
            [
                ("start", "start", {}),
                ("add", "arithmeticOperator", {"left": "2", "operator": "+", "right": "3", "resultVar": "sum"}),
                ("mul", "arithmeticOperator", {"left": "sum", "operator": "*", "right": "2"}),
                ("end", "end", {}),
            ],
            [("start", "add", "out"), ("add", "mul", "out"), ("mul", "end", "out")],
        )
        code = generate_code(graph, mode="javascript")
        assert "  let sum;\n" in code
        assert "  sum = 2 + 3;" in code
        assert "  const result = sum * 2;" in code

    def test_shared_result_var_is_declared_once(self):
        graph = build(
            [
                ("start", "start", {}),
                ("decl", "declareVariable", {"variableName": "i", "variableValue": "0"}),
                ("loop", "whileLoop", {"condition": "i < 2"}),
                ("inner", "arithmeticOperator", {"left": "i", "operator": "+", "right": "1", "resultVar": "total"}),
                ("step", "assignment", {"variableName": "i", "value": "i + 1"}),
                ("outer", "arithmeticOperator", {"left": "total", "operator": "*", "right": "2", "resultVar": "total"}),
                ("show", "print", {"value": "total"}),
                ("end", "end", {}),
            ],
            [
                ("start", "decl", "out"),
                ("decl", "loop", "out"),
                ("loop", "inner", "loop"),
                ("inner", "step", "out"),
                ("step", "loop", "out"),
                ("loop", "outer", "out"),
                ("outer", "show", "out"),
                ("show", "end", "out"),
            ],
        )
        code = generate_code(graph, mode="javascript")
        assert code.count("let total;") == 1
        assert "const total" not in code
        assert "  let i = 0;\n  let total;\n" in code
        assert "    total = i + 1;" in code
        assert "  total = total * 2;\n  console.log(total);" in code

    def test_literals(self):
        assert js_expr("") == "0"
        assert js_expr("'hi'") == '"hi"'
        assert js_expr("a + b") == "a + b"
        assert js_expr("hello world") == '"hello world"'
        assert js_literal("abc", ValueType.NUMBER) == "0"
        assert js_literal("[1, 2]", ValueType.ARRAY) == "[1, 2]"
        assert js_literal("plain", ValueType.STRING) == '"plain"'


class TestPythonGenerator:

    def test_while_loop(self):
        assert generate_code(count_to_three(), mode="python") == "\n".join([
            "# Generated Python Code",
            "",
            "def execute_flow():",
            "    n = 1",
            "",
            '    print("🚀 Program started")',
            "    while_count = 0",
            "    while (n <= 3) and while_count < 100:",
            "        print(n)",
            "        n = n + 1",
            "        while_count += 1",
            '    print("🏁 Program ended")',
            "",
            "# Call the function",
            "execute_flow()",
        ])

    def test_if_else(self):
        code = generate_code(if_else(), mode="indentation-based")
        assert "    if x > 1 and not done:\n        print('big')\n    else:\n        print('small')" in code

    def test_condition_translation(self):
        assert python_condition("a === 1 || b !== 'x'") == "a == 1 or b != 'x'"
        assert python_condition("flag == true") == "flag == True"
        assert python_condition('s == "a && b"') == 's == "a && b"'
        assert py_expr('"hi"') == "'hi'"
