import json
from typing import Any, Set

from ..core.Blocks import DeclareVariableBlock, is_blank, materialize
from ..core.Evaluator import ExpressionError, format_value, is_number, parse_expression, parse_number
from ..core.Types import Handle, LITERAL_KINDS, MAX_LOOP_ITERATIONS, NodeKind, ValueType
from .FlowGenerator import FlowGenerator

OPERATOR_KINDS = frozenset({
    NodeKind.ARITHMETIC_OPERATOR, NodeKind.COMPARISON_OPERATOR, NodeKind.LOGICAL_OPERATOR,
})


def js_string(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def js_expr(value: Any) -> str:
    """
    Render an operand as a JavaScript expression.  Quoted text becomes a
    string literal, parseable text is kept as an expression, anything else
    is emitted as a string.
    """
    if value is None:
        return "undefined"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_value(value)
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)

    text = str(value).strip()
    if not text:
        return "0"
    if len(text) >= 2 and text[0] in "\"'" and text[-1] == text[0]:
        return js_string(text[1:-1])
    try:
        parse_expression(text)
    except ExpressionError:
        return js_string(text)
    return text


def js_literal(value: Any, value_type: ValueType) -> str:
    """Initial value of a hoisted declaration, formatted for its declared type."""
    if value_type == ValueType.STRING:
        if isinstance(value, str):
            text = value.strip()
            if len(text) >= 2 and text[0] in "\"'" and text[-1] == text[0]:
                return js_string(text[1:-1])
            return js_string(value)
        return js_string("" if value is None else format_value(value))
    if value_type == ValueType.BOOLEAN:
        return "true" if value is True or value == "true" else "false"
    if value_type == ValueType.NUMBER:
        if is_number(value):
            return format_value(value)
        number = parse_number(value) if isinstance(value, str) else None
        return "0" if number is None else format_value(number)
    if value_type in (ValueType.ARRAY, ValueType.OBJECT):
        return json.dumps(materialize(value, value_type), ensure_ascii=False)
    return js_expr(value)


class JavaScriptGenerator(FlowGenerator):
    """
    Emits a self-contained `executeFlow()` function.  Declarations are hoisted
    to the top of the function; every loop carries a counter that stops it
    after MAX_LOOP_ITERATIONS passes, like the interpreter does.
    """

    indent_unit = "  "
    body_depth = 1

    def renderers(self):
        return {
            NodeKind.START: lambda n, b, ctx: self.stmt(ctx, 'console.log("🚀 Program started");'),
            NodeKind.END: self.render_end,
            NodeKind.RETURN: lambda n, b, ctx: self.render_jump(ctx, "return;", loop_only=False),
            NodeKind.BREAK: lambda n, b, ctx: self.render_jump(ctx, "break;"),
            NodeKind.CONTINUE: lambda n, b, ctx: self.render_jump(ctx, "continue;"),
            NodeKind.DECLARE_VARIABLE: self.render_declare,
            NodeKind.ASSIGNMENT: self.render_assignment,
            NodeKind.CONDITIONAL: self.render_conditional,
            NodeKind.SWITCH_CASE: self.render_switch,
            NodeKind.FOR_LOOP: self.render_for,
            NodeKind.FOR_EACH: self.render_for_each,
            NodeKind.WHILE_LOOP: self.render_while,
            NodeKind.DO_WHILE_LOOP: self.render_do_while,
            NodeKind.FUNCTION_DECLARATION: self.render_function,
            NodeKind.FUNCTION_CALL: lambda n, b, ctx: self.stmt(
                ctx, f"{b.function_name}({', '.join(b.arguments)});"),
            NodeKind.ARITHMETIC_OPERATOR: self.render_operator,
            NodeKind.COMPARISON_OPERATOR: self.render_operator,
            NodeKind.LOGICAL_OPERATOR: self.render_operator,
            NodeKind.ARRAY_PUSH: lambda n, b, ctx: self.stmt(ctx, f"{b.array}.push({js_expr(b.value)});"),
            NodeKind.ARRAY_POP: lambda n, b, ctx: self.stmt(ctx, f"{b.array}.pop();"),
            NodeKind.ARRAY_MAP: lambda n, b, ctx: self.stmt(ctx, f"// Map {b.array} with {b.callback}"),
            NodeKind.ARRAY_FILTER: lambda n, b, ctx: self.stmt(ctx, f"// Filter {b.array} with {b.callback}"),
            NodeKind.ARRAY_REDUCE: lambda n, b, ctx: self.stmt(
                ctx, f"// Reduce {b.array} with {b.callback} from {js_expr(b.initial_value)}"),
            NodeKind.PRINT: lambda n, b, ctx: self.stmt(ctx, f"console.log({js_expr(b.value)});"),
            NodeKind.INPUT: self.render_input,
            NodeKind.TRY: lambda n, b, ctx: self.stmt(ctx, "// Try block"),
            NodeKind.CATCH: lambda n, b, ctx: self.stmt(ctx, f"// Catch block ({b.error_var})"),
            NodeKind.THROW: lambda n, b, ctx: self.stmt(ctx, f"// Throw: {b.error}"),
            **{kind: self.render_literal for kind in LITERAL_KINDS},
        }

    def missing_start(self) -> str:
        return ""

    # ── Function shell ────────────────────────────────────────────────────────

    def begin(self):
        self.declared: Set[str] = set()
        self.hoisted = {}
        w = self.writer
        w.writeln("// Generated JavaScript Code")
        w.blank()
        w.writeln("function executeFlow() {")

        for node in self.graph.nodes_of_kind(NodeKind.DECLARE_VARIABLE):
            block: DeclareVariableBlock = node.block
            name = block.variable_name.strip()
            if not name or name in self.declared:
                continue
            self.declared.add(name)
            self.hoisted[node.id] = name
            w.writeln(f"let {name} = {js_literal(block.variable_value, block.value_type)};", depth=1)

        # Operator results are function-scoped like the interpreter's bindings
        for node in self.graph.nodes.values():
            if node.kind not in OPERATOR_KINDS:
                continue
            name = node.block.result_var.strip()
            if not name or name in self.declared:
                continue
            self.declared.add(name)
            w.writeln(f"let {name};", depth=1)
        if self.declared:
            w.blank()

    def finish(self):
        w = self.writer
        w.writeln("}")
        w.blank()
        w.writeln("// Call the function")
        w.writeln("executeFlow();")

    # ── Statements ────────────────────────────────────────────────────────────

    def stmt(self, ctx, text):
        self.line(ctx, text)
        return Handle.OUT

    def render_unknown(self, node, ctx):
        return self.stmt(ctx, f"// Unknown or unhandled node type: {node.type_name}")

    def render_literal(self, node, block, ctx):
        return self.stmt(ctx, f"// {node.type_name} literal: {js_expr(block.value)}")

    def render_end(self, node, block, ctx):
        self.line(ctx, 'console.log("🏁 Program ended");')
        if ctx.depth > self.body_depth:
            self.line(ctx, "return;")
        return None

    def render_jump(self, ctx, statement, loop_only=True):
        if loop_only and not ctx.loop_heads:
            self.line(ctx, f"// {statement[:-1]} (outside a loop)")
        else:
            self.line(ctx, statement)
        return None

    def render_declare(self, node, block, ctx):
        # Hoisted declarations need no statement here; a repeated name re-assigns
        name = block.variable_name.strip()
        if name and node.id not in self.hoisted:
            self.line(ctx, f"{name} = {js_literal(block.variable_value, block.value_type)};")
        return Handle.OUT

    def render_assignment(self, node, block, ctx):
        if is_blank(block.variable_name):
            return Handle.OUT
        value_type = ValueType.parse(block.value_type)
        if value_type in (ValueType.STRING, ValueType.BOOLEAN, ValueType.ARRAY, ValueType.OBJECT):
            value = js_literal(block.value, value_type)
        else:
            value = js_expr(block.value)
        return self.stmt(ctx, f"{block.variable_name} = {value};")

    def render_input(self, node, block, ctx):
        if is_blank(block.variable_name):
            return self.stmt(ctx, "// Input block without a variable")
        return self.stmt(ctx, f'{block.variable_name} = "user input"; // input placeholder')

    def render_operator(self, node, block, ctx):
        target = block.result_var.strip()
        keyword = ""
        if not target:
            target = self.fresh_name("result")
            while target in self.declared:
                target = self.fresh_name("result")
            keyword = "const "
        if block.operator == "!":
            expression = f"!{js_expr(block.left)}"
        else:
            expression = f"{js_expr(block.left)} {block.operator} {js_expr(block.right)}"
        return self.stmt(ctx, f"{keyword}{target} = {expression};")

    # ── Control flow ──────────────────────────────────────────────────────────

    def condition_of(self, block) -> str:
        if block.kind == NodeKind.CONDITIONAL:
            if block.uses_operands():
                return f"{js_expr(block.left)} {block.operator} {js_expr(block.right)}"
            return block.expression() or "false"
        return block.condition.strip() or "false"

    def render_conditional(self, node, block, ctx):
        self.line(ctx, f"if ({self.condition_of(block)}) {{")
        self.body(node, Handle.TRUE, ctx)
        if self.has_branch(node, Handle.FALSE):
            self.line(ctx, "} else {")
            self.body(node, Handle.FALSE, ctx)
        self.line(ctx, "}")
        return Handle.OUT

    def render_switch(self, node, block, ctx):
        self.line(ctx, f"switch ({block.variable or 'undefined'}) {{")
        for case in block.cases:
            self.line(ctx, f"case {js_expr(case.value)}:", extra=1)
            self.body(node, format_value(case.value), ctx, indent=2)
            self.line(ctx, "break;", extra=2)
        if block.has_default:
            self.line(ctx, "default:", extra=1)
            self.body(node, Handle.DEFAULT, ctx, indent=2)
        self.line(ctx, "}")
        return Handle.OUT

    def render_for(self, node, block, ctx):
        counter = self.fresh_name("forCount")
        self.line(ctx, f"let {counter} = 0;")
        self.line(ctx, f"for ({block.init.strip()}; ({self.condition_of(block)}) && "
                       f"{counter}++ < {MAX_LOOP_ITERATIONS}; {block.increment.strip()}) {{")
        self.body(node, Handle.LOOP, ctx, loop=True)
        self.line(ctx, "}")
        return Handle.OUT

    def render_for_each(self, node, block, ctx):
        self.line(ctx, f"for (const {block.item or 'item'} of {block.array or '[]'}) {{")
        self.body(node, Handle.LOOP, ctx, loop=True)
        self.line(ctx, "}")
        return Handle.OUT

    def render_while(self, node, block, ctx):
        counter = self.fresh_name("whileCount")
        self.line(ctx, f"let {counter} = 0;")
        self.line(ctx, f"while (({self.condition_of(block)}) && {counter}++ < {MAX_LOOP_ITERATIONS}) {{")
        self.body(node, Handle.LOOP, ctx, loop=True)
        self.line(ctx, "}")
        return Handle.OUT

    def render_do_while(self, node, block, ctx):
        counter = self.fresh_name("doWhileCount")
        self.line(ctx, f"let {counter} = 0;")
        self.line(ctx, "do {")
        self.body(node, Handle.LOOP, ctx, loop=True)
        self.line(ctx, f"}} while (({self.condition_of(block)}) && ++{counter} < {MAX_LOOP_ITERATIONS});")
        return Handle.OUT

    def render_function(self, node, block, ctx):
        self.line(ctx, f"function {block.function_name}({', '.join(block.parameters)}) {{")
        self.body(node, Handle.BODY, ctx)
        self.line(ctx, "}")
        return Handle.OUT
