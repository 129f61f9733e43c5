import re
from typing import Any, List, Tuple

from ..core.Blocks import DeclareVariableBlock, is_blank, materialize
from ..core.Evaluator import ExpressionError, format_value, is_number, parse_expression, parse_number
from ..core.Types import Handle, MAX_LOOP_ITERATIONS, NodeKind, ValueType
from .FlowGenerator import FlowGenerator


_PY_TOKEN_RE = re.compile(
    r"""("(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*')|(===|!==|&&|\|\||!(?!=))|([A-Za-z_$][\w$]*)|(\s+)|(.)""",
    re.S,
)
_PY_OPERATORS = {"===": " == ", "!==": " != ", "&&": " and ", "||": " or ", "!": " not "}
_PY_WORDS = {"true": "True", "false": "False", "null": "None", "undefined": "None"}


def python_condition(text: str) -> str:
    """Translate a JavaScript-style condition token by token (`&&` -> `and`, ...)."""
    pieces: List[Tuple[str, bool]] = []
    for m in _PY_TOKEN_RE.finditer(text):
        string, op, ident = m.group(1), m.group(2), m.group(3)
        if string:
            pieces.append((string, True))
        elif op:
            pieces.append((_PY_OPERATORS[op], False))
        elif ident:
            pieces.append((_PY_WORDS.get(ident, ident), False))
        else:
            pieces.append((m.group(0), False))

    out, code = [], []
    for piece, is_string in pieces:
        if is_string:
            out.append(_tidy("".join(code)))
            code = []
            out.append(piece)
        else:
            code.append(piece)
    out.append(_tidy("".join(code)))
    return "".join(out).strip()


def _tidy(code: str) -> str:
    code = re.sub(r"\s+", " ", code)
    code = re.sub(r"\(\s+", "(", code)
    return re.sub(r"\s+\)", ")", code)


def py_expr(value: Any) -> str:
    if value is None:
        return "None"
    if isinstance(value, bool):
        return "True" if value else "False"
    if is_number(value):
        return format_value(value)
    if isinstance(value, (list, dict)):
        return repr(value)

    text = str(value).strip()
    if not text:
        return "0"
    if len(text) >= 2 and text[0] in "\"'" and text[-1] == text[0]:
        return repr(text[1:-1])
    try:
        parse_expression(text)
    except ExpressionError:
        return repr(text)
    return python_condition(text)


def py_literal(value: Any, value_type: ValueType) -> str:
    if value_type == ValueType.STRING:
        if isinstance(value, str):
            text = value.strip()
            if len(text) >= 2 and text[0] in "\"'" and text[-1] == text[0]:
                return repr(text[1:-1])
            return repr(value)
        return repr("" if value is None else format_value(value))
    if value_type == ValueType.BOOLEAN:
        return "True" if value is True or value == "true" else "False"
    if value_type == ValueType.NUMBER:
        if is_number(value):
            return format_value(value)
        number = parse_number(value) if isinstance(value, str) else None
        return "0" if number is None else format_value(number)
    if value_type in (ValueType.ARRAY, ValueType.OBJECT):
        return repr(materialize(value, value_type))
    return py_expr(value)


class PythonGenerator(FlowGenerator):
    """
    Indentation-based rendering covering declarations, assignment, if/else,
    while loops and print.  Other blocks are skipped.
    """

    indent_unit = "    "
    body_depth = 1

    def renderers(self):
        return {
            NodeKind.START: lambda n, b, ctx: self.stmt(ctx, 'print("🚀 Program started")'),
            NodeKind.END: self.render_end,
            NodeKind.RETURN: self.render_stop,
            NodeKind.BREAK: self.render_stop,
            NodeKind.CONTINUE: self.render_stop,
            NodeKind.DECLARE_VARIABLE: self.render_declare,
            NodeKind.ASSIGNMENT: self.render_assignment,
            NodeKind.CONDITIONAL: self.render_conditional,
            NodeKind.WHILE_LOOP: self.render_while,
            NodeKind.PRINT: lambda n, b, ctx: self.stmt(ctx, f"print({py_expr(b.value)})"),
        }

    def missing_start(self) -> str:
        return ""

    def begin(self):
        self.hoisted = set()
        w = self.writer
        w.writeln("# Generated Python Code")
        w.blank()
        w.writeln("def execute_flow():")

        names = set()
        for node in self.graph.nodes_of_kind(NodeKind.DECLARE_VARIABLE):
            block: DeclareVariableBlock = node.block
            name = block.variable_name.strip()
            if not name or name in names:
                continue
            names.add(name)
            self.hoisted.add(node.id)
            w.writeln(f"{name} = {py_literal(block.variable_value, block.value_type)}", depth=1)
        if names:
            w.blank()
        self._body_start = self.line_count()

    def finish(self):
        w = self.writer
        if self.line_count() == self._body_start and not self.hoisted:
            w.writeln("pass", depth=1)
        w.blank()
        w.writeln("# Call the function")
        w.writeln("execute_flow()")

    def stmt(self, ctx, text):
        self.line(ctx, text)
        return Handle.OUT

    def render_unknown(self, node, ctx):
        return Handle.OUT

    def render_stop(self, node, block, ctx):
        return None

    def render_end(self, node, block, ctx):
        self.line(ctx, 'print("🏁 Program ended")')
        if ctx.depth > self.body_depth:
            self.line(ctx, "return")
        return None

    def render_declare(self, node, block, ctx):
        name = block.variable_name.strip()
        if name and node.id not in self.hoisted:
            self.line(ctx, f"{name} = {py_literal(block.variable_value, block.value_type)}")
        return Handle.OUT

    def render_assignment(self, node, block, ctx):
        if is_blank(block.variable_name):
            return Handle.OUT
        value_type = ValueType.parse(block.value_type)
        if value_type in (ValueType.STRING, ValueType.BOOLEAN, ValueType.ARRAY, ValueType.OBJECT):
            value = py_literal(block.value, value_type)
        else:
            value = py_expr(block.value)
        return self.stmt(ctx, f"{block.variable_name} = {value}")

    def indented_body(self, node, handle, ctx, loop=False):
        """Walk a body; an empty one still needs a `pass`."""
        before = self.line_count()
        self.body(node, handle, ctx, loop=loop)
        if self.line_count() == before:
            self.line(ctx, "pass", extra=1)

    def render_conditional(self, node, block, ctx):
        if block.uses_operands():
            operator = {"===": "==", "!==": "!="}.get(block.operator, block.operator)
            condition = f"{py_expr(block.left)} {operator} {py_expr(block.right)}"
        else:
            condition = python_condition(block.expression()) or "False"
        self.line(ctx, f"if {condition}:")
        self.indented_body(node, Handle.TRUE, ctx)
        if self.has_branch(node, Handle.FALSE):
            self.line(ctx, "else:")
            self.indented_body(node, Handle.FALSE, ctx)
        return Handle.OUT

    def render_while(self, node, block, ctx):
        counter = self.fresh_name("while_count")
        condition = python_condition(block.condition) or "False"
        self.line(ctx, f"{counter} = 0")
        self.line(ctx, f"while ({condition}) and {counter} < {MAX_LOOP_ITERATIONS}:")
        self.body(node, Handle.LOOP, ctx, loop=True)
        self.line(ctx, f"{counter} += 1", extra=1)
        return Handle.OUT
