from ..core.Blocks import operand_text
from ..core.Evaluator import format_value
from ..core.Types import Handle, LITERAL_KINDS, NodeKind
from .FlowGenerator import FlowGenerator


class LogicGenerator(FlowGenerator):
    """
    Indented outline of the flow, one line per block.  Not executable; this
    is what the editor shows in "logic" mode.
    """

    indent_unit = "  "

    def renderers(self):
        return {
            NodeKind.START: lambda n, b, ctx: self.step(ctx, "🚀 START"),
            NodeKind.END: self.render_end,
            NodeKind.RETURN: self.render_stop,
            NodeKind.BREAK: self.render_stop,
            NodeKind.CONTINUE: self.render_stop,
            NodeKind.DECLARE_VARIABLE: lambda n, b, ctx: self.step(
                ctx, f"📦 DECLARE {b.variable_type} {b.variable_name} = {operand_text(b.variable_value)}"),
            NodeKind.ASSIGNMENT: lambda n, b, ctx: self.step(
                ctx, f"📝 SET {b.variable_name} = {operand_text(b.value)}"),
            NodeKind.CONDITIONAL: self.render_conditional,
            NodeKind.SWITCH_CASE: self.render_switch,
            NodeKind.FOR_LOOP: lambda n, b, ctx: self.loop(
                n, ctx, f"🔁 FOR ({b.init}; {b.condition}; {b.increment})"),
            NodeKind.FOR_EACH: lambda n, b, ctx: self.loop(
                n, ctx, f"🔁 FOR EACH {b.item} IN {b.array}"),
            NodeKind.WHILE_LOOP: lambda n, b, ctx: self.loop(n, ctx, f"🔁 WHILE ({b.condition})"),
            NodeKind.DO_WHILE_LOOP: self.render_do_while,
            NodeKind.FUNCTION_DECLARATION: self.render_function,
            NodeKind.FUNCTION_CALL: lambda n, b, ctx: self.step(
                ctx, f"📞 CALL {b.function_name}({', '.join(b.arguments)})"),
            NodeKind.ARITHMETIC_OPERATOR: lambda n, b, ctx: self.operator(ctx, "➗", b),
            NodeKind.COMPARISON_OPERATOR: lambda n, b, ctx: self.operator(ctx, "⚖️", b),
            NodeKind.LOGICAL_OPERATOR: lambda n, b, ctx: self.operator(ctx, "🔀", b),
            NodeKind.ARRAY_PUSH: lambda n, b, ctx: self.step(
                ctx, f"📥 PUSH {operand_text(b.value)} TO {b.array}"),
            NodeKind.ARRAY_POP: lambda n, b, ctx: self.step(ctx, f"📤 POP FROM {b.array}"),
            NodeKind.ARRAY_MAP: lambda n, b, ctx: self.step(ctx, f"🗺️ MAP {b.array} WITH {b.callback}"),
            NodeKind.ARRAY_FILTER: lambda n, b, ctx: self.step(ctx, f"🔍 FILTER {b.array} WITH {b.callback}"),
            NodeKind.ARRAY_REDUCE: lambda n, b, ctx: self.step(
                ctx, f"➖ REDUCE {b.array} WITH {b.callback} FROM {operand_text(b.initial_value)}"),
            NodeKind.PRINT: lambda n, b, ctx: self.step(ctx, f"🖨️ PRINT {operand_text(b.value)}"),
            NodeKind.INPUT: lambda n, b, ctx: self.step(ctx, f"⌨️ INPUT {b.variable_name}"),
            NodeKind.TRY: lambda n, b, ctx: self.step(ctx, "🛡️ TRY"),
            NodeKind.CATCH: lambda n, b, ctx: self.step(ctx, f"🪤 CATCH ({b.error_var})"),
            NodeKind.THROW: lambda n, b, ctx: self.step(ctx, f"🚨 THROW {b.error}"),
            **{kind: self.render_literal for kind in LITERAL_KINDS},
        }

    def begin(self):
        self.writer.writeln("Logic Flow:")

    def step(self, ctx, text):
        self.line(ctx, text)
        return Handle.OUT

    def render_end(self, node, block, ctx):
        self.line(ctx, "🏁 END")
        return None

    def render_stop(self, node, block, ctx):
        self.line(ctx, {
            NodeKind.RETURN: "↩️ RETURN",
            NodeKind.BREAK: "⏹️ BREAK",
            NodeKind.CONTINUE: "⏭️ CONTINUE",
        }[node.kind])
        return None

    def render_unknown(self, node, ctx):
        return self.step(ctx, f"⚡ {node.type_name.upper()}")

    def render_literal(self, node, block, ctx):
        return self.step(ctx, f"🔢 {node.type_name.upper()} {operand_text(block.value)}")

    def operator(self, ctx, icon, block):
        text = f"{icon} {operand_text(block.left)} {block.operator} {operand_text(block.right)}"
        if block.result_var:
            text += f" -> {block.result_var}"
        return self.step(ctx, text)

    def render_conditional(self, node, block, ctx):
        self.line(ctx, f"❓ IF ({block.expression()})")
        for handle, title in ((Handle.TRUE, "TRUE:"), (Handle.FALSE, "FALSE:")):
            if self.has_branch(node, handle):
                self.line(ctx, title, extra=1)
                self.body(node, handle, ctx, indent=2)
        return Handle.OUT

    def render_switch(self, node, block, ctx):
        self.line(ctx, f"🔀 SWITCH ({block.variable})")
        for case in block.cases:
            self.line(ctx, f"CASE {format_value(case.value)}:", extra=1)
            self.body(node, format_value(case.value), ctx, indent=2)
        if block.has_default:
            self.line(ctx, "DEFAULT:", extra=1)
            self.body(node, Handle.DEFAULT, ctx, indent=2)
        return Handle.OUT

    def loop(self, node, ctx, header):
        self.line(ctx, header)
        self.body(node, Handle.LOOP, ctx, loop=True)
        return Handle.OUT

    def render_do_while(self, node, block, ctx):
        self.line(ctx, "🔁 DO")
        self.body(node, Handle.LOOP, ctx, loop=True)
        self.line(ctx, f"🔁 WHILE ({block.condition})")
        return Handle.OUT

    def render_function(self, node, block, ctx):
        self.line(ctx, f"⚙️ FUNCTION {block.function_name}({', '.join(block.parameters)})")
        self.body(node, Handle.BODY, ctx)
        return Handle.OUT
