import copy
from dataclasses import dataclass, field
from logging import getLogger
from typing import Any, Callable, Dict, Iterable, List, Optional

from .Blocks import (
    ArithmeticOperatorBlock, ArrayPopBlock, ArrayPushBlock, ComparisonOperatorBlock,
    ConditionalBlock, DeclareVariableBlock, AssignmentBlock, DoWhileLoopBlock, ForEachBlock,
    ForLoopBlock, InputBlock, LiteralBlock, LogicalOperatorBlock, PrintBlock, SwitchCaseBlock,
    WhileLoopBlock, is_blank, materialize, operand_text,
)
from .Evaluator import ExpressionEvaluator, format_value
from .GraphPrimitives import Edge, Graph, Node, as_graph
from .Traversal import FlowWalker, WalkContext
from .Types import (
    Handle, INPUT_PLACEHOLDER, LITERAL_KINDS, MAX_LOOP_ITERATIONS, NodeKind, SYNTHETIC_PREFIX, ValueType,
)
from .Validator import validate

logger = getLogger(__name__)


NodeVisitedHook = Callable[[str, str], None]


class Environment(dict):
    """Variable store for one run.  Keys starting with `#` are interpreter-internal."""

    @staticmethod
    def synthetic_key(prefix: str, node_id: str) -> str:
        return f"{SYNTHETIC_PREFIX}{prefix}_{node_id}"

    def user_variables(self) -> Dict[str, Any]:
        return {k: v for k, v in self.items() if not k.startswith(SYNTHETIC_PREFIX)}


@dataclass
class ExecutionResult:
    variables: Dict[str, Any] = field(default_factory=dict)
    log: List[str] = field(default_factory=list)
    output: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def user_variables(self) -> Dict[str, Any]:
        return {k: v for k, v in self.variables.items() if not k.startswith(SYNTHETIC_PREFIX)}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "variables": self.variables,
            "log": self.log,
            "output": self.output,
            "errors": self.errors,
        }


class _Run:
    """Mutable state of a single `execute()` call."""

    def __init__(self, graph: Graph, hook: Optional[NodeVisitedHook]):
        self.graph = graph
        self.hook = hook
        self.env = Environment()
        self.evaluator = ExpressionEvaluator(self.env)
        self.walker = FlowWalker(graph, self.visit, on_cycle=self.on_cycle)
        self.result = ExecutionResult()

        self.handlers: Dict[NodeKind, Callable[[Node, Any, WalkContext], Optional[str]]] = {
            NodeKind.START: self.exec_start,
            NodeKind.END: self.exec_end,
            NodeKind.RETURN: self.exec_terminator,
            NodeKind.BREAK: self.exec_terminator,
            NodeKind.CONTINUE: self.exec_terminator,
            NodeKind.DECLARE_VARIABLE: self.exec_declare,
            NodeKind.ASSIGNMENT: self.exec_assignment,
            NodeKind.CONDITIONAL: self.exec_conditional,
            NodeKind.SWITCH_CASE: self.exec_switch,
            NodeKind.FOR_LOOP: self.exec_for,
            NodeKind.FOR_EACH: self.exec_for_each,
            NodeKind.WHILE_LOOP: self.exec_while,
            NodeKind.DO_WHILE_LOOP: self.exec_do_while,
            NodeKind.FUNCTION_DECLARATION: self.exec_narrative,
            NodeKind.FUNCTION_CALL: self.exec_narrative,
            NodeKind.ARITHMETIC_OPERATOR: self.exec_operator,
            NodeKind.COMPARISON_OPERATOR: self.exec_operator,
            NodeKind.LOGICAL_OPERATOR: self.exec_operator,
            NodeKind.ARRAY_PUSH: self.exec_array_push,
            NodeKind.ARRAY_POP: self.exec_array_pop,
            NodeKind.ARRAY_MAP: self.exec_narrative,
            NodeKind.ARRAY_FILTER: self.exec_narrative,
            NodeKind.ARRAY_REDUCE: self.exec_narrative,
            NodeKind.PRINT: self.exec_print,
            NodeKind.INPUT: self.exec_input,
            NodeKind.TRY: self.exec_narrative,
            NodeKind.CATCH: self.exec_narrative,
            NodeKind.THROW: self.exec_narrative,
            **{kind: self.exec_literal for kind in LITERAL_KINDS},
        }

    def emit(self, line: str):
        self.result.output.append(line)

    # ── Walker callbacks ──────────────────────────────────────────────────────

    def visit(self, node: Node, ctx: WalkContext) -> Optional[str]:
        self.result.log.append(f"🔄 Executing: {node.display_name}")
        logger.debug("Executing %s (%s)", node.id, node.type_name)

        if self.hook is not None:
            try:
                self.hook(node.id, node.display_name)
            except Exception:
                logger.exception("on_node_visited hook failed for node %s", node.id)

        handler = self.handlers.get(node.kind) if node.kind is not None else None
        if handler is None:
            self.emit(f"⚡ Unknown node type: {node.type_name}")
            return Handle.OUT
        return handler(node, node.block, ctx)

    def on_cycle(self, node: Node, ctx: WalkContext):
        logger.warning("Cycle detected at node %s", node.id)
        self.result.errors.append(f"❌ Infinite loop detected at node {node.id}")

    # ── Sequencing ────────────────────────────────────────────────────────────

    def exec_start(self, node, block, ctx):
        self.emit("🚀 Program started")
        return Handle.OUT

    def exec_end(self, node, block, ctx):
        self.emit("🏁 Program ended")
        self.walker.halt()
        return None

    def exec_terminator(self, node, block, ctx):
        self.emit({
            NodeKind.RETURN: "↩️ Return",
            NodeKind.BREAK: "⏹️ Break",
            NodeKind.CONTINUE: "⏭️ Continue",
        }[node.kind])
        return None

    def exec_narrative(self, node, block, ctx):
        # Logged only: no call stack, callbacks or exception unwinding is modelled
        data = block.to_data()
        lines = {
            NodeKind.FUNCTION_DECLARATION: "⚙️ Declared function {functionName}",
            NodeKind.FUNCTION_CALL: "📞 Called function {functionName}",
            NodeKind.ARRAY_MAP: "🗺️ Mapped {array}",
            NodeKind.ARRAY_FILTER: "🔍 Filtered {array}",
            NodeKind.ARRAY_REDUCE: "➖ Reduced {array}",
            NodeKind.TRY: "🛡️ Try block",
            NodeKind.CATCH: "🪤 Catch block ({errorVar})",
            NodeKind.THROW: "🚨 Throw: {error}",
        }
        self.emit(lines[node.kind].format(**data))
        return Handle.OUT

    # ── Variables ─────────────────────────────────────────────────────────────

    def _typed_value(self, raw: Any, value_type: ValueType) -> Any:
        if value_type == ValueType.STRING:
            if isinstance(raw, str):
                text = raw.strip()
                if len(text) >= 2 and text[0] in "\"'" and text[-1] == text[0]:
                    return text[1:-1]
                return raw
            return "" if raw is None else format_value(raw)
        if value_type == ValueType.BOOLEAN:
            return self.evaluator.resolve_operand(raw) is True
        if value_type in (ValueType.ARRAY, ValueType.OBJECT):
            return copy.deepcopy(materialize(raw, value_type))
        return self.evaluator.resolve_operand(raw)

    def exec_declare(self, node, block: DeclareVariableBlock, ctx):
        if is_blank(block.variable_name):
            self.emit("⚠️ Variable declaration missing name")
            return Handle.OUT
        value = self._typed_value(block.variable_value, block.value_type)
        self.env[block.variable_name] = value
        self.emit(f"📦 Declared {block.variable_type} {block.variable_name} = {format_value(value)}")
        return Handle.OUT

    def exec_assignment(self, node, block: AssignmentBlock, ctx):
        if is_blank(block.variable_name):
            self.emit("⚠️ Assignment missing variable name")
            return Handle.OUT
        value = self._typed_value(block.value, ValueType.parse(block.value_type))
        self.env[block.variable_name] = value
        self.emit(f"📝 Set {block.variable_name} = {format_value(value)}")
        return Handle.OUT

    def exec_input(self, node, block: InputBlock, ctx):
        if not is_blank(block.variable_name):
            self.env[block.variable_name] = INPUT_PLACEHOLDER
        self.emit(f"⌨️ Input for {block.variable_name}")
        return Handle.OUT

    def exec_literal(self, node, block: LiteralBlock, ctx):
        self.env[Environment.synthetic_key("literal", node.id)] = copy.deepcopy(block.value)
        return Handle.OUT

    # ── Branching ─────────────────────────────────────────────────────────────

    def exec_conditional(self, node, block: ConditionalBlock, ctx):
        ev = self.evaluator
        if block.uses_operands():
            left = ev.resolve_operand(block.left)
            right = ev.resolve_operand(block.right)
            result = ev.evaluate_comparison(left, block.operator, right)
            self.emit(f"❓ Condition: {format_value(left)} {block.operator} "
                      f"{format_value(right)} = {format_value(result)}")
        else:
            expression = block.expression()
            result = ev.evaluate_condition(expression)
            self.emit(f"❓ Condition: {expression} = {format_value(result)}")

        self.walker.walk_branch(node, Handle.TRUE if result else Handle.FALSE, ctx)
        return Handle.OUT

    def exec_switch(self, node, block: SwitchCaseBlock, ctx):
        value = self.env.get(block.variable)
        for case in block.cases:
            if self.evaluator.evaluate_comparison(value, "==", case.value):
                self.emit(f"🔀 Switch matched: {format_value(case.value)}")
                self.walker.walk_branch(node, format_value(case.value), ctx)
                return Handle.OUT

        if block.has_default:
            self.emit("🔀 Switch default case")
            self.walker.walk_branch(node, Handle.DEFAULT, ctx)
        return Handle.OUT

    # ── Loops ─────────────────────────────────────────────────────────────────

    def _body(self, node, ctx):
        self.walker.walk_branch(node, Handle.LOOP, ctx, loop=True)

    def exec_for(self, node, block: ForLoopBlock, ctx):
        ev = self.evaluator
        ev.execute_statement(block.init)
        iterations = 0
        while not self.walker.halted and iterations < MAX_LOOP_ITERATIONS:
            if not ev.evaluate_condition(block.condition):
                break
            self._body(node, ctx)
            ev.execute_statement(block.increment)
            iterations += 1

        if (iterations >= MAX_LOOP_ITERATIONS and not self.walker.halted
                and ev.evaluate_condition(block.condition)):
            logger.warning("For loop %s hit the iteration cap", node.id)
            self.emit(f"⚠️ For loop terminated after {MAX_LOOP_ITERATIONS} iterations (safety limit)")
        return Handle.OUT

    def exec_for_each(self, node, block: ForEachBlock, ctx):
        items = self.env.get(block.array)
        if isinstance(items, str):
            items = list(items)
        if not isinstance(items, list):
            items = []
        for item in list(items):
            if self.walker.halted:
                break
            self.env[block.item] = item
            self._body(node, ctx)
        return Handle.OUT

    def _cap_tripped(self, node):
        logger.warning("Loop %s hit the iteration cap", node.id)
        self.emit(f"⚠️ Loop terminated after {MAX_LOOP_ITERATIONS} iterations (safety limit)")

    def exec_while(self, node, block: WhileLoopBlock, ctx):
        ev = self.evaluator
        iterations = 0
        while not self.walker.halted and ev.evaluate_condition(block.condition):
            if iterations >= MAX_LOOP_ITERATIONS:
                self._cap_tripped(node)
                break
            self._body(node, ctx)
            iterations += 1
        return Handle.OUT

    def exec_do_while(self, node, block: DoWhileLoopBlock, ctx):
        ev = self.evaluator
        iterations = 0
        while not self.walker.halted:
            self._body(node, ctx)
            iterations += 1
            if self.walker.halted or not ev.evaluate_condition(block.condition):
                break
            if iterations >= MAX_LOOP_ITERATIONS:
                self._cap_tripped(node)
                break
        return Handle.OUT

    # ── Operators ─────────────────────────────────────────────────────────────

    def exec_operator(self, node, block, ctx):
        ev = self.evaluator
        if isinstance(block, ArithmeticOperatorBlock):
            prefix, icon = "arith", "➗"
            result = ev.evaluate_arithmetic(block.left, block.operator, block.right)
        elif isinstance(block, ComparisonOperatorBlock):
            prefix, icon = "comp", "⚖️"
            result = ev.evaluate_comparison(ev.resolve_operand(block.left), block.operator,
                                            ev.resolve_operand(block.right))
        else:
            prefix, icon = "logic", "🔀"
            result = ev.evaluate_logical(block.left, block.operator, block.right)

        self.emit(f"{icon} {operand_text(block.left)} {block.operator} "
                  f"{operand_text(block.right)} = {format_value(result)}")
        self.env[Environment.synthetic_key(prefix, node.id)] = result
        if not is_blank(block.result_var):
            self.env[block.result_var] = result
        return Handle.OUT

    # ── Arrays ────────────────────────────────────────────────────────────────

    def exec_array_push(self, node, block: ArrayPushBlock, ctx):
        if not isinstance(self.env.get(block.array), list):
            self.env[block.array] = []
        value = self.evaluator.resolve_operand(block.value)
        self.env[block.array].append(value)
        self.emit(f"📥 Pushed {format_value(value)} to {block.array}")
        return Handle.OUT

    def exec_array_pop(self, node, block: ArrayPopBlock, ctx):
        items = self.env.get(block.array)
        if isinstance(items, list):
            value = items.pop() if items else None
            self.emit(f"📤 Popped {format_value(value)} from {block.array}")
        return Handle.OUT

    # ── I/O ───────────────────────────────────────────────────────────────────

    def exec_print(self, node, block: PrintBlock, ctx):
        _, warning = self.evaluator.parse_strict(block.value)
        if warning and not is_blank(block.value):
            self.emit(f"⚠️ {warning}")
        self.emit(f"🖨️ {format_value(self.evaluator.resolve_operand(block.value))}")
        return Handle.OUT


class Executor:
    """
    Interprets a block graph.

    The graph is read-only; every `execute()` call starts from an empty
    environment, so one Executor can be run repeatedly.
    """

    def __init__(self,
                 nodes: Iterable[Node],
                 edges: Iterable[Edge] = (),
                 on_node_visited: Optional[NodeVisitedHook] = None):
        self.graph = as_graph(nodes, edges)
        self.on_node_visited = on_node_visited

    def execute(self) -> ExecutionResult:
        run = _Run(self.graph, self.on_node_visited)
        result = run.result

        validation_errors = validate(self.graph)
        if validation_errors:
            logger.info("Flow failed validation with %d error(s)", len(validation_errors))
            result.errors.extend(validation_errors)
            return result

        start = self.graph.start_node()
        if start is None:
            result.errors.append("❌ No start node found")
            return result

        logger.info("Executing flow: %d nodes, %d edges", len(self.graph.nodes), len(self.graph.edges))
        try:
            run.walker.walk(start.id)
        except Exception as e:
            logger.exception("Runtime error while executing flow")
            result.errors.append(f"❌ Runtime error: {e}")

        result.variables = copy.deepcopy(dict(run.env))
        logger.info("Flow finished: %d output line(s), %d error(s)", len(result.output), len(result.errors))
        return result


def execute(nodes: Iterable[Node], edges: Iterable[Edge] = (),
            on_node_visited: Optional[NodeVisitedHook] = None) -> ExecutionResult:
    return Executor(nodes, edges, on_node_visited).execute()
