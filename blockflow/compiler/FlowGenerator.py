"""
Generator base
==============
Every target renders the graph by walking it with the same `FlowWalker` the
executor uses, so `true`/`false`/`loop`/`out` handles mean the same thing in
generated source as they do at run time.  Subclasses map node kinds to
rendering methods; each method writes lines and returns the handle to
continue through (usually `out`), or None to end the path.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, Dict, Iterable, Optional

from ..core.GraphPrimitives import Edge, Graph, Node, as_graph
from ..core.Traversal import FlowWalker, WalkContext
from ..core.Types import Handle, NodeKind
from .CodeWriter import CodeWriter

logger = logging.getLogger(__name__)


EMPTY_FLOW_PLACEHOLDER = "// No blocks to generate code from"
NO_START_MESSAGE = "No start node found"

RenderFn = Callable[[Node, object, WalkContext], Optional[str]]


class FlowGenerator:
    indent_unit = "    "
    # Indentation level of the first statement after `begin()`
    body_depth = 0

    def __init__(self, nodes: Iterable[Node], edges: Iterable[Edge] = ()):
        self.graph: Graph = as_graph(nodes, edges)
        self.writer = CodeWriter(self.indent_unit)
        self.walker = FlowWalker(self.graph, self.visit)
        self._names: Dict[str, int] = defaultdict(int)

    # ── Hooks for subclasses ──────────────────────────────────────────────────

    def renderers(self) -> Dict[NodeKind, RenderFn]:
        raise NotImplementedError

    def begin(self):
        pass

    def finish(self):
        pass

    def missing_start(self) -> str:
        return NO_START_MESSAGE

    def render_unknown(self, node: Node, ctx: WalkContext) -> Optional[str]:
        return Handle.OUT

    # ── Driver ────────────────────────────────────────────────────────────────

    def generate(self) -> str:
        if not self.graph.nodes:
            return EMPTY_FLOW_PLACEHOLDER

        # Fresh state so repeated calls render byte-identical text
        self.writer = CodeWriter(self.indent_unit)
        self.walker = FlowWalker(self.graph, self.visit)
        self._names = defaultdict(int)
        self._renderers = self.renderers()

        start = self.graph.start_node()
        if start is None:
            message = self.missing_start()
            if message:
                return message

        self.begin()
        if start is not None:
            self.walker.walk(start.id, WalkContext(depth=self.body_depth))
        self.finish()
        logger.debug("%s rendered %d lines", type(self).__name__, len(self.writer.lines()))
        return self.writer.result()

    def visit(self, node: Node, ctx: WalkContext) -> Optional[str]:
        render = self._renderers.get(node.kind) if node.kind is not None else None
        if render is None:
            return self.render_unknown(node, ctx)
        return render(node, node.block, ctx)

    # ── Helpers ───────────────────────────────────────────────────────────────

    def line(self, ctx: WalkContext, text: str = "", extra: int = 0):
        self.writer.writeln(text, depth=ctx.depth + extra)

    def body(self, node: Node, handle: str, ctx: WalkContext, loop: bool = False, indent: int = 1) -> bool:
        return self.walker.walk_branch(node, handle, ctx, loop=loop, indent=indent)

    def has_branch(self, node: Node, handle: str) -> bool:
        return self.graph.successor(node.id, handle) is not None

    def fresh_name(self, base: str) -> str:
        """`base`, then `base2`, `base3`, ... in walk order."""
        self._names[base] += 1
        count = self._names[base]
        return base if count == 1 else f"{base}{count}"

    def line_count(self) -> int:
        return len(self.writer.lines())
