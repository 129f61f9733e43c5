"""
Depth-first flow walking
========================
The executor and every code generator read the graph the same way:

* follow the `out` edge from node to node,
* enter branch and loop bodies through their handle (`true`, `loop`, ...),
* remember which nodes the current path has already passed through.

`FlowWalker` owns that logic.  Callers supply a `visit(node, ctx)` callback
that handles one node and returns the handle to continue through, or None to
end the path.  A callback opens a nested path with `walker.walk_branch(...)`;
the nested path starts from a *copy* of the current visited set, so sibling
branches and successive loop iterations never trip each other's guard.

Revisiting a node on one path is a cycle, except when the node is a loop that
encloses the current body: that is the body's back-edge, and the iteration
simply ends there.
"""

from __future__ import annotations

import logging
from typing import Callable, FrozenSet, Optional, Set

from .GraphPrimitives import Graph, Node

logger = logging.getLogger(__name__)


class WalkContext:
    """Per-path state: visited ids, enclosing loops and nesting depth."""

    def __init__(self,
                 visited: Optional[Set[str]] = None,
                 loop_heads: FrozenSet[str] = frozenset(),
                 depth: int = 0):
        self.visited: Set[str] = set(visited or ())
        self.loop_heads = loop_heads
        self.depth = depth

    def branch(self, loop_head: Optional[str] = None, indent: int = 1) -> 'WalkContext':
        heads = self.loop_heads | {loop_head} if loop_head else self.loop_heads
        return WalkContext(self.visited, heads, self.depth + indent)

    def __repr__(self):
        return f"WalkContext(depth={self.depth}, visited={len(self.visited)})"


VisitFn = Callable[[Node, WalkContext], Optional[str]]
CycleFn = Callable[[Node, WalkContext], None]


class FlowWalker:
    def __init__(self, graph: Graph, visit: VisitFn, on_cycle: Optional[CycleFn] = None):
        self.graph = graph
        self.visit = visit
        self.on_cycle = on_cycle
        self.halted = False

    def halt(self):
        """Stop every path, including the loops that are still iterating."""
        self.halted = True

    def walk(self, node_id: Optional[str], ctx: Optional[WalkContext] = None):
        ctx = ctx if ctx is not None else WalkContext()
        current = self.graph.get_node(node_id) if node_id is not None else None

        while current is not None and not self.halted:
            if current.id in ctx.visited:
                if current.id in ctx.loop_heads:
                    logger.debug("Back-edge to loop %s ends the iteration", current.id)
                elif self.on_cycle is not None:
                    self.on_cycle(current, ctx)
                return

            ctx.visited.add(current.id)
            handle = self.visit(current, ctx)
            if handle is None or self.halted:
                return
            current = self.graph.successor(current.id, handle)

    def walk_branch(self, node: Node, handle: str, ctx: WalkContext,
                    loop: bool = False, indent: int = 1) -> bool:
        """
        Walk the path leaving `node` through `handle` with a copied context.
        Returns False when there is no such edge.
        """
        target = self.graph.successor(node.id, handle)
        if target is None:
            return False
        self.walk(target.id, ctx.branch(node.id if loop else None, indent))
        return True
