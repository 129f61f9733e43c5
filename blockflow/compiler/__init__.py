"""
Code generation
===============
Renders a block graph as text in one of three modes:

    logic       indented outline of the flow (alias: trace)
    javascript  executable C-family source (alias: c-family)
    python      indentation-based source covering a subset of blocks
                (alias: indentation-based)

    from blockflow.compiler import generate_code
    print(generate_code(nodes, edges, "javascript"))
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Iterable, Optional, Type

from ..core.GraphPrimitives import Edge, Node, as_graph
from .FlowGenerator import EMPTY_FLOW_PLACEHOLDER, FlowGenerator
from .JavaScriptGenerator import JavaScriptGenerator
from .LogicGenerator import LogicGenerator
from .PythonGenerator import PythonGenerator

logger = logging.getLogger(__name__)


class CodeMode(Enum):
    LOGIC = "logic"
    JAVASCRIPT = "javascript"
    PYTHON = "python"

    @staticmethod
    def parse(name: str) -> Optional['CodeMode']:
        if isinstance(name, CodeMode):
            return name
        key = (name or "").strip().lower()
        return _MODE_ALIASES.get(key)


_MODE_ALIASES: Dict[str, CodeMode] = {
    "logic": CodeMode.LOGIC,
    "trace": CodeMode.LOGIC,
    "javascript": CodeMode.JAVASCRIPT,
    "js": CodeMode.JAVASCRIPT,
    "c-family": CodeMode.JAVASCRIPT,
    "python": CodeMode.PYTHON,
    "py": CodeMode.PYTHON,
    "indentation-based": CodeMode.PYTHON,
}

GENERATORS: Dict[CodeMode, Type[FlowGenerator]] = {
    CodeMode.LOGIC: LogicGenerator,
    CodeMode.JAVASCRIPT: JavaScriptGenerator,
    CodeMode.PYTHON: PythonGenerator,
}


def generate_code(nodes: Iterable[Node], edges: Iterable[Edge] = (), mode="logic") -> str:
    """Render the graph in `mode`.  Never raises; failures come back as a comment."""
    try:
        graph = as_graph(nodes, edges)
        if not graph.nodes:
            return EMPTY_FLOW_PLACEHOLDER

        code_mode = CodeMode.parse(mode)
        if code_mode is None:
            return f"// Unknown code mode: {mode}"

        logger.debug("Generating %s code for %d nodes", code_mode.value, len(graph.nodes))
        return GENERATORS[code_mode](graph).generate()
    except Exception as e:
        logger.exception("Code generation failed")
        return f"// Code generation failed: {e}"


__all__ = [
    "CodeMode",
    "FlowGenerator",
    "JavaScriptGenerator",
    "LogicGenerator",
    "PythonGenerator",
    "generate_code",
]
