"""Graph model, expression evaluator, validator and interpreter."""
from .Blocks import Block
from .Evaluator import ExpressionError, ExpressionEvaluator
from .Executor import ExecutionResult, Executor, execute
from .GraphPrimitives import Edge, Graph, Node
from .Types import Handle, NodeKind, ValueType
from .Validator import validate

__all__ = [
    "Block",
    "Edge",
    "ExecutionResult",
    "Executor",
    "ExpressionError",
    "ExpressionEvaluator",
    "Graph",
    "Handle",
    "Node",
    "NodeKind",
    "ValueType",
    "execute",
    "validate",
]
