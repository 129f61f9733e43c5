from enum import Enum
from typing import Optional


# Safety cap shared by the executor and the generated loop counters
MAX_LOOP_ITERATIONS = 100

# Value bound by `input` blocks; there is no interactive channel
INPUT_PLACEHOLDER = "user input"

# Prefix for interpreter-internal environment keys. Identifiers may contain
# `$` but never `#`, so synthetic entries cannot shadow declared variables.
SYNTHETIC_PREFIX = "#"


class Handle:
    """Edge source-handle labels shared by the executor and every generator."""
    OUT = "out"
    TRUE = "true"
    FALSE = "false"
    LOOP = "loop"
    BODY = "body"
    DEFAULT = "default"


class NodeKind(Enum):
    START = "start"
    END = "end"
    RETURN = "return"
    BREAK = "break"
    CONTINUE = "continue"
    DECLARE_VARIABLE = "declareVariable"
    ASSIGNMENT = "assignment"
    CONDITIONAL = "conditional"
    SWITCH_CASE = "switchCase"
    FOR_LOOP = "forLoop"
    FOR_EACH = "forEach"
    WHILE_LOOP = "whileLoop"
    DO_WHILE_LOOP = "doWhileLoop"
    FUNCTION_DECLARATION = "functionDeclaration"
    FUNCTION_CALL = "functionCall"
    ARITHMETIC_OPERATOR = "arithmeticOperator"
    COMPARISON_OPERATOR = "comparisonOperator"
    LOGICAL_OPERATOR = "logicalOperator"
    ARRAY_PUSH = "arrayPush"
    ARRAY_POP = "arrayPop"
    ARRAY_MAP = "arrayMap"
    ARRAY_FILTER = "arrayFilter"
    ARRAY_REDUCE = "arrayReduce"
    PRINT = "print"
    INPUT = "input"
    TRY = "try"
    CATCH = "catch"
    THROW = "throw"

    # Literal value blocks from the palette
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"

    @staticmethod
    def parse(type_name: str) -> Optional['NodeKind']:
        try:
            return NodeKind(type_name)
        except ValueError:
            return None


LITERAL_KINDS = frozenset({
    NodeKind.NUMBER,
    NodeKind.STRING,
    NodeKind.BOOLEAN,
    NodeKind.ARRAY,
    NodeKind.OBJECT,
})


class ValueType(Enum):
    ANY = "any"
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"

    @staticmethod
    def parse(type_name: Optional[str]) -> 'ValueType':
        try:
            return ValueType(type_name)
        except ValueError:
            return ValueType.ANY
