"""
Per-kind block attributes
=========================
Every node carries exactly one Block: a dataclass holding the attributes its
kind needs.  Blocks are registered against a NodeKind so the JSON layer can
build the right variant from an editor `data` dict.

Field names are snake_case in Python and camelCase on the wire
(`variable_name` <-> `variableName`).  A field can override its wire key with
`metadata={"key": ...}` and supply `decode` / `encode` hooks for values that
need shaping (switch cases, materialised array literals).

Keys in the editor dict that no field consumes are kept in `extras` so an
import/export round trip does not lose them.

    block = Block.from_data("declareVariable", {"variableName": "n", "variableValue": 1})
    block.variable_name      # "n"
    block.to_data()          # {"variableName": "n", "variableType": "number", "variableValue": 1}
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields
from typing import Any, Callable, ClassVar, Dict, List, Optional, Type

from .Types import NodeKind, ValueType

logger = logging.getLogger(__name__)


# Editor keys that only drive the React canvas
UI_ONLY_KEYS = frozenset({"blockType", "updateNodeData", "onNodeTap", "selectedForConnect"})


# ── Field coercion helpers ────────────────────────────────────────────────────

def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _operand(value: Any) -> Any:
    # Operands may legitimately be numbers or booleans on the wire.
    return "" if value is None else value


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("", "false", "0")
    return bool(value)


def _string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [_text(v) for v in value]


def _parse_json_text(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return None


def materialize(value: Any, value_type: ValueType) -> Any:
    """
    Turn serialised array/object text into structured values.

    Any other type passes through unchanged.  Text that does not parse to the
    expected shape yields an empty list / dict.
    """
    if value_type == ValueType.ARRAY:
        if isinstance(value, (list, tuple)):
            return list(value)
        if isinstance(value, str):
            parsed = _parse_json_text(value)
            return parsed if isinstance(parsed, list) else []
        return []

    if value_type == ValueType.OBJECT:
        if isinstance(value, dict):
            return dict(value)
        if isinstance(value, str):
            parsed = _parse_json_text(value)
            return parsed if isinstance(parsed, dict) else {}
        return {}

    return value


def operand_text(value: Any) -> str:
    """Render an operand back into the textual form the user typed."""
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return _text(value)


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


TEXT = {"decode": _text}
OPERAND = {"decode": _operand}
FLAG = {"decode": _flag}
STRINGS = {"decode": _string_list}


# ── Base block ────────────────────────────────────────────────────────────────

@dataclass
class Block:
    kind: ClassVar[Optional[NodeKind]] = None
    _block_registry: ClassVar[Dict[NodeKind, Type['Block']]] = {}

    extras: Dict[str, Any] = field(default_factory=dict, metadata={"skip": True})

    @classmethod
    def register(cls, kind: NodeKind) -> Callable[[Type['Block']], Type['Block']]:
        """Decorator to register a block class for a node kind."""
        def decorator(subclass: Type['Block']) -> Type['Block']:
            if cls._block_registry.get(kind):
                raise ValueError(f"Block kind '{kind.value}' is already registered.")
            subclass.kind = kind
            cls._block_registry[kind] = subclass
            return subclass
        return decorator

    @classmethod
    def block_class(cls, kind: Optional[NodeKind]) -> Type['Block']:
        if kind is None:
            return UnknownBlock
        return cls._block_registry.get(kind, UnknownBlock)

    @classmethod
    def registered_kinds(cls) -> List[NodeKind]:
        return list(cls._block_registry.keys())

    @classmethod
    def from_data(cls, type_name: str, data: Optional[Dict[str, Any]] = None) -> 'Block':
        """Factory: build the registered variant for `type_name` from an editor dict."""
        data = dict(data or {})
        block_cls = cls.block_class(NodeKind.parse(type_name))
        if block_cls is UnknownBlock:
            logger.debug("Unknown block type %r kept as raw data", type_name)

        values: Dict[str, Any] = {}
        consumed = set(UI_ONLY_KEYS) | {"label"}
        for f in fields(block_cls):
            if f.metadata.get("skip"):
                continue
            key = f.metadata.get("key", _camel(f.name))
            consumed.add(key)
            if key in data:
                decode = f.metadata.get("decode")
                values[f.name] = decode(data[key]) if decode else data[key]

        consumed |= block_cls._prepare(values, data)
        values["extras"] = {k: v for k, v in data.items() if k not in consumed}
        return block_cls(**values)

    @classmethod
    def _prepare(cls, values: Dict[str, Any], data: Dict[str, Any]) -> set:
        """Hook for aliases and materialisation.  Returns extra consumed keys."""
        return set()

    def to_data(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for f in fields(self):
            if f.metadata.get("skip"):
                continue
            key = f.metadata.get("key", _camel(f.name))
            value = getattr(self, f.name)
            encode = f.metadata.get("encode")
            data[key] = encode(value) if encode else value
        data.update(self.extras)
        return data

    # Attributes the validator checks for blankness.  None means "not required".
    def required_name(self) -> Optional[str]:
        return None

    def required_condition(self) -> Optional[str]:
        return None


@Block.register(NodeKind.START)
@dataclass
class StartBlock(Block):
    pass


@Block.register(NodeKind.END)
@dataclass
class EndBlock(Block):
    pass


@Block.register(NodeKind.RETURN)
@dataclass
class ReturnBlock(Block):
    pass


@Block.register(NodeKind.BREAK)
@dataclass
class BreakBlock(Block):
    pass


@Block.register(NodeKind.CONTINUE)
@dataclass
class ContinueBlock(Block):
    pass


# ── Variables ─────────────────────────────────────────────────────────────────

@Block.register(NodeKind.DECLARE_VARIABLE)
@dataclass
class DeclareVariableBlock(Block):
    variable_name: str = field(default="", metadata=TEXT)
    variable_type: str = field(default="number", metadata=TEXT)
    variable_value: Any = None

    @classmethod
    def _prepare(cls, values, data):
        # Older flows stored the value under `initialValue`.
        if "variableValue" not in data and "initialValue" in data:
            values["variable_value"] = data["initialValue"]
        value_type = ValueType.parse(values.get("variable_type", "number"))
        values["variable_value"] = materialize(values.get("variable_value"), value_type)
        return {"initialValue"}

    @property
    def value_type(self) -> ValueType:
        return ValueType.parse(self.variable_type)

    def required_name(self) -> Optional[str]:
        return self.variable_name


@Block.register(NodeKind.ASSIGNMENT)
@dataclass
class AssignmentBlock(Block):
    variable_name: str = field(default="", metadata=TEXT)
    value: Any = field(default="", metadata=OPERAND)
    value_type: str = field(default="", metadata=TEXT)

    def required_name(self) -> Optional[str]:
        return self.variable_name


# ── Branching ─────────────────────────────────────────────────────────────────

@Block.register(NodeKind.CONDITIONAL)
@dataclass
class ConditionalBlock(Block):
    left: Any = field(default="", metadata=OPERAND)
    operator: str = field(default="==", metadata=TEXT)
    right: Any = field(default="", metadata=OPERAND)
    conditions: List[Dict[str, Any]] = field(default_factory=list)
    else_branch: bool = field(default=True, metadata=FLAG)

    def uses_operands(self) -> bool:
        return not (is_blank(self.left) and is_blank(self.right))

    def expression(self) -> str:
        """The condition as text: `left op right`, or the first free-form condition."""
        if self.uses_operands():
            return f"{operand_text(self.left)} {self.operator} {operand_text(self.right)}"
        for clause in self.conditions:
            text = _text(clause.get("condition") if isinstance(clause, dict) else clause)
            if text.strip():
                return text.strip()
        return ""

    def required_condition(self) -> Optional[str]:
        return self.expression()


@dataclass
class SwitchCase:
    value: Any
    label: str = ""


def _decode_cases(value: Any) -> List[SwitchCase]:
    cases = []
    for item in value or []:
        if isinstance(item, dict):
            cases.append(SwitchCase(item.get("value"), _text(item.get("label"))))
        else:
            cases.append(SwitchCase(item, _text(item)))
    return cases


def _encode_cases(cases: List[SwitchCase]) -> List[Dict[str, Any]]:
    return [{"value": c.value, "label": c.label} for c in cases]


@Block.register(NodeKind.SWITCH_CASE)
@dataclass
class SwitchCaseBlock(Block):
    variable: str = field(default="", metadata=TEXT)
    cases: List[SwitchCase] = field(
        default_factory=list,
        metadata={"decode": _decode_cases, "encode": _encode_cases},
    )
    has_default: bool = field(default=True, metadata={"key": "default", "decode": _flag})


# ── Loops ─────────────────────────────────────────────────────────────────────

@Block.register(NodeKind.FOR_LOOP)
@dataclass
class ForLoopBlock(Block):
    init: str = field(default="", metadata=TEXT)
    condition: str = field(default="", metadata=TEXT)
    increment: str = field(default="", metadata=TEXT)

    def required_condition(self) -> Optional[str]:
        return self.condition


@Block.register(NodeKind.FOR_EACH)
@dataclass
class ForEachBlock(Block):
    array: str = field(default="", metadata=TEXT)
    item: str = field(default="item", metadata=TEXT)


@Block.register(NodeKind.WHILE_LOOP)
@dataclass
class WhileLoopBlock(Block):
    condition: str = field(default="", metadata=TEXT)

    def required_condition(self) -> Optional[str]:
        return self.condition


@Block.register(NodeKind.DO_WHILE_LOOP)
@dataclass
class DoWhileLoopBlock(Block):
    condition: str = field(default="", metadata=TEXT)

    def required_condition(self) -> Optional[str]:
        return self.condition


# ── Functions ─────────────────────────────────────────────────────────────────

@Block.register(NodeKind.FUNCTION_DECLARATION)
@dataclass
class FunctionDeclarationBlock(Block):
    function_name: str = field(default="", metadata=TEXT)
    parameters: List[str] = field(default_factory=list, metadata=STRINGS)
    return_type: str = field(default="void", metadata=TEXT)
    is_async: bool = field(default=False, metadata={"key": "async", "decode": _flag})


@Block.register(NodeKind.FUNCTION_CALL)
@dataclass
class FunctionCallBlock(Block):
    function_name: str = field(default="", metadata=TEXT)
    arguments: List[str] = field(default_factory=list, metadata=STRINGS)


# ── Operators ─────────────────────────────────────────────────────────────────

@dataclass
class OperatorBlock(Block):
    left: Any = field(default="", metadata=OPERAND)
    operator: str = field(default="", metadata=TEXT)
    right: Any = field(default="", metadata=OPERAND)
    result_var: str = field(default="", metadata=TEXT)


@Block.register(NodeKind.ARITHMETIC_OPERATOR)
@dataclass
class ArithmeticOperatorBlock(OperatorBlock):
    operator: str = field(default="+", metadata=TEXT)


@Block.register(NodeKind.COMPARISON_OPERATOR)
@dataclass
class ComparisonOperatorBlock(OperatorBlock):
    operator: str = field(default="==", metadata=TEXT)


@Block.register(NodeKind.LOGICAL_OPERATOR)
@dataclass
class LogicalOperatorBlock(OperatorBlock):
    operator: str = field(default="&&", metadata=TEXT)


# ── Arrays ────────────────────────────────────────────────────────────────────

@Block.register(NodeKind.ARRAY_PUSH)
@dataclass
class ArrayPushBlock(Block):
    array: str = field(default="", metadata=TEXT)
    value: Any = field(default="", metadata=OPERAND)


@Block.register(NodeKind.ARRAY_POP)
@dataclass
class ArrayPopBlock(Block):
    array: str = field(default="", metadata=TEXT)


@Block.register(NodeKind.ARRAY_MAP)
@dataclass
class ArrayMapBlock(Block):
    array: str = field(default="", metadata=TEXT)
    callback: str = field(default="", metadata=TEXT)


@Block.register(NodeKind.ARRAY_FILTER)
@dataclass
class ArrayFilterBlock(Block):
    array: str = field(default="", metadata=TEXT)
    callback: str = field(default="", metadata=TEXT)


@Block.register(NodeKind.ARRAY_REDUCE)
@dataclass
class ArrayReduceBlock(Block):
    array: str = field(default="", metadata=TEXT)
    callback: str = field(default="", metadata=TEXT)
    initial_value: Any = field(default=0, metadata=OPERAND)


# ── I/O ───────────────────────────────────────────────────────────────────────

@Block.register(NodeKind.PRINT)
@dataclass
class PrintBlock(Block):
    value: Any = field(default="", metadata=OPERAND)


@Block.register(NodeKind.INPUT)
@dataclass
class InputBlock(Block):
    prompt: str = field(default="", metadata=TEXT)
    variable_name: str = field(default="", metadata=TEXT)

    def required_name(self) -> Optional[str]:
        return self.variable_name


# ── Error handling ────────────────────────────────────────────────────────────

@Block.register(NodeKind.TRY)
@dataclass
class TryBlock(Block):
    pass


@Block.register(NodeKind.CATCH)
@dataclass
class CatchBlock(Block):
    error_var: str = field(default="err", metadata=TEXT)


@Block.register(NodeKind.THROW)
@dataclass
class ThrowBlock(Block):
    error: str = field(default="", metadata=TEXT)


# ── Literal values ────────────────────────────────────────────────────────────

@dataclass
class LiteralBlock(Block):
    value: Any = None


@Block.register(NodeKind.NUMBER)
@dataclass
class NumberBlock(LiteralBlock):
    value: Any = 0


@Block.register(NodeKind.STRING)
@dataclass
class StringBlock(LiteralBlock):
    value: Any = field(default="", metadata=TEXT)


@Block.register(NodeKind.BOOLEAN)
@dataclass
class BooleanBlock(LiteralBlock):
    value: Any = field(default=False, metadata=FLAG)


@Block.register(NodeKind.ARRAY)
@dataclass
class ArrayBlock(LiteralBlock):
    value: Any = field(default_factory=list)

    @classmethod
    def _prepare(cls, values, data):
        values["value"] = materialize(values.get("value"), ValueType.ARRAY)
        return set()


@Block.register(NodeKind.OBJECT)
@dataclass
class ObjectBlock(LiteralBlock):
    value: Any = field(default_factory=dict)

    @classmethod
    def _prepare(cls, values, data):
        values["value"] = materialize(values.get("value"), ValueType.OBJECT)
        return set()


@dataclass
class UnknownBlock(Block):
    """Holds the raw editor data of a type this interpreter does not know."""
    pass
