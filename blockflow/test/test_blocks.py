import pytest

from blockflow.core.Blocks import (
    Block,
    ConditionalBlock,
    DeclareVariableBlock,
    FunctionDeclarationBlock,
    SwitchCaseBlock,
    UnknownBlock,
    materialize,
)
from blockflow.core.Types import NodeKind, ValueType


class TestBlockRegistry:

    def test_every_kind_is_registered(self):
        registered = set(Block.registered_kinds())
        assert registered == set(NodeKind)

    def test_duplicate_registration_is_rejected(self):
        with pytest.raises(ValueError):
            @Block.register(NodeKind.PRINT)
            class AnotherPrint(Block):
                pass

    def test_unknown_type_keeps_its_data(self):
        block = Block.from_data("teleport", {"label": "Beam", "target": "mars"})
        assert isinstance(block, UnknownBlock)
        assert block.kind is None
        assert block.to_data() == {"target": "mars"}


class TestFromData:

    def test_camel_case_keys(self):
        block = Block.from_data("declareVariable", {"variableName": "n", "variableValue": "5"})
        assert isinstance(block, DeclareVariableBlock)
        assert block.variable_name == "n"
        assert block.variable_type == "number"
        assert block.value_type is ValueType.NUMBER

    def test_initial_value_alias(self):
        block = Block.from_data("declareVariable", {"variableName": "n", "initialValue": 3})
        assert block.variable_value == 3
        assert "initialValue" not in block.to_data()

    def test_array_values_are_materialised(self):
        block = Block.from_data("declareVariable", {
            "variableName": "xs", "variableType": "array", "variableValue": "[1, 2, 3]",
        })
        assert block.variable_value == [1, 2, 3]

        broken = Block.from_data("declareVariable", {
            "variableName": "xs", "variableType": "array", "variableValue": "[1, 2",
        })
        assert broken.variable_value == []

    def test_ui_keys_are_dropped_and_extras_kept(self):
        block = Block.from_data("print", {
            "value": '"hi"', "updateNodeData": "fn", "blockType": "print", "color": "red",
        })
        assert block.to_data() == {"value": '"hi"', "color": "red"}

    def test_switch_cases_and_default_key(self):
        block = Block.from_data("switchCase", {
            "variable": "day",
            "cases": [{"value": 1, "label": "Mon"}, "2"],
            "default": False,
        })
        assert isinstance(block, SwitchCaseBlock)
        assert [c.value for c in block.cases] == [1, "2"]
        assert block.has_default is False
        assert block.to_data()["cases"] == [{"value": 1, "label": "Mon"}, {"value": "2", "label": "2"}]

    def test_function_parameters_and_async_flag(self):
        block = Block.from_data("functionDeclaration", {
            "functionName": "add", "parameters": "a, b", "async": "true",
        })
        assert isinstance(block, FunctionDeclarationBlock)
        assert block.parameters == ["a", "b"]
        assert block.is_async is True
        assert block.to_data()["async"] is True


class TestConditionalBlock:

    def test_operand_form(self):
        block = Block.from_data("conditional", {"left": "x", "operator": ">", "right": 5})
        assert isinstance(block, ConditionalBlock)
        assert block.uses_operands()
        assert block.expression() == "x > 5"

    def test_free_form_condition(self):
        block = Block.from_data("conditional", {"conditions": [{"condition": " x > 5 "}]})
        assert not block.uses_operands()
        assert block.expression() == "x > 5"
        assert block.required_condition() == "x > 5"

    def test_missing_condition(self):
        assert Block.from_data("conditional", {}).required_condition() == ""


class TestMaterialize:

    def test_shapes(self):
        assert materialize('{"a": 1}', ValueType.OBJECT) == {"a": 1}
        assert materialize("[1]", ValueType.OBJECT) == {}
        assert materialize(None, ValueType.ARRAY) == []
        assert materialize("5", ValueType.NUMBER) == "5"
