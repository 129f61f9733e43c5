import math

import pytest

from blockflow.core.Evaluator import (
    ExpressionError,
    ExpressionEvaluator,
    apply_arithmetic,
    compare,
    format_value,
    is_truthy,
    loose_equals,
    parse_expression,
    strict_equals,
    to_number,
)


class TestCoercion:

    def test_format_value(self):
        assert format_value(None) == "undefined"
        assert format_value(True) == "true"
        assert format_value(2.0) == "2"
        assert format_value(2.5) == "2.5"
        assert format_value(math.nan) == "NaN"
        assert format_value(-math.inf) == "-Infinity"
        assert format_value([1, "a", None]) == "1,a,"
        assert format_value({"a": 1}) == "[object Object]"

    def test_to_number(self):
        assert to_number("") == 0
        assert to_number(" 42 ") == 42
        assert to_number(True) == 1
        assert math.isnan(to_number("abc"))
        assert math.isnan(to_number(None))
        assert to_number([]) == 0
        assert to_number(["7"]) == 7

    def test_numbers_stay_in_double_range(self):
        assert apply_arithmetic(2, "**", 20000) == math.inf
        assert apply_arithmetic(-2, "**", 1025) == -math.inf
        assert apply_arithmetic(10 ** 400, "*", 1) == math.inf
        assert to_number("9" * 5000) == math.inf
        assert compare(10 ** 400, ">", 0)
        assert is_truthy(10 ** 400)
        assert format_value(10 ** 400) == "Infinity"
        assert format_value(2 ** 70) == "1.1805916207174113e+21"
        assert format_value(0.5 * 4) == "2"

    def test_truthiness(self):
        assert not is_truthy(0)
        assert not is_truthy("")
        assert not is_truthy(None)
        assert not is_truthy(math.nan)
        assert is_truthy("0")
        assert is_truthy([])
        assert is_truthy({})

    def test_loose_and_strict_equality(self):
        assert loose_equals("3", 3)
        assert loose_equals(True, 1)
        assert loose_equals(None, None)
        assert not loose_equals(None, 0)
        assert not strict_equals("3", 3)
        assert strict_equals(3, 3.0)


class TestParser:

    def test_precedence(self):
        ev = ExpressionEvaluator({})
        assert ev.evaluate("2 + 3 * 4") == 14
        assert ev.evaluate("(2 + 3) * 4") == 20
        assert ev.evaluate("2 ** 3 ** 2") == 512
        assert ev.evaluate("-2 + 5") == 3

    def test_rejects_malformed_text(self):
        for text in ("", "1 +", "(1", "a ? b : c", "1 2"):
            with pytest.raises(ExpressionError):
                parse_expression(text)


class TestResolveOperand:

    def setup_method(self):
        self.env = {"x": 10, "name": "Ada", "flag": True}
        self.ev = ExpressionEvaluator(self.env)

    def test_rules_in_order(self):
        assert self.ev.resolve_operand("") == 0
        assert self.ev.resolve_operand(None) == 0
        assert self.ev.resolve_operand('"x"') == "x"
        assert self.ev.resolve_operand("'hi there'") == "hi there"
        assert self.ev.resolve_operand("3.5") == 3.5
        assert self.ev.resolve_operand("true") is True
        assert self.ev.resolve_operand("false") is False
        assert self.ev.resolve_operand("x") == 10
        assert self.ev.resolve_operand("x * 2 + 1") == 21
        assert self.ev.resolve_operand("hello world") == "hello world"

    def test_non_text_values_pass_through(self):
        assert self.ev.resolve_operand(7) == 7
        assert self.ev.resolve_operand(False) is False

    def test_arithmetic_over_strings_is_left_as_text(self):
        assert self.ev.resolve_operand("name + 1") == "name + 1"
        assert self.ev.resolve_operand("missing * 2") == "missing * 2"

    def test_parse_strict_reports_unbound_names(self):
        value, warning = self.ev.parse_strict("greeting")
        assert value == "greeting"
        assert warning == "Variable 'greeting' not found. Use quotes for strings: \"greeting\""

        assert self.ev.parse_strict("x") == (10, None)
        assert self.ev.parse_strict('"greeting"') == ("greeting", None)
        assert self.ev.parse_strict("") == ("", "Empty value")


class TestBlockOperations:

    def setup_method(self):
        self.env = {"a": 6, "b": "3"}
        self.ev = ExpressionEvaluator(self.env)

    def test_arithmetic(self):
        assert self.ev.evaluate_arithmetic("2", "+", "3") == 5
        assert self.ev.evaluate_arithmetic("a", "/", "b") == 2
        assert self.ev.evaluate_arithmetic("7", "%", "4") == 3
        assert self.ev.evaluate_arithmetic("a", "-", "10") == -4

    def test_division_and_modulo_by_zero_give_zero(self):
        assert self.ev.evaluate_arithmetic("5", "/", "0") == 0
        assert self.ev.evaluate_arithmetic("5", "%", "0") == 0

    def test_unknown_arithmetic_operator(self):
        assert self.ev.evaluate_arithmetic("5", "^", "2") == 0

    def test_comparison(self):
        assert self.ev.evaluate_comparison(3, "==", "3") is True
        assert self.ev.evaluate_comparison(3, "===", "3") is False
        assert self.ev.evaluate_comparison(2, "<", 10) is True
        assert self.ev.evaluate_comparison("2", "<", "10") is False
        assert self.ev.evaluate_comparison(1, "<>", 1) is False

    def test_logical(self):
        assert self.ev.evaluate_logical("true", "&&", "0") is False
        assert self.ev.evaluate_logical("a", "||", "") is True
        assert self.ev.evaluate_logical("0", "!", "") is True
        assert self.ev.evaluate_logical("1", "xor", "1") is False

    def test_condition(self):
        assert self.ev.evaluate_condition("a > 5 && b == 3") is True
        assert self.ev.evaluate_condition("status == ready") is False
        self.env["status"] = "ready"
        assert self.ev.evaluate_condition("status == ready") is True
        assert self.ev.evaluate_condition("") is False
        assert self.ev.evaluate_condition("a >") is False
        assert self.ev.evaluate_condition(True) is True

    def test_string_concatenation(self):
        assert self.ev.evaluate('"n=" + a') == "n=6"


class TestStatements:

    def setup_method(self):
        self.env = {}
        self.ev = ExpressionEvaluator(self.env)

    def test_init_and_increment(self):
        assert self.ev.execute_statement("let i = 0")
        assert self.env["i"] == 0
        self.ev.execute_statement("i++")
        self.ev.execute_statement("++i")
        assert self.env["i"] == 2
        self.ev.execute_statement("i += 3")
        assert self.env["i"] == 5
        self.ev.execute_statement("i--")
        assert self.env["i"] == 4

    def test_compound_statements(self):
        self.ev.execute_statement("i = 1, j = i * 10")
        assert self.env == {"i": 1, "j": 10}

    def test_string_append(self):
        self.env["s"] = "ab"
        self.ev.execute_statement('s += "c"')
        assert self.env["s"] == "abc"

    def test_invalid_statement(self):
        assert self.ev.execute_statement("i <") is False
        assert self.ev.execute_statement("") is False
