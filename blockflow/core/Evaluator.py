"""
Expression evaluation
=====================
Operands, conditions and loop statements typed into blocks are small
JavaScript-flavoured expressions.  They are tokenized and parsed into a tiny
expression tree and evaluated against the variable environment; nothing is
handed to `eval`.

Grammar (lowest precedence first):

    or      := and ( "||" and )*
    and     := eq ( "&&" eq )*
    eq      := cmp ( ("==" | "!=" | "===" | "!==") cmp )*
    cmp     := sum ( ("<" | ">" | "<=" | ">=") sum )*
    sum     := term ( ("+" | "-") term )*
    term    := unary ( ("*" | "/" | "%") unary )*
    unary   := ("!" | "-" | "+") unary | power
    power   := primary ( "**" unary )?
    primary := NUMBER | STRING | IDENT | "(" or ")"

Coercion follows JavaScript loosely: `"3" == 3` is true, `+` concatenates when
either side is a string, and division or modulo by zero yields 0.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, List, MutableMapping, Optional, Tuple

logger = logging.getLogger(__name__)


class ExpressionError(ValueError):
    pass


# ── Coercion helpers ──────────────────────────────────────────────────────────

NUMERIC_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

# Integers below this magnitude print without an exponent
PLAIN_INTEGER_LIMIT = 10 ** 21


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def as_float(value: Any) -> float:
    """Convert to a double, saturating out-of-range integers to +-inf."""
    try:
        return float(value)
    except OverflowError:
        return math.inf if value > 0 else -math.inf


def normalize_number(value: Any) -> Any:
    """
    Keep numbers inside the double range and collapse integral values to int,
    so `6 / 3` reads as `2`.  Magnitudes from 1e21 up stay floats and print
    with an exponent.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        value = as_float(value)
    if isinstance(value, float) and math.isfinite(value) and value.is_integer() \
            and abs(value) < PLAIN_INTEGER_LIMIT:
        return int(value)
    return value


def parse_number(text: str) -> Optional[Any]:
    text = text.strip()
    if not NUMERIC_RE.match(text):
        return None
    # float() saturates very long literals to inf instead of raising
    return normalize_number(float(text))


def to_number(value: Any) -> Any:
    if isinstance(value, bool):
        return 1 if value else 0
    if is_number(value):
        return normalize_number(value)
    if value is None:
        return math.nan
    if isinstance(value, str):
        if value.strip() == "":
            return 0
        parsed = parse_number(value)
        return math.nan if parsed is None else parsed
    if isinstance(value, list):
        if not value:
            return 0
        if len(value) == 1:
            return to_number(value[0])
    return math.nan


def is_truthy(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return value != 0 and value == value
    if isinstance(value, str):
        return value != ""
    # Arrays and objects are always truthy, even when empty
    return True


def format_value(value: Any) -> str:
    """Render a runtime value the way the output console shows it."""
    if value is None:
        return "undefined"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        value = normalize_number(value)
        if isinstance(value, float):
            if math.isnan(value):
                return "NaN"
            if math.isinf(value):
                return "Infinity" if value > 0 else "-Infinity"
        return str(value)
    if isinstance(value, list):
        return ",".join("" if v is None else format_value(v) for v in value)
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)


def loose_equals(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, (list, dict)) and isinstance(right, (list, dict)):
        return left is right
    if isinstance(left, bool) or isinstance(right, bool):
        return loose_equals(to_number(left) if isinstance(left, bool) else left,
                            to_number(right) if isinstance(right, bool) else right)
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    if isinstance(left, (list, dict)):
        return loose_equals(format_value(left), right)
    if isinstance(right, (list, dict)):
        return loose_equals(left, format_value(right))
    return to_number(left) == to_number(right)


def strict_equals(left: Any, right: Any) -> bool:
    if is_number(left) and is_number(right):
        return left == right
    if type(left) is not type(right):
        return False
    if isinstance(left, (list, dict)):
        return left is right
    return left == right


# ── Tokenizer ─────────────────────────────────────────────────────────────────

@dataclass
class Token:
    kind: str
    value: str
    pos: int


TOKEN_RE = re.compile(
    r"""
    (?P<NUMBER>\d+(?:\.\d*)?(?:[eE][+-]?\d+)?|\.\d+)
  | (?P<STRING>"(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*')
  | (?P<OP>===|!==|\*\*|==|!=|<=|>=|&&|\|\||[+\-*/%<>!()])
  | (?P<ID>[A-Za-z_$][A-Za-z0-9_$]*)
  | (?P<SKIP>\s+)
  | (?P<MISMATCH>.)
    """,
    re.VERBOSE,
)


def tokenize(source: str) -> List[Token]:
    tokens: List[Token] = []
    for m in TOKEN_RE.finditer(source):
        kind = m.lastgroup or "MISMATCH"
        value = m.group(0)
        if kind == "SKIP":
            continue
        if kind == "MISMATCH":
            raise ExpressionError(f"Unexpected character {value!r} at {m.start()}")
        tokens.append(Token(kind, value, m.start()))
    tokens.append(Token("EOF", "", len(source)))
    return tokens


# ── Expression tree ───────────────────────────────────────────────────────────

@dataclass
class Expr:
    pass


@dataclass
class Literal(Expr):
    value: Any


@dataclass
class Var(Expr):
    name: str


@dataclass
class Unary(Expr):
    op: str
    expr: Expr


@dataclass
class Binary(Expr):
    left: Expr
    op: str
    right: Expr


ARITHMETIC_OPS = frozenset({"+", "-", "*", "/", "%", "**"})
COMPARISON_OPS = frozenset({"==", "!=", "===", "!==", "<", ">", "<=", ">="})
KEYWORD_LITERALS = {"true": True, "false": False, "null": None, "undefined": None}


def _unquote(text: str) -> str:
    body = text[1:-1]
    return re.sub(r"\\(.)", r"\1", body)


class Parser:
    def __init__(self, source: str):
        self.tokens = tokenize(source)
        self.i = 0

    def peek(self) -> Token:
        return self.tokens[self.i]

    def take(self) -> Token:
        tok = self.tokens[self.i]
        self.i += 1
        return tok

    def match(self, *ops: str) -> Optional[str]:
        tok = self.peek()
        if tok.kind == "OP" and tok.value in ops:
            self.i += 1
            return tok.value
        return None

    def parse(self) -> Expr:
        if self.peek().kind == "EOF":
            raise ExpressionError("Empty expression")
        expr = self.parse_or()
        tok = self.peek()
        if tok.kind != "EOF":
            raise ExpressionError(f"Unexpected token {tok.value!r} at {tok.pos}")
        return expr

    def _binary_level(self, ops: Tuple[str, ...], operand: Callable[[], Expr]) -> Expr:
        expr = operand()
        while True:
            op = self.match(*ops)
            if op is None:
                return expr
            expr = Binary(expr, op, operand())

    def parse_or(self) -> Expr:
        return self._binary_level(("||",), self.parse_and)

    def parse_and(self) -> Expr:
        return self._binary_level(("&&",), self.parse_eq)

    def parse_eq(self) -> Expr:
        return self._binary_level(("===", "!==", "==", "!="), self.parse_cmp)

    def parse_cmp(self) -> Expr:
        return self._binary_level(("<=", ">=", "<", ">"), self.parse_sum)

    def parse_sum(self) -> Expr:
        return self._binary_level(("+", "-"), self.parse_term)

    def parse_term(self) -> Expr:
        return self._binary_level(("*", "/", "%"), self.parse_unary)

    def parse_unary(self) -> Expr:
        op = self.match("!", "-", "+")
        if op is not None:
            return Unary(op, self.parse_unary())
        return self.parse_power()

    def parse_power(self) -> Expr:
        base = self.parse_primary()
        if self.match("**"):
            return Binary(base, "**", self.parse_unary())
        return base

    def parse_primary(self) -> Expr:
        tok = self.take()
        if tok.kind == "NUMBER":
            return Literal(parse_number(tok.value))
        if tok.kind == "STRING":
            return Literal(_unquote(tok.value))
        if tok.kind == "ID":
            if tok.value in KEYWORD_LITERALS:
                return Literal(KEYWORD_LITERALS[tok.value])
            return Var(tok.value)
        if tok.kind == "OP" and tok.value == "(":
            expr = self.parse_or()
            if not self.match(")"):
                raise ExpressionError(f"Expected ')' at {self.peek().pos}")
            return expr
        raise ExpressionError(f"Unexpected token {tok.value!r} at {tok.pos}")


def parse_expression(source: str) -> Expr:
    return Parser(source).parse()


# ── Operator semantics ────────────────────────────────────────────────────────

def apply_arithmetic(left: Any, op: str, right: Any) -> Any:
    """Double-precision arithmetic; overflow gives +-inf rather than a huge int."""
    a, b = as_float(to_number(left)), as_float(to_number(right))
    if op == "+":
        result = a + b
    elif op == "-":
        result = a - b
    elif op == "*":
        result = a * b
    elif op == "/":
        result = a / b if b != 0 else 0
    elif op == "%":
        if b == 0:
            result = 0
        elif math.isinf(a) or math.isnan(a) or math.isnan(b):
            result = math.nan
        else:
            result = math.fmod(a, b)
    elif op == "**":
        try:
            result = a ** b
        except OverflowError:
            result = -math.inf if a < 0 and b % 2 == 1 else math.inf
        except ZeroDivisionError:
            result = math.inf
    else:
        return 0
    if isinstance(result, complex):
        return math.nan
    return normalize_number(result)


def compare(left: Any, op: str, right: Any) -> bool:
    if op == "==":
        return loose_equals(left, right)
    if op == "!=":
        return not loose_equals(left, right)
    if op == "===":
        return strict_equals(left, right)
    if op == "!==":
        return not strict_equals(left, right)
    if op not in ("<", ">", "<=", ">="):
        return False
    if isinstance(left, str) and isinstance(right, str):
        a, b = left, right
    else:
        a, b = to_number(left), to_number(right)
        if math.isnan(a) or math.isnan(b):
            return False
    if op == "<":
        return a < b
    if op == ">":
        return a > b
    if op == "<=":
        return a <= b
    return a >= b


# ── Evaluator ─────────────────────────────────────────────────────────────────

STATEMENT_DECL_RE = re.compile(r"^(?:let|var|const)\s+")
STATEMENT_STEP_RE = re.compile(r"^(?:(\+\+|--)\s*([A-Za-z_$][\w$]*)|([A-Za-z_$][\w$]*)\s*(\+\+|--))$")
STATEMENT_ASSIGN_RE = re.compile(r"^([A-Za-z_$][\w$]*)\s*([+\-*/%]?=)(?!=)\s*(.+)$", re.S)


class ExpressionEvaluator:
    """
    Evaluates operand and condition text against a variable mapping.

    The mapping is read for every lookup and written only by
    `execute_statement`, so the executor can hand in its live environment.
    """

    def __init__(self, variables: MutableMapping[str, Any]):
        self.variables = variables

    # Operands ----------------------------------------------------------------

    def resolve_operand(self, value: Any) -> Any:
        """
        Resolve an operand as typed into a block, first matching rule wins:

        1. blank -> 0
        2. quoted literal -> the unquoted string
        3. numeric literal -> number
        4. `true` / `false` -> bool
        5. bound variable name -> its value
        6. arithmetic over numbers and numeric variables -> the result
        7. anything else -> the text unchanged

        Values that are not text (numbers or booleans straight from JSON)
        are returned as they are.
        """
        if value is None:
            return 0
        if is_number(value):
            return normalize_number(value)
        if not isinstance(value, str):
            return value

        text = value.strip()
        if not text:
            return 0
        if len(text) >= 2 and text[0] in "\"'" and text[-1] == text[0]:
            return text[1:-1]
        number = parse_number(text)
        if number is not None:
            return number
        if text == "true":
            return True
        if text == "false":
            return False
        if text in self.variables:
            return self.variables[text]

        try:
            return self._arithmetic(parse_expression(text))
        except (ExpressionError, ArithmeticError, RecursionError):
            return value

    def parse_strict(self, value: Any) -> Tuple[Any, Optional[str]]:
        """
        Like `resolve_operand`, but a bare name that is not bound is reported
        instead of being passed through as text.
        """
        if value is None or (isinstance(value, str) and value == ""):
            return "", "Empty value"
        if not isinstance(value, str):
            return value, None

        text = value.strip()
        if IDENTIFIER_RE.match(text) and text not in ("true", "false") and text not in self.variables:
            return text, f"Variable '{text}' not found. Use quotes for strings: \"{text}\""
        return self.resolve_operand(value), None

    def _arithmetic(self, expr: Expr) -> Any:
        """Evaluate a tree made only of numbers, numeric variables and arithmetic."""
        if isinstance(expr, Literal):
            if is_number(expr.value):
                return expr.value
            raise ExpressionError("Non-numeric literal in arithmetic")
        if isinstance(expr, Var):
            if expr.name not in self.variables:
                raise ExpressionError(f"Unbound name {expr.name!r}")
            bound = self.variables[expr.name]
            if is_number(bound):
                return bound
            if isinstance(bound, str) and parse_number(bound) is not None:
                return parse_number(bound)
            raise ExpressionError(f"Variable {expr.name!r} is not numeric")
        if isinstance(expr, Unary) and expr.op in ("-", "+"):
            operand = self._arithmetic(expr.expr)
            return normalize_number(-operand if expr.op == "-" else operand)
        if isinstance(expr, Binary) and expr.op in ARITHMETIC_OPS:
            return apply_arithmetic(self._arithmetic(expr.left), expr.op, self._arithmetic(expr.right))
        raise ExpressionError("Only arithmetic is allowed here")

    # Full expressions --------------------------------------------------------

    def evaluate(self, text: str) -> Any:
        """
        Evaluate the full grammar.  An unbound identifier evaluates to its own
        name, so `status == ready` compares against the text "ready".
        """
        return self._eval(parse_expression(text))

    def _eval(self, expr: Expr) -> Any:
        if isinstance(expr, Literal):
            return expr.value
        if isinstance(expr, Var):
            return self.variables.get(expr.name, expr.name)
        if isinstance(expr, Unary):
            operand = self._eval(expr.expr)
            if expr.op == "!":
                return not is_truthy(operand)
            number = to_number(operand)
            return normalize_number(-number) if expr.op == "-" else number
        if isinstance(expr, Binary):
            if expr.op == "&&":
                left = self._eval(expr.left)
                return self._eval(expr.right) if is_truthy(left) else left
            if expr.op == "||":
                left = self._eval(expr.left)
                return left if is_truthy(left) else self._eval(expr.right)
            left, right = self._eval(expr.left), self._eval(expr.right)
            if expr.op in COMPARISON_OPS:
                return compare(left, expr.op, right)
            if expr.op == "+" and any(isinstance(v, (str, list, dict)) for v in (left, right)):
                return format_value(left) + format_value(right)
            return apply_arithmetic(left, expr.op, right)
        raise ExpressionError(f"Cannot evaluate {expr!r}")

    # Block operations --------------------------------------------------------

    def evaluate_comparison(self, left: Any, op: str, right: Any) -> bool:
        """Compare two already-resolved values.  Unknown operators are false."""
        return compare(left, op, right)

    def evaluate_arithmetic(self, left: Any, op: str, right: Any) -> Any:
        """Resolve both operands and apply `op`.  Division by zero gives 0."""
        if op not in ARITHMETIC_OPS:
            return 0
        return apply_arithmetic(self.resolve_operand(left), op, self.resolve_operand(right))

    def evaluate_logical(self, left: Any, op: str, right: Any) -> bool:
        a = is_truthy(self.resolve_operand(left))
        if op == "!":
            return not a
        b = is_truthy(self.resolve_operand(right))
        if op == "&&":
            return a and b
        if op == "||":
            return a or b
        return False

    def evaluate_condition(self, text: Any) -> bool:
        """Truthiness of a free-form condition.  Any failure reads as false."""
        if isinstance(text, bool):
            return text
        if text is None or not str(text).strip():
            return False
        try:
            return is_truthy(self.evaluate(str(text)))
        except (ExpressionError, ArithmeticError, TypeError, RecursionError) as e:
            logger.debug("Condition %r evaluated to false: %s", text, e)
            return False

    def execute_statement(self, text: Any) -> bool:
        """
        Run loop `init` / `increment` text: `i = 0`, `let i = 0`, `i++`,
        `i += 2`.  Several statements may be separated by `,` or `;`.
        Returns False when a statement could not be applied.
        """
        if text is None or not str(text).strip():
            return False
        ok = True
        for statement in re.split(r"[;,]", str(text)):
            statement = STATEMENT_DECL_RE.sub("", statement.strip())
            if not statement:
                continue
            try:
                self._apply_statement(statement)
            except (ExpressionError, ArithmeticError, TypeError, RecursionError) as e:
                logger.debug("Statement %r not applied: %s", statement, e)
                ok = False
        return ok

    def _apply_statement(self, statement: str):
        step = STATEMENT_STEP_RE.match(statement)
        if step:
            name = step.group(2) or step.group(3)
            op = step.group(1) or step.group(4)
            current = to_number(self.variables.get(name, 0))
            self.variables[name] = normalize_number(current + (1 if op == "++" else -1))
            return

        assign = STATEMENT_ASSIGN_RE.match(statement)
        if not assign:
            raise ExpressionError(f"Not a statement: {statement!r}")
        name, op, source = assign.groups()
        value = self.evaluate(source)
        if op != "=":
            current = self.variables.get(name, 0)
            if op == "+=" and any(isinstance(v, str) for v in (current, value)):
                value = format_value(current) + format_value(value)
            else:
                value = apply_arithmetic(current, op[0], value)
        self.variables[name] = value
