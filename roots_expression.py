"""
Expression parsing for the Roots Calculator.

User input such as ``"x^3 - x - 2"`` or ``"cbrt(x + 2)"`` is tokenized, parsed
by a small recursive-descent parser into an immutable syntax tree, and wrapped
in a :class:`CompiledFunction` that evaluates the tree for a given ``x``.

Supported vocabulary:
    - numbers (``2``, ``0.5``, ``.5``, ``1e-3``), the variable ``x``
    - ``+ - * /``, ``^`` or ``**`` for powers, parentheses, unary minus
    - constants ``pi`` and ``e``
    - the functions listed in ``FUNCTIONS``

Evaluation never raises: domain errors, overflow and division by zero all
produce ``nan`` so the solvers can treat them as non-finite evaluations.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union

import sympy as sp

from roots_errors import InvalidExpression

X_SYMBOL = sp.symbols("x")


# --------------------------------------------------------------------------- #
# Vocabulary
# --------------------------------------------------------------------------- #


def _cbrt(value: float) -> float:
    return math.copysign(abs(value) ** (1.0 / 3.0), value)


@dataclass(frozen=True)
class FunctionSpec:
    """A named real function: how to evaluate it and how to show it."""

    evaluate: Callable[..., float]
    to_sympy: Callable[..., sp.Expr]
    arity: int  # -1 means "one or more"


FUNCTIONS: Dict[str, FunctionSpec] = {
    "sin": FunctionSpec(math.sin, sp.sin, 1),
    "cos": FunctionSpec(math.cos, sp.cos, 1),
    "tan": FunctionSpec(math.tan, sp.tan, 1),
    "asin": FunctionSpec(math.asin, sp.asin, 1),
    "acos": FunctionSpec(math.acos, sp.acos, 1),
    "atan": FunctionSpec(math.atan, sp.atan, 1),
    "sinh": FunctionSpec(math.sinh, sp.sinh, 1),
    "cosh": FunctionSpec(math.cosh, sp.cosh, 1),
    "tanh": FunctionSpec(math.tanh, sp.tanh, 1),
    "asinh": FunctionSpec(math.asinh, sp.asinh, 1),
    "acosh": FunctionSpec(math.acosh, sp.acosh, 1),
    "atanh": FunctionSpec(math.atanh, sp.atanh, 1),
    "exp": FunctionSpec(math.exp, sp.exp, 1),
    "log": FunctionSpec(math.log, sp.log, 1),
    "log2": FunctionSpec(math.log2, lambda arg: sp.log(arg, 2), 1),
    "log10": FunctionSpec(math.log10, lambda arg: sp.log(arg, 10), 1),
    "sqrt": FunctionSpec(math.sqrt, sp.sqrt, 1),
    "cbrt": FunctionSpec(_cbrt, sp.cbrt, 1),
    "abs": FunctionSpec(abs, sp.Abs, 1),
    "floor": FunctionSpec(math.floor, sp.floor, 1),
    "ceil": FunctionSpec(math.ceil, sp.ceiling, 1),
    "pow": FunctionSpec(math.pow, sp.Pow, 2),
    "atan2": FunctionSpec(math.atan2, sp.atan2, 2),
    "hypot": FunctionSpec(math.hypot, lambda a, b: sp.sqrt(a**2 + b**2), 2),
    "min": FunctionSpec(min, sp.Min, -1),
    "max": FunctionSpec(max, sp.Max, -1),
}

CONSTANTS: Dict[str, Tuple[float, sp.Expr]] = {
    "pi": (math.pi, sp.pi),
    "PI": (math.pi, sp.pi),
    "e": (math.e, sp.E),
    "E": (math.e, sp.E),
}


# --------------------------------------------------------------------------- #
# Syntax tree
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class Number:
    value: float
    text: str

    def evaluate(self, x: float) -> float:
        return self.value

    def to_sympy(self) -> sp.Expr:
        if self.text in CONSTANTS:
            return CONSTANTS[self.text][1]
        if self.text.isdigit():
            return sp.Integer(int(self.text))
        return sp.Float(self.value)


@dataclass(frozen=True)
class Variable:
    def evaluate(self, x: float) -> float:
        return x

    def to_sympy(self) -> sp.Expr:
        return X_SYMBOL


@dataclass(frozen=True)
class Negate:
    operand: "Node"

    def evaluate(self, x: float) -> float:
        return -self.operand.evaluate(x)

    def to_sympy(self) -> sp.Expr:
        return -self.operand.to_sympy()


@dataclass(frozen=True)
class BinaryOp:
    operator: str
    left: "Node"
    right: "Node"

    def evaluate(self, x: float) -> float:
        left = self.left.evaluate(x)
        right = self.right.evaluate(x)
        if self.operator == "+":
            return left + right
        if self.operator == "-":
            return left - right
        if self.operator == "*":
            return left * right
        if self.operator == "/":
            return left / right
        return math.pow(left, right)

    def to_sympy(self) -> sp.Expr:
        left = self.left.to_sympy()
        right = self.right.to_sympy()
        if self.operator == "+":
            return left + right
        if self.operator == "-":
            return left - right
        if self.operator == "*":
            return left * right
        if self.operator == "/":
            return left / right
        return left**right


@dataclass(frozen=True)
class Call:
    name: str
    args: Tuple["Node", ...]

    def evaluate(self, x: float) -> float:
        return FUNCTIONS[self.name].evaluate(*(arg.evaluate(x) for arg in self.args))

    def to_sympy(self) -> sp.Expr:
        return FUNCTIONS[self.name].to_sympy(*(arg.to_sympy() for arg in self.args))


Node = Union[Number, Variable, Negate, BinaryOp, Call]

ZERO = Number(0.0, "0")


# --------------------------------------------------------------------------- #
# Tokenizer and parser
# --------------------------------------------------------------------------- #

_TOKEN_RE = re.compile(
    r"\s*(?:"
    r"(?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
    r"|(?P<name>[A-Za-z_][A-Za-z_0-9]*)"
    r"|(?P<op>\*\*|[-+*/^(),])"
    r")"
)


@dataclass(frozen=True)
class Token:
    kind: str  # "number", "name", "op" or "end"
    text: str
    position: int


def tokenize(expr: str) -> List[Token]:
    tokens: List[Token] = []
    position = 0
    stripped_end = len(expr.rstrip())
    while position < stripped_end:
        match = _TOKEN_RE.match(expr, position)
        if match is None or match.lastgroup is None:
            offset = position + (len(expr[position:]) - len(expr[position:].lstrip()))
            raise InvalidExpression(
                f"Invalid expression: unexpected character {expr[offset]!r} at position {offset + 1}."
            )
        kind = match.lastgroup
        text = match.group(kind)
        tokens.append(Token(kind, "^" if text == "**" else text, match.start(kind)))
        position = match.end()
    tokens.append(Token("end", "", len(expr)))
    return tokens


class _Parser:
    """Recursive-descent parser over the closed grammar described above."""

    def __init__(self, expr: str) -> None:
        self.tokens = tokenize(expr)
        self.index = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def _advance(self) -> Token:
        token = self.current
        self.index += 1
        return token

    def _accept(self, *texts: str) -> Optional[Token]:
        if self.current.kind == "op" and self.current.text in texts:
            return self._advance()
        return None

    def _expect(self, text: str) -> Token:
        token = self._accept(text)
        if token is None:
            raise self._error(f"expected {text!r}")
        return token

    def _error(self, reason: str) -> InvalidExpression:
        token = self.current
        found = "end of input" if token.kind == "end" else repr(token.text)
        return InvalidExpression(
            f"Invalid expression: {reason}, found {found} at position {token.position + 1}."
        )

    def parse(self):
        node = self._expression()
        if self.current.kind != "end":
            raise self._error("unexpected trailing input")
        return node

    def _expression(self):
        node = self._term()
        while True:
            token = self._accept("+", "-")
            if token is None:
                return node
            node = BinaryOp(token.text, node, self._term())

    def _term(self):
        node = self._unary()
        while True:
            token = self._accept("*", "/")
            if token is None:
                return node
            node = BinaryOp(token.text, node, self._unary())

    def _unary(self):
        if self._accept("-"):
            return Negate(self._unary())
        if self._accept("+"):
            return self._unary()
        return self._power()

    def _power(self):
        base = self._primary()
        if self._accept("^"):
            # right associative: 2^3^2 == 2^(3^2); -x^2 == -(x^2)
            return BinaryOp("^", base, self._unary())
        return base

    def _primary(self):
        token = self.current
        if token.kind == "number":
            self._advance()
            return Number(float(token.text), token.text)
        if token.kind == "name":
            self._advance()
            if token.text == "x":
                return Variable()
            if token.text in CONSTANTS:
                return Number(CONSTANTS[token.text][0], token.text)
            if token.text in FUNCTIONS:
                return self._call(token)
            raise InvalidExpression(
                f"Invalid expression: unknown name {token.text!r} at position {token.position + 1}."
            )
        if self._accept("("):
            node = self._expression()
            self._expect(")")
            return node
        raise self._error("expected a number, 'x', a function or '('")

    def _call(self, name: Token) -> Call:
        self._expect("(")
        args = [self._expression()]
        while self._accept(","):
            args.append(self._expression())
        self._expect(")")
        arity = FUNCTIONS[name.text].arity
        if arity != -1 and len(args) != arity:
            raise InvalidExpression(
                f"Invalid expression: {name.text}() takes {arity} argument(s), got {len(args)}."
            )
        return Call(name.text, tuple(args))


# --------------------------------------------------------------------------- #
# Public API
# --------------------------------------------------------------------------- #


class CompiledFunction:
    """A parsed expression callable as ``f(x)``; always returns a float."""

    def __init__(self, expression: str, tree) -> None:
        self.expression = expression
        self._tree = tree

    def __call__(self, value: float) -> float:
        try:
            return float(self._tree.evaluate(float(value)))
        except (ArithmeticError, ValueError, TypeError):
            return math.nan

    def to_sympy(self) -> sp.Expr:
        """SymPy form of the parsed tree, used to echo the interpretation back."""
        return self._tree.to_sympy()

    def __repr__(self) -> str:
        return f"CompiledFunction({self.expression!r})"


def build_function(expr: Optional[str]) -> CompiledFunction:
    """
    Convert an input string into a callable f(x).

    Users can enter expressions such as:
        "x^3 - x - 2", "sin(x) - x/2", "cbrt(x + 2)", etc.

    Blank input is the constant zero function.
    """
    if expr is None or not expr.strip():
        return CompiledFunction("0", ZERO)
    try:
        tree = _Parser(expr).parse()
    except RecursionError as exc:
        raise InvalidExpression("Invalid expression: nesting is too deep.") from exc
    return CompiledFunction(expr.strip(), tree)
