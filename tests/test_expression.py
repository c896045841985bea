"""Tests for roots_expression — tokenizer, parser, evaluation and SymPy echo."""

from __future__ import annotations

import math

import pytest
import sympy as sp

from roots_errors import InvalidExpression
from roots_expression import X_SYMBOL, build_function, tokenize


# ── Parsing and precedence ──


class TestPrecedence:
    @pytest.mark.parametrize(
        "expr, x, expected",
        [
            ("x^3 - x - 2", 2.0, 4.0),
            ("x**2", 3.0, 9.0),
            ("2^3^2", 0.0, 512.0),
            ("-x^2", 3.0, -9.0),
            ("(-x)^2", 3.0, 9.0),
            ("2^-1", 0.0, 0.5),
            ("1 - 2 - 3", 0.0, -4.0),
            ("8 / 4 / 2", 0.0, 1.0),
            ("2 + 3 * x", 4.0, 14.0),
            ("(2 + 3) * x", 4.0, 20.0),
            ("--x", 5.0, 5.0),
            ("+x", 5.0, 5.0),
            (".5 * x", 4.0, 2.0),
            ("1e-3 * x", 1000.0, 1.0),
        ],
    )
    def test_evaluates(self, expr, x, expected):
        assert build_function(expr)(x) == pytest.approx(expected)

    def test_tokens_normalize_double_star(self):
        kinds = [(t.kind, t.text) for t in tokenize("x**2")]
        assert kinds == [("name", "x"), ("op", "^"), ("number", "2"), ("end", "")]


class TestVocabulary:
    @pytest.mark.parametrize(
        "expr, x, expected",
        [
            ("pi", 0.0, math.pi),
            ("e", 0.0, math.e),
            ("sin(pi / 2)", 0.0, 1.0),
            ("cos(0)", 0.0, 1.0),
            ("exp(log(x))", 3.0, 3.0),
            ("log2(x)", 8.0, 3.0),
            ("log10(x)", 1000.0, 3.0),
            ("sqrt(x)", 16.0, 4.0),
            ("cbrt(x)", -8.0, -2.0),
            ("abs(x)", -2.5, 2.5),
            ("pow(x, 3)", 2.0, 8.0),
            ("atan2(1, 1)", 0.0, math.pi / 4),
            ("hypot(3, x)", 4.0, 5.0),
            ("min(3, x, 1)", 2.0, 1.0),
            ("max(3, x, 1)", 7.0, 7.0),
            ("floor(x) + ceil(x)", 1.5, 3.0),
            ("tanh(0) + sinh(0) + cosh(0)", 0.0, 1.0),
            ("asin(1) + acos(1) + atan(0)", 0.0, math.pi / 2),
        ],
    )
    def test_named_functions(self, expr, x, expected):
        assert build_function(expr)(x) == pytest.approx(expected)


class TestInvalidExpressions:
    @pytest.mark.parametrize(
        "expr",
        ["x +", "2x", "foo(x)", "sin(x", "sin(x, 2)", "pow(x)", "x $ 2", "y", "()", "x)"],
    )
    def test_rejected(self, expr):
        with pytest.raises(InvalidExpression):
            build_function(expr)

    def test_message_names_position(self):
        with pytest.raises(InvalidExpression, match="position 3"):
            build_function("x $ 2")

    def test_is_a_value_error(self):
        with pytest.raises(ValueError):
            build_function("sin(")


# ── Evaluation never raises ──


class TestNonFinite:
    @pytest.mark.parametrize(
        "expr, x",
        [
            ("sqrt(x)", -1.0),
            ("1 / x", 0.0),
            ("log(x)", 0.0),
            ("exp(x)", 1000.0),
            ("x ^ 0.5", -4.0),
            ("asin(x)", 2.0),
        ],
    )
    def test_domain_errors_map_to_nan(self, expr, x):
        assert math.isnan(build_function(expr)(x))

    def test_malformed_argument_maps_to_nan(self):
        assert math.isnan(build_function("x + 1")("abc"))

    def test_nan_input_propagates(self):
        assert math.isnan(build_function("x * 2")(math.nan))


class TestEmptyInput:
    @pytest.mark.parametrize("expr", ["", "   ", None])
    def test_blank_is_zero_function(self, expr):
        f = build_function(expr)
        assert f(0.0) == 0.0
        assert f(123.4) == 0.0

    def test_compiled_function_is_reusable(self, cubic):
        values = [cubic(v) for v in (1.0, 2.0, 1.0)]
        assert values == [-2.0, 4.0, -2.0]


# ── SymPy echo ──


class TestSympyEcho:
    def test_canonical_form(self):
        assert build_function("x^3 - x - 2").to_sympy() == X_SYMBOL**3 - X_SYMBOL - 2

    def test_constants(self):
        assert build_function("2*pi").to_sympy() == 2 * sp.pi

    @pytest.mark.parametrize(
        "expr",
        [
            "x^3 - x - 2",
            "sin(x) - x/2",
            "exp(-x) - x",
            "sqrt(x) + log(x)",
            "atan2(x, 2) + hypot(x, 3)",
            "abs(x - 3) * cosh(x/4)",
            "2^x - 10*x",
            "log10(x) + log2(x)",
        ],
    )
    def test_agrees_with_tree_evaluation(self, expr):
        compiled = build_function(expr)
        oracle = sp.lambdify(X_SYMBOL, compiled.to_sympy(), "math")
        for value in (0.5, 1.3, 2.7):
            assert compiled(value) == pytest.approx(float(oracle(value)), rel=1e-12)
