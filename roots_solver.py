"""
Core numerical methods and helpers for the Roots Calculator.

This module centralizes:
    - The convergence policy shared by every method (validation, error metric,
      stopping rule, iteration cap) and the display rounding helper.
    - Six classical root-finding algorithms, each expressed as a step function
      driven by one generic iteration loop.
    - A thin façade (`run_method`) that compiles expressions and normalizes
      inputs/outputs so both the CLI and Flask web layers consume the same API.

Each solver returns a `MethodResult` with:
    status: "converged" | "exhausted" | "failed"
    root: Optional[float]
    final_error: Optional[float]
    iterations: List[Dict[str, float]]
    columns: List[str]   # keys to display for each iteration dict
    message: str
    failure: Optional[SolverError]
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from roots_errors import (
    InvalidBracket,
    InvalidInput,
    InvalidTolerance,
    NonFiniteEvaluation,
    SolverError,
    ZeroDenominator,
    ZeroDerivative,
)
from roots_expression import build_function

logger = logging.getLogger(__name__)

Function = Callable[[float], float]
Row = Dict[str, float]

CONVERGED = "converged"
EXHAUSTED = "exhausted"
FAILED = "failed"


# --------------------------------------------------------------------------- #
# Result container
# --------------------------------------------------------------------------- #


@dataclass
class MethodResult:
    method: str
    columns: List[str]
    status: str = ""
    root: Optional[float] = None
    final_error: Optional[float] = None
    iterations: List[Row] = field(default_factory=list)
    message: str = ""
    failure: Optional[SolverError] = None

    @property
    def converged(self) -> bool:
        return self.status == CONVERGED

    def to_dict(self, digits: Optional[int] = None, mode: str = "approx") -> Dict[str, Any]:
        """JSON-safe view of the run; rounding is applied only when `digits` is set."""

        def cell(value):
            if value is None:
                return None
            if digits is not None:
                value = round_to(value, digits, mode)
            return _json_number(value)

        return {
            "method": self.method,
            "status": self.status,
            "converged": self.converged,
            "root": cell(self.root),
            "final_error": cell(self.final_error),
            "message": self.message,
            "failure": self.failure.code if self.failure is not None else None,
            "columns": list(self.columns),
            "iterations": [
                {col: (row[col] if col == "iteration" else cell(row[col])) for col in self.columns}
                for row in self.iterations
            ],
        }


def _json_number(value: float):
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return value


def _finalize(
    result: MethodResult,
    *,
    status: str,
    root: Optional[float],
    error: Optional[float],
    message: str,
) -> MethodResult:
    result.status = status
    result.root = root
    result.final_error = error
    result.message = message
    logger.debug("%s finished: %s (root=%r, rows=%d)", result.method, status, root, len(result.iterations))
    return result


def _fail(result: MethodResult, failure: SolverError) -> MethodResult:
    result.failure = failure
    return _finalize(result, status=FAILED, root=None, error=None, message=str(failure))


# --------------------------------------------------------------------------- #
# Convergence policy
# --------------------------------------------------------------------------- #


def _validate(tol: float, max_iter: int, **values: Optional[float]) -> None:
    """Generic validation gate run before any method iterates."""
    for name, value in {**values, "tolerance": tol}.items():
        if value is None:
            raise InvalidInput(f"{name} is required.")
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise InvalidInput(f"{name} must be a finite number, got {value!r}.")
    if isinstance(max_iter, bool) or not isinstance(max_iter, int) or max_iter < 0:
        raise InvalidInput(f"Maximum iterations must be a non-negative integer, got {max_iter!r}.")


def _check_tolerance(tol: float) -> None:
    if tol <= 0:
        raise InvalidTolerance("Tolerance must be strictly positive.")


StepFunction = Callable[[int, Dict[str, float]], Tuple[Dict[str, float], Row, Optional[float]]]


def _iterate(
    result: MethodResult,
    step: StepFunction,
    state: Dict[str, float],
    *,
    estimate_key: str,
    tol: float,
    max_iter: int,
) -> MethodResult:
    """
    Drive `step` until the stopping rule holds, a guard fails or the cap is hit.

    `step(i, state)` returns the next state, the trace row for iteration `i`
    and the residual at the new estimate (or None when the method has none).
    Guards inside `step` raise `SolverError`; rows already produced are kept.
    """
    for i in range(1, max_iter + 1):
        try:
            state, row, residual = step(i, state)
        except SolverError as exc:
            return _fail(result, exc)
        result.iterations.append(row)
        estimate = row[estimate_key]
        if not math.isfinite(estimate):
            return _fail(
                result,
                NonFiniteEvaluation(f"Iteration {i} produced a non-finite estimate ({estimate})."),
            )
        if residual == 0.0 or row["error"] < tol:
            return _finalize(
                result,
                status=CONVERGED,
                root=estimate,
                error=row["error"],
                message=f"Converged in {i} iterations.",
            )

    if not result.iterations:
        return _finalize(
            result,
            status=EXHAUSTED,
            root=None,
            error=None,
            message="Maximum iterations reached before any iteration ran.",
        )
    last = result.iterations[-1]
    return _finalize(
        result,
        status=EXHAUSTED,
        root=last[estimate_key],
        error=last["error"],
        message="Maximum iterations reached without convergence.",
    )


def round_to(value: float, digits: int, mode: str = "approx") -> float:
    """
    Display rounding: "approx" rounds half up, "trunc" truncates toward zero.

    Non-finite values pass through unchanged. Never used by the stopping rule.
    """
    if not math.isfinite(value):
        return value
    factor = 10.0 ** min(max(0, int(digits)), 300)
    scaled = value * factor
    if not math.isfinite(scaled):
        return value
    if mode == "trunc":
        return math.trunc(scaled) / factor
    if mode == "approx":
        return math.floor(scaled + 0.5) / factor
    raise ValueError(f"Unknown rounding mode: {mode}")


def format_value(value, digits: int, mode: str = "approx") -> str:
    if value is None:
        return "--"
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return f"{round_to(value, digits, mode):.{max(0, int(digits))}f}"


def format_rows(result: MethodResult, digits: int, mode: str = "approx") -> List[List[str]]:
    """Display strings for every trace cell, in `result.columns` order."""
    return [
        [format_value(row[col], digits, mode) for col in result.columns]
        for row in result.iterations
    ]


# --------------------------------------------------------------------------- #
# Bracketing methods
# --------------------------------------------------------------------------- #

BRACKET_COLUMNS = ["iteration", "a", "b", "xr", "f(a)", "f(b)", "f(xr)", "error"]


def _midpoint(a: float, b: float, fa: float, fb: float) -> float:
    return (a + b) / 2.0


def _false_position_point(a: float, b: float, fa: float, fb: float) -> float:
    return b - fb * (b - a) / (fb - fa)


def _bracket_method(
    method: str,
    next_point: Callable[[float, float, float, float], float],
    f: Function,
    a: float,
    b: float,
    tol: float,
    max_iter: int,
) -> MethodResult:
    result = MethodResult(method, list(BRACKET_COLUMNS))
    try:
        _validate(tol, max_iter, a=a, b=b)
        if a >= b:
            raise InvalidBracket("The interval requires a < b.")
        _check_tolerance(tol)
        fa, fb = f(a), f(b)
        if not (math.isfinite(fa) and math.isfinite(fb)):
            raise NonFiniteEvaluation("f(a) or f(b) is not finite.")
    except SolverError as exc:
        return _fail(result, exc)

    if fa == 0:
        return _finalize(result, status=CONVERGED, root=a, error=None, message="f(a) is exactly zero.")
    if fb == 0:
        return _finalize(result, status=CONVERGED, root=b, error=None, message="f(b) is exactly zero.")
    if fa * fb > 0:
        return _fail(result, InvalidBracket("f(a) and f(b) must have opposite signs."))

    def step(i: int, state: Dict[str, float]):
        a, b, fa, fb = state["a"], state["b"], state["fa"], state["fb"]
        if not (math.isfinite(fa) and math.isfinite(fb)):
            raise NonFiniteEvaluation(f"f(a) or f(b) is not finite at iteration {i}.")
        xr = next_point(a, b, fa, fb)
        fxr = f(xr)
        error = abs(b - a) if i == 1 else abs(xr - state["prev"])
        row = {"iteration": i, "a": a, "b": b, "xr": xr, "f(a)": fa, "f(b)": fb, "f(xr)": fxr, "error": error}
        if fa * fxr < 0:
            b, fb = xr, fxr
        else:
            a, fa = xr, fxr
        return {"a": a, "b": b, "fa": fa, "fb": fb, "prev": xr}, row, fxr

    state = {"a": a, "b": b, "fa": fa, "fb": fb, "prev": math.nan}
    return _iterate(result, step, state, estimate_key="xr", tol=tol, max_iter=max_iter)


def bisection(f: Function, a: float, b: float, tol: float, max_iter: int) -> MethodResult:
    return _bracket_method("bisection", _midpoint, f, a, b, tol, max_iter)


def false_position(f: Function, a: float, b: float, tol: float, max_iter: int) -> MethodResult:
    return _bracket_method("false_position", _false_position_point, f, a, b, tol, max_iter)


# --------------------------------------------------------------------------- #
# Open methods
# --------------------------------------------------------------------------- #

FIXED_POINT_COLUMNS = ["iteration", "x", "g(x)", "error"]
NEWTON_COLUMNS = ["iteration", "x", "f(x)", "f'(x)", "x_next", "error"]
MODIFIED_NEWTON_COLUMNS = ["iteration", "x", "f(x)", "f'(x0)", "x_next", "error"]
SECANT_COLUMNS = ["iteration", "x0", "x1", "f(x0)", "f(x1)", "x2", "error"]


def fixed_point_iteration(g: Function, x0: float, tol: float, max_iter: int) -> MethodResult:
    result = MethodResult("fixed_point", list(FIXED_POINT_COLUMNS))
    try:
        _validate(tol, max_iter, x0=x0)
        _check_tolerance(tol)
    except SolverError as exc:
        return _fail(result, exc)

    def step(i: int, state: Dict[str, float]):
        x = state["x"]
        gx = g(x)
        row = {"iteration": i, "x": x, "g(x)": gx, "error": abs(gx - x)}
        return {"x": gx}, row, None

    return _iterate(result, step, {"x": x0}, estimate_key="g(x)", tol=tol, max_iter=max_iter)


def newton_raphson(f: Function, df: Function, x0: float, tol: float, max_iter: int) -> MethodResult:
    result = MethodResult("newton_raphson", list(NEWTON_COLUMNS))
    try:
        _validate(tol, max_iter, x0=x0)
        _check_tolerance(tol)
    except SolverError as exc:
        return _fail(result, exc)

    def step(i: int, state: Dict[str, float]):
        x, fx = state["x"], state["fx"]
        dfx = df(x)
        if not (math.isfinite(fx) and math.isfinite(dfx)):
            raise NonFiniteEvaluation(f"f(x) or f'(x) is not finite at x={x}.")
        if dfx == 0:
            raise ZeroDerivative(f"Derivative is zero at x={x}; Newton-Raphson cannot proceed.")
        x_new = x - fx / dfx
        fx_new = f(x_new)
        row = {"iteration": i, "x": x, "f(x)": fx, "f'(x)": dfx, "x_next": x_new, "error": abs(x_new - x)}
        return {"x": x_new, "fx": fx_new}, row, fx_new

    return _iterate(result, step, {"x": x0, "fx": f(x0)}, estimate_key="x_next", tol=tol, max_iter=max_iter)


def modified_newton(f: Function, df: Function, x0: float, tol: float, max_iter: int) -> MethodResult:
    """Newton-Raphson with the derivative frozen at the initial guess."""
    result = MethodResult("modified_newton", list(MODIFIED_NEWTON_COLUMNS))
    try:
        _validate(tol, max_iter, x0=x0)
        _check_tolerance(tol)
        slope = df(x0)
        if not math.isfinite(slope):
            raise NonFiniteEvaluation(f"f'(x0) is not finite at x0={x0}.")
        if slope == 0:
            raise ZeroDerivative(f"Derivative is zero at x0={x0}; the fixed slope is unusable.")
    except SolverError as exc:
        return _fail(result, exc)

    def step(i: int, state: Dict[str, float]):
        x, fx = state["x"], state["fx"]
        if not math.isfinite(fx):
            raise NonFiniteEvaluation(f"f(x) is not finite at x={x}.")
        x_new = x - fx / slope
        fx_new = f(x_new)
        row = {"iteration": i, "x": x, "f(x)": fx, "f'(x0)": slope, "x_next": x_new, "error": abs(x_new - x)}
        return {"x": x_new, "fx": fx_new}, row, fx_new

    return _iterate(result, step, {"x": x0, "fx": f(x0)}, estimate_key="x_next", tol=tol, max_iter=max_iter)


def secant(f: Function, x0: float, x1: float, tol: float, max_iter: int) -> MethodResult:
    result = MethodResult("secant", list(SECANT_COLUMNS))
    try:
        _validate(tol, max_iter, x0=x0, x1=x1)
        _check_tolerance(tol)
    except SolverError as exc:
        return _fail(result, exc)

    def step(i: int, state: Dict[str, float]):
        x0, x1, fx0, fx1 = state["x0"], state["x1"], state["fx0"], state["fx1"]
        if not (math.isfinite(fx0) and math.isfinite(fx1)):
            raise NonFiniteEvaluation(f"f(x) is not finite at iteration {i}.")
        denominator = fx1 - fx0
        if denominator == 0:
            raise ZeroDenominator("f(x1) - f(x0) is zero; the secant line is horizontal.")
        x2 = x1 - fx1 * (x1 - x0) / denominator
        fx2 = f(x2)
        # error is always measured against the preceding estimate, even at i=1
        row = {"iteration": i, "x0": x0, "x1": x1, "f(x0)": fx0, "f(x1)": fx1, "x2": x2, "error": abs(x2 - x1)}
        return {"x0": x1, "x1": x2, "fx0": fx1, "fx1": fx2}, row, fx2

    state = {"x0": x0, "x1": x1, "fx0": f(x0), "fx1": f(x1)}
    return _iterate(result, step, state, estimate_key="x2", tol=tol, max_iter=max_iter)


# --------------------------------------------------------------------------- #
# Public runner
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class ProblemParameters:
    tolerance: float
    max_iterations: int
    lower: Optional[float] = None
    upper: Optional[float] = None
    x0: Optional[float] = None
    x1: Optional[float] = None

    @classmethod
    def from_mapping(cls, params: Mapping[str, Any]) -> "ProblemParameters":
        known = {name: params[name] for name in cls.__dataclass_fields__ if name in params}
        for name in ("tolerance", "max_iterations"):
            if name not in known:
                raise InvalidInput(f"{name.replace('_', ' ').capitalize()} is required.")
        max_iterations = known["max_iterations"]
        if isinstance(max_iterations, float) and max_iterations.is_integer():
            known["max_iterations"] = int(max_iterations)
        return cls(**known)


@dataclass(frozen=True)
class MethodInfo:
    label: str
    params: Tuple[str, ...]
    expressions: Tuple[str, ...] = ("function_expr",)


METHODS: Dict[str, MethodInfo] = {
    "bisection": MethodInfo("Bisection Method", ("lower", "upper")),
    "false_position": MethodInfo("False Position (Regula Falsi)", ("lower", "upper")),
    "fixed_point": MethodInfo("Fixed Point Iteration", ("x0",), ("g_expr",)),
    "newton_raphson": MethodInfo(
        "Newton–Raphson Method", ("x0",), ("function_expr", "derivative_expr")
    ),
    "modified_newton": MethodInfo(
        "Modified Newton–Raphson (Fixed Derivative)", ("x0",), ("function_expr", "derivative_expr")
    ),
    "secant": MethodInfo("Secant Method", ("x0", "x1")),
}

# Mapping useful for UI layers
METHOD_LABELS = {key: info.label for key, info in METHODS.items()}

_EMPTY_COLUMNS = {
    "bisection": BRACKET_COLUMNS,
    "false_position": BRACKET_COLUMNS,
    "fixed_point": FIXED_POINT_COLUMNS,
    "newton_raphson": NEWTON_COLUMNS,
    "modified_newton": MODIFIED_NEWTON_COLUMNS,
    "secant": SECANT_COLUMNS,
}


def run_method(
    method: str,
    *,
    params: Mapping[str, Any],
    function_expr: Optional[str] = None,
    g_expr: Optional[str] = None,
    derivative_expr: Optional[str] = None,
) -> MethodResult:
    """
    Dispatch helper that evaluates the chosen numerical method.

    Parameters
    ----------
    method : key of `METHODS` identifying the algorithm.
    function_expr : f(x) expression supplied by the user.
    params : numeric values needed by the specific method
        (tolerance, max_iterations, and lower/upper, x0 or x0/x1).
    g_expr : g(x) expression for Fixed Point iteration.
    derivative_expr : f'(x) expression for the Newton variants.

    Compile errors and missing parameters come back as a failed result; only an
    unknown method key raises.
    """
    method = method.lower()
    if method not in METHODS:
        raise ValueError(f"Unknown method: {method}")

    logger.debug("Running %s with params=%r", method, dict(params))
    try:
        problem = ProblemParameters.from_mapping(params)
        if method == "fixed_point":
            g = build_function(g_expr)
        else:
            f = build_function(function_expr)
        if method in ("newton_raphson", "modified_newton"):
            df = build_function(derivative_expr)
    except SolverError as exc:
        return _fail(MethodResult(method, list(_EMPTY_COLUMNS[method])), exc)

    tol, max_iter = problem.tolerance, problem.max_iterations
    if method == "bisection":
        return bisection(f, a=problem.lower, b=problem.upper, tol=tol, max_iter=max_iter)
    if method == "false_position":
        return false_position(f, a=problem.lower, b=problem.upper, tol=tol, max_iter=max_iter)
    if method == "fixed_point":
        return fixed_point_iteration(g, x0=problem.x0, tol=tol, max_iter=max_iter)
    if method == "newton_raphson":
        return newton_raphson(f, df, x0=problem.x0, tol=tol, max_iter=max_iter)
    if method == "modified_newton":
        return modified_newton(f, df, x0=problem.x0, tol=tol, max_iter=max_iter)
    return secant(f, x0=problem.x0, x1=problem.x1, tol=tol, max_iter=max_iter)
