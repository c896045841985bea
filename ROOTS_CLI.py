"""
Command-Line Interface for the Roots Calculator.

The CLI walks students through:
    1. Choosing any of the supported root-finding methods.
    2. Entering the required function(s), initial parameters and display
       precision (decimal digits, rounding or truncation).
    3. Viewing the iteration table plus the final approximate root.

The same numerical core is shared with the Flask web interface.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import sympy as sp

import roots_config as config
from roots_errors import InvalidExpression
from roots_expression import build_function
from roots_solver import METHODS, MethodResult, format_rows, format_value, run_method

logger = logging.getLogger(__name__)


def _print_iterations(result: MethodResult, digits: int, mode: str) -> None:
    if not result.iterations:
        print("No iteration details to display.")
        return
    columns = result.columns
    rows = format_rows(result, digits, mode)

    widths = [
        max(len(col), *(len(row[idx]) for row in rows))
        for idx, col in enumerate(columns)
    ]
    rule = "-" * (sum(widths) + 3 * (len(columns) - 1))

    def print_row(values: List[str]) -> None:
        print(" | ".join(value.rjust(widths[idx]) for idx, value in enumerate(values)))

    print("\nIterations")
    print(rule)
    print_row(columns)
    print(rule)
    for row in rows:
        print_row(row)
    print(rule)


def _prompt_float(message: str, *, default: Optional[float] = None) -> float:
    while True:
        raw = input(f"{message} " + (f"[default: {default}] " if default is not None else ""))
        if not raw.strip():
            if default is not None:
                return default
            print("Value is required. Please try again.")
            continue
        try:
            return float(raw)
        except ValueError:
            print("Invalid number. Please enter a numeric value.")


def _prompt_int(message: str, *, default: Optional[int] = None) -> int:
    while True:
        raw = input(f"{message} " + (f"[default: {default}] " if default is not None else ""))
        if not raw.strip():
            if default is not None:
                return default
            print("Value is required. Please try again.")
            continue
        try:
            return int(raw)
        except ValueError:
            print("Invalid integer. Please enter a whole number.")


def _prompt_function(prompt: str, default: str) -> str:
    """Ask for an expression until it parses; echo how it was understood."""
    while True:
        expr = input(f"{prompt} [default: {default}] ").strip() or default
        try:
            compiled = build_function(expr)
        except InvalidExpression as exc:
            print(exc)
            continue
        print(f"  interpreted as: {sp.sstr(compiled.to_sympy())}")
        return expr


def _prompt_mode() -> str:
    while True:
        raw = input(f"Rounding mode (approx/trunc) [default: {config.DEFAULT_ROUND_MODE}] ")
        mode = raw.strip().lower() or config.DEFAULT_ROUND_MODE
        if mode in config.ROUND_MODES:
            return mode
        print("Please answer 'approx' or 'trunc'.")


_PARAM_PROMPTS = {
    "lower": "Enter lower bound (a):",
    "upper": "Enter upper bound (b):",
    "x0": "Enter initial guess (x0):",
    "x1": "Enter second initial guess (x1):",
}

_EXPRESSION_PROMPTS = {
    "function_expr": ("Enter f(x):", config.EXAMPLE_INPUTS["function_expr"]),
    "g_expr": ("Enter g(x) for x = g(x):", config.EXAMPLE_INPUTS["g_expr"]),
    "derivative_expr": ("Enter f'(x):", config.EXAMPLE_INPUTS["derivative_expr"]),
}


def _collect_method_params(method_key: str) -> Dict[str, float]:
    params: Dict[str, float] = {
        "tolerance": _prompt_float("Enter tolerance (e.g., 1e-6):", default=config.DEFAULT_TOLERANCE),
        "max_iterations": _prompt_int("Enter maximum iterations:", default=config.DEFAULT_MAX_ITERATIONS),
    }
    for name in METHODS[method_key].params:
        params[name] = _prompt_float(_PARAM_PROMPTS[name], default=float(config.EXAMPLE_INPUTS[name]))
    return params


def _display_summary(result: MethodResult, digits: int, mode: str) -> None:
    print("\nSummary")
    print("-------")
    print(f"Status        : {result.status}")
    print(f"Approx. root  : {format_value(result.root, digits, mode)}")
    print(f"Final error   : {format_value(result.final_error, digits, mode)}")
    print(f"Iterations    : {len(result.iterations)}")
    print(f"Message       : {result.message}")


def main() -> None:
    print("=" * 70)
    print("Roots Calculator - CLI")
    print("Enter equations using the variable x. Example: x^3 - x - 2 or sin(x) - x/2")
    print("=" * 70)

    method_keys = list(METHODS)

    while True:
        print("\nAvailable Methods:")
        for idx, key in enumerate(method_keys, start=1):
            print(f"  {idx}. {METHODS[key].label}")
        print("  0. Exit")

        choice_raw = input("\nSelect a method by number: ").strip()
        if choice_raw == "0":
            print("Goodbye!")
            break
        try:
            choice = int(choice_raw)
            if choice < 1:
                raise IndexError(choice)
            method_key = method_keys[choice - 1]
        except (ValueError, IndexError):
            print("Invalid selection. Please choose a valid method number.")
            continue

        expressions = {
            name: _prompt_function(*_EXPRESSION_PROMPTS[name])
            for name in METHODS[method_key].expressions
        }
        params = _collect_method_params(method_key)
        digits = _prompt_int("Decimal digits to display:", default=config.DEFAULT_DIGITS)
        digits = max(0, min(digits, config.MAX_DIGITS))
        mode = _prompt_mode()

        result = run_method(method_key, params=params, **expressions)
        if result.failure is not None:
            logger.info("%s failed: %s", method_key, result.failure.code)

        _print_iterations(result, digits, mode)
        _display_summary(result, digits, mode)

        again = input("\nWould you like to solve another equation? (y/n): ").strip()
        if again.lower() not in {"y", "yes"}:
            print("Thanks for using the Roots Calculator!")
            break


if __name__ == "__main__":
    main()
