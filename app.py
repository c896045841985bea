"""
Flask web GUI for the Roots Calculator.

Users can:
    - Pick any of the root-finding methods.
    - Enter f(x) (g(x) or f'(x) where required) plus method-specific parameters.
    - Choose how many decimals to show and whether to round or truncate.
    - Review the iteration table and the approximate root.

`POST /api/solve` exposes the same runs as JSON for scripted use.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import sympy as sp
from flask import Flask, jsonify, render_template, request

import roots_config as config
from roots_errors import InvalidExpression
from roots_expression import build_function
from roots_solver import METHODS, MethodResult, format_rows, format_value, run_method

logger = logging.getLogger(__name__)

app = Flask(__name__)

DEFAULTS = {
    **config.EXAMPLE_INPUTS,
    "tolerance": str(config.DEFAULT_TOLERANCE),
    "max_iterations": str(config.DEFAULT_MAX_ITERATIONS),
    "digits": str(config.DEFAULT_DIGITS),
    "mode": config.DEFAULT_ROUND_MODE,
}


def _float_from_form(name: str, form, default: Optional[float] = None) -> float:
    raw = form.get(name)
    if raw is None or str(raw).strip() == "":
        if default is None:
            raise ValueError(f"{name.replace('_', ' ').title()} is required.")
        return default
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name.replace('_', ' ').title()} must be numeric.") from exc


def _int_from_form(name: str, form, default: Optional[int] = None) -> int:
    raw = form.get(name)
    if raw is None or str(raw).strip() == "":
        if default is None:
            raise ValueError(f"{name.replace('_', ' ').title()} is required.")
        return default
    if isinstance(raw, float):
        raw = int(raw) if raw.is_integer() else str(raw)
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name.replace('_', ' ').title()} must be an integer.") from exc


def _collect_params(method: str, form: Mapping[str, Any]) -> Dict[str, float]:
    if method not in METHODS:
        raise ValueError(f"Unsupported method: {method}")
    params: Dict[str, float] = {
        "tolerance": _float_from_form("tolerance", form, default=config.DEFAULT_TOLERANCE),
        "max_iterations": _int_from_form("max_iterations", form, default=config.DEFAULT_MAX_ITERATIONS),
    }
    for name in METHODS[method].params:
        params[name] = _float_from_form(name, form)
    return params


def _round_mode(form: Mapping[str, Any]) -> str:
    mode = str(form.get("mode") or config.DEFAULT_ROUND_MODE).lower()
    if mode not in config.ROUND_MODES:
        raise ValueError(f"Mode must be one of: {', '.join(config.ROUND_MODES)}.")
    return mode


def _display_options(form: Mapping[str, Any]):
    digits = _int_from_form("digits", form, default=config.DEFAULT_DIGITS)
    digits = max(0, min(digits, config.MAX_DIGITS))
    return digits, _round_mode(form)


def _interpretations(method: str, expressions: Mapping[str, str]) -> Dict[str, str]:
    """How each expression was understood, in SymPy's canonical form."""
    shown = {}
    for name in METHODS[method].expressions:
        try:
            shown[name] = sp.sstr(build_function(expressions.get(name)).to_sympy())
        except InvalidExpression:
            continue
    return shown


@app.route("/", methods=["GET", "POST"])
def index():
    result: Optional[MethodResult] = None
    error_message: Optional[str] = None
    values = {**DEFAULTS, **request.form.to_dict()}
    selected_method = values.get("method", "bisection")
    digits, mode = config.DEFAULT_DIGITS, config.DEFAULT_ROUND_MODE
    interpreted: Dict[str, str] = {}

    if request.method == "POST":
        try:
            params = _collect_params(selected_method, request.form)
            digits, mode = _display_options(request.form)
            expressions = {name: values.get(name, "") for name in METHODS[selected_method].expressions}
            result = run_method(selected_method, params=params, **expressions)
            interpreted = _interpretations(selected_method, expressions)
        except ValueError as exc:
            error_message = str(exc)
        if result is not None and result.failure is not None:
            logger.info("%s failed: %s", selected_method, result.failure.code)
            error_message = result.message

    context = {
        "methods": METHODS,
        "selected_method": selected_method,
        "values": values,
        "result": result,
        "rows": format_rows(result, digits, mode) if result is not None else [],
        "root": format_value(result.root, digits, mode) if result is not None else None,
        "interpreted": interpreted,
        "error_message": error_message,
    }
    return render_template("index.html", **context)


@app.route("/api/methods", methods=["GET"])
def api_methods():
    return jsonify(
        {
            key: {"label": info.label, "params": list(info.params), "expressions": list(info.expressions)}
            for key, info in METHODS.items()
        }
    )


@app.route("/api/solve", methods=["POST"])
def api_solve():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Request body must be a JSON object."}), 400

    method = str(payload.get("method", "")).lower()
    raw_params = payload.get("params") or {}
    if not isinstance(raw_params, dict):
        return jsonify({"error": "params must be an object."}), 400
    try:
        params = _collect_params(method, raw_params)
        digits = None
        mode = _round_mode(payload)
        if payload.get("digits") is not None:
            digits, mode = _display_options(payload)
    except ValueError as exc:
        logger.warning("Rejected /api/solve request: %s", exc)
        return jsonify({"error": str(exc)}), 400

    expressions = {
        name: None if payload.get(name) is None else str(payload[name])
        for name in METHODS[method].expressions
    }
    result = run_method(method, params=params, **expressions)
    return jsonify(result.to_dict(digits=digits, mode=mode))


if __name__ == "__main__":
    app.run(debug=True)
