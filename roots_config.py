"""Logging setup and default values shared by the CLI and the web app."""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)

_LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, _LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

ROUND_MODES = ("approx", "trunc")


def _env_number(name: str, default, cast=float):
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a valid number, using %r", name, raw, default)
        return default


DEFAULT_TOLERANCE: float = _env_number("ROOTS_DEFAULT_TOLERANCE", 1e-6)
DEFAULT_MAX_ITERATIONS: int = _env_number("ROOTS_DEFAULT_MAX_ITERATIONS", 50, int)
DEFAULT_DIGITS: int = _env_number("ROOTS_DEFAULT_DIGITS", 6, int)
MAX_DIGITS: int = _env_number("ROOTS_MAX_DIGITS", 15, int)

DEFAULT_ROUND_MODE = os.environ.get("ROOTS_DEFAULT_ROUND_MODE", "approx").lower()
if DEFAULT_ROUND_MODE not in ROUND_MODES:
    logger.warning(
        "Ignoring ROOTS_DEFAULT_ROUND_MODE=%r: expected one of %s",
        DEFAULT_ROUND_MODE,
        ROUND_MODES,
    )
    DEFAULT_ROUND_MODE = "approx"

# Example problem shown when a form is first opened: x^3 - x - 2 = 0.
EXAMPLE_INPUTS = {
    "function_expr": "x^3 - x - 2",
    "g_expr": "cbrt(x + 2)",
    "derivative_expr": "3*x^2 - 1",
    "lower": "1",
    "upper": "2",
    "x0": "1.5",
    "x1": "2",
}
