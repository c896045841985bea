"""Shared test fixtures."""

from __future__ import annotations

import pytest

from roots_expression import build_function


@pytest.fixture
def cubic():
    """f(x) = x^3 - x - 2, single real root near 1.5213797."""
    return build_function("x^3 - x - 2")


@pytest.fixture
def cubic_derivative():
    return build_function("3*x^2 - 1")


@pytest.fixture
def client():
    from app import app

    app.config["TESTING"] = True
    with app.test_client() as test_client:
        yield test_client
