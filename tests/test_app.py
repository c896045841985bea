"""Tests for the Flask web page and JSON API."""

from __future__ import annotations

import pytest


class TestIndexPage:
    def test_get_renders_form(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert b"Roots Calculator" in resp.data
        assert b"x^3 - x - 2" in resp.data

    def test_newton_run(self, client):
        resp = client.post(
            "/",
            data={
                "method": "newton_raphson",
                "function_expr": "x^3 - x - 2",
                "derivative_expr": "3*x^2 - 1",
                "x0": "1.5",
                "tolerance": "1e-6",
                "max_iterations": "50",
                "digits": "6",
                "mode": "approx",
            },
        )
        assert resp.status_code == 200
        assert b"converged" in resp.data
        assert b"1.521380" in resp.data
        assert b"x**3 - x - 2" in resp.data
        assert b"Status: <strong>converged</strong> - Converged in" in resp.data
        assert b"&mdash;" not in resp.data

    def test_non_numeric_field(self, client):
        resp = client.post(
            "/",
            data={"method": "bisection", "function_expr": "x", "lower": "-1", "upper": "1", "tolerance": "abc"},
        )
        assert resp.status_code == 200
        assert b"Tolerance must be numeric." in resp.data

    def test_invalid_expression_is_reported(self, client):
        resp = client.post(
            "/",
            data={"method": "bisection", "function_expr": "x +", "lower": "1", "upper": "2"},
        )
        assert b"Invalid expression" in resp.data


class TestSolveApi:
    def test_exact_zero_bracket(self, client):
        resp = client.post(
            "/api/solve",
            json={
                "method": "bisection",
                "function_expr": "x - 3",
                "params": {"lower": 0, "upper": 3, "tolerance": 1e-6, "max_iterations": 50},
            },
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "converged"
        assert body["root"] == 3.0
        assert body["iterations"] == []

    def test_rounded_newton(self, client):
        resp = client.post(
            "/api/solve",
            json={
                "method": "newton_raphson",
                "function_expr": "x^3 - x - 2",
                "derivative_expr": "3*x^2 - 1",
                "params": {"x0": 1.5, "tolerance": 1e-6, "max_iterations": 50},
                "digits": 3,
                "mode": "approx",
            },
        )
        body = resp.get_json()
        assert body["root"] == 1.521
        assert body["columns"] == ["iteration", "x", "f(x)", "f'(x)", "x_next", "error"]

    def test_failure_code(self, client):
        resp = client.post(
            "/api/solve",
            json={
                "method": "secant",
                "function_expr": "5",
                "params": {"x0": 1, "x1": 2, "tolerance": 1e-6, "max_iterations": 50},
            },
        )
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["status"] == "failed"
        assert body["failure"] == "zero_denominator"

    def test_non_json_body(self, client):
        resp = client.post("/api/solve", data="nope", content_type="text/plain")
        assert resp.status_code == 400

    def test_missing_parameter(self, client):
        resp = client.post(
            "/api/solve",
            json={"method": "bisection", "function_expr": "x", "params": {"lower": -1}},
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Upper is required."

    def test_unknown_method(self, client):
        resp = client.post("/api/solve", json={"method": "brent", "params": {}})
        assert resp.status_code == 400

    def test_bad_mode(self, client):
        resp = client.post(
            "/api/solve",
            json={"method": "fixed_point", "g_expr": "cos(x)", "params": {"x0": 1}, "digits": 4, "mode": "up"},
        )
        assert resp.status_code == 400

    def test_bad_mode_without_digits(self, client):
        resp = client.post(
            "/api/solve",
            json={"method": "fixed_point", "g_expr": "cos(x)", "params": {"x0": 1}, "mode": "up"},
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Mode must be one of: approx, trunc."

    def test_mode_without_digits_leaves_values_unrounded(self, client):
        resp = client.post(
            "/api/solve",
            json={"method": "fixed_point", "g_expr": "cos(x)", "params": {"x0": 1}, "mode": "TRUNC"},
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "converged"
        assert body["root"] == pytest.approx(0.7390851, abs=1e-5)
        assert body["root"] != round(body["root"], 6)


class TestMethodsApi:
    def test_lists_methods(self, client):
        body = client.get("/api/methods").get_json()
        assert body["secant"]["params"] == ["x0", "x1"]
        assert body["fixed_point"]["expressions"] == ["g_expr"]
        assert set(body) == {
            "bisection",
            "false_position",
            "fixed_point",
            "newton_raphson",
            "modified_newton",
            "secant",
        }
