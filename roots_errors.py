"""
Failure taxonomy shared by the expression evaluator and the solvers.

Every class carries a short, stable ``code`` so the web layer can report the
reason of a failed run without parsing messages.
"""

from __future__ import annotations


class SolverError(ValueError):
    """Base class for every definitional failure of a root-finding run."""

    code = "solver_error"


class InvalidExpression(SolverError):
    """Raised when a user-supplied expression cannot be parsed."""

    code = "invalid_expression"


class InvalidInput(SolverError):
    """A numeric parameter is missing, non-finite or of the wrong kind."""

    code = "invalid_input"


class InvalidTolerance(SolverError):
    code = "invalid_tolerance"


class InvalidBracket(SolverError):
    """The interval is empty/reversed or its endpoints share a sign."""

    code = "invalid_bracket"


class NonFiniteEvaluation(SolverError):
    """A function evaluation produced NaN or infinity where a number was needed."""

    code = "non_finite_evaluation"


class ZeroDerivative(SolverError):
    code = "zero_derivative"


class ZeroDenominator(SolverError):
    code = "zero_denominator"
