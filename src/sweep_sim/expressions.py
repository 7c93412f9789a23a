"""
Compile user expressions such as ``R - sqrt(x^2 + y^2)`` into plain callables.

Parsing goes through sympy (``^`` is read as a power), code generation through
``sympy.lambdify`` targeting the ``math`` module so that scalar calls stay cheap.
"""

from __future__ import annotations

import math
import warnings
from typing import Callable, Dict, Mapping, Optional, Sequence

import sympy
from sympy.core.function import AppliedUndef
from sympy.parsing.sympy_parser import (
    convert_xor,
    parse_expr,
    standard_transformations,
)

DEFAULT_CONSTRAINT_EXPRESSION = "R - sqrt(x^2 + y^2)"
INFEASIBLE_VALUE = -1.0

_TRANSFORMATIONS = standard_transformations + (convert_xor,)


class ExpressionError(ValueError):
    """Raised when an expression cannot be parsed or uses unknown names."""


def compile_expression(
    text: str,
    variables: Sequence[str],
    constants: Optional[Mapping[str, float]] = None,
) -> Callable[..., float]:
    """
    Compile ``text`` into a function of ``variables`` (positional).

    Names in ``constants`` are substituted before code generation. ``pi`` and
    ``e`` are understood; any other free name is an error.
    """
    if not isinstance(text, str) or not text.strip():
        raise ExpressionError(f"empty expression: {text!r}")

    constants = dict(constants or {})
    symbols = {name: sympy.Symbol(name) for name in list(variables) + list(constants)}
    local_dict: Dict[str, object] = {"pi": sympy.pi, "e": sympy.E}
    local_dict.update(symbols)

    try:
        expr = parse_expr(text, local_dict=local_dict, transformations=_TRANSFORMATIONS)
    except Exception as exc:  # sympy surfaces SyntaxError, TokenError, TypeError...
        raise ExpressionError(f"cannot parse {text!r}: {exc}") from exc

    if not isinstance(expr, sympy.Expr):
        raise ExpressionError(f"{text!r} is not a scalar expression")

    if constants:
        expr = expr.subs({symbols[k]: float(v) for k, v in constants.items()})

    var_symbols = [symbols[name] for name in variables]
    unknown = expr.free_symbols - set(var_symbols)
    if unknown:
        names = ", ".join(sorted(str(s) for s in unknown))
        raise ExpressionError(f"unknown name(s) in {text!r}: {names}")
    undefined = expr.atoms(AppliedUndef)
    if undefined:
        names = ", ".join(sorted(str(f.func) for f in undefined))
        raise ExpressionError(f"unknown function(s) in {text!r}: {names}")

    return sympy.lambdify(var_symbols, expr, modules="math")


def _finite_or_none(value) -> Optional[float]:
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def make_constraint_evaluator(spec) -> Callable[[float, float], float]:
    """
    Build g(x, y) for a ConstraintSpec-like object (expression, R, r, a, b).

    An unparsable expression falls back to the default disk. Any failure while
    evaluating (exception, complex or non-finite value) yields -1 (infeasible).
    """
    constants = {"R": spec.R, "r": spec.r, "a": spec.a, "b": spec.b}
    try:
        fn = compile_expression(spec.expression, ("x", "y"), constants)
    except ExpressionError as exc:
        warnings.warn(
            f"constraint expression rejected ({exc}); using {DEFAULT_CONSTRAINT_EXPRESSION!r}",
            RuntimeWarning,
            stacklevel=2,
        )
        fn = compile_expression(DEFAULT_CONSTRAINT_EXPRESSION, ("x", "y"), constants)

    def evaluate(x: float, y: float) -> float:
        try:
            value = fn(x, y)
        except (ArithmeticError, ValueError, TypeError):
            return INFEASIBLE_VALUE
        out = _finite_or_none(value)
        return INFEASIBLE_VALUE if out is None else out

    return evaluate


def make_time_function(text: str) -> Callable[[float], float]:
    """
    Build f(t) from an expression in ``t``.

    Parse errors raise ExpressionError; evaluation failures give 0.0.
    """
    fn = compile_expression(text, ("t",))

    def evaluate(t: float) -> float:
        try:
            value = fn(t)
        except (ArithmeticError, ValueError, TypeError):
            return 0.0
        out = _finite_or_none(value)
        return 0.0 if out is None else out

    return evaluate


__all__ = [
    "DEFAULT_CONSTRAINT_EXPRESSION",
    "INFEASIBLE_VALUE",
    "ExpressionError",
    "compile_expression",
    "make_constraint_evaluator",
    "make_time_function",
]
