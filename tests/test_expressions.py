# tests/test_expressions.py
import math

import pytest

from sweep_sim import ConstraintSpec, ExpressionError
from sweep_sim.expressions import (
    INFEASIBLE_VALUE,
    compile_expression,
    make_constraint_evaluator,
    make_time_function,
)


def test_caret_is_power():
    f = compile_expression("x^2 + y^2", ("x", "y"))
    assert f(3.0, 4.0) == pytest.approx(25.0)


def test_named_constants_substituted():
    g = make_constraint_evaluator(ConstraintSpec("R - sqrt(x^2 + y^2)", R=2.0))
    assert g(0.0, 0.0) == pytest.approx(2.0)
    assert g(3.0, 0.0) == pytest.approx(-1.0)


def test_pi_and_functions():
    f = make_time_function("2*cos(pi*t) + exp(0)")
    assert f(1.0) == pytest.approx(-1.0)


def test_unknown_name_rejected():
    with pytest.raises(ExpressionError):
        compile_expression("x + z", ("x", "y"))
    with pytest.raises(ExpressionError):
        compile_expression("foo(x)", ("x", "y"))
    with pytest.raises(ExpressionError):
        compile_expression("", ("t",))


def test_unparsable_constraint_falls_back_to_disk():
    with pytest.warns(RuntimeWarning):
        g = make_constraint_evaluator(ConstraintSpec("R - sqrt(x^2 +", R=1.0))
    assert g(0.0, 0.0) == pytest.approx(1.0)
    assert g(2.0, 0.0) == pytest.approx(-1.0)


def test_evaluation_failure_is_infeasible():
    g = make_constraint_evaluator(ConstraintSpec("sqrt(x) - 1", R=1.0))
    assert g(4.0, 0.0) == pytest.approx(1.0)
    assert g(-4.0, 0.0) == INFEASIBLE_VALUE

    g = make_constraint_evaluator(ConstraintSpec("1/x", R=1.0))
    assert g(0.0, 0.0) == INFEASIBLE_VALUE


def test_time_function_failure_is_zero():
    f = make_time_function("log(t)")
    assert f(math.e) == pytest.approx(1.0)
    assert f(-1.0) == 0.0


def test_constant_expression():
    f = make_time_function("0")
    assert f(3.0) == 0.0
