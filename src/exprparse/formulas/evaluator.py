"""Tree-walking evaluator for parsed formula expressions.

Evaluation never raises: unbound variables read as ``0.0`` and
floating-point edge cases (division by zero, invalid powers, overflow)
produce IEEE-754 ``inf``/``nan`` instead of Python exceptions.
"""

from __future__ import annotations

import math
from collections.abc import Mapping

from exprparse.formulas.nodes import (
    Assignment,
    BinaryOp,
    BinaryOpKind,
    Expr,
    Number,
    Summation,
    Variable,
)


def evaluate_formula(expr: Expr, bindings: Mapping[str, float] | None = None) -> float:
    """Evaluate an expression tree against a variable binding table.

    Args:
        expr: Tree from ``parse_formula()``.
        bindings: Mapping of variable names to values. Never mutated.

    Returns:
        The computed value as a float.
    """
    return _eval(expr, bindings if bindings is not None else {})


def _eval(node: Expr, env: Mapping[str, float]) -> float:
    if isinstance(node, Number):
        return node.value
    if isinstance(node, Variable):
        return float(env.get(node.name, 0.0))
    if isinstance(node, BinaryOp):
        left = _eval(node.left, env)
        right = _eval(node.right, env)
        return _apply(node.kind, left, right)
    if isinstance(node, Summation):
        return _eval_summation(node, env)
    if isinstance(node, Assignment):
        return _eval(node.value, env)
    raise TypeError(f"Unknown node type: {type(node).__name__}")


def _apply(kind: BinaryOpKind, left: float, right: float) -> float:
    if kind is BinaryOpKind.add:
        return left + right
    if kind is BinaryOpKind.sub:
        return left - right
    if kind is BinaryOpKind.mul:
        return left * right
    if kind is BinaryOpKind.div:
        return _div(left, right)
    return _pow(left, right)


def _eval_summation(node: Summation, env: Mapping[str, float]) -> float:
    """Sum the body over ``int(start)..int(end)`` inclusive.

    The loop variable lives in a private copy of the bindings so it never
    leaks to the caller or to sibling subtrees.
    """
    scope = dict(env)
    total = 0.0
    for i in range(int(node.start), int(node.end) + 1):
        scope[node.variable] = float(i)
        total += _eval(node.body, scope)
    return total


def _div(left: float, right: float) -> float:
    if right == 0.0:
        if left == 0.0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


def _pow(base: float, exponent: float) -> float:
    try:
        return math.pow(base, exponent)
    except OverflowError:
        if base < 0 and _is_odd_integer(exponent):
            return -math.inf
        return math.inf
    except ValueError:
        # math.pow reports both pole and domain errors as ValueError
        if base == 0.0:
            if _is_odd_integer(exponent):
                return math.copysign(math.inf, base)
            return math.inf
        return math.nan


def _is_odd_integer(value: float) -> bool:
    return math.isfinite(value) and value.is_integer() and int(value) % 2 == 1
