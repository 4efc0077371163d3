"""Immutable expression tree produced by ``parse_formula()``."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class BinaryOpKind(str, Enum):
    add = "add"
    sub = "sub"
    mul = "mul"
    div = "div"
    pow = "pow"


@dataclass(frozen=True)
class Number:
    """A numeric literal."""

    value: float

    def children(self) -> tuple[Expr, ...]:
        return ()


@dataclass(frozen=True)
class Variable:
    """A reference resolved against the bindings at evaluation time."""

    name: str

    def children(self) -> tuple[Expr, ...]:
        return ()


@dataclass(frozen=True)
class BinaryOp:
    kind: BinaryOpKind
    left: Expr
    right: Expr

    def children(self) -> tuple[Expr, ...]:
        return (self.left, self.right)


@dataclass(frozen=True)
class Summation:
    """``Σvariable=start to end(body)``.

    Both bounds are kept as written; the evaluator truncates them to
    integers.
    """

    variable: str
    start: float
    end: float
    body: Expr

    def children(self) -> tuple[Expr, ...]:
        return (self.body,)


@dataclass(frozen=True)
class Assignment:
    """Right-hand side of ``name = expr``.

    The target name is not kept; callers that want it recover it from the
    formula text (see ``exprparse.inputs.result_label``).
    """

    value: Expr

    def children(self) -> tuple[Expr, ...]:
        return (self.value,)


Expr = Number | Variable | BinaryOp | Summation | Assignment
