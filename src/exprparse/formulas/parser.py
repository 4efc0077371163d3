"""Lark-based parser for arithmetic formulas with Σ summation.

Supports:
- Numeric literals (``3``, ``-2.5``) and variable references (``rate``)
- ``+ - * /`` (left-associative) and ``^`` (right-associative)
- Parenthesized sub-expressions
- An optional leading assignment: ``ROI = (R - C) / C * 100``
- Summation: ``Σi=1to4(i^2 + 1)``

The parse tree is folded into ``exprparse.formulas.nodes`` objects while
the LALR parser runs, so no recursive pass over the tree is needed.
"""

from __future__ import annotations

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import UnexpectedInput, UnexpectedToken

from exprparse.formulas.errors import FormulaLimitError, FormulaParseError
from exprparse.formulas.nodes import (
    Assignment,
    BinaryOp,
    BinaryOpKind,
    Expr,
    Number,
    Summation,
    Variable,
)

# LALR(1) grammar.
# Operator precedence (lowest to highest):
#   1. Assignment: NAME = ...  (top level or directly inside parentheses)
#   2. Addition/subtraction: + -
#   3. Multiplication/division: * /
#   4. Exponentiation: ^ (right-associative)
#   5. Atoms: number, name, parenthesized expr, summation
#
# The leading "-" of NUMBER never clashes with the minus operator: the
# contextual lexer only offers NUMBER where an operand is expected, so
# "1-2" lexes as NUMBER MINUS NUMBER and "1--2" as NUMBER MINUS NUMBER(-2).
GRAMMAR = r"""
start: expr

?expr: assignment
    | sum

assignment: NAME "=" sum

?sum: product
    | sum "+" product  -> add
    | sum "-" product  -> sub

?product: power
    | product "*" power  -> mul
    | product "/" power  -> div

?power: atom
    | atom "^" power  -> pow

?atom: NUMBER  -> number
    | NAME     -> variable
    | "(" expr ")"
    | summation

summation: "Σ" NAME "=" NUMBER "to" NUMBER "(" expr ")"

NAME: /[A-Za-z][A-Za-z0-9_]*/
NUMBER: /-?[0-9]+(\.[0-9]+)?/

WS: /[ \t\n]+/
%ignore WS
"""

DEFAULT_MAX_DEPTH = 500


@v_args(inline=True)
class _ExprBuilder(Transformer):
    """Folds each reduced rule into an expression node."""

    def start(self, expr: Expr) -> Expr:
        return expr

    def number(self, token: Token) -> Number:
        return Number(float(token))

    def variable(self, token: Token) -> Variable:
        return Variable(str(token))

    def assignment(self, _name: Token, value: Expr) -> Assignment:
        return Assignment(value)

    def add(self, left: Expr, right: Expr) -> BinaryOp:
        return BinaryOp(BinaryOpKind.add, left, right)

    def sub(self, left: Expr, right: Expr) -> BinaryOp:
        return BinaryOp(BinaryOpKind.sub, left, right)

    def mul(self, left: Expr, right: Expr) -> BinaryOp:
        return BinaryOp(BinaryOpKind.mul, left, right)

    def div(self, left: Expr, right: Expr) -> BinaryOp:
        return BinaryOp(BinaryOpKind.div, left, right)

    def pow(self, base: Expr, exponent: Expr) -> BinaryOp:
        return BinaryOp(BinaryOpKind.pow, base, exponent)

    def summation(self, var: Token, start: Token, end: Token, body: Expr) -> Summation:
        return Summation(str(var), float(start), float(end), body)


_parser = Lark(GRAMMAR, parser="lalr", lexer="contextual", start="start", transformer=_ExprBuilder())


def parse_formula(
    text: str,
    *,
    max_depth: int | None = DEFAULT_MAX_DEPTH,
    max_summation_terms: int | None = None,
) -> Expr:
    """Parse a formula string into an expression tree.

    Args:
        text: The formula text, e.g. ``"ROI = (R - C) / C * 100"``.
        max_depth: Deepest allowed tree (in nodes), or ``None`` for no limit.
        max_summation_terms: Largest number of iterations a single Σ may
            span, or ``None`` for no limit.

    Returns:
        The root expression node.

    Raises:
        FormulaParseError: If the text does not match the grammar.
        FormulaLimitError: If the tree exceeds ``max_depth`` or a Σ range
            exceeds ``max_summation_terms``.
    """
    try:
        expr = _parser.parse(text)
    except UnexpectedInput as exc:
        raise FormulaParseError(_describe(exc), position=_error_position(exc, text)) from exc

    _check_limits(expr, max_depth, max_summation_terms)
    return expr


def _error_position(exc: UnexpectedInput, text: str) -> int:
    """Character offset of a Lark error; end-of-input maps to ``len(text)``."""
    if isinstance(exc, UnexpectedToken) and exc.token.type == "$END":
        return len(text)
    pos = getattr(exc, "pos_in_stream", None)
    if pos is None or pos < 0:
        return len(text)
    return pos


def _describe(exc: UnexpectedInput) -> str:
    if isinstance(exc, UnexpectedToken):
        if exc.token.type == "$END":
            return "unexpected end of input"
        return f"unexpected token {str(exc.token)!r}"
    char = getattr(exc, "char", None)
    if char is not None:
        return f"unexpected character {char!r}"
    return "unexpected end of input"


def _check_limits(expr: Expr, max_depth: int | None, max_terms: int | None) -> None:
    """Walk the tree with an explicit stack and enforce resource limits."""
    if max_depth is None and max_terms is None:
        return

    stack: list[tuple[Expr, int]] = [(expr, 1)]
    while stack:
        node, depth = stack.pop()
        if max_depth is not None and depth > max_depth:
            raise FormulaLimitError(
                f"Formula nesting exceeds maximum depth of {max_depth}",
                limit="max_depth",
            )
        if max_terms is not None and isinstance(node, Summation):
            terms = summation_terms(node)
            if terms > max_terms:
                raise FormulaLimitError(
                    f"Summation over {node.variable!r} spans {terms} terms "
                    f"(maximum {max_terms})",
                    limit="max_summation_terms",
                )
        stack.extend((child, depth + 1) for child in node.children())


def summation_terms(node: Summation) -> int:
    """Number of body evaluations a Σ node performs."""
    return max(0, int(node.end) - int(node.start) + 1)


def extract_refs(expr: Expr) -> set[str]:
    """Extract the free variable names referenced by an expression tree.

    A Σ loop variable is bound inside its own body, so references to it
    there are not reported.

    Args:
        expr: A tree from ``parse_formula()``.

    Returns:
        Set of names that must come from the caller's bindings.
    """
    refs: set[str] = set()
    _collect_refs(expr, frozenset(), refs)
    return refs


def _collect_refs(node: Expr, bound: frozenset[str], refs: set[str]) -> None:
    if isinstance(node, Variable):
        if node.name not in bound:
            refs.add(node.name)
        return
    if isinstance(node, Summation):
        bound = bound | {node.variable}
    for child in node.children():
        _collect_refs(child, bound, refs)
