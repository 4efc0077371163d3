"""Arithmetic formula parsing and evaluation.

Public API::

    from exprparse.formulas import parse_formula, evaluate_formula, extract_refs
"""

from exprparse.formulas.errors import (
    FormulaError,
    FormulaLimitError,
    FormulaParseError,
)
from exprparse.formulas.evaluator import evaluate_formula
from exprparse.formulas.nodes import (
    Assignment,
    BinaryOp,
    BinaryOpKind,
    Expr,
    Number,
    Summation,
    Variable,
)
from exprparse.formulas.parser import (
    DEFAULT_MAX_DEPTH,
    extract_refs,
    parse_formula,
    summation_terms,
)

__all__ = [
    "Assignment",
    "BinaryOp",
    "BinaryOpKind",
    "DEFAULT_MAX_DEPTH",
    "Expr",
    "FormulaError",
    "FormulaLimitError",
    "FormulaParseError",
    "Number",
    "Summation",
    "Variable",
    "evaluate_formula",
    "extract_refs",
    "parse_formula",
    "summation_terms",
]
