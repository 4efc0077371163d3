"""exprparse -- arithmetic formula parser and evaluator with Σ summation."""

__version__ = "0.1.0"

from exprparse.formulas import evaluate_formula, parse_formula

__all__ = ["__version__", "evaluate_formula", "parse_formula"]
