"""Formula parsing and evaluation tests."""

from __future__ import annotations

import math
from types import MappingProxyType

import pytest

from exprparse.formulas import (
    Assignment,
    BinaryOp,
    BinaryOpKind,
    FormulaError,
    FormulaLimitError,
    FormulaParseError,
    Number,
    Summation,
    Variable,
    evaluate_formula,
    extract_refs,
    parse_formula,
)


def calc(text: str, bindings: dict[str, float] | None = None) -> float:
    return evaluate_formula(parse_formula(text), bindings or {})


# ────────────────────────────────────────────────────────────────
# Parser tests
# ────────────────────────────────────────────────────────────────


class TestParser:
    """Tests for parse_formula tree construction."""

    def test_precedence_tree(self) -> None:
        expr = parse_formula("1 + 2 * 3")
        assert expr == BinaryOp(
            BinaryOpKind.add,
            Number(1.0),
            BinaryOp(BinaryOpKind.mul, Number(2.0), Number(3.0)),
        )

    def test_subtraction_left_associative(self) -> None:
        """8 - 3 - 2 groups as (8 - 3) - 2."""
        expr = parse_formula("8 - 3 - 2")
        assert expr == BinaryOp(
            BinaryOpKind.sub,
            BinaryOp(BinaryOpKind.sub, Number(8.0), Number(3.0)),
            Number(2.0),
        )

    def test_division_left_associative(self) -> None:
        expr = parse_formula("a / b * c")
        assert expr == BinaryOp(
            BinaryOpKind.mul,
            BinaryOp(BinaryOpKind.div, Variable("a"), Variable("b")),
            Variable("c"),
        )

    def test_exponentiation_right_associative(self) -> None:
        """a^b^c groups as a^(b^c)."""
        expr = parse_formula("a ^ b ^ c")
        assert expr == BinaryOp(
            BinaryOpKind.pow,
            Variable("a"),
            BinaryOp(BinaryOpKind.pow, Variable("b"), Variable("c")),
        )

    def test_power_binds_tighter_than_product(self) -> None:
        expr = parse_formula("2 * x ^ 2")
        assert expr == BinaryOp(
            BinaryOpKind.mul,
            Number(2.0),
            BinaryOp(BinaryOpKind.pow, Variable("x"), Number(2.0)),
        )

    def test_parentheses_do_not_create_nodes(self) -> None:
        assert parse_formula("((x))") == Variable("x")

    def test_number_literals(self) -> None:
        assert parse_formula("42") == Number(42.0)
        assert parse_formula("3.25") == Number(3.25)
        assert parse_formula("-7") == Number(-7.0)

    def test_minus_after_operand_is_subtraction(self) -> None:
        assert parse_formula("1-2") == BinaryOp(BinaryOpKind.sub, Number(1.0), Number(2.0))
        assert parse_formula("x -2") == BinaryOp(BinaryOpKind.sub, Variable("x"), Number(2.0))

    def test_negative_literal_after_operator(self) -> None:
        assert parse_formula("1--2") == BinaryOp(BinaryOpKind.sub, Number(1.0), Number(-2.0))
        assert parse_formula("2^-1") == BinaryOp(BinaryOpKind.pow, Number(2.0), Number(-1.0))

    def test_identifiers(self) -> None:
        assert parse_formula("net_income2") == Variable("net_income2")
        assert parse_formula("Rate") == Variable("Rate")

    def test_assignment_drops_target(self) -> None:
        expr = parse_formula("ROI = R - C")
        assert expr == Assignment(BinaryOp(BinaryOpKind.sub, Variable("R"), Variable("C")))

    def test_assignment_inside_parentheses(self) -> None:
        assert parse_formula("(x = 2)") == Assignment(Number(2.0))

    def test_summation(self) -> None:
        expr = parse_formula("Σi=1to4(i^2 + 1)")
        assert expr == Summation(
            "i",
            1.0,
            4.0,
            BinaryOp(
                BinaryOpKind.add,
                BinaryOp(BinaryOpKind.pow, Variable("i"), Number(2.0)),
                Number(1.0),
            ),
        )

    def test_summation_with_whitespace(self) -> None:
        assert parse_formula("Σ k = -2 to 3.5 ( k )") == Summation("k", -2.0, 3.5, Variable("k"))

    def test_summation_as_operand(self) -> None:
        expr = parse_formula("2 * Σi=1to3(i)")
        assert expr == BinaryOp(BinaryOpKind.mul, Number(2.0), Summation("i", 1.0, 3.0, Variable("i")))

    def test_whitespace_insignificant(self) -> None:
        assert parse_formula("1+2") == parse_formula("  1  +  2  ")
        assert parse_formula("1+2") == parse_formula("\t1\n+\n2\n")

    def test_trees_are_immutable(self) -> None:
        expr = parse_formula("x + 1")
        with pytest.raises(AttributeError):
            expr.left = Number(5.0)  # type: ignore[misc]


class TestParseErrors:
    """Malformed input raises FormulaParseError with a position."""

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "   ",
            "1 +",
            "(1 + 2",
            "1 + 2)",
            "1 2",
            "-x",
            "2x",
            "1 @ 2",
            "1.",
            "a = b = c",
            "é + 1",
            "1 + 2\r",
            "Σi=ato4(i)",
            "Σi=1to4 i",
            "Σi=1to(i)",
            "Σ=1to4(i)",
            "_x + 1",
        ],
    )
    def test_rejected(self, text: str) -> None:
        with pytest.raises(FormulaParseError):
            parse_formula(text)

    def test_is_formula_error(self) -> None:
        with pytest.raises(FormulaError):
            parse_formula("(")

    def test_position_of_unexpected_character(self) -> None:
        with pytest.raises(FormulaParseError) as exc_info:
            parse_formula("1 @ 2")
        assert exc_info.value.position == 2
        assert "position 2" in str(exc_info.value)

    def test_position_of_unexpected_token(self) -> None:
        with pytest.raises(FormulaParseError) as exc_info:
            parse_formula("1 + 2)")
        assert exc_info.value.position == 5

    def test_position_at_end_of_input(self) -> None:
        with pytest.raises(FormulaParseError) as exc_info:
            parse_formula("1 +")
        assert exc_info.value.position == 3

    def test_empty_input_position(self) -> None:
        with pytest.raises(FormulaParseError) as exc_info:
            parse_formula("")
        assert exc_info.value.position == 0

    def test_original_error_is_chained(self) -> None:
        with pytest.raises(FormulaParseError) as exc_info:
            parse_formula("1 +")
        assert exc_info.value.__cause__ is not None


class TestLimits:
    """Resource limits applied after construction."""

    def test_depth_limit(self) -> None:
        # add(add(add(add(1, 1), 1), 1), 1) is five nodes deep
        text = "1+1+1+1+1"
        assert isinstance(parse_formula(text, max_depth=5), BinaryOp)
        with pytest.raises(FormulaLimitError) as exc_info:
            parse_formula(text, max_depth=4)
        assert exc_info.value.limit == "max_depth"

    def test_default_depth_limit_rejects_deep_input(self) -> None:
        text = "+".join(["1"] * 2000)
        with pytest.raises(FormulaLimitError):
            parse_formula(text)

    def test_depth_limit_disabled(self) -> None:
        text = "+".join(["1"] * 2000)
        assert isinstance(parse_formula(text, max_depth=None), BinaryOp)

    def test_deepest_default_tree_evaluates(self) -> None:
        """Nested Σ costs two evaluator frames per level; 250 levels stay within the default depth."""
        text = "Σi=1to1(" * 250 + "1" + ")" * 250
        expr = parse_formula(text)
        assert evaluate_formula(expr, {}) == 1.0

    def test_summation_term_limit(self) -> None:
        assert isinstance(parse_formula("Σi=1to100(i)", max_summation_terms=100), Summation)
        with pytest.raises(FormulaLimitError) as exc_info:
            parse_formula("Σi=1to100(i)", max_summation_terms=99)
        assert exc_info.value.limit == "max_summation_terms"

    def test_empty_summation_within_any_limit(self) -> None:
        assert isinstance(parse_formula("Σi=5to1(i)", max_summation_terms=0), Summation)

    def test_nested_summation_checked(self) -> None:
        with pytest.raises(FormulaLimitError):
            parse_formula("1 + Σi=1to2(Σj=1to50(j))", max_summation_terms=10)


class TestExtractRefs:
    def test_free_variables(self) -> None:
        assert extract_refs(parse_formula("a + b * c ^ a")) == {"a", "b", "c"}

    def test_assignment_target_not_a_ref(self) -> None:
        assert extract_refs(parse_formula("ROI = (R - C) / C * 100")) == {"R", "C"}

    def test_loop_variable_bound_in_body_only(self) -> None:
        assert extract_refs(parse_formula("Σi=1to3(i * k) + i")) == {"i", "k"}

    def test_no_refs(self) -> None:
        assert extract_refs(parse_formula("Σi=1to3(i)")) == set()


# ────────────────────────────────────────────────────────────────
# Evaluator tests
# ────────────────────────────────────────────────────────────────


class TestEvaluator:
    """Concrete scenarios and arithmetic semantics."""

    def test_simple_addition(self) -> None:
        assert calc("1 + 2 * 3") == 7.0

    def test_parentheses_precedence(self) -> None:
        assert calc("(1 + 2) * 3") == 9.0

    def test_variables_usage(self) -> None:
        assert calc("A + B * 2", {"A": 3.0, "B": 4.0}) == 11.0

    def test_roi_formula(self) -> None:
        assert calc("ROI = (R - C) / C * 100", {"R": 1500.0, "C": 1000.0}) == 50.0

    def test_power(self) -> None:
        assert calc("2 ^ 3") == 8.0

    def test_summation_scenario(self) -> None:
        """Σ over 1..4 of i^2 + 1 = 2 + 5 + 10 + 17."""
        assert calc("Σi=1to4(i^2 + 1)") == 34.0

    def test_power_chain(self) -> None:
        assert calc("2^3^2") == 512.0

    def test_left_associative_arithmetic(self) -> None:
        assert calc("8 - 3 - 2") == 3.0
        assert calc("64 / 4 / 2") == 8.0

    def test_negative_literals(self) -> None:
        assert calc("1--2") == 3.0
        assert calc("2^-1") == 0.5
        # the sign belongs to the literal, so this is (-2)^2
        assert calc("-2^2") == 4.0

    def test_result_is_float(self) -> None:
        result = calc("A", {"A": 3})
        assert result == 3.0
        assert isinstance(result, float)

    def test_fractional_power(self) -> None:
        assert calc("2 ^ 0.5") == pytest.approx(math.sqrt(2))


class TestUnboundVariables:
    """Unbound names read as zero rather than raising."""

    def test_unbound_variable_is_zero(self) -> None:
        assert evaluate_formula(Variable("x"), {}) == 0.0

    def test_unbound_in_expression(self) -> None:
        assert calc("x + 1") == 1.0

    def test_no_bindings_argument(self) -> None:
        assert evaluate_formula(parse_formula("y * 2")) == 0.0

    def test_names_are_case_sensitive(self) -> None:
        assert calc("a", {"A": 5.0}) == 0.0


class TestFloatingPointEdges:
    """IEEE-754 results instead of Python exceptions."""

    def test_division_by_zero(self) -> None:
        assert calc("1 / 0") == math.inf
        assert calc("-1 / 0") == -math.inf

    def test_division_by_negative_zero(self) -> None:
        assert calc("1 / (0 * -1)") == -math.inf

    def test_zero_over_zero(self) -> None:
        assert math.isnan(calc("0 / 0"))

    def test_negative_base_fractional_exponent(self) -> None:
        assert math.isnan(calc("(-8) ^ (1 / 3)"))

    def test_zero_to_negative_power(self) -> None:
        assert calc("0 ^ -1") == math.inf

    def test_power_overflow(self) -> None:
        assert calc("10 ^ 400") == math.inf
        assert calc("(-10) ^ 401") == -math.inf

    def test_nan_propagates(self) -> None:
        assert math.isnan(calc("0 / 0 + 1"))


class TestSummation:
    def test_empty_range(self) -> None:
        assert calc("Σi=5to1(i)") == 0.0

    def test_single_term(self) -> None:
        assert calc("Σi=3to3(i * 2)") == 6.0

    def test_negative_bounds(self) -> None:
        assert calc("Σi=-2to2(i^2)") == 10.0

    def test_bounds_truncate_toward_zero(self) -> None:
        assert evaluate_formula(Summation("i", 1.9, 3.7, Variable("i")), {}) == 6.0
        # int(-2.5) == -2, so the range is -2, -1, 0
        assert evaluate_formula(Summation("i", -2.5, 0.0, Variable("i")), {}) == -3.0

    def test_body_reads_outer_bindings(self) -> None:
        assert calc("Σi=1to3(i * k)", {"k": 10.0}) == 60.0

    def test_loop_variable_does_not_leak(self) -> None:
        assert calc("Σi=1to3(i) + i", {"i": 100.0}) == 106.0

    def test_loop_variable_unbound_outside(self) -> None:
        assert calc("Σi=1to3(i) + i") == 6.0

    def test_caller_bindings_not_mutated(self) -> None:
        bindings = {"i": 100.0, "k": 2.0}
        calc("Σi=1to3(i * k)", bindings)
        assert bindings == {"i": 100.0, "k": 2.0}

    def test_nested(self) -> None:
        assert calc("Σi=1to3(Σj=1to2(i * j))") == 18.0

    def test_inner_shadows_outer(self) -> None:
        assert calc("Σi=1to2(Σi=1to3(i))") == 12.0

    def test_read_only_mapping(self) -> None:
        bindings = MappingProxyType({"k": 1.0})
        assert evaluate_formula(parse_formula("Σi=1to4(k)"), bindings) == 4.0


class TestAssignment:
    def test_transparent(self) -> None:
        assert calc("x = 2 + 3") == 5.0

    def test_no_binding_side_effect(self) -> None:
        bindings: dict[str, float] = {}
        assert calc("(x = 2) + x", bindings) == 2.0
        assert bindings == {}


class TestProperties:
    @pytest.mark.parametrize(
        "text",
        ["1 + 2 * 3", "2 ^ 3 ^ 2", "A / B - 1", "Σi=1to4(i^2 + 1)", "x = A * 2"],
    )
    def test_parentheses_transparent(self, text: str) -> None:
        bindings = {"A": 3.0, "B": 4.0}
        assert calc("(" + text + ")", bindings) == calc(text, bindings)

    def test_tree_reusable_across_evaluations(self) -> None:
        expr = parse_formula("A * 2")
        assert evaluate_formula(expr, {"A": 1.0}) == 2.0
        assert evaluate_formula(expr, {"A": 5.0}) == 10.0
        assert expr == parse_formula("A * 2")
