"""Unit tests for the criteria evaluator."""

from __future__ import annotations

import pytest

from filedb_engine.domain.entities import CriteriaCondition
from filedb_engine.domain.services.criteria import (
    build_predicate,
    evaluate_condition,
    loose_equals,
    matches,
    to_number,
)
from filedb_engine.domain.value_objects import ComparisonOperator as Op


ROW = {"id": 1, "name": "Ann Smith", "age": 30, "score": "12.5", "active": True, "note": None}


def cond(column: str, operator: Op, value: object) -> CriteriaCondition:
    return CriteriaCondition(column=column, value=value, operator=operator)


@pytest.mark.unit
class TestLooseEquality:
    """eq/neq compare values, not representations."""

    @pytest.mark.parametrize(
        ("left", "right", "expected"),
        [
            (1, "1", True),
            ("1", 1, True),
            (2.0, "2", True),
            (2, 2.0, True),
            (" 3 ", 3, True),
            (1, "one", False),
            ("abc", "abc", True),
            ("abc", "ABC", False),
            (None, None, True),
            (None, 0, False),
            (0, None, False),
            (None, "", False),
            ("", 0, False),
            (True, 1, True),
            (False, 0, True),
            ([1, 2], [1, 2], True),
        ],
    )
    def test_loose_equals(self, left: object, right: object, expected: bool) -> None:
        assert loose_equals(left, right) is expected

    def test_eq_numeric_string_column(self) -> None:
        assert evaluate_condition(ROW, cond("score", Op.EQ, 12.5))
        assert evaluate_condition(ROW, cond("id", Op.EQ, "1"))

    def test_neq_is_negation_of_eq(self) -> None:
        for value in (1, "1", 2, "Ann", None):
            eq = evaluate_condition(ROW, cond("id", Op.EQ, value))
            neq = evaluate_condition(ROW, cond("id", Op.NEQ, value))
            assert eq is not neq

    def test_missing_column_compares_as_none(self) -> None:
        assert evaluate_condition(ROW, cond("ghost", Op.EQ, None))
        assert not evaluate_condition(ROW, cond("ghost", Op.EQ, 0))
        assert evaluate_condition(ROW, cond("ghost", Op.NEQ, 0))


@pytest.mark.unit
class TestNumericComparison:
    """gt/gte/lt/lte coerce to numbers and fail closed."""

    def test_numbers(self) -> None:
        assert evaluate_condition(ROW, cond("age", Op.GT, 18))
        assert evaluate_condition(ROW, cond("age", Op.GTE, 30))
        assert not evaluate_condition(ROW, cond("age", Op.LT, 30))
        assert evaluate_condition(ROW, cond("age", Op.LTE, 30))

    def test_numeric_strings_coerce(self) -> None:
        assert evaluate_condition(ROW, cond("score", Op.GT, 12))
        assert evaluate_condition(ROW, cond("age", Op.GTE, "18"))

    @pytest.mark.parametrize("value", ["abc", None, True, float("nan"), [1], ""])
    def test_non_numeric_is_false(self, value: object) -> None:
        for operator in (Op.GT, Op.GTE, Op.LT, Op.LTE):
            assert evaluate_condition(ROW, cond("age", operator, value)) is False

    def test_non_numeric_column_is_false(self) -> None:
        assert not evaluate_condition(ROW, cond("name", Op.GT, 0))
        assert not evaluate_condition(ROW, cond("note", Op.LT, 100))
        assert not evaluate_condition(ROW, cond("active", Op.GTE, 0))

    def test_to_number(self) -> None:
        assert to_number("  7 ") == 7.0
        assert to_number(3) == 3
        assert to_number(True) is None
        assert to_number("inf") is None
        assert to_number({}) is None

    def test_integers_beyond_float_range(self) -> None:
        big = 10**400
        row = {"n": big}

        assert to_number(big) == big
        assert evaluate_condition(row, cond("n", Op.GT, 5))
        assert evaluate_condition(row, cond("n", Op.GTE, big))
        assert not evaluate_condition(row, cond("n", Op.LT, 1e300))
        assert evaluate_condition(row, cond("n", Op.EQ, big))
        assert not evaluate_condition(row, cond("n", Op.EQ, big + 1))
        assert evaluate_condition(row, cond("n", Op.IN, [1, big]))


@pytest.mark.unit
class TestContainsAndIn:
    def test_contains_is_case_insensitive(self) -> None:
        assert evaluate_condition(ROW, cond("name", Op.CONTAINS, "smith"))
        assert evaluate_condition(ROW, cond("name", Op.CONTAINS, "ANN"))
        assert not evaluate_condition(ROW, cond("name", Op.CONTAINS, "bob"))

    def test_contains_uses_string_form(self) -> None:
        assert evaluate_condition(ROW, cond("age", Op.CONTAINS, 3))

    def test_contains_never_matches_none(self) -> None:
        assert not evaluate_condition(ROW, cond("note", Op.CONTAINS, ""))
        assert not evaluate_condition(ROW, cond("ghost", Op.CONTAINS, "x"))

    def test_in_uses_loose_equality(self) -> None:
        assert evaluate_condition(ROW, cond("id", Op.IN, ["1", "2"]))
        assert evaluate_condition(ROW, cond("name", Op.IN, ("Ann Smith",)))
        assert not evaluate_condition(ROW, cond("id", Op.IN, [2, 3]))

    def test_in_requires_a_collection(self) -> None:
        assert not evaluate_condition(ROW, cond("id", Op.IN, 1))
        assert not evaluate_condition(ROW, cond("name", Op.IN, "Ann Smith"))


@pytest.mark.unit
class TestConjunction:
    def test_empty_criteria_matches_everything(self) -> None:
        assert matches(ROW, [])
        assert build_predicate(None)(ROW)
        assert build_predicate([])({})

    def test_all_conditions_must_hold(self) -> None:
        criteria = [cond("age", Op.GTE, 18), cond("name", Op.CONTAINS, "ann")]
        assert matches(ROW, criteria)
        assert not matches(ROW, [*criteria, cond("id", Op.EQ, 2)])

    def test_condition_order_is_irrelevant(self) -> None:
        a = cond("age", Op.GT, 40)
        b = cond("name", Op.CONTAINS, "ann")
        assert matches(ROW, [a, b]) == matches(ROW, [b, a])

    def test_predicate_filters_rows(self) -> None:
        rows = [{"id": i, "age": age} for i, age in enumerate([10, 20, None, "30"])]
        predicate = build_predicate([cond("age", Op.GTE, 18)])
        assert [r["id"] for r in rows if predicate(r)] == [1, 3]
