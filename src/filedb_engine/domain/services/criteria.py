"""Criteria evaluator for row filtering.

Criteria are a conjunction (logical AND) of conditions. Evaluation is pure
and never raises on data: a comparison that cannot be made is simply false.

Operator semantics:
    eq / neq     Loose equality. None equals only None. When either side is
                 a number (or bool) and both sides coerce to numbers, they
                 compare numerically, so 1 == "1" and 2.0 == "2". Otherwise
                 plain ==. neq is the negation of eq.
    gt / gte /   Both operands coerced to numbers (int, float or numeric
    lt / lte     string). Bools, None, NaN and anything else fail coercion
                 and make the condition false.
    contains     Case-insensitive substring match on str() of both sides.
                 A None or missing column value never matches.
    in           Membership by loose equality in a list, tuple or set.
                 Any other value never matches.

A column absent from the row compares as None.

Example:
    >>> row = {"id": 1, "name": "Ann", "age": 30}
    >>> matches(row, [CriteriaCondition("age", 18, ComparisonOperator.GTE)])
    True
    >>> matches(row, [CriteriaCondition("id", "1")])
    True
"""

from __future__ import annotations

import math
from typing import Any, Callable, Iterable, Mapping

from filedb_engine.domain.entities import CriteriaCondition
from filedb_engine.domain.value_objects import ComparisonOperator


RowPredicate = Callable[[Mapping[str, Any]], bool]


def to_number(value: Any) -> float | int | None:
    """Coerce a value to a finite number, or None when it is not numeric."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def _is_numeric_like(value: Any) -> bool:
    return isinstance(value, (int, float))


def loose_equals(left: Any, right: Any) -> bool:
    """Value-level equality with numeric/string coercion."""
    if left is None or right is None:
        return left is None and right is None
    if _is_numeric_like(left) or _is_numeric_like(right):
        # bools compare as 0/1 against numbers
        a = float(left) if isinstance(left, bool) else to_number(left)
        b = float(right) if isinstance(right, bool) else to_number(right)
        if a is not None and b is not None:
            return a == b
    return bool(left == right)


def _compare_numbers(candidate: Any, value: Any, operator: ComparisonOperator) -> bool:
    a = to_number(candidate)
    b = to_number(value)
    if a is None or b is None:
        return False
    if operator is ComparisonOperator.GT:
        return a > b
    if operator is ComparisonOperator.GTE:
        return a >= b
    if operator is ComparisonOperator.LT:
        return a < b
    return a <= b


def evaluate_condition(row: Mapping[str, Any], condition: CriteriaCondition) -> bool:
    """Evaluate one condition against a row."""
    candidate = row.get(condition.column)
    operator = condition.operator
    value = condition.value

    if operator is ComparisonOperator.EQ:
        return loose_equals(candidate, value)
    if operator is ComparisonOperator.NEQ:
        return not loose_equals(candidate, value)
    if operator.is_numeric:
        return _compare_numbers(candidate, value, operator)
    if operator is ComparisonOperator.CONTAINS:
        if candidate is None or value is None:
            return False
        return str(value).casefold() in str(candidate).casefold()
    if operator is ComparisonOperator.IN:
        if not isinstance(value, (list, tuple, set, frozenset)):
            return False
        return any(loose_equals(candidate, entry) for entry in value)
    return False


def matches(row: Mapping[str, Any], criteria: Iterable[CriteriaCondition]) -> bool:
    """Return True when the row satisfies every condition."""
    return all(evaluate_condition(row, condition) for condition in criteria)


def build_predicate(criteria: Iterable[CriteriaCondition] | None) -> RowPredicate:
    """Compile criteria into a row predicate. Empty criteria match every row."""
    conditions = tuple(criteria or ())
    if not conditions:
        return lambda row: True
    return lambda row: matches(row, conditions)
