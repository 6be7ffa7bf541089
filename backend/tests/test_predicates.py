import pytest
from sqlalchemy.dialects import sqlite

from user_records.core.exceptions import InvalidQueryError
from user_records.models.user import User
from user_records.services.predicates import build_conditions, build_ordering, list_operators


def compile_clause(clause):
    return str(clause.compile(dialect=sqlite.dialect(), compile_kwargs={"literal_binds": True}))


def test_empty_predicate_has_no_conditions():
    assert build_conditions(User, None) == []
    assert build_conditions(User, {}) == []


def test_bare_value_means_equality():
    [condition] = build_conditions(User, {"last_name": "Smith"})

    assert compile_clause(condition) == "users.last_name = 'Smith'"


def test_none_means_is_null():
    [condition] = build_conditions(User, {"last_name": None})

    assert compile_clause(condition) == "users.last_name IS NULL"


@pytest.mark.parametrize(
    "operator, expected",
    [
        ("equals", "users.age = 20"),
        ("not_equals", "users.age != 20"),
        ("greater_than", "users.age > 20"),
        ("greater_than_or_equal", "users.age >= 20"),
        ("less_than", "users.age < 20"),
        ("less_than_or_equal", "users.age <= 20"),
    ],
)
def test_comparison_operators(operator, expected):
    [condition] = build_conditions(User, {"age": {operator: 20}})

    assert compile_clause(condition) == expected


def test_in_operator():
    [condition] = build_conditions(User, {"age": {"in": [18, 30]}})

    assert compile_clause(condition) == "users.age IN (18, 30)"


def test_in_operator_rejects_scalar():
    with pytest.raises(InvalidQueryError):
        build_conditions(User, {"age": {"in": 18}})


def test_several_conditions_per_field():
    conditions = build_conditions(User, {"age": {"greater_than": 20, "less_than": 40}, "first_name": "Alice"})

    assert len(conditions) == 3


def test_unknown_operator():
    with pytest.raises(InvalidQueryError, match="Unknown operator"):
        build_conditions(User, {"age": {"between": (1, 2)}})


def test_unknown_field():
    with pytest.raises(InvalidQueryError, match="Unknown field"):
        build_conditions(User, {"nickname": "Al"})


def test_registered_operators():
    assert {"equals", "greater_than", "in", "is_null"} <= set(list_operators())


@pytest.mark.parametrize(
    "order_by, expected",
    [
        ("first_name", ["users.first_name ASC"]),
        ("-first_name", ["users.first_name DESC"]),
        (("first_name", "DESC"), ["users.first_name DESC"]),
        (["last_name", ("age", "desc")], ["users.last_name ASC", "users.age DESC"]),
    ],
)
def test_ordering(order_by, expected):
    assert [compile_clause(clause) for clause in build_ordering(User, order_by)] == expected


def test_ordering_unknown_field():
    with pytest.raises(InvalidQueryError):
        build_ordering(User, "-nickname")
