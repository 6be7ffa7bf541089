"""
Translate plain-data predicates and orderings into SQLAlchemy clauses.

A predicate is a mapping of field name to condition. All conditions are
combined with AND:

    {"last_name": "Smith"}                  # equality
    {"age": {"greater_than": 20}}           # comparison
    {"age": {"greater_than": 20, "less_than": 40}, "last_name": None}

An ordering is a field name ("first_name", "-first_name" for descending),
a (field, "asc" | "desc") pair, or a list of those.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy import inspect
from sqlalchemy.sql.elements import ColumnElement

from user_records.core.exceptions import InvalidQueryError

Predicate = Mapping[str, Any]
OrderSpec = Union[str, Tuple[str, str], Sequence[Union[str, Tuple[str, str]]]]

_operator_registry: Dict[str, Callable[[Any, Any], ColumnElement]] = {}


def register_operator(name: str):
    """Decorator to register a comparison operator by name"""
    def decorator(func: Callable[[Any, Any], ColumnElement]):
        _operator_registry[name] = func
        return func
    return decorator


def get_operator(name: str) -> Callable[[Any, Any], ColumnElement] | None:
    return _operator_registry.get(name)


def list_operators() -> list[str]:
    """List all registered operator names"""
    return list(_operator_registry.keys())


@register_operator("equals")
def _equals(column, value):
    # "= NULL" never matches in SQL, IS NULL does
    if value is None:
        return column.is_(None)
    return column == value


@register_operator("not_equals")
def _not_equals(column, value):
    if value is None:
        return column.is_not(None)
    return column != value


@register_operator("greater_than")
def _greater_than(column, value):
    return column > value


@register_operator("greater_than_or_equal")
def _greater_than_or_equal(column, value):
    return column >= value


@register_operator("less_than")
def _less_than(column, value):
    return column < value


@register_operator("less_than_or_equal")
def _less_than_or_equal(column, value):
    return column <= value


@register_operator("in")
def _in(column, value):
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple, set, frozenset)):
        raise InvalidQueryError("'in' expects a list of values")
    return column.in_(list(value))


@register_operator("is_null")
def _is_null(column, value):
    return column.is_(None) if value else column.is_not(None)


def _column(model, field: str):
    columns = inspect(model).columns
    if field not in columns:
        raise InvalidQueryError(
            f"Unknown field '{field}' for {model.__name__}. "
            f"Available: {', '.join(columns.keys())}"
        )
    return getattr(model, field)


def build_conditions(model, where: Optional[Predicate]) -> List[ColumnElement]:
    """Turn a predicate into a list of clauses meant to be ANDed together"""
    if not where:
        return []
    if not isinstance(where, Mapping):
        raise InvalidQueryError("A predicate must be a mapping of field name to condition")

    conditions = []
    for field, condition in where.items():
        column = _column(model, field)
        if isinstance(condition, Mapping):
            if not condition:
                raise InvalidQueryError(f"Empty condition for field '{field}'")
            for operator_name, value in condition.items():
                operator = get_operator(operator_name)
                if operator is None:
                    raise InvalidQueryError(
                        f"Unknown operator '{operator_name}'. "
                        f"Available: {', '.join(list_operators())}"
                    )
                conditions.append(operator(column, value))
        else:
            # A bare value is shorthand for equality
            conditions.append(_equals(column, condition))
    return conditions


def _order_items(order_by: OrderSpec) -> List[Tuple[str, str]]:
    if isinstance(order_by, str):
        if order_by.startswith("-"):
            return [(order_by[1:], "desc")]
        return [(order_by, "asc")]
    if isinstance(order_by, tuple) and len(order_by) == 2 and isinstance(order_by[1], str) \
            and order_by[1].lower() in ("asc", "desc"):
        return [(order_by[0], order_by[1].lower())]

    items = []
    for item in order_by:
        items.extend(_order_items(item))
    return items


def build_ordering(model, order_by: Optional[OrderSpec]) -> List[ColumnElement]:
    """Turn an ordering spec into ORDER BY clauses"""
    if not order_by:
        return []
    clauses = []
    for field, direction in _order_items(order_by):
        column = _column(model, field)
        clauses.append(column.desc() if direction == "desc" else column.asc())
    return clauses
