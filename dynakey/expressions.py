"""DynamoDB expression building with collision-free placeholders.

ExpressionBuilder turns logical filters, projections and key conditions into
DynamoDB expression strings. Field names and values never appear verbatim in an
expression: every field gets a name placeholder (``#field_0``) and every value a
value placeholder (``:field_gt_1``), recorded in the builder's
``attribute_names`` and ``attribute_values`` tables.

Placeholders carry a monotonically increasing ID, so they stay unique no matter
how field names are spelled, and a builder seeded with an existing request's
tables never hands out a placeholder that is already taken.

Filter objects follow a small mapping syntax:

    {"status": "active"}                 status = "active"
    {"age": {">": 18, "<": 65}}          age > 18 AND age < 65
    {"deleted": None}                    deleted = NULL
    {"nickname": UNSET}                  (skipped)
"""

import re
from collections.abc import Iterable, Mapping
from decimal import Decimal
from functools import singledispatch
from typing import Any, Literal, NamedTuple, TypeAlias

from dynakey.exceptions import UnknownOperatorError


class _Unset:
    """Marker for a filter value that was not provided."""

    _instance: "_Unset | None" = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()

FilterOperator: TypeAlias = Literal["=", "<>", "<", "<=", ">", ">="]
FilterValue: TypeAlias = str | int | float | Decimal | bool | None
FilterCondition: TypeAlias = FilterValue | Mapping[FilterOperator, FilterValue]
FilterObject: TypeAlias = Mapping[str, FilterCondition]

# Operator spelled in the expression -> short name used inside value placeholders.
FILTER_OPERATORS: dict[str, str] = {
    "=": "eq",
    "<>": "ne",
    "<": "lt",
    "<=": "le",
    ">": "gt",
    ">=": "ge",
}
KEY_OPERATORS: frozenset[str] = frozenset({"=", "<", "<=", ">", ">=", "begins_with", "between"})

_UNSAFE_CHARS = re.compile(r"[^0-9A-Za-z_]")


class RawFilter(NamedTuple):
    """A ready-made filter clause with its own placeholder tables.

    Attributes:
        expression: The FilterExpression clause.
        attribute_names: Name placeholders used by the clause.
        attribute_values: Value placeholders used by the clause.

    """

    expression: str
    attribute_names: dict[str, str]
    attribute_values: dict[str, Any]


@singledispatch
def to_literal(value: object) -> Any:
    """Convert a Python value into the literal sent as an expression value.

    Numbers become Decimal, booleans and None pass through, and everything
    else is sent as its string form.
    """
    return str(value)


@to_literal.register
def _(value: str) -> str:
    return value


@to_literal.register
def _(value: bool) -> bool:
    return value


@to_literal.register
def _(value: int) -> Decimal:
    return Decimal(value)


@to_literal.register
def _(value: float) -> Decimal:
    # boto3 rejects floats; going through str keeps the shortest repr.
    return Decimal(str(value))


@to_literal.register
def _(value: Decimal) -> Decimal:
    return value


@to_literal.register(type(None))
def _(value: None) -> None:
    return None


def safe_name(field: str) -> str:
    """Reduce a field name to characters allowed in a placeholder."""
    return _UNSAFE_CHARS.sub("_", field)


class ExpressionBuilder:
    """Builds DynamoDB expressions and their placeholder tables.

    Example:
        builder = ExpressionBuilder()
        builder.build_filter_expression({"age": {">": 18, "<": 65}})
        Returns "#age_0 > :age_gt_1 AND #age_0 < :age_lt_2".

        builder.attribute_names
        {"#age_0": "age"}

        builder.attribute_values
        {":age_gt_1": Decimal("18"), ":age_lt_2": Decimal("65")}

    """

    def __init__(
        self,
        attribute_names: Mapping[str, str] | None = None,
        attribute_values: Mapping[str, Any] | None = None,
    ) -> None:
        self._names: dict[str, str] = dict(attribute_names or {})
        self._values: dict[str, Any] = dict(attribute_values or {})
        self._name_by_field: dict[str, str] = {field: ph for ph, field in self._names.items()}
        self._issued_values: dict[tuple[str, str], tuple[Any, str]] = {}
        self._next_id = 0

    @property
    def attribute_names(self) -> dict[str, str]:
        return dict(self._names)

    @property
    def attribute_values(self) -> dict[str, Any]:
        return dict(self._values)

    def _allocate(self, prefix: str, taken: Mapping[str, Any]) -> str:
        while True:
            candidate = f"{prefix}_{self._next_id}"
            self._next_id += 1
            if candidate not in taken:
                return candidate

    def name_placeholder(self, field: str) -> str:
        """Return the name placeholder of `field`, creating it on first use."""
        placeholder = self._name_by_field.get(field)
        if placeholder is None:
            placeholder = self._allocate(f"#{safe_name(field)}", self._names)
            self._names[placeholder] = field
            self._name_by_field[field] = placeholder
        return placeholder

    def value_placeholder(self, field: str, operator_name: str, value: Any) -> str:
        """Return a value placeholder for `value` compared to `field` by `operator_name`.

        Asking again for the same field, operator and value returns the same
        placeholder. A different value gets a fresh one.
        """
        literal = to_literal(value)
        issued = self._issued_values.get((field, operator_name))
        if issued is not None:
            issued_literal, placeholder = issued
            if type(issued_literal) is type(literal) and issued_literal == literal:
                return placeholder

        placeholder = self._allocate(f":{safe_name(field)}_{operator_name}", self._values)
        self._values[placeholder] = literal
        self._issued_values[(field, operator_name)] = (literal, placeholder)
        return placeholder

    def _comparison(self, field: str, operator: str, value: Any) -> str:
        operator_name = FILTER_OPERATORS.get(operator)
        if operator_name is None:
            raise UnknownOperatorError(operator)
        name = self.name_placeholder(field)
        return f"{name} {operator} {self.value_placeholder(field, operator_name, value)}"

    def build_filter_expression(self, filter_object: FilterObject) -> str | None:
        """Build a FilterExpression from a filter object.

        Returns:
            The expression, or None when every condition was skipped.

        Raises:
            UnknownOperatorError: If an operator map uses an unsupported operator.

        """
        clauses: list[str] = []
        for field, condition in filter_object.items():
            if condition is UNSET:
                continue
            if isinstance(condition, Mapping):
                for operator, value in condition.items():
                    if value is UNSET:
                        continue
                    clauses.append(self._comparison(field, operator, value))
            else:
                clauses.append(self._comparison(field, "=", condition))

        if not clauses:
            return None
        return " AND ".join(clauses)

    def build_projection_expression(self, fields: Iterable[str]) -> str:
        """Build a ProjectionExpression where every field is a name placeholder."""
        placeholders = dict.fromkeys(self.name_placeholder(field) for field in fields)
        return ", ".join(placeholders)

    def build_key_condition(self, attribute: str, operator: str, *values: str) -> str:
        """Build one KeyConditionExpression clause on a physical key attribute.

        Raises:
            UnknownOperatorError: If `operator` is not a key condition operator.

        """
        if operator not in KEY_OPERATORS:
            raise UnknownOperatorError(operator)

        name = self.name_placeholder(attribute)
        if operator == "begins_with":
            (prefix,) = values
            return f"begins_with({name}, {self.value_placeholder(attribute, 'prefix', prefix)})"
        if operator == "between":
            low, high = values
            low_placeholder = self.value_placeholder(attribute, "low", low)
            high_placeholder = self.value_placeholder(attribute, "high", high)
            return f"{name} BETWEEN {low_placeholder} AND {high_placeholder}"

        (value,) = values
        operator_name = FILTER_OPERATORS[operator]
        return f"{name} {operator} {self.value_placeholder(attribute, operator_name, value)}"


__all__ = [
    "FILTER_OPERATORS",
    "UNSET",
    "ExpressionBuilder",
    "FilterCondition",
    "FilterObject",
    "FilterOperator",
    "FilterValue",
    "RawFilter",
    "safe_name",
    "to_literal",
]
