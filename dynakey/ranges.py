"""Sort key range conditions.

RangeConditionBuilder appends sort key conditions to the key condition of a
QueryRequest. Each condition takes a partial sort key, which must be a
contiguous prefix of the declared sort key parts, and encodes it with the
table's separator before comparing it against the physical sort key.

SortKeyCondition captures one such condition as a value, so callers can pass a
condition around before a query exists:

    SortKeyCondition.begins_with({"year": "2024"})
    SortKeyCondition.between({"year": "2023"}, {"year": "2024"})
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

from dynakey.codec import KeyCodec
from dynakey.request import QueryRequest

RangeOperator: TypeAlias = Literal["=", "<", "<=", ">", ">=", "begins_with", "between"]
PartialSortKey: TypeAlias = Mapping[str, Any]


class RangeConditionBuilder:
    """Builds sort key conditions for one KeyCodec.

    Every method returns a new QueryRequest; the request passed in is left
    untouched. When the request targets an index, the index's sort key is used.

    Raises:
        SortKeyNotDefinedError: From every method, if there is no sort key.

    """

    def __init__(self, codec: KeyCodec) -> None:
        self._codec = codec

    def _append(
        self, request: QueryRequest, operator: RangeOperator, *partials: PartialSortKey
    ) -> QueryRequest:
        sort_key = self._codec.require_sort_key(index_name=request.index_name)
        values = [self._codec.encode_partial_ordered(p, sort_key=sort_key) for p in partials]

        builder = request.expression_builder()
        clause = builder.build_key_condition(sort_key.name, operator, *values)

        condition = clause
        if request.key_condition_expression:
            condition = f"{request.key_condition_expression} AND {clause}"

        return request.with_expressions(builder, key_condition_expression=condition)

    def equal(self, request: QueryRequest, sk: PartialSortKey) -> QueryRequest:
        return self._append(request, "=", sk)

    def greater_than(self, request: QueryRequest, sk: PartialSortKey) -> QueryRequest:
        return self._append(request, ">", sk)

    def lower_than(self, request: QueryRequest, sk: PartialSortKey) -> QueryRequest:
        return self._append(request, "<", sk)

    def greater_than_or_equal(self, request: QueryRequest, sk: PartialSortKey) -> QueryRequest:
        return self._append(request, ">=", sk)

    def lower_than_or_equal(self, request: QueryRequest, sk: PartialSortKey) -> QueryRequest:
        return self._append(request, "<=", sk)

    def begins_with(self, request: QueryRequest, sk: PartialSortKey) -> QueryRequest:
        return self._append(request, "begins_with", sk)

    def between(
        self, request: QueryRequest, low: PartialSortKey, high: PartialSortKey
    ) -> QueryRequest:
        return self._append(request, "between", low, high)


@dataclass(frozen=True)
class SortKeyCondition:
    """A sort key condition, detached from any request.

    Attributes:
        operator: The range operator.
        values: One partial sort key, or two for `between`.

    """

    operator: RangeOperator
    values: tuple[PartialSortKey, ...]

    @staticmethod
    def equal(sk: PartialSortKey) -> "SortKeyCondition":
        return SortKeyCondition(operator="=", values=(sk,))

    @staticmethod
    def greater_than(sk: PartialSortKey) -> "SortKeyCondition":
        return SortKeyCondition(operator=">", values=(sk,))

    @staticmethod
    def lower_than(sk: PartialSortKey) -> "SortKeyCondition":
        return SortKeyCondition(operator="<", values=(sk,))

    @staticmethod
    def greater_than_or_equal(sk: PartialSortKey) -> "SortKeyCondition":
        return SortKeyCondition(operator=">=", values=(sk,))

    @staticmethod
    def lower_than_or_equal(sk: PartialSortKey) -> "SortKeyCondition":
        return SortKeyCondition(operator="<=", values=(sk,))

    @staticmethod
    def begins_with(sk: PartialSortKey) -> "SortKeyCondition":
        return SortKeyCondition(operator="begins_with", values=(sk,))

    @staticmethod
    def between(low: PartialSortKey, high: PartialSortKey) -> "SortKeyCondition":
        return SortKeyCondition(operator="between", values=(low, high))

    @classmethod
    def coerce(cls, condition: "SortKeyCondition | PartialSortKey") -> "SortKeyCondition":
        """Accept a bare sort key mapping as an equality condition."""
        if isinstance(condition, SortKeyCondition):
            return condition
        return cls.equal(condition)

    def apply(self, builder: RangeConditionBuilder, request: QueryRequest) -> QueryRequest:
        return builder._append(request, self.operator, *self.values)


__all__ = [
    "PartialSortKey",
    "RangeConditionBuilder",
    "RangeOperator",
    "SortKeyCondition",
]
