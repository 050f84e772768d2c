"""Chainable query and scan builders.

A chain pairs a KeyCodec with a QueryRequest. Every chain method returns a new
chain around a new request, so a partially built query can be branched and
reused freely:

    base = table.query({"tenant": "acme", "user": "42"}, limit=20)
    recent = base.where_sk_greater_than({"year": "2024"}).sort_descending()
    active = base.filter({"status": "active"})

`base` is unaffected by either branch.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from typing_extensions import Self

from dynakey.codec import KeyCodec
from dynakey.expressions import FilterObject, RawFilter
from dynakey.keys import Direction
from dynakey.ranges import PartialSortKey, RangeConditionBuilder, SortKeyCondition
from dynakey.request import QueryRequest


class Chain:
    """Operations shared by queries and scans."""

    def __init__(self, codec: KeyCodec, request: QueryRequest) -> None:
        self._codec = codec
        self._request = request

    @property
    def codec(self) -> KeyCodec:
        return self._codec

    @property
    def request(self) -> QueryRequest:
        return self._request

    def _evolve(self, request: QueryRequest) -> Self:
        return type(self)(self._codec, request)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._request!r})"

    def project(self, fields: Iterable[str]) -> Self:
        """Restrict returned attributes to the key attributes plus `fields`.

        Key attributes (of the table, and of the index when querying one) are
        always projected so every returned item can be turned into a cursor.
        """
        request = self._request.without_projection()
        key_attributes = self._codec.key_attribute_names(index_name=request.index_name)

        builder = request.expression_builder()
        expression = builder.build_projection_expression([*key_attributes, *fields])
        return self._evolve(request.with_expressions(builder, projection_expression=expression))

    def filter(self, filter_object: FilterObject) -> Self:
        """AND a filter object onto the request's filter expression.

        Example:
            chain.filter({"age": {">": 18, "<": 65}, "status": "active"})

        """
        builder = self._request.expression_builder()
        expression = builder.build_filter_expression(filter_object)
        if expression is None:
            return self

        raw = RawFilter(expression, builder.attribute_names, builder.attribute_values)
        return self._evolve(self._request.merge_filter(raw))

    def filter_raw(self, raw: RawFilter) -> Self:
        """AND a hand-written filter clause, with its own placeholders, onto the request."""
        return self._evolve(self._request.merge_filter(raw))

    def pivot(self, cursor: Mapping[str, Any] | None) -> Self:
        """Start the next page right after `cursor`, or from the beginning if None."""
        if cursor is None:
            return self._evolve(self._request.evolve(exclusive_start_key=None))

        start_key = self._codec.key_record(cursor, index_name=self._request.index_name)
        return self._evolve(self._request.evolve(exclusive_start_key=start_key))

    def with_limit(self, limit: int) -> Self:
        return self._evolve(self._request.evolve(limit=limit))


class Query(Chain):
    """A query on one partition, with optional sort key conditions.

    Sort key conditions take a partial sort key: a contiguous prefix of the
    declared sort key parts. They raise SortKeyNotDefinedError when the table
    (or the queried index) has no sort key.
    """

    def __init__(self, codec: KeyCodec, request: QueryRequest) -> None:
        super().__init__(codec, request)
        self._ranges = RangeConditionBuilder(codec)

    def where_sk(self, condition: SortKeyCondition | PartialSortKey) -> Self:
        """Apply a SortKeyCondition. A bare mapping means equality."""
        condition = SortKeyCondition.coerce(condition)
        return self._evolve(condition.apply(self._ranges, self._request))

    def where_sk_equal(self, sk: PartialSortKey) -> Self:
        return self._evolve(self._ranges.equal(self._request, sk))

    def where_sk_greater_than(self, sk: PartialSortKey) -> Self:
        return self._evolve(self._ranges.greater_than(self._request, sk))

    def where_sk_lower_than(self, sk: PartialSortKey) -> Self:
        return self._evolve(self._ranges.lower_than(self._request, sk))

    def where_sk_greater_than_or_equal(self, sk: PartialSortKey) -> Self:
        return self._evolve(self._ranges.greater_than_or_equal(self._request, sk))

    def where_sk_lower_than_or_equal(self, sk: PartialSortKey) -> Self:
        return self._evolve(self._ranges.lower_than_or_equal(self._request, sk))

    def where_sk_begins_with(self, sk: PartialSortKey) -> Self:
        return self._evolve(self._ranges.begins_with(self._request, sk))

    def where_sk_between(self, low: PartialSortKey, high: PartialSortKey) -> Self:
        return self._evolve(self._ranges.between(self._request, low, high))

    def sort_ascending(self) -> Self:
        return self._evolve(self._request.evolve(scan_index_forward=True))

    def sort_descending(self) -> Self:
        return self._evolve(self._request.evolve(scan_index_forward=False))

    def with_direction(self, direction: Direction) -> Self:
        """Sort ascending for "forward" and descending for "backward"."""
        if direction == "backward":
            return self.sort_descending()
        return self.sort_ascending()


class Scan(Chain):
    """A scan over a whole table or index."""


__all__ = [
    "Chain",
    "Query",
    "Scan",
]
