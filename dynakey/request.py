"""Immutable query and scan requests.

QueryRequest accumulates the physical fields of one DynamoDB query or scan. It
is a frozen Pydantic model: every change returns a new request, so a request
can be shared between concurrent callers and reused for successive pages
without anyone observing a partially built state.
"""

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Self

from dynakey.expressions import ExpressionBuilder, RawFilter
from dynakey.keys import Direction

DEFAULT_PAGE_SIZE = 50

Operation = Literal["query", "scan"]

_NAME_PLACEHOLDER = re.compile(r"#[0-9A-Za-z_]+")


class QueryRequest(BaseModel):
    """The physical request sent to `Table.query` or `Table.scan`.

    Attributes:
        operation: Whether the request is a query or a scan.
        table_name: The table the request targets.
        index_name: Optional GSI or LSI name.
        key_condition_expression: KeyConditionExpression (queries only).
        filter_expression: FilterExpression, applied after key matching.
        projection_expression: ProjectionExpression.
        expression_attribute_names: Name placeholder table.
        expression_attribute_values: Value placeholder table.
        limit: Maximum number of items evaluated by the store.
        scan_index_forward: Ascending (True) or descending (False) sort key order.
        exclusive_start_key: Physical key to start after.

    """

    model_config = ConfigDict(frozen=True)

    operation: Operation = "query"
    table_name: str
    index_name: str | None = None
    key_condition_expression: str | None = None
    filter_expression: str | None = None
    projection_expression: str | None = None
    expression_attribute_names: dict[str, str] = Field(default_factory=dict)
    expression_attribute_values: dict[str, Any] = Field(default_factory=dict)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)
    scan_index_forward: bool = True
    exclusive_start_key: dict[str, Any] | None = None

    @property
    def direction(self) -> Direction:
        if self.operation == "scan" or self.scan_index_forward:
            return "forward"
        return "backward"

    def evolve(self, **changes: Any) -> Self:
        """Return a validated copy of the request with `changes` applied.

        Raises:
            pydantic.ValidationError: If a change breaks a field constraint.

        """
        return self.model_validate({**self.model_dump(), **changes})

    def without_projection(self) -> Self:
        """Return a copy with no projection.

        Name placeholders referenced only by the projection are dropped, so the
        name table holds no unused entries.
        """
        if self.projection_expression is None:
            return self

        in_use: set[str] = set()
        for expression in (self.key_condition_expression, self.filter_expression):
            if expression:
                in_use.update(_NAME_PLACEHOLDER.findall(expression))
        projected = set(_NAME_PLACEHOLDER.findall(self.projection_expression))

        names = {
            placeholder: field
            for placeholder, field in self.expression_attribute_names.items()
            if placeholder in in_use or placeholder not in projected
        }
        return self.evolve(projection_expression=None, expression_attribute_names=names)

    def expression_builder(self) -> ExpressionBuilder:
        """Return a builder seeded with this request's placeholder tables."""
        return ExpressionBuilder(self.expression_attribute_names, self.expression_attribute_values)

    def with_expressions(self, builder: ExpressionBuilder, **changes: Any) -> Self:
        """Return a copy carrying the placeholder tables of `builder`."""
        return self.evolve(
            expression_attribute_names=builder.attribute_names,
            expression_attribute_values=builder.attribute_values,
            **changes,
        )

    def merge_filter(self, raw: RawFilter) -> Self:
        """Return a copy with `raw` ANDed onto the current filter.

        Placeholder tables are merged, with entries from `raw` winning on
        collision.
        """
        if self.filter_expression:
            expression = f"{self.filter_expression} AND ({raw.expression})"
        else:
            expression = raw.expression

        return self.evolve(
            filter_expression=expression,
            expression_attribute_names=self.expression_attribute_names | raw.attribute_names,
            expression_attribute_values=self.expression_attribute_values | raw.attribute_values,
        )

    def to_kwargs(self) -> dict[str, Any]:
        """Build the keyword arguments for `Table.query()` or `Table.scan()`."""
        kwargs: dict[str, Any] = {"Limit": self.limit}

        if self.operation == "query":
            kwargs["ScanIndexForward"] = self.scan_index_forward
            if self.key_condition_expression is not None:
                kwargs["KeyConditionExpression"] = self.key_condition_expression

        if self.index_name is not None:
            kwargs["IndexName"] = self.index_name

        if self.filter_expression is not None:
            kwargs["FilterExpression"] = self.filter_expression

        if self.projection_expression is not None:
            kwargs["ProjectionExpression"] = self.projection_expression

        if self.expression_attribute_names:
            kwargs["ExpressionAttributeNames"] = dict(self.expression_attribute_names)
        if self.expression_attribute_values:
            kwargs["ExpressionAttributeValues"] = dict(self.expression_attribute_values)

        if self.exclusive_start_key is not None:
            kwargs["ExclusiveStartKey"] = dict(self.exclusive_start_key)

        return kwargs


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "Operation",
    "QueryRequest",
]
