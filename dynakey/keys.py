"""Type aliases for logical and physical key values.

This module defines type aliases for working with composite keys and pagination.

Type aliases:
    KeyValue: The types accepted as a logical key part. Parts are always
        rendered to strings when encoded into a physical key.

    LogicalItem: A mapping of logical field name to value. Holds partition-key
        fields, sort-key fields and payload fields side by side.
        Example: {"tenant": "acme", "user": "42", "name": "Homer"}

    Cursor: A logical key record marking a position in a result set. Pass it to
        `pivot()` to resume pagination after that item.
        Example: {"tenant": "acme", "user": "42", "created": "2024-01-01"}

    PhysicalKey: A key as the store sees it, one string per physical attribute.
        This is the format of `ExclusiveStartKey` and `LastEvaluatedKey`.
        Example: {"pk": "acme#42", "sk": "2024-01-01"}

    Direction: The page direction, ascending ("forward") or descending ("backward").
"""

from decimal import Decimal
from typing import Any, Literal, TypeAlias

from typing_extensions import TypeAliasType

KeyValue: TypeAlias = str | int | Decimal
LogicalItem: TypeAlias = dict[str, Any]
Cursor = TypeAliasType("Cursor", dict[str, KeyValue])
PhysicalKey: TypeAlias = dict[str, str]
PhysicalRecord: TypeAlias = dict[str, Any]
Direction: TypeAlias = Literal["forward", "backward"]


__all__ = [
    "Cursor",
    "Direction",
    "KeyValue",
    "LogicalItem",
    "PhysicalKey",
    "PhysicalRecord",
]
