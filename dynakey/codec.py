"""Composite key codec.

KeyCodec turns logical key records into the physical key strings stored on the
table (and back), using the parts and separators declared in a KeySchema. It
also enforces the prefix rule for partial sort keys used in range conditions:
a partial sort key must be a non-empty, contiguous prefix of the declared parts.

Example:
    For a sort key declared as keys=("year", "month", "day"), separator="-":

    codec.encode_sk({"year": "2024", "month": "01", "day": "31"})
    Returns "2024-01-31".

    codec.encode_partial_ordered({"year": "2024", "month": "01"})
    Returns "2024-01".

    codec.encode_partial_ordered({"year": "2024", "day": "31"})
    Raises KeyNotIncludedError("month").
"""

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic_core import to_jsonable_python

from dynakey.exceptions import (
    FirstKeyMissingError,
    KeyNotIncludedError,
    KeySchemaRequiredError,
    MissingKeyPartError,
    SeparatorRequiredError,
    SortKeyEmptyError,
    SortKeyNotDefinedError,
)
from dynakey.keys import Cursor, KeyValue, LogicalItem, PhysicalKey, PhysicalRecord
from dynakey.schema import KeyDefinition, KeySchema


class KeyCodec:
    """Encodes and decodes composite keys for one KeySchema.

    The codec is stateless apart from the frozen schema, so a single instance
    can be shared by any number of concurrent queries.
    """

    def __init__(self, schema: KeySchema | None) -> None:
        if schema is None:
            raise KeySchemaRequiredError()
        self._schema = schema

    @property
    def schema(self) -> KeySchema:
        return self._schema

    @property
    def partition_key(self) -> KeyDefinition:
        return self._schema.pk

    @property
    def sort_key(self) -> KeyDefinition | None:
        return self._schema.sk

    def require_sort_key(self, *, index_name: str | None = None) -> KeyDefinition:
        """Return the sort key definition of the table, or of `index_name`.

        Raises:
            SortKeyNotDefinedError: If the table (or index) has no sort key.
            IndexNotFoundError: If `index_name` is not declared in the schema.

        """
        sort_key = self._schema.sk if index_name is None else self._schema.index(index_name).sk
        if sort_key is None:
            raise SortKeyNotDefinedError()
        return sort_key

    def partition_key_for(self, index_name: str | None = None) -> KeyDefinition:
        """Return the partition key definition of the table, or of `index_name`."""
        if index_name is None:
            return self._schema.pk
        return self._schema.index(index_name).pk

    def key_attribute_names(self, *, index_name: str | None = None) -> list[str]:
        """Physical key attributes a page needs to build cursors, in key order."""
        definitions = self._table_definitions() + self._index_definitions(index_name)
        return _unique(definition.name for definition in definitions)

    # ------------------------------------------------------------------ parts

    @staticmethod
    def _require_part(item: Mapping[str, Any], field: str) -> KeyValue:
        value = item.get(field)
        if value is None:
            raise MissingKeyPartError(field)
        return value  # type: ignore[no-any-return]

    def encode(self, definition: KeyDefinition, item: Mapping[str, Any]) -> str:
        """Join the parts of `definition` found in `item` into one physical string.

        Non-string parts are rendered through their JSON form, so enums encode
        as their value and datetimes as ISO 8601.

        Raises:
            MissingKeyPartError: If any declared part is absent or None.
            SeparatorRequiredError: If a composite definition has no separator.

        """
        parts = [
            str(to_jsonable_python(self._require_part(item, key))) for key in definition.keys
        ]
        if len(parts) == 1:
            return parts[0]
        if not definition.separator:
            raise SeparatorRequiredError(side=definition.name, count=len(definition.keys))
        return definition.separator.join(parts)

    @staticmethod
    def decode(definition: KeyDefinition, physical: str) -> dict[str, str]:
        """Split a physical key string back onto the declared parts.

        The string is split into at most as many segments as there are parts,
        so a separator inside the last part survives the round-trip. A string
        with fewer segments than parts yields only the leading parts.
        """
        if not definition.separator:
            return {definition.keys[0]: physical}
        segments = physical.split(definition.separator, len(definition.keys) - 1)
        return dict(zip(definition.keys, segments, strict=False))

    def encode_pk(self, item: Mapping[str, Any]) -> str:
        return self.encode(self._schema.pk, item)

    def encode_sk(self, item: Mapping[str, Any]) -> str:
        return self.encode(self.require_sort_key(), item)

    # ---------------------------------------------------------- partial order

    def validate_partial_order(
        self, partial: Mapping[str, Any], *, sort_key: KeyDefinition | None = None
    ) -> None:
        """Check that `partial` holds a contiguous prefix of the sort key parts.

        Args:
            partial: The logical sort key fields supplied by the caller.
            sort_key: The key side to check against. Defaults to the table's sort key.

        Raises:
            SortKeyNotDefinedError: If the schema has no sort key.
            SortKeyEmptyError: If `partial` is empty.
            FirstKeyMissingError: If the first declared part is not included.
            KeyNotIncludedError: If a part is skipped, or a field is not a part.

        """
        definition = sort_key or self.require_sort_key()
        declared = definition.keys

        if not partial:
            raise SortKeyEmptyError()

        def rank(field: str) -> int:
            # Undeclared fields sort after every declared part.
            position = definition.position(field)
            return position if position >= 0 else len(declared)

        ordered = sorted(partial, key=rank)

        if ordered[0] != declared[0]:
            raise FirstKeyMissingError(expected=declared[0])

        for i in range(1, len(declared)):
            if len(ordered) == i:
                break
            if ordered[i] != declared[i]:
                raise KeyNotIncludedError(declared[i])

        if len(ordered) > len(declared):
            raise KeyNotIncludedError(ordered[len(declared)])

    def encode_partial_ordered(
        self, partial: Mapping[str, Any], *, sort_key: KeyDefinition | None = None
    ) -> str:
        """Encode a validated sort key prefix, e.g. for begins_with boundaries."""
        definition = sort_key or self.require_sort_key()
        self.validate_partial_order(partial, sort_key=definition)
        prefix = definition.model_copy(update={"keys": definition.keys[: len(partial)]})
        return self.encode(prefix, partial)

    # ----------------------------------------------------------------- records

    def _index_definitions(self, index_name: str | None) -> list[KeyDefinition]:
        if index_name is None:
            return []
        index = self._schema.index(index_name)
        return [index.pk] if index.sk is None else [index.pk, index.sk]

    def _table_definitions(self) -> list[KeyDefinition]:
        sk = self._schema.sk
        return [self._schema.pk] if sk is None else [self._schema.pk, sk]

    def key_record(self, cursor: Mapping[str, Any], *, index_name: str | None = None) -> PhysicalKey:
        """Build the physical key of `cursor`, as used for ExclusiveStartKey.

        When paging an index, the store also expects the index key attributes,
        so they are encoded as well.

        Raises:
            MissingKeyPartError: If the cursor lacks a part of any required key.
            IndexNotFoundError: If `index_name` is not declared in the schema.

        """
        definitions = self._table_definitions() + self._index_definitions(index_name)
        return {definition.name: self.encode(definition, cursor) for definition in definitions}

    def encode_item(self, item: Mapping[str, Any]) -> PhysicalRecord:
        """Convert a logical item into the attribute map stored on the table.

        Key fields are folded into the physical key attributes and dropped from
        the payload unless listed in `preserve`. Index key attributes are only
        written when every part is present, which keeps sparse indexes sparse.
        """
        record: PhysicalRecord = dict(self.key_record(item))

        for index in self._schema.indexes.values():
            for definition in (index.pk, index.sk):
                if definition is None:
                    continue
                if all(item.get(key) is not None for key in definition.keys):
                    record[definition.name] = self.encode(definition, item)

        skip = self._schema.key_fields.difference(self._schema.preserve)
        for field, value in item.items():
            if field in skip:
                continue
            record[field] = value

        return record

    def decode_record(self, record: Mapping[str, Any]) -> LogicalItem:
        """Convert a stored attribute map (or a LastEvaluatedKey) into a logical item.

        Raises:
            MissingKeyPartError: If a table key attribute is absent from the record.

        """
        item: LogicalItem = {}
        for definition in self._table_definitions():
            if record.get(definition.name) is None:
                raise MissingKeyPartError(definition.name)
            item.update(self.decode(definition, str(record[definition.name])))

        for index in self._schema.indexes.values():
            for definition in (index.pk, index.sk):
                if definition is None or record.get(definition.name) is None:
                    continue
                for field, value in self.decode(definition, str(record[definition.name])).items():
                    item.setdefault(field, value)

        key_attributes = self._schema.key_attributes
        for attribute, value in record.items():
            if attribute in key_attributes:
                continue
            item[attribute] = value

        return item

    def cursor_from_item(self, item: Mapping[str, Any], *, index_name: str | None = None) -> Cursor:
        """Extract the logical key fields of `item` as a pagination cursor."""
        definitions = self._table_definitions() + self._index_definitions(index_name)
        fields = _unique(key for definition in definitions for key in definition.keys)
        return {field: self._require_part(item, field) for field in fields}


def _unique(fields: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(fields))


__all__ = [
    "KeyCodec",
]
