"""Key schema models.

A KeySchema describes how logical fields are folded into the physical partition
and sort key attributes of a table, and optionally of its secondary indexes.
Schemas are frozen Pydantic models validated once, at construction time.

Example:
    schema = KeySchema(
        pk=KeyDefinition(name="pk", keys=("tenant", "user"), separator="#"),
        sk=KeyDefinition(name="sk", keys=("year", "month", "day"), separator="-"),
        preserve=("user",),
    )

    The same schema can be validated from plain data:
    schema = KeySchema.model_validate(
        {"pk": {"name": "pk", "keys": ["tenant", "user"], "separator": "#"}}
    )
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing_extensions import Self

from dynakey.exceptions import IndexNotFoundError, PartitionKeyRequiredError, SeparatorRequiredError


class KeyDefinition(BaseModel):
    """One side of a key: a physical attribute built from ordered logical parts.

    Attributes:
        name: The physical attribute name on the table or index.
        keys: The ordered logical fields joined into the attribute.
        separator: The join separator. Required once there is more than one key.

    """

    model_config = ConfigDict(frozen=True)

    name: str
    keys: tuple[str, ...] = Field(min_length=1)
    separator: str | None = None

    @property
    def is_composite(self) -> bool:
        return len(self.keys) > 1

    def position(self, key: str) -> int:
        """Return the declared position of `key`, or -1 if it is not a part."""
        try:
            return self.keys.index(key)
        except ValueError:
            return -1

    def check_separator(self, side: str) -> None:
        if self.is_composite and not self.separator:
            raise SeparatorRequiredError(side=side, count=len(self.keys))


class IndexSchema(BaseModel):
    """Key definitions of a global or local secondary index."""

    model_config = ConfigDict(frozen=True)

    pk: KeyDefinition
    sk: KeyDefinition | None = None


class KeySchema(BaseModel):
    """Full key layout of a table.

    Attributes:
        pk: The partition key definition.
        sk: The sort key definition, if the table has one.
        preserve: Key fields that are also stored as independent attributes.
        indexes: Secondary index key definitions, by index name.

    Raises:
        PartitionKeyRequiredError: If no partition key definition is given.
        SeparatorRequiredError: If a side has several keys and no separator.

    """

    model_config = ConfigDict(frozen=True)

    pk: KeyDefinition
    sk: KeyDefinition | None = None
    preserve: tuple[str, ...] = ()
    indexes: dict[str, IndexSchema] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _require_partition_key(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("pk") is None:
            raise PartitionKeyRequiredError()
        return data

    @model_validator(mode="after")
    def _require_separators(self) -> Self:
        self.pk.check_separator("pk")
        if self.sk is not None:
            self.sk.check_separator("sk")
        for index_name, index in self.indexes.items():
            index.pk.check_separator(f"{index_name}.pk")
            if index.sk is not None:
                index.sk.check_separator(f"{index_name}.sk")
        return self

    @property
    def key_fields(self) -> set[str]:
        """Logical fields folded into the table's own key attributes."""
        fields = set(self.pk.keys)
        if self.sk is not None:
            fields.update(self.sk.keys)
        return fields

    @property
    def key_attributes(self) -> set[str]:
        """Physical key attributes of the table and all its indexes."""
        attributes = {self.pk.name}
        if self.sk is not None:
            attributes.add(self.sk.name)
        for index in self.indexes.values():
            attributes.add(index.pk.name)
            if index.sk is not None:
                attributes.add(index.sk.name)
        return attributes

    def index(self, index_name: str) -> IndexSchema:
        """Return the key definitions of `index_name`.

        Raises:
            IndexNotFoundError: If the index is not declared in the schema.

        """
        try:
            return self.indexes[index_name]
        except KeyError:
            raise IndexNotFoundError(index_name=index_name) from None


__all__ = [
    "IndexSchema",
    "KeyDefinition",
    "KeySchema",
]
