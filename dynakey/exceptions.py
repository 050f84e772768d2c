"""dynakey exceptions.

This module defines the exception hierarchy for the dynakey library.
All custom exceptions inherit from DynakeyError, allowing users to catch
all library-specific errors with a single except clause.

Exception categories:
- DynakeyError: Base exception for all dynakey errors
- SchemaError: The key schema is missing or malformed (raised at construction)
- KeyValidationError: A logical key passed to an operation is incomplete or
  does not respect the sort key's declared part order
- QueryError: A query or scan request cannot be built or answered

Note: Pydantic validation errors for malformed schema fields are intentionally
not wrapped and bubble up as pydantic.ValidationError. DynamoDB API errors
(e.g., ValidationException, ProvisionedThroughputExceededException) are also not
wrapped and come directly from boto3/botocore.
"""


class DynakeyError(Exception):
    """Base exception for all dynakey errors.

    Example:
        try:
            codec.encode_partial_ordered({"month": "01"})
        except DynakeyError as e:
            pass

    """


# =============================================================================
# Schema errors
# =============================================================================


class SchemaError(DynakeyError):
    """Base class for errors in a key schema definition."""


class KeySchemaRequiredError(SchemaError):
    """Raised when a codec or table is built without a key schema."""

    def __init__(self) -> None:
        super().__init__("A key schema is required")


class PartitionKeyRequiredError(SchemaError):
    """Raised when a key schema has no partition key definition."""

    def __init__(self) -> None:
        super().__init__("The key schema must define a partition key (pk)")


class SeparatorRequiredError(SchemaError):
    """Raised when a key side has more than one part but no separator.

    Attributes:
        side: The key side that is missing a separator ("pk", "sk" or an index side).
        count: The number of declared parts on that side.

    Example:
        KeySchema(pk={"name": "pk", "keys": ["tenant", "user"]})
        Raises SeparatorRequiredError: pk has 2 keys but no separator.

    """

    def __init__(self, *, side: str, count: int) -> None:
        self.side = side
        self.count = count
        super().__init__(f"A separator is required for {side} because it has {count} keys")


# =============================================================================
# Key validation errors
# =============================================================================


class KeyValidationError(DynakeyError):
    """Base class for errors in a logical key passed to an operation."""


class MissingKeyPartError(KeyValidationError):
    """Raised when a record lacks one of the fields a key side is built from.

    Attributes:
        field: The missing logical field.

    """

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Key part '{field}' is required")


class SortKeyNotDefinedError(KeyValidationError):
    """Raised when a sort key operation is used on a schema without a sort key."""

    def __init__(self) -> None:
        super().__init__("The key schema does not define a sort key (sk)")


class SortKeyRequiredError(KeyValidationError):
    """Raised when a full sort key is needed but none was provided."""

    def __init__(self) -> None:
        super().__init__("A sort key value is required for this schema")


class SortKeyEmptyError(KeyValidationError):
    """Raised when a partial sort key has no fields at all."""

    def __init__(self) -> None:
        super().__init__("The sort key condition must include at least one key")


class FirstKeyMissingError(KeyValidationError):
    """Raised when a partial sort key does not start with the first declared part.

    Range conditions only work on a contiguous prefix of the sort key, so the
    first declared part is always required.

    Attributes:
        expected: The first declared sort key part.

    """

    def __init__(self, *, expected: str) -> None:
        self.expected = expected
        super().__init__(f"The first sort key part '{expected}' must be included")


class KeyNotIncludedError(KeyValidationError):
    """Raised when a partial sort key skips a declared part.

    Example:
        For sort key parts [year, month, day]:
        codec.encode_partial_ordered({"year": "2024", "day": "01"})
        Raises KeyNotIncludedError: key 'month' must be included.

    Attributes:
        key: The first missing contiguous part.

    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Sort key part '{key}' is missing or out of the declared order")


# =============================================================================
# Query errors
# =============================================================================


class QueryError(DynakeyError):
    """Base class for errors building or answering a request."""


class UnknownOperatorError(QueryError):
    """Raised when a filter uses an operator outside = <> < <= > >=.

    Attributes:
        operator: The rejected operator.

    """

    def __init__(self, operator: str) -> None:
        self.operator = operator
        super().__init__(f"Unknown filter operator: {operator!r}")


class InvalidQueryTypeError(QueryError):
    """Raised when a request's operation is neither query nor scan."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Invalid query type: {operation!r}")


class TableNameMismatchError(QueryError):
    """Raised when a raw request targets a different table than the one it runs on.

    Attributes:
        expected: The table name of the KeyedTable.
        actual: The table name found in the request.

    """

    def __init__(self, *, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Table name mismatch: expected '{expected}', got '{actual}'")


class IndexNotFoundError(QueryError):
    """Raised when an index name has no key schema registered.

    Attributes:
        index_name: Name of the index that was not found.

    Example:
        codec.key_record(cursor, index_name="nonexistent-index")
        Raises IndexNotFoundError: Index 'nonexistent-index' not found in key schema

    """

    def __init__(self, *, index_name: str) -> None:
        self.index_name = index_name
        super().__init__(f"Index '{index_name}' not found in key schema")


class ItemNotFoundError(QueryError):
    """Raised by get_one() when no item matches the given key."""

    def __init__(self, *, table_name: str | None = None) -> None:
        self.table_name = table_name
        message = "Item not found"
        if table_name:
            message = f"Item not found in table '{table_name}'"
        super().__init__(message)


__all__ = [
    "DynakeyError",
    "FirstKeyMissingError",
    "IndexNotFoundError",
    "InvalidQueryTypeError",
    "ItemNotFoundError",
    "KeyNotIncludedError",
    "KeySchemaRequiredError",
    "KeyValidationError",
    "MissingKeyPartError",
    "PartitionKeyRequiredError",
    "QueryError",
    "SchemaError",
    "SeparatorRequiredError",
    "SortKeyEmptyError",
    "SortKeyNotDefinedError",
    "SortKeyRequiredError",
    "TableNameMismatchError",
    "UnknownOperatorError",
]
