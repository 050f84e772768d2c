"""dynakey: composite keys, expressions and cursor pagination for DynamoDB."""

from dynakey.async_table import AsyncCursorPaginator, AsyncKeyedTable
from dynakey.base import Pagination, PaginationResult, TableConfig, derive_page
from dynakey.chain import Chain, Query, Scan
from dynakey.codec import KeyCodec
from dynakey.exceptions import (
    DynakeyError,
    FirstKeyMissingError,
    IndexNotFoundError,
    InvalidQueryTypeError,
    ItemNotFoundError,
    KeyNotIncludedError,
    KeySchemaRequiredError,
    KeyValidationError,
    MissingKeyPartError,
    PartitionKeyRequiredError,
    QueryError,
    SchemaError,
    SeparatorRequiredError,
    SortKeyEmptyError,
    SortKeyNotDefinedError,
    SortKeyRequiredError,
    TableNameMismatchError,
    UnknownOperatorError,
)
from dynakey.expressions import UNSET, ExpressionBuilder, RawFilter, to_literal
from dynakey.keys import Cursor, Direction, KeyValue, LogicalItem, PhysicalKey
from dynakey.ranges import RangeConditionBuilder, SortKeyCondition
from dynakey.request import QueryRequest
from dynakey.schema import IndexSchema, KeyDefinition, KeySchema
from dynakey.sync_table import CursorPaginator, KeyedTable

__all__ = [
    "UNSET",
    "AsyncCursorPaginator",
    "AsyncKeyedTable",
    "Chain",
    "Cursor",
    "CursorPaginator",
    "Direction",
    "DynakeyError",
    "ExpressionBuilder",
    "FirstKeyMissingError",
    "IndexNotFoundError",
    "IndexSchema",
    "InvalidQueryTypeError",
    "ItemNotFoundError",
    "KeyCodec",
    "KeyDefinition",
    "KeyNotIncludedError",
    "KeySchema",
    "KeySchemaRequiredError",
    "KeyValidationError",
    "KeyValue",
    "KeyedTable",
    "LogicalItem",
    "MissingKeyPartError",
    "Pagination",
    "PaginationResult",
    "PartitionKeyRequiredError",
    "PhysicalKey",
    "Query",
    "QueryError",
    "QueryRequest",
    "RangeConditionBuilder",
    "RawFilter",
    "Scan",
    "SchemaError",
    "SeparatorRequiredError",
    "SortKeyCondition",
    "SortKeyEmptyError",
    "SortKeyNotDefinedError",
    "SortKeyRequiredError",
    "TableConfig",
    "TableNameMismatchError",
    "UnknownOperatorError",
    "derive_page",
    "to_literal",
]
