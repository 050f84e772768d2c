"""Shared base functionality for dynakey tables and paginators.

This module provides the logic common to the synchronous and asynchronous
front ends: request construction for the read helpers, and the cursor
pagination engine that turns one over-fetched store response into a
PaginationResult. Only the store call itself differs between sync and async.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from functools import partial
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from typing_extensions import TypedDict

from dynakey.chain import Query, Scan
from dynakey.codec import KeyCodec
from dynakey.exceptions import (
    InvalidQueryTypeError,
    SortKeyRequiredError,
    TableNameMismatchError,
)
from dynakey.expressions import ExpressionBuilder, FilterObject
from dynakey.keys import Cursor, Direction, LogicalItem
from dynakey.ranges import PartialSortKey, SortKeyCondition
from dynakey.request import DEFAULT_PAGE_SIZE, QueryRequest
from dynakey.schema import KeySchema

if TYPE_CHECKING:
    from mypy_boto3_dynamodb.service_resource import Table as SyncTable
    from types_aiobotocore_dynamodb.service_resource import Table as AsyncTable
else:
    SyncTable = Any
    AsyncTable = Any

logger = logging.getLogger(__name__)

SEARCH_PAGE_SIZE = 25

Table = TypeVar("Table", SyncTable, AsyncTable)


class TableConfig(TypedDict, Generic[Table]):
    """Configuration required to open a keyed table.

    Attributes:
        table: The DynamoDB Table resource (boto3 or aioboto3).
        schema: The key schema, as a KeySchema or as plain data.

    """

    table: Table
    schema: KeySchema | Mapping[str, Any]


class Pagination(BaseModel):
    """Where a page starts and which way it goes.

    Attributes:
        pivot: The cursor to start after, or None to start at the edge.
        direction: "forward" for ascending sort key order, "backward" for descending.

    """

    model_config = ConfigDict(frozen=True)

    pivot: dict[str, Any] | None = None
    direction: Direction = "forward"


class PaginationResult(BaseModel):
    """One page of results.

    Attributes:
        items: The decoded logical items, in store order.
        first_key: Cursor of the first item.
        last_key: Cursor of the last item. Pivot on it to get the next page.
        count: Number of items in the page.
        has_next: Whether more items may follow in the page direction.
        has_previous: Whether the page started after a cursor.
        direction: The direction the page was read in.

    """

    model_config = ConfigDict(frozen=True)

    items: list[dict[str, Any]]
    first_key: dict[str, Any] | None
    last_key: dict[str, Any] | None
    count: int
    has_next: bool
    has_previous: bool
    direction: Direction


def derive_page(
    items: Sequence[LogicalItem],
    *,
    limit: int,
    direction: Direction,
    new_cursor: Cursor | None,
    old_cursor: Cursor | None,
    key_of: Callable[[LogicalItem], Cursor],
) -> PaginationResult:
    """Derive the public page from a window fetched with `limit + 1`.

    Args:
        items: Decoded items, in store order.
        limit: The page size requested by the caller, before over-fetching.
        direction: The direction of the request.
        new_cursor: The decoded LastEvaluatedKey of the response, if any.
        old_cursor: The cursor the page started after, if any.
        key_of: Extracts a cursor from an item.

    Returns:
        The page. When the store returned `limit + 1` items, the extra item
        only proves that more exist and is dropped.

    """
    if not items:
        return PaginationResult(
            items=[],
            first_key=new_cursor,
            last_key=new_cursor,
            count=0,
            has_next=new_cursor is not None,
            has_previous=old_cursor is not None,
            direction=direction,
        )

    over_fetched = len(items) == limit + 1
    has_next = new_cursor is not None or over_fetched
    page = list(items[:limit]) if over_fetched else list(items)

    return PaginationResult(
        items=page,
        first_key=key_of(page[0]),
        last_key=key_of(page[-1]),
        count=len(page),
        has_next=has_next,
        has_previous=old_cursor is not None,
        direction=direction,
    )


class _CursorPaginatorBase(Generic[Table]):
    """Internal base class with the Fetch and Derive steps of pagination.

    Subclasses only perform the store call: sync with boto3, async with aioboto3.
    """

    def __init__(self, table: Table, codec: KeyCodec) -> None:
        self._table = table
        self._codec = codec

    @staticmethod
    def _over_fetch(request: QueryRequest) -> QueryRequest:
        return request.evolve(limit=request.limit + 1)

    def _store_call(self, request: QueryRequest) -> Callable[..., Any]:
        """Return the table method that serves `request`.

        Raises:
            InvalidQueryTypeError: If the request is neither a query nor a scan.

        """
        if request.operation == "query":
            return self._table.query  # type: ignore[no-any-return]
        if request.operation == "scan":
            return self._table.scan  # type: ignore[no-any-return]
        raise InvalidQueryTypeError(request.operation)

    def _log_request(self, request: QueryRequest) -> None:
        logger.debug(
            "Sending %s to %s (index=%s, limit=%d, direction=%s, pivot=%s)",
            request.operation,
            request.table_name,
            request.index_name,
            request.limit,
            request.direction,
            request.exclusive_start_key is not None,
        )

    def _derive(self, request: QueryRequest, response: Mapping[str, Any]) -> PaginationResult:
        codec = self._codec
        items = [codec.decode_record(record) for record in response.get("Items", [])]

        last_evaluated_key = response.get("LastEvaluatedKey")
        new_cursor = codec.decode_record(last_evaluated_key) if last_evaluated_key else None

        start_key = request.exclusive_start_key
        old_cursor = codec.decode_record(start_key) if start_key else None

        page = derive_page(
            items,
            limit=request.limit,
            direction=request.direction,
            new_cursor=new_cursor,
            old_cursor=old_cursor,
            key_of=partial(codec.cursor_from_item, index_name=request.index_name),
        )
        logger.debug(
            "Derived page from %s: count=%d has_next=%s has_previous=%s",
            request.table_name,
            page.count,
            page.has_next,
            page.has_previous,
        )
        return page


class _KeyedTableBase(Generic[Table]):
    """Internal base class containing request construction for keyed tables.

    This class should not be subclassed directly. Use KeyedTable or AsyncKeyedTable.
    """

    def __init__(self, config: TableConfig[Table]) -> None:
        schema = config.get("schema")
        if schema is not None and not isinstance(schema, KeySchema):
            schema = KeySchema.model_validate(schema)
        self._codec = KeyCodec(schema)
        self._table = config["table"]

    @property
    def codec(self) -> KeyCodec:
        return self._codec

    @property
    def schema(self) -> KeySchema:
        return self._codec.schema

    @property
    def table_name(self) -> str:
        return self._table.name  # type: ignore[no-any-return]

    def query(
        self,
        pk: Mapping[str, Any],
        *,
        limit: int = DEFAULT_PAGE_SIZE,
        index_name: str | None = None,
        project: Sequence[str] | None = None,
    ) -> Query:
        """Start a query on the partition identified by the logical key `pk`.

        Args:
            pk: The logical partition key fields. When querying an index, the
                index's partition key fields.
            limit: The page size.
            index_name: Optional name of a GSI or LSI declared in the schema.
            project: Optional payload fields to return besides the keys.

        Raises:
            MissingKeyPartError: If `pk` lacks a partition key part.
            IndexNotFoundError: If `index_name` is not declared in the schema.

        """
        partition_key = self._codec.partition_key_for(index_name)
        builder = ExpressionBuilder()
        key_condition = builder.build_key_condition(
            partition_key.name, "=", self._codec.encode(partition_key, pk)
        )

        request = QueryRequest(
            operation="query",
            table_name=self.table_name,
            index_name=index_name,
            key_condition_expression=key_condition,
            limit=limit,
        ).with_expressions(builder)

        query = Query(self._codec, request)
        if project is not None:
            query = query.project(project)
        return query

    def scan(
        self,
        *,
        limit: int = DEFAULT_PAGE_SIZE,
        index_name: str | None = None,
        project: Sequence[str] | None = None,
    ) -> Scan:
        """Start a scan over the whole table or index."""
        if index_name is not None:
            self.schema.index(index_name)
        request = QueryRequest(
            operation="scan",
            table_name=self.table_name,
            index_name=index_name,
            limit=limit,
        )
        scan = Scan(self._codec, request)
        if project is not None:
            scan = scan.project(project)
        return scan

    def _check_table_name(self, request: QueryRequest) -> None:
        if request.table_name and request.table_name != self.table_name:
            raise TableNameMismatchError(expected=self.table_name, actual=request.table_name)

    def query_raw(self, request: QueryRequest) -> Query:
        """Wrap a hand-built request as a Query on this table.

        Raises:
            TableNameMismatchError: If the request targets another table.

        """
        self._check_table_name(request)
        return Query(self._codec, request.evolve(operation="query"))

    def scan_raw(self, request: QueryRequest) -> Scan:
        """Wrap a hand-built request as a Scan on this table.

        Raises:
            TableNameMismatchError: If the request targets another table.

        """
        self._check_table_name(request)
        return Scan(self._codec, request.evolve(operation="scan"))

    def _partition_batch_query(
        self,
        pk: Mapping[str, Any],
        *,
        limit: int,
        pagination: Pagination | None,
        project: Sequence[str] | None,
        index_name: str | None,
    ) -> Query:
        pagination = pagination or Pagination()
        query = self.query(pk, limit=limit, index_name=index_name, project=project)
        return query.with_direction(pagination.direction).pivot(pagination.pivot)

    def _get_one_query(
        self,
        pk: Mapping[str, Any],
        sk: PartialSortKey | None,
        *,
        index_name: str | None,
    ) -> Query:
        query = self.query(pk, limit=1, index_name=index_name)
        has_sort_key = (
            self.schema.sk if index_name is None else self.schema.index(index_name).sk
        ) is not None
        if not has_sort_key:
            return query
        if not sk:
            raise SortKeyRequiredError()
        return query.where_sk_equal(sk)

    def _search_query(
        self,
        pk: Mapping[str, Any],
        *,
        sk_condition: SortKeyCondition | PartialSortKey | None,
        filter_condition: FilterObject | None,
        project: Sequence[str] | None,
        index_name: str | None,
    ) -> Query:
        query = self.query(pk, limit=SEARCH_PAGE_SIZE, index_name=index_name, project=project)
        if sk_condition is not None:
            query = query.where_sk(sk_condition)
        if filter_condition is not None:
            query = query.filter(filter_condition)
        return query.sort_ascending()

    @staticmethod
    def _collect(
        collected: list[LogicalItem], page: PaginationResult, limit: int | None
    ) -> bool:
        """Add `page` to `collected`; return True when searching should stop."""
        if limit is not None and len(collected) + page.count > limit:
            collected.extend(page.items[: limit - len(collected)])
            return True
        collected.extend(page.items)
        if limit is not None and len(collected) >= limit:
            return True
        return not page.has_next or page.last_key is None


__all__ = [
    "AsyncTable",
    "Pagination",
    "PaginationResult",
    "SEARCH_PAGE_SIZE",
    "SyncTable",
    "TableConfig",
    "derive_page",
]
