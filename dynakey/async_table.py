"""Asynchronous keyed tables and cursor pagination.

This module provides async versions of the primary public API on top of an
aioboto3 Table resource:

- `AsyncCursorPaginator` runs one query or scan and returns a PaginationResult
- `AsyncKeyedTable` builds queries from logical keys and offers async read helpers

Building queries never performs I/O, so `query()`, `scan()` and every chain
method stay synchronous; only running a request is awaited.
"""

from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any

from dynakey.base import (
    AsyncTable,
    Pagination,
    PaginationResult,
    _CursorPaginatorBase,
    _KeyedTableBase,
)
from dynakey.chain import Chain
from dynakey.exceptions import ItemNotFoundError
from dynakey.expressions import FilterObject
from dynakey.keys import LogicalItem
from dynakey.ranges import PartialSortKey, SortKeyCondition
from dynakey.request import DEFAULT_PAGE_SIZE, QueryRequest


class AsyncCursorPaginator(_CursorPaginatorBase[AsyncTable]):
    """Fetches one page with aioboto3 and derives its pagination state."""

    async def run(self, request: QueryRequest) -> PaginationResult:
        """Send `request` with one extra item and derive the page.

        Raises:
            InvalidQueryTypeError: If the request is neither a query nor a scan.

        """
        store_call = self._store_call(request)
        fetched = self._over_fetch(request)
        self._log_request(fetched)
        response = await store_call(**fetched.to_kwargs())
        return self._derive(request, response)


class AsyncKeyedTable(_KeyedTableBase[AsyncTable]):
    """An aioboto3 DynamoDB table addressed by logical, multi-field keys.

    Example:
        async with session.resource("dynamodb") as dynamodb:
            table = await dynamodb.Table("users")
            users = AsyncKeyedTable(TableConfig(table=table, schema=schema))

            page = await users.get_partition_batch({"tenant": "acme"}, limit=20)
            async for item in users.iterate(users.query({"tenant": "acme"})):
                print(item)

    """

    @property
    def paginator(self) -> AsyncCursorPaginator:
        return AsyncCursorPaginator(self._table, self._codec)

    async def run(self, chain: Chain) -> PaginationResult:
        """Fetch one page of `chain`."""
        return await self.paginator.run(chain.request)

    async def iterate_pages(self, chain: Chain) -> AsyncIterator[PaginationResult]:
        """Yield pages of `chain`, pivoting on each page's last key until none is left."""
        while True:
            page = await self.run(chain)
            yield page
            if not page.has_next or page.last_key is None:
                return
            chain = chain.pivot(page.last_key)

    async def iterate(self, chain: Chain) -> AsyncIterator[LogicalItem]:
        """Yield every item of `chain`, across pages."""
        async for page in self.iterate_pages(chain):
            for item in page.items:
                yield item

    async def get_partition_batch(
        self,
        pk: Mapping[str, Any],
        *,
        limit: int = DEFAULT_PAGE_SIZE,
        pagination: Pagination | None = None,
        project: Sequence[str] | None = None,
        index_name: str | None = None,
    ) -> PaginationResult:
        """Get one page of a partition.

        Args:
            pk: The logical partition key.
            limit: The page size.
            pagination: Pivot and direction. Defaults to the first forward page.
            project: Optional payload fields to return besides the keys.
            index_name: Optional GSI or LSI to read instead of the table.

        """
        query = self._partition_batch_query(
            pk, limit=limit, pagination=pagination, project=project, index_name=index_name
        )
        return await self.run(query)

    async def get_one(
        self,
        pk: Mapping[str, Any],
        sk: PartialSortKey | None = None,
        *,
        index_name: str | None = None,
    ) -> LogicalItem:
        """Get a single item by its full logical key.

        Raises:
            SortKeyRequiredError: If the table has a sort key and `sk` is empty.
            ItemNotFoundError: If no item matches.

        """
        page = await self.run(self._get_one_query(pk, sk, index_name=index_name))
        if not page.items:
            raise ItemNotFoundError(table_name=self.table_name)
        return page.items[0]

    async def search(
        self,
        pk: Mapping[str, Any],
        *,
        sk_condition: SortKeyCondition | PartialSortKey | None = None,
        filter_condition: FilterObject | None = None,
        project: Sequence[str] | None = None,
        limit: int | None = None,
        index_name: str | None = None,
    ) -> list[LogicalItem]:
        """Collect items of a partition matching a sort key condition and a filter."""
        query = self._search_query(
            pk,
            sk_condition=sk_condition,
            filter_condition=filter_condition,
            project=project,
            index_name=index_name,
        )

        collected: list[LogicalItem] = []
        while True:
            page = await self.run(query)
            if self._collect(collected, page, limit):
                return collected
            query = query.pivot(page.last_key)


__all__ = [
    "AsyncCursorPaginator",
    "AsyncKeyedTable",
]
