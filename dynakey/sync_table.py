"""Synchronous keyed tables and cursor pagination.

This module provides the primary public API on top of a boto3 Table resource:

- `CursorPaginator` runs one query or scan and returns a PaginationResult
- `KeyedTable` builds queries from logical keys and offers read helpers
  (partition batches, single-item lookup, filtered search, iteration)
"""

from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from dynakey.base import (
    Pagination,
    PaginationResult,
    SyncTable,
    _CursorPaginatorBase,
    _KeyedTableBase,
)
from dynakey.chain import Chain
from dynakey.exceptions import ItemNotFoundError
from dynakey.expressions import FilterObject
from dynakey.keys import LogicalItem
from dynakey.ranges import PartialSortKey, SortKeyCondition
from dynakey.request import DEFAULT_PAGE_SIZE, QueryRequest


class CursorPaginator(_CursorPaginatorBase[SyncTable]):
    """Fetches one page with boto3 and derives its pagination state.

    Example:
        paginator = CursorPaginator(table, codec)
        page = paginator.run(query.request)
        if page.has_next:
            page = paginator.run(query.pivot(page.last_key).request)

    """

    def run(self, request: QueryRequest) -> PaginationResult:
        """Send `request` with one extra item and derive the page.

        Raises:
            InvalidQueryTypeError: If the request is neither a query nor a scan.

        """
        store_call = self._store_call(request)
        fetched = self._over_fetch(request)
        self._log_request(fetched)
        response = store_call(**fetched.to_kwargs())
        return self._derive(request, response)


class KeyedTable(_KeyedTableBase[SyncTable]):
    """A DynamoDB table addressed by logical, multi-field keys.

    Example:
        users = KeyedTable(
            TableConfig(
                table=dynamodb.Table("users"),
                schema={
                    "pk": {"name": "pk", "keys": ["tenant"]},
                    "sk": {"name": "sk", "keys": ["team", "user"], "separator": "#"},
                },
            )
        )

        page = users.get_partition_batch({"tenant": "acme"}, limit=20)
        for item in page.items:
            print(item["team"], item["user"])

        next_page = users.get_partition_batch(
            {"tenant": "acme"},
            limit=20,
            pagination=Pagination(pivot=page.last_key),
        )

    """

    @property
    def paginator(self) -> CursorPaginator:
        return CursorPaginator(self._table, self._codec)

    def run(self, chain: Chain) -> PaginationResult:
        """Fetch one page of `chain`."""
        return self.paginator.run(chain.request)

    def iterate_pages(self, chain: Chain) -> Iterator[PaginationResult]:
        """Yield pages of `chain`, pivoting on each page's last key until none is left."""
        while True:
            page = self.run(chain)
            yield page
            if not page.has_next or page.last_key is None:
                return
            chain = chain.pivot(page.last_key)

    def iterate(self, chain: Chain) -> Iterator[LogicalItem]:
        """Yield every item of `chain`, across pages."""
        for page in self.iterate_pages(chain):
            yield from page.items

    def get_partition_batch(
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
        return self.run(query)

    def get_one(
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
        page = self.run(self._get_one_query(pk, sk, index_name=index_name))
        if not page.items:
            raise ItemNotFoundError(table_name=self.table_name)
        return page.items[0]

    def search(
        self,
        pk: Mapping[str, Any],
        *,
        sk_condition: SortKeyCondition | PartialSortKey | None = None,
        filter_condition: FilterObject | None = None,
        project: Sequence[str] | None = None,
        limit: int | None = None,
        index_name: str | None = None,
    ) -> list[LogicalItem]:
        """Collect items of a partition matching a sort key condition and a filter.

        Pages are read in ascending order until `limit` items are collected or
        the partition is exhausted.

        Example:
            adults = users.search(
                {"tenant": "acme"},
                sk_condition=SortKeyCondition.begins_with({"team": "red"}),
                filter_condition={"age": {">=": 18}},
                limit=100,
            )

        """
        query = self._search_query(
            pk,
            sk_condition=sk_condition,
            filter_condition=filter_condition,
            project=project,
            index_name=index_name,
        )

        collected: list[LogicalItem] = []
        while True:
            page = self.run(query)
            if self._collect(collected, page, limit):
                return collected
            query = query.pivot(page.last_key)


__all__ = [
    "CursorPaginator",
    "KeyedTable",
]
