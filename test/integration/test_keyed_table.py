import logging
from decimal import Decimal
from typing import Any

import pytest
from mypy_boto3_dynamodb.service_resource import Table

from dynakey.base import Pagination, TableConfig
from dynakey.exceptions import ItemNotFoundError, KeyNotIncludedError, SortKeyRequiredError
from dynakey.expressions import UNSET, RawFilter
from dynakey.ranges import SortKeyCondition
from dynakey.request import QueryRequest
from dynakey.schema import KeySchema
from dynakey.sync_table import KeyedTable

PARTITION = {"tenant": "acme", "user": "42"}

EVENTS: list[dict[str, Any]] = [
    {"tenant": "acme", "user": "42", "year": "2024", "month": "01", "day": "15", "seq": "1",
     "kind": "login", "age": 30},
    {"tenant": "acme", "user": "42", "year": "2024", "month": "01", "day": "20", "seq": "2",
     "kind": "logout", "age": 17},
    {"tenant": "acme", "user": "42", "year": "2024", "month": "02", "day": "03", "seq": "3",
     "kind": "login", "age": 70},
    {"tenant": "acme", "user": "42", "year": "2023", "month": "12", "day": "31", "seq": "4",
     "kind": "login", "age": 45},
    {"tenant": "acme", "user": "7", "year": "2024", "month": "01", "day": "01", "seq": "5",
     "kind": "login", "age": 25},
]  # fmt: skip


def _seqs(items: list[dict[str, Any]]) -> list[str]:
    return [item["seq"] for item in items]


@pytest.fixture
def hours(hours_table: Table, hours_schema: KeySchema) -> KeyedTable:
    table = KeyedTable(TableConfig(table=hours_table, schema=hours_schema))
    for bucket, total in (("b1", 30), ("b2", 5)):
        for h in range(total):
            item = {"bucket": bucket, "h": f"{h:02d}", "value": h}
            hours_table.put_item(Item=table.codec.encode_item(item))
    return table


@pytest.fixture
def events(events_table: Table, events_schema: KeySchema) -> KeyedTable:
    table = KeyedTable(TableConfig(table=events_table, schema=events_schema))
    for event in EVENTS:
        events_table.put_item(Item=table.codec.encode_item(event))
    return table


def test_stored_record_layout(events_table: Table, events: KeyedTable) -> None:
    response = events_table.get_item(Key={"pk": "acme#42", "sk": "2024-01-15-1"})

    assert response["Item"] == {
        "pk": "acme#42",
        "sk": "2024-01-15-1",
        "gsi1pk": "login",
        "gsi1sk": "acme#1",
        "user": "42",
        "kind": "login",
        "age": Decimal("30"),
    }


def test_first_page(hours: KeyedTable) -> None:
    page = hours.get_partition_batch({"bucket": "b1"}, limit=5)

    assert [item["h"] for item in page.items] == ["00", "01", "02", "03", "04"]
    assert page.has_next is True
    assert page.has_previous is False
    assert page.first_key == {"bucket": "b1", "h": "00"}
    assert page.last_key == {"bucket": "b1", "h": "04"}


def test_backward_page_from_pivot(hours: KeyedTable) -> None:
    page = hours.get_partition_batch(
        {"bucket": "b1"},
        limit=5,
        pagination=Pagination(pivot={"bucket": "b1", "h": "04"}, direction="backward"),
    )

    assert [item["h"] for item in page.items] == ["03", "02", "01", "00"]
    assert page.has_next is False
    assert page.has_previous is True


@pytest.mark.parametrize("direction", ["forward", "backward"])
def test_full_traversal(hours: KeyedTable, direction: str) -> None:
    visited: list[str] = []
    pagination = Pagination(direction=direction)  # type: ignore[arg-type]
    pages = 0

    while True:
        page = hours.get_partition_batch({"bucket": "b1"}, limit=5, pagination=pagination)
        pages += 1
        visited.extend(item["h"] for item in page.items)
        assert page.has_previous is (pages > 1)
        if not page.has_next:
            break
        pagination = Pagination(pivot=page.last_key, direction=direction)  # type: ignore[arg-type]

    expected = [f"{h:02d}" for h in range(30)]
    if direction == "backward":
        expected.reverse()
    assert visited == expected
    assert pages == 6


def test_empty_partition(hours: KeyedTable) -> None:
    page = hours.get_partition_batch({"bucket": "nothing-here"}, limit=5)

    assert page.items == []
    assert page.count == 0
    assert page.has_next is False
    assert page.has_previous is False


def test_iterate_scan_visits_every_item_once(hours: KeyedTable) -> None:
    items = list(hours.iterate(hours.scan(limit=4)))

    keys = [(item["bucket"], item["h"]) for item in items]
    assert len(keys) == 35
    assert len(set(keys)) == 35


def test_get_one(events: KeyedTable) -> None:
    item = events.get_one(PARTITION, {"year": "2024", "month": "01", "day": "15", "seq": "1"})

    assert item == EVENTS[0]


def test_get_one_not_found(events: KeyedTable) -> None:
    with pytest.raises(ItemNotFoundError):
        events.get_one(PARTITION, {"year": "1999", "month": "01", "day": "01", "seq": "9"})


def test_get_one_requires_sort_key(events: KeyedTable) -> None:
    with pytest.raises(SortKeyRequiredError):
        events.get_one(PARTITION)


def test_where_sk_begins_with(events: KeyedTable) -> None:
    query = events.query(PARTITION).where_sk_begins_with({"year": "2024", "month": "01"})
    page = events.run(query)

    assert _seqs(page.items) == ["1", "2"]


def test_where_sk_between(events: KeyedTable) -> None:
    query = events.query(PARTITION).where_sk_between(
        {"year": "2023"}, {"year": "2024", "month": "01", "day": "20"}
    )

    assert _seqs(events.run(query).items) == ["4", "1"]


def test_where_sk_greater_than_descending(events: KeyedTable) -> None:
    query = events.query(PARTITION).where_sk_greater_than({"year": "2024"}).sort_descending()

    assert _seqs(events.run(query).items) == ["3", "2", "1"]


def test_partial_key_gap_is_rejected(events: KeyedTable) -> None:
    with pytest.raises(KeyNotIncludedError):
        events.query(PARTITION).where_sk_begins_with({"year": "2024", "day": "15"})


def test_filter(events: KeyedTable) -> None:
    query = events.query(PARTITION).filter({"age": {">=": 18, "<=": 65}, "kind": UNSET})

    assert _seqs(events.run(query).items) == ["4", "1"]


def test_filter_raw(events: KeyedTable) -> None:
    raw = RawFilter("#k = :k", {"#k": "kind"}, {":k": "logout"})

    assert _seqs(events.run(events.query(PARTITION).filter_raw(raw)).items) == ["2"]


def test_projection_keeps_keys(events: KeyedTable) -> None:
    page = events.run(events.query(PARTITION, project=["age"]))

    first = page.items[0]
    assert set(first) == {"tenant", "user", "year", "month", "day", "seq", "age"}
    assert page.last_key is not None


def test_projecting_twice_sends_a_valid_request(hours: KeyedTable) -> None:
    query = hours.query({"bucket": "b1"}, limit=3).project(["color"]).project(["value"])
    page = hours.run(query)

    assert [item["h"] for item in page.items] == ["00", "01", "02"]
    assert set(page.items[0]) == {"bucket", "h", "value"}
    assert "color" not in query.request.expression_attribute_names.values()


def test_search(events: KeyedTable) -> None:
    items = events.search(
        PARTITION,
        sk_condition=SortKeyCondition.begins_with({"year": "2024"}),
        filter_condition={"kind": "login"},
    )

    assert _seqs(items) == ["1", "3"]


def test_search_with_limit(events: KeyedTable) -> None:
    assert _seqs(events.search(PARTITION, limit=2)) == ["4", "1"]


def test_index_query(events: KeyedTable) -> None:
    query = events.query({"kind": "login"}, index_name="by-kind").where_sk_begins_with(
        {"tenant": "acme"}
    )
    page = events.run(query)

    assert _seqs(page.items) == ["1", "3", "4", "5"]
    assert page.items[-1]["user"] == "7"
    assert page.last_key == {
        "tenant": "acme",
        "user": "7",
        "year": "2024",
        "month": "01",
        "day": "01",
        "seq": "5",
        "kind": "login",
    }


def test_query_raw(events: KeyedTable) -> None:
    request = QueryRequest(
        table_name="Events",
        key_condition_expression="#p = :p",
        expression_attribute_names={"#p": "pk"},
        expression_attribute_values={":p": "acme#7"},
    )

    assert _seqs(events.run(events.query_raw(request)).items) == ["5"]


def test_requests_are_logged(hours: KeyedTable, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="dynakey")

    hours.get_partition_batch({"bucket": "b1"}, limit=5)

    assert "Sending query to Hours" in caplog.text
    assert "count=5 has_next=True has_previous=False" in caplog.text
