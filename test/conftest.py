"""Shared test fixtures, schemas and fake tables.

This module provides:
- Key schemas used across the unit and integration tests
- In-memory fake tables that page through one partition the way DynamoDB does
- moto-backed DynamoDB tables for integration tests
"""

from collections.abc import Callable, Generator
from os import environ
from typing import Any

import boto3
from moto import mock_aws
from mypy_boto3_dynamodb.service_resource import Table
from pytest import fixture

from dynakey.schema import IndexSchema, KeyDefinition, KeySchema

# =============================================================================
# Schemas
# =============================================================================

HOURS_SCHEMA = KeySchema(
    pk=KeyDefinition(name="pk", keys=("bucket",)),
    sk=KeyDefinition(name="sk", keys=("h",)),
)

EVENTS_SCHEMA = KeySchema(
    pk=KeyDefinition(name="pk", keys=("tenant", "user"), separator="#"),
    sk=KeyDefinition(name="sk", keys=("year", "month", "day", "seq"), separator="-"),
    preserve=("user",),
    indexes={
        "by-kind": IndexSchema(
            pk=KeyDefinition(name="gsi1pk", keys=("kind",)),
            sk=KeyDefinition(name="gsi1sk", keys=("tenant", "seq"), separator="#"),
        ),
    },
)

PK_ONLY_SCHEMA = KeySchema(
    pk=KeyDefinition(name="id", keys=("id",)),
)


@fixture
def hours_schema() -> KeySchema:
    return HOURS_SCHEMA


@fixture
def events_schema() -> KeySchema:
    return EVENTS_SCHEMA


@fixture
def pk_only_schema() -> KeySchema:
    return PK_ONLY_SCHEMA


# =============================================================================
# Fake tables
# =============================================================================


class FakePartitionTable:
    """A single-partition table that honours Limit, ExclusiveStartKey and ScanIndexForward.

    Expressions are ignored. With `eager_last_key`, a LastEvaluatedKey is
    returned whenever a page is full, as DynamoDB does; otherwise only when
    more items remain.
    """

    def __init__(
        self,
        records: list[dict[str, Any]],
        *,
        name: str = "Hours",
        eager_last_key: bool = False,
    ) -> None:
        self.name = name
        self.records = sorted(records, key=lambda record: record["sk"])
        self.eager_last_key = eager_last_key
        self.calls: list[dict[str, Any]] = []

    def _page(self, records: list[dict[str, Any]], kwargs: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(kwargs)
        start = kwargs.get("ExclusiveStartKey")
        if start is not None:
            position = next(i for i, record in enumerate(records) if record["sk"] == start["sk"])
            records = records[position + 1 :]

        limit = kwargs["Limit"]
        page = records[:limit]
        response: dict[str, Any] = {"Items": [dict(record) for record in page]}

        full = len(page) == limit
        if (self.eager_last_key and full) or len(records) > limit:
            last = page[-1]
            response["LastEvaluatedKey"] = {"pk": last["pk"], "sk": last["sk"]}
        return response

    def query(self, **kwargs: Any) -> dict[str, Any]:
        records = self.records
        if not kwargs.get("ScanIndexForward", True):
            records = records[::-1]
        return self._page(records, kwargs)

    def scan(self, **kwargs: Any) -> dict[str, Any]:
        return self._page(self.records, kwargs)


class AsyncFakePartitionTable(FakePartitionTable):
    """Async flavour of FakePartitionTable, shaped like an aioboto3 Table."""

    async def query(self, **kwargs: Any) -> dict[str, Any]:  # type: ignore[override]
        return super().query(**kwargs)

    async def scan(self, **kwargs: Any) -> dict[str, Any]:  # type: ignore[override]
        return super().scan(**kwargs)


def hour_records(total: int, *, bucket: str = "b1") -> list[dict[str, Any]]:
    """Physical records with sort keys "00", "01", ... for the hours schema."""
    return [{"pk": bucket, "sk": f"{h:02d}", "value": h} for h in range(total)]


@fixture
def make_fake_table() -> Callable[..., FakePartitionTable]:
    def factory(total: int, *, eager_last_key: bool = False) -> FakePartitionTable:
        return FakePartitionTable(hour_records(total), eager_last_key=eager_last_key)

    return factory


@fixture
def make_async_fake_table() -> Callable[..., AsyncFakePartitionTable]:
    def factory(total: int, *, eager_last_key: bool = False) -> AsyncFakePartitionTable:
        return AsyncFakePartitionTable(hour_records(total), eager_last_key=eager_last_key)

    return factory


# =============================================================================
# AWS Credentials Fixture (session-scoped)
# =============================================================================


@fixture(scope="session", autouse=True)
def aws_credentials() -> None:
    """Set up fake AWS credentials for moto."""
    environ["AWS_ACCESS_KEY_ID"] = "testing"
    environ["AWS_SECRET_ACCESS_KEY"] = "testing"  # noqa: S105
    environ["AWS_SECURITY_TOKEN"] = "testing"  # noqa: S105
    environ["AWS_SESSION_TOKEN"] = "testing"  # noqa: S105
    environ["AWS_DEFAULT_REGION"] = "us-east-1"


# =============================================================================
# DynamoDB Table Fixtures
# =============================================================================


@fixture
def hours_table() -> Generator[Table, None, None]:
    """Create a table with string partition and sort keys named pk and sk."""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb")
        table = dynamodb.create_table(
            TableName="Hours",
            KeySchema=[
                {"AttributeName": "pk", "KeyType": "HASH"},
                {"AttributeName": "sk", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "pk", "AttributeType": "S"},
                {"AttributeName": "sk", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        table.wait_until_exists()
        yield table
        table.delete()


@fixture
def events_table() -> Generator[Table, None, None]:
    """Create a pk/sk table with a composite-key GSI named by-kind."""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb")
        table = dynamodb.create_table(
            TableName="Events",
            KeySchema=[
                {"AttributeName": "pk", "KeyType": "HASH"},
                {"AttributeName": "sk", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "pk", "AttributeType": "S"},
                {"AttributeName": "sk", "AttributeType": "S"},
                {"AttributeName": "gsi1pk", "AttributeType": "S"},
                {"AttributeName": "gsi1sk", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": "by-kind",
                    "KeySchema": [
                        {"AttributeName": "gsi1pk", "KeyType": "HASH"},
                        {"AttributeName": "gsi1sk", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        table.wait_until_exists()
        yield table
        table.delete()
