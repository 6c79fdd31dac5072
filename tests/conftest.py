"""Pytest configuration and shared fixtures."""

import asyncio
import itertools
from collections import Counter

import pytest

from libs.bigquery_access.cache import CacheRegistry
from libs.bigquery_access.config import AccessSettings
from libs.bigquery_access.errors import EntityNotFoundError, RemoteCommunicationError
from libs.bigquery_access.remote.base import (
    ContainerDescriptor,
    EntityDescriptor,
    FieldDescriptor,
    QueryJobHandle,
    QueryOptions,
    QueryResult,
    RemoteJobClient,
    ResultColumn,
    TableKind,
)

PROJECT_ID = "test-project"


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRemoteJobClient(RemoteJobClient):
    """In-memory remote service that records every call."""

    def __init__(self):
        self.calls: Counter[str] = Counter()
        self.datasets: dict[str, list[EntityDescriptor]] = {}
        self.fields: dict[str, list[FieldDescriptor]] = {}
        self.missing_datasets: set[str] = set()
        self.failing_datasets: set[str] = set()
        self.missing_tables: set[str] = set()
        self.enumeration_delay = 0.0

        self.query_delay = 0.0
        self.query_result = QueryResult(
            columns=[ResultColumn(name="id", type_name="INT64")],
            data=[(1,), (2,), (3,)],
        )
        self.submit_error: Exception | None = None
        self.query_error: Exception | None = None
        self.cancel_error: Exception | None = None
        self.cancel_delay = 0.0
        self.submitted: list[tuple[str, QueryOptions]] = []
        self.cancelled_jobs: list[str] = []
        self.closed = False
        self._job_ids = itertools.count(1)

    def add_table(
        self,
        dataset: str,
        table: str,
        fields: list[tuple[str, str]] | None = None,
        kind: TableKind = TableKind.TABLE,
    ) -> EntityDescriptor:
        entity = EntityDescriptor(
            catalog=PROJECT_ID, container=dataset, name=table, kind=kind
        )
        self.datasets.setdefault(dataset, []).append(entity)
        self.fields[entity.path] = [
            FieldDescriptor(name=name, type_name=type_name, parent_path=entity.path)
            for name, type_name in (fields or [("id", "INT64")])
        ]
        return entity

    async def submit_query(self, sql: str, options: QueryOptions) -> QueryJobHandle:
        self.calls["submit_query"] += 1
        self.submitted.append((sql, options))
        if self.submit_error is not None:
            raise self.submit_error
        return QueryJobHandle(f"job_{next(self._job_ids)}", location="US")

    async def await_completion(self, handle: QueryJobHandle) -> QueryResult:
        self.calls["await_completion"] += 1
        handle.mark_running()
        if self.query_delay:
            await asyncio.sleep(self.query_delay)
        if self.query_error is not None:
            handle.mark_error()
            raise self.query_error
        handle.mark_done()
        return self.query_result.model_copy(
            update={
                "metadata": self.query_result.metadata.model_copy(
                    update={"job_id": handle.job_id}
                )
            }
        )

    async def cancel(self, handle: QueryJobHandle) -> None:
        self.calls["cancel"] += 1
        self.cancelled_jobs.append(handle.job_id)
        if self.cancel_delay:
            await asyncio.sleep(self.cancel_delay)
        if self.cancel_error is not None:
            raise self.cancel_error
        handle.mark_cancelled()

    async def list_containers(self, catalog: str) -> list[ContainerDescriptor]:
        self.calls["list_containers"] += 1
        if self.enumeration_delay:
            await asyncio.sleep(self.enumeration_delay)
        return [ContainerDescriptor(catalog=catalog, name=name) for name in self.datasets]

    async def list_entities(self, catalog: str, container: str) -> list[EntityDescriptor]:
        self.calls["list_entities"] += 1
        if self.enumeration_delay:
            await asyncio.sleep(self.enumeration_delay)
        if container in self.missing_datasets:
            raise EntityNotFoundError(f"Not found: {catalog}.{container}")
        if container in self.failing_datasets:
            raise RemoteCommunicationError("connection reset by peer")
        return list(self.datasets.get(container, []))

    async def describe_entity(self, entity: EntityDescriptor) -> list[FieldDescriptor]:
        self.calls["describe_entity"] += 1
        if self.enumeration_delay:
            await asyncio.sleep(self.enumeration_delay)
        if entity.path in self.missing_tables:
            raise EntityNotFoundError(f"Not found: {entity.path}", path=entity.path)
        return list(self.fields.get(entity.path, []))

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return AccessSettings(project_id=PROJECT_ID)


@pytest.fixture
def fake_client():
    return FakeRemoteJobClient()


@pytest.fixture
def registry(clock):
    """Fresh cache registry per test (no process-wide state)."""
    return CacheRegistry(clock=clock)


@pytest.fixture
def warehouse(fake_client):
    """Five datasets with three tables each, two columns per table."""
    for d in range(5):
        for t in range(3):
            fake_client.add_table(
                f"dataset_{d}",
                f"table_{t}",
                fields=[("id", "INT64"), ("name", "STRING")],
            )
    return fake_client
