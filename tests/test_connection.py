"""Tests for connection wiring and lifecycle."""

import asyncio

import pytest

from conftest import PROJECT_ID
from libs.bigquery_access.connection import Connection, SessionManager, connect
from libs.bigquery_access.errors import (
    ConnectionClosedError,
    InterfaceError,
    NotSupportedError,
    QueryCancelledError,
)


class RecordingSession:
    """Session shim that records transaction calls."""

    def __init__(self):
        self.calls: list[str] = []

    async def begin(self) -> None:
        self.calls.append("begin")

    async def commit(self) -> None:
        self.calls.append("commit")

    async def rollback(self) -> None:
        self.calls.append("rollback")

    async def close(self) -> None:
        self.calls.append("close")


@pytest.fixture
def connection(settings, warehouse, registry):
    return Connection(settings, client=warehouse, registry=registry)


class TestConnection:
    """Test statement creation, metadata and close semantics."""

    @pytest.mark.asyncio
    async def test_statement_executes(self, connection):
        statement = connection.statement()
        cursor = await statement.execute("SELECT 1")
        assert cursor.fetchone() == (1,)
        assert connection.open_statements == 1

    @pytest.mark.asyncio
    async def test_metadata_uses_shared_cache(self, settings, warehouse, registry):
        first = Connection(settings, client=warehouse, registry=registry)
        await first.metadata.list_tables()
        await first.close()

        # Closing a connection keeps the shared cache warm
        second = Connection(settings, client=warehouse, registry=registry)
        result = await second.metadata.list_tables()
        assert result.from_cache is True
        assert warehouse.calls["list_containers"] == 1
        assert registry.count() == 1

    @pytest.mark.asyncio
    async def test_metadata_cache_disabled(self, settings, warehouse, registry):
        settings = settings.model_copy(update={"metadata_cache_enabled": False})
        connection = Connection(settings, client=warehouse, registry=registry)

        assert connection.metadata.cache is None
        assert registry.count() == 0

    @pytest.mark.asyncio
    async def test_close_is_idempotent_and_closes_statements(self, connection, warehouse):
        statement = connection.statement()
        await connection.close()
        await connection.close()

        assert connection.closed
        assert statement.closed
        assert warehouse.closed
        assert connection.open_statements == 0

    @pytest.mark.asyncio
    async def test_operations_after_close(self, connection):
        await connection.close()

        with pytest.raises(ConnectionClosedError):
            connection.statement()
        with pytest.raises(ConnectionClosedError):
            connection.metadata
        with pytest.raises(ConnectionClosedError):
            await connection.commit()

    @pytest.mark.asyncio
    async def test_close_cancels_running_query(self, connection, warehouse):
        warehouse.query_delay = 5
        statement = connection.statement()
        task = asyncio.create_task(statement.execute("SELECT slow()"))
        await asyncio.sleep(0.05)

        await connection.close()
        with pytest.raises(QueryCancelledError):
            await task
        assert warehouse.calls["cancel"] == 1

    @pytest.mark.asyncio
    async def test_closed_statement_is_unregistered(self, connection):
        statement = connection.statement()
        statement.close()
        assert connection.open_statements == 0
        with pytest.raises(InterfaceError):
            await statement.execute("SELECT 1")

    @pytest.mark.asyncio
    async def test_async_context_manager(self, settings, warehouse, registry):
        async with Connection(settings, client=warehouse, registry=registry) as conn:
            await conn.statement().execute("SELECT 1")
        assert conn.closed
        assert warehouse.closed


class TestTransactions:
    @pytest.mark.asyncio
    async def test_autocommit_without_session(self, connection):
        assert connection.autocommit is True
        await connection.commit()
        await connection.rollback()
        with pytest.raises(NotSupportedError):
            await connection.begin()

    @pytest.mark.asyncio
    async def test_session_delegation(self, settings, warehouse, registry):
        session = RecordingSession()
        assert isinstance(session, SessionManager)
        connection = Connection(
            settings, client=warehouse, registry=registry, session=session
        )

        await connection.begin()
        await connection.commit()
        await connection.rollback()
        await connection.close()

        assert connection.autocommit is False
        assert session.calls == ["begin", "commit", "rollback", "close"]


class TestConnect:
    def test_connect_from_url(self, warehouse, registry):
        connection = connect(
            "bigquery://url-project/sales?metadataLazyLoad=true",
            client=warehouse,
            registry=registry,
        )
        assert connection.settings.project_id == "url-project"
        assert connection.settings.dataset_id == "sales"
        assert connection.settings.metadata_lazy_load is True

    def test_connect_from_settings_with_overrides(self, settings, warehouse, registry):
        connection = connect(
            settings, client=warehouse, registry=registry, query_timeout_seconds=5
        )
        assert connection.settings.project_id == PROJECT_ID
        assert connection.settings.query_timeout_seconds == 5
