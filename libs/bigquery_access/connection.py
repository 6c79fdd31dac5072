"""
Connection: wires settings, the remote client, the shared metadata cache,
an optional session shim and the statements created from it.
"""

from typing import Any, Protocol, runtime_checkable

import structlog

from .cache import CacheRegistry
from .config import AccessSettings
from .errors import ConnectionClosedError, NotSupportedError
from .execution.statement import Statement
from .metadata.discovery import MetadataDiscovery
from .remote.base import RemoteJobClient
from .remote.bigquery import BigQueryJobClient


@runtime_checkable
class SessionManager(Protocol):
    """Transaction shim (BigQuery sessions) consumed by the connection."""

    async def begin(self) -> None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...

    async def close(self) -> None: ...


class Connection:
    """
    A logical connection to one BigQuery project.

    The metadata cache is taken from the injected CacheRegistry so that every
    connection to the same project with the same TTL shares one cache, and
    closing a connection leaves that cache intact for the next one.
    """

    def __init__(
        self,
        settings: AccessSettings,
        client: RemoteJobClient | None = None,
        registry: CacheRegistry | None = None,
        session: SessionManager | None = None,
    ):
        self.settings = settings
        self.client = client or BigQueryJobClient(settings)
        self.registry = registry or CacheRegistry()
        self.session = session

        self._statements: list[Statement] = []
        self._metadata: MetadataDiscovery | None = None
        self._closed = False
        self.logger = structlog.get_logger(__name__).bind(
            project_id=settings.project_id
        )

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def autocommit(self) -> bool:
        return self.session is None

    def _check_open(self) -> None:
        if self._closed:
            raise ConnectionClosedError("Connection is closed")

    def statement(self) -> Statement:
        """Create a new statement bound to this connection."""
        self._check_open()
        statement = Statement(self.client, self.settings, on_close=self._forget)
        self._statements.append(statement)
        return statement

    def _forget(self, statement: Statement) -> None:
        if statement in self._statements:
            self._statements.remove(statement)

    @property
    def open_statements(self) -> int:
        return len(self._statements)

    @property
    def metadata(self) -> MetadataDiscovery:
        """Catalog discovery bound to the shared cache for this project."""
        self._check_open()
        if self._metadata is None:
            cache = None
            if self.settings.metadata_cache_enabled:
                cache = self.registry.get_or_create(
                    self.settings.catalog_identity,
                    self.settings.metadata_cache_ttl_seconds,
                )
            self._metadata = MetadataDiscovery(self.settings, self.client, cache)
        return self._metadata

    async def begin(self) -> None:
        self._check_open()
        if self.session is None:
            raise NotSupportedError(
                "Transactions require a session manager; connection is in autocommit mode"
            )
        await self.session.begin()

    async def commit(self) -> None:
        self._check_open()
        if self.session is not None:
            await self.session.commit()

    async def rollback(self) -> None:
        self._check_open()
        if self.session is not None:
            await self.session.rollback()

    async def close(self) -> None:
        """Close statements, the session shim and the remote client. Idempotent."""
        if self._closed:
            return
        self._closed = True

        for statement in list(self._statements):
            statement.close()
        self._statements.clear()

        try:
            if self.session is not None:
                await self.session.close()
        finally:
            await self.client.close()
            self.logger.info("connection_closed")

    async def __aenter__(self) -> "Connection":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def connect(
    url_or_settings: str | AccessSettings,
    *,
    client: RemoteJobClient | None = None,
    registry: CacheRegistry | None = None,
    session: SessionManager | None = None,
    **overrides: Any,
) -> Connection:
    """
    Open a connection from a ``bigquery://`` URL or ready-made settings.

    Args:
        url_or_settings: Connection URL or AccessSettings
        client: Remote client (defaults to BigQueryJobClient)
        registry: Shared cache registry; pass the process-wide one to share caches
        session: Optional transaction shim
        **overrides: Settings overrides applied on top of the URL parameters
    """
    if isinstance(url_or_settings, AccessSettings):
        settings = url_or_settings
        if overrides:
            settings = AccessSettings(**{**settings.model_dump(), **overrides})
    else:
        settings = AccessSettings.from_url(url_or_settings, **overrides)

    return Connection(settings, client=client, registry=registry, session=session)
