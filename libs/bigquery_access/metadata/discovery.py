"""
Catalog discovery over BigQuery projects, datasets, tables and columns.

Listings are answered from the shared metadata cache when possible.
On a miss the engine fans out one remote call per dataset (and, for columns,
one per table), filters the results with LIKE patterns and stores the
filtered rows under a key derived from the request arguments.
"""

import json
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict

from ..cache import CacheStats, MetadataCache
from ..config import AccessSettings
from ..errors import EntityNotFoundError
from ..fanout import run_parallel
from ..patterns import matches
from ..remote.base import (
    ContainerDescriptor,
    EntityDescriptor,
    RemoteJobClient,
    TableKind,
)
from ..types import column_size, decimal_digits, display_type_name, to_sql_type
from .columns import (
    CATALOG_COLUMNS,
    COLUMN_COLUMNS,
    COLUMN_NO_NULLS,
    COLUMN_NULLABLE,
    SCHEMA_COLUMNS,
    TABLE_COLUMNS,
    TABLE_TYPE_COLUMNS,
    CatalogRow,
    ColumnLayout,
    ColumnRow,
    SchemaRow,
    TableRow,
    TableTypeRow,
)

STATS_LOG_INTERVAL = 10


class MetadataResult(BaseModel):
    """Rows of a catalog listing together with their column layout."""

    model_config = ConfigDict(frozen=True)

    columns: ColumnLayout
    rows: tuple[Any, ...]
    from_cache: bool = False

    @property
    def column_names(self) -> list[str]:
        return [name for name, _ in self.columns]

    def as_tuples(self) -> list[tuple]:
        return [row.as_tuple() for row in self.rows]

    def __len__(self) -> int:
        return len(self.rows)


def cache_key(operation: str, *parts: Any) -> str:
    """
    Build a cache key of the form ``<operation>:<JSON array of parts>``.

    JSON keeps ``None`` distinct from the string ``"null"`` and patterns
    containing ``:`` or ``,`` from neighbouring parts. Keys for one operation
    share the ``<operation>:`` prefix used by ``invalidate``.
    """
    return f"{operation}:{json.dumps(list(parts))}"


def _kinds_key(kinds: Sequence[str] | None) -> list[str] | None:
    if kinds is None:
        return None
    return sorted(kinds)


class MetadataDiscovery:
    """
    Catalog browsing engine bound to one project and one shared cache.

    Pass ``cache=None`` to disable caching entirely.
    """

    def __init__(
        self,
        settings: AccessSettings,
        client: RemoteJobClient,
        cache: MetadataCache | None = None,
    ):
        self.settings = settings
        self.client = client
        self.cache = cache
        self.logger = structlog.get_logger(__name__).bind(
            project_id=settings.project_id
        )

    @property
    def lazy_load(self) -> bool:
        return self.settings.metadata_lazy_load

    def _resolve_catalog(self, catalog: str | None) -> str:
        return catalog if catalog is not None else self.settings.project_id

    async def _cached(
        self,
        key: str,
        columns: ColumnLayout,
        loader: Callable[[], Awaitable[Iterable[Any]]],
    ) -> MetadataResult:
        if self.cache is None:
            rows = await loader()
            return MetadataResult(columns=columns, rows=tuple(rows))

        entry = self.cache.get(key)
        if entry is not None:
            self.logger.debug("metadata_cache_hit", key=key)
            self._log_stats_if_needed()
            return MetadataResult(columns=entry.columns, rows=entry.rows, from_cache=True)

        self.logger.debug("metadata_cache_miss", key=key)
        rows = await loader()
        entry = self.cache.put(key, columns, rows)
        self._log_stats_if_needed()
        return MetadataResult(columns=entry.columns, rows=entry.rows)

    def _log_stats_if_needed(self) -> None:
        stats = self.stats()
        total_ops = stats.hits + stats.misses
        if total_ops > 0 and total_ops % STATS_LOG_INTERVAL == 0:
            self.logger.info(
                "metadata_cache_performance",
                hits=stats.hits,
                misses=stats.misses,
                hit_rate_percent=stats.hit_rate_percent,
                entries=stats.entries,
            )

    async def list_catalogs(self) -> MetadataResult:
        """List catalogs; BigQuery exposes only the configured project."""

        async def load() -> list[CatalogRow]:
            return [CatalogRow(catalog=self.settings.project_id)]

        return await self._cached("catalogs", CATALOG_COLUMNS, load)

    async def list_table_types(self) -> MetadataResult:
        async def load() -> list[TableTypeRow]:
            return [TableTypeRow(table_type=kind.value) for kind in TableKind]

        return await self._cached("tableTypes", TABLE_TYPE_COLUMNS, load)

    async def list_schemas(
        self, catalog: str | None = None, schema_pattern: str | None = None
    ) -> MetadataResult:
        """
        List datasets of a project.

        Args:
            catalog: Project ID (defaults to the configured project)
            schema_pattern: LIKE pattern for dataset names

        Returns:
            MetadataResult: SchemaRow rows
        """
        project_id = self._resolve_catalog(catalog)

        async def load() -> list[SchemaRow]:
            containers = await self._matching_containers(project_id, schema_pattern)
            return [
                SchemaRow(schema_name=container.name, catalog=project_id)
                for container in containers
            ]

        key = cache_key("schemas", catalog, schema_pattern)
        return await self._cached(key, SCHEMA_COLUMNS, load)

    async def list_tables(
        self,
        catalog: str | None = None,
        schema_pattern: str | None = None,
        table_pattern: str | None = None,
        kinds: Sequence[str] | None = None,
    ) -> MetadataResult:
        """
        List tables across the datasets matching ``schema_pattern``.

        Args:
            catalog: Project ID (defaults to the configured project)
            schema_pattern: LIKE pattern for dataset names
            table_pattern: LIKE pattern for table names
            kinds: Allowed table types (TABLE, VIEW, MATERIALIZED VIEW); None allows all

        Returns:
            MetadataResult: TableRow rows, in no particular order
        """
        if kinds is not None:
            kinds = [k.value if isinstance(k, TableKind) else k for k in kinds]
        if self.lazy_load and schema_pattern is None and table_pattern is None:
            self.logger.debug("metadata_lazy_load_skipped", operation="tables")
            return MetadataResult(columns=TABLE_COLUMNS, rows=())

        project_id = self._resolve_catalog(catalog)

        async def load() -> list[TableRow]:
            containers = await self._matching_containers(project_id, schema_pattern)

            async def tables_in(container: ContainerDescriptor) -> list[TableRow]:
                entities = await self._matching_entities(container, table_pattern)
                return [
                    TableRow(
                        catalog=project_id,
                        schema_name=entity.container,
                        table_name=entity.name,
                        table_type=entity.kind.value,
                        remarks=entity.description,
                    )
                    for entity in entities
                    if kinds is None or entity.kind.value in kinds
                ]

            return await run_parallel(
                containers,
                tables_in,
                max_concurrency=self.settings.metadata_max_concurrency,
                description="tables",
            )

        key = cache_key(
            "tables", catalog, schema_pattern, table_pattern, _kinds_key(kinds)
        )
        return await self._cached(key, TABLE_COLUMNS, load)

    async def list_columns(
        self,
        catalog: str | None = None,
        schema_pattern: str | None = None,
        table_pattern: str | None = None,
        column_pattern: str | None = None,
    ) -> MetadataResult:
        """
        List columns of every table matching the patterns.

        Datasets are described in parallel and, within each dataset, tables
        are described in parallel.

        Returns:
            MetadataResult: ColumnRow rows, in no particular order across tables
        """
        if self.lazy_load and table_pattern is None:
            self.logger.debug("metadata_lazy_load_skipped", operation="columns")
            return MetadataResult(columns=COLUMN_COLUMNS, rows=())

        project_id = self._resolve_catalog(catalog)

        async def columns_of(entity: EntityDescriptor) -> list[ColumnRow]:
            try:
                fields = await self.client.describe_entity(entity)
            except EntityNotFoundError as e:
                self.logger.warning(
                    "metadata_table_not_found", table=entity.path, error=str(e)
                )
                return []

            rows = []
            for position, field in enumerate(fields, start=1):
                if not matches(field.name, column_pattern):
                    continue
                rows.append(
                    ColumnRow(
                        catalog=project_id,
                        schema_name=entity.container,
                        table_name=entity.name,
                        column_name=field.name,
                        data_type=int(to_sql_type(field.type_name, field.mode)),
                        type_name=display_type_name(field.type_name, field.mode),
                        column_size=column_size(field.type_name),
                        decimal_digits=decimal_digits(field.type_name),
                        nullable=(
                            COLUMN_NULLABLE if field.is_nullable else COLUMN_NO_NULLS
                        ),
                        remarks=field.description,
                        ordinal_position=position,
                    )
                )
            return rows

        async def columns_in(container: ContainerDescriptor) -> list[ColumnRow]:
            entities = await self._matching_entities(container, table_pattern)
            return await run_parallel(
                entities,
                columns_of,
                max_concurrency=self.settings.metadata_max_concurrency,
                description="columns_per_table",
            )

        async def load() -> list[ColumnRow]:
            containers = await self._matching_containers(project_id, schema_pattern)
            return await run_parallel(
                containers,
                columns_in,
                max_concurrency=self.settings.metadata_max_concurrency,
                description="columns_per_schema",
            )

        key = cache_key("columns", catalog, schema_pattern, table_pattern, column_pattern)
        return await self._cached(key, COLUMN_COLUMNS, load)

    async def _matching_containers(
        self, project_id: str, schema_pattern: str | None
    ) -> list[ContainerDescriptor]:
        containers = await self.client.list_containers(project_id)
        return [c for c in containers if matches(c.name, schema_pattern)]

    async def _matching_entities(
        self, container: ContainerDescriptor, table_pattern: str | None
    ) -> list[EntityDescriptor]:
        try:
            entities = await self.client.list_entities(container.catalog, container.name)
        except EntityNotFoundError as e:
            # Dataset deleted between listing and enumeration
            self.logger.warning(
                "metadata_schema_not_found", schema=container.path, error=str(e)
            )
            return []
        return [e for e in entities if matches(e.name, table_pattern)]

    def invalidate(self, key_prefix: str) -> int:
        """Drop cached listings whose key starts with ``key_prefix``."""
        if self.cache is None:
            return 0
        return self.cache.invalidate(key_prefix)

    def clear_cache(self) -> int:
        if self.cache is None:
            return 0
        removed = self.cache.clear()
        self.logger.info("metadata_cache_cleared", removed=removed)
        return removed

    def stats(self) -> CacheStats:
        if self.cache is None:
            return CacheStats()
        return self.cache.stats()
