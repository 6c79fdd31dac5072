"""Catalog metadata discovery."""

from .columns import (
    CATALOG_COLUMNS,
    COLUMN_COLUMNS,
    SCHEMA_COLUMNS,
    TABLE_COLUMNS,
    TABLE_TYPE_COLUMNS,
    CatalogRow,
    ColumnRow,
    SchemaRow,
    TableRow,
    TableTypeRow,
)
from .discovery import MetadataDiscovery, MetadataResult, cache_key

__all__ = [
    "CATALOG_COLUMNS",
    "COLUMN_COLUMNS",
    "SCHEMA_COLUMNS",
    "TABLE_COLUMNS",
    "TABLE_TYPE_COLUMNS",
    "CatalogRow",
    "ColumnRow",
    "MetadataDiscovery",
    "MetadataResult",
    "SchemaRow",
    "TableRow",
    "TableTypeRow",
    "cache_key",
]
