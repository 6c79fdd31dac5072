"""
BigQuery Access Library

Relational access to Google BigQuery for JDBC/ODBC style tooling.

Features:
- Query execution with client-side timeouts and cross-thread cancellation
- Catalog discovery (projects, datasets, tables, columns) with parallel fan-out
- Shared TTL metadata cache per project
- SQL LIKE pattern filtering
- Settings from environment variables or ``bigquery://`` connection URLs
"""

from .cache import CacheEntry, CacheRegistry, CacheStats, MetadataCache
from .config import AccessSettings, parse_connection_url
from .connection import Connection, SessionManager, connect
from .errors import (
    BigQueryAccessError,
    ConfigurationError,
    ConnectionClosedError,
    EntityNotFoundError,
    InterfaceError,
    NotSupportedError,
    QueryCancelledError,
    QueryTimeoutError,
    RemoteCommunicationError,
    RemoteQueryError,
    SQLState,
)
from .execution import ExecutionState, ResultCursor, Statement
from .fanout import run_parallel
from .metadata import MetadataDiscovery, MetadataResult
from .patterns import matches
from .remote import BigQueryJobClient, RemoteJobClient

__all__ = [
    "AccessSettings",
    "BigQueryAccessError",
    "BigQueryJobClient",
    "CacheEntry",
    "CacheRegistry",
    "CacheStats",
    "ConfigurationError",
    "Connection",
    "ConnectionClosedError",
    "EntityNotFoundError",
    "ExecutionState",
    "InterfaceError",
    "MetadataCache",
    "MetadataDiscovery",
    "MetadataResult",
    "NotSupportedError",
    "QueryCancelledError",
    "QueryTimeoutError",
    "RemoteCommunicationError",
    "RemoteJobClient",
    "RemoteQueryError",
    "ResultCursor",
    "SQLState",
    "SessionManager",
    "Statement",
    "connect",
    "matches",
    "parse_connection_url",
    "run_parallel",
]
