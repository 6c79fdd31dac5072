"""Remote job service clients."""

from .base import (
    ContainerDescriptor,
    EntityDescriptor,
    FieldDescriptor,
    JobState,
    QueryJobHandle,
    QueryMetadata,
    QueryOptions,
    QueryResult,
    RemoteJobClient,
    ResultColumn,
    TableKind,
)
from .bigquery import BigQueryJobClient, translate_error

__all__ = [
    "BigQueryJobClient",
    "ContainerDescriptor",
    "EntityDescriptor",
    "FieldDescriptor",
    "JobState",
    "QueryJobHandle",
    "QueryMetadata",
    "QueryOptions",
    "QueryResult",
    "RemoteJobClient",
    "ResultColumn",
    "TableKind",
    "translate_error",
]
