"""
Remote job service interface and common data structures.

The access layer never talks to BigQuery directly; it goes through a
RemoteJobClient. BigQueryJobClient is the production implementation and
tests plug in an in-memory fake.
"""

import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JobState(str, Enum):
    """Lifecycle of a remote query job as seen by this client."""

    SUBMITTED = "submitted"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"
    CANCELLED = "cancelled"


class TableKind(str, Enum):
    """Kinds of catalog entity exposed as tables."""

    TABLE = "TABLE"
    VIEW = "VIEW"
    MATERIALIZED_VIEW = "MATERIALIZED VIEW"

    @classmethod
    def from_remote(cls, remote_type: str | None) -> "TableKind":
        """Map the remote table_type string; anything unrecognised is a TABLE."""
        if remote_type == "VIEW":
            return cls.VIEW
        if remote_type == "MATERIALIZED_VIEW":
            return cls.MATERIALIZED_VIEW
        return cls.TABLE


class QueryJobHandle:
    """Handle to a submitted remote job."""

    def __init__(self, job_id: str, location: str | None = None, job: Any = None):
        self.job_id = job_id
        self.location = location
        self.submitted_at = time.time()
        self.state = JobState.SUBMITTED
        # Opaque client-specific job object
        self.job = job

    def mark_running(self) -> None:
        if self.state == JobState.SUBMITTED:
            self.state = JobState.RUNNING

    def mark_done(self) -> None:
        self.state = JobState.DONE

    def mark_error(self) -> None:
        self.state = JobState.ERROR

    def mark_cancelled(self) -> None:
        self.state = JobState.CANCELLED

    @property
    def is_terminal(self) -> bool:
        return self.state in (JobState.DONE, JobState.ERROR, JobState.CANCELLED)

    def __repr__(self) -> str:
        return f"QueryJobHandle(job_id={self.job_id!r}, state={self.state.value})"


class QueryOptions(BaseModel):
    """Per-job options passed to the remote service."""

    use_legacy_sql: bool = False
    default_dataset: str | None = None
    location: str | None = None
    maximum_bytes_billed: int | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    page_size: int | None = None
    max_results: int | None = None
    # Named (``@name``) parameters when a mapping, positional (``?``) when a list
    query_parameters: dict[str, Any] | list[Any] | None = None


class ContainerDescriptor(BaseModel):
    """A dataset (schema) inside a project (catalog)."""

    model_config = ConfigDict(frozen=True)

    catalog: str
    name: str
    location: str | None = None
    description: str | None = None

    @property
    def kind(self) -> str:
        return "SCHEMA"

    @property
    def parent_path(self) -> str:
        return self.catalog

    @property
    def path(self) -> str:
        return f"{self.catalog}.{self.name}"


class EntityDescriptor(BaseModel):
    """A table, view or materialized view inside a dataset."""

    model_config = ConfigDict(frozen=True)

    catalog: str
    container: str
    name: str
    kind: TableKind = TableKind.TABLE
    description: str | None = None

    @property
    def parent_path(self) -> str:
        return f"{self.catalog}.{self.container}"

    @property
    def path(self) -> str:
        return f"{self.catalog}.{self.container}.{self.name}"


class FieldDescriptor(BaseModel):
    """A top-level column of a table as reported by the remote schema."""

    model_config = ConfigDict(frozen=True)

    name: str
    type_name: str
    mode: str = "NULLABLE"
    description: str | None = None
    parent_path: str | None = None

    @property
    def kind(self) -> str:
        return "COLUMN"

    @property
    def is_nullable(self) -> bool:
        return self.mode.upper() != "REQUIRED"


class ResultColumn(BaseModel):
    """Column description of a query result."""

    name: str
    type_name: str = "STRING"
    mode: str = "NULLABLE"

    @property
    def is_nullable(self) -> bool:
        return self.mode.upper() != "REQUIRED"


class QueryMetadata(BaseModel):
    """Metadata about query execution."""

    job_id: str | None = None
    execution_time_ms: int = 0
    bytes_processed: int | None = None
    cache_hit: bool = False
    affected_rows: int | None = None


class QueryResult(BaseModel):
    """Materialized result of a completed query job."""

    columns: list[ResultColumn] = Field(default_factory=list)
    data: list[tuple[Any, ...]] = Field(default_factory=list)
    metadata: QueryMetadata = Field(default_factory=QueryMetadata)
    total_rows: int | None = None

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary format."""
        return {
            "columns": self.column_names,
            "data": [list(row) for row in self.data],
            "metadata": self.metadata.model_dump(),
            "total_rows": self.total_rows,
        }


class RemoteJobClient(ABC):
    """
    Abstract client for the remote job and catalog service.

    Implementations must be safe to call from several tasks at once.
    """

    @abstractmethod
    async def submit_query(self, sql: str, options: QueryOptions) -> QueryJobHandle:
        """
        Submit a query job without waiting for it.

        Raises:
            RemoteQueryError: If the service rejects the job
            RemoteCommunicationError: On network or authentication failure
        """

    @abstractmethod
    async def await_completion(self, handle: QueryJobHandle) -> QueryResult:
        """
        Wait for a job to finish and materialize its rows.

        Raises:
            RemoteQueryError: If the job failed
            RemoteCommunicationError: On network or authentication failure
        """

    @abstractmethod
    async def cancel(self, handle: QueryJobHandle) -> None:
        """Request cancellation of a job (best effort)."""

    @abstractmethod
    async def list_containers(self, catalog: str) -> list[ContainerDescriptor]:
        """List the datasets of a project."""

    @abstractmethod
    async def list_entities(
        self, catalog: str, container: str
    ) -> list[EntityDescriptor]:
        """
        List the tables of a dataset.

        Raises:
            EntityNotFoundError: If the dataset no longer exists
        """

    @abstractmethod
    async def describe_entity(self, entity: EntityDescriptor) -> list[FieldDescriptor]:
        """
        Return the top-level fields of a table in schema order.

        Raises:
            EntityNotFoundError: If the table no longer exists
        """

    async def close(self) -> None:
        """Release client resources."""
