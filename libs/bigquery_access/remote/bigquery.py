"""
Google BigQuery implementation of the remote job client.

This module adapts the blocking google-cloud-bigquery client to the async
RemoteJobClient interface by running every SDK call in a worker thread.
"""

import asyncio
import threading
import time
from typing import Any

import structlog

from ..config import AccessSettings
from ..errors import (
    EntityNotFoundError,
    RemoteCommunicationError,
    RemoteQueryError,
    sanitize_error_message,
)
from ..types import parameter_type_name
from .base import (
    ContainerDescriptor,
    EntityDescriptor,
    FieldDescriptor,
    QueryJobHandle,
    QueryMetadata,
    QueryOptions,
    QueryResult,
    RemoteJobClient,
    ResultColumn,
    TableKind,
)


def translate_error(
    error: Exception, job_id: str | None = None, path: str | None = None
) -> Exception:
    """
    Map a google-cloud / google-auth exception onto the access-layer hierarchy.

    Args:
        error: The exception raised by the SDK
        job_id: Job the error belongs to, if any
        path: Catalog path being enumerated, if any

    Returns:
        Exception: The translated exception (not raised)
    """
    from google.api_core import exceptions as api_exceptions
    from google.auth import exceptions as auth_exceptions

    if isinstance(error, api_exceptions.NotFound) and path is not None:
        return EntityNotFoundError(f"Not found: {path}", path=path)

    # 401 is a ClientError subclass but is an authentication failure
    if isinstance(error, api_exceptions.Unauthorized):
        return RemoteCommunicationError(
            f"BigQuery authentication failed: {sanitize_error_message(str(error))}"
        )

    if isinstance(error, api_exceptions.ClientError):
        errors = getattr(error, "errors", None) or []
        reason = errors[0].get("reason") if errors else None
        return RemoteQueryError(error.message, job_id=job_id, reason=reason)

    if isinstance(
        error,
        api_exceptions.GoogleAPICallError
        | api_exceptions.RetryError
        | auth_exceptions.GoogleAuthError
        | OSError,
    ):
        return RemoteCommunicationError(
            f"BigQuery communication failed: {sanitize_error_message(str(error))}"
        )

    return error


def _query_parameter(name: str | None, value: Any) -> Any:
    from google.cloud import bigquery

    if isinstance(value, list | tuple):
        element_type = next(
            (parameter_type_name(item) for item in value if item is not None),
            "STRING",
        )
        return bigquery.ArrayQueryParameter(name, element_type, list(value))
    return bigquery.ScalarQueryParameter(name, parameter_type_name(value), value)


def build_query_parameters(params: dict[str, Any] | list[Any]) -> list[Any]:
    """
    Build BigQuery query parameters from Python values.

    A mapping produces named parameters referenced as ``@name``; a list
    produces positional parameters bound to ``?`` placeholders in order.
    Lists and tuples inside become ARRAY parameters.
    """
    if isinstance(params, dict):
        return [_query_parameter(name, value) for name, value in params.items()]
    return [_query_parameter(None, value) for value in params]


class BigQueryJobClient(RemoteJobClient):
    """RemoteJobClient backed by google-cloud-bigquery."""

    def __init__(
        self,
        settings: AccessSettings,
        credentials: Any = None,
        client: Any = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Access settings (project, location, credentials path)
            credentials: Optional google.auth credentials object
            client: Optional pre-built ``bigquery.Client``
        """
        self.settings = settings
        self._credentials = credentials
        self._client = client
        self._client_lock = threading.Lock()
        self._jobs: dict[str, tuple[Any, QueryOptions]] = {}
        self._jobs_lock = threading.Lock()
        self.logger = structlog.get_logger(__name__).bind(
            project_id=settings.project_id
        )

    def _get_client(self) -> Any:
        with self._client_lock:
            if self._client is not None:
                return self._client

            from google.cloud import bigquery
            from google.oauth2 import service_account

            try:
                credentials = self._credentials
                if credentials is None and self.settings.credentials_path:
                    credentials = service_account.Credentials.from_service_account_file(
                        self.settings.credentials_path
                    )

                # Falls back to application default credentials when None
                self._client = bigquery.Client(
                    project=self.settings.project_id,
                    credentials=credentials,
                    location=self.settings.location,
                )
            except Exception as e:
                translated = translate_error(e)
                if translated is e:
                    translated = RemoteCommunicationError(
                        f"Failed to create BigQuery client: "
                        f"{sanitize_error_message(str(e))}"
                    )
                raise translated from e

            self.logger.info("bigquery_client_created")
            return self._client

    def _job_config(self, options: QueryOptions) -> Any:
        from google.cloud import bigquery

        job_config = bigquery.QueryJobConfig()
        job_config.use_legacy_sql = options.use_legacy_sql

        if options.maximum_bytes_billed is not None:
            job_config.maximum_bytes_billed = options.maximum_bytes_billed
        if options.labels:
            job_config.labels = dict(options.labels)
        if options.default_dataset:
            dataset = options.default_dataset
            if "." not in dataset:
                dataset = f"{self.settings.project_id}.{dataset}"
            job_config.default_dataset = dataset
        if options.query_parameters is not None:
            job_config.query_parameters = build_query_parameters(
                options.query_parameters
            )

        return job_config

    async def submit_query(self, sql: str, options: QueryOptions) -> QueryJobHandle:
        client = await asyncio.to_thread(self._get_client)
        job_config = self._job_config(options)

        try:
            job = await asyncio.to_thread(
                client.query,
                sql,
                job_config=job_config,
                location=options.location or self.settings.location,
            )
        except Exception as e:
            raise translate_error(e) from e

        handle = QueryJobHandle(job.job_id, location=job.location, job=job)
        with self._jobs_lock:
            self._jobs[job.job_id] = (job, options)

        self.logger.info(
            "query_job_submitted", job_id=job.job_id, location=job.location
        )
        return handle

    def _job_for(self, handle: QueryJobHandle) -> tuple[Any, QueryOptions]:
        with self._jobs_lock:
            tracked = self._jobs.get(handle.job_id)
        if tracked is not None:
            return tracked
        if handle.job is None:
            raise RemoteQueryError("Unknown job", job_id=handle.job_id)
        return handle.job, QueryOptions()

    def _forget(self, handle: QueryJobHandle) -> None:
        with self._jobs_lock:
            self._jobs.pop(handle.job_id, None)

    async def await_completion(self, handle: QueryJobHandle) -> QueryResult:
        job, options = self._job_for(handle)
        handle.mark_running()

        def wait_for_rows() -> tuple[list[ResultColumn], list[tuple[Any, ...]], int]:
            rows = job.result(
                page_size=options.page_size or self.settings.page_size,
                max_results=options.max_results,
            )
            columns = [
                ResultColumn(
                    name=field.name,
                    type_name=field.field_type,
                    mode=field.mode or "NULLABLE",
                )
                for field in (rows.schema or [])
            ]
            data = [tuple(row.values()) for row in rows]
            return columns, data, rows.total_rows

        try:
            columns, data, total_rows = await asyncio.to_thread(wait_for_rows)
        except Exception as e:
            handle.mark_error()
            self._forget(handle)
            error_result = getattr(job, "error_result", None)
            if error_result and error_result.get("message"):
                raise RemoteQueryError(
                    error_result["message"],
                    job_id=handle.job_id,
                    reason=error_result.get("reason"),
                ) from e
            raise translate_error(e, job_id=handle.job_id) from e

        handle.mark_done()
        self._forget(handle)

        metadata = QueryMetadata(
            job_id=handle.job_id,
            execution_time_ms=int((time.time() - handle.submitted_at) * 1000),
            bytes_processed=job.total_bytes_processed,
            cache_hit=job.cache_hit or False,
            affected_rows=job.num_dml_affected_rows,
        )
        return QueryResult(
            columns=columns, data=data, metadata=metadata, total_rows=total_rows
        )

    async def cancel(self, handle: QueryJobHandle) -> None:
        job, _ = self._job_for(handle)
        try:
            await asyncio.to_thread(job.cancel)
        except Exception as e:
            raise translate_error(e, job_id=handle.job_id) from e
        finally:
            self._forget(handle)

        handle.mark_cancelled()
        self.logger.info("query_job_cancel_requested", job_id=handle.job_id)

    async def list_containers(self, catalog: str) -> list[ContainerDescriptor]:
        client = await asyncio.to_thread(self._get_client)
        try:
            datasets = await asyncio.to_thread(
                lambda: list(client.list_datasets(project=catalog))
            )
        except Exception as e:
            raise translate_error(e, path=catalog) from e

        return [
            ContainerDescriptor(catalog=catalog, name=dataset.dataset_id)
            for dataset in datasets
        ]

    async def list_entities(
        self, catalog: str, container: str
    ) -> list[EntityDescriptor]:
        client = await asyncio.to_thread(self._get_client)
        path = f"{catalog}.{container}"
        try:
            tables = await asyncio.to_thread(lambda: list(client.list_tables(path)))
        except Exception as e:
            raise translate_error(e, path=path) from e

        return [
            EntityDescriptor(
                catalog=catalog,
                container=container,
                name=table.table_id,
                kind=TableKind.from_remote(table.table_type),
            )
            for table in tables
        ]

    async def describe_entity(self, entity: EntityDescriptor) -> list[FieldDescriptor]:
        client = await asyncio.to_thread(self._get_client)
        try:
            table = await asyncio.to_thread(client.get_table, entity.path)
        except Exception as e:
            raise translate_error(e, path=entity.path) from e

        return [
            FieldDescriptor(
                name=field.name,
                type_name=field.field_type,
                mode=field.mode or "NULLABLE",
                description=field.description,
                parent_path=entity.path,
            )
            for field in table.schema
        ]

    async def close(self) -> None:
        with self._client_lock:
            client, self._client = self._client, None
        with self._jobs_lock:
            self._jobs.clear()
        if client is not None:
            await asyncio.to_thread(client.close)
            self.logger.info("bigquery_client_closed")
