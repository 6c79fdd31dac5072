"""
Query execution: submit a job, wait with a client-side timeout, and support
cancellation from any thread.

A Statement owns at most one in-flight job and at most one open cursor.
``execute`` suspends the calling task until the job completes, the timeout
elapses or ``cancel`` is called. ``cancel`` is a plain synchronous method so
it can be invoked from a different thread than the one running the event
loop (for example a UI "stop" button).
"""

import asyncio
import threading
from collections.abc import Callable
from enum import Enum
from typing import Any

import structlog

from ..config import AccessSettings
from ..errors import (
    ConfigurationError,
    InterfaceError,
    QueryCancelledError,
    QueryTimeoutError,
    RemoteQueryError,
    sanitize_error_message,
)
from ..remote.base import QueryJobHandle, QueryOptions, RemoteJobClient
from .cursor import ResultCursor


class ExecutionState(str, Enum):
    """State of the most recent execution of a statement."""

    IDLE = "idle"
    SUBMITTED = "submitted"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"


QueryParameters = dict[str, Any] | list[Any]

_IN_FLIGHT = (ExecutionState.SUBMITTED, ExecutionState.RUNNING)

# Upper bound on the best-effort remote cancel after a timeout or cancel()
CANCEL_GRACE_SECONDS = 1.0


class Statement:
    """Execution context for one query at a time."""

    def __init__(
        self,
        client: RemoteJobClient,
        settings: AccessSettings,
        on_close: Callable[["Statement"], None] | None = None,
    ):
        self.client = client
        self.settings = settings
        self.max_rows: int | None = None
        self.state = ExecutionState.IDLE

        self._query_timeout = 0
        self._on_close = on_close
        self._closed = False
        self._cursor: ResultCursor | None = None

        # Guards the fields shared with cancel(), which may run on another thread
        self._lock = threading.Lock()
        self._handle: QueryJobHandle | None = None
        self._waiter: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._cancel_requested = False

        self.logger = structlog.get_logger(__name__).bind(
            project_id=settings.project_id
        )

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def query_timeout(self) -> int:
        """Statement-level timeout in seconds (0 means the connection default)."""
        return self._query_timeout

    def set_query_timeout(self, seconds: int) -> None:
        if seconds < 0:
            raise ConfigurationError("Query timeout must not be negative")
        self._query_timeout = seconds

    @property
    def current_job_id(self) -> str | None:
        with self._lock:
            return self._handle.job_id if self._handle else None

    @property
    def cursor(self) -> ResultCursor | None:
        return self._cursor

    def effective_timeout(self, timeout_seconds: float | None = None) -> float:
        if timeout_seconds is not None and timeout_seconds > 0:
            return timeout_seconds
        if self._query_timeout > 0:
            return self._query_timeout
        return self.settings.query_timeout_seconds

    def _query_options(self, params: QueryParameters | None = None) -> QueryOptions:
        return QueryOptions(
            use_legacy_sql=self.settings.use_legacy_sql,
            default_dataset=self.settings.dataset_id,
            location=self.settings.location,
            maximum_bytes_billed=self.settings.maximum_bytes_billed,
            labels=self.settings.labels,
            page_size=self.settings.page_size,
            max_results=self.max_rows or self.settings.max_results,
            query_parameters=params,
        )

    def _check_open(self) -> None:
        if self._closed:
            raise InterfaceError("Statement is closed")

    def _close_cursor(self) -> None:
        if self._cursor is not None:
            self._cursor.close()
            self._cursor = None

    def _finish(self, state: ExecutionState) -> None:
        with self._lock:
            self.state = state
            self._handle = None
            self._waiter = None
            self._loop = None

    async def execute(
        self,
        sql: str,
        timeout_seconds: float | None = None,
        params: QueryParameters | None = None,
    ) -> ResultCursor:
        """
        Execute a query and wait for its result.

        Args:
            sql: Query text
            timeout_seconds: Overrides the statement and connection timeouts
            params: Query parameters; a mapping binds ``@name`` placeholders,
                a list binds ``?`` placeholders in order

        Returns:
            ResultCursor: Cursor over the complete result

        Raises:
            QueryTimeoutError: If the job did not finish in time
            QueryCancelledError: If cancel() was called while the job ran
            RemoteQueryError: If the job failed remotely
            RemoteCommunicationError: On network or authentication failure
        """
        self._check_open()
        if not sql or not sql.strip():
            raise InterfaceError("SQL must not be empty")

        self._close_cursor()
        timeout = self.effective_timeout(timeout_seconds)
        loop = asyncio.get_running_loop()

        with self._lock:
            if self.state in _IN_FLIGHT:
                raise InterfaceError("Statement is already executing a query")
            self._cancel_requested = False
            self.state = ExecutionState.SUBMITTED

        log = self.logger.bind(timeout_seconds=timeout)

        try:
            handle = await self.client.submit_query(sql, self._query_options(params))
        except asyncio.CancelledError:
            self._finish(ExecutionState.CANCELLED)
            raise
        except Exception as e:
            self._finish(ExecutionState.ERROR)
            log.error("query_submit_failed", error=sanitize_error_message(str(e)))
            raise

        waiter = asyncio.create_task(self.client.await_completion(handle))
        with self._lock:
            self._handle = handle
            self._waiter = waiter
            self._loop = loop
            self.state = ExecutionState.RUNNING
            cancel_early = self._cancel_requested

        log = log.bind(job_id=handle.job_id)
        log.debug("query_job_running")
        if cancel_early:
            waiter.cancel()

        try:
            done, _ = await asyncio.wait({waiter}, timeout=timeout)
        except asyncio.CancelledError:
            waiter.cancel()
            await self._cancel_remote(handle, log)
            self._finish(ExecutionState.CANCELLED)
            raise

        if not done:
            waiter.cancel()
            log.warning("query_timeout")
            await self._cancel_remote(handle, log)
            self._finish(ExecutionState.TIMED_OUT)
            raise QueryTimeoutError(timeout, job_id=handle.job_id)

        if waiter.cancelled():
            log.info("query_cancelled")
            await self._cancel_remote(handle, log)
            self._finish(ExecutionState.CANCELLED)
            raise QueryCancelledError(job_id=handle.job_id)

        try:
            result = waiter.result()
        except RemoteQueryError as e:
            self._finish(ExecutionState.ERROR)
            log.error(
                "query_job_failed",
                reason=e.reason,
                error=sanitize_error_message(e.remote_message),
            )
            raise
        except Exception as e:
            self._finish(ExecutionState.ERROR)
            log.error("query_job_failed", error=sanitize_error_message(str(e)))
            raise

        self._finish(ExecutionState.DONE)
        self._cursor = ResultCursor(result, max_rows=self.max_rows)
        log.info(
            "query_completed",
            rows=len(result.data),
            execution_time_ms=result.metadata.execution_time_ms,
            cache_hit=result.metadata.cache_hit,
        )
        return self._cursor

    async def execute_update(
        self,
        sql: str,
        timeout_seconds: float | None = None,
        params: QueryParameters | None = None,
    ) -> int:
        """Execute a DML statement and return the affected row count (-1 if unknown)."""
        cursor = await self.execute(sql, timeout_seconds, params)
        affected_rows = cursor.metadata.affected_rows
        self._close_cursor()
        return affected_rows if affected_rows is not None else -1

    async def _cancel_remote(self, handle: QueryJobHandle, log) -> None:
        try:
            await asyncio.wait_for(self.client.cancel(handle), CANCEL_GRACE_SECONDS)
        except TimeoutError:
            log.warning(
                "query_cancel_failed",
                error=f"Remote cancel did not finish within {CANCEL_GRACE_SECONDS}s",
            )
        except Exception as e:
            # Never masks the timeout or cancellation being reported
            log.warning("query_cancel_failed", error=sanitize_error_message(str(e)))

    def cancel(self) -> None:
        """
        Request cancellation of the running query.

        Safe to call from any thread; a no-op when nothing is in flight.
        The executing coroutine performs the remote cancel and raises
        QueryCancelledError, unless the job already completed.
        """
        with self._lock:
            if self.state not in _IN_FLIGHT:
                return
            self._cancel_requested = True
            waiter, loop = self._waiter, self._loop
            job_id = self._handle.job_id if self._handle else None

        self.logger.info("query_cancel_requested", job_id=job_id)
        if waiter is None or loop is None:
            # Still submitting; execute() picks the flag up once the job exists
            return
        try:
            loop.call_soon_threadsafe(waiter.cancel)
        except RuntimeError:
            # Loop already closed, so there is no execution left to interrupt
            self.logger.debug("query_cancel_loop_closed", job_id=job_id)

    def close(self) -> None:
        """Close the statement, its cursor and any in-flight job. Idempotent."""
        if self._closed:
            return
        self.cancel()
        self._close_cursor()
        self._closed = True
        if self._on_close is not None:
            self._on_close(self)
        self.logger.debug("statement_closed")
