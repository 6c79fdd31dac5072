"""
Exception hierarchy for the BigQuery access layer.

Every error raised by this library derives from BigQueryAccessError and
carries an optional SQL:2003 state code so that the surrounding driver layer
can translate it without inspecting message text.
"""

import re


class SQLState:
    """SQLState codes used by this library."""

    CONNECTION_EXCEPTION = "08000"
    CONNECTION_CLOSED = "08006"
    SYNTAX_ERROR = "42000"
    TABLE_NOT_FOUND = "42S02"
    INVALID_CURSOR_STATE = "24000"
    FEATURE_NOT_SUPPORTED = "0A000"
    INVALID_ARGUMENT = "HY009"
    OPERATION_CANCELLED = "HY008"
    TIMEOUT_EXPIRED = "HYT00"


def sanitize_error_message(error_message: str) -> str:
    """
    Sanitize error messages to remove sensitive information.

    Args:
        error_message: The raw error message

    Returns:
        str: Sanitized error message
    """
    sensitive_patterns = [
        (r'private_key[=:]\s*[\'"][^\'"]+[\'"]', "private_key=***"),
        (r'client_secret[=:]\s*[\'"][^\'";]+[\'"]', "client_secret=***"),
        (r"client_secret[=:]\s*[\w\-]+", "client_secret=***"),
        (r'refresh_token[=:]\s*[\'"][^\'";]+[\'"]', "refresh_token=***"),
        (r"refresh_token[=:]\s*[\w\-./]+", "refresh_token=***"),
        (r'token[=:]\s*[\'"][^\'";]+[\'"]', "token=***"),
        (r"Bearer\s+[\w\-.]+", "Bearer ***"),
    ]

    sanitized_message = error_message
    for pattern, replacement in sensitive_patterns:
        sanitized_message = re.sub(
            pattern, replacement, sanitized_message, flags=re.IGNORECASE
        )

    return sanitized_message


class BigQueryAccessError(Exception):
    """Base class for all errors raised by the access layer."""

    default_sql_state: str | None = None

    def __init__(self, message: str, sql_state: str | None = None):
        super().__init__(message)
        self.message = message
        self.sql_state = sql_state or self.default_sql_state


class ConfigurationError(BigQueryAccessError, ValueError):
    """Raised for malformed connection URLs or invalid settings values."""

    default_sql_state = SQLState.INVALID_ARGUMENT


class RemoteCommunicationError(BigQueryAccessError):
    """
    Network or authentication failure while talking to BigQuery.

    Not retried by this library; retry policy belongs to the remote client.
    """

    default_sql_state = SQLState.CONNECTION_EXCEPTION


class RemoteQueryError(BigQueryAccessError):
    """The remote job itself reported a failure (bad SQL, permissions, quota)."""

    default_sql_state = SQLState.SYNTAX_ERROR

    def __init__(
        self,
        remote_message: str,
        job_id: str | None = None,
        reason: str | None = None,
    ):
        if job_id:
            message = f"Query failed (job: {job_id}): {remote_message}"
        else:
            message = f"Query failed: {remote_message}"
        super().__init__(message)
        self.remote_message = remote_message
        self.job_id = job_id
        self.reason = reason


class QueryTimeoutError(BigQueryAccessError, TimeoutError):
    """The client-side query timeout elapsed before the job completed."""

    default_sql_state = SQLState.TIMEOUT_EXPIRED

    def __init__(self, timeout_seconds: float, job_id: str | None = None):
        super().__init__(f"Query timeout after {timeout_seconds:g} seconds")
        self.timeout_seconds = timeout_seconds
        self.job_id = job_id


class QueryCancelledError(BigQueryAccessError):
    """The caller cancelled the running query."""

    default_sql_state = SQLState.OPERATION_CANCELLED

    def __init__(self, job_id: str | None = None):
        message = "Query cancelled"
        if job_id:
            message = f"Query cancelled (job: {job_id})"
        super().__init__(message)
        self.job_id = job_id


class EntityNotFoundError(BigQueryAccessError):
    """A dataset or table disappeared while it was being enumerated."""

    default_sql_state = SQLState.TABLE_NOT_FOUND

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class ConnectionClosedError(BigQueryAccessError):
    """An operation was attempted on a closed connection."""

    default_sql_state = SQLState.CONNECTION_CLOSED


class InterfaceError(BigQueryAccessError):
    """Misuse of a closed statement or cursor."""

    default_sql_state = SQLState.INVALID_CURSOR_STATE


class NotSupportedError(BigQueryAccessError):
    """The requested feature is not available for BigQuery."""

    default_sql_state = SQLState.FEATURE_NOT_SUPPORTED
