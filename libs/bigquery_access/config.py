"""
Type-safe settings for the BigQuery access layer.

Settings can be built directly, loaded from ``BQ_ACCESS_*`` environment
variables, or parsed from a connection URL of the form::

    bigquery://my-project/my_dataset?timeout=60&metadataLazyLoad=true

The ``jdbc:bigquery:`` prefix used by JDBC tooling is accepted as well.
"""

import re
from typing import Any
from urllib.parse import parse_qsl, unquote

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

DEFAULT_QUERY_TIMEOUT_SECONDS = 300
DEFAULT_PAGE_SIZE = 10000
DEFAULT_METADATA_CACHE_TTL_SECONDS = 300

_URL_PATTERN = re.compile(
    r"^(?:jdbc:bigquery:|bigquery:)(?://)?([^/?]+)(?:/([^?]*))?(?:\?(.*))?$"
)

# URL parameter name -> (settings field, converter)
_URL_PARAMETERS: dict[str, tuple[str, str]] = {
    "timeout": ("query_timeout_seconds", "int"),
    "location": ("location", "str"),
    "useLegacySql": ("use_legacy_sql", "bool"),
    "maxBillingBytes": ("maximum_bytes_billed", "int"),
    "labels": ("labels", "labels"),
    "pageSize": ("page_size", "int"),
    "maxResults": ("max_results", "int"),
    "credentials": ("credentials_path", "str"),
    "metadataCacheEnabled": ("metadata_cache_enabled", "bool"),
    "metadataCacheTtl": ("metadata_cache_ttl_seconds", "int"),
    "metadataLazyLoad": ("metadata_lazy_load", "bool"),
    "metadataMaxConcurrency": ("metadata_max_concurrency", "int"),
}


class AccessSettings(BaseSettings):
    """Settings consumed by connections, statements and metadata discovery."""

    model_config = SettingsConfigDict(
        env_prefix="BQ_ACCESS_",
        case_sensitive=False,
        extra="ignore",
        str_strip_whitespace=True,
    )

    project_id: str = Field(..., min_length=1, description="Google Cloud project ID")
    dataset_id: str | None = Field(
        default=None, min_length=1, description="Default dataset for queries"
    )
    location: str | None = Field(
        default=None, description="Location used for jobs (e.g. US, EU)"
    )
    credentials_path: str | None = Field(
        default=None, description="Path to a service account JSON key"
    )

    # Query execution
    query_timeout_seconds: int = Field(
        default=DEFAULT_QUERY_TIMEOUT_SECONDS,
        gt=0,
        description="Connection-level default query timeout in seconds",
    )
    use_legacy_sql: bool = Field(default=False, description="Use legacy SQL syntax")
    maximum_bytes_billed: int | None = Field(
        default=None, ge=0, description="Maximum bytes that can be billed per query"
    )
    labels: dict[str, str] = Field(
        default_factory=dict, description="Labels attached to every query job"
    )
    page_size: int = Field(
        default=DEFAULT_PAGE_SIZE, gt=0, description="Result page size"
    )
    max_results: int | None = Field(
        default=None, gt=0, description="Maximum rows fetched per query"
    )

    # Metadata discovery
    metadata_cache_enabled: bool = Field(
        default=True, description="Cache catalog metadata results"
    )
    metadata_cache_ttl_seconds: int = Field(
        default=DEFAULT_METADATA_CACHE_TTL_SECONDS,
        gt=0,
        description="Metadata cache time-to-live in seconds",
    )
    metadata_lazy_load: bool = Field(
        default=False,
        description="Return empty listings until a specific filter is supplied",
    )
    metadata_max_concurrency: int | None = Field(
        default=None,
        gt=0,
        description="Upper bound on concurrent remote calls per fan-out (None = unbounded)",
    )

    @field_validator("credentials_path")
    @classmethod
    def validate_credentials_path(cls, v: str | None) -> str | None:
        """Validate credentials file path."""
        if v is not None and not v.endswith(".json"):
            raise ValueError("credentials_path must be a JSON file")
        return v

    @property
    def catalog_identity(self) -> str:
        """Identity used to share metadata caches between connections."""
        return self.project_id

    @classmethod
    def from_url(cls, url: str, **overrides: Any) -> "AccessSettings":
        """
        Build settings from a connection URL.

        Args:
            url: ``bigquery://project[/dataset][?key=value&...]``
            **overrides: Settings fields that take precedence over URL parameters

        Returns:
            AccessSettings: The parsed settings

        Raises:
            ConfigurationError: If the URL or one of its values is invalid
        """
        values = parse_connection_url(url)
        values.update(overrides)
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid connection settings: {e}") from e


def parse_connection_url(url: str) -> dict[str, Any]:
    """Parse a connection URL into a dict of AccessSettings field values."""
    if not url:
        raise ConfigurationError("Connection URL must not be empty")

    match = _URL_PATTERN.match(url.strip())
    if not match:
        raise ConfigurationError(f"Invalid BigQuery connection URL: {url}")

    project_id, dataset_id, query_string = match.groups()
    values: dict[str, Any] = {"project_id": unquote(project_id)}
    if dataset_id:
        values["dataset_id"] = unquote(dataset_id)

    for key, raw_value in parse_qsl(query_string or "", keep_blank_values=True):
        if key not in _URL_PARAMETERS:
            # Unknown keys are ignored so URLs shared with other drivers still work
            continue
        field_name, kind = _URL_PARAMETERS[key]
        values[field_name] = _convert(key, raw_value, kind)

    return values


def _convert(key: str, value: str, kind: str) -> Any:
    if kind == "int":
        try:
            return int(value)
        except ValueError:
            raise ConfigurationError(f"Invalid integer value for {key}: {value}")
    if kind == "bool":
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no", ""):
            return False
        raise ConfigurationError(f"Invalid boolean value for {key}: {value}")
    if kind == "labels":
        return parse_labels(value)
    return value


def parse_labels(labels: str | None) -> dict[str, str]:
    """Parse ``k1=v1,k2=v2`` into a dict, skipping malformed pairs."""
    if not labels:
        return {}
    parsed: dict[str, str] = {}
    for label in labels.split(","):
        key, sep, value = label.partition("=")
        if sep and key.strip():
            parsed[key.strip()] = value.strip()
    return parsed
