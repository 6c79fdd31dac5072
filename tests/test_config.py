"""Tests for settings and connection URL parsing."""

import pytest

from libs.bigquery_access.config import (
    DEFAULT_METADATA_CACHE_TTL_SECONDS,
    DEFAULT_QUERY_TIMEOUT_SECONDS,
    AccessSettings,
    parse_connection_url,
    parse_labels,
)
from libs.bigquery_access.errors import ConfigurationError, SQLState


class TestAccessSettings:
    """Test settings defaults and validation."""

    def test_defaults(self):
        settings = AccessSettings(project_id="proj")

        assert settings.query_timeout_seconds == DEFAULT_QUERY_TIMEOUT_SECONDS
        assert settings.metadata_cache_enabled is True
        assert settings.metadata_cache_ttl_seconds == DEFAULT_METADATA_CACHE_TTL_SECONDS
        assert settings.metadata_lazy_load is False
        assert settings.metadata_max_concurrency is None
        assert settings.use_legacy_sql is False
        assert settings.page_size == 10000
        assert settings.catalog_identity == "proj"

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("BQ_ACCESS_PROJECT_ID", "env-project")
        monkeypatch.setenv("BQ_ACCESS_METADATA_LAZY_LOAD", "true")
        monkeypatch.setenv("BQ_ACCESS_QUERY_TIMEOUT_SECONDS", "42")

        settings = AccessSettings()
        assert settings.project_id == "env-project"
        assert settings.metadata_lazy_load is True
        assert settings.query_timeout_seconds == 42

    def test_credentials_path_must_be_json(self):
        with pytest.raises(ValueError):
            AccessSettings(project_id="proj", credentials_path="/tmp/key.txt")

    def test_invalid_timeout(self):
        with pytest.raises(ValueError):
            AccessSettings(project_id="proj", query_timeout_seconds=0)


class TestConnectionUrl:
    """Test bigquery:// URL parsing."""

    def test_project_only(self):
        assert parse_connection_url("bigquery://my-project") == {
            "project_id": "my-project"
        }

    def test_project_dataset_and_parameters(self):
        values = parse_connection_url(
            "bigquery://my-project/sales?timeout=60&location=EU"
            "&useLegacySql=false&metadataLazyLoad=true&metadataCacheTtl=120"
        )
        assert values == {
            "project_id": "my-project",
            "dataset_id": "sales",
            "query_timeout_seconds": 60,
            "location": "EU",
            "use_legacy_sql": False,
            "metadata_lazy_load": True,
            "metadata_cache_ttl_seconds": 120,
        }

    def test_jdbc_prefix(self):
        values = parse_connection_url("jdbc:bigquery://proj?maxBillingBytes=1000")
        assert values["project_id"] == "proj"
        assert values["maximum_bytes_billed"] == 1000

    def test_labels(self):
        values = parse_connection_url("bigquery://proj?labels=team%3Ddata,env%3Dprod")
        assert values["labels"] == {"team": "data", "env": "prod"}

    def test_unknown_parameters_ignored(self):
        values = parse_connection_url("bigquery://proj?somethingElse=1")
        assert values == {"project_id": "proj"}

    @pytest.mark.parametrize(
        "url",
        ["", "postgresql://host/db", "bigquery://", "bigquery:///dataset"],
    )
    def test_invalid_urls(self, url):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_connection_url(url)
        assert exc_info.value.sql_state == SQLState.INVALID_ARGUMENT

    def test_invalid_values(self):
        with pytest.raises(ConfigurationError):
            parse_connection_url("bigquery://proj?timeout=soon")
        with pytest.raises(ConfigurationError):
            parse_connection_url("bigquery://proj?metadataLazyLoad=maybe")

    def test_from_url_with_overrides(self):
        settings = AccessSettings.from_url(
            "bigquery://proj/ds?timeout=60", query_timeout_seconds=10
        )
        assert settings.project_id == "proj"
        assert settings.dataset_id == "ds"
        assert settings.query_timeout_seconds == 10

    def test_from_url_validation_error(self):
        with pytest.raises(ConfigurationError):
            AccessSettings.from_url("bigquery://proj?pageSize=0")


class TestParseLabels:
    def test_skips_malformed_pairs(self):
        assert parse_labels("a=1,broken,=x, b = 2 ") == {"a": "1", "b": "2"}

    def test_empty(self):
        assert parse_labels(None) == {}
        assert parse_labels("") == {}
