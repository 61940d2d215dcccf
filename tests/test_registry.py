"""Tests for the schema registry, settings and exception types."""

import pytest
from pydantic import ValidationError

from versionstore.core.config import Settings
from versionstore.exceptions import ErrorCode, UnknownTableError, VersionConflictError
from versionstore.registry import FieldDescriptor, SchemaRegistry, TableSchema, empty_value_for_sql


class TestRegistry:

    def test_unknown_table(self):
        with pytest.raises(UnknownTableError) as exc:
            SchemaRegistry().get("tl_missing")
        assert exc.value.error_code == ErrorCode.UNKNOWN_TABLE
        assert exc.value.to_dict()["details"] == {"table": "tl_missing"}
        assert str(exc.value) == '"tl_missing" is not a valid table'

    def test_versioning_flag(self, registry):
        assert registry.is_versioning_enabled("tl_news")
        assert not registry.is_versioning_enabled("tl_page")
        assert not registry.is_versioning_enabled("tl_missing")
        assert "tl_page" in registry

    def test_binary_fields(self):
        schema = TableSchema(
            name="tl_content",
            fields={"multiSRC": FieldDescriptor(input_type="fileTree")},
            order_fields={"orderSRC"},
        )
        assert schema.is_binary("multiSRC")
        assert schema.is_binary("orderSRC")
        assert not schema.is_binary("headline")

    def test_decrypt_without_decryptor_passes_through(self):
        assert SchemaRegistry().decrypt("cipher") == "cipher"
        assert SchemaRegistry(decryptor=str.upper).decrypt("") == ""

    def test_invalid_date_kind(self):
        with pytest.raises(ValueError, match="date_kind"):
            FieldDescriptor(date_kind="week")

    @pytest.mark.parametrize("sql, expected", [
        (None, ""),
        ("varchar(255) NOT NULL default ''", ""),
        ("int(10) unsigned NOT NULL default 0", 0),
        ("char(1) NOT NULL default ''", ""),
        ("binary(16) NULL", None),
        ("blob NULL", None),
        ("decimal(10,2) NOT NULL default '0.00'", 0),
    ])
    def test_empty_value_for_sql(self, sql, expected):
        assert empty_value_for_sql(sql) == expected


class TestSettings:

    def test_defaults(self):
        settings = Settings()
        assert settings.version_period == 7776000
        assert settings.audit_page_size == 30
        assert "svgz" in settings.get_editable_extensions()

    def test_log_level_is_normalised(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="LOUD")

    @pytest.mark.parametrize("field", ["audit_page_size", "version_create_retries"])
    def test_non_positive_values_rejected(self, field):
        with pytest.raises(ValidationError):
            Settings(**{field: 0})

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("VERSION_PERIOD", "60")
        monkeypatch.setenv("EDITABLE_FILES", " CSS , txt ,")
        settings = Settings()
        assert settings.version_period == 60
        assert settings.get_editable_extensions() == ["css", "txt"]


def test_version_conflict_details():
    error = VersionConflictError("tl_news", 5, 3)
    assert error.error_code == ErrorCode.VERSION_CONFLICT
    assert error.details["attempts"] == 3
