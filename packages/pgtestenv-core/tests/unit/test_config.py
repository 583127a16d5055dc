"""Unit tests for ProbeSettings and load_settings."""

from __future__ import annotations

from collections.abc import Callable

from pydantic import ValidationError
import pytest

from pgtestenv_core.config import (
    DEFAULT_PORT,
    DEFAULT_PSQL,
    DEFAULT_SOCKET_DIR,
    ProbeSettings,
    load_settings,
)
from pgtestenv_core.errors import ConfigurationError


class TestProbeSettingsDefaults:
    """Tests for ProbeSettings defaults."""

    def test_defaults_when_unset(self, probe_env: Callable[..., None]) -> None:
        """Every hint is optional."""
        settings = ProbeSettings()

        assert settings.pg_version is None
        assert settings.crdb_version is None
        assert settings.flavor is None
        assert settings.socket_dir == DEFAULT_SOCKET_DIR
        assert settings.port == DEFAULT_PORT
        assert settings.superuser is None
        assert settings.install_path is None
        assert settings.os_release is None
        assert settings.psql == DEFAULT_PSQL

    def test_empty_variables_treated_as_unset(self, probe_env: Callable[..., None]) -> None:
        """An exported but empty variable behaves as absent."""
        probe_env(PGVERSION="", PGFLAVOR="", PGPORT="", PG_SOCKET_DIR="")

        settings = ProbeSettings()

        assert settings.pg_version is None
        assert settings.flavor is None
        assert settings.port == DEFAULT_PORT
        assert settings.socket_dir == DEFAULT_SOCKET_DIR


class TestProbeSettingsFromEnvironment:
    """Tests for reading the documented variables."""

    def test_reads_all_variables(self, probe_env: Callable[..., None]) -> None:
        """Each field is populated from its variable."""
        probe_env(
            PGVERSION="9.4",
            CDBVERSION="2.1",
            PGFLAVOR="cockroachdb",
            PG_SOCKET_DIR="/var/run/postgresql",
            PGPORT="26257",
            PGSUPERUSER="admin",
            PGPATH="/usr/local/pgsql",
            PGTESTENV_OS_RELEASE="19",
            PGTESTENV_PSQL="/opt/pg/bin/psql",
        )

        settings = ProbeSettings()

        assert settings.pg_version == "9.4"
        assert settings.crdb_version == "2.1"
        assert settings.flavor == "cockroachdb"
        assert settings.socket_dir == "/var/run/postgresql"
        assert settings.port == 26257
        assert settings.superuser == "admin"
        assert settings.install_path == "/usr/local/pgsql"
        assert settings.os_release == 19
        assert settings.psql == "/opt/pg/bin/psql"

    def test_versions_kept_as_raw_strings(self, probe_env: Callable[..., None]) -> None:
        """Malformed versions are not rejected at load time."""
        probe_env(PGVERSION="banana")

        assert ProbeSettings().pg_version == "banana"

    def test_explicit_construction_by_field_name(self) -> None:
        """Fields can be passed by name for tests and callers."""
        settings = ProbeSettings(pg_version="9.0", flavor="postgresql", os_release=12)

        assert settings.pg_version == "9.0"
        assert settings.os_release == 12

    def test_frozen(self) -> None:
        """Settings are immutable once loaded."""
        settings = ProbeSettings(pg_version="9.0")

        with pytest.raises(ValidationError):
            settings.pg_version = "9.1"  # type: ignore[misc]


class TestLoadSettings:
    """Tests for load_settings error wrapping."""

    def test_returns_settings(self, probe_env: Callable[..., None]) -> None:
        """Valid environment loads cleanly."""
        probe_env(PGVERSION="9.5")

        assert load_settings().pg_version == "9.5"

    def test_malformed_port(self, probe_env: Callable[..., None]) -> None:
        """A non-numeric PGPORT is a ConfigurationError naming the variable."""
        probe_env(PGPORT="not-a-port")

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings()

        assert exc_info.value.variable == "PGPORT"
        assert "PGPORT" in str(exc_info.value)

    def test_out_of_range_port(self, probe_env: Callable[..., None]) -> None:
        """Ports outside 1-65535 are rejected."""
        probe_env(PGPORT="70000")

        with pytest.raises(ConfigurationError):
            load_settings()

    def test_malformed_release_override(self, probe_env: Callable[..., None]) -> None:
        """A non-numeric release override is rejected."""
        probe_env(PGTESTENV_OS_RELEASE="ventura")

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings()

        assert exc_info.value.variable == "PGTESTENV_OS_RELEASE"
