"""Target environment probe.

Turns raw ProbeSettings plus host facts into one immutable TargetEnvironment.
This is the only place that touches the process environment or the host
filesystem; every downstream component takes the TargetEnvironment as an
argument.

Example:
    >>> environment = probe_environment()
    >>> environment.flavor
    <Flavor.POSTGRESQL: 'postgresql'>
"""

from __future__ import annotations

from enum import Enum
import os
import platform
import re

from pydantic import BaseModel, ConfigDict, Field
import structlog

from pgtestenv_core.config import ProbeSettings, load_settings
from pgtestenv_core.errors import UnsupportedFlavor
from pgtestenv_core.version import Version, parse_version

logger = structlog.get_logger(__name__)

SOCKET_FILE_TEMPLATE = ".s.PGSQL.{port}"


class Flavor(str, Enum):
    """Database product family under test.

    Attributes:
        POSTGRESQL: PostgreSQL server
        COCKROACHDB: CockroachDB server (PostgreSQL wire protocol)
    """

    POSTGRESQL = "postgresql"
    COCKROACHDB = "cockroachdb"

    @classmethod
    def from_hint(cls, value: str | None) -> Flavor:
        """Resolve the flavor hint, defaulting to POSTGRESQL when unset.

        Raises:
            UnsupportedFlavor: If the hint is set to anything else.
        """
        if not value:
            return cls.POSTGRESQL
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedFlavor(value, supported=[f.value for f in cls]) from None

    @property
    def default_superuser(self) -> str:
        """Superuser that a stock installation of this flavor ships with."""
        if self is Flavor.POSTGRESQL:
            return "postgres"
        if self is Flavor.COCKROACHDB:
            return "root"
        raise AssertionError(f"Unhandled flavor: {self!r}")


class PlatformFacts(BaseModel):
    """Host facts that gate Unix-socket tests.

    Attributes:
        os_release: Leading integer of the host release number
        unix_socket_path: Well-known server socket path
        unix_socket_exists: Whether the socket path existed when probed
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    os_release: int = Field(..., ge=0, description="Host release number")
    unix_socket_path: str = Field(..., min_length=1, description="Server socket path")
    unix_socket_exists: bool = Field(default=False, description="Socket path exists")


class TargetEnvironment(BaseModel):
    """Everything known about the target, built once at process entry.

    Attributes:
        flavor: Database product family
        pg_version: PostgreSQL version, None when unknown
        crdb_version: CockroachDB version, None when unknown
        platform: Host facts
        superuser: Administrative superuser the tool runs as
        socket_dir: Unix socket directory
        port: Server port
        install_path: Server install prefix (9.0 hstore fallback only)
        psql: Administrative tool executable
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    flavor: Flavor = Field(default=Flavor.POSTGRESQL, description="Database flavor")
    pg_version: Version | None = Field(default=None, description="PostgreSQL version")
    crdb_version: Version | None = Field(default=None, description="CockroachDB version")
    platform: PlatformFacts = Field(..., description="Host facts")
    superuser: str = Field(..., min_length=1, description="Administrative superuser")
    socket_dir: str = Field(default="/tmp", description="Unix socket directory")  # noqa: S108
    port: int = Field(default=5432, ge=1, le=65535, description="Server port")
    install_path: str | None = Field(default=None, description="Server install prefix")
    psql: str = Field(default="psql", min_length=1, description="Administrative tool")

    @property
    def version(self) -> Version | None:
        """Version of the active flavor, None when unknown."""
        if self.flavor is Flavor.POSTGRESQL:
            return self.pg_version
        if self.flavor is Flavor.COCKROACHDB:
            return self.crdb_version
        raise AssertionError(f"Unhandled flavor: {self.flavor!r}")


def host_release() -> int:
    """Leading integer of the operating-system release (e.g. "22.6.0" -> 22).

    Returns 0 when the release string has no leading digits.
    """
    match = re.match(r"\d+", platform.release())
    return int(match.group()) if match else 0


def unix_socket_path(socket_dir: str, port: int) -> str:
    """Well-known server socket path for a directory and port."""
    return os.path.join(socket_dir, SOCKET_FILE_TEMPLATE.format(port=port))


def probe_environment(settings: ProbeSettings | None = None) -> TargetEnvironment:
    """Build the TargetEnvironment from settings and host facts.

    Args:
        settings: Pre-loaded settings. Read from the process environment if omitted.

    Returns:
        Immutable TargetEnvironment.

    Raises:
        ConfigurationError: If a typed variable is malformed.
        InvalidVersionFormat: If PGVERSION or CDBVERSION is malformed.
        UnsupportedFlavor: If PGFLAVOR names an unknown product.
    """
    if settings is None:
        settings = load_settings()

    flavor = Flavor.from_hint(settings.flavor)
    pg_version = (
        parse_version(settings.pg_version, variable="PGVERSION") if settings.pg_version else None
    )
    crdb_version = (
        parse_version(settings.crdb_version, variable="CDBVERSION")
        if settings.crdb_version
        else None
    )

    socket_path = unix_socket_path(settings.socket_dir, settings.port)
    facts = PlatformFacts(
        os_release=settings.os_release if settings.os_release is not None else host_release(),
        unix_socket_path=socket_path,
        unix_socket_exists=os.path.exists(socket_path),
    )

    environment = TargetEnvironment(
        flavor=flavor,
        pg_version=pg_version,
        crdb_version=crdb_version,
        platform=facts,
        superuser=settings.superuser or flavor.default_superuser,
        socket_dir=settings.socket_dir,
        port=settings.port,
        install_path=settings.install_path,
        psql=settings.psql,
    )

    logger.info(
        "environment_probed",
        flavor=flavor.value,
        version=str(environment.version) if environment.version else "unknown",
        superuser=environment.superuser,
        os_release=facts.os_release,
        unix_socket_exists=facts.unix_socket_exists,
    )
    return environment
