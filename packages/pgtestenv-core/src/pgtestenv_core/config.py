"""Environment settings for the target database.

Reads the raw environment hints once. Values are kept as the strings the
user supplied (versions, flavor); interpretation happens in
pgtestenv_core.environment so that malformed hints surface as
InvalidVersionFormat / UnsupportedFlavor rather than generic validation errors.

Environment Variables:
    PGVERSION: PostgreSQL server version (e.g. "9.4", "12.17")
    CDBVERSION: CockroachDB server version (e.g. "2.1")
    PGFLAVOR: "postgresql" (default) or "cockroachdb"
    PG_SOCKET_DIR: Unix socket directory (default: /tmp)
    PGPORT: Server port (default: 5432)
    PGSUPERUSER: Administrative superuser (default depends on flavor)
    PGPATH: Server install prefix, only used for the 9.0 hstore script
    PGTESTENV_OS_RELEASE: Override for the host release number
    PGTESTENV_PSQL: Administrative tool executable (default: psql)
"""

from __future__ import annotations

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from pgtestenv_core.errors import ConfigurationError

DEFAULT_SOCKET_DIR = "/tmp"  # noqa: S108 - server default, not a temp file
DEFAULT_PORT = 5432
DEFAULT_PSQL = "psql"


class ProbeSettings(BaseSettings):
    """Raw environment hints describing the target database.

    Empty variables are treated as unset.

    Example:
        >>> # From environment
        >>> settings = ProbeSettings()
        >>>
        >>> # Explicit
        >>> settings = ProbeSettings(pg_version="9.4", flavor="postgresql")
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        env_ignore_empty=True,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    pg_version: str | None = Field(
        default=None,
        validation_alias="PGVERSION",
        description="PostgreSQL server version",
    )
    crdb_version: str | None = Field(
        default=None,
        validation_alias="CDBVERSION",
        description="CockroachDB server version",
    )
    flavor: str | None = Field(
        default=None,
        validation_alias="PGFLAVOR",
        description="Database product flavor",
    )
    socket_dir: str = Field(
        default=DEFAULT_SOCKET_DIR,
        validation_alias="PG_SOCKET_DIR",
        description="Unix socket directory",
    )
    port: int = Field(
        default=DEFAULT_PORT,
        ge=1,
        le=65535,
        validation_alias="PGPORT",
        description="Server port",
    )
    superuser: str | None = Field(
        default=None,
        validation_alias="PGSUPERUSER",
        description="Administrative superuser override",
    )
    install_path: str | None = Field(
        default=None,
        validation_alias="PGPATH",
        description="Server install prefix",
    )
    os_release: int | None = Field(
        default=None,
        ge=0,
        validation_alias="PGTESTENV_OS_RELEASE",
        description="Host release number override",
    )
    psql: str = Field(
        default=DEFAULT_PSQL,
        validation_alias="PGTESTENV_PSQL",
        description="Administrative tool executable",
    )


# Field name -> environment variable, for error messages
_ENV_NAMES = {
    name: str(field.validation_alias) for name, field in ProbeSettings.model_fields.items()
}


def load_settings() -> ProbeSettings:
    """Read ProbeSettings from the process environment.

    Returns:
        Populated ProbeSettings.

    Raises:
        ConfigurationError: If a typed variable (port, release) is malformed.
    """
    try:
        return ProbeSettings()
    except PydanticValidationError as e:
        first = e.errors()[0]
        loc = str(first["loc"][0]) if first["loc"] else ""
        variable = _ENV_NAMES.get(loc, loc)
        raise ConfigurationError(
            f"Invalid environment setting: {first['msg']}",
            variable=variable,
            value=str(first.get("input")),
            internal_details=str(e),
        ) from e
