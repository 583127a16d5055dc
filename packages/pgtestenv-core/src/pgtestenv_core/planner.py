"""Provisioning planner.

Builds the ordered list of administrative commands that (re)create the
fixture databases, tables, roles, types, domains, schema and extensions the
integration suite depends on. Every create is preceded by a drop-if-exists
so that running the plan twice leaves the same state as running it once.

The planner is pure: it only reads the TargetEnvironment it is given.
"""

from __future__ import annotations

from collections.abc import Iterator
import posixpath

from pydantic import BaseModel, ConfigDict, Field
import structlog

from pgtestenv_core.environment import Flavor, TargetEnvironment
from pgtestenv_core.errors import ConfigurationError
from pgtestenv_core.version import Version

logger = structlog.get_logger(__name__)

PRIMARY_DATABASE = "pgtestenv_test"
SCHEMA_DATABASE = "pgtestenv_test_with_schemas"
FIXTURE_SCHEMA = "test"
FIXTURE_ROLES = ("pgtestenv_cleartext_pw", "pgtestenv_md5_pw")

EXTENSION_MIN_VERSION = Version(9, 1)
HSTORE_SCRIPT_VERSION = Version(9, 0)
HSTORE_SCRIPT = "contrib/hstore.sql"

CREATE_DATABASE_OPTIONS = (
    "TEMPLATE=template0 ENCODING='UTF8' LC_COLLATE='C.UTF-8' LC_CTYPE='C.UTF-8'"
)

SQL_TABLES = """
DROP TABLE IF EXISTS composite1;
CREATE TABLE composite1 (a int, b text);

DROP TABLE IF EXISTS composite2;
CREATE TABLE composite2 (a int, b int, c int);

DROP TABLE IF EXISTS uniques;
CREATE TABLE uniques (a int UNIQUE);

DROP TABLE IF EXISTS missing_oid;

DROP TABLE IF EXISTS altering;
CREATE TABLE altering (a int2);

DROP TABLE IF EXISTS calendar;
CREATE TABLE calendar (a timestamp without time zone, b timestamp with time zone);
"""

SQL_ROLES = "\n".join(
    [f"DROP ROLE IF EXISTS {role};" for role in FIXTURE_ROLES]
    + [""]
    + [f"CREATE USER {role} WITH PASSWORD '{role}';" for role in FIXTURE_ROLES]
)

SQL_TYPES = """
DROP TYPE IF EXISTS enum1;
CREATE TYPE enum1 AS ENUM ('red', 'green');

DROP TYPE IF EXISTS missing_enum;
DROP TYPE IF EXISTS missing_comp;
"""

SQL_DOMAINS = """
DROP DOMAIN IF EXISTS points_domain;
CREATE DOMAIN points_domain AS point[] CONSTRAINT is_populated CHECK (COALESCE(array_length(VALUE, 1), 0) >= 1);

DROP DOMAIN IF EXISTS floats_domain;
CREATE DOMAIN floats_domain AS float[] CONSTRAINT is_populated CHECK (COALESCE(array_length(VALUE, 1), 0) >= 1);
"""  # noqa: E501

SQL_SCHEMA = f"""
DROP SCHEMA IF EXISTS {FIXTURE_SCHEMA};
CREATE SCHEMA {FIXTURE_SCHEMA};
"""


class ProvisioningCommand(BaseModel):
    """One invocation of the administrative tool.

    Attributes:
        args: Tool arguments after the database selector, e.g. ("-c", sql)
        database: Database to connect to, None for server-level statements
        description: Short human-readable label for logs and reports

    Example:
        >>> cmd = ProvisioningCommand.statement("SELECT 1", database="postgres")
        >>> cmd.argv
        ['-d', 'postgres', '-c', 'SELECT 1']
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    args: tuple[str, ...] = Field(..., min_length=2, description="Tool arguments")
    database: str | None = Field(default=None, description="Target database")
    description: str = Field(default="", description="Step label")

    @classmethod
    def statement(
        cls,
        sql: str,
        *,
        database: str | None = None,
        description: str = "",
    ) -> ProvisioningCommand:
        """Run a literal SQL string (psql -c)."""
        return cls(args=("-c", sql), database=database, description=description)

    @classmethod
    def script(
        cls,
        path: str,
        *,
        database: str | None = None,
        description: str = "",
    ) -> ProvisioningCommand:
        """Run a SQL script file (psql -f)."""
        return cls(args=("-f", path), database=database, description=description)

    @property
    def argv(self) -> list[str]:
        """Arguments to pass to the administrative tool."""
        if self.database is None:
            return list(self.args)
        return ["-d", self.database, *self.args]


class ProvisioningPlan(BaseModel):
    """Ordered, immutable sequence of ProvisioningCommand.

    Attributes:
        commands: Commands in execution order
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    commands: tuple[ProvisioningCommand, ...] = Field(
        default_factory=tuple, description="Commands in order"
    )

    def __iter__(self) -> Iterator[ProvisioningCommand]:  # type: ignore[override]
        return iter(self.commands)

    def __len__(self) -> int:
        return len(self.commands)

    @property
    def databases(self) -> list[str]:
        """Databases touched by the plan, in first-use order."""
        seen: list[str] = []
        for command in self.commands:
            if command.database and command.database not in seen:
                seen.append(command.database)
        return seen


def _database_commands() -> list[ProvisioningCommand]:
    commands = [
        ProvisioningCommand.statement(
            f"DROP DATABASE IF EXISTS {name};", description=f"drop database {name}"
        )
        for name in (PRIMARY_DATABASE, SCHEMA_DATABASE)
    ]
    commands.extend(
        ProvisioningCommand.statement(
            f"CREATE DATABASE {name} {CREATE_DATABASE_OPTIONS};",
            description=f"create database {name}",
        )
        for name in (PRIMARY_DATABASE, SCHEMA_DATABASE)
    )
    commands.append(
        ProvisioningCommand.statement(
            SQL_TABLES, database=PRIMARY_DATABASE, description="create fixture tables"
        )
    )
    return commands


def _postgresql_commands() -> list[ProvisioningCommand]:
    return [
        ProvisioningCommand.statement(
            SQL_ROLES, database=PRIMARY_DATABASE, description="create fixture roles"
        ),
        ProvisioningCommand.statement(
            SQL_TYPES, database=PRIMARY_DATABASE, description="create fixture types"
        ),
        ProvisioningCommand.statement(
            SQL_DOMAINS, database=PRIMARY_DATABASE, description="create fixture domains"
        ),
        ProvisioningCommand.statement(
            SQL_SCHEMA, database=SCHEMA_DATABASE, description="create fixture schema"
        ),
    ]


def _extension_commands(environment: TargetEnvironment) -> list[ProvisioningCommand]:
    version = environment.pg_version

    if version is None or version >= EXTENSION_MIN_VERSION:
        return [
            ProvisioningCommand.statement(
                f"CREATE EXTENSION IF NOT EXISTS hstore WITH SCHEMA {FIXTURE_SCHEMA};",
                database=SCHEMA_DATABASE,
                description="install hstore into fixture schema",
            ),
            ProvisioningCommand.statement(
                "CREATE EXTENSION IF NOT EXISTS hstore;",
                database=PRIMARY_DATABASE,
                description="install hstore",
            ),
        ]

    if version == HSTORE_SCRIPT_VERSION:
        if not environment.install_path:
            raise ConfigurationError(
                "Server install prefix is required to load hstore on 9.0",
                variable="PGPATH",
                value=environment.install_path,
            )
        return [
            ProvisioningCommand.script(
                posixpath.join(environment.install_path, HSTORE_SCRIPT),
                database=PRIMARY_DATABASE,
                description="load hstore script",
            )
        ]

    if version < HSTORE_SCRIPT_VERSION:
        return [
            ProvisioningCommand.statement(
                "CREATE LANGUAGE plpgsql;",
                database=PRIMARY_DATABASE,
                description="create plpgsql language",
            )
        ]

    raise AssertionError(f"No extension step defined for version {version}")


def build_plan(environment: TargetEnvironment) -> ProvisioningPlan:
    """Build the provisioning plan for a target environment.

    Args:
        environment: Probed target environment.

    Returns:
        ProvisioningPlan in execution order.

    Raises:
        ConfigurationError: If the 9.0 hstore script is needed but PGPATH is unset.
    """
    commands = _database_commands()

    if environment.flavor is Flavor.COCKROACHDB:
        pass
    elif environment.flavor is Flavor.POSTGRESQL:
        commands.extend(_postgresql_commands())
        commands.extend(_extension_commands(environment))
    else:
        raise AssertionError(f"Unhandled flavor: {environment.flavor!r}")

    plan = ProvisioningPlan(commands=tuple(commands))
    logger.info(
        "plan_built",
        flavor=environment.flavor.value,
        steps=len(plan),
        databases=plan.databases,
    )
    return plan
