"""CLI entry point for pgtestenv.

This module defines the main CLI group. Subcommands are imported lazily so
that `pgtestenv --help` does not pay for psycopg2/pydantic imports.
"""

from __future__ import annotations

import importlib
from typing import Any

import click
import rich_click as rclick

from pgtestenv_cli import __version__
from pgtestenv_cli.output import set_no_color

rclick.rich_click.TEXT_MARKUP = "markdown"
rclick.rich_click.SHOW_ARGUMENTS = True
rclick.rich_click.GROUP_ARGUMENTS_OPTIONS = True

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LazyGroup(rclick.RichGroup):
    """Click group that imports subcommands only when they are invoked.

    Attributes:
        lazy_subcommands: Mapping of command names to "module.attribute" paths.
    """

    def __init__(
        self,
        *args: Any,
        lazy_subcommands: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.lazy_subcommands: dict[str, str] = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        commands = set(super().list_commands(ctx))
        commands.update(self.lazy_subcommands.keys())
        return sorted(commands)

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        cmd = super().get_command(ctx, cmd_name)  # type: ignore[arg-type]
        if cmd is not None:
            return cmd

        if cmd_name not in self.lazy_subcommands:
            return None

        module_name, attr_name = self.lazy_subcommands[cmd_name].rsplit(".", 1)
        mod = importlib.import_module(module_name)
        return getattr(mod, attr_name)  # type: ignore[no-any-return]


LAZY_COMMANDS = {
    "probe": "pgtestenv_cli.commands.probe.probe",
    "plan": "pgtestenv_cli.commands.plan.plan",
    "provision": "pgtestenv_cli.commands.provision.provision",
}


def _configure_logging(ctx: click.Context, param: click.Parameter, value: str) -> str:
    from pgtestenv_core.observability import configure_logging

    configure_logging(log_level=value, json_format=False)
    return value


@click.command(cls=LazyGroup, lazy_subcommands=LAZY_COMMANDS)
@click.version_option(version=__version__, prog_name="pgtestenv")
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output.",
    is_eager=True,
    expose_value=False,
    callback=lambda ctx, param, value: set_no_color(value) if value else None,
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    help="Log level for structured logs on stderr [default: WARNING].",
    expose_value=False,
    callback=_configure_logging,
)
def cli() -> None:
    """pgtestenv - database test environment bootstrap.

    Decide which tests can run against the configured PostgreSQL or
    CockroachDB target, and recreate the fixtures they depend on.

    **Commands:**

    - `pgtestenv probe` - Show the target and the excluded test markers
    - `pgtestenv plan` - List the provisioning commands
    - `pgtestenv provision` - Run the provisioning commands

    The target is described by PGFLAVOR, PGVERSION, CDBVERSION, PGPORT,
    PG_SOCKET_DIR, PGSUPERUSER and PGPATH.
    """


if __name__ == "__main__":
    cli()
