"""pgtestenv plan command - List the provisioning commands."""

from __future__ import annotations

import click

from pgtestenv_cli.errors import from_core_error
from pgtestenv_cli.output import get_console, write_raw
from pgtestenv_core.errors import PgTestEnvError


@click.command()
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format [default: table]",
)
def plan(output_format: str) -> None:
    """List the provisioning commands without running them.

    The plan depends on PGFLAVOR and PGVERSION: CockroachDB stops after the
    databases and tables, PostgreSQL adds roles, types, domains, a schema
    and the hstore step for its version.

    Examples:

        pgtestenv plan

        PGFLAVOR=cockroachdb pgtestenv plan --format json
    """
    from pgtestenv_core.environment import probe_environment
    from pgtestenv_core.output import format_plan_json, print_plan_table
    from pgtestenv_core.planner import build_plan

    try:
        provisioning_plan = build_plan(probe_environment())
    except PgTestEnvError as e:
        raise from_core_error(e) from e

    if output_format == "json":
        write_raw(format_plan_json(provisioning_plan))
    else:
        print_plan_table(provisioning_plan, console=get_console())
