"""pgtestenv probe command - Show the target environment and its exclusions."""

from __future__ import annotations

import click

from pgtestenv_cli.errors import from_core_error
from pgtestenv_cli.output import get_console, warning, write_raw
from pgtestenv_core.errors import PgTestEnvError


@click.command()
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format [default: table]",
)
def probe(output_format: str) -> None:
    """Show the target environment and the excluded test markers.

    Reads PGFLAVOR, PGVERSION, CDBVERSION, PG_SOCKET_DIR, PGPORT and
    PGSUPERUSER, checks the server socket, and lists every marker whose
    tests will be skipped. Nothing is executed against the server.

    Examples:

        pgtestenv probe

        PGVERSION=9.3 pgtestenv probe --format json
    """
    from pgtestenv_core.environment import probe_environment
    from pgtestenv_core.matrix import MIN_UNIX_SOCKET_RELEASE, compute_exclusions
    from pgtestenv_core.output import format_probe_json, print_probe_table

    try:
        environment = probe_environment()
        exclusions = compute_exclusions(environment)
    except PgTestEnvError as e:
        raise from_core_error(e) from e

    if output_format == "json":
        write_raw(format_probe_json(environment, exclusions))
    else:
        print_probe_table(environment, exclusions, console=get_console())
        facts = environment.platform
        if facts.unix_socket_exists and facts.os_release < MIN_UNIX_SOCKET_RELEASE:
            warning(
                f"Socket found but host release {facts.os_release} is below "
                f"{MIN_UNIX_SOCKET_RELEASE}, so unix tests are skipped. "
                "Set PGTESTENV_OS_RELEASE to override.",
                soft_wrap=True,
            )
