"""pgtestenv provision command - Recreate the test fixtures."""

from __future__ import annotations

import click

from pgtestenv_cli.output import get_console, info, success


@click.command()
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=False,
    help="Report every step and a summary on success",
)
def provision(verbose: bool) -> None:
    """Run the provisioning commands against the target.

    Drops and recreates the fixture databases and objects through psql,
    in order. The first failing command stops the run: its arguments,
    output and a remediation hint are printed and the exit code is 1.

    Examples:

        pgtestenv provision

        PGSUPERUSER=admin pgtestenv provision -v
    """
    from pgtestenv_core.bootstrap import bootstrap, exit_with_failure
    from pgtestenv_core.errors import PgTestEnvError

    try:
        result = bootstrap(provision=True)
    except PgTestEnvError as e:
        exit_with_failure(e, console=get_console())

    if verbose and result.provisioning is not None:
        for index, step in enumerate(result.provisioning.steps, start=1):
            info(f"  {index:>2}. {step.command.description} ({step.duration_ms}ms)")
        success(
            f"Provisioned {result.provisioning.step_count} steps "
            f"in {result.provisioning.total_duration_ms}ms"
        )
