"""Bootstrap output formatters.

Rich tables and JSON for the probed environment, the exclusion set and the
provisioning plan, plus the plain-text failure report printed before the
process exits.
"""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from pgtestenv_core.environment import TargetEnvironment
from pgtestenv_core.errors import PgTestEnvError, ProvisioningCommandFailed
from pgtestenv_core.matrix import ExclusionSet
from pgtestenv_core.planner import ProvisioningPlan

# Longest SQL excerpt shown per row in the plan table
SQL_PREVIEW_LENGTH = 60


def format_failure(err: ProvisioningCommandFailed) -> str:
    """Format a failed provisioning command for standard output.

    Contains the invocation, everything the tool printed and how to create
    the superuser.

    Args:
        err: The failure raised by the executor.

    Returns:
        Multi-line report.
    """
    return "\n".join(
        [
            "Command:",
            "",
            err.command_line,
            "",
            "error'd with:",
            "",
            err.output.rstrip("\n"),
            "",
            err.remediation,
            "",
        ]
    )


def format_error(err: PgTestEnvError) -> str:
    """Format any bootstrap error for standard output."""
    if isinstance(err, ProvisioningCommandFailed):
        return format_failure(err)
    return f"Test environment bootstrap failed:\n\n{err.user_message}\n"


def environment_to_dict(environment: TargetEnvironment) -> dict[str, Any]:
    """Convert TargetEnvironment to a dictionary for JSON serialization."""
    version = environment.version
    return {
        "flavor": environment.flavor.value,
        "version": str(version) if version else None,
        "pg_version": str(environment.pg_version) if environment.pg_version else None,
        "crdb_version": str(environment.crdb_version) if environment.crdb_version else None,
        "superuser": environment.superuser,
        "port": environment.port,
        "os_release": environment.platform.os_release,
        "unix_socket_path": environment.platform.unix_socket_path,
        "unix_socket_exists": environment.platform.unix_socket_exists,
        "install_path": environment.install_path,
        "psql": environment.psql,
    }


def plan_to_list(plan: ProvisioningPlan) -> list[dict[str, Any]]:
    """Convert ProvisioningPlan to a list of dictionaries for JSON serialization."""
    return [
        {
            "step": index,
            "description": command.description,
            "database": command.database,
            "argv": command.argv,
        }
        for index, command in enumerate(plan, start=1)
    ]


def format_probe_json(
    environment: TargetEnvironment,
    exclusions: ExclusionSet,
    pretty: bool = True,
) -> str:
    """Format the environment and its exclusion set as JSON."""
    data = {
        "environment": environment_to_dict(environment),
        "exclusions": exclusions.to_list(),
    }
    return json.dumps(data, indent=2 if pretty else None)


def format_plan_json(plan: ProvisioningPlan, pretty: bool = True) -> str:
    """Format the plan as JSON."""
    return json.dumps({"steps": plan_to_list(plan)}, indent=2 if pretty else None)


def _sql_preview(args: tuple[str, ...]) -> str:
    flag, payload = args[0], args[1]
    text = " ".join(payload.split())
    if len(text) > SQL_PREVIEW_LENGTH:
        text = text[: SQL_PREVIEW_LENGTH - 3] + "..."
    return f"{flag} {text}"


def print_probe_table(
    environment: TargetEnvironment,
    exclusions: ExclusionSet,
    console: Console | None = None,
) -> None:
    """Print the environment as a panel and the exclusion set as a table.

    Args:
        environment: Probed target environment
        exclusions: Computed exclusion set
        console: Optional Rich console (creates one if not provided)
    """
    if console is None:
        console = Console()

    info = environment_to_dict(environment)
    header = Text()
    header.append("Flavor: ", style="bold")
    header.append(f"{info['flavor']}\n")
    header.append("Version: ", style="bold")
    header.append(f"{info['version'] or 'unknown (assumed compatible)'}\n")
    header.append("Superuser: ", style="bold")
    header.append(f"{info['superuser']}\n")
    header.append("Unix socket: ", style="bold")
    socket_state = "present" if info["unix_socket_exists"] else "absent"
    header.append(f"{info['unix_socket_path']} ({socket_state}, release {info['os_release']})")
    console.print(Panel(header, title="[bold]Target Environment[/bold]"))

    table = Table(show_header=True, header_style="bold")
    table.add_column("Excluded marker", min_width=24)
    table.add_column("Version", justify="right", width=10)
    for tag in exclusions:
        table.add_row(
            Text(tag.kind.value, style="yellow"),
            str(tag.version) if tag.version else "-",
        )
    console.print(table)


def print_plan_table(plan: ProvisioningPlan, console: Console | None = None) -> None:
    """Print the provisioning plan as a Rich table.

    Args:
        plan: Plan to display
        console: Optional Rich console (creates one if not provided)
    """
    if console is None:
        console = Console()

    table = Table(show_header=True, header_style="bold", title="Provisioning Plan")
    table.add_column("#", justify="right", width=3)
    table.add_column("Step", min_width=24)
    table.add_column("Database", min_width=12)
    table.add_column("Arguments", min_width=30)

    for index, command in enumerate(plan, start=1):
        table.add_row(
            str(index),
            command.description or "-",
            Text(command.database or "(server)", style="dim" if not command.database else ""),
            _sql_preview(command.args),
        )
    console.print(table)


def print_failure(err: PgTestEnvError, console: Console | None = None) -> None:
    """Print a bootstrap failure without Rich markup.

    The report carries raw tool output, so markup and highlighting are off.
    """
    if console is None:
        console = Console()
    console.print(format_error(err), markup=False, highlight=False, soft_wrap=True)
