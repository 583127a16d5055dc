"""CLI error handling for pgtestenv-cli.

Maps pgtestenv-core exceptions onto click exceptions with exit codes.
Every bootstrap failure is a setup-time fatal condition and exits with 1.
"""

from __future__ import annotations

import click
from rich.markup import escape

from pgtestenv_cli.output import error
from pgtestenv_core.errors import PgTestEnvError

EXIT_SUCCESS = 0
EXIT_FAILURE = 1  # Provisioning failure, bad flavor/version, malformed setting
EXIT_USAGE = 2  # Click usage error


class CLIError(click.ClickException):
    """CLI-specific exception with exit code support.

    Attributes:
        message: User-facing error message.
        exit_code: Exit code for the CLI (default: 1).
    """

    def __init__(self, message: str, exit_code: int = EXIT_FAILURE) -> None:
        """Initialize CLIError.

        Args:
            message: User-facing error message.
            exit_code: Exit code for the CLI.
        """
        super().__init__(message)
        self.exit_code = exit_code

    def show(self, file: object = None) -> None:
        """Display the error message using Rich formatting."""
        # Messages quote user-supplied values; keep them literal and on one line
        error(escape(self.format_message()), soft_wrap=True)


def from_core_error(err: PgTestEnvError) -> CLIError:
    """Wrap a pgtestenv-core error for display by click."""
    return CLIError(err.user_message, exit_code=EXIT_FAILURE)
