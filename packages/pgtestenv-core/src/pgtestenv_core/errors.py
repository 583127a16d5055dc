"""Custom exception hierarchy for pgtestenv-core.

This module defines the exception classes used throughout pgtestenv:
- PgTestEnvError: Base exception for all pgtestenv errors
- ConfigurationError: Raised when an environment variable is malformed
- InvalidVersionFormat: Raised when a version hint cannot be parsed
- UnsupportedFlavor: Raised when the flavor hint names an unknown product
- ProvisioningCommandFailed: Raised when the administrative tool exits non-zero

None of these are recoverable: every one of them aborts the bootstrap
before any test runs.

User-facing messages are safe to print; technical details are logged
internally via structlog.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pgtestenv_core.planner import ProvisioningCommand

logger = structlog.get_logger(__name__)


class PgTestEnvError(Exception):
    """Base exception for pgtestenv.

    Args:
        user_message: Message to display to the user.
        internal_details: Optional technical details. Logged, never printed.

    Example:
        >>> raise PgTestEnvError(
        ...     "Bootstrap failed",
        ...     internal_details="psql not found on PATH"
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        """Initialize PgTestEnvError with user message and optional internal details.

        Args:
            user_message: Message to display to the user.
            internal_details: Technical details for internal logging only.
        """
        super().__init__(user_message)
        self.user_message = user_message

        if internal_details:
            logger.error(
                "pgtestenv_error",
                error_type=self.__class__.__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


class ConfigurationError(PgTestEnvError):
    """Raised when an environment-supplied setting is malformed.

    Attributes:
        variable: Name of the environment variable at fault (if known).
        value: The offending value (if known).

    Example:
        >>> raise ConfigurationError("Invalid port", variable="PGPORT", value="abc")
        # User sees: "Invalid port (PGPORT='abc')"
    """

    def __init__(
        self,
        user_message: str,
        *,
        variable: str | None = None,
        value: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        """Initialize ConfigurationError with context.

        Args:
            user_message: Message to display to the user.
            variable: Environment variable name (optional).
            value: Offending value (optional).
            internal_details: Technical details for internal logging only.
        """
        if variable is not None:
            full_message = f"{user_message} ({variable}={value!r})"
        else:
            full_message = user_message

        super().__init__(full_message, internal_details=internal_details)

        self.variable = variable
        self.value = value


class InvalidVersionFormat(ConfigurationError):
    """Raised when a version string is not "<major>" or "<major>.<minor>[...]".

    Example:
        >>> raise InvalidVersionFormat("9.x", variable="PGVERSION")
        # User sees: "Invalid version format: expected <major>[.<minor>] (PGVERSION='9.x')"
    """

    def __init__(self, value: str, *, variable: str | None = None) -> None:
        """Initialize InvalidVersionFormat.

        Args:
            value: The version string that failed to parse.
            variable: Environment variable it came from (optional).
        """
        message = "Invalid version format: expected <major>[.<minor>]"
        if variable is None:
            message = f"{message}, got {value!r}"
        super().__init__(message, variable=variable, value=value)


class UnsupportedFlavor(ConfigurationError):
    """Raised when the flavor hint is not a supported database product.

    Attributes:
        supported: The accepted flavor values.

    Example:
        >>> raise UnsupportedFlavor("mysql", supported=["postgresql", "cockroachdb"])
        # User sees: "Unsupported flavor. Supported: postgresql, cockroachdb (PGFLAVOR='mysql')"
    """

    def __init__(
        self,
        value: str,
        *,
        supported: list[str],
        variable: str = "PGFLAVOR",
    ) -> None:
        """Initialize UnsupportedFlavor.

        Args:
            value: The rejected flavor string.
            supported: Accepted flavor values, for an actionable message.
            variable: Environment variable it came from.
        """
        super().__init__(
            f"Unsupported flavor. Supported: {', '.join(supported)}",
            variable=variable,
            value=value,
        )
        self.supported = supported


class ProvisioningCommandFailed(PgTestEnvError):
    """Raised when the administrative tool returns a non-zero exit status.

    Attributes:
        command: The ProvisioningCommand that failed.
        tool: Executable that was invoked (e.g. "psql").
        returncode: Exit status of the tool.
        output: Combined stdout/stderr captured from the tool.
        superuser: Superuser identity the tool ran as.
    """

    def __init__(
        self,
        command: ProvisioningCommand,
        *,
        tool: str,
        returncode: int,
        output: str,
        superuser: str,
    ) -> None:
        """Initialize ProvisioningCommandFailed.

        Args:
            command: The ProvisioningCommand that failed.
            tool: Executable that was invoked.
            returncode: Exit status of the tool.
            output: Combined stdout/stderr captured from the tool.
            superuser: Superuser identity the tool ran as.
        """
        super().__init__(
            f"Provisioning step failed: {command.description} (exit status {returncode})",
            internal_details=output,
        )
        self.command = command
        self.tool = tool
        self.returncode = returncode
        self.output = output
        self.superuser = superuser

    @property
    def command_line(self) -> str:
        """The failing invocation as it would be typed in a shell."""
        return " ".join([self.tool, *self.command.argv])

    @property
    def remediation(self) -> str:
        """Guidance for the most common cause: a missing superuser."""
        return (
            f'Please verify the user "{self.superuser}" exists and it has permissions to\n'
            "create databases and users. If not, you can create a new user with:\n"
            "\n"
            f"$ createuser {self.superuser} -s --no-password"
        )
