"""Provisioning executor.

Runs a ProvisioningPlan through the administrative tool, one blocking
subprocess per command, in plan order. The first non-zero exit status
raises ProvisioningCommandFailed and nothing after it runs.

There is no retry and no timeout: a hung tool hangs the bootstrap.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
import os
import subprocess
import time

from pydantic import BaseModel, ConfigDict, Field
import structlog

from pgtestenv_core.environment import TargetEnvironment
from pgtestenv_core.errors import ProvisioningCommandFailed
from pgtestenv_core.planner import ProvisioningCommand, ProvisioningPlan

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CommandOutcome:
    """Exit status and combined stdout/stderr of one tool invocation."""

    returncode: int
    output: str


CommandRunner = Callable[[list[str], Mapping[str, str]], CommandOutcome]
"""Signature of a tool runner: (full argv, environment) -> CommandOutcome."""


def run_subprocess(argv: list[str], env: Mapping[str, str]) -> CommandOutcome:
    """Run argv to completion with stderr merged into stdout.

    Args:
        argv: Executable followed by its arguments.
        env: Complete environment for the child process.

    Returns:
        CommandOutcome with exit status and captured output. Output that
        is not valid UTF-8 is decoded with replacement characters. A missing
        executable is reported as exit status 127 and one that cannot be
        started as 126, as a shell would.
    """
    try:
        completed = subprocess.run(  # noqa: S603 - argv is built from the plan, no shell
            argv,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            encoding="utf-8",
            errors="replace",
            env=dict(env),
            check=False,
        )
    except FileNotFoundError:
        return CommandOutcome(returncode=127, output=f"{argv[0]}: command not found\n")
    except OSError as exc:
        return CommandOutcome(returncode=126, output=f"{argv[0]}: {exc.strerror or exc}\n")
    return CommandOutcome(returncode=completed.returncode, output=completed.stdout or "")


class StepResult(BaseModel):
    """Result of one successfully executed ProvisioningCommand.

    Attributes:
        command: The command that ran
        returncode: Tool exit status
        output: Combined stdout/stderr
        duration_ms: Wall time in milliseconds
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    command: ProvisioningCommand = Field(..., description="Executed command")
    returncode: int = Field(default=0, description="Exit status")
    output: str = Field(default="", description="Captured output")
    duration_ms: int = Field(default=0, ge=0, description="Duration in milliseconds")


class ProvisioningResult(BaseModel):
    """Aggregated result of a completed provisioning run.

    Attributes:
        steps: Per-command results in execution order
        started_at: When provisioning started
        finished_at: When provisioning finished
        total_duration_ms: Total duration in milliseconds
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    steps: tuple[StepResult, ...] = Field(default_factory=tuple, description="Step results")
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="Start time"
    )
    finished_at: datetime | None = Field(default=None, description="End time")
    total_duration_ms: int = Field(default=0, ge=0, description="Total duration")

    @property
    def step_count(self) -> int:
        """Number of commands that ran."""
        return len(self.steps)


class ProvisioningExecutor:
    """Runs a ProvisioningPlan against the target, stopping at the first failure.

    Attributes:
        environment: Probed target environment
        runner: Callable that executes one tool invocation

    Example:
        >>> executor = ProvisioningExecutor(environment)
        >>> result = executor.run(build_plan(environment))
        >>> result.step_count
        11
    """

    def __init__(
        self,
        environment: TargetEnvironment,
        runner: CommandRunner | None = None,
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            environment: Probed target environment (tool path, superuser).
            runner: Tool runner, defaults to a blocking subprocess.
            base_env: Environment to extend for the tool, defaults to os.environ.
        """
        self.environment = environment
        self.runner = runner or run_subprocess
        self._base_env = base_env
        self._log = logger.bind(component="provisioning_executor")

    def subprocess_env(self) -> dict[str, str]:
        """Environment for the tool: the base environment plus PGUSER.

        An explicit PGUSER already present in the base environment wins.
        """
        env = dict(os.environ if self._base_env is None else self._base_env)
        env.setdefault("PGUSER", self.environment.superuser)
        return env

    def run(self, plan: ProvisioningPlan) -> ProvisioningResult:
        """Execute every command of the plan in order.

        Args:
            plan: Plan to execute.

        Returns:
            ProvisioningResult when every command exited 0.

        Raises:
            ProvisioningCommandFailed: On the first non-zero exit status.
        """
        start_time = time.monotonic()
        started_at = datetime.now(UTC)
        env = self.subprocess_env()
        steps: list[StepResult] = []

        self._log.info(
            "provisioning_started",
            steps=len(plan),
            tool=self.environment.psql,
            user=env["PGUSER"],
        )

        for index, command in enumerate(plan, start=1):
            steps.append(self._run_command(index, command, env))

        total_duration_ms = int((time.monotonic() - start_time) * 1000)
        self._log.info(
            "provisioning_completed",
            steps=len(steps),
            total_duration_ms=total_duration_ms,
        )

        return ProvisioningResult(
            steps=tuple(steps),
            started_at=started_at,
            finished_at=datetime.now(UTC),
            total_duration_ms=total_duration_ms,
        )

    def _run_command(
        self,
        index: int,
        command: ProvisioningCommand,
        env: Mapping[str, str],
    ) -> StepResult:
        argv = [self.environment.psql, *command.argv]
        step_start = time.monotonic()

        outcome = self.runner(argv, env)
        duration_ms = int((time.monotonic() - step_start) * 1000)

        if outcome.returncode != 0:
            self._log.error(
                "command_failed",
                step=index,
                description=command.description,
                returncode=outcome.returncode,
                duration_ms=duration_ms,
            )
            raise ProvisioningCommandFailed(
                command,
                tool=self.environment.psql,
                returncode=outcome.returncode,
                output=outcome.output,
                superuser=env.get("PGUSER", self.environment.superuser),
            )

        self._log.debug(
            "command_completed",
            step=index,
            description=command.description,
            duration_ms=duration_ms,
        )
        return StepResult(
            command=command,
            returncode=outcome.returncode,
            output=outcome.output,
            duration_ms=duration_ms,
        )


def run_plan(
    environment: TargetEnvironment,
    plan: ProvisioningPlan,
    runner: CommandRunner | None = None,
) -> ProvisioningResult:
    """Execute a plan with a default-configured executor.

    Convenience function that creates an executor and runs the plan.
    """
    return ProvisioningExecutor(environment, runner=runner).run(plan)
