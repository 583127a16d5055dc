"""Test environment bootstrap.

Single entry point that wires the pipeline:

    probe_environment -> compute_exclusions / build_plan -> ProvisioningExecutor

bootstrap() raises on any failure; bootstrap_or_exit() prints the
diagnostics to standard output and terminates the process with exit code 1,
so no test ever runs against a half-prepared target.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, NoReturn

from pydantic import BaseModel, ConfigDict, Field
from rich.console import Console
import structlog

from pgtestenv_core.environment import TargetEnvironment, probe_environment
from pgtestenv_core.errors import PgTestEnvError
from pgtestenv_core.executor import CommandRunner, ProvisioningExecutor, ProvisioningResult
from pgtestenv_core.matrix import ExclusionSet, compute_exclusions
from pgtestenv_core.output import print_failure
from pgtestenv_core.planner import ProvisioningPlan, build_plan

if TYPE_CHECKING:
    from pgtestenv_core.config import ProbeSettings

logger = structlog.get_logger(__name__)

EXIT_FAILURE = 1


class BootstrapResult(BaseModel):
    """Everything computed by one bootstrap.

    Attributes:
        environment: Probed target environment
        exclusions: Exclusion set for the test runner
        plan: Provisioning plan, None when provisioning was not requested
        provisioning: Executor result, None when provisioning was not requested
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    environment: TargetEnvironment = Field(..., description="Target environment")
    exclusions: ExclusionSet = Field(..., description="Exclusion set")
    plan: ProvisioningPlan | None = Field(default=None, description="Provisioning plan")
    provisioning: ProvisioningResult | None = Field(default=None, description="Run result")


def bootstrap(
    settings: ProbeSettings | None = None,
    runner: CommandRunner | None = None,
    provision: bool = True,
) -> BootstrapResult:
    """Probe the target and compute exclusions, then plan and provision.

    Args:
        settings: Pre-loaded settings, read from the environment if omitted.
        runner: Tool runner for the executor (tests inject a fake).
        provision: Plan and execute. False only probes and computes exclusions,
            so plan-time requirements such as PGPATH are not checked.

    Returns:
        BootstrapResult.

    Raises:
        ConfigurationError: If the environment is malformed (includes
            InvalidVersionFormat and UnsupportedFlavor).
        ProvisioningCommandFailed: If a provisioning command fails.
    """
    environment = probe_environment(settings)
    exclusions = compute_exclusions(environment)
    plan = None
    provisioning = None
    if provision:
        plan = build_plan(environment)
        provisioning = ProvisioningExecutor(environment, runner=runner).run(plan)

    return BootstrapResult(
        environment=environment,
        exclusions=exclusions,
        plan=plan,
        provisioning=provisioning,
    )


def exit_with_failure(err: PgTestEnvError, console: Console | None = None) -> NoReturn:
    """Print the diagnostics for err and terminate with exit code 1."""
    logger.error("bootstrap_failed", error_type=type(err).__name__, error=err.user_message)
    print_failure(err, console=console)
    sys.exit(EXIT_FAILURE)


def bootstrap_or_exit(
    settings: ProbeSettings | None = None,
    runner: CommandRunner | None = None,
    provision: bool = True,
    console: Console | None = None,
) -> BootstrapResult:
    """Run bootstrap(), terminating the process on any failure.

    Success prints nothing.

    Args:
        settings: Pre-loaded settings, read from the environment if omitted.
        runner: Tool runner for the executor.
        provision: Execute the plan.
        console: Console for the diagnostics (defaults to standard output).

    Returns:
        BootstrapResult on success.

    Raises:
        SystemExit: With code 1 on any bootstrap failure.
    """
    try:
        return bootstrap(settings=settings, runner=runner, provision=provision)
    except PgTestEnvError as err:
        exit_with_failure(err, console=console)
