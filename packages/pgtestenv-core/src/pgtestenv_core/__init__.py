"""pgtestenv-core: Capability negotiation and fixture bootstrap for database test suites.

This package provides:
- probe_environment: Read flavor, version and host facts into a TargetEnvironment
- compute_exclusions: Map a TargetEnvironment to the tests that must be skipped
- build_plan: Ordered administrative commands that recreate the fixtures
- ProvisioningExecutor: Run the plan through psql, stopping at the first failure
- bootstrap / bootstrap_or_exit: The whole pipeline as one call
"""

from __future__ import annotations

__version__ = "0.1.0"

from pgtestenv_core.bootstrap import BootstrapResult, bootstrap, bootstrap_or_exit
from pgtestenv_core.config import ProbeSettings, load_settings
from pgtestenv_core.environment import (
    Flavor,
    PlatformFacts,
    TargetEnvironment,
    probe_environment,
)
from pgtestenv_core.errors import (
    ConfigurationError,
    InvalidVersionFormat,
    PgTestEnvError,
    ProvisioningCommandFailed,
    UnsupportedFlavor,
)
from pgtestenv_core.executor import (
    CommandOutcome,
    ProvisioningExecutor,
    ProvisioningResult,
    StepResult,
    run_plan,
)
from pgtestenv_core.matrix import (
    ExclusionKind,
    ExclusionSet,
    ExclusionTag,
    compute_exclusions,
)
from pgtestenv_core.planner import (
    ProvisioningCommand,
    ProvisioningPlan,
    build_plan,
)
from pgtestenv_core.version import Version, parse_version

__all__ = [
    "__version__",
    # Pipeline
    "bootstrap",
    "bootstrap_or_exit",
    "BootstrapResult",
    # Environment
    "ProbeSettings",
    "load_settings",
    "Flavor",
    "PlatformFacts",
    "TargetEnvironment",
    "probe_environment",
    "Version",
    "parse_version",
    # Capability matrix
    "ExclusionKind",
    "ExclusionSet",
    "ExclusionTag",
    "compute_exclusions",
    # Provisioning
    "ProvisioningCommand",
    "ProvisioningPlan",
    "build_plan",
    "CommandOutcome",
    "ProvisioningExecutor",
    "ProvisioningResult",
    "StepResult",
    "run_plan",
    # Errors
    "PgTestEnvError",
    "ConfigurationError",
    "InvalidVersionFormat",
    "UnsupportedFlavor",
    "ProvisioningCommandFailed",
]
