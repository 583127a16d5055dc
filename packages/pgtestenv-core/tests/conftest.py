"""Shared pytest fixtures for pgtestenv-core tests.

This module provides common fixtures used across unit tests: structlog
capture, a scrubbed process environment and TargetEnvironment factories.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
import os
import sys
from typing import Any
from unittest.mock import patch

import pytest
import structlog

from pgtestenv_core.environment import Flavor, PlatformFacts, TargetEnvironment
from pgtestenv_core.version import Version

# Every variable the probe reads; scrubbed so the developer's shell cannot leak in
PROBE_VARIABLES = (
    "PGVERSION",
    "CDBVERSION",
    "PGFLAVOR",
    "PG_SOCKET_DIR",
    "PGPORT",
    "PGSUPERUSER",
    "PGPATH",
    "PGTESTENV_OS_RELEASE",
    "PGTESTENV_PSQL",
    "PGUSER",
)


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture.

    Without this, structlog may use different processors depending on
    test execution order.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,  # Important for test isolation
    )


@pytest.fixture
def probe_env() -> Generator[Callable[..., None], None, None]:
    """Scrub the probe variables and return a setter for the test's own values.

    Example:
        def test_x(probe_env):
            probe_env(PGVERSION="9.3", PGFLAVOR="postgresql")
    """
    scrubbed = {k: v for k, v in os.environ.items() if k not in PROBE_VARIABLES}
    with patch.dict(os.environ, scrubbed, clear=True):

        def _set(**values: str) -> None:
            os.environ.update(values)

        yield _set


@pytest.fixture
def make_environment() -> Callable[..., TargetEnvironment]:
    """Factory for TargetEnvironment with sensible test defaults.

    Defaults: PostgreSQL, unknown version, release 22 with the socket present.
    """

    def _make(
        flavor: Flavor = Flavor.POSTGRESQL,
        pg_version: Version | None = None,
        crdb_version: Version | None = None,
        os_release: int = 22,
        unix_socket_exists: bool = True,
        **overrides: Any,
    ) -> TargetEnvironment:
        values: dict[str, Any] = {
            "flavor": flavor,
            "pg_version": pg_version,
            "crdb_version": crdb_version,
            "platform": PlatformFacts(
                os_release=os_release,
                unix_socket_path="/tmp/.s.PGSQL.5432",  # noqa: S108
                unix_socket_exists=unix_socket_exists,
            ),
            "superuser": flavor.default_superuser,
        }
        values.update(overrides)
        return TargetEnvironment(**values)

    return _make
