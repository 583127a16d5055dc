"""Shared test fixtures for pgtestenv-cli tests.

Provides a CliRunner and a scrubbed target environment so commands never
read the developer's PG* variables or touch a real server socket.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
import os
from pathlib import Path
import sys
from unittest.mock import patch

from click.testing import CliRunner
import pytest
import structlog

TARGET_VARIABLES = (
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
    """Reset structlog before each test; CLI invocations reconfigure it."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click test runner.

    Returns:
        CliRunner instance for testing CLI commands.
    """
    return CliRunner()


@pytest.fixture
def target_env(tmp_path: Path) -> Generator[Callable[..., None], None, None]:
    """Scrub target variables, point the socket at tmp_path, return a setter.

    Example:
        def test_x(cli_runner, target_env):
            target_env(PGVERSION="9.3")
            cli_runner.invoke(cli, ["probe"])
    """
    scrubbed = {k: v for k, v in os.environ.items() if k not in TARGET_VARIABLES}
    scrubbed.update(PG_SOCKET_DIR=str(tmp_path), PGTESTENV_OS_RELEASE="22")
    with patch.dict(os.environ, scrubbed, clear=True):

        def _set(**values: str) -> None:
            os.environ.update(values)

        yield _set
