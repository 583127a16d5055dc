"""Unit tests for the bootstrap entry points."""

from __future__ import annotations

from collections.abc import Mapping
from io import StringIO
import os
from pathlib import Path

import pytest
from rich.console import Console

from pgtestenv_core.bootstrap import (
    EXIT_FAILURE,
    BootstrapResult,
    bootstrap,
    bootstrap_or_exit,
    exit_with_failure,
)
from pgtestenv_core.config import ProbeSettings
from pgtestenv_core.environment import Flavor
from pgtestenv_core.errors import (
    ConfigurationError,
    InvalidVersionFormat,
    ProvisioningCommandFailed,
    UnsupportedFlavor,
)
from pgtestenv_core.executor import CommandOutcome
from pgtestenv_core.matrix import ExclusionKind, ExclusionTag
from pgtestenv_core.version import Version


class CountingRunner:
    """Runner double counting invocations, optionally failing one of them."""

    def __init__(self, fail_on: int | None = None, output: str = "") -> None:
        self.count = 0
        self.fail_on = fail_on
        self.output = output

    def __call__(self, argv: list[str], env: Mapping[str, str]) -> CommandOutcome:
        self.count += 1
        if self.count == self.fail_on:
            return CommandOutcome(returncode=1, output=self.output)
        return CommandOutcome(returncode=0, output="")


@pytest.fixture
def settings_for(tmp_path: Path):
    """Build ProbeSettings that never look at the developer's machine."""

    def _settings(**values) -> ProbeSettings:
        values.setdefault("socket_dir", str(tmp_path))
        values.setdefault("os_release", 22)
        return ProbeSettings(**values)

    return _settings


def buffer_console() -> tuple[Console, StringIO]:
    buffer = StringIO()
    return Console(file=buffer, width=200, color_system=None), buffer


class TestBootstrap:
    """Tests for bootstrap()."""

    def test_defaults_end_to_end(self, settings_for) -> None:
        """Unset flavor and version: PostgreSQL, optimistic exclusions, 11 steps run."""
        runner = CountingRunner()

        result = bootstrap(settings_for(), runner=runner)

        assert isinstance(result, BootstrapResult)
        assert result.environment.flavor is Flavor.POSTGRESQL
        assert [t for t in result.exclusions if t.kind is ExclusionKind.MIN_PG_VERSION] == [
            ExclusionTag(ExclusionKind.MIN_PG_VERSION)
        ]
        assert len(result.plan) == 11
        assert result.provisioning is not None
        assert result.provisioning.step_count == 11
        assert runner.count == 11

    def test_cockroachdb_end_to_end(self, settings_for) -> None:
        """CockroachDB 2.2 runs the five baseline steps only."""
        runner = CountingRunner()

        result = bootstrap(settings_for(flavor="cockroachdb", crdb_version="2.2"), runner=runner)

        assert result.environment.superuser == "root"
        assert len(result.plan) == 5
        assert runner.count == 5

    def test_without_provisioning(self, settings_for) -> None:
        """provision=False computes everything and runs nothing."""
        runner = CountingRunner()

        result = bootstrap(settings_for(pg_version="9.3"), runner=runner, provision=False)

        assert result.plan is None
        assert result.provisioning is None
        assert runner.count == 0
        assert ExclusionTag(ExclusionKind.MIN_PG_VERSION, Version(9, 4)) in result.exclusions

    def test_without_provisioning_skips_plan_requirements(self, settings_for) -> None:
        """9.0 without PGPATH still yields exclusions when nothing will run."""
        runner = CountingRunner()

        result = bootstrap(settings_for(pg_version="9.0"), runner=runner, provision=False)

        assert result.plan is None
        assert runner.count == 0
        assert ExclusionTag(ExclusionKind.MIN_PG_VERSION, Version(9, 1)) in result.exclusions

    def test_failure_propagates(self, settings_for) -> None:
        """A failing command raises and stops the run."""
        runner = CountingRunner(fail_on=3, output="ERROR: nope\n")

        with pytest.raises(ProvisioningCommandFailed):
            bootstrap(settings_for(), runner=runner)

        assert runner.count == 3

    @pytest.mark.parametrize(
        ("values", "error"),
        [
            ({"pg_version": "x.y"}, InvalidVersionFormat),
            ({"flavor": "oracle"}, UnsupportedFlavor),
            ({"pg_version": "9.0"}, ConfigurationError),
        ],
    )
    def test_configuration_errors_run_nothing(self, settings_for, values, error) -> None:
        """Probe and plan errors abort before any command runs."""
        runner = CountingRunner()

        with pytest.raises(error):
            bootstrap(settings_for(**values), runner=runner)

        assert runner.count == 0


class TestBootstrapOrExit:
    """Tests for bootstrap_or_exit() and exit_with_failure()."""

    def test_success_prints_nothing(self, settings_for) -> None:
        """A clean run returns the result silently."""
        console, buffer = buffer_console()

        result = bootstrap_or_exit(settings_for(), runner=CountingRunner(), console=console)

        assert result.provisioning is not None
        assert buffer.getvalue() == ""

    def test_failure_exits_with_status_1(self, settings_for) -> None:
        """A failing command terminates with exit code 1 and the diagnostics."""
        console, buffer = buffer_console()
        runner = CountingRunner(fail_on=1, output='FATAL:  role "postgres" does not exist\n')

        with pytest.raises(SystemExit) as exc_info:
            bootstrap_or_exit(settings_for(), runner=runner, console=console)

        assert exc_info.value.code == EXIT_FAILURE == 1
        out = buffer.getvalue()
        assert out.startswith("Command:\n\npsql -c DROP DATABASE IF EXISTS pgtestenv_test;\n")
        assert "error'd with:" in out
        assert 'FATAL:  role "postgres" does not exist' in out
        assert "$ createuser postgres -s --no-password" in out
        assert runner.count == 1

    def test_configuration_error_exits(self, settings_for) -> None:
        """Configuration errors also exit with status 1."""
        console, buffer = buffer_console()

        with pytest.raises(SystemExit) as exc_info:
            bootstrap_or_exit(settings_for(flavor="mysql"), console=console)

        assert exc_info.value.code == 1
        assert "Unsupported flavor" in buffer.getvalue()

    @pytest.mark.skipif(os.name == "nt", reason="needs a POSIX shell script")
    def test_undecodable_output_exits_with_status_1(self, settings_for, tmp_path: Path) -> None:
        """Tool output that is not UTF-8 still ends in the diagnostics and exit code 1."""
        psql = tmp_path / "psql"
        psql.write_bytes(b"#!/bin/sh\nprintf 'FEHLER: \\374ber\\n'\nexit 2\n")
        psql.chmod(0o755)
        console, buffer = buffer_console()

        with pytest.raises(SystemExit) as exc_info:
            bootstrap_or_exit(settings_for(psql=str(psql)), console=console)

        assert exc_info.value.code == 1
        assert "FEHLER: \ufffdber" in buffer.getvalue()

    def test_exit_with_failure_writes_stdout(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Without a console the report goes to standard output."""
        with pytest.raises(SystemExit):
            exit_with_failure(ConfigurationError("Bad setting", variable="PGPORT", value="x"))

        captured = capsys.readouterr()
        assert "Test environment bootstrap failed:" in captured.out
        assert "Bad setting (PGPORT='x')" in captured.out
