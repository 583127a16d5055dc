"""pytest plugin: requirement markers and exclusion-based skipping.

Markers:
    min_pg_version(version): Test needs PostgreSQL >= version
    min_crdb_version(version): Test needs CockroachDB >= version
    requires_notify_payload: Test needs NOTIFY with a payload
    unix: Test connects over the server's Unix domain socket

Usage:
    @pytest.mark.min_pg_version("9.4")
    def test_jsonb_roundtrip(pg_connection):
        ...

Run the bootstrap before collection (probe, exclusions, provisioning):
    pytest --pg-bootstrap                     # provision, then skip excluded tests
    pytest --pg-bootstrap --pg-no-provision   # only skip excluded tests

Without --pg-bootstrap the plugin only registers the markers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import structlog

from pgtestenv_core.bootstrap import BootstrapResult, bootstrap_or_exit
from pgtestenv_core.environment import TargetEnvironment
from pgtestenv_core.errors import InvalidVersionFormat
from pgtestenv_core.matrix import ExclusionKind, ExclusionSet, ExclusionTag
from pgtestenv_core.observability import LOG_LEVELS, configure_logging
from pgtestenv_core.version import parse_version

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = structlog.get_logger(__name__)

bootstrap_key = pytest.StashKey[BootstrapResult]()

MARKERS = {
    ExclusionKind.MIN_PG_VERSION: "min_pg_version(version): test needs PostgreSQL >= version",
    ExclusionKind.MIN_CRDB_VERSION: "min_crdb_version(version): test needs CockroachDB >= version",
    ExclusionKind.REQUIRES_NOTIFY_PAYLOAD: "requires_notify_payload: test needs NOTIFY payloads",
    ExclusionKind.REQUIRES_UNIX_SOCKET: "unix: test connects over the server Unix socket",
}

_VERSION_KINDS = (ExclusionKind.MIN_PG_VERSION, ExclusionKind.MIN_CRDB_VERSION)


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("pgtestenv", "database test environment")
    group.addoption(
        "--pg-bootstrap",
        action="store_true",
        default=False,
        help="Probe the target database, provision fixtures and skip unsupported tests.",
    )
    group.addoption(
        "--pg-no-provision",
        action="store_true",
        default=False,
        help="With --pg-bootstrap: compute exclusions but do not run provisioning.",
    )
    group.addoption(
        "--pg-log-level",
        default="WARNING",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Log level for the bootstrap [default: WARNING].",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register markers and, when requested, run the bootstrap once."""
    for description in MARKERS.values():
        config.addinivalue_line("markers", description)

    if not config.getoption("pg_bootstrap", default=False):
        return
    # xdist workers inherit the controller's bootstrap
    if hasattr(config, "workerinput"):
        result = bootstrap_or_exit(provision=False)
    else:
        configure_logging(log_level=config.getoption("pg_log_level"))
        result = bootstrap_or_exit(provision=not config.getoption("pg_no_provision"))
    config.stash[bootstrap_key] = result


def marker_tag(mark: pytest.Mark) -> ExclusionTag | None:
    """Convert a requirement marker into the ExclusionTag it is matched by.

    Version markers without an argument map to the baseline tag of their
    dimension. Markers that are not requirement markers return None.

    Raises:
        InvalidVersionFormat: If a version marker argument is malformed.
    """
    try:
        kind = ExclusionKind(mark.name)
    except ValueError:
        return None

    if kind not in _VERSION_KINDS:
        return ExclusionTag(kind)

    raw = mark.args[0] if mark.args else mark.kwargs.get("version")
    if raw is None:
        return ExclusionTag(kind)
    return ExclusionTag(kind, parse_version(str(raw)))


def excluded_tags(item: pytest.Item, exclusions: ExclusionSet) -> list[ExclusionTag]:
    """Requirement tags of item that are in the exclusion set."""
    tags = (marker_tag(mark) for mark in item.iter_markers())
    return [tag for tag in tags if tag is not None and tag in exclusions]


def apply_exclusions(items: Iterable[pytest.Item], exclusions: ExclusionSet) -> int:
    """Add a skip marker to every item whose requirement is excluded.

    Returns:
        Number of items marked as skipped.
    """
    skipped = 0
    for item in items:
        tags = excluded_tags(item, exclusions)
        if tags:
            reason = "excluded by target environment: " + ", ".join(str(t) for t in tags)
            item.add_marker(pytest.mark.skip(reason=reason))
            skipped += 1
    return skipped


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    result = config.stash.get(bootstrap_key, None)
    if result is None:
        return
    try:
        skipped = apply_exclusions(items, result.exclusions)
    except InvalidVersionFormat as e:
        raise pytest.UsageError(f"Invalid requirement marker: {e.user_message}") from e
    logger.info("exclusions_applied", skipped=skipped, collected=len(items))


def pytest_report_header(config: pytest.Config) -> list[str] | None:
    result = config.stash.get(bootstrap_key, None)
    if result is None:
        return None
    environment = result.environment
    version = environment.version
    return [
        f"pgtestenv: {environment.flavor.value} "
        f"{version if version else 'unknown version'} as {environment.superuser}",
        "pgtestenv exclusions: " + (", ".join(str(t) for t in result.exclusions) or "none"),
    ]


@pytest.fixture(scope="session")
def pg_environment(request: pytest.FixtureRequest) -> TargetEnvironment:
    """TargetEnvironment computed by --pg-bootstrap (skips the test otherwise)."""
    result = request.config.stash.get(bootstrap_key, None)
    if result is None:
        pytest.skip("target database not bootstrapped (run with --pg-bootstrap)")
    return result.environment


@pytest.fixture(scope="session")
def pg_exclusions(request: pytest.FixtureRequest) -> ExclusionSet:
    """ExclusionSet computed by --pg-bootstrap (empty when not bootstrapped)."""
    result = request.config.stash.get(bootstrap_key, None)
    return result.exclusions if result is not None else ExclusionSet()
