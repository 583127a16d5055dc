"""Capability matrix.

Maps (flavor, version, platform facts) to the set of exclusion tags for the
test runner. A test declaring a requirement whose tag is in the set is
skipped.

The function is pure: it only looks at the TargetEnvironment it is given.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from pgtestenv_core.environment import Flavor, PlatformFacts, TargetEnvironment
from pgtestenv_core.version import Version

logger = structlog.get_logger(__name__)

# Minimum versions a test may declare, per flavor
PG_VERSION_CANDIDATES: tuple[Version, ...] = (
    Version(8, 4),
    Version(9, 0),
    Version(9, 1),
    Version(9, 2),
    Version(9, 3),
    Version(9, 4),
    Version(9, 5),
)
CRDB_VERSION_CANDIDATES: tuple[Version, ...] = (Version(2, 1),)

# 8.4 delivers NOTIFY without a payload
NOTIFY_WITHOUT_PAYLOAD = Version(8, 4)

MIN_UNIX_SOCKET_RELEASE = 20


class ExclusionKind(str, Enum):
    """Capability dimension an exclusion tag belongs to.

    Values double as the pytest marker names tests use to declare the
    requirement.
    """

    MIN_PG_VERSION = "min_pg_version"
    MIN_CRDB_VERSION = "min_crdb_version"
    REQUIRES_NOTIFY_PAYLOAD = "requires_notify_payload"
    REQUIRES_UNIX_SOCKET = "unix"


@dataclass(frozen=True)
class ExclusionTag:
    """A single capability a test may require.

    Attributes:
        kind: Capability dimension.
        version: Minimum version for version kinds. None is the baseline
            tag of a version dimension.
    """

    kind: ExclusionKind
    version: Version | None = None

    def __str__(self) -> str:
        if self.version is None:
            return self.kind.value
        return f"{self.kind.value}={self.version}"


class ExclusionSet:
    """Immutable set of ExclusionTag, computed once per run.

    Example:
        >>> exclusions = ExclusionSet([ExclusionTag(ExclusionKind.REQUIRES_UNIX_SOCKET)])
        >>> exclusions.excludes(ExclusionKind.REQUIRES_UNIX_SOCKET)
        True
    """

    __slots__ = ("_tags",)

    def __init__(self, tags: Iterable[ExclusionTag] = ()) -> None:
        self._tags: frozenset[ExclusionTag] = frozenset(tags)

    def __contains__(self, tag: object) -> bool:
        return tag in self._tags

    def __iter__(self) -> Iterator[ExclusionTag]:
        return iter(self.sorted())

    def __len__(self) -> int:
        return len(self._tags)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ExclusionSet):
            return self._tags == other._tags
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._tags)

    def __repr__(self) -> str:
        return f"ExclusionSet([{', '.join(str(t) for t in self.sorted())}])"

    @property
    def tags(self) -> frozenset[ExclusionTag]:
        """The underlying frozen set of tags."""
        return self._tags

    def excludes(self, kind: ExclusionKind, version: Version | None = None) -> bool:
        """Whether a test requiring (kind, version) must be skipped."""
        return ExclusionTag(kind, version) in self._tags

    def sorted(self) -> list[ExclusionTag]:
        """Tags in a stable order: by kind, baseline first, then ascending version."""
        kinds = list(ExclusionKind)
        return sorted(
            self._tags,
            key=lambda t: (kinds.index(t.kind), t.version is not None, t.version or Version(0)),
        )

    def to_list(self) -> list[dict[str, Any]]:
        """JSON-friendly listing of the tags."""
        return [
            {"kind": t.kind.value, "version": str(t.version) if t.version else None}
            for t in self.sorted()
        ]


def _version_exclusions(
    kind: ExclusionKind,
    candidates: tuple[Version, ...],
    detected: Version | None,
) -> list[ExclusionTag]:
    # Unknown version: assume the server meets every minimum
    tags = [ExclusionTag(kind)]
    if detected is not None:
        tags.extend(ExclusionTag(kind, v) for v in candidates if v > detected)
    return tags


def unix_socket_supported(facts: PlatformFacts) -> bool:
    """Whether Unix-socket tests can reach the server on this host."""
    return facts.os_release >= MIN_UNIX_SOCKET_RELEASE and facts.unix_socket_exists


def compute_exclusions(environment: TargetEnvironment) -> ExclusionSet:
    """Compute the exclusion set for a target environment.

    Args:
        environment: Probed target environment.

    Returns:
        ExclusionSet of every capability the target lacks.

    Example:
        >>> env = TargetEnvironment(pg_version=Version(9, 3), ...)
        >>> ExclusionTag(ExclusionKind.MIN_PG_VERSION, Version(9, 4)) in compute_exclusions(env)
        True
    """
    tags: list[ExclusionTag] = []

    if environment.flavor is Flavor.POSTGRESQL:
        tags.extend(
            _version_exclusions(
                ExclusionKind.MIN_PG_VERSION, PG_VERSION_CANDIDATES, environment.pg_version
            )
        )
    elif environment.flavor is Flavor.COCKROACHDB:
        tags.extend(
            _version_exclusions(
                ExclusionKind.MIN_CRDB_VERSION, CRDB_VERSION_CANDIDATES, environment.crdb_version
            )
        )
    else:
        raise AssertionError(f"Unhandled flavor: {environment.flavor!r}")

    if environment.pg_version == NOTIFY_WITHOUT_PAYLOAD:
        tags.append(ExclusionTag(ExclusionKind.REQUIRES_NOTIFY_PAYLOAD))

    if not unix_socket_supported(environment.platform):
        tags.append(ExclusionTag(ExclusionKind.REQUIRES_UNIX_SOCKET))

    exclusions = ExclusionSet(tags)
    logger.info("exclusions_computed", count=len(exclusions), tags=[str(t) for t in exclusions])
    return exclusions
