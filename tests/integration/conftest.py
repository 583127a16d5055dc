"""Fixtures for the live-database integration suite."""

from __future__ import annotations

from testing.fixtures.database import pg_connection, pg_target, schema_connection  # noqa: F401
