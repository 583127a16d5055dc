"""Shared testing infrastructure for pgtestenv.

This package provides reusable fixtures for the repository-level
integration suite under tests/.

Modules:
    fixtures: Live-database connection fixtures built on the bootstrap result

Usage:
    In your conftest.py:
        from testing.fixtures.database import pg_connection, pg_target  # noqa: F401

Example:
    @pytest.mark.integration
    @pytest.mark.min_pg_version("9.1")
    def test_hstore(pg_connection):
        assert query(pg_connection, "SELECT 'a=>1'::hstore") != OK
"""

from __future__ import annotations
