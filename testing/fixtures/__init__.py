"""Shared test fixtures for pgtestenv integration tests.

Exports:
    Database fixtures:
        check_server_available: Whether the target accepts connections
        wait_for_condition: Poll until a condition holds
        pg_target: TargetEnvironment from --pg-bootstrap (skips otherwise)
        pg_connection: Connection to the primary fixture database
        schema_connection: Connection to the schema fixture database
"""

from __future__ import annotations

from testing.fixtures.database import (
    check_server_available,
    pg_connection,
    pg_target,
    schema_connection,
    wait_for_condition,
)

__all__ = [
    "check_server_available",
    "pg_connection",
    "pg_target",
    "schema_connection",
    "wait_for_condition",
]
