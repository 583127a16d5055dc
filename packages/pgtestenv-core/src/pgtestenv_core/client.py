"""Per-test database helpers.

Thin functions over a psycopg2 connection that normalize result shapes for
test assertions:

- OK for statements that return no result set
- the rows (list of tuples) for statements that do
- the psycopg2.Error instance when the server rejects the statement

Example:
    >>> conn = connect(environment)
    >>> query(conn, "SELECT 1")
    [(1,)]
    >>> query(conn, "CREATE TEMP TABLE t (a int)")
    'ok'
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

import psycopg2
from psycopg2 import sql

from pgtestenv_core.environment import TargetEnvironment
from pgtestenv_core.planner import PRIMARY_DATABASE

T = TypeVar("T")

OK = "ok"

Row = tuple[Any, ...]
QueryResult = str | list[Row] | psycopg2.Error

DEFAULT_STREAM_ROWS = 500


@dataclass(frozen=True)
class PreparedQuery:
    """A server-side prepared statement.

    Attributes:
        name: Statement name on the server.
        statement: SQL text with $1, $2, ... placeholders.
    """

    name: str
    statement: str


def connect(
    environment: TargetEnvironment,
    database: str = PRIMARY_DATABASE,
    *,
    host: str | None = None,
    **kwargs: Any,
) -> psycopg2.extensions.connection:
    """Open a connection to the target as the superuser.

    Connects through the Unix socket directory unless a host is given.

    Args:
        environment: Probed target environment.
        database: Database to connect to.
        host: TCP host, defaults to the socket directory.
        **kwargs: Extra keyword arguments for psycopg2.connect.

    Returns:
        Open psycopg2 connection.
    """
    params: dict[str, Any] = {
        "host": host or environment.socket_dir,
        "port": environment.port,
        "user": environment.superuser,
        "dbname": database,
    }
    params.update(kwargs)
    return psycopg2.connect(**params)


def _rows(cursor: Any) -> str | list[Row]:
    if cursor.description is None:
        return OK
    return list(cursor.fetchall())


def query(conn: Any, statement: str, params: Sequence[Any] | None = None) -> QueryResult:
    """Run a statement and normalize its result.

    Args:
        conn: psycopg2 connection.
        statement: SQL with %s placeholders.
        params: Parameters for the placeholders.

    Returns:
        OK, the rows, or the psycopg2.Error raised by the server.
    """
    try:
        with conn.cursor() as cursor:
            cursor.execute(statement, params)
            return _rows(cursor)
    except psycopg2.Error as e:
        return e


def prepare(conn: Any, name: str, statement: str) -> PreparedQuery | psycopg2.Error:
    """Prepare a statement on the server under name.

    Args:
        conn: psycopg2 connection.
        name: Statement name.
        statement: SQL with $1, $2, ... placeholders.

    Returns:
        PreparedQuery, or the psycopg2.Error raised by the server.
    """
    command = sql.SQL("PREPARE {} AS ").format(sql.Identifier(name)) + sql.SQL(statement)
    try:
        with conn.cursor() as cursor:
            cursor.execute(command)
    except psycopg2.Error as e:
        return e
    return PreparedQuery(name=name, statement=statement)


def execute(
    conn: Any,
    prepared: PreparedQuery,
    params: Sequence[Any] = (),
) -> QueryResult:
    """Execute a prepared statement and normalize its result.

    Returns:
        OK, the rows, or the psycopg2.Error raised by the server.
    """
    command = sql.SQL("EXECUTE {}").format(sql.Identifier(prepared.name))
    if params:
        command += sql.SQL(" ({})").format(sql.SQL(", ").join(sql.Placeholder() * len(params)))
    try:
        with conn.cursor() as cursor:
            cursor.execute(command, tuple(params) or None)
            return _rows(cursor)
    except psycopg2.Error as e:
        return e


def close(conn: Any, prepared: PreparedQuery) -> str | psycopg2.Error:
    """Deallocate a prepared statement.

    Returns:
        OK, or the psycopg2.Error raised by the server.
    """
    command = sql.SQL("DEALLOCATE {}").format(sql.Identifier(prepared.name))
    try:
        with conn.cursor() as cursor:
            cursor.execute(command)
    except psycopg2.Error as e:
        return e
    return OK


def stream(
    conn: Any,
    statement: str,
    params: Sequence[Any] | None = None,
    *,
    max_rows: int = DEFAULT_STREAM_ROWS,
    cursor_name: str = "pgtestenv_stream",
) -> Iterator[list[Row]]:
    """Stream the rows of a statement in chunks through a server-side cursor.

    Must run inside a transaction (see transaction()); the cursor is closed
    when the iterator is exhausted or discarded.

    Args:
        conn: psycopg2 connection.
        statement: SQL with %s placeholders.
        params: Parameters for the placeholders.
        max_rows: Rows fetched per chunk.
        cursor_name: Server-side cursor name.

    Yields:
        Lists of at most max_rows rows.
    """
    with conn.cursor(name=cursor_name) as cursor:
        cursor.itersize = max_rows
        cursor.execute(statement, params)
        while True:
            chunk = cursor.fetchmany(max_rows)
            if not chunk:
                return
            yield list(chunk)


def transaction(conn: Any, fun: Callable[[Any], T]) -> T:
    """Run fun(conn) in a transaction block.

    Commits when fun returns, rolls back and re-raises when it raises.
    """
    with conn:
        return fun(conn)
