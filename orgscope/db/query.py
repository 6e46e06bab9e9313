"""
SQLAlchemy implementation of the scope engine's `QueryRunner`.

Each call checks out its own pooled connection, so independent reads issued
with `asyncio.gather` run concurrently.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncEngine

from orgscope.scope_engine.errors import MissingTableError

logger = logging.getLogger(__name__)


_MYSQL_NO_SUCH_TABLE = 1146
_POSTGRES_UNDEFINED_TABLE = "42P01"
_SQLITE_NO_SUCH_TABLE_RE = re.compile(r"no such table: (?:\w+\.)?(\w+)")
_MYSQL_NO_SUCH_TABLE_RE = re.compile(r"Table '(?:[^'.]+\.)?([^'.]+)' doesn't exist")
_POSTGRES_UNDEFINED_TABLE_RE = re.compile(r'relation "(?:[^".]+\.)?([^".]+)" does not exist')

# Tables whose absence means "feature not migrated yet" rather than a broken schema.
OPTIONAL_TABLES: frozenset[str] = frozenset({"data_scopes"})


def _first_match(pattern: re.Pattern[str], message: str) -> str:
    match = pattern.search(message)
    return match.group(1) if match else ""


def missing_table_name(exc: DBAPIError) -> str | None:
    """
    Return the table name (or "") if `exc` is the driver's "unknown table" error.

    Returns None for every other error. Only the specific driver signals are
    recognized: SQLite "no such table", MySQL errno 1146, PostgreSQL 42P01.
    """

    orig = exc.orig
    message = str(orig)

    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate == _POSTGRES_UNDEFINED_TABLE:
        return _first_match(_POSTGRES_UNDEFINED_TABLE_RE, message)

    args = getattr(orig, "args", ())
    if args and args[0] == _MYSQL_NO_SUCH_TABLE:
        return _first_match(_MYSQL_NO_SUCH_TABLE_RE, message)

    match = _SQLITE_NO_SUCH_TABLE_RE.search(message)
    if match:
        return match.group(1)

    return None


class SqlQueryRunner:
    """
    Execute SELECT statements with named bind parameters and return rows as dicts.

    A missing table listed in `optional_tables` raises `MissingTableError`; every
    other database error, including a missing core table, propagates unchanged.
    """

    def __init__(self, engine: AsyncEngine, optional_tables: frozenset[str] = OPTIONAL_TABLES) -> None:
        self._engine = engine
        self._optional_tables = optional_tables

    async def __call__(self, sql: str, params: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(text(sql), dict(params or {}))
                return [dict(row) for row in result.mappings()]
        except DBAPIError as exc:
            table = missing_table_name(exc)
            if table not in self._optional_tables:
                raise
            logger.debug("Query hit missing optional table=%s", table)
            raise MissingTableError(table) from exc
