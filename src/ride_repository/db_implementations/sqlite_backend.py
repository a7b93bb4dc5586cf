# src/ride_repository/db_implementations/sqlite_backend.py

import asyncio
import logging
import sqlite3
from contextlib import asynccontextmanager
from logging import LoggerAdapter
from typing import Any, AsyncGenerator, Dict, List, Sequence

import aiosqlite

from ride_repository.base.backend import ExecuteResult, Session, SqlBackend

UNAVAILABLE_RESULT_CODES = frozenset(
    {sqlite3.SQLITE_CANTOPEN, sqlite3.SQLITE_IOERR, sqlite3.SQLITE_NOTADB}
)

# D/M/YYYY with one- or two-digit day and month.
DAY_FIRST_GLOBS = (
    "[0-9][0-9]/[0-9][0-9]/[0-9][0-9][0-9][0-9]",
    "[0-9]/[0-9][0-9]/[0-9][0-9][0-9][0-9]",
    "[0-9][0-9]/[0-9]/[0-9][0-9][0-9][0-9]",
    "[0-9]/[0-9]/[0-9][0-9][0-9][0-9]",
)


def quote_identifier(identifier: str) -> str:
    if not isinstance(identifier, str):
        raise TypeError("Identifier must be a string")
    return '"' + identifier.replace('"', '""') + '"'


class SqliteSession(Session):
    def __init__(self, conn: aiosqlite.Connection):
        self._conn = conn

    async def fetch_all(
        self, sql: str, params: Sequence[Any] = ()
    ) -> List[Dict[str, Any]]:
        async with self._conn.execute(sql, tuple(params)) as cursor:
            rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> ExecuteResult:
        async with self._conn.execute(sql, tuple(params)) as cursor:
            return ExecuteResult(rowcount=cursor.rowcount, lastrowid=cursor.lastrowid)


class SqliteBackend(SqlBackend):
    """
    SQLite backend over a single externally managed aiosqlite connection.

    Used for local development and tests. Sessions share the one connection,
    so they are serialized: a session holds the backend lock until it commits
    on success or rolls back on error. Snapshot sessions wrap their statements
    in ``BEGIN``/``COMMIT``. Sessions must not be nested.
    """

    placeholder = "?"
    single_row_suffix = ""

    def __init__(
        self, db_connection: aiosqlite.Connection, owns_connection: bool = False
    ):
        if not isinstance(db_connection, aiosqlite.Connection):
            raise TypeError(
                "db_connection must be an instance of aiosqlite.Connection"
            )
        self._conn = db_connection
        # Ensure connection uses dict-like rows for convenience
        self._conn.row_factory = aiosqlite.Row
        self._owns_connection = owns_connection
        self._lock = asyncio.Lock()
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @classmethod
    async def connect(cls, path: str) -> "SqliteBackend":
        """Open ``path`` and return a backend that closes it on :meth:`close`."""
        conn = await aiosqlite.connect(path)
        return cls(conn, owns_connection=True)

    @property
    def name(self) -> str:
        return "sqlite"

    def quote(self, identifier: str) -> str:
        return quote_identifier(identifier)

    @asynccontextmanager
    async def _open_session(
        self, snapshot: bool
    ) -> AsyncGenerator[SqliteSession, None]:
        async with self._lock:
            if snapshot:
                await self._conn.execute("BEGIN")
            try:
                yield SqliteSession(self._conn)
            except BaseException:
                await self._conn.rollback()
                raise
            await self._conn.commit()

    async def describe_table(
        self, table_name: str, logger: LoggerAdapter
    ) -> Dict[str, str]:
        sql = f"PRAGMA table_info({self.quote(table_name)})"
        async with self.session() as session:
            rows = await session.fetch_all(sql)
        columns = {row["name"]: str(row["type"] or "").lower() for row in rows}
        logger.debug(f"Table '{table_name}' columns: {columns}")
        return columns

    # --- Date dialect ---
    def normalized_date_sql(self, column_sql: str) -> str:
        c = column_sql
        day_first = " OR ".join(f"{c} GLOB '{p}'" for p in DAY_FIRST_GLOBS)
        after_day = f"substr({c}, instr({c}, '/') + 1)"
        day = f"CAST(substr({c}, 1, instr({c}, '/') - 1) AS INTEGER)"
        month = f"CAST(substr({after_day}, 1, instr({after_day}, '/') - 1) AS INTEGER)"
        return (
            "COALESCE("
            f"date({c}), "
            f"date(CASE WHEN instr({c}, 'T') > 0 "
            f"THEN substr({c}, 1, instr({c}, 'T') - 1) END), "
            f"date(CASE WHEN {day_first} "
            f"THEN printf('%s-%02d-%02d', substr({c}, -4), {month}, {day}) END), "
            f"date(substr({c}, 1, 10)))"
        )

    def format_date_sql(self, expression_sql: str) -> str:
        return f"strftime('%Y-%m-%d', {expression_sql})"

    def day_after_sql(self, placeholder: str) -> str:
        return f"date({placeholder}, '+1 day')"

    # --- Errors ---
    def is_unavailable_error(self, error: BaseException) -> bool:
        if isinstance(error, OSError):
            return True
        if isinstance(error, sqlite3.Error):
            code = getattr(error, "sqlite_errorcode", None)
            # Extended result codes carry the primary code in the low byte.
            return code is not None and (code & 0xFF) in UNAVAILABLE_RESULT_CODES
        return False

    async def close(self) -> None:
        if self._owns_connection:
            await self._conn.close()
