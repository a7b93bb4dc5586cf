# src/ride_repository/db_implementations/mysql_backend.py

import asyncio
import logging
from contextlib import asynccontextmanager
from logging import LoggerAdapter
from typing import Any, AsyncGenerator, Dict, List, Optional, Sequence

# --- aiomysql Driver Import ---
import aiomysql
from pymysql.constants import CLIENT

from ride_repository.base.backend import ExecuteResult, Session, SqlBackend

# Access denied (db / user), unknown database, cannot connect (socket / TCP),
# unknown host, server gone away, connection lost during query.
UNAVAILABLE_ERROR_CODES = frozenset({1044, 1045, 1049, 2002, 2003, 2005, 2006, 2013})


def quote_identifier(identifier: str) -> str:
    """Quotes an identifier for safe use in MySQL queries."""
    if not isinstance(identifier, str):
        raise TypeError("Identifier must be a string")
    if "`" in identifier:
        raise ValueError("Identifier cannot contain backticks")
    return f"`{identifier}`"


async def create_pool(
    host: str,
    port: int,
    user: str,
    password: str,
    db: Optional[str] = None,
    minsize: int = 1,
    maxsize: int = 10,
) -> aiomysql.Pool:
    """
    Create an aiomysql pool for the repositories.

    ``FOUND_ROWS`` makes the affected-row count of an UPDATE report matched
    rows, so re-saving identical values is not mistaken for a missing id.
    """
    kwargs: Dict[str, Any] = dict(
        host=host,
        port=port,
        user=user,
        password=password,
        minsize=minsize,
        maxsize=maxsize,
        charset="utf8mb4",
        client_flag=CLIENT.FOUND_ROWS,
        autocommit=False,
    )
    if db:
        kwargs["db"] = db
    return await aiomysql.create_pool(**kwargs)


class MySQLSession(Session):
    """Session over one pooled connection and its DictCursor."""

    def __init__(self, conn: aiomysql.Connection, cursor: aiomysql.DictCursor):
        self._conn = conn
        self._cursor = cursor

    async def fetch_all(
        self, sql: str, params: Sequence[Any] = ()
    ) -> List[Dict[str, Any]]:
        # Always pass a tuple: pymysql then applies %-formatting, so literal
        # percent signs in the SQL are written as %%.
        await self._cursor.execute(sql, tuple(params))
        return list(await self._cursor.fetchall())

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> ExecuteResult:
        await self._cursor.execute(sql, tuple(params))
        return ExecuteResult(
            rowcount=self._cursor.rowcount, lastrowid=self._cursor.lastrowid
        )


class MySQLBackend(SqlBackend):
    """
    MySQL backend using aiomysql.

    Requires an aiomysql.Pool during initialization and handles connection
    acquisition/release internally. Every session commits on success and
    rolls back on error.

    Args:
        db_pool: An active aiomysql.Pool object.
        db_name: Database whose catalog is read. Defaults to the connection's
            current database (``DATABASE()``).
    """

    placeholder = "%s"
    single_row_suffix = " LIMIT 1"

    def __init__(self, db_pool: aiomysql.Pool, db_name: Optional[str] = None):
        if not isinstance(db_pool, aiomysql.Pool):
            raise TypeError("db_pool must be an instance of aiomysql.Pool")
        self._pool = db_pool
        self._db_name = db_name
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def name(self) -> str:
        return "mysql"

    def quote(self, identifier: str) -> str:
        return quote_identifier(identifier)

    # --- Connection/Session Management ---
    @asynccontextmanager
    async def _open_session(
        self, snapshot: bool
    ) -> AsyncGenerator[MySQLSession, None]:
        conn = await self._pool.acquire()
        self._logger.debug("Acquired connection from pool.")
        cursor = None
        try:
            cursor = await conn.cursor(aiomysql.DictCursor)
            if snapshot:
                await cursor.execute(
                    "START TRANSACTION WITH CONSISTENT SNAPSHOT, READ ONLY"
                )
            try:
                yield MySQLSession(conn, cursor)
            except BaseException:
                try:
                    await conn.rollback()
                except Exception as rollback_error:
                    self._logger.error(
                        f"Rollback failed: {rollback_error}", exc_info=True
                    )
                raise
            await conn.commit()
        finally:
            if cursor is not None:
                await cursor.close()
            self._pool.release(conn)
            self._logger.debug("Released connection back to pool.")

    async def describe_table(
        self, table_name: str, logger: LoggerAdapter
    ) -> Dict[str, str]:
        sql = """
            SELECT COLUMN_NAME AS column_name, DATA_TYPE AS data_type
            FROM INFORMATION_SCHEMA.COLUMNS
            WHERE TABLE_SCHEMA = COALESCE(%s, DATABASE())
              AND TABLE_NAME = %s
            ORDER BY ORDINAL_POSITION
        """
        async with self.session() as session:
            rows = await session.fetch_all(sql, (self._db_name, table_name))

        columns: Dict[str, str] = {}
        for row in rows:
            data_type = row["data_type"]
            if isinstance(data_type, bytes):
                data_type = data_type.decode("utf-8")
            columns[row["column_name"]] = str(data_type or "").lower()
        logger.debug(f"Table '{table_name}' columns: {columns}")
        return columns

    # --- Date dialect ---
    def normalized_date_sql(self, column_sql: str) -> str:
        # DATE() reads "01/05/2024" as a year-first value; keep slashed dates
        # for the day-first step, where %d and %m also take single digits.
        return (
            "COALESCE("
            f"DATE(CASE WHEN {column_sql} NOT LIKE '%%/%%' THEN {column_sql} END), "
            f"STR_TO_DATE(SUBSTRING_INDEX({column_sql}, 'T', 1), '%%Y-%%m-%%d'), "
            f"STR_TO_DATE({column_sql}, '%%d/%%m/%%Y'), "
            f"STR_TO_DATE({column_sql}, '%%Y-%%m-%%d'))"
        )

    def format_date_sql(self, expression_sql: str) -> str:
        return f"DATE_FORMAT({expression_sql}, '%%Y-%%m-%%d')"

    def day_after_sql(self, placeholder: str) -> str:
        return f"DATE_ADD({placeholder}, INTERVAL 1 DAY)"

    # --- Errors ---
    def is_unavailable_error(self, error: BaseException) -> bool:
        if isinstance(error, (OSError, asyncio.TimeoutError)):
            return True
        if isinstance(error, aiomysql.InterfaceError):
            # Raised for operations on a closed connection.
            return True
        if isinstance(error, aiomysql.Error) and error.args:
            return error.args[0] in UNAVAILABLE_ERROR_CODES
        return False

    async def close(self) -> None:
        self._pool.close()
        await self._pool.wait_closed()
