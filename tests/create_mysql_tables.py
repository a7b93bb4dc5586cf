# tests/create_mysql_tables.py
import logging
from typing import Iterable

from ride_repository.base.fields import RIDE_FIELDS, FieldKind
from ride_repository.db_implementations.mysql_backend import MySQLBackend

logger = logging.getLogger(__name__)

RIDES_TABLE_NAME = "data"
PRICES_TABLE_NAME = "prices"

# SQLite spellings used by the shared fixtures, mapped to MySQL column types.
DATE_TYPES = {"TEXT": "VARCHAR(32)", "DATE": "DATE", "DATETIME": "DATETIME"}


async def create_rides_table(
    backend: MySQLBackend,
    table_name: str = RIDES_TABLE_NAME,
    id_column: str = "A/A",
    date_type: str = "TEXT",
    omit_columns: Iterable[str] = (),
):
    """
    Creates a rides table in MySQL.

    Mirrors :func:`tests.create_sqlite_tables.create_rides_table`; numeric
    fields become DECIMAL and text fields VARCHAR.
    """
    omitted = set(omit_columns)
    q = backend.quote
    columns = [f"{q(id_column)} INT AUTO_INCREMENT PRIMARY KEY"]
    for spec in RIDE_FIELDS:
        if spec.name in omitted:
            continue
        if spec.name == "THE_DATE":
            sql_type = DATE_TYPES.get(date_type.upper(), date_type)
        elif spec.kind is FieldKind.NULLABLE_NUMBER:
            sql_type = "DECIMAL(10,2)"
        else:
            sql_type = "VARCHAR(255)"
        columns.append(f"{q(spec.name)} {sql_type} NULL")

    logger.info(
        f"Creating MySQL table '{table_name}' (id={id_column}, date={date_type}, "
        f"omitted={sorted(omitted)})"
    )
    async with backend.session() as session:
        await session.execute(f"DROP TABLE IF EXISTS {q(table_name)}")
        await session.execute(
            f"CREATE TABLE {q(table_name)} ({', '.join(columns)}) "
            f"DEFAULT CHARSET=utf8mb4"
        )


async def create_prices_table(
    backend: MySQLBackend,
    table_name: str = PRICES_TABLE_NAME,
    id_column: str = "A/A",
):
    q = backend.quote
    async with backend.session() as session:
        await session.execute(f"DROP TABLE IF EXISTS {q(table_name)}")
        await session.execute(
            f"CREATE TABLE {q(table_name)} ("
            f"{q(id_column)} INT AUTO_INCREMENT PRIMARY KEY, "
            f"{q('Destination')} VARCHAR(255), {q('Tour')} VARCHAR(255), "
            f"{q('Price')} DECIMAL(10,2)) DEFAULT CHARSET=utf8mb4"
        )
