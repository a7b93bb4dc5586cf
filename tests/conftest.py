# tests/conftest.py
import logging
import os
import socket
import uuid

import aiomysql
import aiosqlite
import pytest
import pytest_asyncio

from ride_repository.base.schema import SchemaIntrospector
from ride_repository.db_implementations.mysql_backend import MySQLBackend, create_pool
from ride_repository.db_implementations.sqlite_backend import SqliteBackend
from ride_repository.price_repository import PriceRepository
from ride_repository.ride_repository import RideRepository

from tests import create_mysql_tables, create_sqlite_tables

# Silence verbose loggers
logging.getLogger("aiomysql").setLevel(logging.WARNING)


# --- Constants ---

# MySQL connection details
MYSQL_HOST = os.getenv("TEST_MYSQL_HOST", "localhost")
MYSQL_PORT = int(os.getenv("TEST_MYSQL_PORT", "3306"))
MYSQL_USER = os.getenv("TEST_MYSQL_USER", "testuser")
MYSQL_PASSWORD = os.getenv("TEST_MYSQL_PASSWORD", "password")


# --- Availability Checks ---
def is_mysql_available():
    """Check if a MySQL server accepts TCP connections."""
    try:
        with socket.create_connection((MYSQL_HOST, MYSQL_PORT), timeout=1):
            logging.info(f"MySQL found at {MYSQL_HOST}:{MYSQL_PORT}")
            return True
    except OSError as e:
        logging.warning(
            f"MySQL not found or not responsive at {MYSQL_HOST}:{MYSQL_PORT}: {e}. "
            "Skipping MySQL tests."
        )
        return False


AVAILABLE_IMPLEMENTATIONS = ["sqlite"]  # SQLite (in-memory) is always available
if is_mysql_available():
    AVAILABLE_IMPLEMENTATIONS.append("mysql")

TABLE_HELPERS = {
    "sqlite": create_sqlite_tables,
    "mysql": create_mysql_tables,
}


# --- Backend Fixtures ---


@pytest_asyncio.fixture(scope="function")
async def sqlite_memory_db_conn():
    """Provides an in-memory aiosqlite database connection for testing."""
    conn = None
    try:
        conn = await aiosqlite.connect(":memory:")
        conn.row_factory = aiosqlite.Row
        yield conn
    finally:
        if conn:
            await conn.close()


@pytest.fixture(scope="function")
def sqlite_backend(sqlite_memory_db_conn):
    return SqliteBackend(sqlite_memory_db_conn)


@pytest_asyncio.fixture
async def mysql_backend():
    """
    Creates a MySQL backend bound to a temporary database for each test.
    """
    if "mysql" not in AVAILABLE_IMPLEMENTATIONS:
        pytest.skip("MySQL not available")

    temp_db_name = f"test_db_{uuid.uuid4().hex}"

    # Admin connection for database creation/deletion
    try:
        admin_conn = await aiomysql.connect(
            host=MYSQL_HOST,
            port=MYSQL_PORT,
            user=MYSQL_USER,
            password=MYSQL_PASSWORD,
            autocommit=True,
        )
    except aiomysql.OperationalError as e:
        pytest.skip(f"MySQL refused the test user: {e}")

    try:
        async with admin_conn.cursor() as cursor:
            await cursor.execute(f"CREATE DATABASE `{temp_db_name}`")

        pool = await create_pool(
            host=MYSQL_HOST,
            port=MYSQL_PORT,
            user=MYSQL_USER,
            password=MYSQL_PASSWORD,
            db=temp_db_name,
        )
        backend = MySQLBackend(pool, db_name=temp_db_name)

        yield backend

        await backend.close()

        async with admin_conn.cursor() as cursor:
            await cursor.execute(f"DROP DATABASE `{temp_db_name}`")
    finally:
        admin_conn.close()


@pytest.fixture(params=AVAILABLE_IMPLEMENTATIONS)
def backend(request):
    """Parametrized fixture yielding each available backend."""
    impl_key = request.param
    if impl_key == "sqlite":
        yield request.getfixturevalue("sqlite_backend")
    elif impl_key == "mysql":
        yield request.getfixturevalue("mysql_backend")
    else:
        raise ValueError(f"Unknown backend implementation key: {impl_key}")


# --- Repository Factories ---


@pytest.fixture
def ride_repository_factory(backend, logger):
    """
    Factory creating a rides table on the current backend and returning a
    repository bound to its resolved profile.

    Keyword arguments are forwarded to ``create_rides_table``.
    """
    helpers = TABLE_HELPERS[backend.name]

    async def _create(snapshot_reads: bool = False, **table_kwargs) -> RideRepository:
        await helpers.create_rides_table(backend, **table_kwargs)
        table_name = table_kwargs.get("table_name", helpers.RIDES_TABLE_NAME)
        profile = await SchemaIntrospector(backend).load_profile(table_name, logger)
        return RideRepository(backend, profile, snapshot_reads=snapshot_reads)

    return _create


@pytest_asyncio.fixture
async def ride_repository(ride_repository_factory):
    """Repository over the default schema: 'A/A' id and a TEXT date column."""
    return await ride_repository_factory()


@pytest.fixture
def price_repository_factory(backend, logger):
    """Factory creating the prices table with the given id column."""
    helpers = TABLE_HELPERS[backend.name]

    async def _create(id_column: str = "A/A") -> PriceRepository:
        await helpers.create_prices_table(backend, id_column=id_column)
        profile = await SchemaIntrospector(backend).load_profile(
            helpers.PRICES_TABLE_NAME, logger
        )
        return PriceRepository(backend, profile)

    return _create


@pytest_asyncio.fixture
async def price_repository(price_repository_factory):
    """Price repository over a table keyed by 'A/A'."""
    return await price_repository_factory()



# --- Logger Fixture ---


@pytest.fixture(scope="session")
def logger():
    """Create a test logger."""
    _logger = logging.getLogger("test_repo_logger")
    if not _logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        handler.setLevel(logging.DEBUG)
        _logger.addHandler(handler)
        _logger.setLevel(logging.DEBUG)
        _logger.propagate = False
    return logging.LoggerAdapter(_logger, {})

