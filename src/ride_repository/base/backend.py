# src/ride_repository/base/backend.py

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from logging import LoggerAdapter
from typing import Any, AsyncGenerator, Dict, List, Optional, Sequence

from ride_repository.base.exceptions import (
    RepositoryException,
    StoreUnavailableException,
)


@dataclass
class ExecuteResult:
    """Outcome of a data-modifying statement."""

    rowcount: int
    lastrowid: Optional[Any] = None


class Session(ABC):
    """A unit of work bound to one database connection."""

    @abstractmethod
    async def fetch_all(
        self, sql: str, params: Sequence[Any] = ()
    ) -> List[Dict[str, Any]]:
        pass

    async def fetch_one(
        self, sql: str, params: Sequence[Any] = ()
    ) -> Optional[Dict[str, Any]]:
        rows = await self.fetch_all(sql, params)
        return rows[0] if rows else None

    @abstractmethod
    async def execute(self, sql: str, params: Sequence[Any] = ()) -> ExecuteResult:
        pass


class SqlBackend(ABC):
    """
    Driver and dialect seam shared by the schema introspector and the
    repositories.

    A backend knows how to open sessions, quote identifiers, describe a table
    from the catalog, spell the date expressions of its SQL dialect and tell
    an unreachable store apart from any other failure.
    """

    #: Placeholder used by the driver's paramstyle.
    placeholder: str = "?"
    #: Suffix restricting UPDATE/DELETE to a single row, where supported.
    single_row_suffix: str = ""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def quote(self, identifier: str) -> str:
        """Quote an identifier (table or column name) for this dialect."""
        pass

    @asynccontextmanager
    async def session(self, snapshot: bool = False) -> AsyncGenerator[Session, None]:
        """
        Provide a session. With ``snapshot`` the statements issued inside the
        block share one read-only transaction.
        """
        try:
            async with self._open_session(snapshot) as session:
                yield session
        except Exception as e:
            self._handle_db_error(e)
            raise

    @abstractmethod
    def _open_session(self, snapshot: bool):
        """Return an async context manager yielding a :class:`Session`."""
        pass

    @abstractmethod
    async def describe_table(
        self, table_name: str, logger: LoggerAdapter
    ) -> Dict[str, str]:
        """Map each physical column of ``table_name`` to its lower-cased SQL type."""
        pass

    # --- Date dialect ---

    @abstractmethod
    def normalized_date_sql(self, column_sql: str) -> str:
        """Calendar-date expression for a text column, trying the legacy formats in order."""
        pass

    @abstractmethod
    def format_date_sql(self, expression_sql: str) -> str:
        """Render a date-valued expression as ``YYYY-MM-DD`` text."""
        pass

    @abstractmethod
    def day_after_sql(self, placeholder: str) -> str:
        """Expression for the calendar day following the bound parameter."""
        pass

    # --- Errors ---

    @abstractmethod
    def is_unavailable_error(self, error: BaseException) -> bool:
        """True when ``error`` signals an unreachable or refusing store."""
        pass

    def _handle_db_error(self, error: Exception) -> None:
        """
        Translate store-unavailable failures; anything else propagates as is.

        Raises:
            StoreUnavailableException: When the driver signals connection,
                authentication or database-selection failure.
        """
        if isinstance(error, RepositoryException):
            return
        if self.is_unavailable_error(error):
            raise StoreUnavailableException() from error

    async def close(self) -> None:
        """Release driver resources. Backends holding none keep the default."""
        return None
