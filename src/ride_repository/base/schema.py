# src/ride_repository/base/schema.py

"""
Schema profile resolution.

Deployments disagree on the physical name of the id column and on the SQL
type of the date column. The introspector reads the catalog once per table
and the resulting :class:`SchemaProfile` is handed to the repositories, which
never query the catalog themselves.

Cached entries live until :meth:`SchemaIntrospector.invalidate` is called;
a schema migration is otherwise observed only after a restart.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from logging import LoggerAdapter
from typing import Dict, FrozenSet, Optional, Tuple

from ride_repository.base.backend import SqlBackend
from ride_repository.base.exceptions import SchemaMismatchException
from ride_repository.base.fields import DATE_FIELD

log = logging.getLogger(__name__)

# Preferred first. The second is the Greek spelling used by older deployments.
ID_COLUMN_CANDIDATES: Tuple[str, str] = ("A/A", "Αναγνωριστικό")

NATIVE_DATE_TYPES = ("date", "datetime", "timestamp")


class DateColumnKind(str, Enum):
    """How the date column is stored."""

    NATIVE = "native"
    TEXT = "text"
    ABSENT = ""


def classify_date_type(data_type: Optional[str]) -> DateColumnKind:
    if data_type is None:
        return DateColumnKind.ABSENT
    lowered = data_type.strip().lower()
    if lowered.startswith(NATIVE_DATE_TYPES):
        return DateColumnKind.NATIVE
    return DateColumnKind.TEXT


@dataclass(frozen=True)
class SchemaProfile:
    """Resolved facts about one logical table."""

    table_name: str
    id_column: str
    columns: FrozenSet[str]
    date_kind: DateColumnKind = DateColumnKind.TEXT
    date_column: str = DATE_FIELD

    def has_column(self, name: str) -> bool:
        return name in self.columns


class SchemaIntrospector:
    """
    Reads table metadata through a backend and caches it per table name.

    Args:
        backend: The backend whose catalog is queried.
        strict: When True, a table without any id candidate raises
            :class:`SchemaMismatchException` instead of falling back to the
            first candidate.
    """

    def __init__(self, backend: SqlBackend, strict: bool = False):
        self._backend = backend
        self._strict = strict
        self._columns_cache: Dict[str, Dict[str, str]] = {}

    async def _describe(self, table_name: str, logger: LoggerAdapter) -> Dict[str, str]:
        cached = self._columns_cache.get(table_name)
        if cached is not None:
            return cached
        logger.debug(f"Reading catalog for table '{table_name}'.")
        columns = await self._backend.describe_table(table_name, logger)
        # Concurrent first calls may both land here; the stored value is identical.
        self._columns_cache[table_name] = columns
        return columns

    async def resolve_id_column(self, table_name: str, logger: LoggerAdapter) -> str:
        columns = await self._describe(table_name, logger)
        for candidate in ID_COLUMN_CANDIDATES:
            if candidate in columns:
                return candidate
        if self._strict:
            raise SchemaMismatchException(
                f"Table '{table_name}' has none of the id columns "
                f"{list(ID_COLUMN_CANDIDATES)}."
            )
        logger.warning(
            f"Table '{table_name}' has no recognized id column; "
            f"assuming '{ID_COLUMN_CANDIDATES[0]}'."
        )
        return ID_COLUMN_CANDIDATES[0]

    async def resolve_column_set(
        self, table_name: str, logger: LoggerAdapter
    ) -> FrozenSet[str]:
        return frozenset(await self._describe(table_name, logger))

    async def resolve_date_column_type(
        self,
        table_name: str,
        logger: LoggerAdapter,
        date_column: str = DATE_FIELD,
    ) -> DateColumnKind:
        columns = await self._describe(table_name, logger)
        return classify_date_type(columns.get(date_column))

    async def load_profile(
        self,
        table_name: str,
        logger: LoggerAdapter,
        date_column: str = DATE_FIELD,
    ) -> SchemaProfile:
        """Resolve every fact about ``table_name`` into an immutable profile."""
        profile = SchemaProfile(
            table_name=table_name,
            id_column=await self.resolve_id_column(table_name, logger),
            columns=await self.resolve_column_set(table_name, logger),
            date_kind=await self.resolve_date_column_type(
                table_name, logger, date_column
            ),
            date_column=date_column,
        )
        logger.info(
            f"Schema profile for '{table_name}': id column '{profile.id_column}', "
            f"{len(profile.columns)} columns, date column kind "
            f"'{profile.date_kind.value or 'absent'}'."
        )
        return profile

    def invalidate(self, table_name: Optional[str] = None) -> None:
        """Forget cached metadata for one table, or for all tables."""
        if table_name is None:
            self._columns_cache.clear()
        else:
            self._columns_cache.pop(table_name, None)
