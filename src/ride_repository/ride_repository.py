# src/ride_repository/ride_repository.py

import logging
from logging import LoggerAdapter
from typing import Any, List, Mapping, Optional

from ride_repository.base.backend import SqlBackend
from ride_repository.base.exceptions import (
    MissingFieldsException,
    NoUpdatableFieldsException,
    ObjectNotFoundException,
    ValidationException,
)
from ride_repository.base.fields import DRIVER_FIELD, map_fields, missing_required
from ride_repository.base.models import RidePage, RideRecord
from ride_repository.base.query import SearchOptions, SearchQueryBuilder
from ride_repository.base.schema import SchemaProfile


class RideRepository:
    """
    Search and write access to the rides table of one schema variant.

    The repository is bound to a :class:`SchemaProfile` resolved beforehand;
    it never reads the catalog itself.

    The search count and page queries run as two independent statements
    unless ``snapshot_reads`` is enabled (or requested per call), in which case
    they share one read-only transaction. Without it, writes landing between
    the two statements can make ``total`` disagree with the rows returned.
    """

    def __init__(
        self,
        backend: SqlBackend,
        profile: SchemaProfile,
        snapshot_reads: bool = False,
    ):
        self._backend = backend
        self._profile = profile
        self._snapshot_reads = snapshot_reads
        self._builder = SearchQueryBuilder(backend, profile)
        self._table_sql = backend.quote(profile.table_name)
        self._id_sql = backend.quote(profile.id_column)
        self._logger = logging.getLogger(
            f"{__name__}.{self.__class__.__name__}[{profile.table_name}]"
        )
        self._logger.info(
            f"Repository instance created for table '{profile.table_name}' "
            f"on backend '{backend.name}' (id column '{profile.id_column}')."
        )

    @property
    def profile(self) -> SchemaProfile:
        return self._profile

    # --- Reads ---

    async def search(
        self,
        options: SearchOptions,
        logger: LoggerAdapter,
        snapshot: Optional[bool] = None,
    ) -> RidePage:
        """Return one page of rides matching ``options`` plus the total count."""
        use_snapshot = self._snapshot_reads if snapshot is None else snapshot
        built = self._builder.build(options)
        logger.debug(
            f"Searching rides: {options!r} (snapshot={use_snapshot}) "
            f"SQL='{built.page_sql}'"
        )

        async with self._backend.session(snapshot=use_snapshot) as session:
            count_row = await session.fetch_one(built.count_sql, built.count_params)
            total = int((count_row or {}).get("total") or 0)
            rows = await session.fetch_all(built.page_sql, built.page_params)

        logger.info(
            f"Search returned {len(rows)} of {total} ride(s) "
            f"(page {options.page}, size {options.page_size})."
        )
        return RidePage(
            rows=[RideRecord.model_validate(row) for row in rows],
            total=total,
            page=options.page,
            page_size=options.page_size,
            sort_by=options.sort_by,
            sort_dir=options.sort_dir,
        )

    async def distinct_drivers(self, logger: LoggerAdapter) -> List[str]:
        """Distinct non-blank driver names, sorted."""
        if not self._profile.has_column(DRIVER_FIELD):
            logger.debug("Driver column absent; no driver options.")
            return []
        driver_sql = self._backend.quote(DRIVER_FIELD)
        sql = (
            f"SELECT DISTINCT TRIM({driver_sql}) AS driver FROM {self._table_sql} "
            f"WHERE {driver_sql} IS NOT NULL AND TRIM({driver_sql}) <> '' "
            f"ORDER BY driver"
        )
        async with self._backend.session() as session:
            rows = await session.fetch_all(sql)
        drivers = [str(row["driver"]) for row in rows]
        logger.info(f"Found {len(drivers)} distinct driver(s).")
        return drivers

    # --- Writes ---

    async def insert(self, fields: Mapping[str, Any], logger: LoggerAdapter) -> Any:
        """
        Insert a ride and return the id assigned by the store.

        Raises:
            MissingFieldsException: If THE_DATE, FROM or TO is absent or blank.
                The store is not touched.
        """
        missing = missing_required(fields)
        if missing:
            logger.warning(f"Insert rejected, missing required fields: {missing}")
            raise MissingFieldsException(missing)

        values = map_fields(fields, self._profile.columns)
        columns = list(values)
        cols_clause = ", ".join(self._backend.quote(c) for c in columns)
        placeholders = ", ".join([self._backend.placeholder] * len(columns))
        sql = f"INSERT INTO {self._table_sql} ({cols_clause}) VALUES ({placeholders})"
        params = [values[c] for c in columns]

        logger.debug(f"Executing insert: SQL='{sql}', Params={params}")
        async with self._backend.session() as session:
            result = await session.execute(sql, params)

        logger.info(f"Inserted ride with id '{result.lastrowid}'.")
        return result.lastrowid

    async def update(
        self, ride_id: Any, fields: Mapping[str, Any], logger: LoggerAdapter
    ) -> str:
        """
        Set the recognized fields present in ``fields`` on one ride.

        Keys absent from ``fields`` are left unchanged; a present key with a
        blank value clears the column.

        Raises:
            ValidationException: If ``ride_id`` is blank.
            NoUpdatableFieldsException: If no recognized, existing field is given.
            ObjectNotFoundException: If no row has this id.
        """
        identifier = self._require_id(ride_id)
        values = map_fields(fields, self._profile.columns)
        if not values:
            logger.warning(f"Update of ride '{identifier}' had no updatable fields.")
            raise NoUpdatableFieldsException()

        set_clause = ", ".join(
            f"{self._backend.quote(c)} = {self._backend.placeholder}" for c in values
        )
        sql = (
            f"UPDATE {self._table_sql} SET {set_clause} "
            f"WHERE {self._id_sql} = {self._backend.placeholder}"
            f"{self._backend.single_row_suffix}"
        )
        params = list(values.values()) + [identifier]

        logger.debug(f"Executing update: SQL='{sql}', Params={params}")
        async with self._backend.session() as session:
            result = await session.execute(sql, params)

        if not result.rowcount:
            logger.warning(f"Ride '{identifier}' not found for update.")
            raise ObjectNotFoundException("Ride not found.")
        logger.info(f"Updated ride '{identifier}' ({len(values)} field(s)).")
        return identifier

    async def delete(self, ride_id: Any, logger: LoggerAdapter) -> str:
        """
        Delete one ride by id.

        Raises:
            ValidationException: If ``ride_id`` is blank.
            ObjectNotFoundException: If no row has this id.
        """
        identifier = self._require_id(ride_id)
        sql = (
            f"DELETE FROM {self._table_sql} "
            f"WHERE {self._id_sql} = {self._backend.placeholder}"
            f"{self._backend.single_row_suffix}"
        )
        logger.debug(f"Executing delete: SQL='{sql}', Params={[identifier]}")
        async with self._backend.session() as session:
            result = await session.execute(sql, [identifier])

        if not result.rowcount:
            logger.warning(f"Ride '{identifier}' not found for deletion.")
            raise ObjectNotFoundException("Ride not found.")
        logger.info(f"Deleted ride '{identifier}'.")
        return identifier

    @staticmethod
    def _require_id(ride_id: Any) -> str:
        identifier = str(ride_id if ride_id is not None else "").strip()
        if not identifier:
            raise ValidationException("Missing ride id")
        return identifier
