# src/ride_repository/price_repository.py

from logging import LoggerAdapter
from typing import List, Optional

from ride_repository.base.backend import SqlBackend
from ride_repository.base.exceptions import ObjectNotFoundException
from ride_repository.base.models import PriceEntry
from ride_repository.base.schema import SchemaProfile


class PriceRepository:
    """Read-only access to the price list, keyed by (destination, tour)."""

    def __init__(self, backend: SqlBackend, profile: SchemaProfile):
        self._backend = backend
        self._profile = profile
        self._table_sql = backend.quote(profile.table_name)

    async def list_prices(self, logger: LoggerAdapter) -> List[PriceEntry]:
        q = self._backend.quote
        sql = (
            f"SELECT {q(self._profile.id_column)} AS id, {q('Destination')} AS destination, "
            f"{q('Tour')} AS tour, {q('Price')} AS price FROM {self._table_sql} "
            f"ORDER BY {q('Destination')}, {q('Tour')}"
        )
        async with self._backend.session() as session:
            rows = await session.fetch_all(sql)
        logger.info(f"Listed {len(rows)} price(s).")
        return [PriceEntry.model_validate(row) for row in rows]

    async def lookup(
        self, destination: str, tour: str, logger: LoggerAdapter
    ) -> Optional[float]:
        """
        Price for an exact (destination, tour) match.

        Raises:
            ObjectNotFoundException: If no entry matches both keys.
        """
        q = self._backend.quote
        ph = self._backend.placeholder
        sql = (
            f"SELECT {q('Price')} AS price FROM {self._table_sql} "
            f"WHERE {q('Destination')} = {ph} AND {q('Tour')} = {ph} LIMIT 1"
        )
        async with self._backend.session() as session:
            row = await session.fetch_one(sql, [destination, tour])
        if row is None:
            logger.warning(f"No price for destination '{destination}', tour '{tour}'.")
            raise ObjectNotFoundException("Not found")
        return float(row["price"]) if row["price"] is not None else None
