import logging
from logging import LoggerAdapter
from typing import Optional

from fastapi import Request

from ride_repository.base.backend import SqlBackend
from ride_repository.base.schema import SchemaIntrospector
from ride_repository.config import Settings
from ride_repository.price_repository import PriceRepository
from ride_repository.ride_repository import RideRepository

logger = logging.getLogger("ride_repository.api")


class RepositoryProvider:
    """
    Builds the repositories once their schema profiles are known.

    Profiles are resolved at startup when the store is reachable; otherwise
    the first request resolves them. Once built, a repository and its profile
    are kept for the process lifetime (call :meth:`refresh` after a schema
    migration).
    """

    def __init__(self, backend: SqlBackend, settings: Settings):
        self.backend = backend
        self._settings = settings
        self._introspector = SchemaIntrospector(backend, strict=settings.strict_schema)
        self._rides: Optional[RideRepository] = None
        self._prices: Optional[PriceRepository] = None

    async def rides(self, log: LoggerAdapter) -> RideRepository:
        if self._rides is None:
            profile = await self._introspector.load_profile(
                self._settings.rides_table, log
            )
            self._rides = RideRepository(
                self.backend,
                profile,
                snapshot_reads=self._settings.search_snapshot_reads,
            )
        return self._rides

    async def prices(self, log: LoggerAdapter) -> PriceRepository:
        if self._prices is None:
            profile = await self._introspector.load_profile(
                self._settings.prices_table, log
            )
            self._prices = PriceRepository(self.backend, profile)
        return self._prices

    async def warm(self, log: LoggerAdapter) -> None:
        await self.rides(log)
        await self.prices(log)

    def refresh(self) -> None:
        self._introspector.invalidate()
        self._rides = None
        self._prices = None


def get_request_logger(request: Request) -> LoggerAdapter:
    return LoggerAdapter(
        logger, {"request_id": request.headers.get("X-Request-ID", "-")}
    )


def get_provider(request: Request) -> RepositoryProvider:
    return request.app.state.repositories
