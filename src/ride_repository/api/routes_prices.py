from logging import LoggerAdapter
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ride_repository.api.auth import require_auth
from ride_repository.api.dependencies import (
    RepositoryProvider,
    get_provider,
    get_request_logger,
)
from ride_repository.base.exceptions import ValidationException

router = APIRouter(
    prefix="/prices", tags=["prices"], dependencies=[Depends(require_auth)]
)


@router.get("")
async def list_prices(
    provider: RepositoryProvider = Depends(get_provider),
    logger: LoggerAdapter = Depends(get_request_logger),
):
    """All price entries, for dropdowns."""
    repo = await provider.prices(logger)
    return [entry.model_dump() for entry in await repo.list_prices(logger)]


@router.get("/lookup")
async def lookup_price(
    destination: Optional[str] = Query(None),
    tour: Optional[str] = Query(None),
    provider: RepositoryProvider = Depends(get_provider),
    logger: LoggerAdapter = Depends(get_request_logger),
):
    if not destination or not tour:
        raise ValidationException("Missing destination/tour")
    repo = await provider.prices(logger)
    return {"price": await repo.lookup(destination, tour, logger)}
