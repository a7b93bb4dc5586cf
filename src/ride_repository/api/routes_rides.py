from logging import LoggerAdapter
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import PlainTextResponse

from ride_repository.api.auth import require_auth
from ride_repository.api.dependencies import (
    RepositoryProvider,
    get_provider,
    get_request_logger,
)
from ride_repository.base.query import RideFilters, SearchOptions

router = APIRouter(
    prefix="/rides", tags=["rides"], dependencies=[Depends(require_auth)]
)


@router.get("/search")
async def search_rides(
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    from_location: Optional[str] = Query(None),
    to_location: Optional[str] = Query(None),
    tour_oper: Optional[str] = Query(None),
    driver: Optional[str] = Query(None),
    page: Optional[str] = Query(None),
    page_size: Optional[str] = Query(None, alias="pageSize"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_dir: Optional[str] = Query(None, alias="sortDir"),
    provider: RepositoryProvider = Depends(get_provider),
    logger: LoggerAdapter = Depends(get_request_logger),
):
    """
    Search rides with optional filters, a whitelisted sort and clamped paging.

    Parameters arrive as raw strings; out-of-range or unknown values fall back
    to defaults instead of being rejected.
    """
    filters = RideFilters.from_params(
        date_from=date_from,
        date_to=date_to,
        tour_operator=tour_oper,
        driver=driver,
        from_location=from_location,
        to_location=to_location,
    )
    options = SearchOptions.from_params(
        filters=filters,
        sort_by=sort_by,
        sort_dir=sort_dir,
        page=page,
        page_size=page_size,
    )
    repo = await provider.rides(logger)
    result = await repo.search(options, logger)
    return result.model_dump(by_alias=True)


@router.get("/options")
async def ride_options(
    provider: RepositoryProvider = Depends(get_provider),
    logger: LoggerAdapter = Depends(get_request_logger),
):
    repo = await provider.rides(logger)
    return {"drivers": await repo.distinct_drivers(logger)}


@router.get("/report.pdf")
async def rides_report():
    return PlainTextResponse("PDF export not implemented yet.", status_code=501)


@router.post("")
async def create_ride(
    body: Dict[str, Any] = Body(default_factory=dict),
    provider: RepositoryProvider = Depends(get_provider),
    logger: LoggerAdapter = Depends(get_request_logger),
):
    repo = await provider.rides(logger)
    ride_id = await repo.insert(body, logger)
    return {"ok": True, "id": ride_id}


@router.put("/{ride_id}")
async def update_ride(
    ride_id: str,
    body: Dict[str, Any] = Body(default_factory=dict),
    provider: RepositoryProvider = Depends(get_provider),
    logger: LoggerAdapter = Depends(get_request_logger),
):
    repo = await provider.rides(logger)
    updated_id = await repo.update(ride_id, body, logger)
    return {"ok": True, "id": updated_id}


@router.delete("/{ride_id}")
async def delete_ride(
    ride_id: str,
    provider: RepositoryProvider = Depends(get_provider),
    logger: LoggerAdapter = Depends(get_request_logger),
):
    repo = await provider.rides(logger)
    deleted_id = await repo.delete(ride_id, logger)
    return {"ok": True, "id": deleted_id}
