# src/ride_repository/base/models.py

from datetime import date, datetime, timedelta
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _format_time(value: Any) -> Any:
    # MySQL TIME columns arrive as timedelta.
    if isinstance(value, timedelta):
        total = int(value.total_seconds())
        hours, remainder = divmod(total, 3600)
        minutes, seconds = divmod(remainder, 60)
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return value


class RideRecord(BaseModel):
    """One transfer booking as returned to clients, keyed by business field names."""

    model_config = ConfigDict(populate_by_name=True)

    id: Union[int, str] = Field(alias="A/A")
    ride_date: Optional[str] = Field(default=None, alias="THE_DATE")
    ride_time: Optional[str] = Field(default=None, alias="TIME")
    ride_type: Optional[str] = Field(default=None, alias="TYPE")
    from_location: Optional[str] = Field(default=None, alias="FROM")
    to_location: Optional[str] = Field(default=None, alias="TO")
    hotel_name: Optional[str] = Field(default=None, alias="HOTEL NAME")
    area: Optional[str] = Field(default=None, alias="AREA")
    flight_code: Optional[str] = Field(default=None, alias="FLY_CODE")
    flight_company: Optional[str] = Field(default=None, alias="FLY_COMPANY")
    customer_name: Optional[str] = Field(default=None, alias="THE_NAME")
    email: Optional[str] = Field(default=None, alias="EMAIL")
    pax_count: Optional[float] = Field(default=None, alias="PAX")
    adult_count: Optional[float] = Field(default=None, alias="ADULT")
    child_infant_info: Optional[str] = Field(default=None, alias="CH/INF")
    info: Optional[str] = Field(default=None, alias="INFO")
    voucher_code: Optional[str] = Field(default=None, alias="VCode")
    tour_operator: Optional[str] = Field(default=None, alias="TOUR_OPER")
    price: Optional[float] = Field(default=None, alias="PRICE")
    driver_price: Optional[float] = Field(default=None, alias="DRIVER_PRICE")
    driver: Optional[str] = Field(default=None, alias="DRIVER")

    @field_validator("ride_date", mode="before")
    @classmethod
    def _render_date(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        return value

    @field_validator("ride_time", mode="before")
    @classmethod
    def _render_time(cls, value: Any) -> Any:
        return _format_time(value)

    @field_validator(
        "ride_type",
        "from_location",
        "to_location",
        "hotel_name",
        "area",
        "flight_code",
        "flight_company",
        "customer_name",
        "email",
        "child_infant_info",
        "info",
        "voucher_code",
        "tour_operator",
        "driver",
        mode="before",
    )
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)


class RidePage(BaseModel):
    """One page of search results with the effective paging parameters."""

    model_config = ConfigDict(populate_by_name=True)

    rows: List[RideRecord]
    total: int
    page: int
    page_size: int = Field(alias="pageSize")
    sort_by: str = Field(alias="sortBy")
    sort_dir: str = Field(alias="sortDir")


class PriceEntry(BaseModel):
    id: Union[int, str]
    destination: Optional[str] = None
    tour: Optional[str] = None
    price: Optional[float] = None
