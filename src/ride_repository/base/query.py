# src/ride_repository/base/query.py

"""
Search query construction for the rides table.

The builder turns :class:`SearchOptions` into two statements sharing one
predicate: a ``COUNT(*)`` for the total and a page query with ORDER BY,
LIMIT and OFFSET. Only whitelisted columns are ever referenced by sort keys.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Optional, Tuple

from ride_repository.base.backend import SqlBackend
from ride_repository.base.dates import DateNormalizer, parse_calendar_date
from ride_repository.base.exceptions import ValidationException
from ride_repository.base.fields import (
    DATE_FIELD,
    DRIVER_FIELD,
    ID_FIELD,
    RIDE_FIELDS,
    TIME_FIELD,
)
from ride_repository.base.schema import SchemaProfile

log = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MIN_PAGE_SIZE = 10
MAX_PAGE_SIZE = 200
# Largest page whose OFFSET still fits a signed 64-bit integer.
MAX_PAGE = (2**63 - 1) // MAX_PAGE_SIZE

SORTABLE_FIELDS: Tuple[str, ...] = (ID_FIELD, DATE_FIELD, TIME_FIELD)
DEFAULT_SORT_FIELD = DATE_FIELD

# At most 19 significant digits are read; longer values stay huge enough to clamp.
_LEADING_INT = re.compile(r"^\s*([+-]?)0*(\d{1,19})")


def parse_int(value: Any) -> Optional[int]:
    """Leading integer of ``value`` (``"12abc"`` gives 12), or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value))
    return int(match.group(1) + match.group(2)) if match else None


def clamp_page(value: Any) -> int:
    """1-based page number; zero, negative and non-numeric input give 1."""
    parsed = parse_int(value)
    return min(MAX_PAGE, max(1, parsed or 1))


def clamp_page_size(value: Any) -> int:
    """Page size within [10, 200]; zero, missing or non-numeric input give 50."""
    parsed = parse_int(value)
    return min(MAX_PAGE_SIZE, max(MIN_PAGE_SIZE, parsed or DEFAULT_PAGE_SIZE))


def normalize_sort_by(value: Any) -> str:
    requested = str(value) if value is not None else DEFAULT_SORT_FIELD
    return requested if requested in SORTABLE_FIELDS else DEFAULT_SORT_FIELD


def normalize_sort_dir(value: Any) -> str:
    return "asc" if str(value or "desc").strip().lower() == "asc" else "desc"


def _blank_to_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_bound(name: str, value: Any) -> Optional[date]:
    raw = _blank_to_none(value)
    if raw is None:
        return None
    parsed = parse_calendar_date(raw)
    if parsed is None:
        raise ValidationException(f"Invalid '{name}' date: {raw!r}.")
    return parsed


@dataclass
class RideFilters:
    """Exact-match and date-range constraints; None means unconstrained."""

    date_from: Optional[date] = None
    date_to: Optional[date] = None
    tour_operator: Optional[str] = None
    driver: Optional[str] = None
    from_location: Optional[str] = None
    to_location: Optional[str] = None

    @classmethod
    def from_params(
        cls,
        date_from: Any = None,
        date_to: Any = None,
        tour_operator: Any = None,
        driver: Any = None,
        from_location: Any = None,
        to_location: Any = None,
    ) -> "RideFilters":
        """
        Build filters from raw request values.

        Raises:
            ValidationException: If a date bound matches none of the accepted
                date layouts.
        """
        return cls(
            date_from=_parse_bound("from", date_from),
            date_to=_parse_bound("to", date_to),
            tour_operator=_blank_to_none(tour_operator),
            driver=_blank_to_none(driver),
            from_location=_blank_to_none(from_location),
            to_location=_blank_to_none(to_location),
        )


@dataclass
class SearchOptions:
    filters: RideFilters = field(default_factory=RideFilters)
    sort_by: str = DEFAULT_SORT_FIELD
    sort_dir: str = "desc"
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    @classmethod
    def from_params(
        cls,
        filters: Optional[RideFilters] = None,
        sort_by: Any = None,
        sort_dir: Any = None,
        page: Any = None,
        page_size: Any = None,
    ) -> "SearchOptions":
        """Whitelist and clamp raw request values; never raises."""
        return cls(
            filters=filters or RideFilters(),
            sort_by=normalize_sort_by(sort_by),
            sort_dir=normalize_sort_dir(sort_dir),
            page=clamp_page(page),
            page_size=clamp_page_size(page_size),
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass
class BuiltSearch:
    count_sql: str
    count_params: List[Any]
    page_sql: str
    page_params: List[Any]


class SearchQueryBuilder:
    """Composes the count and page statements for one schema profile."""

    def __init__(self, backend: SqlBackend, profile: SchemaProfile):
        self._backend = backend
        self._profile = profile
        self._table_sql = backend.quote(profile.table_name)
        self._id_sql = backend.quote(profile.id_column)
        self._dates = DateNormalizer(
            backend, backend.quote(profile.date_column), profile.date_kind
        )

    def _col(self, name: str) -> str:
        return self._backend.quote(name)

    def _where(self, filters: RideFilters) -> Tuple[str, List[Any]]:
        ph = self._backend.placeholder
        clauses: List[str] = []
        params: List[Any] = []

        if filters.date_from is not None:
            clauses.append(self._dates.lower_bound())
            params.append(filters.date_from.isoformat())
        if filters.date_to is not None:
            clauses.append(self._dates.upper_bound())
            params.append(filters.date_to.isoformat())

        exact = (
            ("TOUR_OPER", filters.tour_operator),
            (DRIVER_FIELD, filters.driver),
            ("FROM", filters.from_location),
            ("TO", filters.to_location),
        )
        for column, value in exact:
            if value is None:
                continue
            clauses.append(f"{self._col(column)} = {ph}")
            params.append(value)

        where_sql = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where_sql, params

    def _order_by(self, sort_by: str, sort_dir: str) -> str:
        has_time = self._profile.has_column(TIME_FIELD)
        if sort_by == TIME_FIELD and not has_time:
            sort_by = DEFAULT_SORT_FIELD

        direction = sort_dir.upper()
        date_key = self._dates.sort_key()
        time_key = self._col(TIME_FIELD)
        primary = {
            ID_FIELD: self._id_sql,
            DATE_FIELD: date_key,
            TIME_FIELD: time_key,
        }[sort_by]

        keys = [f"{primary} {direction}"]
        if sort_by != DATE_FIELD:
            keys.append(f"{date_key} DESC")
        if sort_by != TIME_FIELD and has_time:
            keys.append(f"{time_key} DESC")
        # Unique last key so equal dates and times still page deterministically.
        if sort_by != ID_FIELD:
            keys.append(f"{self._id_sql} DESC")
        return ", ".join(keys)

    def select_list(self) -> str:
        columns = [
            f"{self._id_sql} AS {self._col(ID_FIELD)}",
            f"{self._dates.select_expr()} AS {self._col(DATE_FIELD)}",
        ]
        for spec in RIDE_FIELDS:
            if spec.name == DATE_FIELD or not self._profile.has_column(spec.name):
                continue
            columns.append(self._col(spec.name))
        return ", ".join(columns)

    def build(self, options: SearchOptions) -> BuiltSearch:
        where_sql, params = self._where(options.filters)
        ph = self._backend.placeholder

        count_sql = f"SELECT COUNT(*) AS total FROM {self._table_sql} {where_sql}"
        page_sql = (
            f"SELECT {self.select_list()} FROM {self._table_sql} {where_sql} "
            f"ORDER BY {self._order_by(options.sort_by, options.sort_dir)} "
            f"LIMIT {ph} OFFSET {ph}"
        )
        log.debug(f"Built search: SQL='{page_sql}', Params={params}")
        return BuiltSearch(
            count_sql=count_sql,
            count_params=list(params),
            page_sql=page_sql,
            page_params=list(params) + [options.page_size, options.offset],
        )
