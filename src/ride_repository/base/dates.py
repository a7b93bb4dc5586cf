# src/ride_repository/base/dates.py

"""
Calendar-date normalization.

Ride dates are stored either in a native date/datetime/timestamp column or as
free text in one of a few legacy layouts. Text values are read through a fixed
chain of formats, first success wins:

1. the value parsed directly as a date,
2. everything before a literal ``T`` as ``YYYY-MM-DD``,
3. ``DD/MM/YYYY``,
4. ``YYYY-MM-DD``.

The same chain is spelled in SQL by each backend and in Python below (used for
filter bounds), so both sides agree on what a stored value means.
"""

from datetime import date, datetime
from typing import Callable, Optional, Tuple

from ride_repository.base.backend import SqlBackend
from ride_repository.base.schema import DateColumnKind


def _parse_direct(raw: str) -> date:
    return datetime.fromisoformat(raw).date()


def _parse_before_t(raw: str) -> date:
    if "T" not in raw:
        raise ValueError("no 'T' separator")
    return datetime.strptime(raw.split("T", 1)[0], "%Y-%m-%d").date()


def _parse_day_first(raw: str) -> date:
    return datetime.strptime(raw, "%d/%m/%Y").date()


def _parse_iso_day(raw: str) -> date:
    return datetime.strptime(raw, "%Y-%m-%d").date()


DATE_PARSERS: Tuple[Callable[[str], date], ...] = (
    _parse_direct,
    _parse_before_t,
    _parse_day_first,
    _parse_iso_day,
)


def parse_calendar_date(value) -> Optional[date]:
    """Return the calendar date of ``value``, or None when no format matches."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    if not raw:
        return None
    for parser in DATE_PARSERS:
        try:
            return parser(raw)
        except ValueError:
            continue
    return None


class DateNormalizer:
    """
    Comparison, sort and output expressions for the date column of a table.

    For native columns the raw column is compared and sorted; the inclusive
    upper bound becomes ``< bound + 1 day`` so any time of day on the end date
    matches. For text columns the normalized expression (which has no time
    part) is compared with ``<= bound``.
    """

    def __init__(self, backend: SqlBackend, column_sql: str, kind: DateColumnKind):
        self._backend = backend
        self._column_sql = column_sql
        self._kind = kind

    @property
    def is_native(self) -> bool:
        return self._kind is DateColumnKind.NATIVE

    def sort_key(self) -> str:
        if self.is_native:
            return self._column_sql
        return self._backend.normalized_date_sql(self._column_sql)

    def lower_bound(self) -> str:
        return f"{self.sort_key()} >= {self._backend.placeholder}"

    def upper_bound(self) -> str:
        if self.is_native:
            return (
                f"{self._column_sql} < "
                f"{self._backend.day_after_sql(self._backend.placeholder)}"
            )
        return f"{self.sort_key()} <= {self._backend.placeholder}"

    def select_expr(self) -> str:
        """``YYYY-MM-DD`` rendering; unparseable text is returned unchanged."""
        formatted = self._backend.format_date_sql(self.sort_key())
        if self.is_native:
            return formatted
        return f"COALESCE({formatted}, {self._column_sql})"
