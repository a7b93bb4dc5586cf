# src/ride_repository/base/fields.py

"""
Field schema of a ride record.

Business field names are the keys clients send and receive; several of them
contain spaces or slashes and double as the physical column names of the
``data`` table. Each field carries a :class:`FieldKind` that selects the
coercion applied on insert and update.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, Any, Dict, List, Mapping, Optional, Tuple, Union

log = logging.getLogger(__name__)


class FieldKind(Enum):
    """Coercion applied to an inbound field value."""

    NULLABLE_STRING = "nullable_string"
    NULLABLE_NUMBER = "nullable_number"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: FieldKind = FieldKind.NULLABLE_STRING


# Public name of the record id in every response, whatever its physical column.
ID_FIELD = "A/A"
DATE_FIELD = "THE_DATE"
TIME_FIELD = "TIME"
DRIVER_FIELD = "DRIVER"

RIDE_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec(DATE_FIELD),
    FieldSpec(TIME_FIELD),
    FieldSpec("TYPE"),
    FieldSpec("FROM"),
    FieldSpec("TO"),
    FieldSpec("HOTEL NAME"),
    FieldSpec("AREA"),
    FieldSpec("FLY_CODE"),
    FieldSpec("FLY_COMPANY"),
    FieldSpec("THE_NAME"),
    FieldSpec("EMAIL"),
    FieldSpec("PAX", FieldKind.NULLABLE_NUMBER),
    FieldSpec("ADULT", FieldKind.NULLABLE_NUMBER),
    FieldSpec("CH/INF"),
    FieldSpec("INFO"),
    FieldSpec("VCode"),
    FieldSpec("TOUR_OPER"),
    FieldSpec("PRICE", FieldKind.NULLABLE_NUMBER),
    FieldSpec("DRIVER_PRICE", FieldKind.NULLABLE_NUMBER),
    FieldSpec(DRIVER_FIELD),
)

REQUIRED_ON_INSERT: Tuple[str, ...] = (DATE_FIELD, "FROM", "TO")


def _as_text(value: Any) -> str:
    return str(value if value is not None else "").strip()


def to_nullable_string(value: Any) -> Optional[str]:
    """Trim the value; blank input becomes None."""
    raw = _as_text(value)
    return raw or None


def to_nullable_number(value: Any) -> Optional[float]:
    """
    Parse a number, accepting a comma as decimal separator.

    Blank, unparseable and non-finite input all become None.
    """
    raw = _as_text(value)
    if not raw:
        return None
    normalized = raw.replace(",", ".", 1)
    try:
        parsed = float(normalized)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


_CASTS = {
    FieldKind.NULLABLE_STRING: to_nullable_string,
    FieldKind.NULLABLE_NUMBER: to_nullable_number,
}


def coerce(kind: FieldKind, value: Any) -> Union[str, float, None]:
    return _CASTS[kind](value)


def missing_required(body: Mapping[str, Any]) -> List[str]:
    """Names of required insert fields that are absent or blank, in field order."""
    return [name for name in REQUIRED_ON_INSERT if not _as_text(body.get(name))]


def map_fields(
    body: Mapping[str, Any], existing_columns: AbstractSet[str]
) -> Dict[str, Any]:
    """
    Select and coerce the recognized fields present in ``body``.

    A field is kept only when its key is present in the input and its column
    exists on the live table. Unrecognized keys are ignored.
    """
    mapped: Dict[str, Any] = {}
    for spec in RIDE_FIELDS:
        if spec.name not in body:
            continue
        if spec.name not in existing_columns:
            log.debug(f"Skipping field '{spec.name}': column does not exist.")
            continue
        mapped[spec.name] = coerce(spec.kind, body[spec.name])
    return mapped
