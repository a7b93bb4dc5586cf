# tests/ride_data.py
from typing import Any, Dict, List

from ride_repository.ride_repository import RideRepository


def make_ride(**overrides: Any) -> Dict[str, Any]:
    """A complete ride body using business field names."""
    ride = {
        "THE_DATE": "2024-05-01",
        "TIME": "10:00",
        "TYPE": "ARR",
        "FROM": "Airport",
        "TO": "Hotel",
        "HOTEL NAME": "Sea View",
        "AREA": "North",
        "FLY_CODE": "A3 600",
        "FLY_COMPANY": "Aegean",
        "THE_NAME": "Jane Doe",
        "EMAIL": "jane@example.com",
        "PAX": "2",
        "ADULT": "2",
        "CH/INF": "",
        "INFO": "",
        "VCode": "V-1",
        "TOUR_OPER": "TUI",
        "PRICE": "40",
        "DRIVER_PRICE": "25",
        "DRIVER": "Nikos",
    }
    ride.update(overrides)
    return ride


async def insert_rides(
    repo: RideRepository, rides: List[Dict[str, Any]], logger
) -> List[Any]:
    return [await repo.insert(ride, logger) for ride in rides]
