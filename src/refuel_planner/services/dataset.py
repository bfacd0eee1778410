from __future__ import annotations

from refuel_planner.models import FuelStation
from refuel_planner.services.types import StationRecord


def station_record_from_model(station: FuelStation) -> StationRecord:
    return StationRecord(
        station_id=station.station_code,
        name=station.brand,
        latitude=station.latitude,
        longitude=station.longitude,
        price_gasoline_95=float(station.price_gasoline_95 or 0),
        price_gasoline_98=float(station.price_gasoline_98 or 0),
        price_diesel=float(station.price_diesel or 0),
        price_diesel_premium=float(station.price_diesel_premium or 0),
        price_lpg=float(station.price_lpg or 0),
        opening_hours=station.opening_hours,
    )


def load_station_records() -> list[StationRecord]:
    stations = FuelStation.objects.only(
        "station_code",
        "brand",
        "latitude",
        "longitude",
        "opening_hours",
        "price_gasoline_95",
        "price_gasoline_98",
        "price_diesel",
        "price_diesel_premium",
        "price_lpg",
    )
    return [station_record_from_model(station) for station in stations.iterator(chunk_size=1000)]
