from __future__ import annotations

import math

import pytest

from refuel_planner.services.geo import EARTH_RADIUS_KM
from refuel_planner.services.ranking import candidate_limit, final_rank, pre_rank
from refuel_planner.services.types import (
    FilterSettings,
    FuelKind,
    GeoPoint,
    RouteInfo,
    StationRecord,
)

KM_PER_DEGREE = EARTH_RADIUS_KM * math.pi / 180.0
ORIGIN = GeoPoint(40.0, -3.7)
ROUTE = (ORIGIN, GeoPoint(ORIGIN.latitude + 100.0 / KM_PER_DEGREE, ORIGIN.longitude))


def _off_route(station_id: str, offset_km: float, price: float) -> StationRecord:
    latitude = ORIGIN.latitude + 50.0 / KM_PER_DEGREE
    longitude = ORIGIN.longitude + offset_km / (KM_PER_DEGREE * math.cos(math.radians(latitude)))
    return StationRecord(
        station_id=station_id,
        name=f"Station {station_id}",
        latitude=latitude,
        longitude=longitude,
        price_gasoline_95=price,
    )


def _enriched(station_id: str, extra_km: float | None, price: float) -> StationRecord:
    station = StationRecord(
        station_id=station_id,
        name=f"Station {station_id}",
        latitude=ORIGIN.latitude,
        longitude=ORIGIN.longitude,
        price_gasoline_95=price,
    )
    if extra_km is not None:
        station.route_info = RouteInfo(
            distance_to_stop_km=10.0,
            distance_with_stop_km=100.0 + extra_km,
            extra_km=extra_km,
            extra_liters=extra_km * 0.06,
            extra_cost=extra_km * 0.06 * price,
        )
        station.distance_km = extra_km
    return station


def test_pre_rank_by_distance_sorts_by_route_distance() -> None:
    stations = [
        _off_route("c", 4.0, 1.40),
        _off_route("a", 0.5, 1.60),
        _off_route("b", 2.0, 1.50),
    ]

    ranked = pre_rank(stations, ROUTE, FilterSettings(sort_by="distance"))

    assert [candidate.station.station_id for candidate in ranked] == ["a", "b", "c"]
    distances = [candidate.route_distance_km for candidate in ranked]
    assert distances == sorted(distances)
    assert distances[0] == pytest.approx(0.5, rel=1e-6)


def test_pre_rank_by_distance_breaks_ties_by_price() -> None:
    stations = [_off_route("pricey", 1.0, 1.70), _off_route("cheap", 1.0, 1.50)]

    ranked = pre_rank(stations, ROUTE, FilterSettings(sort_by="distance"))

    assert [candidate.station.station_id for candidate in ranked] == ["cheap", "pricey"]


def test_pre_rank_by_price_breaks_ties_by_route_distance() -> None:
    stations = [
        _off_route("far", 3.0, 1.50),
        _off_route("near", 1.0, 1.50),
        _off_route("cheapest", 4.5, 1.30),
    ]

    ranked = pre_rank(stations, ROUTE, FilterSettings(sort_by="price"))

    assert [candidate.station.station_id for candidate in ranked] == ["cheapest", "near", "far"]


def test_pre_rank_does_not_touch_station_records() -> None:
    station = _off_route("a", 1.0, 1.5)

    pre_rank([station], ROUTE, FilterSettings())

    assert station.distance_km is None
    assert station.route_info is None


@pytest.mark.parametrize(
    ("base_km", "usable_km", "expected"),
    [
        (10.0, 500.0, 20),
        (100.0, 500.0, 20),
        (150.0, 500.0, 30),
        (157.0, 500.0, 31),
        (250.0, 500.0, 50),
        (1000.0, 500.0, 60),
        (1000.0, 79.9, 30),
        (50.0, 60.0, 20),
        (1000.0, 80.0, 60),
    ],
)
def test_candidate_limit(base_km: float, usable_km: float, expected: int) -> None:
    assert candidate_limit(base_km, usable_km) == expected


def test_final_rank_by_distance() -> None:
    stations = [
        _enriched("b", 2.0, 1.40),
        _enriched("a", 1.0, 1.60),
        _enriched("c", 2.0, 1.30),
        None,
        _enriched("d", 5.0, 1.20),
    ]

    ranked = final_rank(stations, FilterSettings(sort_by="distance"))

    assert [station.station_id for station in ranked] == ["a", "c", "b"]


def test_final_rank_by_price() -> None:
    stations = [
        _enriched("b", 2.0, 1.40),
        _enriched("a", 1.0, 1.60),
        _enriched("c", 3.0, 1.40),
        _enriched("d", 5.0, 1.20),
    ]

    ranked = final_rank(stations, FilterSettings(sort_by="price"))

    assert [station.station_id for station in ranked] == ["d", "b", "c"]


def test_final_rank_puts_missing_route_info_last() -> None:
    stations = [_enriched("missing", None, 1.0), _enriched("known", 30.0, 1.9)]

    ranked = final_rank(stations, FilterSettings(sort_by="distance"), limit=5)

    assert [station.station_id for station in ranked] == ["known", "missing"]


def test_final_rank_uses_selected_fuel_price() -> None:
    cheap_diesel = _enriched("diesel", 1.0, 1.80)
    cheap_diesel.price_diesel = 1.10
    other = _enriched("other", 1.0, 1.50)
    other.price_diesel = 1.40

    ranked = final_rank([other, cheap_diesel], FilterSettings(fuel_kind=FuelKind.DIESEL_A, sort_by="price"))

    assert [station.station_id for station in ranked] == ["diesel", "other"]
