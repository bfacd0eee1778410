from __future__ import annotations

from collections.abc import Iterable, Sequence

from django.conf import settings

from refuel_planner.services.companies import CompanyMatcher, belongs_to_company
from refuel_planner.services.geo import point_to_polyline_km, sample_polyline
from refuel_planner.services.types import FilterSettings, FuelKind, GeoPoint, StationRecord

# Lower-case fragments of "cerrado"/"cerrada" and "clausurado"/"clausura".
CLOSED_KEYWORDS = ("cerrad", "clausur")


def price_for_fuel(station: StationRecord, fuel_kind: FuelKind) -> float:
    if fuel_kind == FuelKind.ALL:
        positive = [price for price in station.prices() if price > 0]
        return min(positive) if positive else 0.0

    price = {
        FuelKind.GASOLINE_95_E5: station.price_gasoline_95,
        FuelKind.GASOLINE_98_E5: station.price_gasoline_98,
        FuelKind.DIESEL_A: station.price_diesel,
        FuelKind.DIESEL_PREMIUM: station.price_diesel_premium,
        FuelKind.LPG: station.price_lpg,
    }.get(fuel_kind, 0.0)
    return price or 0.0


def has_fuel_within_price(station: StationRecord, filters: FilterSettings) -> bool:
    price = price_for_fuel(station, filters.fuel_kind)
    if not price > 0:
        return False
    return filters.max_price <= 0 or price <= filters.max_price


def is_probably_open(opening_hours: str | None) -> bool:
    hours = (opening_hours or "").lower()
    if not hours:
        return True
    return not any(keyword in hours for keyword in CLOSED_KEYWORDS)


def filter_by_attributes(
    stations: Iterable[StationRecord],
    filters: FilterSettings,
    company_matcher: CompanyMatcher = belongs_to_company,
) -> list[StationRecord]:
    selected: list[StationRecord] = []
    for station in stations:
        if not has_fuel_within_price(station, filters):
            continue

        if filters.companies:
            belongs = any(company_matcher(station.name, company) for company in filters.companies)
            if filters.company_mode == "include" and not belongs:
                continue
            if filters.company_mode == "exclude" and belongs:
                continue

        if filters.only_open and not is_probably_open(station.opening_hours):
            continue

        selected.append(station)
    return selected


def filter_by_corridor(
    stations: Iterable[StationRecord],
    route_points: Sequence[GeoPoint],
    radius_km: float,
    step_km: float | None = None,
) -> list[StationRecord]:
    if len(route_points) < 2:
        return []

    sampled = sample_polyline(route_points, step_km or settings.ROUTE_SAMPLE_STEP_KM)
    return [
        station
        for station in stations
        if point_to_polyline_km(station.point, sampled) <= radius_km
    ]


def select_corridor_stations(
    stations: Iterable[StationRecord],
    route_points: Sequence[GeoPoint],
    filters: FilterSettings,
    company_matcher: CompanyMatcher = belongs_to_company,
) -> list[StationRecord]:
    # Attribute checks are cheap, so they shrink the set before the geometric pass.
    by_attributes = filter_by_attributes(stations, filters, company_matcher)
    return filter_by_corridor(by_attributes, route_points, filters.max_distance_km)
