from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from django.conf import settings

from refuel_planner.services.corridor import price_for_fuel
from refuel_planner.services.geo import point_to_polyline_km, sample_polyline
from refuel_planner.services.types import (
    CorridorCandidate,
    FilterSettings,
    GeoPoint,
    StationRecord,
)

MIN_CANDIDATES = 20
MAX_CANDIDATES = 60
CANDIDATES_PER_100_KM = 20
SHORT_RANGE_KM = 80.0
SHORT_RANGE_MAX_CANDIDATES = 30


def pre_rank(
    stations: Iterable[StationRecord],
    route_points: Sequence[GeoPoint],
    filters: FilterSettings,
    step_km: float | None = None,
) -> list[CorridorCandidate]:
    sampled = sample_polyline(route_points, step_km or settings.ROUTE_SAMPLE_STEP_KM)
    candidates = [
        CorridorCandidate(
            station=station,
            route_distance_km=point_to_polyline_km(station.point, sampled),
        )
        for station in stations
    ]

    if filters.sort_by == "price":
        return sorted(
            candidates,
            key=lambda candidate: (
                price_for_fuel(candidate.station, filters.fuel_kind),
                candidate.route_distance_km,
            ),
        )

    return sorted(
        candidates,
        key=lambda candidate: (
            candidate.route_distance_km,
            price_for_fuel(candidate.station, filters.fuel_kind),
        ),
    )


def candidate_limit(base_distance_km: float, usable_range_km: float) -> int:
    """Number of pre-ranked candidates that get a real with-stop route."""
    scaled = math.floor(base_distance_km / 100.0 * CANDIDATES_PER_100_KM + 0.5)
    limit = max(MIN_CANDIDATES, min(MAX_CANDIDATES, scaled))
    if usable_range_km < SHORT_RANGE_KM:
        limit = min(limit, SHORT_RANGE_MAX_CANDIDATES)
    return int(limit)


def final_rank(
    stations: Iterable[StationRecord | None],
    filters: FilterSettings,
    limit: int | None = None,
) -> list[StationRecord]:
    feasible = [station for station in stations if station is not None]

    def extra_km(station: StationRecord) -> float:
        return station.route_info.extra_km if station.route_info is not None else math.inf

    if filters.sort_by == "distance":
        ordered = sorted(
            feasible,
            key=lambda station: (extra_km(station), price_for_fuel(station, filters.fuel_kind)),
        )
    else:
        ordered = sorted(
            feasible,
            key=lambda station: (price_for_fuel(station, filters.fuel_kind), extra_km(station)),
        )

    return ordered[: settings.SHORTLIST_SIZE if limit is None else limit]
