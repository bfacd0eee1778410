from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable

from django.conf import settings

from refuel_planner.exceptions import InsufficientRangeError, StationDatasetEmptyError
from refuel_planner.schemas import (
    BaseRouteResponse,
    Coordinate,
    RefuelSearchRequest,
    RefuelSearchResponse,
    RouteInfoResponse,
    StationStopResponse,
)
from refuel_planner.services.companies import CompanyMatcher, belongs_to_company
from refuel_planner.services.corridor import price_for_fuel, select_corridor_stations
from refuel_planner.services.dataset import load_station_records
from refuel_planner.services.enrichment import DetourEnricher
from refuel_planner.services.geocoding import GeocodingClient
from refuel_planner.services.ranking import candidate_limit, final_rank, pre_rank
from refuel_planner.services.routing import RoutesClient
from refuel_planner.services.types import (
    CONSUMPTION_L_PER_100KM,
    RESERVE_KM,
    RefuelSearchResult,
    StationRecord,
    VehicleState,
)

logger = logging.getLogger(__name__)

StationLoader = Callable[[], list[StationRecord]]


class RefuelPlannerService:
    def __init__(
        self,
        geocoding_client: GeocodingClient | None = None,
        routes_client: RoutesClient | None = None,
        enricher: DetourEnricher | None = None,
        station_loader: StationLoader | None = None,
        company_matcher: CompanyMatcher | None = None,
    ) -> None:
        self.geocoding_client = geocoding_client or GeocodingClient()
        self.routes_client = routes_client or RoutesClient()
        self.enricher = enricher or DetourEnricher(routes_client=self.routes_client)
        self.station_loader = station_loader or load_station_records
        self.company_matcher = company_matcher or belongs_to_company

    def search(self, request: RefuelSearchRequest) -> RefuelSearchResult:
        vehicle = VehicleState(available_range_km=request.available_range_km)
        usable_range_km = vehicle.usable_range_km
        if not math.isfinite(usable_range_km) or usable_range_km <= 0:
            raise InsufficientRangeError(
                f"Insufficient range: a minimum reserve of {vehicle.reserve_km:g} km is required"
            )

        deadline = time.monotonic() + settings.PIPELINE_DEADLINE_SECONDS

        stations = self.station_loader()
        if not stations:
            raise StationDatasetEmptyError("No fuel stations are loaded")

        filters = request.filters.to_settings()

        origin = self.geocoding_client.resolve(request.origin.to_location())
        destination = self.geocoding_client.resolve(request.destination.to_location())
        base_route = self.routes_client.base_route(origin, destination)

        corridor = select_corridor_stations(
            stations, base_route.points, filters, self.company_matcher
        )
        ranked = pre_rank(corridor, base_route.points, filters)
        limit = candidate_limit(base_route.base_distance_km, usable_range_km)
        top_candidates = ranked[:limit]
        logger.info(
            "Base route %.1f km: %s stations in corridor, routing top %s",
            base_route.base_distance_km,
            len(corridor),
            len(top_candidates),
        )

        batch = self.enricher.enrich(
            top_candidates,
            origin,
            destination,
            base_route,
            vehicle,
            filters.fuel_kind,
            deadline=deadline,
        )
        stops = final_rank(batch.slots, filters)

        return RefuelSearchResult(
            origin=origin,
            destination=destination,
            base_route=base_route,
            corridor_count=len(corridor),
            enriched_count=len(batch.feasible),
            failed_count=batch.failed,
            stops=stops,
        )

    def plan(self, request: RefuelSearchRequest) -> RefuelSearchResponse:
        result = self.search(request)
        fuel_kind = request.filters.fuel_kind

        stops = [
            StationStopResponse(
                station_id=station.station_id,
                name=station.name,
                latitude=station.latitude,
                longitude=station.longitude,
                opening_hours=station.opening_hours,
                price_per_liter=round(price_for_fuel(station, fuel_kind), 3),
                distance_km=round(station.route_info.extra_km, 3),
                route_info=RouteInfoResponse(
                    distance_to_stop_km=round(station.route_info.distance_to_stop_km, 3),
                    distance_with_stop_km=round(station.route_info.distance_with_stop_km, 3),
                    extra_km=round(station.route_info.extra_km, 3),
                    extra_liters=round(station.route_info.extra_liters, 3),
                    extra_cost=round(station.route_info.extra_cost, 2),
                ),
            )
            for station in result.stops
            if station.route_info is not None
        ]

        base_route = result.base_route
        return RefuelSearchResponse(
            origin=Coordinate(
                latitude=round(result.origin.latitude, 6),
                longitude=round(result.origin.longitude, 6),
            ),
            destination=Coordinate(
                latitude=round(result.destination.latitude, 6),
                longitude=round(result.destination.longitude, 6),
            ),
            base_route=BaseRouteResponse(
                distance_km=round(base_route.base_distance_km, 3),
                duration_minutes=round(base_route.base_duration_sec / 60.0, 2),
                encoded_polyline=base_route.encoded_path,
                route_geojson={
                    "type": "LineString",
                    "coordinates": [
                        [point.longitude, point.latitude] for point in base_route.points
                    ],
                },
            ),
            corridor_candidates=result.corridor_count,
            enriched_candidates=result.enriched_count,
            failed_candidates=result.failed_count,
            stops=stops,
            assumptions={
                "available_range_km": float(request.available_range_km),
                "reserve_km": RESERVE_KM,
                "consumption_l_per_100km": CONSUMPTION_L_PER_100KM,
                "corridor_km": float(request.filters.max_distance_km),
            },
        )
