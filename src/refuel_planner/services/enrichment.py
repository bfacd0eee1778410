from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

import httpx
from django.conf import settings

from refuel_planner.exceptions import EnrichmentError, RoutePlannerError
from refuel_planner.services.corridor import price_for_fuel
from refuel_planner.services.routing import RoutesClient
from refuel_planner.services.types import (
    BaseRoute,
    CorridorCandidate,
    EnrichmentBatch,
    FuelKind,
    GeoPoint,
    RouteInfo,
    StationRecord,
    StopRouteDistances,
    VehicleState,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def map_with_concurrency(
    items: Sequence[T],
    concurrency: int,
    fn: Callable[[T, int], R],
    deadline: float | None = None,
) -> list[R | None]:
    """Apply ``fn`` to every item with at most ``concurrency`` calls in flight.

    Workers share one cursor; each index is claimed by exactly one worker and its
    result is stored at the same index. Items still unclaimed when ``deadline``
    (a ``time.monotonic()`` value) passes keep a ``None`` slot. Exceptions raised
    by ``fn`` propagate to the caller.
    """
    results: list[R | None] = [None] * len(items)
    if not items:
        return results

    cursor = 0
    cursor_lock = threading.Lock()

    def claim() -> int | None:
        nonlocal cursor
        with cursor_lock:
            if cursor >= len(items):
                return None
            if deadline is not None and time.monotonic() >= deadline:
                return None
            index = cursor
            cursor += 1
            return index

    def worker() -> None:
        while True:
            index = claim()
            if index is None:
                return
            results[index] = fn(items[index], index)

    width = max(1, min(concurrency, len(items)))
    with ThreadPoolExecutor(max_workers=width, thread_name_prefix="detour") as executor:
        futures = [executor.submit(worker) for _ in range(width)]
        for future in futures:
            future.result()

    return results


class DetourEnricher:
    def __init__(
        self,
        routes_client: RoutesClient | None = None,
        concurrency: int | None = None,
        call_timeout: float | None = None,
    ) -> None:
        self.routes_client = routes_client or RoutesClient()
        self.concurrency = concurrency or settings.ENRICHMENT_CONCURRENCY
        self.call_timeout = call_timeout or settings.ENRICHMENT_CALL_TIMEOUT_SECONDS

    def enrich(
        self,
        candidates: Sequence[CorridorCandidate],
        origin: GeoPoint,
        destination: GeoPoint,
        base_route: BaseRoute,
        vehicle: VehicleState,
        fuel_kind: FuelKind,
        deadline: float | None = None,
    ) -> EnrichmentBatch:
        failures = 0
        attempted = 0
        counter_lock = threading.Lock()

        def record_failure() -> None:
            nonlocal failures
            with counter_lock:
                failures += 1

        def enrich_one(candidate: CorridorCandidate, index: int) -> StationRecord | None:
            nonlocal attempted
            with counter_lock:
                attempted += 1
            station = candidate.station
            station.route_info = None
            station.distance_km = None
            timeout = self._call_timeout(deadline)
            if timeout is not None and timeout <= 0:
                logger.warning("Deadline reached before routing station %s", station.station_id)
                record_failure()
                return None
            try:
                distances = self.routes_client.route_with_stop(
                    origin, station.point, destination, timeout=timeout
                )
            except (RoutePlannerError, httpx.HTTPError) as exc:
                logger.warning(
                    "Route with stop failed for station %s: %s", station.station_id, exc
                )
                record_failure()
                return None
            return self._apply_detour(station, distances, base_route, vehicle, fuel_kind)

        slots = map_with_concurrency(candidates, self.concurrency, enrich_one, deadline=deadline)

        unclaimed = len(candidates) - attempted
        if unclaimed:
            logger.warning("Pipeline deadline left %s candidates unrouted", unclaimed)
            failures += unclaimed

        if candidates and failures >= len(candidates):
            raise EnrichmentError("Route with stop failed for every candidate")

        logger.info(
            "Enriched %s candidates: %s feasible, %s failed",
            len(candidates),
            sum(1 for slot in slots if slot is not None),
            failures,
        )
        return EnrichmentBatch(slots=slots, failed=failures)

    def _call_timeout(self, deadline: float | None) -> float | None:
        if deadline is None:
            return self.call_timeout
        return min(self.call_timeout, deadline - time.monotonic())

    @staticmethod
    def _apply_detour(
        station: StationRecord,
        distances: StopRouteDistances,
        base_route: BaseRoute,
        vehicle: VehicleState,
        fuel_kind: FuelKind,
    ) -> StationRecord | None:
        # Provider rounding can make the stop route slightly shorter than the base.
        extra_km = max(0.0, distances.distance_with_stop_km - base_route.base_distance_km)

        if distances.distance_to_stop_km > vehicle.usable_range_km:
            return None

        extra_liters = extra_km * vehicle.consumption_l_per_100km / 100.0
        extra_cost = extra_liters * price_for_fuel(station, fuel_kind)

        station.route_info = RouteInfo(
            distance_to_stop_km=distances.distance_to_stop_km,
            distance_with_stop_km=distances.distance_with_stop_km,
            extra_km=extra_km,
            extra_liters=extra_liters,
            extra_cost=extra_cost,
        )
        station.distance_km = extra_km
        return station
