from __future__ import annotations

import hashlib
import logging
import re
import time
from typing import Any

import httpx
from django.conf import settings
from django.core.cache import cache

from refuel_planner.exceptions import ExternalServiceError, RouteError
from refuel_planner.services.geo import decode_polyline, haversine_km
from refuel_planner.services.types import BaseRoute, GeoPoint, StopRouteDistances

logger = logging.getLogger(__name__)

BASE_ROUTE_FIELD_MASK = "routes.distanceMeters,routes.duration,routes.polyline.encodedPolyline"
STOP_ROUTE_FIELD_MASK = "routes.distanceMeters,routes.legs.distanceMeters"

_DURATION_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)s\s*$")


class RoutesClient:
    def __init__(self, api_key: str | None = None) -> None:
        self.api_key = settings.GOOGLE_MAPS_API_KEY if api_key is None else api_key
        self.url = settings.GOOGLE_ROUTES_URL
        self.timeout = settings.ROUTES_TIMEOUT_SECONDS
        self.retry_count = settings.ROUTES_RETRY_COUNT
        self.language_code = settings.ROUTES_LANGUAGE_CODE

    @property
    def has_provider(self) -> bool:
        return bool(self.api_key)

    def base_route(self, origin: GeoPoint, destination: GeoPoint) -> BaseRoute:
        if not self.has_provider:
            logger.info("No routing key configured, using straight-line base route")
            return BaseRoute(
                base_distance_km=haversine_km(origin, destination),
                base_duration_sec=0.0,
                encoded_path="",
                points=(origin, destination),
            )

        cache_key = self._cache_key("base", [origin, destination])
        cached = cache.get(cache_key)
        if cached:
            return BaseRoute(
                base_distance_km=cached["base_distance_km"],
                base_duration_sec=cached["base_duration_sec"],
                encoded_path=cached["encoded_path"],
                points=tuple(GeoPoint(latitude=lat, longitude=lon) for lat, lon in cached["points"]),
            )

        body = self._request_body(origin, destination)
        body["routeModifiers"] = {"avoidTolls": False, "avoidHighways": False, "avoidFerries": False}
        payload = self._post(body, BASE_ROUTE_FIELD_MASK, self.timeout)
        route = self._first_route(payload, "Could not compute base route")

        polyline_field = route.get("polyline")
        encoded_path = ""
        if isinstance(polyline_field, dict):
            encoded_path = str(polyline_field.get("encodedPolyline") or "")
        try:
            points = tuple(decode_polyline(encoded_path)) if encoded_path else (origin, destination)
        except ValueError as exc:
            raise RouteError("Invalid route polyline") from exc
        if len(points) < 2:
            points = (origin, destination)

        base = BaseRoute(
            base_distance_km=_meters_to_km(route.get("distanceMeters")),
            base_duration_sec=parse_duration_seconds(route.get("duration")),
            encoded_path=encoded_path,
            points=points,
        )
        cache.set(
            cache_key,
            {
                "base_distance_km": base.base_distance_km,
                "base_duration_sec": base.base_duration_sec,
                "encoded_path": base.encoded_path,
                "points": [(point.latitude, point.longitude) for point in base.points],
            },
            timeout=settings.ROUTE_CACHE_TTL_SECONDS,
        )
        return base

    def route_with_stop(
        self,
        origin: GeoPoint,
        stop: GeoPoint,
        destination: GeoPoint,
        timeout: float | None = None,
    ) -> StopRouteDistances:
        if not self.has_provider:
            distance_to_stop = haversine_km(origin, stop)
            return StopRouteDistances(
                distance_to_stop_km=distance_to_stop,
                distance_with_stop_km=distance_to_stop + haversine_km(stop, destination),
            )

        cache_key = self._cache_key("stop", [origin, stop, destination])
        cached = cache.get(cache_key)
        if cached:
            return StopRouteDistances(
                distance_to_stop_km=cached["distance_to_stop_km"],
                distance_with_stop_km=cached["distance_with_stop_km"],
            )

        body = self._request_body(origin, destination)
        body["intermediates"] = [{"location": _lat_lng(stop)}]
        payload = self._post(body, STOP_ROUTE_FIELD_MASK, timeout or self.timeout)
        route = self._first_route(payload, "Could not compute route with stop")

        legs = route.get("legs")
        first_leg = legs[0] if isinstance(legs, list) and legs else {}
        if not isinstance(first_leg, dict):
            raise RouteError("Invalid route legs")
        distances = StopRouteDistances(
            distance_to_stop_km=_meters_to_km(first_leg.get("distanceMeters")),
            distance_with_stop_km=_meters_to_km(route.get("distanceMeters")),
        )
        cache.set(
            cache_key,
            {
                "distance_to_stop_km": distances.distance_to_stop_km,
                "distance_with_stop_km": distances.distance_with_stop_km,
            },
            timeout=settings.ROUTE_CACHE_TTL_SECONDS,
        )
        return distances

    def _request_body(self, origin: GeoPoint, destination: GeoPoint) -> dict[str, Any]:
        return {
            "origin": {"location": _lat_lng(origin)},
            "destination": {"location": _lat_lng(destination)},
            "travelMode": "DRIVE",
            "routingPreference": "TRAFFIC_UNAWARE",
            "computeAlternativeRoutes": False,
            "languageCode": self.language_code,
            "units": "METRIC",
        }

    def _post(self, body: dict[str, Any], field_mask: str, timeout: float) -> Any:
        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.api_key,
            "X-Goog-FieldMask": field_mask,
        }
        for attempt in range(self.retry_count + 1):
            try:
                response = httpx.post(self.url, json=body, headers=headers, timeout=timeout)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPError as exc:
                if attempt >= self.retry_count:
                    raise ExternalServiceError("Routes request failed") from exc
                logger.warning("Routes request failed (attempt %s), retrying", attempt + 1)
                time.sleep(0.3 * (attempt + 1))
            except ValueError as exc:
                raise ExternalServiceError("Routes response is not valid JSON") from exc

        raise ExternalServiceError("Routes request failed")

    @staticmethod
    def _first_route(payload: Any, message: str) -> dict[str, Any]:
        routes = payload.get("routes") if isinstance(payload, dict) else None
        if not isinstance(routes, list) or not routes or not isinstance(routes[0], dict):
            raise RouteError(message)
        return routes[0]

    @staticmethod
    def _cache_key(kind: str, waypoints: list[GeoPoint]) -> str:
        encoded = "|".join(
            f"{point.latitude:.5f}:{point.longitude:.5f}" for point in waypoints
        ).encode()
        digest = hashlib.sha256(encoded).hexdigest()
        return f"route:{kind}:{digest}"


def parse_duration_seconds(value: Any) -> float:
    # Routes API durations look like "3600s".
    if not isinstance(value, str):
        return 0.0
    match = _DURATION_PATTERN.match(value)
    if match is None:
        return 0.0
    return float(match.group(1))


def _meters_to_km(value: Any) -> float:
    try:
        return float(value or 0) / 1000.0
    except (TypeError, ValueError):
        return 0.0


def _lat_lng(point: GeoPoint) -> dict[str, Any]:
    return {"latLng": {"latitude": point.latitude, "longitude": point.longitude}}
