from __future__ import annotations

import math
from collections.abc import Sequence

from refuel_planner.services.types import GeoPoint

EARTH_RADIUS_KM = 6371.0
POLYLINE_PRECISION = 1e5


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    lat1_rad = math.radians(a.latitude)
    lat2_rad = math.radians(b.latitude)
    dlat = lat2_rad - lat1_rad
    dlon = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(dlat / 2.0) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2.0) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c


def local_xy_km(point: GeoPoint, ref_lat: float) -> tuple[float, float]:
    cos_ref = math.cos(math.radians(ref_lat))
    x = math.radians(point.longitude) * cos_ref * EARTH_RADIUS_KM
    y = math.radians(point.latitude) * EARTH_RADIUS_KM
    return x, y


def point_to_segment_km(p: GeoPoint, a: GeoPoint, b: GeoPoint) -> float:
    point_x, point_y = local_xy_km(p, p.latitude)
    start_x, start_y = local_xy_km(a, p.latitude)
    end_x, end_y = local_xy_km(b, p.latitude)

    vector_x = end_x - start_x
    vector_y = end_y - start_y
    vector_norm_sq = vector_x * vector_x + vector_y * vector_y
    if vector_norm_sq == 0:
        return haversine_km(p, a)

    t = ((point_x - start_x) * vector_x + (point_y - start_y) * vector_y) / vector_norm_sq
    t = max(0.0, min(1.0, t))

    projected_x = start_x + t * vector_x
    projected_y = start_y + t * vector_y
    return math.hypot(point_x - projected_x, point_y - projected_y)


def point_to_polyline_km(p: GeoPoint, polyline: Sequence[GeoPoint]) -> float:
    best_distance = math.inf
    for index in range(1, len(polyline)):
        distance = point_to_segment_km(p, polyline[index - 1], polyline[index])
        if distance < best_distance:
            best_distance = distance
    return best_distance


def sample_polyline(points: Sequence[GeoPoint], step_km: float) -> list[GeoPoint]:
    """Thin a dense path so that consecutive kept points are about ``step_km`` apart.

    The first and last points are always kept, so the final step may be shorter.
    """
    if len(points) <= 2:
        return list(points)

    sampled = [points[0]]
    accumulated = 0.0
    for index in range(1, len(points)):
        accumulated += haversine_km(points[index - 1], points[index])
        if accumulated >= step_km:
            sampled.append(points[index])
            accumulated = 0.0

    if sampled[-1] is not points[-1]:
        sampled.append(points[-1])
    return sampled


def decode_polyline(encoded: str) -> list[GeoPoint]:
    """Decode a Google encoded polyline (1e5 precision) into points."""
    points: list[GeoPoint] = []
    index = 0
    latitude = 0
    longitude = 0
    length = len(encoded)

    while index < length:
        delta_lat, index = _decode_value(encoded, index)
        delta_lon, index = _decode_value(encoded, index)
        latitude += delta_lat
        longitude += delta_lon
        points.append(
            GeoPoint(
                latitude=latitude / POLYLINE_PRECISION,
                longitude=longitude / POLYLINE_PRECISION,
            )
        )

    return points


def _decode_value(encoded: str, index: int) -> tuple[int, int]:
    result = 0
    shift = 0
    while True:
        if index >= len(encoded):
            raise ValueError("Truncated encoded polyline")
        chunk = ord(encoded[index]) - 63
        index += 1
        result |= (chunk & 0x1F) << shift
        shift += 5
        if chunk < 0x20:
            break

    value = ~(result >> 1) if result & 1 else result >> 1
    return value, index
