from __future__ import annotations

import httpx
import polyline
import pytest

from refuel_planner.exceptions import ExternalServiceError, RouteError
from refuel_planner.services.geo import haversine_km
from refuel_planner.services.routing import (
    BASE_ROUTE_FIELD_MASK,
    STOP_ROUTE_FIELD_MASK,
    RoutesClient,
    parse_duration_seconds,
)
from refuel_planner.services.types import GeoPoint

ROUTES_URL = "https://routes.googleapis.com/directions/v2:computeRoutes"
ORIGIN = GeoPoint(40.4168, -3.7038)
STOP = GeoPoint(40.9, -3.2)
DESTINATION = GeoPoint(41.3874, 2.1686)


def _response(payload, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=payload, request=httpx.Request("POST", ROUTES_URL))


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("3600s", 3600.0),
        ("12.5s", 12.5),
        ("0s", 0.0),
        ("3600", 0.0),
        ("abcs", 0.0),
        ("", 0.0),
        (None, 0.0),
        (42, 0.0),
    ],
)
def test_parse_duration_seconds(value, expected: float) -> None:
    assert parse_duration_seconds(value) == expected


def test_base_route_without_key_is_straight_line(mocker) -> None:
    post = mocker.patch("refuel_planner.services.routing.httpx.post")

    base = RoutesClient(api_key="").base_route(ORIGIN, DESTINATION)

    assert base.base_distance_km == pytest.approx(haversine_km(ORIGIN, DESTINATION))
    assert base.base_duration_sec == 0.0
    assert base.encoded_path == ""
    assert base.points == (ORIGIN, DESTINATION)
    post.assert_not_called()


def test_base_route_parses_google_response(mocker) -> None:
    encoded = polyline.encode([(40.4168, -3.7038), (40.9, -3.2), (41.3874, 2.1686)], 5)
    post = mocker.patch(
        "refuel_planner.services.routing.httpx.post",
        return_value=_response(
            {
                "routes": [
                    {
                        "distanceMeters": 621500,
                        "duration": "22140s",
                        "polyline": {"encodedPolyline": encoded},
                    }
                ]
            }
        ),
    )

    base = RoutesClient(api_key="secret").base_route(ORIGIN, DESTINATION)

    assert base.base_distance_km == pytest.approx(621.5)
    assert base.base_duration_sec == 22140.0
    assert base.encoded_path == encoded
    assert [(point.latitude, point.longitude) for point in base.points] == [
        pytest.approx((40.4168, -3.7038)),
        pytest.approx((40.9, -3.2)),
        pytest.approx((41.3874, 2.1686)),
    ]

    kwargs = post.call_args.kwargs
    assert kwargs["headers"]["X-Goog-Api-Key"] == "secret"
    assert kwargs["headers"]["X-Goog-FieldMask"] == BASE_ROUTE_FIELD_MASK
    assert kwargs["json"]["routingPreference"] == "TRAFFIC_UNAWARE"
    assert kwargs["json"]["computeAlternativeRoutes"] is False
    assert "intermediates" not in kwargs["json"]


def test_base_route_is_cached(mocker) -> None:
    post = mocker.patch(
        "refuel_planner.services.routing.httpx.post",
        return_value=_response({"routes": [{"distanceMeters": 1000, "duration": "60s"}]}),
    )
    client = RoutesClient(api_key="secret")

    first = client.base_route(ORIGIN, DESTINATION)
    second = client.base_route(ORIGIN, DESTINATION)

    assert first == second
    assert first.points == (ORIGIN, DESTINATION)
    assert post.call_count == 1


def test_base_route_without_routes_raises(mocker) -> None:
    mocker.patch("refuel_planner.services.routing.httpx.post", return_value=_response({}))

    with pytest.raises(RouteError):
        RoutesClient(api_key="secret").base_route(ORIGIN, DESTINATION)


def test_transport_failure_raises_external_service_error(mocker) -> None:
    mocker.patch(
        "refuel_planner.services.routing.httpx.post",
        side_effect=httpx.ConnectError("unreachable"),
    )

    with pytest.raises(ExternalServiceError):
        RoutesClient(api_key="secret").base_route(ORIGIN, DESTINATION)


def test_http_error_status_raises_external_service_error(mocker) -> None:
    mocker.patch(
        "refuel_planner.services.routing.httpx.post",
        return_value=_response({"error": {"message": "denied"}}, status_code=403),
    )

    with pytest.raises(ExternalServiceError):
        RoutesClient(api_key="secret").route_with_stop(ORIGIN, STOP, DESTINATION)


def test_route_with_stop_without_key_sums_haversine() -> None:
    distances = RoutesClient(api_key="").route_with_stop(ORIGIN, STOP, DESTINATION)

    assert distances.distance_to_stop_km == pytest.approx(haversine_km(ORIGIN, STOP))
    assert distances.distance_with_stop_km == pytest.approx(
        haversine_km(ORIGIN, STOP) + haversine_km(STOP, DESTINATION)
    )


def test_route_with_stop_reads_first_leg(mocker) -> None:
    post = mocker.patch(
        "refuel_planner.services.routing.httpx.post",
        return_value=_response(
            {
                "routes": [
                    {
                        "distanceMeters": 640250,
                        "legs": [{"distanceMeters": 70500}, {"distanceMeters": 569750}],
                    }
                ]
            }
        ),
    )

    distances = RoutesClient(api_key="secret").route_with_stop(
        ORIGIN, STOP, DESTINATION, timeout=3.5
    )

    assert distances.distance_to_stop_km == pytest.approx(70.5)
    assert distances.distance_with_stop_km == pytest.approx(640.25)
    kwargs = post.call_args.kwargs
    assert kwargs["timeout"] == 3.5
    assert kwargs["headers"]["X-Goog-FieldMask"] == STOP_ROUTE_FIELD_MASK
    assert kwargs["json"]["intermediates"] == [
        {"location": {"latLng": {"latitude": STOP.latitude, "longitude": STOP.longitude}}}
    ]


def test_route_with_stop_without_routes_raises(mocker) -> None:
    mocker.patch("refuel_planner.services.routing.httpx.post", return_value=_response({"routes": []}))

    with pytest.raises(RouteError):
        RoutesClient(api_key="secret").route_with_stop(ORIGIN, STOP, DESTINATION)


def test_non_json_body_raises_external_service_error(mocker) -> None:
    mocker.patch(
        "refuel_planner.services.routing.httpx.post",
        return_value=httpx.Response(
            200,
            content=b"<html>502 bad gateway</html>",
            request=httpx.Request("POST", ROUTES_URL),
        ),
    )

    with pytest.raises(ExternalServiceError):
        RoutesClient(api_key="secret").route_with_stop(ORIGIN, STOP, DESTINATION)


@pytest.mark.parametrize(
    "payload",
    [
        {"routes": ["unexpected"]},
        {"routes": {"distanceMeters": 1000}},
        {"routes": [{"distanceMeters": 1000, "legs": ["unexpected"]}]},
    ],
)
def test_route_with_stop_rejects_malformed_routes(payload, mocker) -> None:
    mocker.patch("refuel_planner.services.routing.httpx.post", return_value=_response(payload))

    with pytest.raises(RouteError):
        RoutesClient(api_key="secret").route_with_stop(ORIGIN, STOP, DESTINATION)


def test_base_route_with_truncated_polyline_raises_route_error(mocker) -> None:
    mocker.patch(
        "refuel_planner.services.routing.httpx.post",
        return_value=_response(
            {
                "routes": [
                    {
                        "distanceMeters": 621500,
                        "duration": "22140s",
                        "polyline": {"encodedPolyline": "_p~iF~ps|U_ulL"},
                    }
                ]
            }
        ),
    )

    with pytest.raises(RouteError, match="Invalid route polyline"):
        RoutesClient(api_key="secret").base_route(ORIGIN, DESTINATION)
