from __future__ import annotations

import json
import logging
from typing import Any

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST
from pydantic import ValidationError

from refuel_planner.exceptions import (
    EnrichmentError,
    ExternalServiceError,
    GeocodeError,
    InsufficientRangeError,
    InvalidAddressError,
    RouteError,
    StationDatasetEmptyError,
)
from refuel_planner.models import FuelStation
from refuel_planner.schemas import RefuelSearchRequest
from refuel_planner.services.companies import available_companies
from refuel_planner.services.planner import RefuelPlannerService

logger = logging.getLogger(__name__)

_planner_service: RefuelPlannerService | None = None


def get_refuel_planner() -> RefuelPlannerService:
    global _planner_service
    if _planner_service is None:
        _planner_service = RefuelPlannerService()
    return _planner_service


@require_GET
def health_view(_: HttpRequest) -> HttpResponse:
    total_stations = FuelStation.objects.count()
    with_lpg = FuelStation.objects.filter(price_lpg__gt=0).count()
    return JsonResponse(
        {
            "status": "ok",
            "stations": {
                "total": total_stations,
                "with_lpg": with_lpg,
            },
        }
    )


@require_GET
def companies_view(_: HttpRequest) -> HttpResponse:
    brands = (
        FuelStation.objects.exclude(brand="")
        .values_list("brand", flat=True)
        .distinct()
        .order_by("brand")
    )
    return JsonResponse({"companies": available_companies(brands)})


@csrf_exempt
@require_POST
def refuel_stops_view(request: HttpRequest) -> HttpResponse:
    payload = _parse_json_payload(request)
    if isinstance(payload, JsonResponse):
        return payload

    try:
        search_request = RefuelSearchRequest.model_validate(payload)
    except ValidationError as exc:
        return JsonResponse(
            {
                "error": {
                    "code": "validation_error",
                    "message": "Invalid request payload",
                    "details": exc.errors(include_url=False, include_context=False),
                }
            },
            status=400,
        )

    planner = get_refuel_planner()
    try:
        response = planner.plan(search_request)
    except InsufficientRangeError as exc:
        return _error_response("insufficient_range", str(exc), status=422)
    except InvalidAddressError as exc:
        return _error_response("invalid_address", str(exc), status=400)
    except GeocodeError as exc:
        return _error_response("geocode_failed", str(exc), status=400)
    except StationDatasetEmptyError as exc:
        return _error_response("no_stations", str(exc), status=503)
    except RouteError as exc:
        return _error_response("no_route", str(exc), status=502)
    except EnrichmentError as exc:
        return _error_response("enrichment_failed", str(exc), status=502)
    except ExternalServiceError as exc:
        logger.warning("Upstream failure during refuel search: %s", exc)
        return _error_response("upstream_error", str(exc), status=502)

    return JsonResponse(response.model_dump(mode="json"), status=200)


def _parse_json_payload(request: HttpRequest) -> dict[str, Any] | JsonResponse:
    if not request.body:
        return {}

    try:
        payload = json.loads(request.body)
    except json.JSONDecodeError:
        return _error_response("invalid_json", "Request body must be valid JSON", status=400)

    if not isinstance(payload, dict):
        return _error_response("invalid_json", "JSON body must be an object", status=400)

    return payload


def _error_response(code: str, message: str, status: int) -> JsonResponse:
    return JsonResponse({"error": {"code": code, "message": message}}, status=status)
