from __future__ import annotations

from typing import Literal

from django.conf import settings
from pydantic import BaseModel, ConfigDict, Field

from refuel_planner.services.types import (
    AddressText,
    Coordinates,
    FilterSettings,
    FuelKind,
    GeoPoint,
    Location,
)


class AddressInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    latitude: float | None = Field(default=None, ge=-90.0, le=90.0)
    longitude: float | None = Field(default=None, ge=-180.0, le=180.0)
    street: str = Field(default="", max_length=200)
    number: str = Field(default="", max_length=20)
    city: str = Field(default="", max_length=100)
    province: str = Field(default="", max_length=100)

    def to_location(self) -> Location:
        # (0, 0) is the "unset" marker of stored locations, so it means "geocode the text".
        if (
            self.latitude is not None
            and self.longitude is not None
            and not (self.latitude == 0 and self.longitude == 0)
        ):
            return Coordinates(point=GeoPoint(latitude=self.latitude, longitude=self.longitude))
        return AddressText(
            street=self.street.strip(),
            number=self.number.strip(),
            city=self.city.strip(),
            province=self.province.strip(),
        )


class FiltersInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    fuel_kind: FuelKind = FuelKind.GASOLINE_95_E5
    companies: list[str] = Field(default_factory=list, max_length=50)
    company_mode: Literal["include", "exclude"] = "include"
    max_price: float = Field(default=0.0, ge=0.0, le=10.0)
    max_distance_km: float = Field(
        default_factory=lambda: settings.DEFAULT_CORRIDOR_KM, gt=0.0, le=200.0
    )
    only_open: bool = False
    sort_by: Literal["distance", "price"] = "distance"

    def to_settings(self) -> FilterSettings:
        return FilterSettings(
            fuel_kind=self.fuel_kind,
            companies=tuple(company for company in self.companies if company.strip()),
            company_mode=self.company_mode,
            max_price=self.max_price,
            max_distance_km=self.max_distance_km,
            only_open=self.only_open,
            sort_by=self.sort_by,
        )


class RefuelSearchRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    origin: AddressInput
    destination: AddressInput
    available_range_km: float = Field(ge=0.0, le=3000.0)
    filters: FiltersInput = Field(default_factory=FiltersInput)


class Coordinate(BaseModel):
    latitude: float
    longitude: float


class RouteInfoResponse(BaseModel):
    distance_to_stop_km: float
    distance_with_stop_km: float
    extra_km: float
    extra_liters: float
    extra_cost: float


class StationStopResponse(BaseModel):
    station_id: str
    name: str
    latitude: float
    longitude: float
    opening_hours: str
    price_per_liter: float
    distance_km: float
    route_info: RouteInfoResponse


class BaseRouteResponse(BaseModel):
    distance_km: float
    duration_minutes: float
    encoded_polyline: str
    route_geojson: dict


class RefuelSearchResponse(BaseModel):
    origin: Coordinate
    destination: Coordinate
    base_route: BaseRouteResponse
    corridor_candidates: int
    enriched_candidates: int
    failed_candidates: int
    stops: list[StationStopResponse]
    assumptions: dict[str, float]
