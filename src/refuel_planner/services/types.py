from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Union

RESERVE_KM = 15.0
CONSUMPTION_L_PER_100KM = 6.0

SortBy = Literal["distance", "price"]
CompanyMode = Literal["include", "exclude"]


class FuelKind(str, Enum):
    GASOLINE_95_E5 = "gasoline_95_e5"
    GASOLINE_98_E5 = "gasoline_98_e5"
    DIESEL_A = "diesel_a"
    DIESEL_PREMIUM = "diesel_premium"
    LPG = "lpg"
    ALL = "all"


@dataclass(slots=True, frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass(slots=True, frozen=True)
class Coordinates:
    point: GeoPoint


@dataclass(slots=True, frozen=True)
class AddressText:
    street: str = ""
    number: str = ""
    city: str = ""
    province: str = ""

    def formatted(self) -> str:
        parts = [self.street, self.number, self.city, self.province]
        return ", ".join(part for part in parts if part)


Location = Union[Coordinates, AddressText]


@dataclass(slots=True, frozen=True)
class RouteInfo:
    distance_to_stop_km: float
    distance_with_stop_km: float
    extra_km: float
    extra_liters: float
    extra_cost: float


@dataclass(slots=True)
class StationRecord:
    station_id: str
    name: str
    latitude: float
    longitude: float
    price_gasoline_95: float = 0.0
    price_gasoline_98: float = 0.0
    price_diesel: float = 0.0
    price_diesel_premium: float = 0.0
    price_lpg: float = 0.0
    opening_hours: str = ""
    distance_km: float | None = None
    route_info: RouteInfo | None = None

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(latitude=self.latitude, longitude=self.longitude)

    def prices(self) -> list[float]:
        return [
            self.price_gasoline_95,
            self.price_gasoline_98,
            self.price_diesel,
            self.price_diesel_premium,
            self.price_lpg,
        ]


@dataclass(slots=True, frozen=True)
class FilterSettings:
    fuel_kind: FuelKind = FuelKind.GASOLINE_95_E5
    companies: tuple[str, ...] = ()
    company_mode: CompanyMode = "include"
    max_price: float = 0.0
    max_distance_km: float = 50.0
    only_open: bool = False
    sort_by: SortBy = "distance"


@dataclass(slots=True, frozen=True)
class BaseRoute:
    base_distance_km: float
    base_duration_sec: float
    encoded_path: str
    points: tuple[GeoPoint, ...]


@dataclass(slots=True, frozen=True)
class StopRouteDistances:
    distance_to_stop_km: float
    distance_with_stop_km: float


@dataclass(slots=True, frozen=True)
class VehicleState:
    available_range_km: float
    reserve_km: float = RESERVE_KM
    consumption_l_per_100km: float = CONSUMPTION_L_PER_100KM

    @property
    def usable_range_km(self) -> float:
        return self.available_range_km - self.reserve_km


@dataclass(slots=True, frozen=True)
class CorridorCandidate:
    station: StationRecord
    route_distance_km: float


@dataclass(slots=True)
class EnrichmentBatch:
    slots: list[StationRecord | None]
    failed: int = 0

    @property
    def feasible(self) -> list[StationRecord]:
        return [station for station in self.slots if station is not None]


@dataclass(slots=True, frozen=True)
class RefuelSearchResult:
    origin: GeoPoint
    destination: GeoPoint
    base_route: BaseRoute
    corridor_count: int
    enriched_count: int
    failed_count: int
    stops: list[StationRecord] = field(default_factory=list)
