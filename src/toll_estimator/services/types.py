from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

TollModel = Literal["distance", "vignette", "mixed", "none"]
SpecialTollType = Literal["tunnel", "bridge", "pass"]
VehicleType = Literal["car", "van", "truck"]
FuelType = Literal["petrol", "diesel", "electric"]
TripType = Literal["one-way", "return"]


@dataclass(slots=True, frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass(slots=True, frozen=True)
class GeocodeResult:
    point: GeoPoint
    country_code: str
    display_name: str


@dataclass(slots=True, frozen=True)
class VignetteTier:
    label: str
    price: float
    duration_days: int


@dataclass(slots=True, frozen=True)
class VignettePolicy:
    required: bool
    tiers: tuple[VignetteTier, ...]


@dataclass(slots=True, frozen=True)
class DistanceToll:
    car: float
    van: float
    truck: float
    average_distance_km: float | None = None


@dataclass(slots=True, frozen=True)
class SpecialToll:
    id: str
    name: str
    type: SpecialTollType
    price: float
    latitude: float
    longitude: float
    price_return: float | None = None
    route: str | None = None


@dataclass(slots=True, frozen=True)
class CountryRule:
    code: str
    name: str
    flag: str
    toll_model: TollModel
    currency: str
    distance_toll: DistanceToll | None = None
    vignette: VignettePolicy | None = None
    special_tolls: tuple[SpecialToll, ...] = ()
    notes: str = ""

    @property
    def requires_vignette(self) -> bool:
        return (
            self.toll_model in ("vignette", "mixed")
            and self.vignette is not None
            and self.vignette.required
        )


@dataclass(slots=True, frozen=True)
class RoutePoint:
    latitude: float
    longitude: float
    distance_km: float


@dataclass(slots=True, frozen=True)
class RouteLeg:
    start_address: str
    end_address: str
    distance_km: float
    duration_minutes: float


@dataclass(slots=True, frozen=True)
class RouteData:
    points: list[RoutePoint]
    legs: list[RouteLeg]
    distance_km: float
    duration_minutes: float


@dataclass(slots=True, frozen=True)
class CountrySample:
    country_code: str
    distance_km: float


@dataclass(slots=True, frozen=True)
class CountrySegment:
    country_code: str
    start_km: float
    end_km: float

    @property
    def length_km(self) -> float:
        return self.end_km - self.start_km


@dataclass(slots=True, frozen=True)
class CountryDistance:
    country_code: str
    distance_km: float


@dataclass(slots=True, frozen=True)
class SelectedSpecialToll:
    id: str
    country_code: str
    name: str
    price: float


@dataclass(slots=True, frozen=True)
class TripRoute:
    countries: tuple[str, ...]
    country_distances: tuple[CountryDistance, ...]
    distance_km: float
    duration_minutes: float


@dataclass(slots=True, frozen=True)
class TripData:
    vehicle_type: VehicleType = "car"
    axles: int = 2
    fuel_type: FuelType = "petrol"
    start_address: str = ""
    end_address: str = ""
    waypoint_addresses: tuple[str, ...] = ()
    trip_type: TripType = "one-way"
    start_date: str = ""
    end_date: str = ""
    trip_duration_days: int = 1
    owned_vignettes: frozenset[str] = field(default_factory=frozenset)
    selected_special_tolls: tuple[SelectedSpecialToll, ...] = ()
    route: TripRoute | None = None


@dataclass(slots=True, frozen=True)
class TollLineItem:
    name: str
    price: float


@dataclass(slots=True, frozen=True)
class CountryCost:
    country_code: str
    country_name: str
    flag: str
    toll_cost: float
    vignette_cost: float
    special_tolls_cost: float
    special_tolls_selected: tuple[TollLineItem, ...]
    vignette_required: bool
    vignette_owned: bool
    vignette_option: str
    estimated_distance_km: int
    notes: str

    @property
    def one_way_total(self) -> float:
        return self.toll_cost + self.vignette_cost + self.special_tolls_cost


@dataclass(slots=True, frozen=True)
class CalculationResult:
    total_cost: float
    country_costs: tuple[CountryCost, ...]
    total_distance_km: int
    estimated_driving_time_hours: float
    currency: str = "EUR"
