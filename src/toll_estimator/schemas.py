from __future__ import annotations

from datetime import date
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from toll_estimator.services.country_rules import get_special_toll

VehicleTypeField = Literal["car", "van", "truck"]
FuelTypeField = Literal["petrol", "diesel", "electric"]
TripTypeField = Literal["one-way", "return"]
DetectionSource = Literal["ai", "geometry", "none"]


class SelectedSpecialTollPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, max_length=64)
    country_code: str = Field(min_length=2, max_length=2)
    name: str = Field(min_length=1, max_length=200)
    price: float = Field(ge=0.0)


class TripCostRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start_location: str = Field(min_length=3, max_length=300)
    finish_location: str = Field(min_length=3, max_length=300)
    waypoints: list[str] = Field(default_factory=list, max_length=10)
    vehicle_type: VehicleTypeField = "car"
    axles: int = Field(default=2, ge=2, le=9)
    fuel_type: FuelTypeField = "petrol"
    trip_type: TripTypeField = "one-way"
    start_date: date | None = None
    end_date: date | None = None
    owned_vignettes: list[Annotated[str, Field(min_length=2, max_length=2)]] = Field(
        default_factory=list
    )
    # None asks the planner to auto-select special tolls detected on the route.
    selected_special_tolls: list[SelectedSpecialTollPayload] | None = None


class SpecialTollDetectRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start_location: str = Field(min_length=3, max_length=300)
    finish_location: str = Field(min_length=3, max_length=300)
    waypoints: list[str] = Field(default_factory=list, max_length=10)
    session_id: str | None = Field(default=None, min_length=1, max_length=100)


class VehicleTypeUpdate(BaseModel):
    field: Literal["vehicle_type"]
    value: VehicleTypeField


class AxlesUpdate(BaseModel):
    field: Literal["axles"]
    value: int = Field(ge=2, le=9)


class FuelTypeUpdate(BaseModel):
    field: Literal["fuel_type"]
    value: FuelTypeField


class AddressUpdate(BaseModel):
    field: Literal["start_address", "end_address"]
    value: str = Field(max_length=300)


class WaypointsUpdate(BaseModel):
    field: Literal["waypoint_addresses"]
    value: list[str] = Field(max_length=10)


class TripTypeUpdate(BaseModel):
    field: Literal["trip_type"]
    value: TripTypeField


class DateUpdate(BaseModel):
    field: Literal["start_date", "end_date"]
    value: date


class OwnedVignettesUpdate(BaseModel):
    field: Literal["owned_vignettes"]
    value: list[Annotated[str, Field(min_length=2, max_length=2)]]


class SpecialTollsUpdate(BaseModel):
    field: Literal["selected_special_tolls"]
    value: list[SelectedSpecialTollPayload]


class SpecialTollToggle(BaseModel):
    model_config = ConfigDict(extra="forbid")

    country_code: str = Field(min_length=2, max_length=2)
    toll_id: str = Field(min_length=1, max_length=64)

    @model_validator(mode="after")
    def check_listed(self) -> SpecialTollToggle:
        try:
            get_special_toll(self.country_code, self.toll_id)
        except KeyError as exc:
            raise ValueError(str(exc.args[0])) from exc
        return self


class SpecialTollToggleUpdate(BaseModel):
    field: Literal["toggle_special_toll"]
    value: SpecialTollToggle


TripUpdate = Annotated[
    Union[
        VehicleTypeUpdate,
        AxlesUpdate,
        FuelTypeUpdate,
        AddressUpdate,
        WaypointsUpdate,
        TripTypeUpdate,
        DateUpdate,
        OwnedVignettesUpdate,
        SpecialTollsUpdate,
        SpecialTollToggleUpdate,
    ],
    Field(discriminator="field"),
]

trip_update_adapter: TypeAdapter[TripUpdate] = TypeAdapter(TripUpdate)


class TripState(BaseModel):
    """Wizard trip inputs as exchanged with the client between steps."""

    model_config = ConfigDict(extra="forbid")

    vehicle_type: VehicleTypeField = "car"
    axles: int = Field(default=2, ge=2, le=9)
    fuel_type: FuelTypeField = "petrol"
    start_address: str = Field(default="", max_length=300)
    end_address: str = Field(default="", max_length=300)
    waypoint_addresses: list[str] = Field(default_factory=list, max_length=10)
    trip_type: TripTypeField = "one-way"
    start_date: date | None = None
    end_date: date | None = None
    trip_duration_days: int = Field(default=1, ge=1)
    owned_vignettes: list[Annotated[str, Field(min_length=2, max_length=2)]] = Field(
        default_factory=list
    )
    selected_special_tolls: list[SelectedSpecialTollPayload] = Field(default_factory=list)


class TripUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    trip: TripState = Field(default_factory=TripState)
    update: TripUpdate


class TollLineItemResponse(BaseModel):
    name: str
    price: float


class CountryCostResponse(BaseModel):
    country_code: str
    country_name: str
    flag: str
    toll_cost: float
    vignette_cost: float
    special_tolls_cost: float
    special_tolls_selected: list[TollLineItemResponse]
    vignette_required: bool
    vignette_owned: bool
    vignette_option: str
    estimated_distance_km: int
    notes: str
    display_distance_km: int
    display_total_cost: float


class CalculationResponse(BaseModel):
    trip_type: TripTypeField
    total_cost: float
    currency: str
    total_distance_km: int
    estimated_driving_time_hours: float
    country_costs: list[CountryCostResponse]
    insufficient_route_data: bool
    detection_source: DetectionSource
    detected_special_toll_ids: list[str]


class SpecialTollDetectResponse(BaseModel):
    fingerprint: str
    countries: list[str]
    detection_source: DetectionSource
    detected_special_toll_ids: list[str]
    selected_special_tolls: list[SelectedSpecialTollPayload]


class VignetteTierResponse(BaseModel):
    label: str
    price: float
    duration_days: int


class SpecialTollResponse(BaseModel):
    id: str
    name: str
    type: Literal["tunnel", "bridge", "pass"]
    price: float
    price_return: float | None
    route: str | None
    latitude: float
    longitude: float


class CountryRuleResponse(BaseModel):
    code: str
    name: str
    flag: str
    toll_model: Literal["distance", "vignette", "mixed", "none"]
    currency: str
    price_per_km: dict[str, float] | None
    vignette_required: bool
    vignette_tiers: list[VignetteTierResponse]
    special_tolls: list[SpecialTollResponse]
    notes: str
