from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace

from django.conf import settings

from toll_estimator.schemas import (
    CalculationResponse,
    CountryCostResponse,
    DetectionSource,
    SelectedSpecialTollPayload,
    SpecialTollDetectRequest,
    SpecialTollDetectResponse,
    TollLineItemResponse,
    TripCostRequest,
)
from toll_estimator.services.calculator import compute_trip_cost
from toll_estimator.services.country_rules import is_supported
from toll_estimator.services.fingerprint import FreshnessGate, route_fingerprint
from toll_estimator.services.geocoding import GeocodingClient
from toll_estimator.services.osrm import OsrmClient
from toll_estimator.services.resolver import ResolverPolicy
from toll_estimator.services.rounding import round_half_up
from toll_estimator.services.segmentation import attribute_route
from toll_estimator.services.special_tolls import (
    choose_detection,
    detect_tolls_on_route,
    select_detected_tolls,
)
from toll_estimator.services.trip import trip_duration_days
from toll_estimator.services.tunnel_detection import TunnelDetectionClient
from toll_estimator.services.types import (
    CalculationResult,
    GeocodeResult,
    RouteData,
    SelectedSpecialToll,
    TripData,
    TripRoute,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TollDetection:
    detected_ids: frozenset[str]
    source: DetectionSource


class TollPlannerService:
    def __init__(
        self,
        geocoding_client: GeocodingClient | None = None,
        osrm_client: OsrmClient | None = None,
        tunnel_client: TunnelDetectionClient | None = None,
        resolver_policy: ResolverPolicy | None = None,
        freshness_gate: FreshnessGate | None = None,
    ) -> None:
        self.geocoding_client = geocoding_client or GeocodingClient()
        self.osrm_client = osrm_client or OsrmClient()
        self.tunnel_client = tunnel_client or TunnelDetectionClient()
        self.resolver_policy = resolver_policy or ResolverPolicy(
            max_workers=settings.COUNTRY_RESOLVER_MAX_WORKERS,
            delay_seconds=settings.COUNTRY_RESOLVER_DELAY_SECONDS,
        )
        self.freshness_gate = freshness_gate or FreshnessGate()
        self.radius_km = float(settings.SPECIAL_TOLL_RADIUS_KM)

    def plan(self, request: TripCostRequest) -> CalculationResponse:
        waypoints = [waypoint for waypoint in request.waypoints if waypoint.strip()]
        stops = self._geocode_stops(request.start_location, request.finish_location, waypoints)
        route = self.osrm_client.route_through(stops)
        address_countries = self._stop_countries(stops)

        # Segmentation and toll detection only share the route geometry.
        with ThreadPoolExecutor(max_workers=2) as executor:
            distances_future = executor.submit(
                attribute_route,
                route.points,
                route.legs,
                route.distance_km,
                self.geocoding_client,
                self.resolver_policy,
            )
            detection_future = executor.submit(
                self._detect,
                request.start_location,
                request.finish_location,
                waypoints,
                address_countries,
                route,
            )
            country_distances = distances_future.result()
            detection = detection_future.result()

        countries = tuple(entry.country_code for entry in country_distances)
        if request.selected_special_tolls is None:
            selected = tuple(select_detected_tolls(detection.detected_ids, countries))
        else:
            selected = tuple(
                SelectedSpecialToll(
                    id=toll.id,
                    country_code=toll.country_code.upper(),
                    name=toll.name,
                    price=toll.price,
                )
                for toll in request.selected_special_tolls
            )

        trip = replace(
            self.trip_from_request(request),
            selected_special_tolls=selected,
            route=TripRoute(
                countries=countries,
                country_distances=tuple(country_distances),
                distance_km=route.distance_km,
                duration_minutes=route.duration_minutes,
            ),
        )
        result = compute_trip_cost(trip)
        logger.info(
            "Trip cost %.2f %s over %s (%s)",
            result.total_cost,
            result.currency,
            ",".join(countries) or "no countries",
            request.trip_type,
        )
        return build_calculation_response(trip, result, detection)

    def detect_special_tolls(self, request: SpecialTollDetectRequest) -> SpecialTollDetectResponse:
        waypoints = [waypoint for waypoint in request.waypoints if waypoint.strip()]
        stops = self._geocode_stops(request.start_location, request.finish_location, waypoints)
        countries = self._stop_countries(stops)
        fingerprint = route_fingerprint(
            request.start_location, request.finish_location, waypoints, countries
        )
        if request.session_id:
            self.freshness_gate.begin(request.session_id, fingerprint)

        route = self.osrm_client.route_through(stops)
        detection = self._detect(
            request.start_location, request.finish_location, waypoints, countries, route
        )

        if request.session_id:
            self.freshness_gate.ensure_current(request.session_id, fingerprint)

        selected = select_detected_tolls(detection.detected_ids, countries)
        return SpecialTollDetectResponse(
            fingerprint=fingerprint,
            countries=list(countries),
            detection_source=detection.source,
            detected_special_toll_ids=sorted(detection.detected_ids),
            selected_special_tolls=[
                SelectedSpecialTollPayload(
                    id=toll.id, country_code=toll.country_code, name=toll.name, price=toll.price
                )
                for toll in selected
            ],
        )

    @staticmethod
    def trip_from_request(request: TripCostRequest) -> TripData:
        start_date = request.start_date.isoformat() if request.start_date else ""
        end_date = request.end_date.isoformat() if request.end_date else ""
        duration = trip_duration_days(start_date, end_date) if start_date and end_date else 1
        return TripData(
            vehicle_type=request.vehicle_type,
            axles=request.axles,
            fuel_type=request.fuel_type,
            start_address=request.start_location,
            end_address=request.finish_location,
            waypoint_addresses=tuple(request.waypoints),
            trip_type=request.trip_type,
            start_date=start_date,
            end_date=end_date,
            trip_duration_days=duration,
            owned_vignettes=frozenset(code.upper() for code in request.owned_vignettes),
        )

    def _detect(
        self,
        origin: str,
        destination: str,
        waypoints: list[str],
        countries: tuple[str, ...],
        route: RouteData,
    ) -> TollDetection:
        with ThreadPoolExecutor(max_workers=1) as executor:
            ai_future = executor.submit(
                self.tunnel_client.detect, origin, destination, waypoints, countries
            )
            geometric_ids = detect_tolls_on_route(route.points, self.radius_km)
            ai_ids = ai_future.result()

        detected = choose_detection(ai_ids, geometric_ids)
        if ai_ids:
            source: DetectionSource = "ai"
        elif detected:
            source = "geometry"
        else:
            source = "none"
        return TollDetection(detected_ids=detected, source=source)

    def _geocode_stops(
        self, start: str, finish: str, waypoints: list[str]
    ) -> list[GeocodeResult]:
        return [self.geocoding_client.geocode(query) for query in [start, *waypoints, finish]]

    @staticmethod
    def _stop_countries(stops: list[GeocodeResult]) -> tuple[str, ...]:
        countries: list[str] = []
        for stop in stops:
            if is_supported(stop.country_code) and stop.country_code not in countries:
                countries.append(stop.country_code)
        return tuple(countries)


def build_calculation_response(
    trip: TripData, result: CalculationResult, detection: TollDetection
) -> CalculationResponse:
    """Project a result for display; per-country figures are doubled for return trips."""
    factor = 2 if trip.trip_type == "return" else 1
    country_costs = [
        CountryCostResponse(
            country_code=cost.country_code,
            country_name=cost.country_name,
            flag=cost.flag,
            toll_cost=cost.toll_cost,
            vignette_cost=cost.vignette_cost,
            special_tolls_cost=cost.special_tolls_cost,
            special_tolls_selected=[
                TollLineItemResponse(name=item.name, price=item.price)
                for item in cost.special_tolls_selected
            ],
            vignette_required=cost.vignette_required,
            vignette_owned=cost.vignette_owned,
            vignette_option=cost.vignette_option,
            estimated_distance_km=cost.estimated_distance_km,
            notes=cost.notes,
            display_distance_km=cost.estimated_distance_km * factor,
            display_total_cost=round_half_up(
                (cost.toll_cost + cost.special_tolls_cost) * factor + cost.vignette_cost, 2
            ),
        )
        for cost in result.country_costs
    ]
    return CalculationResponse(
        trip_type=trip.trip_type,
        total_cost=result.total_cost,
        currency=result.currency,
        total_distance_km=result.total_distance_km,
        estimated_driving_time_hours=round(result.estimated_driving_time_hours, 4),
        country_costs=country_costs,
        insufficient_route_data=not result.country_costs,
        detection_source=detection.source,
        detected_special_toll_ids=sorted(detection.detected_ids),
    )
