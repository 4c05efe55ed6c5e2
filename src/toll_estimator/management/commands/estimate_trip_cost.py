from __future__ import annotations

from typing import Any

from django.core.management.base import BaseCommand, CommandError
from pydantic import ValidationError

from toll_estimator.exceptions import TollEstimatorError
from toll_estimator.schemas import TripCostRequest
from toll_estimator.services.planner import TollPlannerService


class Command(BaseCommand):
    help = "Estimate toll and vignette costs for a driving route."

    def add_arguments(self, parser: Any) -> None:
        parser.add_argument("--start", required=True, help="Origin address")
        parser.add_argument("--end", required=True, help="Destination address")
        parser.add_argument(
            "--via", action="append", default=[], help="Intermediate stop (repeatable)"
        )
        parser.add_argument("--vehicle", choices=["car", "van", "truck"], default="car")
        parser.add_argument("--trip-type", choices=["one-way", "return"], default="one-way")
        parser.add_argument("--start-date", help="Trip start date (YYYY-MM-DD)")
        parser.add_argument("--end-date", help="Trip end date (YYYY-MM-DD)")
        parser.add_argument(
            "--owned",
            action="append",
            default=[],
            help="Country code of a vignette already owned (repeatable)",
        )

    def handle(self, *_: Any, **options: Any) -> None:
        try:
            request = TripCostRequest.model_validate(
                {
                    "start_location": options["start"],
                    "finish_location": options["end"],
                    "waypoints": options["via"],
                    "vehicle_type": options["vehicle"],
                    "trip_type": options["trip_type"],
                    "start_date": options["start_date"],
                    "end_date": options["end_date"],
                    "owned_vignettes": options["owned"],
                }
            )
        except ValidationError as exc:
            raise CommandError(f"Invalid trip: {exc}") from exc

        try:
            result = TollPlannerService().plan(request)
        except TollEstimatorError as exc:
            raise CommandError(str(exc)) from exc

        if result.insufficient_route_data:
            self.stdout.write(
                self.style.WARNING("Could not attribute the route to any supported country")
            )

        for country in result.country_costs:
            line = (
                f"{country.country_code} {country.country_name}: "
                f"{country.display_distance_km} km, {country.display_total_cost:.2f}"
            )
            if country.vignette_required:
                line += f" (vignette: {country.vignette_option})"
            self.stdout.write(line)
            for toll in country.special_tolls_selected:
                self.stdout.write(f"    + {toll.name}: {toll.price:.2f}")

        self.stdout.write(
            self.style.SUCCESS(
                f"Total: {result.total_cost:.2f} {result.currency} "
                f"for {result.total_distance_km} km "
                f"(~{result.estimated_driving_time_hours:.1f} h, {result.trip_type})"
            )
        )
