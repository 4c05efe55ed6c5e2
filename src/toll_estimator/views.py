from __future__ import annotations

import json
import logging
from typing import Any

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST
from pydantic import BaseModel, ValidationError

from toll_estimator.exceptions import (
    ExternalServiceError,
    InvalidLocationError,
    NoRouteFoundError,
    RouteAccessDeniedError,
    StaleRequestError,
)
from toll_estimator.schemas import (
    CountryRuleResponse,
    SpecialTollDetectRequest,
    SpecialTollResponse,
    TripCostRequest,
    TripUpdateRequest,
    VignetteTierResponse,
)
from toll_estimator.services.country_rules import COUNTRY_RULES, sorted_rules
from toll_estimator.services.planner import TollPlannerService
from toll_estimator.services.trip import apply_trip_update, trip_from_state, trip_to_state

logger = logging.getLogger(__name__)

_planner_service: TollPlannerService | None = None


def get_toll_planner() -> TollPlannerService:
    global _planner_service
    if _planner_service is None:
        _planner_service = TollPlannerService()
    return _planner_service


@require_GET
def health_view(_: HttpRequest) -> HttpResponse:
    return JsonResponse({"status": "ok", "countries": {"supported": len(COUNTRY_RULES)}})


@require_GET
def countries_view(_: HttpRequest) -> HttpResponse:
    rules = [
        CountryRuleResponse(
            code=rule.code,
            name=rule.name,
            flag=rule.flag,
            toll_model=rule.toll_model,
            currency=rule.currency,
            price_per_km=(
                {
                    "car": rule.distance_toll.car,
                    "van": rule.distance_toll.van,
                    "truck": rule.distance_toll.truck,
                }
                if rule.distance_toll
                else None
            ),
            vignette_required=rule.requires_vignette,
            vignette_tiers=[
                VignetteTierResponse(label=tier.label, price=tier.price, duration_days=tier.duration_days)
                for tier in (rule.vignette.tiers if rule.vignette else ())
            ],
            special_tolls=[
                SpecialTollResponse(
                    id=toll.id,
                    name=toll.name,
                    type=toll.type,
                    price=toll.price,
                    price_return=toll.price_return,
                    route=toll.route,
                    latitude=toll.latitude,
                    longitude=toll.longitude,
                )
                for toll in rule.special_tolls
            ],
            notes=rule.notes,
        ).model_dump(mode="json")
        for rule in sorted_rules()
    ]
    return JsonResponse({"countries": rules})


@csrf_exempt
@require_POST
def trip_cost_view(request: HttpRequest) -> HttpResponse:
    parsed = _validate(request, TripCostRequest)
    if isinstance(parsed, JsonResponse):
        return parsed

    return _run(lambda: get_toll_planner().plan(parsed))


@csrf_exempt
@require_POST
def trip_update_view(request: HttpRequest) -> HttpResponse:
    parsed = _validate(request, TripUpdateRequest)
    if isinstance(parsed, JsonResponse):
        return parsed

    trip = apply_trip_update(trip_from_state(parsed.trip), parsed.update)
    return JsonResponse(trip_to_state(trip).model_dump(mode="json"), status=200)


@csrf_exempt
@require_POST
def special_toll_detection_view(request: HttpRequest) -> HttpResponse:
    parsed = _validate(request, SpecialTollDetectRequest)
    if isinstance(parsed, JsonResponse):
        return parsed

    return _run(lambda: get_toll_planner().detect_special_tolls(parsed))


def _run(operation: Any) -> HttpResponse:
    try:
        response = operation()
    except InvalidLocationError as exc:
        return _error_response("invalid_location", str(exc), status=400)
    except NoRouteFoundError as exc:
        return _error_response("no_route", str(exc), status=422)
    except StaleRequestError as exc:
        return _error_response("stale_request", str(exc), status=409)
    except RouteAccessDeniedError as exc:
        logger.error("Upstream service denied access: %s", exc)
        return _error_response("upstream_denied", str(exc), status=502)
    except ExternalServiceError as exc:
        logger.warning("Upstream service failed: %s", exc)
        return _error_response("upstream_error", str(exc), status=502)

    return JsonResponse(response.model_dump(mode="json"), status=200)


def _validate(request: HttpRequest, schema: type[BaseModel]) -> Any:
    payload = _parse_json_payload(request)
    if isinstance(payload, JsonResponse):
        return payload

    try:
        return schema.model_validate(payload)
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
