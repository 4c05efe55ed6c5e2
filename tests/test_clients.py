from __future__ import annotations

import httpx
import pytest

from toll_estimator.exceptions import (
    ExternalServiceError,
    InvalidLocationError,
    NoRouteFoundError,
    RouteAccessDeniedError,
)
from toll_estimator.services.geocoding import GeocodingClient
from toll_estimator.services.osrm import OsrmClient
from toll_estimator.services.resolver import ResolverPolicy, resolve_countries
from toll_estimator.services.tunnel_detection import TunnelDetectionClient, build_prompt, parse_toll_ids
from toll_estimator.services.types import GeocodeResult, GeoPoint, RoutePoint


def _response(status_code: int, payload, method: str = "GET") -> httpx.Response:
    return httpx.Response(status_code, json=payload, request=httpx.Request(method, "https://example.test"))


VIENNA = [
    {
        "lat": "48.2083537",
        "lon": "16.3725042",
        "display_name": "Wien, Österreich",
        "address": {"city": "Wien", "country_code": "at"},
    }
]


def test_geocode_parses_first_result_and_caches(mocker) -> None:
    http_get = mocker.patch("toll_estimator.services.geocoding.httpx.get", return_value=_response(200, VIENNA))
    client = GeocodingClient()

    first = client.geocode("Vienna")
    second = client.geocode("vienna")

    assert first == GeocodeResult(
        point=GeoPoint(latitude=48.2083537, longitude=16.3725042),
        country_code="AT",
        display_name="Wien, Österreich",
    )
    assert second == first
    http_get.assert_called_once()
    assert http_get.call_args.kwargs["params"]["q"] == "Vienna"


def test_geocode_without_results_is_invalid_location(mocker) -> None:
    mocker.patch("toll_estimator.services.geocoding.httpx.get", return_value=_response(200, []))

    with pytest.raises(InvalidLocationError):
        GeocodingClient().geocode("Nowhere at all")


def test_geocode_denied_is_not_retried(mocker) -> None:
    http_get = mocker.patch("toll_estimator.services.geocoding.httpx.get", return_value=_response(403, {}))

    with pytest.raises(RouteAccessDeniedError):
        GeocodingClient().geocode("Vienna")
    http_get.assert_called_once()


def test_geocode_transport_errors_are_retried(mocker, settings) -> None:
    settings.GEOCODING_RETRY_COUNT = 2
    sleep = mocker.patch("toll_estimator.services.geocoding.time.sleep")
    http_get = mocker.patch(
        "toll_estimator.services.geocoding.httpx.get",
        side_effect=httpx.ConnectError("connection refused"),
    )

    with pytest.raises(ExternalServiceError):
        GeocodingClient().geocode("Vienna")

    assert http_get.call_count == 3
    assert [call.args[0] for call in sleep.call_args_list] == pytest.approx([0.3, 0.6])


def test_reverse_country_reads_address_code(mocker) -> None:
    http_get = mocker.patch(
        "toll_estimator.services.geocoding.httpx.get",
        return_value=_response(200, {"address": {"country": "Slovenija", "country_code": "si"}}),
    )
    client = GeocodingClient()

    assert client.reverse_country(46.05, 14.51) == "SI"
    assert client.reverse_country(46.05, 14.51) == "SI"
    http_get.assert_called_once()
    assert http_get.call_args.kwargs["params"]["zoom"] == 3


def test_reverse_country_caches_unresolved_points(mocker) -> None:
    http_get = mocker.patch(
        "toll_estimator.services.geocoding.httpx.get",
        return_value=_response(200, {"error": "Unable to geocode"}),
    )
    client = GeocodingClient()

    assert client.reverse_country(43.0, 5.0) is None
    assert client.reverse_country(43.0, 5.0) is None
    http_get.assert_called_once()


def test_reverse_country_non_json_reply_is_a_service_error(mocker) -> None:
    mocker.patch(
        "toll_estimator.services.geocoding.httpx.get",
        return_value=httpx.Response(
            200,
            text="<html>Bandwidth limit exceeded</html>",
            request=httpx.Request("GET", "https://example.test"),
        ),
    )
    client = GeocodingClient()

    with pytest.raises(ExternalServiceError):
        client.reverse_country(45.0, 9.0)
    point = RoutePoint(latitude=45.0, longitude=9.0, distance_km=0.0)
    assert resolve_countries([point], client, ResolverPolicy(delay_seconds=0)) == [None]


STOPS = [
    GeocodeResult(GeoPoint(45.0, 11.0), "IT", "Verona, Italia"),
    GeocodeResult(GeoPoint(46.0, 12.0), "IT", "Belluno, Italia"),
]

OSRM_OK = {
    "code": "Ok",
    "routes": [
        {
            "distance": 150000.0,
            "duration": 6300.0,
            "geometry": {"type": "LineString", "coordinates": [[11.0, 45.0], [11.5, 45.5], [12.0, 46.0]]},
            "legs": [{"distance": 150000.0, "duration": 6300.0}],
        }
    ],
}


def test_osrm_route_is_converted_to_route_data(mocker) -> None:
    http_get = mocker.patch("toll_estimator.services.osrm.httpx.get", return_value=_response(200, OSRM_OK))
    client = OsrmClient()

    route = client.route_through(STOPS)

    assert route.distance_km == 150.0
    assert route.duration_minutes == 105.0
    assert len(route.points) == 3
    assert route.points[0].distance_km == 0.0
    assert route.points[-1].distance_km > route.points[1].distance_km
    assert route.legs[0].start_address == "Verona, Italia"
    assert route.legs[0].end_address == "Belluno, Italia"
    assert "11.000000,45.000000;12.000000,46.000000" in http_get.call_args.args[0]

    assert client.route_through(STOPS) == route
    http_get.assert_called_once()


def test_osrm_unroutable_input_raises_no_route(mocker) -> None:
    mocker.patch(
        "toll_estimator.services.osrm.httpx.get",
        return_value=_response(400, {"code": "NoRoute", "message": "Impossible route between points"}),
    )

    with pytest.raises(NoRouteFoundError):
        OsrmClient().route_through(STOPS)


def test_osrm_denied_raises_access_error(mocker) -> None:
    mocker.patch("toll_estimator.services.osrm.httpx.get", return_value=_response(401, {}))

    with pytest.raises(RouteAccessDeniedError):
        OsrmClient().route_through(STOPS)


def test_osrm_requires_two_stops(mocker) -> None:
    http_get = mocker.patch("toll_estimator.services.osrm.httpx.get")

    with pytest.raises(NoRouteFoundError):
        OsrmClient().route_through(STOPS[:1])
    http_get.assert_not_called()


def _completion(content: str) -> httpx.Response:
    return _response(200, {"choices": [{"message": {"role": "assistant", "content": content}}]}, "POST")


def test_tunnel_detection_is_skipped_without_api_key(mocker, settings) -> None:
    settings.TUNNEL_DETECTION_API_KEY = ""
    http_post = mocker.patch("toll_estimator.services.tunnel_detection.httpx.post")

    client = TunnelDetectionClient()

    assert not client.is_configured
    assert client.detect("Salzburg", "Ljubljana") == frozenset()
    http_post.assert_not_called()


def test_tunnel_detection_keeps_known_ids_only(mocker, settings) -> None:
    settings.TUNNEL_DETECTION_API_KEY = "test-key"
    http_post = mocker.patch(
        "toll_estimator.services.tunnel_detection.httpx.post",
        return_value=_completion('Here you go: ["at-tauern", "at-karawanken", "xx-imaginary"]'),
    )

    detected = TunnelDetectionClient().detect("Salzburg", "Ljubljana", countries=["AT", "SI"])

    assert detected == frozenset({"at-tauern", "at-karawanken"})
    body = http_post.call_args.kwargs["json"]
    assert body["temperature"] == 0.1
    assert "From: Salzburg" in body["messages"][1]["content"]
    assert http_post.call_args.kwargs["headers"]["Authorization"] == "Bearer test-key"


def test_tunnel_detection_failure_yields_empty_set(mocker, settings) -> None:
    settings.TUNNEL_DETECTION_API_KEY = "test-key"
    mocker.patch(
        "toll_estimator.services.tunnel_detection.httpx.post",
        side_effect=httpx.ReadTimeout("timed out"),
    )

    assert TunnelDetectionClient().detect("Salzburg", "Ljubljana") == frozenset()


def test_prompt_lists_only_tolls_of_route_countries() -> None:
    prompt = build_prompt("Salzburg", "Ljubljana", ["Villach"], ["AT", "SI"])

    assert "at-tauern" in prompt
    assert "fr-montblanc" not in prompt
    assert "Via: Villach" in prompt


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ("[]", frozenset()),
        ('["it-montblanc"]', frozenset({"it-montblanc"})),
        ("no tunnels needed", frozenset()),
        ("[at-tauern]", frozenset()),
        ('{"ids": "at-tauern"}', frozenset()),
    ],
)
def test_parse_toll_ids(content: str, expected: frozenset) -> None:
    assert parse_toll_ids(content) == expected
