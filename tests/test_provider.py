import asyncio

import pytest
import requests

from roadguide.errors import AddressNotFound, NoResult, NoRouteAvailable
from roadguide.geo import distance_meters
from roadguide.models import Completion, Coordinate
from roadguide.provider import OSRMProvider, RouteProvider, parse_osrm_route, step_instruction


def osrm_response():
    return {
        "code": "Ok",
        "routes": [{
            "distance": 1520.4,
            "duration": 190.2,
            "geometry": {"type": "LineString",
                         "coordinates": [[-75.0, 40.0], [-75.0, 40.01], [-74.99, 40.01]]},
            "legs": [{
                "steps": [
                    {"name": "Main Street", "distance": 1110.0,
                     "maneuver": {"type": "depart", "bearing_after": 2},
                     "geometry": {"coordinates": [[-75.0, 40.0], [-75.0, 40.01]]}},
                    {"name": "Oak Street", "distance": 410.4,
                     "maneuver": {"type": "turn", "modifier": "right"},
                     "geometry": {"coordinates": [[-75.0, 40.01], [-74.99, 40.01]]}},
                    {"name": "", "distance": 0,
                     "maneuver": {"type": "arrive", "modifier": "left"},
                     "geometry": {"coordinates": [[-74.99, 40.01], [-74.99, 40.01]]}},
                ],
            }],
        }],
    }


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, *responses):
        self.headers = {}
        self.responses = list(responses)
        self.requests = []

    def get(self, url, params=None, timeout=None):
        self.requests.append((url, params))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_provider(*responses):
    return OSRMProvider("http://osrm.test/", "http://nominatim.test", session=FakeSession(*responses))


def test_osrm_provider_satisfies_protocol():
    assert isinstance(make_provider(), RouteProvider)


@pytest.mark.parametrize("step,expected", [
    ({"name": "Main Street", "maneuver": {"type": "depart", "bearing_after": 90}},
     "Head east on Main Street"),
    ({"name": "Oak Street", "maneuver": {"type": "turn", "modifier": "slight left"}},
     "Turn slight left onto Oak Street"),
    ({"name": "", "maneuver": {"type": "arrive", "modifier": "right"}},
     "Arrive at your destination on the right"),
    ({"name": "", "maneuver": {"type": "arrive"}}, "Arrive at your destination"),
    ({"name": "Ring Rd", "maneuver": {"type": "roundabout", "exit": 2}},
     "Enter the roundabout and take the second exit onto Ring Rd"),
    ({"name": "", "maneuver": {"type": "turn", "modifier": "uturn"}}, "Make a U-turn"),
    ({"name": "I-95", "maneuver": {"type": "fork", "modifier": "left"}}, "Keep left onto I-95"),
    ({"name": "Elm St", "maneuver": {"type": "new name", "modifier": "straight"}},
     "Continue onto Elm St"),
])
def test_step_instruction(step, expected):
    assert step_instruction(step) == expected


def test_parse_osrm_route_normalizes_steps():
    route = parse_osrm_route(osrm_response())

    assert route.distance == 1520.4
    assert route.expected_travel_time == 190.2
    assert [s.instruction for s in route.steps] == [
        "Head north on Main Street",
        "Turn right onto Oak Street",
        "Arrive at your destination on the left",
    ]
    assert route.steps[1].maneuver_point == Coordinate(40.01, -75.0)
    assert route.polyline[-1] == Coordinate(40.01, -74.99)


def test_parse_osrm_route_densifies_route_geometry():
    route = parse_osrm_route(osrm_response())

    assert route.polyline[0] == Coordinate(40.0, -75.0)
    assert Coordinate(40.01, -75.0) in route.polyline
    gaps = [distance_meters(a, b) for a, b in zip(route.polyline, route.polyline[1:])]
    assert max(gaps) <= 20
    assert len(route.steps[0].polyline) == 2


@pytest.mark.parametrize("data", [
    {"code": "NoRoute", "message": "Impossible route between points"},
    {"code": "Ok", "routes": []},
    {"code": "Ok", "routes": [{"distance": 0, "duration": 0, "legs": [{"steps": []}]}]},
])
def test_parse_osrm_route_without_steps_raises(data):
    with pytest.raises(NoRouteAvailable):
        parse_osrm_route(data)


def test_route_requests_lon_lat_order():
    provider = make_provider(FakeResponse(osrm_response()))
    route = asyncio.run(provider.route(Coordinate(40.0, -75.0), Coordinate(40.01, -74.99)))

    url, params = provider.session.requests[0]
    assert url == "http://osrm.test/route/v1/driving/-75.0,40.0;-74.99,40.01"
    assert params["steps"] == "true"
    assert len(route.steps) == 3


def test_route_http_failure_is_no_route_available():
    provider = make_provider(FakeResponse({}, status=400))
    with pytest.raises(NoRouteAvailable):
        asyncio.run(provider.route(Coordinate(40.0, -75.0), Coordinate(40.01, -74.99)))


def test_search_completions_splits_display_name():
    provider = make_provider(FakeResponse([
        {"name": "Joe's Diner", "display_name": "Joe's Diner, 12 Elm St, Springfield",
         "lat": "40.1", "lon": "-75.2"},
    ]))
    completions = asyncio.run(provider.search_completions("joe"))

    assert completions == [Completion("Joe's Diner", "12 Elm St, Springfield",
                                      token={"lat": "40.1", "lon": "-75.2"})]
    assert completions[0].label == "Joe's Diner, 12 Elm St, Springfield"
    assert provider.session.requests[0][1]["q"] == "joe"


def test_search_failure_is_no_result():
    provider = make_provider(requests.ConnectionError("offline"))
    with pytest.raises(NoResult):
        asyncio.run(provider.search_completions("joe"))


def test_resolve_uses_token_without_network():
    provider = make_provider()
    coordinate = asyncio.run(provider.resolve(Completion("A", "B", token={"lat": "1.5", "lon": "2.5"})))
    assert coordinate == Coordinate(1.5, 2.5)
    assert provider.session.requests == []


def test_resolve_falls_back_to_label_search():
    provider = make_provider(FakeResponse([{"lat": "3", "lon": "4"}]))
    coordinate = asyncio.run(provider.resolve(Completion("A", "B")))
    assert coordinate == Coordinate(3.0, 4.0)
    assert provider.session.requests[0][1]["q"] == "A, B"


def test_geocode_without_match_is_address_not_found():
    provider = make_provider(FakeResponse([]))
    with pytest.raises(AddressNotFound):
        asyncio.run(provider.geocode("nowhere"))


@pytest.mark.parametrize("payload", [
    {"code": "Ok", "routes": ["not a route"]},
    {"code": "Ok", "routes": [{"legs": [{"steps": [{"distance": "far", "maneuver": {}}]}]}]},
    {"code": "Ok", "routes": [{"legs": [{"steps": [{"geometry": {"coordinates": [[1, 2, 3]]}}]}]}]},
])
def test_malformed_route_response_is_no_route_available(payload):
    provider = make_provider(FakeResponse(payload))
    with pytest.raises(NoRouteAvailable):
        asyncio.run(provider.route(Coordinate(40.0, -75.0), Coordinate(40.01, -74.99)))


def test_malformed_search_response_is_no_result():
    provider = make_provider(FakeResponse({"error": "rate limited"}))
    with pytest.raises(NoResult):
        asyncio.run(provider.search_completions("joe"))


def test_malformed_geocode_match_is_address_not_found():
    provider = make_provider(FakeResponse([{"lat": "north", "lon": "-75.0"}]))
    with pytest.raises(AddressNotFound):
        asyncio.run(provider.geocode("somewhere"))


def test_malformed_resolve_match_is_no_result():
    provider = make_provider(FakeResponse([{"name": "no position"}]))
    with pytest.raises(NoResult):
        asyncio.run(provider.resolve(Completion("A", "B")))
