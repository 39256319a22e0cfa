"""Routing provider interface and an OSRM + Nominatim implementation."""

import asyncio
from typing import Optional, Protocol, runtime_checkable

import requests

from .config import CONFIG
from .errors import AddressNotFound, NoResult, NoRouteAvailable
from .geo import bearing_to_compass, densify
from .logger import Logger
from .models import Completion, Coordinate, Route, RouteStep


@runtime_checkable
class RouteProvider(Protocol):
    """
    Responsibilities:
      • Turn free text into completions and completions into coordinates.
      • Compute a drivable route between two coordinates.
    All calls are awaitable and may be slow; callers never block on them.
    """

    async def search_completions(self, query: str) -> list[Completion]: ...

    async def resolve(self, completion: Completion) -> Coordinate:
        """Coordinate for a completion. Raises NoResult."""

    async def geocode(self, address: str) -> Coordinate:
        """Coordinate for an address string. Raises AddressNotFound."""

    async def route(self, origin: Coordinate, destination: Coordinate) -> Route:
        """Driving route. Raises NoRouteAvailable."""


# What a response of the wrong shape raises while being picked apart
MALFORMED_RESPONSE = (AttributeError, IndexError, KeyError, TypeError, ValueError)

ORDINALS = ["first", "second", "third", "fourth", "fifth", "sixth", "seventh", "eighth"]


def _onto(name: str) -> str:
    return f" onto {name}" if name else ""


def step_instruction(step: dict) -> str:
    """Build a spoken instruction from an OSRM step"""
    maneuver = step.get("maneuver", {})
    kind = maneuver.get("type", "")
    modifier = maneuver.get("modifier", "")
    name = step.get("name", "")

    if kind == "depart":
        compass = bearing_to_compass(maneuver.get("bearing_after", 0))
        return f"Head {compass}" + (f" on {name}" if name else "")
    if kind == "arrive":
        side = f" on the {modifier}" if modifier in ("left", "right") else ""
        return f"Arrive at your destination{side}"
    if kind in ("roundabout", "rotary"):
        exit_number = maneuver.get("exit") or 1
        ordinal = ORDINALS[exit_number - 1] if exit_number <= len(ORDINALS) else f"{exit_number}th"
        return f"Enter the roundabout and take the {ordinal} exit" + _onto(name)
    if modifier == "uturn":
        return "Make a U-turn" + _onto(name)
    if kind == "merge":
        return "Merge" + _onto(name)
    if kind == "fork":
        return f"Keep {modifier}" + _onto(name) if modifier else "Keep going" + _onto(name)
    if kind == "on ramp":
        return "Take the ramp" + _onto(name)
    if kind == "off ramp":
        return "Take the exit" + _onto(name)
    if modifier == "straight" or kind in ("new name", "continue"):
        return "Continue" + _onto(name)
    if modifier:
        return f"Turn {modifier}" + _onto(name)
    return "Continue" + _onto(name)


def _coords(geometry: Optional[dict]) -> tuple[Coordinate, ...]:
    if not geometry:
        return ()
    # GeoJSON order is lon,lat
    return tuple(Coordinate(lat, lon) for lon, lat in geometry.get("coordinates", []))


def parse_osrm_route(data: dict) -> Route:
    """Normalize an OSRM /route response into a Route. Raises NoRouteAvailable."""
    if data.get("code") != "Ok" or not data.get("routes"):
        raise NoRouteAvailable(data.get("message") or NoRouteAvailable.default_message)

    raw = data["routes"][0]  # OSRM may return alternatives; take the first
    steps = []
    for leg in raw.get("legs", []):
        for step in leg.get("steps", []):
            steps.append(RouteStep(
                instruction=step_instruction(step),
                polyline=_coords(step.get("geometry")),
                distance=float(step.get("distance", 0.0)),
            ))

    if not steps:
        raise NoRouteAvailable()

    return Route(
        steps=tuple(steps),
        distance=float(raw.get("distance", 0.0)),
        expected_travel_time=float(raw.get("duration", 0.0)),
        polyline=densify(_coords(raw.get("geometry")), CONFIG["polyline_max_spacing"]),
    )


def _item_coordinate(item: dict) -> Coordinate:
    return Coordinate(float(item["lat"]), float(item["lon"]))


def _split_display_name(item: dict) -> tuple[str, str]:
    display = item.get("display_name", "")
    parts = [p.strip() for p in display.split(",")]
    title = item.get("name") or (parts[0] if parts else "")
    rest = [p for p in parts if p and p != title]
    return title, ", ".join(rest)


class OSRMProvider:
    """Route provider backed by OSRM (directions) and Nominatim (search)

    Sole responsibility: talk to the services over HTTP and return normalized
    values. Coordinates are (lat, lon) internally and lon,lat on the wire.
    """

    def __init__(self, osrm_url: Optional[str] = None, nominatim_url: Optional[str] = None,
                 timeout: Optional[float] = None, logger: Optional[Logger] = None,
                 session: Optional[requests.Session] = None):
        self.osrm_url = (osrm_url or CONFIG["osrm_url"]).rstrip("/")
        self.nominatim_url = (nominatim_url or CONFIG["nominatim_url"]).rstrip("/")
        self.timeout = timeout or CONFIG["request_timeout"]
        self.logger = logger or Logger(echo=False)
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", CONFIG["user_agent"])

    # ---------------- HTTP ----------------

    def _get_json(self, url: str, params: dict):
        response = self.session.get(url, params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def _search(self, query: str, limit: int) -> list[dict]:
        return self._get_json(f"{self.nominatim_url}/search", {
            "q": query,
            "format": "jsonv2",
            "limit": limit,
        })

    def _route(self, origin: Coordinate, destination: Coordinate) -> dict:
        coordinates = f"{origin.lon},{origin.lat};{destination.lon},{destination.lat}"
        return self._get_json(f"{self.osrm_url}/route/v1/driving/{coordinates}", {
            "overview": "full",
            "geometries": "geojson",
            "steps": "true",
        })

    # ---------------- RouteProvider ----------------

    async def search_completions(self, query: str) -> list[Completion]:
        try:
            items = await asyncio.to_thread(self._search, query, CONFIG["search_limit"])
        except (requests.RequestException, ValueError) as e:
            self.logger.log("Search failed", {"query": query, "error": str(e)})
            raise NoResult(f"Search failed: {e}") from e

        completions = []
        try:
            for item in items:
                title, subtitle = _split_display_name(item)
                completions.append(Completion(
                    title=title,
                    subtitle=subtitle,
                    token={"lat": item.get("lat"), "lon": item.get("lon")},
                ))
        except MALFORMED_RESPONSE as e:
            self.logger.log("Unexpected search response", {"query": query, "error": repr(e)})
            raise NoResult(f"Search failed: {e!r}") from e
        return completions

    async def resolve(self, completion: Completion) -> Coordinate:
        token = completion.token or {}
        try:
            return _item_coordinate(token)
        except (KeyError, TypeError, ValueError):
            # Token carried no usable position; fall back to a text search
            pass
        try:
            items = await asyncio.to_thread(self._search, completion.label, 1)
        except (requests.RequestException, ValueError) as e:
            raise NoResult(f"Search failed: {e}") from e
        if not items:
            raise NoResult()
        try:
            return _item_coordinate(items[0])
        except MALFORMED_RESPONSE as e:
            raise NoResult(f"Unexpected search response: {e!r}") from e

    async def geocode(self, address: str) -> Coordinate:
        try:
            items = await asyncio.to_thread(self._search, address, 1)
        except (requests.RequestException, ValueError) as e:
            raise AddressNotFound(f"Could not find address: {e}") from e
        if not items:
            raise AddressNotFound(f"Could not find address: {address}")
        try:
            return _item_coordinate(items[0])
        except MALFORMED_RESPONSE as e:
            raise AddressNotFound(f"Could not find address: {e!r}") from e

    async def route(self, origin: Coordinate, destination: Coordinate) -> Route:
        try:
            data = await asyncio.to_thread(self._route, origin, destination)
        except (requests.RequestException, ValueError) as e:
            raise NoRouteAvailable(f"Route calculation failed: {e}") from e
        try:
            route = parse_osrm_route(data)
        except MALFORMED_RESPONSE as e:
            self.logger.log("Unexpected route response", {"error": repr(e)})
            raise NoRouteAvailable(f"Route calculation failed: {e!r}") from e
        self.logger.log("Route fetched", {
            "distance": route.distance,
            "duration": route.expected_travel_time,
            "steps": len(route.steps),
        })
        return route
