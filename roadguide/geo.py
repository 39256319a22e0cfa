"""Geographic utility functions."""

from __future__ import annotations

import itertools
import math
import time
from typing import Sequence

from .errors import PolylineEmpty
from .models import Coordinate

EARTH_RADIUS = 6371000  # meters, mean radius for haversine
WGS84_EQUATORIAL_RADIUS = 6378137.0  # meters, used for forward projection


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points in meters using Haversine formula"""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS * c


def bearing_between(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate bearing from point 1 to point 2 in degrees (0-360, 0=North)"""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_lambda = math.radians(lon2 - lon1)

    x = math.sin(delta_lambda) * math.cos(phi2)
    y = (math.cos(phi1) * math.sin(phi2) -
         math.sin(phi1) * math.cos(phi2) * math.cos(delta_lambda))

    bearing = math.degrees(math.atan2(x, y))
    return (bearing + 360) % 360


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates in meters"""
    return haversine_distance(a.lat, a.lon, b.lat, b.lon)


def bearing_degrees(origin: Coordinate, target: Coordinate) -> float:
    """Initial bearing from origin to target, normalized to [0, 360)"""
    return bearing_between(origin.lat, origin.lon, target.lat, target.lon)


def destination_point(origin: Coordinate, distance: float, bearing: float) -> Coordinate:
    """Project a point `distance` meters from origin along `bearing` degrees.

    Used for the camera lookahead point while navigating.
    """
    angular = distance / WGS84_EQUATORIAL_RADIUS
    theta = math.radians(bearing)
    lat1 = math.radians(origin.lat)
    lon1 = math.radians(origin.lon)

    lat2 = math.asin(math.sin(lat1) * math.cos(angular) +
                     math.cos(lat1) * math.sin(angular) * math.cos(theta))
    lon2 = lon1 + math.atan2(math.sin(theta) * math.sin(angular) * math.cos(lat1),
                             math.cos(angular) - math.sin(lat1) * math.sin(lat2))

    # Keep longitude in [-180, 180)
    lon2_deg = (math.degrees(lon2) + 540) % 360 - 180
    return Coordinate(math.degrees(lat2), lon2_deg)


def min_distance_to_polyline(point: Coordinate, polyline: Sequence[Coordinate]) -> float:
    """Minimum distance in meters from point to any vertex of the polyline.

    Only vertices are sampled, not the segments between them, so sparse
    polylines can over-estimate the distance mid-segment.

    Raises:
        PolylineEmpty: if the polyline has no points. Callers check first.
    """
    if not polyline:
        raise PolylineEmpty("cannot measure distance to an empty polyline")
    return min(distance_meters(point, vertex) for vertex in polyline)


def densify(polyline: Sequence[Coordinate], max_spacing: float) -> tuple[Coordinate, ...]:
    """Insert evenly spaced points so consecutive vertices are at most max_spacing apart.

    Off-route checks only look at vertices, so road geometry with long
    straight segments has to be filled in first.
    """
    if len(polyline) < 2:
        return tuple(polyline)

    points = [polyline[0]]
    for a, b in zip(polyline, polyline[1:]):
        pieces = max(1, math.ceil(distance_meters(a, b) / max_spacing))
        for k in range(1, pieces):
            f = k / pieces
            points.append(Coordinate(a.lat + (b.lat - a.lat) * f, a.lon + (b.lon - a.lon) * f))
        points.append(b)
    return tuple(points)


def bearing_to_compass(bearing: float) -> str:
    """Convert bearing to compass direction"""
    directions = ["north", "northeast", "east", "southeast",
                  "south", "southwest", "west", "northwest"]
    index = round(bearing / 45) % 8
    return directions[index]


def retry_with_backoff(func, max_time: float = 30.0, initial_delay: float = 1.0,
                       max_delay: float = 8.0, description: str = "operation",
                       clock=time.monotonic, sleep=time.sleep):
    """Call func until it returns something truthy, doubling the wait each time.

    Gives up and returns None once max_time seconds have passed.
    """
    deadline = clock() + max_time
    delay = initial_delay
    for attempt in itertools.count(1):
        result = func()
        if result:
            return result

        remaining = deadline - clock()
        if remaining <= 0:
            print(f"Failed to complete {description} after {max_time:.1f}s ({attempt} attempts)")
            return None

        wait = min(delay, remaining, max_delay)
        print(f"Retrying {description} in {wait:.1f}s (attempt {attempt})...")
        sleep(wait)
        delay = min(delay * 2, max_delay)
