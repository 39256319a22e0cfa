"""RoadGuide - Live turn-by-turn driving navigation."""

from .config import CONFIG, EngineConfig
from .models import (
    Coordinate,
    Location,
    RouteStep,
    Route,
    Completion,
    SearchCandidate,
    NavigationState,
    AnnouncementState,
)
from .errors import (
    RoutingError,
    AddressNotFound,
    NoResult,
    NoRouteAvailable,
    RerouteFailed,
    PolylineEmpty,
)
from .logger import Logger
from .gps import PositionSource, GPS, FixedPosition, GPSRecorder, GPSPlayback, drive_along
from .geo import (
    haversine_distance,
    bearing_between,
    bearing_to_compass,
    distance_meters,
    bearing_degrees,
    destination_point,
    densify,
    min_distance_to_polyline,
    retry_with_backoff,
)
from .provider import RouteProvider, OSRMProvider, parse_osrm_route, step_instruction
from .ranker import CandidateRanker
from .session import RouteSession, SessionStatus
from .announcer import AnnouncementScheduler, format_distance, format_meters, distance_prefix
from .speed import SpeedMonitor
from .engine import Engine
from .audio import Audio
from .app import RoadGuide
from .__main__ import main
from . import events

__all__ = [
    "CONFIG",
    "EngineConfig",
    "Coordinate",
    "Location",
    "RouteStep",
    "Route",
    "Completion",
    "SearchCandidate",
    "NavigationState",
    "AnnouncementState",
    "RoutingError",
    "AddressNotFound",
    "NoResult",
    "NoRouteAvailable",
    "RerouteFailed",
    "PolylineEmpty",
    "Logger",
    "PositionSource",
    "GPS",
    "FixedPosition",
    "GPSRecorder",
    "GPSPlayback",
    "drive_along",
    "haversine_distance",
    "bearing_between",
    "bearing_to_compass",
    "distance_meters",
    "bearing_degrees",
    "destination_point",
    "densify",
    "min_distance_to_polyline",
    "retry_with_backoff",
    "RouteProvider",
    "OSRMProvider",
    "parse_osrm_route",
    "step_instruction",
    "CandidateRanker",
    "RouteSession",
    "SessionStatus",
    "AnnouncementScheduler",
    "format_distance",
    "format_meters",
    "distance_prefix",
    "SpeedMonitor",
    "Engine",
    "Audio",
    "RoadGuide",
    "events",
    "main",
]
