"""Data classes for RoadGuide."""

from dataclasses import dataclass, asdict
from typing import Any, Optional


@dataclass(frozen=True)
class Coordinate:
    """WGS-84 latitude/longitude in degrees"""
    lat: float
    lon: float

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lon": self.lon}

    @classmethod
    def from_dict(cls, d: dict) -> "Coordinate":
        return cls(lat=d["lat"], lon=d["lon"])


@dataclass
class Location:
    """A position fix from a GPS source"""
    lat: float
    lon: float
    accuracy: Optional[float] = None
    timestamp: Optional[float] = None
    speed: Optional[float] = None  # mph

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lon)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "Location":
        return cls(**d)


@dataclass(frozen=True)
class RouteStep:
    """One instruction-bearing leg of a route"""
    instruction: str
    polyline: tuple[Coordinate, ...]
    distance: float  # meters

    @property
    def maneuver_point(self) -> Optional[Coordinate]:
        return self.polyline[0] if self.polyline else None


@dataclass(frozen=True)
class Route:
    """A full route; replaced wholesale, never edited"""
    steps: tuple[RouteStep, ...]
    distance: float  # meters
    expected_travel_time: float  # seconds
    polyline: tuple[Coordinate, ...]


@dataclass(frozen=True)
class Completion:
    """A search completion as returned by the route provider"""
    title: str
    subtitle: str
    token: Any = None  # opaque to everything but the provider

    @property
    def label(self) -> str:
        return self.title + (f", {self.subtitle}" if self.subtitle else "")


@dataclass
class SearchCandidate:
    """A suggestion in the destination list, enriched in place as lookups finish"""
    completion: Completion
    coordinate: Optional[Coordinate] = None
    distance: Optional[float] = None  # meters
    travel_time: Optional[float] = None  # seconds
    is_pending: bool = False

    @property
    def title(self) -> str:
        return self.completion.title

    @property
    def subtitle(self) -> str:
        return self.completion.subtitle


@dataclass
class NavigationState:
    """Live navigation state; only RouteSession writes to it"""
    route: Optional[Route] = None
    destination: Optional[Coordinate] = None
    destination_label: str = ""
    current_step_index: int = 0
    remaining_distance: Optional[float] = None  # meters
    estimated_travel_time: Optional[float] = None  # seconds
    rerouting: bool = False
    last_reroute_at: Optional[float] = None  # session clock seconds
    final_reminder_spoken: bool = False
    current_speed: Optional[float] = None  # mph

    @property
    def is_navigating(self) -> bool:
        return self.route is not None and len(self.route.steps) > 0

    @property
    def current_step(self) -> Optional[RouteStep]:
        if self.route and 0 <= self.current_step_index < len(self.route.steps):
            return self.route.steps[self.current_step_index]
        return None

    def reset(self):
        self.route = None
        self.destination = None
        self.destination_label = ""
        self.current_step_index = 0
        self.remaining_distance = None
        self.estimated_travel_time = None
        self.rerouting = False
        self.last_reroute_at = None
        self.final_reminder_spoken = False
        self.current_speed = None


@dataclass
class AnnouncementState:
    """Bookkeeping so each step is announced once on entry"""
    last_spoken_step_index: Optional[int] = None
