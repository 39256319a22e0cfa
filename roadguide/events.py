"""Events emitted by the engine for the host to render or act on."""

from dataclasses import dataclass, asdict
from typing import Optional

from .models import Route, SearchCandidate


@dataclass(frozen=True)
class Event:
    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class RouteSummary:
    distance: float  # meters
    expected_travel_time: float  # seconds
    step_count: int

    @classmethod
    def of(cls, route: Route) -> "RouteSummary":
        return cls(route.distance, route.expected_travel_time, len(route.steps))


# Navigation lifecycle
@dataclass(frozen=True)
class RouteReady(Event):
    destination_label: str
    total_distance: float  # meters
    eta: float  # seconds


@dataclass(frozen=True)
class Rerouted(Event):
    summary: RouteSummary


@dataclass(frozen=True)
class StepChanged(Event):
    index: int
    instruction: str
    distance_to_maneuver: Optional[float]  # meters, None without a position fix


@dataclass(frozen=True)
class ManeuverReached(Event):
    """The traveler is at the current step's maneuver point; time for the final reminder"""
    index: int
    instruction: str


@dataclass(frozen=True)
class NavigationCleared(Event):
    pass


# Speech and accessibility
@dataclass(frozen=True)
class Announce(Event):
    text: str
    is_final_reminder: bool = False


@dataclass(frozen=True)
class Notice(Event):
    """Short accessibility message, not spoken as guidance"""
    text: str


@dataclass(frozen=True)
class SpeedWarning(Event):
    active: bool


# Search
@dataclass(frozen=True)
class SuggestionsChanged(Event):
    candidates: tuple[SearchCandidate, ...]


# Errors
@dataclass(frozen=True)
class RouteError(Event):
    kind: str  # "NoResult" | "AddressNotFound" | "NoRouteAvailable"
    message: str
