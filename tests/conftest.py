import asyncio
from typing import Callable, Optional

import pytest

from roadguide.config import EngineConfig
from roadguide.errors import AddressNotFound, NoResult
from roadguide.geo import densify
from roadguide.models import Completion, Coordinate, Route, RouteStep

# A short northbound street grid; each leg is ~111 m
P0 = Coordinate(40.000, -75.000)
P1 = Coordinate(40.001, -75.000)
P2 = Coordinate(40.002, -75.000)
P3 = Coordinate(40.003, -75.000)
FAR_EAST = Coordinate(40.001, -74.990)  # ~850 m off the street


def make_route(instructions=("Head north on Main St", "Turn right onto Oak St",
                             "Continue onto Elm St", "Arrive at your destination"),
               points=(P0, P1, P2, P3), travel_time: float = 60.0) -> Route:
    """One step per instruction; step i starts at points[i].

    The route polyline is densified the way the OSRM provider does it.
    """
    steps = []
    for i, text in enumerate(instructions):
        start = points[i]
        end = points[i + 1] if i + 1 < len(points) else points[i]
        leg = 111.19 if start != end else 0.0
        steps.append(RouteStep(instruction=text, polyline=(start, end), distance=leg))
    total = sum(s.distance for s in steps)
    return Route(steps=tuple(steps), distance=total,
                 expected_travel_time=travel_time, polyline=densify(points, 20))


class FakeProvider:
    """In-memory RouteProvider that records every call"""

    def __init__(self, route: Optional[Route] = None):
        self.calls: list[tuple] = []
        self.routes: list = [route or make_route()]  # last one repeats
        self.completion_count = 8
        self.search_error: Optional[Exception] = None
        self.fail_resolve: set[str] = set()
        self.geocode_results: dict[str, Coordinate] = {}
        self.route_gate: Optional[asyncio.Event] = None
        # Called once, just before the named call returns
        self.interrupts: dict[str, Callable[[], None]] = {}

    def _interrupt(self, kind):
        hook = self.interrupts.pop(kind, None)
        if hook is not None:
            hook()

    def next_route(self):
        if len(self.routes) > 1:
            return self.routes.pop(0)
        return self.routes[0]

    async def search_completions(self, query):
        self.calls.append(("search", query))
        if self.search_error:
            raise self.search_error
        return [Completion(f"{query} {i}", "Springfield", token=i)
                for i in range(self.completion_count)]

    async def resolve(self, completion):
        self.calls.append(("resolve", completion.title))
        if completion.title in self.fail_resolve:
            raise NoResult()
        self._interrupt("resolve")
        return Coordinate(40.01 + completion.token * 0.001, -75.0)

    async def geocode(self, address):
        self.calls.append(("geocode", address))
        if address not in self.geocode_results:
            raise AddressNotFound(f"Could not find address: {address}")
        return self.geocode_results[address]

    async def route(self, origin, destination):
        self.calls.append(("route", origin, destination))
        if self.route_gate is not None:
            await self.route_gate.wait()
        self._interrupt("route")
        result = self.next_route()
        if isinstance(result, Exception):
            raise result
        return result

    def count(self, kind):
        return sum(1 for call in self.calls if call[0] == kind)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingSleep:
    """Stands in for asyncio.sleep; records durations and only yields once"""

    def __init__(self):
        self.durations: list[float] = []

    async def __call__(self, seconds: float):
        self.durations.append(seconds)
        await asyncio.sleep(0)


class EventRecorder:
    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    def of(self, cls):
        return [e for e in self.events if isinstance(e, cls)]

    def names(self):
        return [e.name for e in self.events]


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def config():
    return EngineConfig()
