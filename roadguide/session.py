"""Navigation state machine: step tracking, remaining distance and rerouting."""

import asyncio
import dataclasses
import time
from enum import Enum
from typing import Callable, Optional

from .config import EngineConfig
from .errors import RerouteFailed, RoutingError
from .events import Event, ManeuverReached, Rerouted, RouteReady, RouteSummary, StepChanged
from .geo import distance_meters, min_distance_to_polyline
from .logger import Logger
from .models import Coordinate, NavigationState, Route
from .provider import RouteProvider


class SessionStatus(Enum):
    IDLE = "idle"
    NAVIGATING = "navigating"
    REROUTING = "rerouting"


class RouteSession:
    """
    Owns the NavigationState for one navigation session.

    Usage:
        session = RouteSession(provider, config, emit=handle_event)
        session.start(route, destination, "123 Main St")

        # On every position fix (inside the event loop):
        session.on_position(position, speed)

    Off-route detection starts a reroute in the background; on_position never
    waits for it. Results from a reroute that was overtaken by start() or
    reset() are dropped.
    """

    def __init__(self, provider: RouteProvider, config: Optional[EngineConfig] = None,
                 emit: Optional[Callable[[Event], None]] = None,
                 logger: Optional[Logger] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.provider = provider
        self.config = config or EngineConfig()
        self.emit = emit or (lambda event: None)
        self.logger = logger or Logger(echo=False)
        self.clock = clock

        self._state = NavigationState()
        self._generation = 0  # bumped whenever the route is replaced by start/reset
        self._reroute_task: Optional[asyncio.Task] = None
        self._last_position: Optional[Coordinate] = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> NavigationState:
        """Live state. Do not mutate; use snapshot() to keep a copy."""
        return self._state

    def snapshot(self) -> NavigationState:
        return dataclasses.replace(self._state)

    @property
    def status(self) -> SessionStatus:
        if not self._state.is_navigating:
            return SessionStatus.IDLE
        if self._state.rerouting:
            return SessionStatus.REROUTING
        return SessionStatus.NAVIGATING

    @property
    def last_position(self) -> Optional[Coordinate]:
        return self._last_position

    def distance_to_maneuver(self, position: Coordinate) -> Optional[float]:
        """Distance from position to the current step's maneuver point"""
        step = self._state.current_step
        if step is None:
            return None
        target = step.maneuver_point or self._state.destination or position
        return distance_meters(position, target)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, route: Route, destination: Coordinate, destination_label: str = ""):
        """Begin navigating a freshly computed route"""
        if not route.steps:
            raise ValueError("cannot navigate a route with no steps")

        self._generation += 1
        state = self._state
        state.reset()
        state.route = route
        state.destination = destination
        state.destination_label = destination_label
        state.remaining_distance = route.distance
        state.estimated_travel_time = route.expected_travel_time

        self.logger.log("Navigation started", {
            "destination": destination_label,
            "distance": route.distance,
            "eta": route.expected_travel_time,
            "steps": len(route.steps),
        })
        self.emit(RouteReady(destination_label, route.distance, route.expected_travel_time))
        self._emit_step_changed()

    def reset(self):
        """Return to idle, dropping the route and any pending reroute result"""
        self._generation += 1
        self._state.reset()
        self.logger.log("Navigation reset")

    def move_to_step(self, index: int):
        """Jump to a step manually; indices outside the route are ignored"""
        route = self._state.route
        if route is None or not 0 <= index < len(route.steps):
            return
        changed = index != self._state.current_step_index
        self._state.current_step_index = index
        self._state.final_reminder_spoken = False
        if changed:
            self.logger.log("Moved to step", {"index": index})
            self._emit_step_changed()

    # ------------------------------------------------------------------
    # Position updates
    # ------------------------------------------------------------------

    def on_position(self, position: Coordinate, speed: Optional[float] = None):
        """Advance steps, refresh remaining distance and check for off-route"""
        self._last_position = position
        self._state.current_speed = speed
        if not self._state.is_navigating:
            return

        # Order matters: remaining distance depends on the possibly advanced step
        self._check_step_proximity(position)
        self._update_remaining_distance(position)
        self._check_off_route(position)

    def _check_step_proximity(self, position: Coordinate):
        state = self._state
        step = state.current_step
        distance = self.distance_to_maneuver(position)
        if step is None or distance is None or distance >= self.config.step_advance_radius:
            return

        if not state.final_reminder_spoken:
            state.final_reminder_spoken = True
            self.emit(ManeuverReached(state.current_step_index, step.instruction))

        if state.current_step_index < len(state.route.steps) - 1:
            state.current_step_index += 1
            state.final_reminder_spoken = False
            self.logger.log("Advanced to step", {
                "index": state.current_step_index,
                "instruction": state.current_step.instruction,
            })
            self._emit_step_changed()

    def _update_remaining_distance(self, position: Coordinate):
        state = self._state
        steps = state.route.steps
        index = state.current_step_index
        # Swap the current leg's full length for the live distance to its maneuver
        remaining = sum(step.distance for step in steps[index:])
        remaining -= steps[index].distance
        remaining += self.distance_to_maneuver(position)
        state.remaining_distance = remaining

    def _check_off_route(self, position: Coordinate):
        state = self._state
        if not state.route.polyline:
            return
        off_route = min_distance_to_polyline(position, state.route.polyline)
        if off_route <= self.config.off_route_threshold:
            return
        if state.rerouting:
            return
        now = self.clock()
        if state.last_reroute_at is not None and now - state.last_reroute_at < self.config.reroute_cooldown:
            return
        if state.destination is None:
            return

        state.rerouting = True
        state.last_reroute_at = now
        self.logger.log("Off route, rerouting", {
            "distance_from_route": round(off_route, 1),
            "lat": position.lat,
            "lon": position.lon,
        })
        loop = asyncio.get_running_loop()
        self._reroute_task = loop.create_task(
            self._reroute(position, state.destination, self._generation)
        )

    # ------------------------------------------------------------------
    # Rerouting
    # ------------------------------------------------------------------

    async def _request_route(self, origin: Coordinate, destination: Coordinate) -> Route:
        try:
            return await self.provider.route(origin, destination)
        except RoutingError as e:
            raise RerouteFailed(str(e)) from e

    async def _reroute(self, origin: Coordinate, destination: Coordinate, generation: int):
        route = None
        try:
            route = await self._request_route(origin, destination)
        except RerouteFailed as e:
            # Keep driving on the old route
            self.logger.log("Reroute failed", {"error": str(e)})
        finally:
            if generation == self._generation:
                self._state.rerouting = False

        if route is None:
            return
        if generation != self._generation:
            self.logger.log("Discarding stale reroute result")
            return
        if not route.steps:
            self.logger.log("Reroute returned no steps; keeping current route")
            return

        state = self._state
        state.route = route
        state.current_step_index = 0
        state.final_reminder_spoken = False
        state.estimated_travel_time = route.expected_travel_time
        if self._last_position is not None:
            self._update_remaining_distance(self._last_position)
        else:
            state.remaining_distance = route.distance

        self.logger.log("Rerouted", {
            "distance": route.distance,
            "eta": route.expected_travel_time,
            "steps": len(route.steps),
        })
        self.emit(Rerouted(RouteSummary.of(route)))
        self._emit_step_changed()

    async def wait_for_reroute(self):
        """Wait for the in-flight reroute, if any, to settle"""
        task = self._reroute_task
        if task is not None and not task.done():
            await task

    def cancel_reroute(self):
        if self._reroute_task is not None and not self._reroute_task.done():
            self._reroute_task.cancel()
        self._state.rerouting = False

    # ------------------------------------------------------------------

    def _emit_step_changed(self):
        state = self._state
        step = state.current_step
        distance = None
        if self._last_position is not None:
            distance = self.distance_to_maneuver(self._last_position)
        self.emit(StepChanged(state.current_step_index, step.instruction, distance))
