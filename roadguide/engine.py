"""Navigation engine: wires search, route tracking, speech and speed warnings."""

import asyncio
import time
from typing import Awaitable, Callable, Optional

from . import events
from .announcer import AnnouncementScheduler, format_meters
from .config import EngineConfig
from .errors import NoResult, RoutingError
from .geo import destination_point
from .logger import Logger
from .models import Coordinate, NavigationState, SearchCandidate
from .provider import RouteProvider
from .ranker import CandidateRanker
from .session import RouteSession, SessionStatus
from .speed import SpeedMonitor

Subscriber = Callable[[events.Event], None]


class Engine:
    """
    Host-facing facade. Owns no navigation logic itself: it routes host calls
    to the ranker and session, turns their signals into events, and applies
    mute and speed-warning policy.

    Typical lifecycle (inside a running event loop):
        engine = Engine(provider, EngineConfig(use_kilometers=True))
        engine.subscribe(render)
        engine.on_position(Coordinate(lat, lon), speed_mph)
        engine.set_query("123 Main")
        ...
        await engine.select_candidate(engine.candidates[0])

        # Position loop:
        engine.on_position(Coordinate(lat, lon), speed_mph)
    """

    SPEED_WARNING_TEXT = "Speed limit exceeded"

    def __init__(self, provider: RouteProvider, config: Optional[EngineConfig] = None,
                 logger: Optional[Logger] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.provider = provider
        self.config = config or EngineConfig()
        self.logger = logger or Logger(echo=False)

        self.session = RouteSession(provider, self.config, emit=self._on_session_event,
                                    logger=self.logger, clock=clock)
        self.ranker = CandidateRanker(provider, self.config, logger=self.logger,
                                      on_change=self._on_candidates_changed, sleep=sleep)
        self.announcer = AnnouncementScheduler(self.config.feet_prefix_threshold)
        self.speed_monitor = SpeedMonitor()

        self.muted = False
        self.position: Optional[Coordinate] = None
        self.speed: Optional[float] = None
        self.speed_warning_active = False
        self.speed_banner_visible = False
        self._subscribers: list[Subscriber] = []

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register an event callback; returns a function that unregisters it"""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _emit(self, event: events.Event):
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                # One broken subscriber must not starve the rest
                self.logger.log("Subscriber error", {"event": event.name, "error": repr(e)})

    def _speak(self, text: Optional[str], is_final_reminder: bool = False):
        if not text:
            return
        if self.muted:
            self.logger.log("Muted announcement", {"text": text})
            return
        self.logger.log(f"AUDIO: {text}")
        self._emit(events.Announce(text, is_final_reminder))

    def _on_session_event(self, event: events.Event):
        if isinstance(event, events.RouteReady):
            self.announcer.reset()
            self._emit(event)
            self._emit(events.Notice(
                f"Route calculated. Distance: {format_meters(event.total_distance, self.config.use_kilometers)}"
            ))
        elif isinstance(event, events.Rerouted):
            self.announcer.reset()
            self._emit(event)
            self._emit(events.Notice("Route recalculated"))
        elif isinstance(event, events.StepChanged):
            self._emit(event)
            text = self.announcer.announce(event.index, False, event.distance_to_maneuver,
                                           event.instruction, self.config.use_kilometers)
            self._speak(text)
        elif isinstance(event, events.ManeuverReached):
            self._emit(event)
            text = self.announcer.announce(event.index, True, None, event.instruction,
                                           self.config.use_kilometers)
            self._speak(text, is_final_reminder=True)
        else:
            self._emit(event)

    def _on_candidates_changed(self, candidates: list[SearchCandidate]):
        self._emit(events.SuggestionsChanged(tuple(candidates)))

    def _route_error(self, error: RoutingError):
        self.logger.log("Route error", {"kind": error.kind, "message": error.message})
        self._emit(events.RouteError(error.kind, error.message))

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> NavigationState:
        return self.session.snapshot()

    @property
    def status(self) -> SessionStatus:
        return self.session.status

    @property
    def candidates(self) -> list[SearchCandidate]:
        return self.ranker.candidates

    def lookahead_point(self, heading: float) -> Optional[Coordinate]:
        """Point ahead of the traveler along `heading`, for the host's camera"""
        if self.position is None:
            return None
        return destination_point(self.position, self.config.lookahead_distance, heading)

    # ------------------------------------------------------------------
    # Host calls
    # ------------------------------------------------------------------

    def set_query(self, text: str):
        self.ranker.update_query(text)

    async def select_candidate(self, candidate: SearchCandidate) -> bool:
        """Navigate to a suggestion picked by the user"""
        self.ranker.clear()
        label = candidate.completion.label
        destination = candidate.coordinate
        if destination is None:
            try:
                destination = await self.provider.resolve(candidate.completion)
            except RoutingError as e:
                self._route_error(e)
                return False
        return await self.start_navigation(destination, label)

    async def navigate_to_address(self, address: str) -> bool:
        """Geocode a typed or saved address and navigate to it"""
        address = address.strip()
        if not address:
            return False
        try:
            destination = await self.provider.geocode(address)
        except RoutingError as e:
            self._route_error(e)
            return False
        return await self.start_navigation(destination, address)

    async def start_navigation(self, destination: Coordinate, label: str = "") -> bool:
        """Compute a route from the current position and start tracking it"""
        origin = self.position
        if origin is None:
            self._route_error(NoResult("Unable to determine current location."))
            return False

        self.logger.log("Calculating route", {
            "from": origin.to_dict(),
            "to": destination.to_dict(),
            "label": label,
        })
        try:
            route = await self.provider.route(origin, destination)
        except RoutingError as e:
            self._route_error(e)
            return False

        self.session.start(route, destination, label)
        return True

    def on_position(self, position: Coordinate, speed: Optional[float] = None):
        """Feed a position fix (speed in mph)"""
        self.position = position
        self.speed = speed
        self.ranker.origin = position
        self.session.on_position(position, speed)
        if speed is not None:
            self._check_speed(speed)

    def end_navigation(self):
        self.session.reset()
        self.announcer.reset()
        self.ranker.clear()
        self._emit(events.NavigationCleared())
        self._emit(events.Notice("Navigation cleared"))

    def move_to_step(self, index: int):
        self.session.move_to_step(index)

    def set_muted(self, muted: bool):
        if muted == self.muted:
            return
        self.muted = muted
        self.logger.log("Muted" if muted else "Unmuted")
        self._emit(events.Notice("Voice guidance muted" if muted else "Voice guidance enabled"))

    def announce_trip(self, started: bool):
        """Accessibility notice when the host starts or stops a trip"""
        text = "Trip started" if started else "Trip ended"
        self.logger.log(text, {"destination": self.session.state.destination_label})
        self._emit(events.Notice(text))

    def dismiss_speed_warning(self):
        """Hide the banner; it will not reopen until speed drops and rises again"""
        self.speed_banner_visible = False

    def close(self):
        self.ranker.close()
        self.session.cancel_reroute()

    # ------------------------------------------------------------------

    def _check_speed(self, speed: float):
        if not self.config.speed_warning_enabled:
            if self.speed_warning_active:
                self.speed_warning_active = False
                self.speed_banner_visible = False
                self._emit(events.SpeedWarning(False))
            return

        active = self.speed_monitor.evaluate(speed, self.config.speed_threshold_mph,
                                             self.speed_warning_active)
        if active and not self.speed_warning_active:
            self.speed_warning_active = True
            self.speed_banner_visible = True
            self.logger.log("Speed warning", {
                "speed": speed,
                "threshold": self.config.speed_threshold_mph,
            })
            self._emit(events.SpeedWarning(True))
            self._speak(self.SPEED_WARNING_TEXT)
        elif not active and self.speed_warning_active:
            self.speed_warning_active = False
            self.speed_banner_visible = False
            self._emit(events.SpeedWarning(False))
