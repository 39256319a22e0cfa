"""Main RoadGuide application."""

import asyncio
import time
from typing import Optional

from . import events
from .announcer import format_meters
from .audio import Audio
from .config import CONFIG, EngineConfig
from .engine import Engine
from .geo import retry_with_backoff
from .gps import GPS, FixedPosition, GPSPlayback, GPSRecorder
from .logger import Logger
from .models import Location, SearchCandidate
from .provider import OSRMProvider, RouteProvider
from .session import SessionStatus


class RoadGuide:
    """Main application"""

    def __init__(self, config: Optional[EngineConfig] = None,
                 log_path: Optional[str] = None,
                 provider: Optional[RouteProvider] = None,
                 preview_mode: bool = False,
                 muted: bool = False,
                 start_location: Optional[tuple[float, float]] = None,
                 simulate_mph: Optional[float] = None,
                 playback_speed: float = 1.0):
        self.config = config or EngineConfig()
        self.logger = Logger(log_path, echo=False)
        self.audio = Audio(voice=self.config.voice_identifier)
        self.provider = provider or OSRMProvider(logger=self.logger)
        self.engine = Engine(self.provider, self.config, logger=self.logger)
        self.preview_mode = preview_mode
        self.muted = muted
        self.simulate_mph = simulate_mph
        self.playback_speed = playback_speed

        self.gps = GPS()
        self.gps_source = FixedPosition(*start_location) if start_location else self.gps

        self.current_location: Optional[Location] = None
        self.arrived = False
        self.last_log_update = 0
        self.trip_start_time = 0
        self.positions_fed = 0

        self.engine.subscribe(self.handle_event)

    def set_gps_source(self, source):
        """Set GPS source (any PositionSource)"""
        self.gps_source = source

    def get_state(self) -> dict:
        """Get current state as dict for logging"""
        nav = self.engine.state
        state = {
            "status": self.engine.status.value,
            "step_index": nav.current_step_index,
            "remaining_distance": nav.remaining_distance,
            "eta": nav.estimated_travel_time,
            "speed": nav.current_speed,
            "positions": self.positions_fed,
            "gps_status": self.gps_source.get_status() if hasattr(self.gps_source, "get_status") else "unknown",
        }
        if self.current_location:
            state["location"] = {
                "lat": self.current_location.lat,
                "lon": self.current_location.lon,
                "accuracy": self.current_location.accuracy
            }
        return state

    # ------------------------------------------------------------------
    # Event rendering
    # ------------------------------------------------------------------

    def handle_event(self, event: events.Event):
        """Render engine events to the terminal and speaker"""
        if not isinstance(event, events.SuggestionsChanged):
            self.logger.log_event(event)
        if isinstance(event, events.Announce):
            print(f">> {event.text}")
            self._speak_async(event.text)
        elif isinstance(event, events.Notice):
            print(f"[{event.text}]")
        elif isinstance(event, events.StepChanged):
            print(f"Step {event.index + 1}: {event.instruction}")
        elif isinstance(event, events.ManeuverReached):
            route = self.engine.state.route
            if route and event.index == len(route.steps) - 1:
                self.arrived = True
        elif isinstance(event, events.SpeedWarning):
            print("!! SPEED LIMIT EXCEEDED !!" if event.active else "Speed back under limit")
        elif isinstance(event, events.RouteError):
            print(f"Route error ({event.kind}): {event.message}")
            self._speak_async(event.message)

    def _speak_async(self, text: str):
        # espeak blocks until the phrase is spoken
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.audio.speak(text)
            return
        loop.run_in_executor(None, self.audio.speak, text)

    # ------------------------------------------------------------------

    def initialize(self) -> bool:
        """Get a first position fix"""
        print("Getting GPS fix...")

        # Get GPS fix with retry and backoff (up to 30s)
        def try_gps():
            loc = self.gps_source.get_location(timeout=10)
            if loc:
                self.logger.log("GPS fix obtained", {"lat": loc.lat, "lon": loc.lon})
            else:
                self.logger.log("GPS attempt failed")
            return loc

        location = retry_with_backoff(
            try_gps,
            max_time=30.0,
            initial_delay=1.0,
            max_delay=8.0,
            description="GPS fix"
        )

        if not location:
            self.logger.log("Could not get GPS location after retries")
            print("Could not get GPS location")
            self.audio.speak("Could not get GPS location")
            return False

        print(f"Location: {location.lat:.5f}, {location.lon:.5f} (accuracy: {location.accuracy}m)")
        self.current_location = location
        return True

    async def choose_destination(self, destination: str, search: bool, pick: int) -> bool:
        """Start navigation by direct geocode, or by ranked search and a pick"""
        if not search:
            return await self.engine.navigate_to_address(destination)

        self.engine.set_query(destination)
        await self.engine.ranker.wait_idle()
        candidates = self.engine.candidates
        if not candidates:
            print(f"No suggestions for '{destination}'")
            return False

        self.display_candidates(candidates)
        index = min(max(pick, 1), len(candidates)) - 1
        print(f"Picked {index + 1}: {candidates[index].completion.label}")
        return await self.engine.select_candidate(candidates[index])

    def display_candidates(self, candidates: list[SearchCandidate]):
        print("\nSuggestions:")
        for i, c in enumerate(candidates, 1):
            extra = ""
            if c.distance is not None:
                extra = f"  {format_meters(c.distance, self.config.use_kilometers)}"
                if c.travel_time is not None:
                    extra += f", {c.travel_time / 60:.0f} min"
            print(f"  {i}. {c.completion.label}{extra}")
        print()

    def display_route_preview(self):
        """Display the turn-by-turn list of the current route"""
        nav = self.engine.state
        route = nav.route
        if route is None:
            return

        use_km = self.config.use_kilometers
        print(f"\n{'='*60}")
        print(f"ROUTE PREVIEW: {nav.destination_label}")
        print(f"{'='*60}")
        print(f"Distance: {format_meters(route.distance, use_km)}")
        print(f"Estimated time: {route.expected_travel_time / 60:.0f} minutes")
        print(f"Steps: {len(route.steps)}")
        print()
        for i, step in enumerate(route.steps, 1):
            print(f"  {i:3d}. {step.instruction:<50} {format_meters(step.distance, use_km)}")
        print(f"{'='*60}\n")

    async def update(self) -> bool:
        """Feed one position fix to the engine. Returns False once arrived."""
        # termux-location can block for seconds; keep the loop free for reroutes
        location = await asyncio.to_thread(self.gps_source.get_location, 10)
        if location:
            self.current_location = location
            self.positions_fed += 1
            self.engine.on_position(location.coordinate, location.speed)

        self.periodic_update()
        return not self.arrived

    def periodic_update(self):
        """Handle periodic status updates"""
        now = time.time()

        # Log to file every 10 seconds
        if now - self.last_log_update >= CONFIG["log_interval"]:
            self.logger.log("STATE", self.get_state())
            self.last_log_update = now

    def get_poll_interval(self) -> float:
        if isinstance(self.gps_source, GPSPlayback):
            return self.gps_source.get_poll_interval()
        return CONFIG["gps_poll_interval"]

    def is_playback_finished(self) -> bool:
        return isinstance(self.gps_source, GPSPlayback) and self.gps_source.is_finished()

    async def navigate(self, destination: str, search: bool = False, pick: int = 1):
        """Resolve the destination, then track the trip until arrival or interrupt"""
        self.engine.set_muted(self.muted)
        self.engine.on_position(self.current_location.coordinate, self.current_location.speed)

        if not await self.choose_destination(destination, search, pick):
            return

        if self.preview_mode:
            self.display_route_preview()
            return

        if self.simulate_mph:
            route = self.engine.state.route
            print(f"Simulating the drive at {self.simulate_mph:.0f} mph")
            self.set_gps_source(GPSPlayback.along(route.polyline, self.simulate_mph, self.playback_speed))

        self.trip_start_time = time.time()
        self.engine.announce_trip(started=True)
        while await self.update():
            if self.is_playback_finished():
                print("\nPlayback finished")
                self.logger.log("Playback finished")
                break
            await asyncio.sleep(self.get_poll_interval())

        if self.arrived:
            print("\nArrived")
            self.logger.log("Arrived", {"destination": self.engine.state.destination_label})

    def run(self, destination: str, search: bool = False, pick: int = 1):
        """Run the trip"""

        print(f"\n=== RoadGuide ===")
        print(f"Destination: {destination}")
        if self.preview_mode:
            print("Mode: PREVIEW (calculate and display route)")
        else:
            if isinstance(self.gps_source, GPSPlayback):
                print(f"Playback mode: {self.gps_source.speed}x speed")
            print("Press Ctrl+C to stop")
        print()

        if not self.initialize():
            self.logger.close()
            return

        try:
            asyncio.run(self.navigate(destination, search, pick))
        except KeyboardInterrupt:
            print("\nNavigation interrupted")
            self.audio.speak("Navigation ended")
            self.logger.log("Navigation interrupted by user")
        finally:
            if self.trip_start_time:
                self.engine.announce_trip(started=False)
            # A preview leaves the calculated route in place for inspection
            if self.engine.status is not SessionStatus.IDLE and not self.preview_mode:
                self.engine.end_navigation()
            self.engine.close()

            # Save GPS recording if applicable
            if isinstance(self.gps_source, GPSRecorder):
                self.gps_source.save()

            if self.trip_start_time:
                summary = {
                    "arrived": self.arrived,
                    "positions": self.positions_fed,
                    "duration": time.time() - self.trip_start_time,
                }
                self.logger.log("Trip summary", summary)

                print(f"\nTrip summary:")
                print(f"  Arrived: {'yes' if summary['arrived'] else 'no'}")
                print(f"  Positions: {summary['positions']}")
                print(f"  Duration: {summary['duration']/60:.1f} minutes")

            self.logger.close()
