"""Configuration settings for RoadGuide."""

from dataclasses import dataclass

CONFIG = {
    # Route tracking
    "step_advance_radius": 30,  # meters - maneuver point counts as reached inside this
    "off_route_threshold": 40,  # meters - reroute if further than this from the route polyline
    "reroute_cooldown": 10,  # seconds - minimum gap between reroute requests
    # Destination search
    "search_debounce": 0.3,  # seconds of quiet typing before a completion lookup
    "enrichment_stagger": 0.2,  # seconds between candidate enrichment requests
    "max_enriched_candidates": 5,  # only the first N suggestions get distance/ETA
    # Announcements
    "feet_prefix_threshold": 300 * 0.3048,  # meters - "In N feet" below this
    "lookahead_distance": 100,  # meters ahead of the driver for the camera point
    # Speed warning
    "speed_threshold_mph": 75.0,
    "speed_warning_enabled": True,
    # Host loop
    "gps_poll_interval": 3,  # seconds
    "log_interval": 10,  # seconds between STATE log entries
    # Routing provider
    "osrm_url": "https://router.project-osrm.org",
    "nominatim_url": "https://nominatim.openstreetmap.org",
    "search_limit": 10,
    "request_timeout": 10,  # seconds
    "polyline_max_spacing": 20,  # meters - route geometry is densified to at least this resolution
    "user_agent": "roadguide/0.1 (turn-by-turn navigation)",
}


@dataclass
class EngineConfig:
    """Per-session settings threaded through the engine and its components."""

    use_kilometers: bool = False
    speed_threshold_mph: float = CONFIG["speed_threshold_mph"]
    speed_warning_enabled: bool = CONFIG["speed_warning_enabled"]
    voice_identifier: str = ""  # consumed by the host's speech layer only

    step_advance_radius: float = CONFIG["step_advance_radius"]
    off_route_threshold: float = CONFIG["off_route_threshold"]
    reroute_cooldown: float = CONFIG["reroute_cooldown"]

    search_debounce: float = CONFIG["search_debounce"]
    enrichment_stagger: float = CONFIG["enrichment_stagger"]
    max_enriched_candidates: int = CONFIG["max_enriched_candidates"]

    feet_prefix_threshold: float = CONFIG["feet_prefix_threshold"]
    lookahead_distance: float = CONFIG["lookahead_distance"]

    @classmethod
    def from_args(cls, args) -> "EngineConfig":
        """Build a config from parsed CLI arguments"""
        return cls(
            use_kilometers=args.km,
            speed_threshold_mph=args.speed_limit,
            speed_warning_enabled=not args.no_speed_warning,
            voice_identifier=args.voice or "",
        )
