"""Spoken instruction scheduling and distance formatting."""

from typing import Optional

from .config import CONFIG
from .models import AnnouncementState

METERS_PER_MILE = 1609.34
KM_PER_MILE = 1.60934
FEET_PER_METER = 3.28084


def format_distance(miles: float, use_kilometers: bool = False) -> str:
    """Format a distance given in miles, e.g. 3.75 mi or 6.04 km"""
    if use_kilometers:
        value, symbol = miles * KM_PER_MILE, "km"
    else:
        value, symbol = miles, "mi"

    if value < 10:
        return f"{value:.2f} {symbol}"
    elif value < 100:
        return f"{value:.1f} {symbol}"
    return f"{value:.0f} {symbol}"


def format_meters(meters: float, use_kilometers: bool = False) -> str:
    return format_distance(meters / METERS_PER_MILE, use_kilometers)


def distance_prefix(distance: float, use_kilometers: bool = False,
                    feet_threshold: float = CONFIG["feet_prefix_threshold"]) -> str:
    """Lead-in for an instruction, e.g. "In 250 feet, " or "In 1.20mi, "."""
    if distance <= feet_threshold:
        return f"In {int(distance * FEET_PER_METER)} feet, "
    return f"In {format_meters(distance, use_kilometers).replace(' ', '')}, "


class AnnouncementScheduler:
    """Decides when a step instruction should be spoken and renders its text.

    Each step gets one "on entry" announcement with a distance prefix, and
    the final reminder at the maneuver point is spoken verbatim. The
    bookkeeping advances even while the host is muted, so unmuting mid-route
    never replays an old step.
    """

    def __init__(self, feet_threshold: float = CONFIG["feet_prefix_threshold"]):
        self.feet_threshold = feet_threshold
        self.state = AnnouncementState()

    def reset(self):
        """Forget spoken steps; called whenever the route is replaced"""
        self.state = AnnouncementState()

    def announce(self, step_index: int, is_final_reminder: bool,
                 distance_to_maneuver: Optional[float], instruction: str,
                 use_kilometers: bool = False) -> Optional[str]:
        """Return the text to speak, or None if nothing should be said"""
        if not instruction:
            return None

        if is_final_reminder:
            # The session decides when a reminder is due; speak it as is
            return instruction

        if self.state.last_spoken_step_index == step_index:
            return None
        self.state.last_spoken_step_index = step_index

        if distance_to_maneuver is None:
            return instruction
        prefix = distance_prefix(distance_to_maneuver, use_kilometers, self.feet_threshold)
        return prefix + instruction
