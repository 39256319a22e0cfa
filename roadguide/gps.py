"""Position sources the host polls for fixes: live GPS, a fixed point, and traces."""

import json
import subprocess
import time
from datetime import datetime
from typing import Optional, Sequence

from .config import CONFIG
from .geo import bearing_degrees, destination_point, distance_meters
from .models import Coordinate, Location

MPH_PER_MPS = 2.23694


class PositionSource:
    """Common bookkeeping: last fix and a run of failed polls"""

    label = "Position"

    def __init__(self):
        self.last_location: Optional[Location] = None
        self.consecutive_failures = 0

    def get_location(self, timeout: int = 30) -> Optional[Location]:
        raise NotImplementedError

    def _fix(self, location: Location) -> Location:
        self.last_location = location
        self.consecutive_failures = 0
        return location

    def _miss(self) -> None:
        self.consecutive_failures += 1
        return None

    def get_status(self) -> str:
        if self.consecutive_failures:
            return f"{self.label}: {self.consecutive_failures} consecutive failures"
        loc = self.last_location
        acc = f", accuracy {loc.accuracy:.0f}m" if loc and loc.accuracy else ""
        return f"{self.label} OK{acc}"


class GPS(PositionSource):
    """Live fixes from the Termux API"""

    label = "GPS"
    command = ["termux-location", "-p", "gps", "-r", "once"]

    @staticmethod
    def parse(payload: str) -> Location:
        """termux-location JSON to a Location; speed arrives in m/s"""
        data = json.loads(payload)
        speed = data.get("speed")
        return Location(
            lat=data["latitude"],
            lon=data["longitude"],
            accuracy=data.get("accuracy"),
            timestamp=time.time(),
            speed=speed * MPH_PER_MPS if speed is not None else None,
        )

    def get_location(self, timeout: int = 30) -> Optional[Location]:
        try:
            result = subprocess.run(self.command, capture_output=True, text=True, timeout=timeout)
        except (subprocess.TimeoutExpired, FileNotFoundError):
            return self._miss()
        if result.returncode != 0 or not (result.stdout or "").strip():
            return self._miss()
        try:
            return self._fix(self.parse(result.stdout))
        except (json.JSONDecodeError, KeyError):
            return self._miss()


class FixedPosition(PositionSource):
    """Stationary source for --lat/--lon testing without a GPS"""

    label = "Fixed position"

    def __init__(self, lat: float, lon: float, speed: float = 0.0):
        super().__init__()
        self.location = Location(lat=lat, lon=lon, accuracy=0, speed=speed)

    def get_location(self, timeout: int = 30) -> Optional[Location]:
        self.location.timestamp = time.time()
        return self._fix(self.location)

    def get_status(self) -> str:
        return f"{self.label} ({self.location.lat:.5f}, {self.location.lon:.5f})"


# ----------------------------------------------------------------------
# Traces: {"recorded_at": iso, "trace": [{"elapsed", "location", "status"}]}
# ----------------------------------------------------------------------

def save_trace(path: str, entries: list[dict]):
    with open(path, "w") as f:
        json.dump({"recorded_at": datetime.now().isoformat(), "trace": entries}, f, indent=2)


def load_trace(path: str) -> list[dict]:
    with open(path) as f:
        return json.load(f)["trace"]


def drive_along(polyline: Sequence[Coordinate], speed_mph: float,
                interval: float = 1.0) -> list[dict]:
    """Synthetic trace that drives the polyline at a constant speed"""
    if not polyline:
        return []

    stride = speed_mph / MPH_PER_MPS * interval  # meters per sample
    points = [polyline[0]]
    carry = 0.0  # meters driven past the last sample at the start of a segment
    for a, b in zip(polyline, polyline[1:]):
        length = distance_meters(a, b)
        if length == 0:
            continue
        heading = bearing_degrees(a, b)
        offset = stride - carry
        while offset <= length:
            points.append(destination_point(a, offset, heading))
            offset += stride
        carry = length - (offset - stride)
    if points[-1] != polyline[-1]:
        points.append(polyline[-1])

    return [{
        "elapsed": i * interval,
        "location": Location(p.lat, p.lon, accuracy=5.0, speed=speed_mph).to_dict(),
        "status": "simulated",
    } for i, p in enumerate(points)]


class GPSRecorder(PositionSource):
    """Passes fixes through from another source and keeps a trace of every poll"""

    def __init__(self, source: PositionSource, record_path: str):
        super().__init__()
        self.source = source
        self.record_path = record_path
        self.entries: list[dict] = []
        self.start_time = time.time()

    def get_location(self, timeout: int = 30) -> Optional[Location]:
        location = self.source.get_location(timeout)
        # Misses are kept so playback reproduces gaps
        self.entries.append({
            "elapsed": time.time() - self.start_time,
            "location": location.to_dict() if location else None,
            "status": self.source.get_status(),
        })
        return self._fix(location) if location else self._miss()

    def get_status(self) -> str:
        return self.source.get_status()

    def save(self):
        save_trace(self.record_path, self.entries)
        print(f"GPS trace saved to {self.record_path} ({len(self.entries)} entries)")


class GPSPlayback(PositionSource):
    """Replays a trace, one entry per poll, paced by its elapsed times"""

    label = "Playback"

    def __init__(self, entries: list[dict], speed: float = 1.0):
        super().__init__()
        self.trace = entries
        self.speed = speed
        self.index = 0

    @classmethod
    def from_file(cls, path: str, speed: float = 1.0) -> "GPSPlayback":
        playback = cls(load_trace(path), speed)
        print(f"Loaded GPS trace from {path} ({len(playback.trace)} entries)")
        return playback

    @classmethod
    def along(cls, polyline: Sequence[Coordinate], speed_mph: float,
              speed: float = 1.0) -> "GPSPlayback":
        return cls(drive_along(polyline, speed_mph), speed)

    def get_location(self, timeout: int = 30) -> Optional[Location]:
        if self.is_finished():
            return None
        entry = self.trace[self.index]
        self.index += 1
        if not entry["location"]:
            return self._miss()
        return self._fix(Location.from_dict(entry["location"]))

    def get_poll_interval(self) -> float:
        """Gap to the next entry, scaled by playback speed and kept within 0.1-5 s"""
        if self.index <= 0 or self.is_finished():
            return CONFIG["gps_poll_interval"] / self.speed
        delta = self.trace[self.index].get("elapsed", 0) - self.trace[self.index - 1].get("elapsed", 0)
        return max(0.1, min(delta / self.speed, 5.0))

    def is_finished(self) -> bool:
        return self.index >= len(self.trace)

    def get_status(self) -> str:
        progress = f"{self.index}/{len(self.trace)}"
        if self.consecutive_failures:
            return f"{self.label}: {self.consecutive_failures} failures ({progress})"
        return f"{self.label} OK ({progress})"
