#!/usr/bin/env python3
"""
RoadGuide - Live turn-by-turn driving navigation

Usage:
    python -m roadguide DESTINATION [options]

Options:
    --search            Treat DESTINATION as a search query and pick a suggestion
    --pick N            Suggestion to navigate to with --search (default: 1)
    --lat LAT           Starting latitude (for testing without GPS)
    --lon LON           Starting longitude (for testing without GPS)
    --record FILE       Record GPS trace to JSON file for debugging
    --playback FILE     Playback GPS trace from JSON file
    --speed FACTOR      Playback speed multiplier (default: 1.0)
    --simulate MPH      Drive the computed route virtually at MPH
    --km                Use kilometers instead of miles
    --speed-limit MPH   Speed warning threshold (default: 75)
    --no-speed-warning  Disable speed warnings
    --voice ID          espeak/pyttsx3 voice identifier
    --mute              Start with voice guidance muted
    --preview           Print the route's turn-by-turn list and exit
    --log FILE          Log file path (default: roadguide_TIMESTAMP.log)
"""

import argparse
import sys
from pathlib import Path

from .app import RoadGuide
from .config import CONFIG, EngineConfig
from .gps import GPSRecorder, GPSPlayback
from .logger import Logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="RoadGuide - Live turn-by-turn driving navigation"
    )
    parser.add_argument("destination",
                        help="Destination address, or a search query with --search")
    parser.add_argument("--search", action="store_true",
                        help="Search for DESTINATION and navigate to a suggestion")
    parser.add_argument("--pick", type=int, default=1, metavar="N",
                        help="Suggestion to navigate to with --search (default: 1)")
    parser.add_argument("--lat", type=float, metavar="LAT",
                        help="Starting latitude (for testing without GPS)")
    parser.add_argument("--lon", type=float, metavar="LON",
                        help="Starting longitude (for testing without GPS)")
    parser.add_argument("--record", metavar="FILE",
                        help="Record GPS trace to JSON file")
    parser.add_argument("--playback", metavar="FILE",
                        help="Playback GPS trace from JSON file")
    parser.add_argument("--speed", type=float, default=1.0,
                        help="Playback speed multiplier (default: 1.0)")
    parser.add_argument("--simulate", type=float, metavar="MPH",
                        help="Drive the computed route virtually at this speed")
    parser.add_argument("--km", action="store_true",
                        help="Use kilometers instead of miles")
    parser.add_argument("--speed-limit", type=float, default=CONFIG["speed_threshold_mph"],
                        metavar="MPH", help="Speed warning threshold in mph (default: 75)")
    parser.add_argument("--no-speed-warning", action="store_true",
                        help="Disable speed warnings")
    parser.add_argument("--voice", metavar="ID",
                        help="Voice identifier for speech output")
    parser.add_argument("--mute", action="store_true",
                        help="Start with voice guidance muted")
    parser.add_argument("--preview", action="store_true",
                        help="Print the route's turn-by-turn list and exit")
    parser.add_argument("--log", metavar="FILE",
                        help="Log file path (default: roadguide_TIMESTAMP.log)")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Validate lat/lon - must provide both or neither
    if (args.lat is None) != (args.lon is None):
        parser.error("--lat and --lon must be used together")

    if args.playback and args.record:
        parser.error("--playback and --record cannot be combined")

    if args.simulate is not None and (args.playback or args.simulate <= 0):
        parser.error("--simulate needs a positive speed and cannot be combined with --playback")

    log_path = args.log or Logger.default_path()

    start_location = (args.lat, args.lon) if args.lat is not None else None
    guide = RoadGuide(
        config=EngineConfig.from_args(args),
        log_path=log_path,
        preview_mode=args.preview,
        muted=args.mute,
        start_location=start_location,
        simulate_mph=args.simulate,
        playback_speed=args.speed,
    )

    # Set up GPS source
    if args.playback:
        if not Path(args.playback).exists():
            print(f"Playback file not found: {args.playback}")
            sys.exit(1)
        guide.set_gps_source(GPSPlayback.from_file(args.playback, args.speed))
    elif args.record:
        guide.set_gps_source(GPSRecorder(guide.gps_source, args.record))

    guide.run(args.destination, search=args.search, pick=args.pick)


if __name__ == "__main__":
    main()
