"""Trip logging for RoadGuide."""

import json
from datetime import datetime
from typing import Callable, Optional


class Logger:
    """
    Writes `[timestamp] message | {json}` lines to stdout, an append-mode
    file, and an optional callback. Engine events go through log_event() so
    a trip log can be replayed line by line.
    """

    def __init__(self, log_path: Optional[str] = None,
                 callback: Optional[Callable[[str, Optional[dict]], None]] = None,
                 echo: bool = True):
        self.log_path = log_path
        self.callback = callback
        self.echo = echo
        self.file = open(log_path, "a") if log_path else None
        if self.file:
            rule = "=" * 60
            self._write(f"\n{rule}\nRoadGuide trip log - {datetime.now().isoformat()}\n{rule}\n")

    @staticmethod
    def default_path(prefix: str = "roadguide") -> str:
        return f"{prefix}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    def _write(self, text: str):
        self.file.write(text + "\n")
        self.file.flush()

    def log(self, message: str, data: Optional[dict] = None):
        line = f"[{datetime.now().isoformat()}] {message}"
        if data:
            line += " | " + json.dumps(data, default=str)
        if self.echo:
            print(line)
        if self.file:
            self._write(line)
        if self.callback:
            self.callback(message, data)

    def log_event(self, event):
        """Log an engine event under its class name"""
        self.log(f"EVENT {event.name}", event.to_dict())

    def close(self):
        if self.file:
            self.file.close()
            self.file = None
