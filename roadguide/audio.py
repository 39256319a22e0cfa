"""Speech output for RoadGuide announcements."""

import subprocess
from typing import Callable, Optional


class Audio:
    """Speaks announcements with espeak, then pyttsx3, then stdout as a last resort"""

    callback: Optional[Callable[[str], None]] = None  # observer shared by all instances

    def __init__(self, voice: str = "", rate: int = 150):
        self.voice = voice
        self.rate = rate

    def espeak_command(self, text: str) -> list[str]:
        cmd = ["espeak", "-s", str(self.rate)]
        if self.voice:
            cmd += ["-v", self.voice]
        return cmd + [text]

    def _espeak(self, text: str) -> bool:
        try:
            subprocess.run(self.espeak_command(text), capture_output=True, timeout=10)
        except FileNotFoundError:
            return False
        return True

    def _pyttsx3(self, text: str) -> bool:
        try:
            import pyttsx3
            engine = pyttsx3.init()
            if self.voice:
                engine.setProperty("voice", self.voice)
            engine.setProperty("rate", self.rate)
            engine.say(text)
            engine.runAndWait()
        except Exception:
            return False
        return True

    def speak(self, text: str):
        if Audio.callback:
            Audio.callback(text)
        try:
            if self._espeak(text) or self._pyttsx3(text):
                return
        except Exception as e:
            print(f"Audio error: {e}")
        print(f"[AUDIO] {text}")
