"""
User feedback: transient toasts and sound cues.

Both are fire-and-forget and synchronous. Listeners (a UI, an audio
backend) register callbacks; the default behaviour is to log.
"""
import logging
from collections import deque
from typing import Callable

logger = logging.getLogger(__name__)

# cue -> [(frequency_hz, duration_s, delay_ms)]
TONES = {
    "complete": [(800, 0.1, 0), (1000, 0.1, 50)],
    "add": [(600, 0.15, 0)],
    "delete": [(400, 0.1, 0), (300, 0.1, 50)],
    "toggle": [(500, 0.08, 0)],
}


class Toaster:
    """Non-blocking notifications. Keeps the most recent messages for inspection."""

    def __init__(self, limit: int = 50):
        self.messages: deque[tuple[str, str]] = deque(maxlen=limit)
        self._listeners: list[Callable[[str, str], None]] = []

    def add_listener(self, listener: Callable[[str, str], None]):
        self._listeners.append(listener)

    def _show(self, level: str, message: str):
        self.messages.append((level, message))
        if level == "error":
            logger.warning("toast: %s", message)
        else:
            logger.info("toast: %s", message)
        for listener in self._listeners:
            listener(level, message)

    def success(self, message: str):
        self._show("success", message)

    def error(self, message: str):
        self._show("error", message)

    def errors(self) -> list[str]:
        return [m for level, m in self.messages if level == "error"]


class SoundBoard:
    def __init__(self, limit: int = 50):
        self.played: deque[str] = deque(maxlen=limit)
        self._listeners: list[Callable[[str, list], None]] = []

    def add_listener(self, listener: Callable[[str, list], None]):
        self._listeners.append(listener)

    def play(self, cue: str):
        if cue not in TONES:
            raise ValueError(f"Unknown sound cue: {cue}")
        self.played.append(cue)
        for listener in self._listeners:
            listener(cue, TONES[cue])

    def complete(self):
        self.play("complete")

    def add(self):
        self.play("add")

    def delete(self):
        self.play("delete")

    def toggle(self):
        self.play("toggle")
