"""Process-wide channel gain table.

Both the UI slider and the MIDI bridge write here through the same setter;
the last write wins.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from quadmix.models import DEFAULT_GAIN


logger = logging.getLogger(__name__)

GainListener = Callable[[int, float], None]


class GainBus:

    def __init__(self, num_channels: int, default: float = DEFAULT_GAIN):
        self._gains: dict[int, float] = {i: default for i in range(num_channels)}
        self._listeners: list[GainListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: GainListener):
        """Call ``listener(index, gain)`` after every write."""
        self._listeners.append(listener)

    def set(self, index: int, value: float) -> float:
        if index not in self._gains:
            raise ValueError(f"channel must be 1-{len(self._gains)}")
        gain = min(1.0, max(0.0, float(value)))
        with self._lock:
            self._gains[index] = gain
            for listener in self._listeners:
                listener(index, gain)
        logger.info("ch %d gain -> %.2f", index + 1, gain)
        return gain

    def get(self, index: int) -> float:
        if index not in self._gains:
            raise ValueError(f"channel must be 1-{len(self._gains)}")
        return self._gains[index]

    def snapshot(self) -> list[float]:
        with self._lock:
            return [self._gains[i] for i in sorted(self._gains)]
