"""Shared data models and constants."""

from __future__ import annotations

import enum
import random
from dataclasses import dataclass
from typing import Optional

from quadmix.deps import np

NUM_CHANNELS = 4

DEFAULT_GAIN = 1.0
DEFAULT_REVERB_MIX = 0.3
DEFAULT_PITCH = 1.0
DEFAULT_GLITCH_PERIOD = 0.2  # seconds

# Impulse response character (seconds, decay exponent)
DEFAULT_IR_DURATION = 3.0
DEFAULT_IR_DECAY = 2.0


@dataclass(frozen=True)
class PitchDomain:
    """Allowed playback rates, shared by the manual control and glitch mode.

    The manual control accepts any rate in ``[minimum, maximum]``; glitch
    mode only ever picks from ``steps``.
    """

    minimum: float = 0.5
    maximum: float = 2.0
    steps: tuple[float, ...] = (0.5, 1.0, 1.5, 2.0)

    def clamp(self, value: float) -> float:
        return min(self.maximum, max(self.minimum, float(value)))

    def choice(self, rng: random.Random) -> float:
        return rng.choice(self.steps)


PITCH_DOMAIN = PitchDomain()


@dataclass(frozen=True)
class PCMBuffer:
    """Decoded audio: float32 ``data`` shaped (frames, channels)."""

    data: np.ndarray
    sample_rate: int

    @property
    def frames(self) -> int:
        return int(self.data.shape[0])

    @property
    def channels(self) -> int:
        return int(self.data.shape[1])

    @property
    def duration(self) -> float:
        return self.frames / float(self.sample_rate)


class TransportState(enum.Enum):
    IDLE = "Idle"
    PAUSED = "Paused"
    PLAYING = "Playing"


@dataclass(frozen=True)
class ChannelStatus:
    """Read-only snapshot of a channel for rendering in a UI."""

    index: int
    state: TransportState
    gain: float
    reverb_mix: float
    pitch: float
    loop: bool
    glitch_active: bool
    sample_duration: Optional[float]
    position: float

    @property
    def is_playing(self) -> bool:
        return self.state is TransportState.PLAYING
