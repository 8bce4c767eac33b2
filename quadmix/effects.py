"""Per-channel effect chain: channel gain, then a dry/wet convolution reverb.

Topology per channel strip::

    source -> channel_gain -> dry_gain --------------> master
                           -> convolver -> wet_gain --> master

Sources attach to ``channel_gain`` and come and go with each playback
instance; everything downstream of ``channel_gain`` is owned by the strip.
"""

from __future__ import annotations

import logging
from typing import Optional

from quadmix import deps
from quadmix.deps import np
from quadmix.graph import AudioGraph, AudioNode, ConvolverNode, GainNode
from quadmix.models import (
    DEFAULT_GAIN,
    DEFAULT_IR_DECAY,
    DEFAULT_IR_DURATION,
    DEFAULT_REVERB_MIX,
)


logger = logging.getLogger(__name__)

Edge = tuple[AudioNode, AudioNode]


def impulse_response(sample_rate: int, duration: float = DEFAULT_IR_DURATION,
                     decay: float = DEFAULT_IR_DECAY, reverse: bool = False,
                     rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Synthesize a stereo decaying-noise impulse response.

    Returns float32 shaped (2, length) with ``length = duration * sample_rate``.
    Sample ``n`` is uniform noise in [-1, 1) scaled by
    ``(1 - n / length) ** decay``; with ``reverse`` the envelope uses
    ``length - n`` instead of ``n`` and swells rather than decays.
    """
    if sample_rate <= 0:
        raise ValueError(f"Sample rate must be positive, got {sample_rate}")
    if not np.isfinite(duration) or duration <= 0:
        raise ValueError(f"Duration must be positive, got {duration}")
    if not np.isfinite(decay) or decay < 0:
        raise ValueError(f"Decay must be a non-negative number, got {decay}")
    length = int(sample_rate * duration)
    if length == 0:
        raise ValueError("Impulse response would be empty")

    rng = rng if rng is not None else np.random.default_rng()
    n = np.arange(length, dtype=np.float64)
    if reverse:
        n = length - n
    envelope = (1.0 - n / length) ** decay
    noise = rng.uniform(-1.0, 1.0, size=(2, length))
    return (noise * envelope).astype(np.float32)


def wet_dry_gains(mix: float) -> tuple[float, float]:
    """Return ``(dry, wet)`` for a reverb mix in [0, 1]."""
    return 1.0 - mix, mix


class ChannelStrip:
    """The fixed node set for one channel."""

    def __init__(self, index: int, gain: float = DEFAULT_GAIN,
                 mix: float = DEFAULT_REVERB_MIX):
        label = f"ch{index + 1}"
        self.index = index
        self.channel_gain = GainNode(f"{label}.gain", gain)
        self.dry_gain = GainNode(f"{label}.dry")
        self.wet_gain = GainNode(f"{label}.wet")
        self.convolver = ConvolverNode(f"{label}.reverb")
        self.mix = mix
        self.dry_gain.gain, self.wet_gain.gain = wet_dry_gains(mix)

    def nodes(self) -> tuple[AudioNode, ...]:
        return (self.channel_gain, self.dry_gain, self.convolver, self.wet_gain)

    def desired_edges(self, master: AudioNode) -> set[Edge]:
        return {
            (self.channel_gain, self.dry_gain),
            (self.channel_gain, self.convolver),
            (self.dry_gain, master),
            (self.convolver, self.wet_gain),
            (self.wet_gain, master),
        }


class EffectChain:
    """All channel strips, wired into one graph."""

    def __init__(self, graph: AudioGraph, num_channels: int):
        self.graph = graph
        self.strips = [ChannelStrip(i) for i in range(num_channels)]
        if not deps.HAS_PEDALBOARD:
            logger.warning("pedalboard not installed; reverb wet path is silent")

    def _strip(self, index: int) -> ChannelStrip:
        if not 0 <= index < len(self.strips):
            raise ValueError(f"channel must be 1-{len(self.strips)}")
        return self.strips[index]

    # -- wiring --------------------------------------------------------------

    def strip_edges(self, index: int) -> set[Edge]:
        """Current edges leaving any node owned by the strip."""
        owned = set(self._strip(index).nodes())
        return {e for e in self.graph.edges() if e[0] in owned}

    def rewire(self, index: int):
        """Bring the strip's edges in line with the desired topology.

        ``channel_gain`` is always fully detached before reattaching so a
        repeated rewire can never leave a doubled signal path.
        """
        strip = self._strip(index)
        desired = strip.desired_edges(self.graph.destination)

        self.graph.disconnect(strip.channel_gain)
        current = self.strip_edges(index)

        for src, dst in current - desired:
            self.graph.disconnect(src, dst)
        for src, dst in desired - current:
            self.graph.connect(src, dst)
        logger.debug("ch %d rewired (%d edges)", index + 1, len(desired))

    def set_impulse_response(self, index: int, ir: np.ndarray):
        strip = self._strip(index)
        strip.convolver.buffer = ir
        self.rewire(index)
        logger.info("ch %d impulse response set (%d samples)", index + 1, ir.shape[-1])

    # -- parameters ----------------------------------------------------------

    def set_gain(self, index: int, value: float):
        self._strip(index).channel_gain.gain = float(value)

    def set_reverb_mix(self, index: int, value: float) -> float:
        strip = self._strip(index)
        mix = min(1.0, max(0.0, float(value)))
        strip.mix = mix
        strip.dry_gain.gain, strip.wet_gain.gain = wet_dry_gains(mix)
        logger.debug("ch %d reverb mix -> %.2f", index + 1, mix)
        return mix

    def wet_dry(self, index: int) -> tuple[float, float]:
        """Return ``(dry, wet)`` gains currently applied to the strip."""
        strip = self._strip(index)
        return strip.dry_gain.gain, strip.wet_gain.gain

    # -- sources -------------------------------------------------------------

    def route_output(self, index: int, source: AudioNode):
        self.graph.connect(source, self._strip(index).channel_gain)

    def detach_output(self, source: AudioNode):
        self.graph.disconnect(source)
