"""Real-time audio sink (sounddevice output callback)."""

from __future__ import annotations

import logging

from quadmix.deps import HAS_SOUNDDEVICE, sd, np
from quadmix.graph import OUTPUT_CHANNELS, AudioGraph


logger = logging.getLogger(__name__)


class AudioEngine:
    """
    Renders the mixer graph into the output device, one block per callback.

    The callback only pulls audio; all wiring and parameter changes happen
    on the control side and are picked up at the next block boundary.
    """

    def __init__(self, graph: AudioGraph, buffer_size: int = 512,
                 output_channels: int = OUTPUT_CHANNELS):
        self.graph = graph
        self.buffer_size = buffer_size
        self.output_channels = output_channels
        self.master_gain: float = 1.0
        self._stream = None

    @property
    def sample_rate(self) -> int:
        return self.graph.sample_rate

    # -- audio callback ------------------------------------------------------

    def _callback(self, outdata, frames: int, time_info, status):
        if status:
            logger.warning("[Audio] %s", status)

        try:
            mixed = self.graph.render(frames)
        except Exception:
            logger.exception("[Audio] render failed")
            outdata.fill(0)
            return

        if mixed.shape[1] != self.output_channels:
            if self.output_channels == 1:
                mixed = mixed.mean(axis=1, keepdims=True)
            else:
                mixed = mixed[:, :self.output_channels]

        mixed *= self.master_gain
        np.clip(mixed, -1.0, 1.0, out=mixed)
        outdata[:] = mixed

    # -- start / stop --------------------------------------------------------

    def start(self, output_device=None):
        if not HAS_SOUNDDEVICE:
            raise RuntimeError("sounddevice not installed")
        if self._stream is not None:
            return
        self._stream = sd.OutputStream(
            samplerate=self.sample_rate,
            blocksize=self.buffer_size,
            channels=self.output_channels,
            dtype="float32",
            callback=self._callback,
            device=output_device,
        )
        self._stream.start()
        logger.info(
            "[Audio] Started sr=%d buf=%d ch=%d",
            self.sample_rate,
            self.buffer_size,
            self.output_channels,
        )

    def stop(self):
        if self._stream:
            self._stream.stop()
            self._stream.close()
            self._stream = None
            logger.info("[Audio] Stopped")

    @property
    def running(self) -> bool:
        return self._stream is not None and self._stream.active
