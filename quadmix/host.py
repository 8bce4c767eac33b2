"""quadmix core - the central coordinator for all subsystems."""

from __future__ import annotations

import logging
import random
import threading
import time
from concurrent.futures import Future
from pathlib import Path
from typing import Callable, Optional

from controllers.midibridge import MidiBridge
from quadmix.channel import Channel
from quadmix.dispatch import ControlThread
from quadmix.effects import EffectChain, impulse_response
from quadmix.engine import AudioEngine
from quadmix.errors import MidiUnavailable
from quadmix.gainbus import GainBus
from quadmix.graph import AudioGraph
from quadmix.models import (
    DEFAULT_GLITCH_PERIOD,
    DEFAULT_IR_DECAY,
    DEFAULT_IR_DURATION,
    NUM_CHANNELS,
    ChannelStatus,
    PCMBuffer,
)
from quadmix.samples import SampleDecoder


logger = logging.getLogger(__name__)


def _log_notice(index: int, message: str):
    logger.warning("[ch %d] %s", index + 1, message)


class Mixer:
    """
    Four independent channels sharing one graph, one gain table and one
    control thread.

    Every public method takes the mixer lock, which the control thread also
    holds while it runs posted callbacks, so UI calls and asynchronous
    events never interleave.
    """

    def __init__(self, sample_rate: int = 44100, buffer_size: int = 512,
                 glitch_period: float = DEFAULT_GLITCH_PERIOD,
                 clock: Callable[[], float] = time.monotonic,
                 rng: Optional[random.Random] = None,
                 notice: Optional[Callable[[int, str], None]] = None):
        self.sample_rate = sample_rate
        self.buffer_size = buffer_size
        self.notice = notice or _log_notice

        self._lock = threading.RLock()
        self.control = ControlThread(self._lock)
        self.control.start()

        self.graph = AudioGraph(sample_rate)
        self.engine = AudioEngine(self.graph, buffer_size)
        self.effects = EffectChain(self.graph, NUM_CHANNELS)
        self.gain_bus = GainBus(NUM_CHANNELS)
        self.gain_bus.subscribe(self.effects.set_gain)
        self.decoder = SampleDecoder(sample_rate)
        self.midi = MidiBridge(self.gain_bus, self.control.post)
        self._midi_warned = False

        self.channels = [
            Channel(i, self.effects, self.gain_bus, self.decoder, clock,
                    self.control.post, notice=self._notify,
                    glitch_period=glitch_period, rng=rng)
            for i in range(NUM_CHANNELS)
        ]

    def _notify(self, index: int, message: str):
        self.notice(index, message)

    def _channel(self, index: int) -> Channel:
        if not 0 <= index < NUM_CHANNELS:
            raise ValueError(f"channel must be 1-{NUM_CHANNELS}")
        return self.channels[index]

    def sync(self):
        """Wait for queued asynchronous events (decodes, end notices) to apply."""
        self.control.sync()

    # -- samples -------------------------------------------------------------

    def load_sample(self, index: int, raw: bytes, label: str = "sample") -> Future:
        """Decode ``raw`` in the background; a playing instance is left alone."""
        with self._lock:
            return self._channel(index).store.load(raw, label)

    def load_sample_file(self, index: int, path: str) -> Future:
        channel = self._channel(index)
        p = Path(path).expanduser()
        try:
            raw = p.read_bytes()
        except OSError as e:
            return channel.store.fail(e, p.name)
        return self.load_sample(index, raw, p.name)

    def preload(self, index: int, path: str, timeout: float = 30.0) -> Optional[PCMBuffer]:
        """Populate a channel at startup; failures are logged, never raised."""
        future = self.load_sample_file(index, path)
        try:
            return future.result(timeout)
        except Exception as e:
            logger.warning("preload of channel %d from %s failed: %s", index + 1, path, e)
            return None

    # -- transport -----------------------------------------------------------

    def play(self, index: int):
        with self._lock:
            return self._channel(index).transport.play()

    def pause(self, index: int):
        with self._lock:
            self._channel(index).transport.pause()

    def set_loop(self, index: int, flag: bool):
        with self._lock:
            self._channel(index).transport.set_loop(flag)

    # -- levels and effects --------------------------------------------------

    def set_gain(self, index: int, value: float) -> float:
        with self._lock:
            self._channel(index)
            return self.gain_bus.set(index, value)

    def set_reverb_mix(self, index: int, value: float) -> float:
        with self._lock:
            self._channel(index)
            return self.effects.set_reverb_mix(index, value)

    def set_reverb(self, index: int, duration: float = DEFAULT_IR_DURATION,
                   decay: float = DEFAULT_IR_DECAY, reverse: bool = False):
        """Replace a channel's impulse response with a new room character."""
        ir = impulse_response(self.sample_rate, duration, decay, reverse)
        with self._lock:
            self._channel(index)
            self.effects.set_impulse_response(index, ir)

    # -- pitch ---------------------------------------------------------------

    def set_pitch(self, index: int, value: float) -> float:
        with self._lock:
            return self._channel(index).pitch.set_pitch(value)

    def toggle_glitch(self, index: int) -> bool:
        with self._lock:
            return self._channel(index).pitch.toggle_glitch()

    # -- status --------------------------------------------------------------

    def status(self, index: int) -> ChannelStatus:
        with self._lock:
            return self._channel(index).status()

    def statuses(self) -> list[ChannelStatus]:
        with self._lock:
            return [c.status() for c in self.channels]

    # -- MIDI ----------------------------------------------------------------

    def open_midi(self, port_index: Optional[int] = None,
                  virtual_name: Optional[str] = None) -> list[str]:
        """Attach the MIDI bridge; without MIDI the mixer stays UI-only."""
        try:
            if virtual_name:
                names = [self.midi.open_virtual(virtual_name)]
            elif port_index is None:
                names = self.midi.open_all()
            else:
                names = [self.midi.open(port_index)]
        except MidiUnavailable as e:
            if not self._midi_warned:
                logger.warning("MIDI unavailable, gain is UI-only: %s", e)
                self._midi_warned = True
            return []
        for name in names:
            print(f"[MIDI] Opened: {name}")
        return names

    # -- audio ---------------------------------------------------------------

    def start_audio(self, output_device=None):
        self.engine.start(output_device)

    def stop_audio(self):
        self.engine.stop()

    # -- shutdown ------------------------------------------------------------

    def shutdown(self):
        with self._lock:
            for channel in self.channels:
                channel.transport.halt()
        self.stop_audio()
        self.midi.close()
        self.control.stop()
        self.decoder.shutdown()
        print("[Mixer] Shutdown complete")
