"""Per-channel play / pause / resume state machine."""

from __future__ import annotations

import itertools
import logging
from typing import Callable, Optional

from quadmix.effects import EffectChain
from quadmix.errors import NoSampleError, StopError
from quadmix.graph import BufferSourceNode
from quadmix.models import DEFAULT_PITCH, PCMBuffer, TransportState
from quadmix.samples import SampleStore


logger = logging.getLogger(__name__)

# Instance identities are unique across every channel in the process.
_instance_ids = itertools.count(1)


class PlaybackInstance:
    """One run of a sample, from ``play`` until pause or natural end."""

    def __init__(self, ident: int, source: BufferSourceNode, started_at: float):
        self.ident = ident
        self.source = source
        self.started_at = started_at

    @property
    def buffer(self) -> PCMBuffer:
        return self.source.buffer

    @property
    def loop(self) -> bool:
        return self.source.loop

    @property
    def rate(self) -> float:
        return self.source.playback_rate

    def __repr__(self) -> str:
        return f"<PlaybackInstance #{self.ident} loop={self.loop} rate={self.rate}>"


class TransportController:
    """
    States:
      Idle     no instance, offset 0
      Paused   no instance, offset > 0
      Playing  instance active

    End-of-buffer notifications come from the audio thread, are posted to
    the control thread and carry the identity of the instance they belong
    to; a notification for anything but the current instance is dropped.
    """

    def __init__(self, index: int, store: SampleStore, effects: EffectChain,
                 clock: Callable[[], float], post: Callable[..., None]):
        self.index = index
        self.instance: Optional[PlaybackInstance] = None
        self.pause_offset = 0.0
        self.loop = False
        self.rate = DEFAULT_PITCH
        self.on_stop: Optional[Callable[[], None]] = None

        self._store = store
        self._effects = effects
        self._clock = clock
        self._post = post

    @property
    def state(self) -> TransportState:
        if self.instance is not None:
            return TransportState.PLAYING
        if self.pause_offset > 0:
            return TransportState.PAUSED
        return TransportState.IDLE

    @property
    def playing(self) -> bool:
        return self.instance is not None

    def elapsed(self) -> float:
        """Seconds into the sample for the current or paused run."""
        if self.instance is None:
            return self.pause_offset
        return self._offset(self.instance)

    # -- transitions ---------------------------------------------------------

    def play(self) -> PlaybackInstance:
        sample = self._store.sample
        if sample is None:
            raise NoSampleError(self.index)

        if self.instance is not None:
            previous, self.instance = self.instance, None
            self._halt(previous)
            logger.debug("ch %d restarting, stopped #%d", self.index + 1, previous.ident)

        offset = self.pause_offset
        ident = next(_instance_ids)
        source = BufferSourceNode(
            sample,
            name=f"ch{self.index + 1}.src{ident}",
            loop=self.loop,
            playback_rate=self.rate,
            on_ended=lambda: self._post(self._on_ended, ident),
        )
        self._effects.route_output(self.index, source)
        source.start(offset)

        self.instance = PlaybackInstance(ident, source, self._clock() - offset)
        self.pause_offset = 0.0
        logger.info("ch %d play #%d from %.3fs (loop=%s rate=%.2f)",
                    self.index + 1, ident, offset, self.loop, self.rate)
        return self.instance

    def pause(self):
        instance = self.instance
        if instance is None:
            return
        self.instance = None

        if self._halt(instance):
            self.pause_offset = self._offset(instance)
            logger.info("ch %d paused at %.3fs", self.index + 1, self.pause_offset)
        else:
            # The buffer ran out before the pause got here.
            self.pause_offset = 0.0
            logger.info("ch %d pause after end, offset reset", self.index + 1)
        self._stopped()

    def halt(self):
        """Stop without keeping a resume point."""
        instance, self.instance = self.instance, None
        if instance is not None:
            self._halt(instance)
        self.pause_offset = 0.0
        self._stopped()

    def set_loop(self, flag: bool):
        self.loop = bool(flag)
        if self.instance is not None:
            self.instance.source.loop = self.loop

    def set_rate(self, rate: float):
        self.rate = float(rate)
        if self.instance is not None:
            self.instance.source.playback_rate = self.rate

    # -- internals -----------------------------------------------------------

    def _offset(self, instance: PlaybackInstance) -> float:
        """Wall-clock time into ``instance``, wrapped to the sample when looping."""
        elapsed = self._clock() - instance.started_at
        duration = instance.buffer.duration
        if instance.loop and duration > 0:
            elapsed %= duration
        return max(0.0, elapsed)

    def _halt(self, instance: PlaybackInstance) -> bool:
        """Stop and detach ``instance``; False if it had already ended."""
        try:
            instance.source.stop()
            stopped = True
        except StopError as exc:
            logger.debug("ch %d stop ignored: %s", self.index + 1, exc)
            stopped = False
        self._effects.detach_output(instance.source)
        return stopped

    def _on_ended(self, ident: int):
        instance = self.instance
        if instance is None or instance.ident != ident:
            logger.debug("ch %d stale end of #%d ignored", self.index + 1, ident)
            return
        self.instance = None
        self._effects.detach_output(instance.source)
        self.pause_offset = 0.0
        logger.info("ch %d #%d finished", self.index + 1, ident)
        self._stopped()

    def _stopped(self):
        if self.on_stop is not None:
            self.on_stop()
