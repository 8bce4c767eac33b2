"""Playback-rate control and the randomized "glitch" mode."""

from __future__ import annotations

import logging
import random
import threading
from typing import Callable, Optional

from quadmix.models import DEFAULT_GLITCH_PERIOD, DEFAULT_PITCH, PITCH_DOMAIN, PitchDomain
from quadmix.transport import TransportController


logger = logging.getLogger(__name__)


class PeriodicTask:
    """Calls ``callback`` every ``period`` seconds on a daemon thread until cancelled."""

    def __init__(self, period: float, callback: Callable[[], None], name: str = "periodic"):
        if period <= 0:
            raise ValueError("period must be positive")
        self.period = period
        self._callback = callback
        self._cancelled = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def active(self) -> bool:
        return self._thread.is_alive() and not self._cancelled.is_set()

    def start(self):
        self._thread.start()

    def cancel(self):
        self._cancelled.set()

    def _run(self):
        while not self._cancelled.wait(self.period):
            self._callback()


class PitchModulator:
    """Owns a channel's pitch and its glitch task.

    Glitch ticks run on their own thread but only *post* a tick; the tick
    is applied on the control thread and only if the task that produced it
    is still the channel's current task.
    """

    def __init__(self, index: int, transport: TransportController,
                 post: Callable[..., None], period: float = DEFAULT_GLITCH_PERIOD,
                 domain: PitchDomain = PITCH_DOMAIN,
                 rng: Optional[random.Random] = None):
        self.index = index
        self.domain = domain
        self.period = period
        self.pitch = domain.clamp(DEFAULT_PITCH)
        self._transport = transport
        self._post = post
        self._rng = rng or random.Random()
        self._task: Optional[PeriodicTask] = None
        transport.set_rate(self.pitch)

    @property
    def glitch_active(self) -> bool:
        return self._task is not None

    def set_pitch(self, value: float) -> float:
        self.pitch = self.domain.clamp(value)
        self._transport.set_rate(self.pitch)
        return self.pitch

    def toggle_glitch(self) -> bool:
        """Flip glitch mode; returns the new state.  No-op unless playing."""
        if not self._transport.playing:
            logger.debug("ch %d glitch ignored (not playing)", self.index + 1)
            return False
        if self._task is not None:
            self.deactivate()
            return False

        task = PeriodicTask(self.period, lambda: self._post(self._tick, task),
                            name=f"quadmix-glitch-{self.index + 1}")
        self._task = task
        task.start()
        logger.info("ch %d glitch on (%.0f ms)", self.index + 1, self.period * 1000)
        return True

    def deactivate(self):
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            logger.info("ch %d glitch off", self.index + 1)

    def _tick(self, task: PeriodicTask):
        if task is not self._task:
            return
        value = self.domain.choice(self._rng)
        self.set_pitch(value)
        logger.debug("ch %d glitch pitch -> %.1f", self.index + 1, value)
