"""One mixer channel: sample store, transport and pitch, wired to its strip."""

from __future__ import annotations

import random
from typing import Callable, Optional

from quadmix.effects import EffectChain, impulse_response
from quadmix.gainbus import GainBus
from quadmix.models import DEFAULT_GLITCH_PERIOD, ChannelStatus
from quadmix.pitch import PitchModulator
from quadmix.samples import Notice, SampleDecoder, SampleStore
from quadmix.transport import TransportController


class Channel:

    def __init__(self, index: int, effects: EffectChain, gain_bus: GainBus,
                 decoder: SampleDecoder, clock: Callable[[], float],
                 post: Callable[..., None], notice: Optional[Notice] = None,
                 glitch_period: float = DEFAULT_GLITCH_PERIOD,
                 rng: Optional[random.Random] = None, ir_rng=None):
        self.index = index
        self._effects = effects
        self._gain_bus = gain_bus

        self.store = SampleStore(index, decoder, post, notice)
        self.transport = TransportController(index, self.store, effects, clock, post)
        self.pitch = PitchModulator(index, self.transport, post, glitch_period, rng=rng)
        self.transport.on_stop = self.pitch.deactivate

        effects.set_gain(index, gain_bus.get(index))
        effects.set_impulse_response(
            index, impulse_response(effects.graph.sample_rate, rng=ir_rng))

    @property
    def reverb_mix(self) -> float:
        return self._effects.strips[self.index].mix

    def status(self) -> ChannelStatus:
        sample = self.store.sample
        return ChannelStatus(
            index=self.index,
            state=self.transport.state,
            gain=self._gain_bus.get(self.index),
            reverb_mix=self.reverb_mix,
            pitch=self.pitch.pitch,
            loop=self.transport.loop,
            glitch_active=self.pitch.glitch_active,
            sample_duration=sample.duration if sample is not None else None,
            position=self.transport.elapsed(),
        )
