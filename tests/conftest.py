from __future__ import annotations

import io
import random
import time

import numpy as np
import pytest
import soundfile as sf

from quadmix.host import Mixer

SR = 8000


class FakeClock:
    """Stands in for the mixer's monotonic clock."""

    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_wav(seconds: float = 1.0, sample_rate: int = SR, channels: int = 1,
             freq: float = 220.0) -> bytes:
    t = np.arange(int(seconds * sample_rate)) / sample_rate
    tone = 0.5 * np.sin(2 * np.pi * freq * t)
    data = np.column_stack([tone] * channels) if channels > 1 else tone
    buf = io.BytesIO()
    sf.write(buf, data, sample_rate, format="WAV", subtype="PCM_16")
    return buf.getvalue()


def wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def immediate(fn, *args):
    fn(*args)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mixer(clock):
    notices = []
    m = Mixer(sample_rate=SR, buffer_size=256, glitch_period=0.01, clock=clock,
              rng=random.Random(7), notice=lambda i, msg: notices.append((i, msg)))
    m.notices = notices
    yield m
    m.shutdown()


@pytest.fixture
def load(mixer):
    """Load a tone of the given length into a channel and wait for the swap."""

    def _load(index: int = 0, seconds: float = 10.0, **kwargs):
        return mixer.load_sample(index, make_wav(seconds, **kwargs)).result(timeout=5)

    return _load
