import threading
import time

import numpy as np
import pytest

from conftest import wait_for
from quadmix.models import PITCH_DOMAIN, PitchDomain
from quadmix.pitch import PeriodicTask

STEPS = set(PITCH_DOMAIN.steps)


@pytest.fixture
def pitch_calls(mixer):
    """Record every pitch the channel-0 modulator applies."""
    modulator = mixer.channels[0].pitch
    calls = []
    original = modulator.set_pitch

    def spy(value):
        calls.append(value)
        return original(value)

    modulator.set_pitch = spy
    return calls


def settle(mixer, seconds=0.08):
    time.sleep(seconds)
    mixer.sync()


# -- domain ------------------------------------------------------------------

def test_domain_clamps_to_range():
    domain = PitchDomain()
    assert domain.clamp(0.1) == 0.5
    assert domain.clamp(3) == 2.0
    assert domain.clamp(1.25) == 1.25


def test_domain_steps_lie_inside_range():
    assert all(PITCH_DOMAIN.minimum <= s <= PITCH_DOMAIN.maximum for s in PITCH_DOMAIN.steps)


# -- manual pitch --------------------------------------------------------------

def test_set_pitch_without_instance(mixer):
    assert mixer.set_pitch(0, 1.5) == 1.5
    assert mixer.status(0).pitch == 1.5


def test_set_pitch_applies_live_without_restart(mixer, load):
    load(0)
    instance = mixer.play(0)

    mixer.set_pitch(0, 2.0)

    assert mixer.channels[0].transport.instance is instance
    assert instance.rate == 2.0


def test_pitch_snapshot_taken_at_play(mixer, load):
    load(0)
    mixer.set_pitch(0, 0.5)
    assert mixer.play(0).rate == 0.5


def test_set_pitch_clamps(mixer):
    assert mixer.set_pitch(1, 9.0) == 2.0
    assert mixer.set_pitch(1, 0.0) == 0.5


# -- glitch ------------------------------------------------------------------

def test_glitch_is_noop_when_not_playing(mixer, load, pitch_calls):
    load(0)
    assert mixer.toggle_glitch(0) is False
    settle(mixer)
    assert pitch_calls == []
    assert mixer.status(0).glitch_active is False


def test_glitch_ticks_draw_from_steps(mixer, load, pitch_calls):
    load(0)
    instance = mixer.play(0)

    assert mixer.toggle_glitch(0) is True
    assert mixer.status(0).glitch_active
    assert wait_for(lambda: len(pitch_calls) >= 5)
    mixer.sync()

    assert set(pitch_calls) <= STEPS
    assert instance.rate in STEPS
    mixer.toggle_glitch(0)


def test_toggle_off_stops_ticks(mixer, load, pitch_calls):
    load(0)
    mixer.play(0)
    mixer.toggle_glitch(0)
    assert wait_for(lambda: len(pitch_calls) >= 2)

    assert mixer.toggle_glitch(0) is False
    count = len(pitch_calls)
    settle(mixer)

    assert len(pitch_calls) == count
    assert mixer.status(0).glitch_active is False


def test_pause_stops_ticks(mixer, load, pitch_calls):
    load(0)
    mixer.play(0)
    mixer.toggle_glitch(0)
    assert wait_for(lambda: len(pitch_calls) >= 2)

    mixer.pause(0)
    count = len(pitch_calls)
    settle(mixer)

    assert len(pitch_calls) == count
    assert mixer.status(0).glitch_active is False


def test_natural_end_stops_ticks(mixer, load, pitch_calls):
    load(0, seconds=0.1)
    instance = mixer.play(0)
    mixer.toggle_glitch(0)
    assert wait_for(lambda: len(pitch_calls) >= 1)

    instance.source.process(np.zeros((4096, 2), dtype=np.float32), 8000)
    mixer.sync()
    count = len(pitch_calls)
    settle(mixer)

    assert len(pitch_calls) == count
    assert mixer.status(0).glitch_active is False


def test_replay_keeps_glitch_running(mixer, load, pitch_calls):
    load(0)
    mixer.play(0)
    mixer.toggle_glitch(0)
    mixer.play(0)
    assert mixer.status(0).glitch_active
    mixer.toggle_glitch(0)


# -- periodic task -----------------------------------------------------------

def test_periodic_task_cancel():
    ticks = []
    fired = threading.Event()

    def tick():
        ticks.append(1)
        fired.set()

    task = PeriodicTask(0.005, tick)
    task.start()
    assert fired.wait(1.0)
    task.cancel()
    time.sleep(0.02)
    count = len(ticks)
    time.sleep(0.05)

    assert len(ticks) == count
    assert not task.active


def test_never_started_task_never_fires():
    ticks = []
    task = PeriodicTask(0.001, lambda: ticks.append(1))
    task.cancel()
    time.sleep(0.02)
    assert ticks == []
    assert not task.active


def test_periodic_task_rejects_bad_period():
    with pytest.raises(ValueError):
        PeriodicTask(0, lambda: None)
