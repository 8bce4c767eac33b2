import numpy as np
import pytest

from quadmix.engine import AudioEngine
from quadmix.graph import AudioGraph, BufferSourceNode, GainNode
from quadmix.models import PCMBuffer

SR = 8000


def constant_source(value: float, frames: int = 1000) -> BufferSourceNode:
    return BufferSourceNode(PCMBuffer(np.full((frames, 1), value, dtype=np.float32), SR))


def test_callback_writes_rendered_block():
    graph = AudioGraph(SR)
    source = constant_source(0.25)
    graph.connect(source, graph.destination)
    source.start()
    engine = AudioEngine(graph, buffer_size=128)

    out = np.zeros((128, 2), dtype=np.float32)
    engine._callback(out, 128, None, None)

    np.testing.assert_allclose(out, 0.25)


def test_callback_applies_master_gain_and_clips():
    graph = AudioGraph(SR)
    source = constant_source(0.8)
    boost = GainNode("boost", 3.0)
    graph.connect(source, boost)
    graph.connect(boost, graph.destination)
    source.start()
    engine = AudioEngine(graph)

    out = np.zeros((64, 2), dtype=np.float32)
    engine._callback(out, 64, None, None)
    assert np.all(out == 1.0)

    engine.master_gain = 0.1
    engine._callback(out, 64, None, None)
    np.testing.assert_allclose(out, 0.24, rtol=1e-5)


def test_callback_downmixes_to_mono():
    graph = AudioGraph(SR)
    source = constant_source(0.5)
    graph.connect(source, graph.destination)
    source.start()
    engine = AudioEngine(graph, output_channels=1)

    out = np.zeros((32, 1), dtype=np.float32)
    engine._callback(out, 32, None, None)
    np.testing.assert_allclose(out, 0.5)


def test_engine_not_running_until_started():
    engine = AudioEngine(AudioGraph(SR))
    assert not engine.running
    engine.stop()


def test_full_mixer_dry_path(mixer, load):
    pytest.importorskip("pedalboard")
    buf = load(0, seconds=1.0)
    mixer.set_gain(0, 0.5)
    mixer.set_reverb_mix(0, 0.0)
    mixer.play(0)

    out = mixer.graph.render(256)

    assert out.shape == (256, 2)
    np.testing.assert_allclose(out[:, 0], buf.data[:256, 0] * 0.5, atol=1e-6)


def test_full_mixer_wet_path_is_audible(mixer, load):
    pytest.importorskip("pedalboard")
    load(0, seconds=1.0)
    mixer.set_reverb_mix(0, 1.0)
    mixer.play(0)

    blocks = [mixer.graph.render(256) for _ in range(8)]

    assert all(np.isfinite(b).all() for b in blocks)
    assert np.abs(np.concatenate(blocks)).max() > 1e-3


def test_half_mix_halves_dry_component(mixer, load):
    buf = load(0, seconds=1.0)
    mixer.set_reverb_mix(0, 0.5)
    mixer.graph.disconnect(mixer.effects.strips[0].wet_gain)
    mixer.play(0)

    out = mixer.graph.render(256)

    np.testing.assert_allclose(out[:, 0], buf.data[:256, 0] * 0.5, atol=1e-6)
