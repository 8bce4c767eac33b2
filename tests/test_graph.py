import numpy as np
import pytest

from quadmix.errors import StopError
from quadmix.graph import AudioGraph, BufferSourceNode, GainNode
from quadmix.models import PCMBuffer

SR = 8000


def ramp(frames: int, channels: int = 1) -> PCMBuffer:
    data = np.tile(np.linspace(-0.5, 0.5, frames, dtype=np.float32)[:, None], (1, channels))
    return PCMBuffer(data, SR)


def silence(frames: int) -> np.ndarray:
    return np.zeros((frames, 2), dtype=np.float32)


def test_render_scales_source_through_gain():
    graph = AudioGraph(SR)
    buf = ramp(1000)
    source = BufferSourceNode(buf)
    gain = GainNode("g", 0.5)
    graph.connect(source, gain)
    graph.connect(gain, graph.destination)
    source.start()

    out = graph.render(256)

    assert out.shape == (256, 2)
    np.testing.assert_allclose(out[:, 0], buf.data[:256, 0] * 0.5, atol=1e-6)
    np.testing.assert_allclose(out[:, 0], out[:, 1])


def test_shared_node_is_rendered_once_per_block():
    graph = AudioGraph(SR)
    source = BufferSourceNode(ramp(1000))
    a, b = GainNode("a"), GainNode("b")
    graph.connect(source, a)
    graph.connect(source, b)
    graph.connect(a, graph.destination)
    graph.connect(b, graph.destination)
    source.start()

    graph.render(100)

    # Position advanced by one block, not two
    assert source.position == pytest.approx(100 / SR)


def test_unstarted_source_is_silent():
    source = BufferSourceNode(ramp(100))
    assert not source.process(silence(64), SR).any()


def test_natural_end_fires_once():
    ended = []
    source = BufferSourceNode(ramp(300), on_ended=lambda: ended.append(1))
    source.start()

    out = source.process(silence(256), SR)
    assert ended == []
    source.process(silence(256), SR)
    source.process(silence(256), SR)

    assert ended == [1]
    assert source.ended
    assert out[:, 0].any()


def test_loop_wraps_and_never_ends():
    ended = []
    source = BufferSourceNode(ramp(100), loop=True, on_ended=lambda: ended.append(1))
    source.start(offset=0.5)

    for _ in range(10):
        source.process(silence(64), SR)

    assert ended == []
    assert source.running
    assert 0 <= source.position < 100 / SR


def test_playback_rate_changes_read_speed():
    source = BufferSourceNode(ramp(10000), playback_rate=2.0)
    source.start()
    source.process(silence(100), SR)
    assert source.position == pytest.approx(200 / SR)

    source.playback_rate = 0.5
    source.process(silence(100), SR)
    assert source.position == pytest.approx(250 / SR)


def test_start_at_offset():
    source = BufferSourceNode(ramp(SR * 4))
    source.start(offset=2.0)
    assert source.position == pytest.approx(2.0)


def test_stop_after_end_raises_stop_error():
    source = BufferSourceNode(ramp(10))
    source.start()
    source.process(silence(64), SR)

    with pytest.raises(StopError):
        source.stop()


def test_stop_does_not_fire_on_ended():
    ended = []
    source = BufferSourceNode(ramp(1000), on_ended=lambda: ended.append(1))
    source.start()
    source.stop()
    source.process(silence(2000), SR)

    assert ended == []
    assert not source.running


def test_double_start_rejected():
    source = BufferSourceNode(ramp(10))
    source.start()
    with pytest.raises(RuntimeError):
        source.start()


def test_disconnect_all_outgoing():
    graph = AudioGraph(SR)
    a, b, c = GainNode("a"), GainNode("b"), GainNode("c")
    graph.connect(a, b)
    graph.connect(a, c)
    graph.connect(b, c)

    graph.disconnect(a)

    assert graph.edges() == {(b, c)}
    assert graph.outputs(a) == set()
    assert graph.inputs(c) == {b}


def test_connect_is_idempotent():
    graph = AudioGraph(SR)
    a = GainNode("a")
    graph.connect(a, graph.destination)
    graph.connect(a, graph.destination)
    assert len(graph.edges()) == 1
