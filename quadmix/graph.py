"""Block-rendered audio node graph.

The graph is an explicit set of ``(source, destination)`` edges.  Control
code mutates the edge set under a lock; the audio thread snapshots it at the
start of every block and pulls audio from the destination node backwards.

Node outputs are float32 arrays shaped (frames, channels).  A node with
several outgoing edges is rendered once per block and its output shared.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

from quadmix import deps
from quadmix.deps import np
from quadmix.errors import StopError
from quadmix.models import PCMBuffer


OUTPUT_CHANNELS = 2


class AudioNode:
    """Base node: sums its inputs and passes them through."""

    def __init__(self, name: str = ""):
        self.name = name or type(self).__name__

    def process(self, mixed: np.ndarray, sample_rate: int) -> np.ndarray:
        return mixed

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class DestinationNode(AudioNode):
    """Master output."""


class GainNode(AudioNode):

    def __init__(self, name: str = "", gain: float = 1.0):
        super().__init__(name)
        self.gain = float(gain)

    def process(self, mixed: np.ndarray, sample_rate: int) -> np.ndarray:
        return mixed * np.float32(self.gain)


class ConvolverNode(AudioNode):
    """Convolves its input with an impulse response.

    ``buffer`` is a float32 array shaped (channels, samples).  Without a
    buffer, or without pedalboard, the node outputs silence.  The pedalboard
    plugin is built lazily on the audio thread and keeps its tail state
    across blocks.
    """

    def __init__(self, name: str = ""):
        super().__init__(name)
        self._buffer: Optional[np.ndarray] = None
        self._plugin = None

    @property
    def buffer(self) -> Optional[np.ndarray]:
        return self._buffer

    @buffer.setter
    def buffer(self, ir: Optional[np.ndarray]):
        self._buffer = None if ir is None else np.ascontiguousarray(ir, dtype=np.float32)
        self._plugin = None

    def process(self, mixed: np.ndarray, sample_rate: int) -> np.ndarray:
        ir = self._buffer
        if ir is None or not deps.HAS_PEDALBOARD:
            return np.zeros_like(mixed)
        plugin = self._plugin
        if plugin is None:
            plugin = deps.Convolution(ir, mix=1.0, sample_rate=float(sample_rate))
            self._plugin = plugin
        wet = plugin(np.ascontiguousarray(mixed.T), sample_rate, reset=False)
        return np.ascontiguousarray(wet.T, dtype=np.float32)


# Buffer source lifecycle
_UNSTARTED = "unstarted"
_RUNNING = "running"
_STOPPED = "stopped"
_ENDED = "ended"


class BufferSourceNode(AudioNode):
    """One-shot player for a PCM buffer.

    A source can be started once.  ``on_ended`` fires (from the audio
    thread) only when a non-looping source runs off the end of its buffer;
    an explicit ``stop()`` does not fire it.
    """

    def __init__(self, buffer: PCMBuffer, name: str = "", loop: bool = False,
                 playback_rate: float = 1.0,
                 on_ended: Optional[Callable[[], None]] = None):
        super().__init__(name)
        self.buffer = buffer
        self.loop = loop
        self.playback_rate = float(playback_rate)
        self.on_ended = on_ended
        self._position = 0.0  # in buffer frames
        self._state = _UNSTARTED
        self._state_lock = threading.Lock()

    @property
    def position(self) -> float:
        """Current read position in seconds."""
        return self._position / self.buffer.sample_rate

    @property
    def running(self) -> bool:
        return self._state == _RUNNING

    @property
    def ended(self) -> bool:
        return self._state == _ENDED

    def start(self, offset: float = 0.0):
        with self._state_lock:
            if self._state != _UNSTARTED:
                raise RuntimeError(f"{self.name} already started")
            position = max(0.0, float(offset)) * self.buffer.sample_rate
            if self.loop and self.buffer.frames:
                position %= self.buffer.frames
            self._position = position
            self._state = _RUNNING

    def stop(self):
        with self._state_lock:
            if self._state != _RUNNING:
                raise StopError(f"{self.name} is {self._state}")
            self._state = _STOPPED

    def _finish(self):
        with self._state_lock:
            if self._state != _RUNNING:
                return
            self._state = _ENDED
        if self.on_ended is not None:
            self.on_ended()

    def process(self, mixed: np.ndarray, sample_rate: int) -> np.ndarray:
        frames = mixed.shape[0]
        out = np.zeros((frames, OUTPUT_CHANNELS), dtype=np.float32)
        if self._state != _RUNNING:
            return out

        data = self.buffer.data
        total = self.buffer.frames
        if total == 0:
            self._finish()
            return out

        step = self.playback_rate * self.buffer.sample_rate / sample_rate
        positions = self._position + np.arange(frames) * step
        loop = self.loop
        if loop:
            positions = np.mod(positions, total)
            valid = frames
        else:
            valid = int(np.searchsorted(positions, total))
            positions = positions[:valid]

        if valid:
            index = np.arange(total)
            for ch in range(OUTPUT_CHANNELS):
                column = data[:, min(ch, data.shape[1] - 1)]
                out[:valid, ch] = np.interp(positions, index, column)

        self._position += frames * step
        if loop:
            self._position %= total
        elif valid < frames:
            self._finish()
        return out


class AudioGraph:
    """Edge set plus a pull renderer."""

    def __init__(self, sample_rate: int = 44100):
        self.sample_rate = sample_rate
        self.destination = DestinationNode("master")
        self._edges: set[tuple[AudioNode, AudioNode]] = set()
        self._lock = threading.Lock()

    # -- wiring --------------------------------------------------------------

    def connect(self, src: AudioNode, dst: AudioNode):
        with self._lock:
            self._edges.add((src, dst))

    def disconnect(self, src: AudioNode, dst: Optional[AudioNode] = None):
        """Remove ``src -> dst``, or every outgoing edge of ``src``."""
        with self._lock:
            if dst is None:
                self._edges = {e for e in self._edges if e[0] is not src}
            else:
                self._edges.discard((src, dst))

    def edges(self) -> frozenset[tuple[AudioNode, AudioNode]]:
        with self._lock:
            return frozenset(self._edges)

    def outputs(self, node: AudioNode) -> set[AudioNode]:
        with self._lock:
            return {dst for src, dst in self._edges if src is node}

    def inputs(self, node: AudioNode) -> set[AudioNode]:
        with self._lock:
            return {src for src, dst in self._edges if dst is node}

    # -- rendering -----------------------------------------------------------

    def render(self, frames: int) -> np.ndarray:
        """Render one block from the destination node."""
        with self._lock:
            edges = list(self._edges)

        feeds: dict[AudioNode, list[AudioNode]] = {}
        for src, dst in edges:
            feeds.setdefault(dst, []).append(src)

        rendered: dict[AudioNode, np.ndarray] = {}

        def pull(node: AudioNode) -> np.ndarray:
            out = rendered.get(node)
            if out is None:
                mixed = np.zeros((frames, OUTPUT_CHANNELS), dtype=np.float32)
                for src in feeds.get(node, ()):
                    mixed += pull(src)
                out = node.process(mixed, self.sample_rate)
                rendered[node] = out
            return out

        return pull(self.destination)
