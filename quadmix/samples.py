"""Sample decoding and per-channel sample storage."""

from __future__ import annotations

import io
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from math import gcd
from typing import Callable, Optional

from quadmix.deps import np, sf, signal
from quadmix.errors import DecodeError
from quadmix.models import PCMBuffer


logger = logging.getLogger(__name__)

Post = Callable[..., None]
Notice = Callable[[int, str], None]


def decode(raw: bytes, sample_rate: int) -> PCMBuffer:
    """Decode encoded audio bytes to float32 PCM at ``sample_rate``."""
    if not raw:
        raise DecodeError("empty input")
    try:
        data, file_rate = sf.read(io.BytesIO(raw), dtype="float32", always_2d=True)
    except (RuntimeError, TypeError, ValueError) as exc:
        raise DecodeError(str(exc)) from exc
    if data.shape[0] == 0:
        raise DecodeError("no audio frames")

    if file_rate != sample_rate:
        div = gcd(int(file_rate), int(sample_rate))
        data = signal.resample_poly(data, sample_rate // div, file_rate // div, axis=0)
        logger.debug("resampled %d Hz -> %d Hz", file_rate, sample_rate)

    return PCMBuffer(np.ascontiguousarray(data, dtype=np.float32), sample_rate)


class SampleDecoder:
    """Runs :func:`decode` off the control thread."""

    def __init__(self, sample_rate: int, max_workers: int = 2):
        self.sample_rate = sample_rate
        self._pool = ThreadPoolExecutor(max_workers=max_workers,
                                        thread_name_prefix="quadmix-decode")

    def submit(self, raw: bytes) -> Future:
        return self._pool.submit(decode, raw, self.sample_rate)

    def shutdown(self):
        self._pool.shutdown(wait=False, cancel_futures=True)


class SampleStore:
    """Holds one channel's current sample.

    ``load`` decodes in the background and swaps the sample in on the
    control thread.  A failed decode keeps the previous sample and is
    reported through ``notice`` instead of raising.
    """

    def __init__(self, index: int, decoder: SampleDecoder, post: Post,
                 notice: Optional[Notice] = None):
        self.index = index
        self.sample: Optional[PCMBuffer] = None
        self._decoder = decoder
        self._post = post
        self._notice = notice

    def load(self, raw: bytes, label: str = "sample") -> Future:
        """Start decoding ``raw``; the returned future resolves after the swap."""
        done: Future = Future()
        pending = self._decoder.submit(raw)
        pending.add_done_callback(
            lambda fut: self._post(self._install, fut, done, label))
        return done

    def fail(self, exc: Exception, label: str = "sample") -> Future:
        """Report a failure that happened before decoding could start."""
        done: Future = Future()
        self._post(self._report, exc, done, label)
        return done

    def _install(self, pending: Future, done: Future, label: str):
        try:
            buffer = pending.result()
        except Exception as exc:
            self._report(exc, done, label)
            return
        self.sample = buffer
        logger.info("ch %d loaded %s (%.2fs, %d ch)",
                    self.index + 1, label, buffer.duration, buffer.channels)
        done.set_result(buffer)

    def _report(self, exc: Exception, done: Future, label: str):
        message = f"Could not load {label} for channel {self.index + 1}: {exc}"
        logger.warning("%s", message)
        if self._notice is not None:
            self._notice(self.index, message)
        done.set_exception(exc)
