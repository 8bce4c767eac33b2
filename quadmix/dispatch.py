"""The mixer's single logical control thread.

Asynchronous events (decode completion, end-of-playback from the audio
thread, MIDI input, glitch ticks) are posted here and run one at a time
while holding the mixer lock, the same lock public calls take.  That keeps
every configuration change for a channel in arrival order.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Optional


logger = logging.getLogger(__name__)

_STOP = object()


class ControlThread:

    def __init__(self, lock: threading.RLock, name: str = "quadmix-control"):
        self._lock = lock
        self._name = name
        self._queue: queue.Queue = queue.Queue()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0):
        if not self.running:
            return
        self._queue.put(_STOP)
        self._thread.join(timeout)
        self._thread = None

    def post(self, fn: Callable, *args):
        """Queue ``fn(*args)``; safe to call from any thread."""
        self._queue.put((fn, args))

    def sync(self):
        """Block until everything posted so far has run."""
        if self._thread is threading.current_thread():
            raise RuntimeError("sync() called from the control thread")
        self._queue.join()

    def _run(self):
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                fn, args = item
                with self._lock:
                    fn(*args)
            except Exception:
                logger.exception("control callback failed")
            finally:
                self._queue.task_done()
