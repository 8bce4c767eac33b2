"""Low-level MIDI input port wrapper (python-rtmidi)."""

from __future__ import annotations

from typing import Callable, Optional

from quadmix.deps import HAS_RTMIDI, rtmidi
from quadmix.errors import MidiUnavailable


def list_ports() -> list[str]:
    """Names of the available MIDI inputs; empty without rtmidi."""
    if not HAS_RTMIDI:
        return []
    try:
        m = rtmidi.MidiIn()
    except Exception as exc:
        raise MidiUnavailable(f"MIDI backend unavailable: {exc}") from exc
    try:
        return [m.get_port_name(i) for i in range(m.get_port_count())]
    except Exception as exc:
        raise MidiUnavailable(f"cannot list MIDI inputs: {exc}") from exc
    finally:
        m.delete()


class MidiPort:
    """One hardware or virtual MIDI input with a callback.

    The callback gets rtmidi's ``((status, data1, data2), delta)`` tuple.
    Backend failures (no sequencer, busy port) surface as MidiUnavailable.
    """

    def __init__(self):
        self._port = None
        self._name: Optional[str] = None

    def open(self, port_index: int, callback: Callable) -> str:
        self.close()
        port = self._new_input()
        try:
            count = port.get_port_count()
            if not 0 <= port_index < count:
                raise MidiUnavailable(f"no MIDI input port {port_index} ({count} available)")
            port.open_port(port_index)
            port.set_callback(callback)
            name = port.get_port_name(port_index)
        except MidiUnavailable:
            port.delete()
            raise
        except Exception as exc:
            port.delete()
            raise MidiUnavailable(f"cannot open MIDI input {port_index}: {exc}") from exc
        self._port = port
        self._name = name
        return name

    def open_virtual(self, name: str, callback: Callable) -> str:
        self.close()
        port = self._new_input()
        try:
            port.open_virtual_port(name)
            port.set_callback(callback)
        except Exception as exc:
            port.delete()
            raise MidiUnavailable(f"cannot open virtual MIDI input '{name}': {exc}") from exc
        self._port = port
        self._name = name
        return name

    def close(self):
        if self._port:
            self._port.close_port()
            self._port.delete()
            self._port = None
            self._name = None

    @property
    def is_open(self) -> bool:
        return self._port is not None

    @property
    def name(self) -> Optional[str]:
        return self._name

    @staticmethod
    def _new_input():
        if not HAS_RTMIDI:
            raise MidiUnavailable("python-rtmidi not installed")
        try:
            return rtmidi.MidiIn()
        except Exception as exc:
            raise MidiUnavailable(f"MIDI backend unavailable: {exc}") from exc
