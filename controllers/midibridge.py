"""MIDI Control-Change to channel gain bridge.

Controllers 0-3 on any MIDI channel map straight onto mixer channels 1-4;
the CC value (0-127) becomes the channel gain.  Everything else on the wire
is ignored.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from quadmix.deps import HAS_MIDO, mido
from quadmix.errors import MidiUnavailable
from quadmix.gainbus import GainBus
from quadmix.midi import MidiPort, list_ports
from quadmix.models import NUM_CHANNELS


logger = logging.getLogger(__name__)

CC_STATUS_MIN = 0xB0  # 176, CC on MIDI channel 1
CC_STATUS_MAX = 0xBF  # 191, CC on MIDI channel 16
CC_VALUE_MAX = 127


def map_control_change(raw: Sequence[int],
                       num_channels: int = NUM_CHANNELS) -> Optional[tuple[int, float]]:
    """Return ``(channel_index, gain)`` for a gain CC, or None to ignore it."""
    if len(raw) < 3:
        return None
    status, controller, value = raw[0], raw[1], raw[2]
    if not CC_STATUS_MIN <= status <= CC_STATUS_MAX:
        return None
    if not 0 <= controller < num_channels:
        return None
    return controller, value / CC_VALUE_MAX


class MidiBridge:
    """Feeds Control-Change input from one or more ports into a GainBus."""

    def __init__(self, gain_bus: GainBus, post: Callable[..., None],
                 num_channels: int = NUM_CHANNELS):
        self._gain_bus = gain_bus
        self._post = post
        self._num_channels = num_channels
        self._ports: list[MidiPort] = []

    @property
    def port_names(self) -> list[str]:
        return [p.name for p in self._ports if p.name]

    # -- ports ---------------------------------------------------------------

    def open(self, port_index: int) -> str:
        port = MidiPort()
        name = port.open(port_index, self.on_midi)
        self._ports.append(port)
        logger.info("listening on %s", name)
        return name

    def open_all(self) -> list[str]:
        """Listen on every available input port; busy ports are skipped."""
        names = list_ports()
        if not names:
            raise MidiUnavailable("no MIDI input ports")
        opened = []
        for i, port_name in enumerate(names):
            try:
                opened.append(self.open(i))
            except MidiUnavailable as e:
                logger.warning("skipping MIDI input %s: %s", port_name, e)
        if not opened:
            raise MidiUnavailable("no MIDI input port could be opened")
        return opened

    def open_virtual(self, name: str) -> str:
        port = MidiPort()
        opened = port.open_virtual(name, self.on_midi)
        self._ports.append(port)
        logger.info("virtual port %s open", opened)
        return opened

    def close(self):
        for port in self._ports:
            port.close()
        self._ports.clear()

    # -- input ---------------------------------------------------------------

    def on_midi(self, event, data=None):
        """rtmidi callback for incoming messages."""
        del data

        raw, _dt = event
        if not raw:
            return

        mapped = map_control_change(raw, self._num_channels)
        if mapped is None:
            logger.debug("raw=%s ignored", list(raw))
            return

        index, gain = mapped
        logger.debug("CC %d value=%d -> ch %d", raw[1], raw[2], index + 1)
        self._post(self._gain_bus.set, index, gain)

    def inject(self, controller: int, value: int, channel: int = 0):
        """Feed a Control-Change through the bridge as if it came from a port."""
        if not HAS_MIDO:
            raise RuntimeError("mido not installed")
        msg = mido.Message("control_change", channel=channel,
                           control=controller, value=value)
        self.on_midi((msg.bytes(), 0.0))
