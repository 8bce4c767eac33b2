"""quadmix - four-channel sample mixer with convolution reverb and MIDI gain."""

from quadmix.models import NUM_CHANNELS, ChannelStatus, PCMBuffer, TransportState
from quadmix.host import Mixer

__all__ = ["Mixer", "ChannelStatus", "PCMBuffer", "TransportState", "NUM_CHANNELS"]
