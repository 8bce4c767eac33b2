"""Error taxonomy for quadmix.

None of these are fatal: decode and no-sample errors are surfaced to the
user, stop errors are an expected race and get swallowed, and a missing MIDI
backend just means gain is UI-only.
"""

from __future__ import annotations


class MixerError(Exception):
    """Base class for all mixer errors."""


class DecodeError(MixerError):
    """Raw bytes could not be decoded into a PCM buffer."""


class NoSampleError(MixerError):
    """Playback was requested on a channel with no sample loaded."""

    def __init__(self, index: int):
        super().__init__(f"No sample loaded for channel {index + 1}")
        self.index = index


class StopError(MixerError):
    """A playback source was stopped after it had already ended."""


class MidiUnavailable(MixerError):
    """No MIDI backend or no MIDI input ports."""
