"""Controller modules for external MIDI hardware."""

import quadmix  # noqa: F401  -- load quadmix first; quadmix.host imports controllers.midibridge
from controllers.midibridge import MidiBridge, map_control_change

__all__ = ["MidiBridge", "map_control_change"]
