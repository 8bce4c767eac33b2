"""Graceful optional dependency imports.

Every other module imports availability flags from here so the try/except
blocks live in exactly one place.
"""

from __future__ import annotations

# -- pedalboard (convolution reverb) ----------------------------------------

try:
    from pedalboard import Convolution
    HAS_PEDALBOARD = True
except ImportError:
    Convolution = None  # type: ignore[assignment,misc]
    HAS_PEDALBOARD = False

# -- python-rtmidi -----------------------------------------------------------

try:
    import rtmidi
    HAS_RTMIDI = True
except ImportError:
    rtmidi = None  # type: ignore[assignment]
    HAS_RTMIDI = False

# -- mido (MIDI message construction) ---------------------------------------

try:
    import mido
    HAS_MIDO = True
except ImportError:
    mido = None  # type: ignore[assignment]
    HAS_MIDO = False

# -- sounddevice (real-time audio I/O) --------------------------------------
# PortAudio itself may be missing on headless machines, which surfaces as
# OSError rather than ImportError.

try:
    import sounddevice as sd
    HAS_SOUNDDEVICE = True
except (ImportError, OSError):
    sd = None  # type: ignore[assignment]
    HAS_SOUNDDEVICE = False

# -- always required ---------------------------------------------------------

import numpy as np
import soundfile as sf
from scipy import signal
