"""Interactive command-line interface for quadmix.

Channel numbers are presented 1-based to the user (channels 1-4) and
converted to 0-based internally.
"""

from __future__ import annotations

import cmd

from quadmix.deps import HAS_MIDO, HAS_PEDALBOARD, HAS_RTMIDI, HAS_SOUNDDEVICE, sd
from quadmix.errors import MidiUnavailable
from quadmix.host import Mixer
from quadmix.midi import list_ports
from quadmix.models import NUM_CHANNELS, ChannelStatus

_ON = {"on", "1", "true", "yes"}
_OFF = {"off", "0", "false", "no"}


def _ch_to_internal(user_ch: int) -> int:
    """Convert 1-based user channel to 0-based index, with validation."""
    if not 1 <= user_ch <= NUM_CHANNELS:
        raise ValueError(f"channel must be 1-{NUM_CHANNELS}")
    return user_ch - 1


def _parse_flag(text: str) -> bool:
    value = text.strip().lower()
    if value in _ON:
        return True
    if value in _OFF:
        return False
    raise ValueError("expected on or off")


def format_status(st: ChannelStatus) -> str:
    sample = f"{st.sample_duration:.2f}s" if st.sample_duration is not None else "(empty)"
    flags = []
    if st.loop:
        flags.append("L")
    if st.glitch_active:
        flags.append("G")
    return (f"  [{st.index + 1}] {st.state.value:<7} {sample:<8} "
            f"pos={st.position:6.2f}  gain={st.gain:.2f}  mix={st.reverb_mix:.2f}  "
            f"pitch={st.pitch:.2f}  {''.join(flags)}")


class MixerCLI(cmd.Cmd):
    intro = r"""
============================================================
  quadmix  -  four-channel sample mixer
  convolution reverb | pitch + glitch | MIDI CC gain
============================================================
Type 'help' for available commands.
Channels are numbered 1-4.
"""
    prompt = "quadmix> "

    def __init__(self, mixer: Mixer, stdout=None, owns_mixer: bool = True):
        super().__init__(stdout=stdout)
        self.mixer = mixer
        # When True, quit/exit will call mixer.shutdown().
        self._owns_mixer = owns_mixer

    # -- helpers -------------------------------------------------------------

    def _print(self, *args, **kwargs):
        """Print to self.stdout so output can be captured."""
        kwargs.setdefault("file", self.stdout)
        print(*args, **kwargs)

    def _channel_arg(self, parts: list[str], usage: str):
        if not parts:
            self._print(f"Usage: {usage}")
            return None
        try:
            return _ch_to_internal(int(parts[0]))
        except ValueError as e:
            self._print(f"Error: {e}")
            return None

    def emptyline(self):
        return False

    # -- samples -------------------------------------------------------------

    def do_load(self, arg):
        """Load sample: load <ch 1-4> <path>"""
        parts = arg.strip().split(maxsplit=1)
        if len(parts) < 2:
            self._print("Usage: load <ch 1-4> <path>")
            return
        idx = self._channel_arg(parts, "load <ch 1-4> <path>")
        if idx is None:
            return
        future = self.mixer.load_sample_file(idx, parts[1])
        self._print(f"  loading {parts[1]} into channel {idx + 1} ...")

        def _done(fut):
            if fut.exception() is None:
                self._print(f"  channel {idx + 1}: {fut.result().duration:.2f}s loaded")

        future.add_done_callback(_done)

    # -- transport -----------------------------------------------------------

    def do_play(self, arg):
        """Play (or resume) a channel: play <ch 1-4>"""
        idx = self._channel_arg(arg.split(), "play <ch 1-4>")
        if idx is None:
            return
        try:
            self.mixer.play(idx)
        except Exception as e:
            self._print(f"Error: {e}")

    def do_pause(self, arg):
        """Pause a channel, keeping its position: pause <ch 1-4>"""
        idx = self._channel_arg(arg.split(), "pause <ch 1-4>")
        if idx is None:
            return
        self.mixer.pause(idx)
        self._print(f"  channel {idx + 1} paused at {self.mixer.status(idx).position:.2f}s")

    do_stop = do_pause

    def do_loop(self, arg):
        """Set looping: loop <ch 1-4> <on|off>"""
        parts = arg.split()
        idx = self._channel_arg(parts, "loop <ch 1-4> <on|off>")
        if idx is None:
            return
        if len(parts) < 2:
            self._print("Usage: loop <ch 1-4> <on|off>")
            return
        try:
            flag = _parse_flag(parts[1])
        except ValueError as e:
            self._print(f"Error: {e}")
            return
        self.mixer.set_loop(idx, flag)
        self._print(f"  loop = {'on' if flag else 'off'}")

    # -- levels and effects --------------------------------------------------

    def do_gain(self, arg):
        """Set channel gain: gain <ch 1-4> <0.0-1.0>"""
        parts = arg.split()
        idx = self._channel_arg(parts, "gain <ch 1-4> <value>")
        if idx is None:
            return
        if len(parts) < 2:
            self._print(f"  gain = {self.mixer.status(idx).gain:.2f}")
            return
        try:
            gain = self.mixer.set_gain(idx, float(parts[1]))
        except ValueError:
            self._print("Error: gain must be a number")
            return
        self._print(f"  gain = {gain:.2f}")

    def do_mix(self, arg):
        """Set reverb dry/wet mix: mix <ch 1-4> <0.0 dry .. 1.0 wet>"""
        parts = arg.split()
        idx = self._channel_arg(parts, "mix <ch 1-4> <value>")
        if idx is None:
            return
        if len(parts) < 2:
            self._print(f"  mix = {self.mixer.status(idx).reverb_mix:.2f}")
            return
        try:
            mix = self.mixer.set_reverb_mix(idx, float(parts[1]))
        except ValueError:
            self._print("Error: mix must be a number")
            return
        self._print(f"  dry = {1.0 - mix:.2f}  wet = {mix:.2f}")

    def do_reverb(self, arg):
        """New reverb character: reverb <ch 1-4> [duration_s] [decay] [reverse]"""
        parts = arg.split()
        idx = self._channel_arg(parts, "reverb <ch 1-4> [duration_s] [decay] [reverse]")
        if idx is None:
            return
        try:
            duration = float(parts[1]) if len(parts) > 1 else 3.0
            decay = float(parts[2]) if len(parts) > 2 else 2.0
            reverse = len(parts) > 3 and parts[3].lower() == "reverse"
            self.mixer.set_reverb(idx, duration, decay, reverse)
        except ValueError as e:
            self._print(f"Error: {e}")
            return
        self._print(f"  reverb {duration:.1f}s decay={decay:.1f}"
                    f"{' reversed' if reverse else ''}")

    # -- pitch ---------------------------------------------------------------

    def do_pitch(self, arg):
        """Set playback rate: pitch <ch 1-4> <0.5-2.0>"""
        parts = arg.split()
        idx = self._channel_arg(parts, "pitch <ch 1-4> <value>")
        if idx is None:
            return
        if len(parts) < 2:
            self._print(f"  pitch = {self.mixer.status(idx).pitch:.2f}")
            return
        try:
            pitch = self.mixer.set_pitch(idx, float(parts[1]))
        except ValueError:
            self._print("Error: pitch must be a number")
            return
        self._print(f"  pitch = {pitch:.2f}")

    def do_glitch(self, arg):
        """Toggle random pitch glitching on a playing channel: glitch <ch 1-4>"""
        idx = self._channel_arg(arg.split(), "glitch <ch 1-4>")
        if idx is None:
            return
        if not self.mixer.status(idx).is_playing:
            self._print(f"  channel {idx + 1} is not playing")
            return
        active = self.mixer.toggle_glitch(idx)
        self._print(f"  glitch {'on' if active else 'off'}")

    # -- status --------------------------------------------------------------

    def do_status(self, arg):
        """Show all four channels."""
        for st in self.mixer.statuses():
            self._print(format_status(st))
        self._print(f"  Audio  : {'RUNNING' if self.mixer.engine.running else 'STOPPED'}"
                    f"  (sr={self.mixer.sample_rate} buf={self.mixer.buffer_size})")
        self._print(f"  MIDI   : {', '.join(self.mixer.midi.port_names) or 'closed'}")

    do_channels = do_status

    # -- audio ---------------------------------------------------------------

    def do_audio_start(self, arg):
        """Start audio: audio_start [device]"""
        dev = arg.strip() or None
        if dev and dev.isdigit():
            dev = int(dev)
        try:
            self.mixer.start_audio(dev)
        except Exception as e:
            self._print(f"Error: {e}")

    def do_audio_stop(self, arg):
        """Stop audio."""
        self.mixer.stop_audio()

    def do_devices(self, arg):
        """List audio devices."""
        if HAS_SOUNDDEVICE:
            self._print(sd.query_devices())
        else:
            self._print("  sounddevice not installed")

    # -- MIDI ----------------------------------------------------------------

    def do_midi_ports(self, arg):
        """List MIDI input ports."""
        try:
            ports = list_ports()
        except MidiUnavailable as e:
            self._print(f"Error: {e}")
            return
        if not ports:
            self._print("  No MIDI input ports found.")
            return
        for i, name in enumerate(ports):
            self._print(f"  [{i}] {name}")

    def do_midi_open(self, arg):
        """Listen for gain CCs: midi_open [port_index|all]"""
        a = arg.strip().lower()
        try:
            port = None if a in ("", "all") else int(a)
        except ValueError:
            self._print("Usage: midi_open [port_index|all]")
            return
        names = self.mixer.open_midi(port)
        if not names:
            self._print("  MIDI unavailable; gain stays on the sliders")

    def do_cc(self, arg):
        """Send a test CC through the MIDI bridge: cc <controller 0-127> <value 0-127> [midi ch 1-16]"""
        parts = arg.split()
        if len(parts) < 2:
            self._print("Usage: cc <controller> <value> [midi ch 1-16]")
            return
        try:
            controller, value = int(parts[0]), int(parts[1])
            channel = int(parts[2]) - 1 if len(parts) > 2 else 0
            self.mixer.midi.inject(controller, value, channel)
        except (ValueError, RuntimeError) as e:
            self._print(f"Error: {e}")
            return
        self.mixer.sync()
        self._print("  " + "  ".join(f"{i + 1}:{g:.2f}"
                                      for i, g in enumerate(self.mixer.gain_bus.snapshot())))

    # -- misc ----------------------------------------------------------------

    def do_deps(self, arg):
        """Check dependencies."""
        for name, ok in [("pedalboard", HAS_PEDALBOARD), ("python-rtmidi", HAS_RTMIDI),
                         ("mido", HAS_MIDO), ("sounddevice", HAS_SOUNDDEVICE)]:
            self._print(f"  {name}: {'OK' if ok else 'MISSING'}")

    def do_quit(self, arg):
        """Exit."""
        if self._owns_mixer:
            self.mixer.shutdown()
        return True

    do_exit = do_quit
    do_EOF = do_quit
