"""Entry point and argument parsing for quadmix.

Runs the mixer and an interactive CLI in one process.  MIDI and audio
output are brought up best-effort: if either is missing the mixer keeps
running with whatever is available.
"""

from __future__ import annotations

import argparse
import logging

from quadmix.cli import MixerCLI
from quadmix.host import Mixer
from quadmix.logging_setup import configure_logging
from quadmix.models import DEFAULT_GLITCH_PERIOD, NUM_CHANNELS


logger = logging.getLogger(__name__)


def _preload_arg(text: str) -> tuple[int, str]:
    """Parse ``CH:PATH`` with a 1-based channel."""
    ch, sep, path = text.partition(":")
    if not sep or not path:
        raise argparse.ArgumentTypeError("expected CH:PATH")
    try:
        index = int(ch) - 1
    except ValueError:
        raise argparse.ArgumentTypeError(f"bad channel '{ch}'") from None
    if not 0 <= index < NUM_CHANNELS:
        raise argparse.ArgumentTypeError(f"channel must be 1-{NUM_CHANNELS}")
    return index, path


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="quadmix - four-channel sample mixer with MIDI gain control")
    ap.add_argument("--sr", type=int, default=44100, help="Sample rate")
    ap.add_argument("--buf", type=int, default=512, help="Buffer size")
    ap.add_argument("--output", default=None, help="Audio output device")
    ap.add_argument("--no-audio", action="store_true",
                    help="Don't open the audio output on start")
    ap.add_argument("--midi", default="all",
                    help="MIDI input port index, or 'all' (default)")
    ap.add_argument("--no-midi", action="store_true", help="Don't open MIDI input")
    ap.add_argument("--virtual-midi", default=None, metavar="NAME",
                    help="Open a virtual MIDI input with this name instead")
    ap.add_argument("--preload", action="append", type=_preload_arg, default=[],
                    metavar="CH:PATH", help="Load a sample into a channel on start")
    ap.add_argument("--glitch-ms", type=float, default=DEFAULT_GLITCH_PERIOD * 1000,
                    help="Glitch tick period in milliseconds")
    return ap


def _print_notice(index: int, message: str):
    print(f"[ch {index + 1}] {message}")


def boot_mixer(args) -> Mixer:
    """Create a Mixer from parsed arguments and bring up its I/O."""
    mixer = Mixer(sample_rate=args.sr, buffer_size=args.buf,
                  glitch_period=args.glitch_ms / 1000.0,
                  notice=_print_notice)

    for index, path in args.preload:
        mixer.preload(index, path)

    if not args.no_midi:
        try:
            if args.virtual_midi:
                mixer.open_midi(virtual_name=args.virtual_midi)
            elif args.midi == "all":
                mixer.open_midi()
            else:
                mixer.open_midi(int(args.midi))
        except ValueError:
            logger.warning("bad --midi value '%s'; expected an index or 'all'", args.midi)
        except Exception as e:
            logger.warning("MIDI startup failed: %s", e)

    if not args.no_audio:
        output_device = args.output
        if isinstance(output_device, str) and output_device.isdigit():
            output_device = int(output_device)
        try:
            mixer.start_audio(output_device)
        except Exception as e:
            logger.warning("audio auto-start failed: %s", e)

    return mixer


def main(argv=None):
    args = build_parser().parse_args(argv)

    level = configure_logging(default_level="WARNING")
    logger.info("quadmix starting (log level: %s)", logging.getLevelName(level))

    mixer = boot_mixer(args)
    try:
        MixerCLI(mixer).cmdloop()
    except KeyboardInterrupt:
        print()
        mixer.shutdown()


if __name__ == "__main__":
    main()
