import io
from types import SimpleNamespace

import pytest

from conftest import make_wav, wait_for
from quadmix.cli import MixerCLI
from quadmix.main import _preload_arg, build_parser


@pytest.fixture
def cli(mixer):
    return MixerCLI(mixer, stdout=io.StringIO(), owns_mixer=False)


def run(cli, line: str) -> str:
    cli.stdout.seek(0)
    cli.stdout.truncate()
    cli.onecmd(line)
    return cli.stdout.getvalue()


def test_gain_command(cli, mixer):
    assert "gain = 0.50" in run(cli, "gain 2 0.5")
    assert mixer.status(1).gain == 0.5


def test_gain_rejects_bad_channel(cli):
    assert "Error: channel must be 1-4" in run(cli, "gain 9 1")


def test_mix_command_reports_dry_and_wet(cli, mixer):
    assert "dry = 0.75  wet = 0.25" in run(cli, "mix 1 0.25")
    assert mixer.effects.wet_dry(0) == (0.75, 0.25)


def test_play_without_sample_prints_error(cli, mixer):
    assert "Error: No sample loaded for channel 1" in run(cli, "play 1")
    assert not mixer.status(0).is_playing


def test_load_play_pause(cli, mixer, tmp_path, clock):
    path = tmp_path / "loop.wav"
    path.write_bytes(make_wav(4.0))

    run(cli, f"load 3 {path}")
    assert wait_for(lambda: mixer.status(2).sample_duration is not None)
    assert mixer.status(2).sample_duration == pytest.approx(4.0)

    run(cli, "play 3")
    assert mixer.status(2).is_playing
    clock.advance(1.0)
    assert "paused at 1.00s" in run(cli, "pause 3")


def test_loop_command(cli, mixer):
    run(cli, "loop 1 on")
    assert mixer.status(0).loop is True
    assert "Error" in run(cli, "loop 1 maybe")


def test_pitch_and_glitch(cli, mixer, load):
    assert "pitch = 2.00" in run(cli, "pitch 1 5")
    assert "not playing" in run(cli, "glitch 1")

    load(0)
    run(cli, "play 1")
    assert "glitch on" in run(cli, "glitch 1")
    assert "glitch off" in run(cli, "glitch 1")


def test_cc_command_routes_through_bridge(cli, mixer):
    out = run(cli, "cc 3 0")
    assert "4:0.00" in out
    assert mixer.status(3).gain == 0.0


def test_cc_command_ignores_other_controllers(cli, mixer):
    run(cli, "cc 7 0")
    assert [st.gain for st in mixer.statuses()] == [1.0] * 4


def test_reverb_command(cli, mixer):
    before = mixer.effects.strips[0].convolver.buffer
    assert "reverb 0.5s decay=4.0 reversed" in run(cli, "reverb 1 0.5 4 reverse")
    after = mixer.effects.strips[0].convolver.buffer
    assert after is not before
    assert after.shape == (2, 4000)
    assert len(mixer.effects.strip_edges(0)) == 5


def test_status_lists_every_channel(cli):
    out = run(cli, "status")
    for n in range(1, 5):
        assert f"[{n}]" in out
    assert "Audio  : STOPPED" in out


def test_quit_returns_true(cli):
    assert cli.onecmd("quit") is True


def test_preload_arg():
    assert _preload_arg("2:/tmp/a.wav") == (1, "/tmp/a.wav")
    with pytest.raises(Exception):
        _preload_arg("7:/tmp/a.wav")
    with pytest.raises(Exception):
        _preload_arg("nopath")


def test_parser_defaults():
    args = build_parser().parse_args([])
    assert args.sr == 44100
    assert args.midi == "all"
    assert args.glitch_ms == 200
    assert args.preload == []


def test_reverb_rejects_negative_decay(cli, mixer):
    before = mixer.effects.strips[0].convolver.buffer
    assert "Error: Decay must be" in run(cli, "reverb 1 0.1 -1 reverse")
    assert mixer.effects.strips[0].convolver.buffer is before


def test_midi_commands_survive_backend_failure(cli, monkeypatch):
    import quadmix.midi as midi_mod

    def broken():
        raise RuntimeError("error creating ALSA sequencer client object")

    monkeypatch.setattr(midi_mod, "HAS_RTMIDI", True)
    monkeypatch.setattr(midi_mod, "rtmidi", SimpleNamespace(MidiIn=broken))

    assert "Error: MIDI backend unavailable" in run(cli, "midi_ports")
    assert "MIDI unavailable" in run(cli, "midi_open")
