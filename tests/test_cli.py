"""CLI tests using click's CliRunner (no real files outside tmp_path)."""

import mido
from click.testing import CliRunner

from chordmidi import __version__
from chordmidi.cli import main


def test_version() -> None:
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_degree_from_stdin() -> None:
    result = CliRunner().invoke(main, ["degree", "-", "--tonic", "C"], input="Cmaj7 Am7 Dm7 G7\n")
    assert result.exit_code == 0
    assert result.output == "IΔ7 vi7 ii7 V7\n"


def test_pitch_to_output_file(tmp_path) -> None:
    source = tmp_path / "song.txt"
    source.write_text("ii7 V7 | IΔ7\n", encoding="utf-8")
    target = tmp_path / "song.pitch.txt"
    result = CliRunner().invoke(main, ["pitch", str(source), "-k", "F", "-o", str(target)])
    assert result.exit_code == 0
    assert target.read_text(encoding="utf-8") == "Gm7 C7 | Fmaj7\n"


def test_sexp_file_detected_by_extension(tmp_path) -> None:
    source = tmp_path / "song.sexp"
    source.write_text("(score (keyed D (I IV)))", encoding="utf-8")
    result = CliRunner().invoke(main, ["pitch", str(source)])
    assert result.exit_code == 0
    assert result.output == "@D D G\n"


def test_sexp_format_from_stdin() -> None:
    result = CliRunner().invoke(
        main, ["degree", "-", "--format", "sexp", "-k", "C"], input="(score (C Am) (F G))"
    )
    assert result.exit_code == 0
    assert result.output == "I vi | IV V\n"


def test_parse_error_reports_position() -> None:
    result = CliRunner().invoke(main, ["pitch", "-"], input="C Gxyz\n")
    assert result.exit_code == 1
    assert "1:4: unknown quality" in result.output


def test_missing_key_is_reported() -> None:
    result = CliRunner().invoke(main, ["degree", "-"], input="C G\n")
    assert result.exit_code == 1
    assert "ERROR" in result.output


def test_midi_default_output_path(tmp_path) -> None:
    source = tmp_path / "song.txt"
    source.write_text("C G | Am F\n", encoding="utf-8")
    result = CliRunner().invoke(main, ["midi", str(source), "--bpm", "120"])
    assert result.exit_code == 0
    midi = mido.MidiFile(str(tmp_path / "song.mid"))
    tempo = next(msg.tempo for msg in midi.tracks[0] if msg.type == "set_tempo")
    assert tempo == 500_000


def test_midi_with_config_and_overrides(tmp_path) -> None:
    source = tmp_path / "song.txt"
    source.write_text("I V\n", encoding="utf-8")
    config = tmp_path / "piano.yaml"
    config.write_text("velocity: 100\ntime_signature: 3/4\n", encoding="utf-8")
    target = tmp_path / "out.mid"
    result = CliRunner().invoke(
        main,
        ["midi", str(source), "-k", "C", "--config", str(config), "--octave", "3", "-o", str(target)],
    )
    assert result.exit_code == 0
    midi = mido.MidiFile(str(target))
    notes = [msg for msg in midi.tracks[1] if msg.type == "note_on" and msg.velocity]
    assert {msg.velocity for msg in notes} == {100}
    assert min(msg.note for msg in notes) == 48
    signature = next(msg for msg in midi.tracks[0] if msg.type == "time_signature")
    assert signature.numerator == 3


def test_midi_invalid_config(tmp_path) -> None:
    config = tmp_path / "bad.yaml"
    config.write_text("volume: 3\n", encoding="utf-8")
    result = CliRunner().invoke(main, ["midi", "-", "--config", str(config)], input="C\n")
    assert result.exit_code == 1
    assert "Could not load settings" in result.output


def test_midi_bpm_out_of_click_range() -> None:
    result = CliRunner().invoke(main, ["midi", "-", "--bpm", "0"], input="C\n")
    assert result.exit_code == 2


def test_midi_unrepresentable_tempo(tmp_path) -> None:
    source = tmp_path / "slow.txt"
    source.write_text("C\n", encoding="utf-8")
    result = CliRunner().invoke(main, ["midi", str(source), "--bpm", "3"])
    assert result.exit_code == 1
    assert "cannot be represented" in result.output
    assert not (tmp_path / "slow.mid").exists()


def test_midi_huge_duration_is_reported() -> None:
    source = "C:" + "9" * 400 + "\n"
    result = CliRunner().invoke(main, ["midi", "-", "-o", "unused.mid"], input=source)
    assert result.exit_code == 1
    assert "1:2: trailing input" in result.output
