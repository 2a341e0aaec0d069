"""Unit tests for event rendering and MIDI file encoding."""

import io

import mido
import pytest

from chordmidi.config import EncoderSettings
from chordmidi.errors import EncodingOverflow, UnsupportedKey
from chordmidi.midi_exporter import (
    TICKS_PER_QUARTER,
    EventKind,
    MidiExporter,
    encode,
    fit_note_number,
    render_events,
    tempo_microseconds,
)
from chordmidi.pitch import parse_key
from chordmidi.score import parse_score


def _read(data: bytes) -> mido.MidiFile:
    return mido.MidiFile(file=io.BytesIO(data))


def _note_ons(track: mido.MidiTrack) -> list[tuple[int, int, int]]:
    """(absolute tick, note, channel) of every sounding note-on."""
    now = 0
    result = []
    for msg in track:
        now += msg.time
        if msg.type == "note_on" and msg.velocity > 0:
            result.append((now, msg.note, msg.channel))
    return result


# ── fit_note_number / tempo ─────────────────────────────────────────────────

def test_fit_note_number_in_range_is_unchanged() -> None:
    assert fit_note_number(60) == 60
    assert fit_note_number(0) == 0
    assert fit_note_number(127) == 127


def test_fit_note_number_shifts_by_octaves() -> None:
    assert fit_note_number(130) == 118
    assert fit_note_number(-5) == 7


def test_tempo_microseconds() -> None:
    assert tempo_microseconds(120) == 500_000
    assert tempo_microseconds(180) == 333_333


@pytest.mark.parametrize("bpm", [0, -10, 3])
def test_unrepresentable_tempo_raises(bpm: float) -> None:
    with pytest.raises(EncodingOverflow):
        tempo_microseconds(bpm)


# ── render_events ───────────────────────────────────────────────────────────

def test_render_events_two_chords() -> None:
    events = render_events(parse_score("C G"))
    assert len(events) == 12
    assert [e.kind for e in events[:3]] == [EventKind.NOTE_ON] * 3
    assert [e.delta for e in events[:3]] == [0, 0, 0]
    assert [e.pitch for e in events[:3]] == [60, 64, 67]


def test_render_events_note_offs_precede_note_ons() -> None:
    events = render_events(parse_score("C G"))
    assert [e.kind for e in events[3:9]] == [EventKind.NOTE_OFF] * 3 + [EventKind.NOTE_ON] * 3
    assert events[3].delta == TICKS_PER_QUARTER
    assert [e.delta for e in events[4:9]] == [0, 0, 0, 0, 0]


def test_render_events_time_never_decreases() -> None:
    events = render_events(parse_score("C:2 Am7 | F G7(b9) | C/E"))
    assert all(e.delta >= 0 for e in events)


def test_render_events_sustain_extends_chord() -> None:
    events = render_events(parse_score("C = G"))
    assert events[3].kind is EventKind.NOTE_OFF
    assert events[3].delta == 2 * TICKS_PER_QUARTER


def test_render_events_rest_advances_time() -> None:
    events = render_events(parse_score("C _ G"))
    assert events[3].delta == TICKS_PER_QUARTER
    assert events[6].kind is EventKind.NOTE_ON
    assert events[6].delta == TICKS_PER_QUARTER


def test_render_events_sustain_after_rest_is_silent() -> None:
    events = render_events(parse_score("_ = C"))
    assert events[0].kind is EventKind.NOTE_ON
    assert events[0].delta == 2 * TICKS_PER_QUARTER


def test_render_events_beat_duration() -> None:
    events = render_events(parse_score("C G"), EncoderSettings(beat_duration=2.0))
    assert events[3].delta == 2 * TICKS_PER_QUARTER


def test_render_events_velocity() -> None:
    events = render_events(parse_score("C"), EncoderSettings(velocity=100))
    assert {e.velocity for e in events if e.kind is EventKind.NOTE_ON} == {100}


def test_render_events_octave_shifts_out_of_range_notes() -> None:
    events = render_events(parse_score("C"), EncoderSettings(octave=10))
    assert [e.pitch for e in events if e.kind is EventKind.NOTE_ON] == [120, 124, 127]


def test_render_events_degree_chord_needs_key() -> None:
    with pytest.raises(UnsupportedKey):
        render_events(parse_score("I IV"))


# ── encode ──────────────────────────────────────────────────────────────────

def test_encode_writes_standard_midi_file() -> None:
    data = encode(parse_score("C G"), 120)
    assert data[:4] == b"MThd"
    midi = _read(data)
    assert midi.type == 1
    assert midi.ticks_per_beat == TICKS_PER_QUARTER
    assert len(midi.tracks) == 3


def test_encode_tempo_and_time_signature() -> None:
    midi = _read(encode(parse_score("C"), 120))
    meta = {msg.type: msg for msg in midi.tracks[0] if msg.is_meta}
    assert meta["set_tempo"].tempo == 500_000
    assert (meta["time_signature"].numerator, meta["time_signature"].denominator) == (4, 4)


def test_encode_custom_time_signature() -> None:
    midi = _read(encode(parse_score("C"), 90, EncoderSettings(time_signature=(3, 4))))
    signature = next(msg for msg in midi.tracks[0] if msg.type == "time_signature")
    assert signature.numerator == 3


def test_encode_chord_notes_share_a_tick() -> None:
    midi = _read(encode(parse_score("C G"), 120))
    assert midi.tracks[1].name == "Chords"
    ons = _note_ons(midi.tracks[1])
    assert sorted(ons) == [
        (0, 60, 0),
        (0, 64, 0),
        (0, 67, 0),
        (960, 67, 0),
        (960, 71, 0),
        (960, 74, 0),
    ]


def test_encode_program_change() -> None:
    midi = _read(encode(parse_score("C"), 120, EncoderSettings(program=24)))
    programs = [msg.program for msg in midi.tracks[1] if msg.type == "program_change"]
    assert programs == [24]


def test_encode_slash_bass_on_bass_track() -> None:
    midi = _read(encode(parse_score("C/E"), 120))
    assert midi.tracks[2].name == "Bass"
    assert _note_ons(midi.tracks[2]) == [(0, 52, 1)]


def test_encode_degree_chords_with_key_marker() -> None:
    midi = _read(encode(parse_score("@G I V"), 120))
    notes = sorted(note for _, note, _ in _note_ons(midi.tracks[1]))
    assert notes == [62, 66, 67, 69, 71, 74]


def test_encode_rejects_bad_tempo() -> None:
    with pytest.raises(EncodingOverflow):
        encode(parse_score("C"), 0)


def test_encode_nearest_voicing() -> None:
    settings = EncoderSettings(voicing="nearest")
    midi = _read(encode(parse_score("C B"), 120, settings))
    second = sorted(note for tick, note, _ in _note_ons(midi.tracks[1]) if tick == 960)
    assert second == [59, 63, 66]


def test_exporter_writes_file(tmp_path) -> None:
    output = tmp_path / "song.mid"
    MidiExporter(tempo=100).export(parse_score("Am F C G", parse_key("C")), str(output))
    midi = mido.MidiFile(str(output))
    assert len(_note_ons(midi.tracks[1])) == 12
