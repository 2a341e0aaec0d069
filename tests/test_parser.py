"""Unit tests for chord-symbol parsing and score tokenizing."""

import pytest

from chordmidi.chord import DegreeRoot, Extension, PitchRoot
from chordmidi.errors import (
    MalformedExtension,
    ParseError,
    TrailingInput,
    UnknownQuality,
    UnrecognizedRoot,
    UnsupportedKey,
)
from chordmidi.parser import MAX_DURATION, TokenKind, parse_chord, tokenize
from chordmidi.pitch import Degree, PitchClass, parse_key
from chordmidi.quality import (
    DOMINANT7,
    HALF_DIMINISHED,
    MAJOR,
    MAJOR7,
    MINOR,
    MINOR7,
    SUS4,
    ChordQuality,
    DEFAULT_TABLE,
)


# ── parse_chord ─────────────────────────────────────────────────────────────

def test_parse_major_seventh() -> None:
    chord = parse_chord("Cmaj7")
    assert chord.root == PitchRoot(PitchClass(0))
    assert chord.quality is MAJOR7
    assert chord.extensions == ()
    assert chord.bass is None


def test_parse_sharp_root_half_diminished() -> None:
    chord = parse_chord("F#m7b5")
    assert chord.root == PitchRoot(PitchClass(6))
    assert chord.quality is HALF_DIMINISHED


def test_parse_flat_root_keeps_spelling() -> None:
    chord = parse_chord("Ebm")
    assert chord.root.pitch.name == "Eb"
    assert chord.quality is MINOR


def test_parse_bare_major_triad() -> None:
    assert parse_chord("G").quality is MAJOR


def test_parse_alias() -> None:
    assert parse_chord("Csus").quality is SUS4
    assert parse_chord("C-7").quality is MINOR7


def test_parse_extension_group_and_slash_bass() -> None:
    chord = parse_chord("G7(b9,#11)/B")
    assert chord.quality is DOMINANT7
    assert chord.extensions == (Extension(9, -1), Extension(11, 1))
    assert chord.bass == PitchRoot(PitchClass(11))


def test_parse_bracket_extension_group() -> None:
    assert parse_chord("G7[b9]").extensions == (Extension(9, -1),)


def test_parse_bare_alteration() -> None:
    chord = parse_chord("C7b9")
    assert chord.quality is DOMINANT7
    assert chord.extensions == (Extension(9, -1),)


def test_parse_added_and_omitted_tones() -> None:
    assert parse_chord("Cm(add9)").intervals() == (0, 3, 7, 14)
    assert parse_chord("C(omit3)").intervals() == (0, 7)


def test_altered_fifth_replaces_fifth() -> None:
    assert parse_chord("C7(#5)").intervals() == (0, 4, 8, 10)


def test_omit_leaves_other_tones() -> None:
    assert parse_chord("Cm7(omit5)").intervals() == (0, 3, 10)


def test_parse_slash_chord() -> None:
    chord = parse_chord("C/E")
    assert chord.root == PitchRoot(PitchClass(0))
    assert chord.quality is MAJOR
    assert chord.bass == PitchRoot(PitchClass(4))


def test_parse_degree_root() -> None:
    chord = parse_chord("bVII7")
    assert chord.root == DegreeRoot(Degree(7, -1, borrowed=True))
    assert chord.quality is DOMINANT7
    assert chord.is_degree


def test_lower_case_numeral_implies_minor() -> None:
    assert parse_chord("ii").quality is MINOR
    assert parse_chord("vi7").quality is MINOR7
    assert parse_chord("IV7").quality is DOMINANT7


def test_degree_symbols() -> None:
    assert parse_chord("IΔ7").quality is MAJOR7
    assert parse_chord("viiø7").quality is HALF_DIMINISHED


def test_degree_slash_bass() -> None:
    chord = parse_chord("V/VII")
    assert chord.bass == DegreeRoot(Degree(7))


def test_parse_with_custom_table() -> None:
    quality = ChordQuality("quartal", "q4", (0, 5, 10))
    chord = parse_chord("Dq4", table=DEFAULT_TABLE.register(quality))
    assert chord.quality is quality


# ── parse_chord errors ──────────────────────────────────────────────────────

def test_unrecognized_root() -> None:
    with pytest.raises(UnrecognizedRoot) as info:
        parse_chord("Hm")
    assert (info.value.line, info.value.column) == (1, 1)


def test_unknown_quality_reports_column_of_quality() -> None:
    with pytest.raises(UnknownQuality) as info:
        parse_chord("Cxyz")
    assert info.value.column == 2
    assert info.value.text == "xyz"


def test_error_position_is_offset_by_token_position() -> None:
    with pytest.raises(UnknownQuality) as info:
        parse_chord("Cq", line=3, column=7)
    assert (info.value.line, info.value.column) == (3, 8)


def test_error_string_carries_position() -> None:
    with pytest.raises(ParseError) as info:
        parse_chord("Cxyz")
    assert str(info.value).startswith("1:2: unknown quality:")


def test_unclosed_extension_group() -> None:
    with pytest.raises(MalformedExtension):
        parse_chord("C7(b9")


def test_empty_extension_group() -> None:
    with pytest.raises(MalformedExtension):
        parse_chord("C()")


def test_unsupported_extension_degree() -> None:
    with pytest.raises(MalformedExtension) as info:
        parse_chord("C(b8)")
    assert info.value.column == 3


def test_accidental_after_add_is_malformed() -> None:
    with pytest.raises(MalformedExtension):
        parse_chord("C(add#9)")


def test_trailing_input_after_bass() -> None:
    with pytest.raises(TrailingInput) as info:
        parse_chord("C/E)")
    assert info.value.column == 4


def test_missing_bass_note() -> None:
    with pytest.raises(UnrecognizedRoot):
        parse_chord("C/")


# ── tokenize ────────────────────────────────────────────────────────────────

def _kinds(text: str) -> list[TokenKind]:
    return [token.kind for token in tokenize(text)]


def test_tokenize_bars_and_lines() -> None:
    assert _kinds("C | G\n") == [TokenKind.CHORD, TokenKind.BAR, TokenKind.CHORD, TokenKind.NEWLINE]


def test_tokenize_special_nodes() -> None:
    assert _kinds("C _ N.C. = %") == [
        TokenKind.CHORD,
        TokenKind.REST,
        TokenKind.REST,
        TokenKind.SUSTAIN,
        TokenKind.REPEAT,
        TokenKind.NEWLINE,
    ]


def test_tokenize_comment_versus_sharp_degree() -> None:
    tokens = tokenize("#IV C # intro")
    assert [t.kind for t in tokens] == [TokenKind.CHORD, TokenKind.CHORD, TokenKind.NEWLINE]
    assert tokens[0].chord.root == DegreeRoot(Degree(4, 1, borrowed=True))


def test_tokenize_full_line_comment() -> None:
    assert _kinds("# verse\nC") == [TokenKind.CHORD, TokenKind.NEWLINE]


def test_tokenize_extension_group_with_spaces() -> None:
    tokens = tokenize("G7(b9, #11) C")
    assert [t.text for t in tokens if t.kind is TokenKind.CHORD] == ["G7(b9, #11)", "C"]
    assert tokens[0].chord.extensions == (Extension(9, -1), Extension(11, 1))


def test_tokenize_columns() -> None:
    tokens = tokenize("C  Am")
    assert (tokens[1].line, tokens[1].column) == (1, 4)


def test_tokenize_durations() -> None:
    tokens = tokenize("C:2 G:0.5 A")
    assert [t.duration for t in tokens[:3]] == [2.0, 0.5, None]


def test_tokenize_rejects_bad_duration() -> None:
    with pytest.raises(TrailingInput):
        tokenize("C:x")


@pytest.mark.parametrize("beats", ["9" * 400, "1e30", "1025"])
def test_tokenize_rejects_oversized_duration(beats: str) -> None:
    with pytest.raises(TrailingInput) as info:
        tokenize(f"C G:{beats}")
    assert (info.value.line, info.value.column) == (1, 4)


def test_tokenize_accepts_longest_duration() -> None:
    assert tokenize(f"C:{MAX_DURATION:g}")[0].duration == MAX_DURATION


def test_tokenize_key_marker() -> None:
    token = tokenize("@Am C")[0]
    assert token.kind is TokenKind.KEY
    assert token.key == parse_key("Am")


def test_tokenize_unknown_key_marker() -> None:
    with pytest.raises(UnsupportedKey, match="1:3"):
        tokenize("C @Q")


def test_tokenize_error_on_second_line() -> None:
    with pytest.raises(UnknownQuality) as info:
        tokenize("C G\nF Bq")
    assert (info.value.line, info.value.column) == (2, 4)


def test_tokenize_crlf() -> None:
    assert _kinds("C\r\nG") == [TokenKind.CHORD, TokenKind.NEWLINE, TokenKind.CHORD, TokenKind.NEWLINE]


def test_parsed_chord_uses_major_default() -> None:
    assert parse_chord("I").quality is MAJOR
