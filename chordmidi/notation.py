"""Notation Converter: degree and pitch renderings of a parsed score."""

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Callable

from chordmidi.chord import Chord, DegreeRoot, PitchRoot, Root
from chordmidi.errors import UnsupportedKey
from chordmidi.pitch import KeyContext, degree_to_pitch, pitch_to_degree
from chordmidi.score import DEFAULT_DURATION, Score, ScoreEntry

logger = logging.getLogger(__name__)

MEASURE_SEPARATOR = " | "


# ── Structural conversion ───────────────────────────────────────────────────

def root_to_degree(root: Root, key: KeyContext | None) -> DegreeRoot:
    """Express *root* as a scale degree of *key*."""
    if isinstance(root, DegreeRoot):
        return root
    if isinstance(root, PitchRoot):
        if key is None:
            raise UnsupportedKey(f"cannot express {root} as a degree without a key")
        return DegreeRoot(pitch_to_degree(root.pitch, key))
    raise TypeError(f"not a chord root: {root!r}")


def root_to_pitch(root: Root, key: KeyContext | None) -> PitchRoot:
    """Express *root* as an absolute pitch spelled for *key*."""
    if isinstance(root, PitchRoot):
        return root
    if isinstance(root, DegreeRoot):
        if key is None:
            raise UnsupportedKey(f"cannot resolve degree {root} without a key")
        return PitchRoot(degree_to_pitch(root.degree, key))
    raise TypeError(f"not a chord root: {root!r}")


def _convert(score: Score, convert_root: Callable[[Root, KeyContext | None], Root]) -> Score:
    entries = []
    for entry in score.entries:
        chord = entry.chord
        if chord is not None:
            key = score.key_of(entry)
            bass = None if chord.bass is None else convert_root(chord.bass, key)
            chord = replace(chord, root=convert_root(chord.root, key), bass=bass)
        entries.append(replace(entry, chord=chord))
    return Score(entries=tuple(entries), keys=score.keys)


def convert_to_degree(score: Score) -> Score:
    """
    New score whose roots and basses are scale degrees.

    Every entry is converted against its own key, so chords after a key
    change are expressed relative to the new tonic.

    Raises:
        UnsupportedKey: If a pitch chord has no key in effect.
    """
    return _convert(score, root_to_degree)


def convert_to_pitch(score: Score) -> Score:
    """
    New score whose roots and basses are absolute pitches.

    Raises:
        UnsupportedKey: If a degree chord has no key in effect.
    """
    return _convert(score, root_to_pitch)


# ── Rendering ───────────────────────────────────────────────────────────────

def format_root(root: Root, minor: bool = False) -> str:
    if isinstance(root, PitchRoot):
        return root.pitch.name
    return root.degree.numeral(minor=minor)


def format_chord(chord: Chord) -> str:
    """
    Render a chord symbol.

    Pitch roots use the quality's pitch symbol ('Am7'); degree roots pick the
    numeral case from the quality and use its degree symbol ('vi7', 'IΔ7').
    """
    if isinstance(chord.root, DegreeRoot):
        text = format_root(chord.root, minor=chord.quality.minor) + chord.quality.degree_suffix
    else:
        text = format_root(chord.root) + chord.quality.symbol
    if chord.extensions:
        text += "(" + ",".join(str(ext) for ext in chord.extensions) + ")"
    if chord.bass is not None:
        text += "/" + format_root(chord.bass)
    return text


def format_beats(beats: float) -> str:
    """Shortest positional decimal that reads back as exactly *beats*."""
    if beats.is_integer():
        return str(int(beats))
    return format(Decimal(repr(beats)), "f")


def format_entry(entry: ScoreEntry) -> str:
    if entry.chord is not None:
        text = format_chord(entry.chord)
    elif entry.tie:
        text = "="
    else:
        text = "_"
    if entry.duration != DEFAULT_DURATION:
        text += ":" + format_beats(entry.duration)
    return text


def render(score: Score) -> str:
    """
    Render a score as text.

    Source lines are kept, measures are separated by ' | ' and key markers
    ('@D', '@F#m') are written where the key changes.
    """
    lines: list[list[list[str]]] = []
    current_line = current_measure = None
    key_index = 0
    for entry in score.entries:
        if entry.line != current_line:
            lines.append([])
            current_line, current_measure = entry.line, None
        if entry.position.measure != current_measure:
            lines[-1].append([])
            current_measure = entry.position.measure
        if entry.key_index != key_index:
            key = score.keys[entry.key_index]
            if key is not None:
                lines[-1][-1].append(f"@{key}")
            key_index = entry.key_index
        lines[-1][-1].append(format_entry(entry))
    return "\n".join(
        MEASURE_SEPARATOR.join(" ".join(measure) for measure in line) for line in lines
    )


def to_degree_notation(score: Score) -> str:
    """Render *score* in scale-degree notation."""
    logger.debug("rendering %d entries as degrees", len(score))
    return render(convert_to_degree(score))


def to_pitch_notation(score: Score) -> str:
    """Render *score* in absolute pitch notation."""
    logger.debug("rendering %d entries as pitches", len(score))
    return render(convert_to_pitch(score))
