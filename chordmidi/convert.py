"""Conversion entry points: score text in, degree text, pitch text or MIDI bytes out."""

import logging

from chordmidi.config import EncoderSettings
from chordmidi.midi_exporter import encode
from chordmidi.notation import to_degree_notation, to_pitch_notation
from chordmidi.pitch import KeyContext, parse_key
from chordmidi.quality import DEFAULT_TABLE, QualityTable
from chordmidi.score import parse_score

logger = logging.getLogger(__name__)


def _key(tonic: str | KeyContext | None) -> KeyContext | None:
    if tonic is None or isinstance(tonic, KeyContext):
        return tonic
    return parse_key(tonic)


def parse_and_convert_to_degree(
    score_text: str,
    tonic: str | KeyContext,
    table: QualityTable = DEFAULT_TABLE,
) -> str:
    """
    Rewrite a chord score in scale-degree notation.

    Args:
        score_text: Score in the text format ('Cmaj7 Am7 | Dm7 G7').
        tonic:      Initial key, e.g. 'C', 'F#m' or 'D:dorian'.
        table:      Quality vocabulary.

    Returns:
        The score with every root and bass expressed as a degree.

    Raises:
        ParseError:     If the text is malformed.
        UnsupportedKey: If the tonic cannot be resolved.
    """
    score = parse_score(score_text, _key(tonic), table)
    return to_degree_notation(score)


def parse_and_convert_to_pitch(
    score_text: str,
    tonic: str | KeyContext,
    table: QualityTable = DEFAULT_TABLE,
) -> str:
    """
    Rewrite a chord score in absolute pitch notation.

    Raises:
        ParseError:     If the text is malformed.
        UnsupportedKey: If the tonic cannot be resolved.
    """
    score = parse_score(score_text, _key(tonic), table)
    return to_pitch_notation(score)


def parse_and_encode_midi(
    score_text: str,
    bpm: float,
    tonic: str | KeyContext | None = None,
    settings: EncoderSettings | None = None,
    table: QualityTable = DEFAULT_TABLE,
) -> bytes:
    """
    Render a chord score as Standard MIDI File bytes.

    Args:
        score_text: Score in the text format.
        bpm:        Tempo in beats per minute.
        tonic:      Initial key; only needed when degree chords precede
                    any key marker.
        settings:   Encoder parameters (defaults when None).
        table:      Quality vocabulary.

    Raises:
        ParseError:       If the text is malformed.
        UnsupportedKey:   If a degree chord has no key in effect.
        EncodingOverflow: If the tempo or a note cannot be represented.
    """
    score = parse_score(score_text, _key(tonic), table)
    logger.debug("encoding %d entries at %s BPM", len(score), bpm)
    return encode(score, bpm, settings)
