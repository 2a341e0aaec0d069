"""VoicingStrategy: Strategy pattern for mapping chords to MIDI note sets."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from chordmidi.chord import Chord, resolve_root
from chordmidi.pitch import SEMITONES_PER_OCTAVE, KeyContext

# ── MIDI constants ──────────────────────────────────────────────────────────
DEFAULT_OCTAVE = 4


def pitch_class_to_midi(pitch_class: int, octave: int) -> int:
    """
    Convert a pitch class (0-11) and an octave number to an absolute MIDI note.

    MIDI octave numbering: C-1 = 0, C0 = 12, C1 = 24, ... C4 (Middle C) = 60.

    Args:
        pitch_class: 0=C, 1=C#, 2=D, ..., 11=B.
        octave:      Scientific octave number (e.g. 4 for Middle C octave).

    Returns:
        MIDI note number (may fall outside 0-127 for extreme octaves).
    """
    return (octave + 1) * SEMITONES_PER_OCTAVE + pitch_class


@dataclass(frozen=True)
class VoicedChord:
    """
    A chord annotated with concrete MIDI note assignments.

    Attributes:
        chord_notes: MIDI note numbers of the chord tones, ascending.
        bass_notes:  Slash-bass note below the chord; empty without a bass.
    """

    chord_notes: tuple[int, ...]
    bass_notes: tuple[int, ...] = field(default=())

    @property
    def notes(self) -> tuple[int, ...]:
        return (*self.bass_notes, *self.chord_notes)


# ── Abstract base ────────────────────────────────────────────────────────────

class VoicingStrategy(ABC):
    """
    Abstract Strategy for assigning MIDI pitches to a chord.

    Concrete subclasses implement ``voice()`` to produce different note
    layouts from the same chord.
    """

    def __init__(self, octave: int = DEFAULT_OCTAVE) -> None:
        """
        Args:
            octave: Scientific octave of the chord root (4 puts C at MIDI 60).
        """
        self.octave = octave

    def _stack(self, chord: Chord, key: KeyContext | None, octave: int) -> tuple[int, ...]:
        """Root-position chord tones stacked above the root in *octave*."""
        root = resolve_root(chord.root, key)
        root_midi = pitch_class_to_midi(root.value, octave)
        return tuple(root_midi + iv for iv in chord.intervals())

    def _bass(self, chord: Chord, key: KeyContext | None, lowest: int) -> tuple[int, ...]:
        """Slash-bass note placed in the octave directly below *lowest*."""
        if chord.bass is None:
            return ()
        bass = resolve_root(chord.bass, key)
        note = pitch_class_to_midi(bass.value, self.octave - 1)
        while note >= lowest:
            note -= SEMITONES_PER_OCTAVE
        while note + SEMITONES_PER_OCTAVE < lowest:
            note += SEMITONES_PER_OCTAVE
        return (note,)

    @abstractmethod
    def voice(
        self,
        chord: Chord,
        key: KeyContext | None,
        previous: VoicedChord | None = None,
    ) -> VoicedChord:
        """
        Map a chord to concrete MIDI note numbers.

        Args:
            chord:    Parsed chord (pitch or degree root).
            key:      Key in effect, needed for degree roots.
            previous: The chord voiced just before, for voice leading.

        Returns:
            VoicedChord with chord_notes and bass_notes populated.

        Raises:
            UnsupportedKey: If the chord has a degree root and no key.
        """


# ── Concrete strategies ──────────────────────────────────────────────────────

class CloseVoicer(VoicingStrategy):
    """
    Root-position chords with the root in the configured octave.

    With the default octave the chord tones of a C major triad are
    C4(60), E4(64), G4(67); a B major triad lands on B4(71), D#5(75), F#5(78).
    """

    def voice(
        self,
        chord: Chord,
        key: KeyContext | None,
        previous: VoicedChord | None = None,
    ) -> VoicedChord:
        notes = self._stack(chord, key, self.octave)
        return VoicedChord(chord_notes=notes, bass_notes=self._bass(chord, key, notes[0]))


class NearestVoicer(VoicingStrategy):
    """
    Root-position chords shifted by at most one octave toward the previous chord.

    Each candidate (one octave down, unchanged, one octave up) is scored by
    the summed distance between corresponding notes of the two chords; the
    unchanged placement wins ties. This keeps a progression from drifting
    far above or below the configured register.
    """

    _SHIFTS = (0, -1, 1)

    @staticmethod
    def _distance(a: tuple[int, ...], b: tuple[int, ...]) -> int:
        return abs(a[0] - b[0]) + sum(abs(x - y) for x, y in zip(a, b))

    def voice(
        self,
        chord: Chord,
        key: KeyContext | None,
        previous: VoicedChord | None = None,
    ) -> VoicedChord:
        notes = self._stack(chord, key, self.octave)
        if previous is not None and previous.chord_notes:
            candidates = [tuple(n + shift * SEMITONES_PER_OCTAVE for n in notes) for shift in self._SHIFTS]
            notes = min(candidates, key=lambda c: self._distance(c, previous.chord_notes))
        return VoicedChord(chord_notes=notes, bass_notes=self._bass(chord, key, notes[0]))


VOICERS: dict[str, type[VoicingStrategy]] = {
    "close": CloseVoicer,
    "nearest": NearestVoicer,
}


def get_voicer(name: str, octave: int = DEFAULT_OCTAVE) -> VoicingStrategy:
    """Return the VoicingStrategy registered as *name*."""
    try:
        return VOICERS[name](octave=octave)
    except KeyError:
        supported = ", ".join(sorted(VOICERS))
        raise ValueError(f"Unsupported voicing '{name}'. Use one of: {supported}.") from None
