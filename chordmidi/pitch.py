"""Pitch-class algebra: modulo-12 arithmetic, keys, scale degrees and spelling."""

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from chordmidi.errors import UnsupportedKey

# ── Constants ───────────────────────────────────────────────────────────────
SEMITONES_PER_OCTAVE = 12

LETTER_TO_PC = MappingProxyType({"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11})

#: Accepted accidental glyphs and their semitone offset.
ACCIDENTAL_OFFSETS = MappingProxyType({"#": 1, "♯": 1, "b": -1, "♭": -1})

SHARP_NAMES: tuple[str, ...] = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")
FLAT_NAMES: tuple[str, ...] = ("C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B")

ROMAN_NUMERALS: tuple[str, ...] = ("I", "II", "III", "IV", "V", "VI", "VII")

_PITCH_NAME_RE = re.compile(r"^([A-Ga-g])([#♯b♭]?)$")
_KEY_RE = re.compile(r"^([A-Ga-g][#♯b♭]?)(.*)$")


class Mode(str, Enum):
    """Diatonic modes a KeyContext can be in."""

    MAJOR = "major"
    DORIAN = "dorian"
    PHRYGIAN = "phrygian"
    LYDIAN = "lydian"
    MIXOLYDIAN = "mixolydian"
    MINOR = "minor"
    LOCRIAN = "locrian"


#: Semitone offsets of degrees 1-7 above the tonic, per mode.
MODE_SCALES = MappingProxyType(
    {
        Mode.MAJOR: (0, 2, 4, 5, 7, 9, 11),
        Mode.DORIAN: (0, 2, 3, 5, 7, 9, 10),
        Mode.PHRYGIAN: (0, 1, 3, 5, 7, 8, 10),
        Mode.LYDIAN: (0, 2, 4, 6, 7, 9, 11),
        Mode.MIXOLYDIAN: (0, 2, 4, 5, 7, 9, 10),
        Mode.MINOR: (0, 2, 3, 5, 7, 8, 10),
        Mode.LOCRIAN: (0, 1, 3, 5, 6, 8, 10),
    }
)

#: Where each mode's tonic sits above its relative major tonic.
_RELATIVE_MAJOR_OFFSETS = MappingProxyType(
    {
        Mode.MAJOR: 0,
        Mode.DORIAN: 2,
        Mode.PHRYGIAN: 4,
        Mode.LYDIAN: 5,
        Mode.MIXOLYDIAN: 7,
        Mode.MINOR: 9,
        Mode.LOCRIAN: 11,
    }
)

#: Sharps (>0) or flats (<0) of the major key on each pitch class.
#: F#/Gb is stored as +6 and flipped when the tonic is spelled with a flat.
_MAJOR_KEY_SIGNATURES = MappingProxyType(
    {0: 0, 7: 1, 2: 2, 9: 3, 4: 4, 11: 5, 6: 6, 5: -1, 10: -2, 3: -3, 8: -4, 1: -5}
)

_MODE_ALIASES = MappingProxyType(
    {
        "": Mode.MAJOR,
        "maj": Mode.MAJOR,
        "major": Mode.MAJOR,
        "ionian": Mode.MAJOR,
        "m": Mode.MINOR,
        "min": Mode.MINOR,
        "minor": Mode.MINOR,
        "aeolian": Mode.MINOR,
    }
)


# ── Value types ─────────────────────────────────────────────────────────────

@dataclass(frozen=True, order=True)
class PitchClass:
    """
    A tone irrespective of octave.

    Attributes:
        value:    0=C, 1=C#/Db, ..., 11=B.
        spelling: Preferred display name (e.g. "Bb"). Ignored by equality,
                  hashing and ordering.
    """

    value: int
    spelling: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not 0 <= self.value < SEMITONES_PER_OCTAVE:
            raise ValueError(f"pitch class out of range: {self.value}")

    @property
    def name(self) -> str:
        """Spelled name, falling back to the sharp spelling."""
        return self.spelling or SHARP_NAMES[self.value]

    @property
    def accidental(self) -> str:
        return self.name[1:]

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Degree:
    """
    A scale degree relative to a key's tonic.

    Attributes:
        number:     1-7.
        accidental: Chromatic shift in semitones (-1 flat, 0, +1 sharp).
        borrowed:   True for chromatic (non-diatonic) degrees.
    """

    number: int
    accidental: int = 0
    borrowed: bool = False

    def __post_init__(self) -> None:
        if not 1 <= self.number <= 7:
            raise ValueError(f"degree out of range: {self.number}")
        if self.accidental not in (-1, 0, 1):
            raise ValueError(f"unsupported degree accidental: {self.accidental}")

    @property
    def accidental_symbol(self) -> str:
        return {-1: "b", 0: "", 1: "#"}[self.accidental]

    def numeral(self, minor: bool = False) -> str:
        """Roman numeral with a leading accidental, e.g. 'bVII' or '#iv'."""
        roman = ROMAN_NUMERALS[self.number - 1]
        return self.accidental_symbol + (roman.lower() if minor else roman)


@dataclass(frozen=True)
class KeyContext:
    """The tonic and mode governing degree/pitch conversion and spelling."""

    tonic: PitchClass
    mode: Mode = Mode.MAJOR

    @property
    def scale(self) -> tuple[int, ...]:
        return MODE_SCALES[self.mode]

    def __str__(self) -> str:
        if self.mode is Mode.MAJOR:
            return self.tonic.name
        if self.mode is Mode.MINOR:
            return f"{self.tonic.name}m"
        return f"{self.tonic.name}:{self.mode.value}"


# ── Parsing ─────────────────────────────────────────────────────────────────

def parse_pitch_name(text: str) -> PitchClass:
    """
    Resolve a pitch name such as 'C', 'F#', 'Bb' or 'E♭' to a PitchClass.

    The spelling is normalised to an upper-case letter with an ASCII
    accidental and kept on the result.

    Raises:
        UnsupportedKey: If the text is not a pitch name.
    """
    match = _PITCH_NAME_RE.match(text.strip())
    if not match:
        raise UnsupportedKey(f"not a pitch name: {text!r}")
    letter = match.group(1).upper()
    accidental = match.group(2)
    offset = ACCIDENTAL_OFFSETS.get(accidental, 0)
    ascii_accidental = {1: "#", -1: "b", 0: ""}[offset]
    value = (LETTER_TO_PC[letter] + offset) % SEMITONES_PER_OCTAVE
    return PitchClass(value, letter + ascii_accidental)


def parse_key(text: str) -> KeyContext:
    """
    Resolve a key description to a KeyContext.

    Accepted forms: 'C', 'Am', 'F#m', 'Bb:dorian', 'D minor', 'Eb major'.

    Raises:
        UnsupportedKey: If the tonic or mode cannot be resolved.
    """
    match = _KEY_RE.match(text.strip())
    if not match:
        raise UnsupportedKey(f"unsupported key: {text!r}")
    tonic = parse_pitch_name(match.group(1))
    rest = match.group(2).strip().lstrip(":").strip()
    if rest == "M":
        return KeyContext(tonic, Mode.MAJOR)
    rest = rest.lower()
    if rest in _MODE_ALIASES:
        return KeyContext(tonic, _MODE_ALIASES[rest])
    try:
        return KeyContext(tonic, Mode(rest))
    except ValueError:
        raise UnsupportedKey(f"unsupported mode {rest!r} in key {text!r}") from None


# ── Algebra ─────────────────────────────────────────────────────────────────

def transpose(pc: PitchClass, interval: int) -> PitchClass:
    """Shift a pitch class by a signed interval, modulo 12."""
    return PitchClass((pc.value + interval) % SEMITONES_PER_OCTAVE)


def interval_between(low: PitchClass, high: PitchClass) -> int:
    """Ascending interval in [0, 11] from *low* to *high*."""
    return (high.value - low.value) % SEMITONES_PER_OCTAVE


def key_signature(key: KeyContext) -> int:
    """
    Number of sharps (positive) or flats (negative) in the key signature.

    The signature is that of the key's relative major. Enharmonic tonics
    follow their spelling, so 'C#' gives +7 and 'Gb' gives -6.
    """
    relative_major = (key.tonic.value - _RELATIVE_MAJOR_OFFSETS[key.mode]) % SEMITONES_PER_OCTAVE
    signature = _MAJOR_KEY_SIGNATURES[relative_major]
    accidental = key.tonic.accidental
    if accidental == "#" and signature < 0:
        signature += SEMITONES_PER_OCTAVE
    elif accidental == "b" and signature > 0:
        signature -= SEMITONES_PER_OCTAVE
    return signature


def spell(pc: PitchClass, key: KeyContext) -> tuple[str, str]:
    """
    Choose a (letter, accidental) spelling for *pc* in *key*.

    Flat keys spell black keys with flats; sharp keys and keys without
    accidentals spell them with sharps.
    """
    names = FLAT_NAMES if key_signature(key) < 0 else SHARP_NAMES
    name = names[pc.value]
    return name[0], name[1:]


def respell(pc: PitchClass, key: KeyContext) -> PitchClass:
    """Return *pc* carrying the spelling preferred in *key*."""
    letter, accidental = spell(pc, key)
    return PitchClass(pc.value, letter + accidental)


def degree_to_pitch(degree: Degree, key: KeyContext) -> PitchClass:
    """
    Resolve a scale degree against *key*.

    Diatonic degrees are spelled for the key; a flattened or sharpened
    degree keeps its own accidental direction ('bVII' in C is Bb).
    """
    value = (key.tonic.value + key.scale[degree.number - 1] + degree.accidental) % SEMITONES_PER_OCTAVE
    if degree.accidental < 0:
        return PitchClass(value, FLAT_NAMES[value])
    if degree.accidental > 0:
        return PitchClass(value, SHARP_NAMES[value])
    return respell(PitchClass(value), key)


def pitch_to_degree(pc: PitchClass, key: KeyContext) -> Degree:
    """
    Express *pc* as a scale degree of *key*.

    Diatonic pitches map to a plain degree. Chromatic pitches take the
    nearest degree with a one-semitone accidental, preferring the sharp
    when both neighbours qualify, and are marked borrowed.
    """
    scale = key.scale
    interval = interval_between(key.tonic, pc)
    if interval in scale:
        return Degree(scale.index(interval) + 1)
    for accidental in (1, -1):
        neighbour = (interval - accidental) % SEMITONES_PER_OCTAVE
        if neighbour in scale:
            return Degree(scale.index(neighbour) + 1, accidental, borrowed=True)
    raise ValueError(f"no degree within a semitone of {pc} in {key}")
