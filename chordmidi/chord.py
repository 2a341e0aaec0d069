"""Structural chord model: roots, extensions and resolved chord tones."""

from dataclasses import dataclass, field
from typing import Union

from chordmidi.errors import UnsupportedKey
from chordmidi.pitch import Degree, KeyContext, PitchClass, degree_to_pitch
from chordmidi.quality import MAJOR, ChordQuality

# Default chord-tone offset of each degree, compound degrees included; a bare 7
# is the minor seventh as in chord symbols.
_DEGREE_SEMITONES = {1: 0, 2: 2, 3: 4, 4: 5, 5: 7, 6: 9, 7: 10, 9: 14, 11: 17, 13: 21}
EXTENSION_DEGREES = frozenset(d for d in _DEGREE_SEMITONES if d != 1)

# Every semitone offset a chord tone on each degree may take once altered.
_DEGREE_SPELLINGS = {
    2: (1, 2),
    3: (3, 4),
    4: (5, 6),
    5: (6, 7, 8),
    6: (8, 9),
    7: (10, 11),
    9: (13, 14, 15),
    11: (17, 18),
    13: (20, 21),
}


# ── Root: tagged variant ────────────────────────────────────────────────────

@dataclass(frozen=True)
class PitchRoot:
    """A root written as an absolute pitch (e.g. 'Bb')."""

    pitch: PitchClass

    def __str__(self) -> str:
        return self.pitch.name


@dataclass(frozen=True)
class DegreeRoot:
    """A root written as a scale degree (e.g. 'bVII')."""

    degree: Degree

    def __str__(self) -> str:
        return self.degree.numeral()


Root = Union[PitchRoot, DegreeRoot]


def resolve_root(root: Root, key: KeyContext | None) -> PitchClass:
    """
    Absolute pitch class of *root*.

    Raises:
        UnsupportedKey: If *root* is a degree and no key is in effect.
    """
    if isinstance(root, PitchRoot):
        return root.pitch
    if isinstance(root, DegreeRoot):
        if key is None:
            raise UnsupportedKey(f"degree {root} needs a key to resolve")
        return degree_to_pitch(root.degree, key)
    raise TypeError(f"not a chord root: {root!r}")


# ── Extensions ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Extension:
    """
    An added, altered or omitted chord tone.

    Attributes:
        degree:     Chord degree (2-13) the tone sits on.
        accidental: -1 flat, 0 natural, +1 sharp.
        omit:       True for 'omit'/'no' items that remove the degree.
        add:        True for explicit 'add' items; only affects rendering.
    """

    degree: int
    accidental: int = 0
    omit: bool = False
    add: bool = False

    def __post_init__(self) -> None:
        if self.degree not in EXTENSION_DEGREES:
            raise ValueError(f"unsupported extension degree: {self.degree}")

    @property
    def interval(self) -> int:
        """Semitones above the root, e.g. 14 for 9 and 13 for b9."""
        semitones = _DEGREE_SEMITONES[self.degree]
        if self.degree == 7 and self.accidental == 0 and self.add:
            # 'add7' spells the major seventh; a bare '7' item is the minor one.
            semitones += 1
        return semitones + self.accidental

    def __str__(self) -> str:
        if self.omit:
            return f"omit{self.degree}"
        prefix = "add" if self.add else {-1: "b", 0: "", 1: "#"}[self.accidental]
        return f"{prefix}{self.degree}"


# ── Chord ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Chord:
    """
    A parsed chord symbol.

    Attributes:
        root:       PitchRoot or DegreeRoot.
        quality:    Interval set above the root.
        extensions: Ordered added/altered/omitted tones.
        bass:       Slash-bass root, if any.
    """

    root: Root
    quality: ChordQuality = MAJOR
    extensions: tuple[Extension, ...] = field(default=())
    bass: Root | None = None

    @property
    def is_degree(self) -> bool:
        return isinstance(self.root, DegreeRoot)

    def intervals(self) -> tuple[int, ...]:
        """
        Sorted semitone offsets of every chord tone above the root.

        Extensions are applied in order: omitted degrees remove every
        quality tone on that degree, an altered fifth replaces the fifth,
        and other items are added.
        """
        tones = set(self.quality.intervals)
        for ext in self.extensions:
            if ext.omit:
                tones -= _tones_on_degree(ext.degree)
                continue
            if ext.degree == 5:
                tones -= _tones_on_degree(5)
            tones.add(ext.interval)
        return tuple(sorted(tones))


def _tones_on_degree(degree: int) -> set[int]:
    """Semitone offsets a chord might use for *degree* (all its alterations)."""
    return set(_DEGREE_SPELLINGS[degree])
