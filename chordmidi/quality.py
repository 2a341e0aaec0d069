"""Chord Quality Table: a read-only registry of quality symbols and interval sets."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from chordmidi.errors import UnknownQuality


@dataclass(frozen=True)
class ChordQuality:
    """
    A named interval set above a chord root.

    Attributes:
        name:          Stable identifier, e.g. "minor7".
        symbol:        Canonical suffix in pitch notation ("m7").
        intervals:     Semitones above the root, ascending, starting at 0.
        minor:         True when the chord has a minor third; decides the
                       case of the Roman numeral in degree notation.
        degree_symbol: Suffix written after the numeral in degree notation.
        aliases:       Other accepted spellings of the symbol.
    """

    name: str
    symbol: str
    intervals: tuple[int, ...]
    minor: bool = False
    degree_symbol: str | None = None
    aliases: tuple[str, ...] = field(default=(), compare=False)

    @property
    def degree_suffix(self) -> str:
        return self.symbol if self.degree_symbol is None else self.degree_symbol

    @property
    def symbols(self) -> tuple[str, ...]:
        """Every spelling this quality is recognised by."""
        return (self.symbol, *self.aliases)


# ── Default vocabulary ──────────────────────────────────────────────────────

MAJOR = ChordQuality("major", "", (0, 4, 7), aliases=("maj", "M"))
MINOR = ChordQuality("minor", "m", (0, 3, 7), minor=True, degree_symbol="", aliases=("min", "-"))
DIMINISHED = ChordQuality(
    "diminished", "dim", (0, 3, 6), minor=True, degree_symbol="°", aliases=("o", "°")
)
AUGMENTED = ChordQuality("augmented", "aug", (0, 4, 8), degree_symbol="+", aliases=("+",))
POWER = ChordQuality("power", "5", (0, 7))
SUS2 = ChordQuality("suspended2", "sus2", (0, 2, 7), aliases=("2",))
SUS4 = ChordQuality("suspended4", "sus4", (0, 5, 7), aliases=("sus",))
SIXTH = ChordQuality("sixth", "6", (0, 4, 7, 9))
MINOR_SIXTH = ChordQuality("minor6", "m6", (0, 3, 7, 9), minor=True, degree_symbol="6", aliases=("min6",))
DOMINANT7 = ChordQuality("dominant7", "7", (0, 4, 7, 10), aliases=("dom7",))
DOMINANT7_FLAT5 = ChordQuality("dominant7-flat5", "7b5", (0, 4, 6, 10), aliases=("7-5",))
MAJOR7 = ChordQuality(
    "major7", "maj7", (0, 4, 7, 11), degree_symbol="Δ7", aliases=("M7", "Δ7", "Δ", "ma7")
)
MINOR7 = ChordQuality("minor7", "m7", (0, 3, 7, 10), minor=True, degree_symbol="7", aliases=("min7", "-7"))
MINOR_MAJOR7 = ChordQuality(
    "minor-major7", "mM7", (0, 3, 7, 11), minor=True, degree_symbol="Δ7", aliases=("mmaj7", "mΔ7")
)
HALF_DIMINISHED = ChordQuality(
    "half-diminished", "m7b5", (0, 3, 6, 10), minor=True, degree_symbol="ø7",
    aliases=("ø", "ø7", "m7-5"),
)
DIMINISHED7 = ChordQuality(
    "diminished7", "dim7", (0, 3, 6, 9), minor=True, degree_symbol="°7", aliases=("o7", "°7")
)
AUGMENTED7 = ChordQuality("augmented7", "aug7", (0, 4, 8, 10), degree_symbol="+7", aliases=("+7", "7#5"))
SEVENTH_SUS4 = ChordQuality("dominant7sus4", "7sus4", (0, 5, 7, 10), aliases=("7sus",))
ADD9 = ChordQuality("add9", "add9", (0, 4, 7, 14), aliases=("add2",))
MINOR_ADD9 = ChordQuality("minor-add9", "madd9", (0, 3, 7, 14), minor=True, degree_symbol="add9")
NINTH = ChordQuality("dominant9", "9", (0, 4, 7, 10, 14))
MAJOR9 = ChordQuality("major9", "maj9", (0, 4, 7, 11, 14), degree_symbol="Δ9", aliases=("M9", "Δ9"))
MINOR9 = ChordQuality("minor9", "m9", (0, 3, 7, 10, 14), minor=True, degree_symbol="9", aliases=("min9",))
ELEVENTH = ChordQuality("dominant11", "11", (0, 4, 7, 10, 14, 17))
MINOR11 = ChordQuality(
    "minor11", "m11", (0, 3, 7, 10, 14, 17), minor=True, degree_symbol="11", aliases=("min11",)
)
THIRTEENTH = ChordQuality("dominant13", "13", (0, 4, 7, 10, 14, 21))
MAJOR13 = ChordQuality("major13", "maj13", (0, 4, 7, 11, 14, 21), degree_symbol="Δ13", aliases=("M13", "Δ13"))
MINOR13 = ChordQuality(
    "minor13", "m13", (0, 3, 7, 10, 14, 21), minor=True, degree_symbol="13", aliases=("min13",)
)

DEFAULT_QUALITIES: tuple[ChordQuality, ...] = (
    MAJOR, MINOR, DIMINISHED, AUGMENTED, POWER, SUS2, SUS4, SIXTH, MINOR_SIXTH,
    DOMINANT7, DOMINANT7_FLAT5, MAJOR7, MINOR7, MINOR_MAJOR7, HALF_DIMINISHED, DIMINISHED7,
    AUGMENTED7, SEVENTH_SUS4, ADD9, MINOR_ADD9, NINTH, MAJOR9, MINOR9,
    ELEVENTH, MINOR11, THIRTEENTH, MAJOR13, MINOR13,
)

#: Quality implied by a lower-case Roman numeral written with a major-family
#: symbol: 'vi7' is a minor seventh, 'iΔ7' a minor-major seventh.
DEFAULT_MINOR_VARIANTS: Mapping[str, str] = MappingProxyType(
    {
        "major": "minor",
        "sixth": "minor6",
        "dominant7": "minor7",
        "major7": "minor-major7",
        "add9": "minor-add9",
        "dominant9": "minor9",
        "dominant11": "minor11",
        "dominant13": "minor13",
    }
)


class QualityTable:
    """
    Immutable lookup from quality symbols to ChordQuality records.

    Tables are never mutated after construction; ``register`` returns a new
    table, so a table can be shared freely between threads.
    """

    def __init__(
        self,
        qualities: Iterable[ChordQuality],
        minor_variants: Mapping[str, str] = DEFAULT_MINOR_VARIANTS,
    ) -> None:
        self._qualities: tuple[ChordQuality, ...] = tuple(qualities)
        by_name: dict[str, ChordQuality] = {}
        by_symbol: dict[str, ChordQuality] = {}
        for quality in self._qualities:
            by_name[quality.name] = quality
            for symbol in quality.symbols:
                existing = by_symbol.get(symbol)
                if existing is not None and existing.name != quality.name:
                    raise ValueError(
                        f"symbol {symbol!r} is claimed by both {existing.name} and {quality.name}"
                    )
                by_symbol[symbol] = quality
        self._by_name = MappingProxyType(by_name)
        self._by_symbol = MappingProxyType(by_symbol)
        self._minor_variants = MappingProxyType(dict(minor_variants))
        # Longest first so prefix matching is greedy.
        self._symbols_by_length = tuple(
            sorted((s for s in by_symbol if s), key=len, reverse=True)
        )

    def __iter__(self) -> Iterator[ChordQuality]:
        return iter(self._qualities)

    def __len__(self) -> int:
        return len(self._qualities)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._by_symbol

    def lookup(self, symbol: str) -> ChordQuality:
        """
        Return the quality spelled *symbol*.

        Raises:
            UnknownQuality: If no quality uses that symbol.
        """
        try:
            return self._by_symbol[symbol]
        except KeyError:
            raise UnknownQuality(f"unknown chord quality {symbol!r}", text=symbol) from None

    def match(self, text: str, start: int = 0) -> tuple[ChordQuality, int]:
        """
        Match the longest quality symbol at ``text[start:]``.

        Returns:
            (quality, end) where ``end`` is the index after the symbol. When
            nothing matches, the major quality and ``start`` are returned.
        """
        for symbol in self._symbols_by_length:
            if text.startswith(symbol, start):
                return self._by_symbol[symbol], start + len(symbol)
        return self._by_symbol[""], start

    def minor_variant(self, quality: ChordQuality) -> ChordQuality:
        """Quality implied when *quality* follows a lower-case numeral."""
        name = self._minor_variants.get(quality.name)
        if name is None or name not in self._by_name:
            return quality
        return self._by_name[name]

    def register(self, quality: ChordQuality, minor_variant_of: str | None = None) -> "QualityTable":
        """
        Return a new table that also knows *quality*.

        Args:
            quality:          The quality to add.
            minor_variant_of: Optional name of a major-family quality whose
                              lower-case numeral form should map to *quality*.
        """
        variants = dict(self._minor_variants)
        if minor_variant_of is not None:
            variants[minor_variant_of] = quality.name
        return QualityTable((*self._qualities, quality), variants)


DEFAULT_TABLE = QualityTable(DEFAULT_QUALITIES)
