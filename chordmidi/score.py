"""Score Model: timed chord entries plus the key contexts in effect."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from chordmidi.chord import Chord
from chordmidi.errors import UnrecognizedRoot
from chordmidi.parser import Token, TokenKind, tokenize
from chordmidi.pitch import KeyContext
from chordmidi.quality import DEFAULT_TABLE, QualityTable

logger = logging.getLogger(__name__)

DEFAULT_DURATION = 1.0  # beats


@dataclass(frozen=True)
class Position:
    """Where an entry starts: its measure index and absolute beat offset."""

    measure: int
    beat: float


@dataclass(frozen=True)
class ScoreEntry:
    """
    One timed item of a score.

    Attributes:
        chord:     The chord, or None for rests and sustains.
        position:  Measure index and starting beat.
        duration:  Length in beats.
        key_index: Index into ``Score.keys`` of the key in effect.
        line:      0-based output line the entry belongs to.
        tie:       True for a sustain ('='), which extends the sounding chord.
    """

    chord: Chord | None
    position: Position
    duration: float = DEFAULT_DURATION
    key_index: int = 0
    line: int = 0
    tie: bool = False

    @property
    def is_rest(self) -> bool:
        return self.chord is None and not self.tie

    @property
    def end(self) -> float:
        return self.position.beat + self.duration


@dataclass(frozen=True)
class Score:
    """
    An ordered sequence of entries and the arena of keys they reference.

    ``keys[0]`` is the initial key (possibly None); each key change appends
    a new context, so earlier entries never see a later key.
    """

    entries: tuple[ScoreEntry, ...] = ()
    keys: tuple[KeyContext | None, ...] = field(default=(None,))

    def __iter__(self) -> Iterator[ScoreEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def key_of(self, entry: ScoreEntry) -> KeyContext | None:
        return self.keys[entry.key_index]

    @property
    def length(self) -> float:
        """Total length in beats."""
        return max((e.end for e in self.entries), default=0.0)

    def chords(self) -> list[Chord]:
        return [e.chord for e in self.entries if e.chord is not None]


class ScoreBuilder:
    """
    Accumulates entries while walking a token stream.

    Front ends other than the text tokenizer (such as the s-expression
    reader) drive it directly through ``feed``, ``change_key`` and
    ``restore_key``.
    """

    def __init__(self, initial_key: KeyContext | None) -> None:
        self.keys: list[KeyContext | None] = [initial_key]
        self.key_index = 0
        self.entries: list[ScoreEntry] = []
        self.measure = 0
        self.line = 0
        self.beat = 0.0
        self.measure_open = False
        self.line_open = False
        self.previous: Chord | None = None

    def _append(self, chord: Chord | None, duration: float | None, tie: bool = False) -> None:
        entry = ScoreEntry(
            chord=chord,
            position=Position(self.measure, self.beat),
            duration=DEFAULT_DURATION if duration is None else duration,
            key_index=self.key_index,
            line=self.line,
            tie=tie,
        )
        self.entries.append(entry)
        self.beat = entry.end
        self.measure_open = True
        self.line_open = True

    def close_measure(self) -> None:
        if self.measure_open:
            self.measure += 1
            self.measure_open = False

    def close_line(self) -> None:
        self.close_measure()
        if self.line_open:
            self.line += 1
            self.line_open = False

    def change_key(self, key: KeyContext | None) -> int:
        """Append *key* to the arena and make it current. Returns the previous index."""
        previous = self.key_index
        self.keys.append(key)
        self.key_index = len(self.keys) - 1
        return previous

    def restore_key(self, index: int) -> None:
        """Make an earlier arena entry current again."""
        if not 0 <= index < len(self.keys):
            raise IndexError(f"no key context at index {index}")
        self.key_index = index

    def feed(self, token: Token) -> None:
        kind = token.kind
        if kind is TokenKind.CHORD:
            self.previous = token.chord
            self._append(token.chord, token.duration)
        elif kind is TokenKind.REPEAT:
            if self.previous is None:
                raise UnrecognizedRoot("'%' has no chord to repeat", token.line, token.column, token.text)
            self._append(self.previous, token.duration)
        elif kind is TokenKind.SUSTAIN:
            self._append(None, token.duration, tie=True)
        elif kind is TokenKind.REST:
            self._append(None, token.duration)
        elif kind is TokenKind.KEY:
            logger.debug("key change to %s at %d:%d", token.key, token.line, token.column)
            self.change_key(token.key)
        elif kind is TokenKind.BAR:
            self.close_measure()
        elif kind is TokenKind.NEWLINE:
            self.close_line()

    def build(self) -> Score:
        return Score(entries=tuple(self.entries), keys=tuple(self.keys))


def build_score(tokens: Iterable[Token], initial_key: KeyContext | None = None) -> Score:
    """
    Assemble a Score from positioned tokens.

    Args:
        tokens:      Output of ``tokenize`` (or any equivalent sequence).
        initial_key: Key in effect before the first key marker, if any.

    Returns:
        A Score whose entries reference the key active at their position.
    """
    builder = ScoreBuilder(initial_key)
    for token in tokens:
        builder.feed(token)
    score = builder.build()
    logger.debug(
        "built score: %d entries, %d key context(s), %.2f beats",
        len(score.entries),
        len(score.keys),
        score.length,
    )
    return score


def parse_score(
    text: str,
    initial_key: KeyContext | None = None,
    table: QualityTable = DEFAULT_TABLE,
) -> Score:
    """Tokenize and build a score from its text form."""
    return build_score(tokenize(text, table), initial_key)
