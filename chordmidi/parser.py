"""Chord Symbol Parser: chord tokens and whole score texts."""

import logging
import re
from dataclasses import dataclass
from enum import Enum

from chordmidi.chord import EXTENSION_DEGREES, Chord, DegreeRoot, Extension, PitchRoot, Root
from chordmidi.errors import (
    MalformedExtension,
    TrailingInput,
    UnknownQuality,
    UnrecognizedRoot,
    UnsupportedKey,
)
from chordmidi.pitch import ACCIDENTAL_OFFSETS, Degree, KeyContext, parse_key, parse_pitch_name
from chordmidi.quality import DEFAULT_TABLE, ChordQuality, QualityTable

logger = logging.getLogger(__name__)

_PITCH_ROOT_RE = re.compile(r"[A-G][#♯b♭]?")
_DEGREE_ROOT_RE = re.compile(r"([#♯b♭]?)(VII|VI|IV|V|III|II|I|vii|vi|iv|v|iii|ii|i)")
_BARE_EXTENSION_RE = re.compile(r"(add|omit|no)(\d+)|([#♯b♭+\-])(13|11|9|5)")
_EXTENSION_ITEM_RE = re.compile(r"^(add|omit|no)?([#♯b♭+\-]?)(\d+)$")
_DURATION_RE = re.compile(r"^(.+?):([^:]*)$")
_NUMBER_RE = re.compile(r"^(\d+(\.\d+)?|\.\d+)$")
MAX_DURATION = 1024.0

_NUMERAL_NUMBERS = {"i": 1, "ii": 2, "iii": 3, "iv": 4, "v": 5, "vi": 6, "vii": 7}
_EXTENSION_CLOSERS = {"(": ")", "[": "]"}
_QUALITY_TERMINATORS = "([/"


# ── Chord tokens ────────────────────────────────────────────────────────────

class _ChordScanner:
    """
    Single left-to-right scan over one chord token.

    Grammar: ``root [quality] extension* ['/' bass]``. Every error is
    reported at the 1-based line/column of the offending text.
    """

    def __init__(self, text: str, line: int, column: int, table: QualityTable) -> None:
        self.text = text
        self.line = line
        self.column = column
        self.table = table
        self.pos = 0

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _col(self, pos: int) -> int:
        return self.column + pos

    def _root(self, what: str) -> tuple[Root, bool]:
        """Consume a pitch or numeral root. Returns (root, lower_case_numeral)."""
        match = _PITCH_ROOT_RE.match(self.text, self.pos)
        if match:
            self.pos = match.end()
            return PitchRoot(parse_pitch_name(match.group())), False

        match = _DEGREE_ROOT_RE.match(self.text, self.pos)
        if match:
            self.pos = match.end()
            accidental = ACCIDENTAL_OFFSETS.get(match.group(1), 0)
            numeral = match.group(2)
            degree = Degree(_NUMERAL_NUMBERS[numeral.lower()], accidental, borrowed=accidental != 0)
            return DegreeRoot(degree), numeral.islower()

        fragment = self.text[self.pos:] or self.text
        raise UnrecognizedRoot(
            f"expected a {what} (A-G or I-VII), got {fragment!r}",
            self.line,
            self._col(self.pos),
            fragment,
        )

    def _quality_end(self) -> int:
        end = len(self.text)
        for terminator in _QUALITY_TERMINATORS:
            idx = self.text.find(terminator, self.pos)
            if idx != -1:
                end = min(end, idx)
        return end

    def _quality(self, lower_numeral: bool, extensions: list[Extension]) -> ChordQuality:
        start = self.pos
        end = self._quality_end()
        quality, self.pos = self.table.match(self.text, start)

        while self.pos < end:
            match = _BARE_EXTENSION_RE.match(self.text, self.pos)
            if not match or match.end() > end:
                break
            extensions.append(self._bare_extension(match))
            self.pos = match.end()

        if self.pos != end:
            fragment = self.text[start:end]
            raise UnknownQuality(
                f"unknown chord quality {fragment!r}", self.line, self._col(start), fragment
            )
        if lower_numeral:
            quality = self.table.minor_variant(quality)
        return quality

    def _bare_extension(self, match: re.Match) -> Extension:
        word, number, accidental = match.group(1), match.group(2), match.group(3)
        if word is not None:
            return self._extension(word, "", number, match.start())
        return self._extension(None, accidental, match.group(4), match.start())

    def _extension(self, word: str | None, accidental: str, number: str, pos: int) -> Extension:
        degree = int(number)
        if degree not in EXTENSION_DEGREES:
            raise MalformedExtension(
                f"unsupported extension degree {number}", self.line, self._col(pos), number
            )
        omit = word in ("omit", "no")
        if word is not None and accidental:
            raise MalformedExtension(
                f"'{word}' takes no accidental", self.line, self._col(pos), self.text[pos:]
            )
        offset = {"+": 1, "-": -1}.get(accidental, ACCIDENTAL_OFFSETS.get(accidental, 0))
        return Extension(degree, offset, omit=omit, add=word == "add")

    def _extension_group(self) -> list[Extension]:
        opener = self.text[self.pos]
        closer = _EXTENSION_CLOSERS[opener]
        close = self.text.find(closer, self.pos + 1)
        if close == -1:
            raise MalformedExtension(
                f"unclosed {opener!r}", self.line, self._col(self.pos), self.text[self.pos:]
            )
        inner_start = self.pos + 1
        inner = self.text[inner_start:close]
        if not inner.strip():
            raise MalformedExtension(
                "empty extension group", self.line, self._col(self.pos), self.text[self.pos:close + 1]
            )

        items: list[Extension] = []
        offset = inner_start
        for raw in inner.split(","):
            item = raw.strip()
            item_pos = offset + (len(raw) - len(raw.lstrip()))
            match = _EXTENSION_ITEM_RE.match(item)
            if not match:
                raise MalformedExtension(
                    f"cannot read extension {item!r}", self.line, self._col(item_pos), item
                )
            items.append(self._extension(match.group(1), match.group(2), match.group(3), item_pos))
            offset += len(raw) + 1

        self.pos = close + 1
        return items

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self) -> Chord:
        root, lower_numeral = self._root("chord root")
        extensions: list[Extension] = []
        quality = self._quality(lower_numeral, extensions)

        while self.pos < len(self.text) and self.text[self.pos] in _EXTENSION_CLOSERS:
            extensions.extend(self._extension_group())

        bass = None
        if self.pos < len(self.text) and self.text[self.pos] == "/":
            self.pos += 1
            bass, _ = self._root("bass note")

        if self.pos < len(self.text):
            fragment = self.text[self.pos:]
            raise TrailingInput(
                f"unexpected {fragment!r} after chord", self.line, self._col(self.pos), fragment
            )
        return Chord(root=root, quality=quality, extensions=tuple(extensions), bass=bass)


def parse_chord(token: str, line: int = 1, column: int = 1, table: QualityTable = DEFAULT_TABLE) -> Chord:
    """
    Parse one chord symbol such as 'Cmaj7', 'F#m7b5', 'G7(b9,#11)/B' or 'bVII7'.

    Args:
        token:  The chord text, without a duration suffix.
        line:   Line of the token in the surrounding score (for diagnostics).
        column: Column of the token's first character.
        table:  Quality vocabulary to match against.

    Raises:
        UnrecognizedRoot, UnknownQuality, MalformedExtension, TrailingInput
    """
    return _ChordScanner(token, line, column, table).parse()


# ── Score tokens ────────────────────────────────────────────────────────────

class TokenKind(str, Enum):
    CHORD = "chord"
    REST = "rest"
    SUSTAIN = "sustain"
    REPEAT = "repeat"
    BAR = "bar"
    NEWLINE = "newline"
    KEY = "key"


@dataclass(frozen=True)
class Token:
    """
    One lexical item of a score, positioned for diagnostics.

    Attributes:
        kind:     What the token is.
        text:     Source text of the token.
        line:     1-based line.
        column:   1-based column.
        chord:    Parsed chord for CHORD tokens.
        key:      Key for KEY tokens.
        duration: Explicit duration in beats (``:<beats>`` suffix), if any.
    """

    kind: TokenKind
    text: str
    line: int
    column: int
    chord: Chord | None = None
    key: KeyContext | None = None
    duration: float | None = None


def _split_duration(word: str, line: int, column: int) -> tuple[str, float | None]:
    match = _DURATION_RE.match(word)
    if not match:
        return word, None
    body, value = match.group(1), match.group(2)
    colon = column + len(body)
    if not _NUMBER_RE.match(value) or float(value) <= 0:
        raise TrailingInput(f"invalid duration {value!r}", line, colon, word[len(body):])
    beats = float(value)
    if beats > MAX_DURATION:
        raise TrailingInput(
            f"duration {value!r} exceeds {MAX_DURATION:g} beats", line, colon, word[len(body):]
        )
    return body, beats


def classify(word: str, line: int, column: int, table: QualityTable = DEFAULT_TABLE) -> Token:
    """Turn one whitespace-delimited word into a Token (key, rest, sustain, repeat or chord)."""
    if word.startswith("@"):
        try:
            key = parse_key(word[1:])
        except UnsupportedKey as exc:
            raise UnsupportedKey(f"{line}:{column}: {exc}") from None
        return Token(TokenKind.KEY, word, line, column, key=key)

    body, duration = _split_duration(word, line, column)
    if body in ("_", "N.C."):
        return Token(TokenKind.REST, word, line, column, duration=duration)
    if body == "=":
        return Token(TokenKind.SUSTAIN, word, line, column, duration=duration)
    if body == "%":
        return Token(TokenKind.REPEAT, word, line, column, duration=duration)
    chord = parse_chord(body, line, column, table)
    return Token(TokenKind.CHORD, word, line, column, chord=chord, duration=duration)


def _is_comment(line: str, pos: int) -> bool:
    # '#' opens a comment only when it is followed by whitespace or ends the
    # line; '#IV' and '#11' are musical text.
    return line[pos] == "#" and (pos + 1 == len(line) or line[pos + 1].isspace())


def tokenize(text: str, table: QualityTable = DEFAULT_TABLE) -> list[Token]:
    """
    Split a score text into positioned tokens.

    Chords are separated by whitespace or bar lines ('|'). Extension groups
    may contain spaces. A NEWLINE token closes every non-empty source line.
    """
    tokens: list[Token] = []
    for line_no, line in enumerate(text.replace("\r\n", "\n").split("\n"), start=1):
        produced = False
        pos = 0
        while pos < len(line):
            ch = line[pos]
            if ch.isspace():
                pos += 1
                continue
            if ch == "|":
                tokens.append(Token(TokenKind.BAR, ch, line_no, pos + 1))
                produced = True
                pos += 1
                continue
            if _is_comment(line, pos):
                break

            start = pos
            depth = 0
            while pos < len(line):
                c = line[pos]
                if c in "([":
                    depth += 1
                elif c in ")]":
                    depth = max(0, depth - 1)
                elif depth == 0 and (c.isspace() or c == "|"):
                    break
                pos += 1
            word = line[start:pos]
            token = classify(word, line_no, start + 1, table)
            logger.debug("token %s %r at %d:%d", token.kind.value, word, line_no, start + 1)
            tokens.append(token)
            produced = True
        if produced:
            tokens.append(Token(TokenKind.NEWLINE, "\n", line_no, len(line) + 1))
    return tokens
