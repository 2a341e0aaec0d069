"""S-expression score reader: ``(score (C F) (keyed D (I IV)))``."""

import logging
from dataclasses import dataclass
from typing import Union

from chordmidi.errors import SexpSyntaxError, UnsupportedKey
from chordmidi.parser import classify
from chordmidi.pitch import KeyContext, parse_key
from chordmidi.quality import DEFAULT_TABLE, QualityTable
from chordmidi.score import Score, ScoreBuilder

logger = logging.getLogger(__name__)

_COMMENT = ";"


@dataclass(frozen=True)
class _Atom:
    text: str
    line: int
    column: int


@dataclass(frozen=True)
class _List:
    items: tuple["_Node", ...]
    line: int
    column: int

    @property
    def head(self) -> str | None:
        if self.items and isinstance(self.items[0], _Atom):
            return self.items[0].text
        return None


_Node = Union[_Atom, _List]


# ---- Reader ----

def _lex(text: str) -> list[tuple[str, int, int]]:
    """Split *text* into '(' / ')' / atom lexemes with their 1-based positions."""
    lexemes: list[tuple[str, int, int]] = []
    for line_no, line in enumerate(text.replace("\r\n", "\n").split("\n"), start=1):
        pos = 0
        while pos < len(line):
            ch = line[pos]
            if ch.isspace():
                pos += 1
            elif ch == _COMMENT:
                break
            elif ch in "()":
                lexemes.append((ch, line_no, pos + 1))
                pos += 1
            else:
                start = pos
                while pos < len(line) and not line[pos].isspace() and line[pos] not in "();":
                    pos += 1
                lexemes.append((line[start:pos], line_no, start + 1))
    return lexemes


def _read(text: str) -> _Node:
    lexemes = _lex(text)
    if not lexemes:
        raise SexpSyntaxError("empty input, expected (score ...)")

    stack: list[tuple[list[_Node], int, int]] = []
    result: _Node | None = None
    for lexeme, line, column in lexemes:
        if result is not None:
            raise SexpSyntaxError(f"unexpected {lexeme!r} after the score", line, column, lexeme)
        if lexeme == "(":
            stack.append(([], line, column))
            continue
        if lexeme == ")":
            if not stack:
                raise SexpSyntaxError("unbalanced ')'", line, column, lexeme)
            items, open_line, open_column = stack.pop()
            node: _Node = _List(tuple(items), open_line, open_column)
        else:
            node = _Atom(lexeme, line, column)
        if stack:
            stack[-1][0].append(node)
        else:
            result = node

    if stack:
        _, line, column = stack[-1]
        raise SexpSyntaxError("unclosed '('", line, column, "(")
    return result


# ---- Score assembly ----

def _measure(builder: ScoreBuilder, node: _Node, table: QualityTable) -> None:
    if isinstance(node, _Atom):
        raise SexpSyntaxError(
            f"expected a measure list, got {node.text!r}", node.line, node.column, node.text
        )

    if node.head == "keyed":
        if len(node.items) != 3 or not isinstance(node.items[1], _Atom):
            raise SexpSyntaxError(
                "expected (keyed <tonic> <measure>)", node.line, node.column, "keyed"
            )
        tonic = node.items[1]
        try:
            key = parse_key(tonic.text)
        except UnsupportedKey as exc:
            raise UnsupportedKey(f"{tonic.line}:{tonic.column}: {exc}") from None
        logger.debug("keyed measure in %s at %d:%d", key, node.line, node.column)
        previous = builder.change_key(key)
        _measure(builder, node.items[2], table)
        builder.restore_key(previous)
        return

    for item in node.items:
        if isinstance(item, _List):
            raise SexpSyntaxError(
                "measures cannot nest lists other than (keyed ...)", item.line, item.column, "("
            )
        builder.feed(classify(item.text, item.line, item.column, table))
    builder.close_measure()


def parse_sexp(
    text: str,
    initial_key: KeyContext | None = None,
    table: QualityTable = DEFAULT_TABLE,
) -> Score:
    """
    Build a Score from its s-expression form.

    ``(score M ...)`` lists measures; each measure is a list of chord, rest
    ('_', 'N.C.'), sustain ('=') or repeat ('%') atoms, or ``(keyed <tonic>
    M)``, which plays M in the given key and then returns to the key that
    was in effect before. Extension groups use brackets inside atoms
    ('G7[b9]'). The whole score is a single output line.

    Raises:
        SexpSyntaxError: If the text is not a well-formed (score ...) form.
        ParseError:      If an atom is not a valid chord.
        UnsupportedKey:  If a keyed tonic cannot be resolved.
    """
    root = _read(text)
    if not isinstance(root, _List) or root.head != "score":
        raise SexpSyntaxError("expected (score ...)", root.line, root.column)

    builder = ScoreBuilder(initial_key)
    for measure in root.items[1:]:
        _measure(builder, measure, table)
    builder.close_line()
    score = builder.build()
    logger.debug("read s-expression score: %d entries, %d key context(s)", len(score), len(score.keys))
    return score
