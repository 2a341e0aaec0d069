"""Exception hierarchy shared by the parser, converter and encoder."""


class ChordMidiError(Exception):
    """Base class for every error the conversion pipeline raises."""


class ParseError(ChordMidiError):
    """
    A score could not be parsed.

    Attributes:
        line:   1-based line of the offending text.
        column: 1-based column of the offending text.
        text:   The offending fragment, when known.
    """

    kind = "parse error"

    def __init__(self, message: str, line: int = 1, column: int = 1, text: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column
        self.text = text

    def __str__(self) -> str:
        return f"{self.line}:{self.column}: {self.kind}: {self.message}"


class UnrecognizedRoot(ParseError):
    kind = "unrecognized root"


class UnknownQuality(ParseError):
    kind = "unknown quality"


class MalformedExtension(ParseError):
    kind = "malformed extension"


class TrailingInput(ParseError):
    kind = "trailing input"


class SexpSyntaxError(ParseError):
    kind = "malformed s-expression"


class UnsupportedKey(ChordMidiError):
    """A tonic could not be resolved, or a degree chord has no key in effect."""


class EncodingOverflow(ChordMidiError):
    """A note number or tempo cannot be represented in a MIDI file."""
