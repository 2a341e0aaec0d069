"""chordmidi: chord scores to scale-degree text, pitch text and MIDI."""

__version__ = "0.1.0"

from chordmidi.convert import (  # noqa: E402
    parse_and_convert_to_degree,
    parse_and_convert_to_pitch,
    parse_and_encode_midi,
)
from chordmidi.errors import (  # noqa: E402
    ChordMidiError,
    EncodingOverflow,
    MalformedExtension,
    ParseError,
    SexpSyntaxError,
    TrailingInput,
    UnknownQuality,
    UnrecognizedRoot,
    UnsupportedKey,
)

__all__ = [
    "__version__",
    "parse_and_convert_to_degree",
    "parse_and_convert_to_pitch",
    "parse_and_encode_midi",
    "ChordMidiError",
    "EncodingOverflow",
    "MalformedExtension",
    "ParseError",
    "SexpSyntaxError",
    "TrailingInput",
    "UnknownQuality",
    "UnrecognizedRoot",
    "UnsupportedKey",
]
