"""chordmidi CLI entry point."""

import logging
import sys
from pathlib import Path
from typing import IO, NoReturn

import click

from chordmidi import __version__
from chordmidi.config import DEFAULT_BPM, EncoderSettings, load_settings
from chordmidi.errors import ChordMidiError
from chordmidi.midi_exporter import MidiExporter
from chordmidi.notation import to_degree_notation, to_pitch_notation
from chordmidi.pitch import KeyContext, parse_key
from chordmidi.score import Score, parse_score
from chordmidi.sexp import parse_sexp
from chordmidi.voicing_strategy import VOICERS

SEXP_SUFFIXES = (".sexp", ".scm")
MAX_BPM = 1000


def _fail(message: str) -> NoReturn:
    click.echo(f"ERROR: {message}", err=True)
    sys.exit(1)


def _resolve_format(source: IO[str], input_format: str) -> str:
    """Pick the reader from --format, or from the input file's extension."""
    if input_format != "auto":
        return input_format
    name = getattr(source, "name", "")
    return "sexp" if str(name).lower().endswith(SEXP_SUFFIXES) else "text"


def _load_score(source: IO[str], input_format: str, tonic: str | None) -> Score:
    key: KeyContext | None = parse_key(tonic) if tonic else None
    text = source.read()
    if _resolve_format(source, input_format) == "sexp":
        return parse_sexp(text, key)
    return parse_score(text, key)


def _default_midi_path(source: IO[str]) -> str:
    name = getattr(source, "name", "-")
    if name in ("-", "<stdin>"):
        return "output.mid"
    return str(Path(name).with_suffix(".mid"))


def _write_text(text: str, output: str | None) -> None:
    if output is None:
        click.echo(text)
        return
    try:
        Path(output).write_text(text + "\n", encoding="utf-8")
    except OSError as exc:
        _fail(f"Could not write output file: {exc}")


# ── Shared options ─────────────────────────────────────────────────────────────

_input_argument = click.argument("source", metavar="INPUT", type=click.File("r", encoding="utf-8"))
_tonic_option = click.option(
    "--tonic",
    "-k",
    default=None,
    metavar="KEY",
    help="Initial key, e.g. C, F#m, Bb or D:dorian. Key markers (@G) in the score override it.",
)
_format_option = click.option(
    "--format",
    "input_format",
    type=click.Choice(["auto", "text", "sexp"], case_sensitive=False),
    default="auto",
    show_default=True,
    help="Input syntax. 'auto' reads .sexp/.scm files as s-expressions and everything else as text.",
)
_output_option = click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination file. Text output defaults to stdout.",
)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="chordmidi")
@click.option("--verbose", "-v", is_flag=True, help="Log parsing and encoding details to stderr.")
def main(verbose: bool) -> None:
    """chordmidi: convert chord scores to degree notation, pitch notation or MIDI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ── degree / pitch subcommands ─────────────────────────────────────────────────

@main.command()
@_input_argument
@_tonic_option
@_format_option
@_output_option
def degree(source: IO[str], tonic: str | None, input_format: str, output: str | None) -> None:
    """
    Rewrite a chord score in scale-degree (Roman numeral) notation.

    INPUT is a score file, or '-' for stdin.

    \b
    Examples:
      chordmidi degree song.txt --tonic C
      echo "Cmaj7 Am7 | Dm7 G7" | chordmidi degree - -k C
    """
    try:
        text = to_degree_notation(_load_score(source, input_format, tonic.strip() if tonic else None))
    except ChordMidiError as exc:
        _fail(str(exc))
    _write_text(text, output)


@main.command()
@_input_argument
@_tonic_option
@_format_option
@_output_option
def pitch(source: IO[str], tonic: str | None, input_format: str, output: str | None) -> None:
    """
    Rewrite a chord score in absolute pitch notation.

    INPUT is a score file, or '-' for stdin.

    \b
    Examples:
      chordmidi pitch progression.txt --tonic Eb
      echo "ii7 V7 | IΔ7" | chordmidi pitch - -k F
    """
    try:
        text = to_pitch_notation(_load_score(source, input_format, tonic.strip() if tonic else None))
    except ChordMidiError as exc:
        _fail(str(exc))
    _write_text(text, output)


# ── midi subcommand ────────────────────────────────────────────────────────────

@main.command()
@_input_argument
@_tonic_option
@_format_option
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination MIDI file path. Defaults to <input>.mid.",
)
@click.option(
    "--bpm",
    type=click.IntRange(1, MAX_BPM),
    default=DEFAULT_BPM,
    show_default=True,
    help="Playback tempo in BPM.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, readable=True),
    default=None,
    metavar="YAML",
    help="Encoder settings file (velocity, octave, voicing, program, time_signature, ...).",
)
@click.option(
    "--voicing",
    type=click.Choice(sorted(VOICERS), case_sensitive=False),
    default=None,
    help="Voicing strategy. Overrides the config file. [default: close]",
)
@click.option(
    "--octave",
    type=click.IntRange(0, 8),
    default=None,
    help="Octave of chord roots (4 puts C at middle C). Overrides the config file.",
)
def midi(
    source: IO[str],
    tonic: str | None,
    input_format: str,
    output: str | None,
    bpm: int,
    config_path: str | None,
    voicing: str | None,
    octave: int | None,
) -> None:
    """
    Render a chord score as a Standard MIDI File.

    INPUT is a score file, or '-' for stdin.

    \b
    Examples:
      chordmidi midi song.txt
      chordmidi midi song.txt --bpm 120 --tonic G -o song.mid
      chordmidi midi song.sexp --config piano.yaml --voicing nearest
    """
    try:
        settings = load_settings(config_path) if config_path else EncoderSettings()
        settings = settings.merged(voicing=voicing.lower() if voicing else None, octave=octave)
    except (OSError, ValueError) as exc:
        _fail(f"Could not load settings: {exc}")

    resolved_output = output if output is not None else _default_midi_path(source)
    try:
        score = _load_score(source, input_format, tonic.strip() if tonic else None)
        click.echo(f"chordmidi v{__version__}", err=True)
        click.echo(f"  Entries : {len(score)}  |  Tempo: {bpm} BPM", err=True)
        MidiExporter(tempo=bpm, settings=settings).export(score, resolved_output)
    except ChordMidiError as exc:
        _fail(str(exc))
    except OSError as exc:
        _fail(f"Could not write MIDI file: {exc}")

    click.echo(f"Wrote '{resolved_output}'.", err=True)
