"""MidiExporter: Renders a Score into timed note events and a Standard MIDI File."""

import io
import logging
from dataclasses import dataclass
from enum import Enum

from midiutil import MIDIFile

from chordmidi.config import DEFAULT_BPM, EncoderSettings
from chordmidi.errors import EncodingOverflow
from chordmidi.pitch import SEMITONES_PER_OCTAVE
from chordmidi.score import Score
from chordmidi.voicing_strategy import VoicedChord, get_voicer

logger = logging.getLogger(__name__)

# In midiutil Format 1 MIDI, the conductor track (tempo/time signature) is
# added in front of the data tracks; the indices below are data-track
# indices and midiutil shifts them past the conductor track.
TRACK_CHORDS = 0  # Chord tones
TRACK_BASS = 1    # Slash-bass notes

TICKS_PER_QUARTER = 960  # midiutil's default time division

MIDI_NOTE_MIN = 0
MIDI_NOTE_MAX = 127
_MAX_TEMPO_MICROSECONDS = 0xFFFFFF  # the tempo meta-event holds 3 bytes


class EventKind(str, Enum):
    NOTE_ON = "note_on"
    NOTE_OFF = "note_off"


@dataclass(frozen=True)
class Event:
    """
    A note event of the rendered track.

    Attributes:
        kind:     note-on or note-off.
        pitch:    MIDI note number (0-127).
        velocity: Note-on velocity; 0 for note-off.
        delta:    Ticks since the previous event.
        channel:  MIDI channel.
    """

    kind: EventKind
    pitch: int
    velocity: int
    delta: int
    channel: int = 0


@dataclass(frozen=True)
class TimedChord:
    """A voiced chord with its start and length in score beats."""

    start: float
    duration: float
    voiced: VoicedChord

    @property
    def end(self) -> float:
        return self.start + self.duration


def fit_note_number(note: int) -> int:
    """
    Octave-shift *note* into the MIDI range 0-127.

    Raises:
        EncodingOverflow: If no octave of the pitch is representable.
    """
    shifted = note
    while shifted > MIDI_NOTE_MAX:
        shifted -= SEMITONES_PER_OCTAVE
    while shifted < MIDI_NOTE_MIN:
        shifted += SEMITONES_PER_OCTAVE
    if not MIDI_NOTE_MIN <= shifted <= MIDI_NOTE_MAX:
        raise EncodingOverflow(f"note {note} has no octave within {MIDI_NOTE_MIN}-{MIDI_NOTE_MAX}")
    if shifted != note:
        logger.warning("note %d out of MIDI range, shifted to %d", note, shifted)
    return shifted


def tempo_microseconds(bpm: float) -> int:
    """
    Microseconds per quarter note for *bpm*, as stored in the tempo meta-event.

    Raises:
        EncodingOverflow: If the tempo does not fit the meta-event.
    """
    if bpm <= 0:
        raise EncodingOverflow(f"tempo must be positive, got {bpm}")
    micros = int(60_000_000 / bpm)
    if not 1 <= micros <= _MAX_TEMPO_MICROSECONDS:
        raise EncodingOverflow(f"tempo {bpm} BPM cannot be represented in a MIDI file")
    return micros


class MidiExporter:
    """
    Writes a Standard MIDI File (format 1) from a parsed Score.

    Track layout
    ------------
    Conductor track: tempo and time signature only, no notes.

    Track "Chords": every chord tone, voiced by the configured
        VoicingStrategy, on ``settings.channel``.

    Track "Bass": slash-bass notes below the chord, on the next channel.
        Empty when the score has no slash chords.

    Timing
    ------
    Each score beat lasts ``settings.beat_duration`` quarter notes. A chord
    sounds from its entry's position for the entry's duration; sustains ('=')
    directly after a chord lengthen it and rests only advance time.
    """

    def __init__(self, tempo: float = DEFAULT_BPM, settings: EncoderSettings | None = None) -> None:
        """
        Args:
            tempo:    Playback tempo in beats per minute.
            settings: Velocity, octave, voicing and track parameters.
        """
        self.tempo = tempo
        self.settings = settings or EncoderSettings()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _quarters(self, beats: float) -> float:
        """Convert score beats to quarter notes."""
        return beats * self.settings.beat_duration

    def _ticks(self, beats: float) -> int:
        return round(self._quarters(beats) * TICKS_PER_QUARTER)

    def _fit(self, voiced: VoicedChord) -> VoicedChord:
        return VoicedChord(
            chord_notes=tuple(fit_note_number(n) for n in voiced.chord_notes),
            bass_notes=tuple(fit_note_number(n) for n in voiced.bass_notes),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def timeline(self, score: Score) -> list[TimedChord]:
        """
        Voice every chord of *score* and fold sustains into their chord.

        Raises:
            UnsupportedKey:   If a degree chord has no key in effect.
            EncodingOverflow: If a note cannot be placed in 0-127.
        """
        voicer = get_voicer(self.settings.voicing, self.settings.octave)
        timed: list[TimedChord] = []
        previous: VoicedChord | None = None
        sounding = False

        for entry in score:
            if entry.tie:
                if sounding:
                    last = timed[-1]
                    timed[-1] = TimedChord(last.start, last.duration + entry.duration, last.voiced)
                continue
            if entry.chord is None:
                sounding = False
                continue

            voiced = self._fit(voicer.voice(entry.chord, score.key_of(entry), previous))
            timed.append(TimedChord(entry.position.beat, entry.duration, voiced))
            previous = voiced
            sounding = True

        logger.debug("voiced %d chord(s) with %s voicing", len(timed), self.settings.voicing)
        return timed

    def render_events(self, score: Score) -> list[Event]:
        """
        Render *score* as a single time-ordered list of note events.

        At equal times note-offs precede note-ons, and the notes of one
        chord are consecutive with delta 0 after the first.
        """
        settings = self.settings
        raw: list[tuple[int, int, int, EventKind, int, int, int]] = []
        seq = 0
        for timed in self.timeline(score):
            start, end = self._ticks(timed.start), self._ticks(timed.end)
            parts = (
                (timed.voiced.bass_notes, settings.bass_velocity, settings.channel + 1),
                (timed.voiced.chord_notes, settings.velocity, settings.channel),
            )
            for notes, velocity, channel in parts:
                for note in notes:
                    raw.append((start, 1, seq, EventKind.NOTE_ON, note, velocity, channel))
                    raw.append((end, 0, seq, EventKind.NOTE_OFF, note, 0, channel))
                    seq += 1
        raw.sort(key=lambda item: (item[0], item[1], item[2]))

        events: list[Event] = []
        now = 0
        for tick, _order, _seq, kind, note, velocity, channel in raw:
            events.append(Event(kind, note, velocity, tick - now, channel))
            now = tick
        return events

    def encode(self, score: Score) -> bytes:
        """
        Render *score* to Standard MIDI File bytes (format 1).

        Raises:
            EncodingOverflow: If the tempo or a note cannot be represented.
            UnsupportedKey:   If a degree chord has no key in effect.
        """
        tempo_microseconds(self.tempo)
        settings = self.settings
        timeline = self.timeline(score)

        midi = MIDIFile(
            numTracks=2,
            removeDuplicates=False,
            deinterleave=False,
            adjust_origin=False,
            file_format=1,
            ticks_per_quarternote=TICKS_PER_QUARTER,
        )

        # --- Conductor track: tempo and time signature ---
        numerator, denominator = settings.time_signature
        midi.addTempo(TRACK_CHORDS, 0, self.tempo)
        midi.addTimeSignature(TRACK_CHORDS, 0, numerator, denominator.bit_length() - 1, 24)

        midi.addTrackName(TRACK_CHORDS, 0, "Chords")
        midi.addTrackName(TRACK_BASS, 0, "Bass")
        midi.addProgramChange(TRACK_CHORDS, settings.channel, 0, settings.program)
        midi.addProgramChange(TRACK_BASS, settings.channel + 1, 0, settings.program)

        for timed in timeline:
            start = self._quarters(timed.start)
            duration = self._quarters(timed.duration)

            for pitch in timed.voiced.bass_notes:
                midi.addNote(
                    track=TRACK_BASS,
                    channel=settings.channel + 1,
                    pitch=pitch,
                    time=start,
                    duration=duration,
                    volume=settings.bass_velocity,
                )

            for pitch in timed.voiced.chord_notes:
                midi.addNote(
                    track=TRACK_CHORDS,
                    channel=settings.channel,
                    pitch=pitch,
                    time=start,
                    duration=duration,
                    volume=settings.velocity,
                )

        buffer = io.BytesIO()
        midi.writeFile(buffer)
        data = buffer.getvalue()
        logger.debug("encoded %d chord(s) into %d bytes at %s BPM", len(timeline), len(data), self.tempo)
        return data

    def export(self, score: Score, output_path: str) -> None:
        """
        Write *score* as a MIDI file.

        Raises:
            OSError: If the output file cannot be opened for writing.
        """
        data = self.encode(score)
        with open(output_path, "wb") as f:
            f.write(data)


def render_events(score: Score, settings: EncoderSettings | None = None) -> list[Event]:
    """Time-ordered note events of *score* (see ``MidiExporter.render_events``)."""
    return MidiExporter(settings=settings).render_events(score)


def encode(score: Score, bpm: float, settings: EncoderSettings | None = None) -> bytes:
    """Standard MIDI File bytes of *score* at *bpm* beats per minute."""
    return MidiExporter(tempo=bpm, settings=settings).encode(score)
