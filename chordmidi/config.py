"""Encoder settings and their YAML/JSON file form."""

from __future__ import annotations

import json
import math
import logging
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from chordmidi.voicing_strategy import DEFAULT_OCTAVE, VOICERS

logger = logging.getLogger(__name__)

DEFAULT_BPM = 180


@dataclass(frozen=True)
class EncoderSettings:
    """
    Rendering parameters for the MIDI encoder.

    Attributes:
        velocity:       Note-on velocity of chord tones (0-127).
        bass_velocity:  Slightly softer velocity for slash-bass notes.
        octave:         Scientific octave of chord roots (4 → C4 = MIDI 60).
        beat_duration:  Length in quarter notes of one score beat.
        program:        General MIDI program number (0 = Acoustic Grand Piano).
        channel:        MIDI channel for chord tones; bass uses the next one.
        voicing:        Voicing strategy name ("close" or "nearest").
        time_signature: (numerator, denominator) written to the conductor track.
    """

    velocity: int = 80
    bass_velocity: int = 68
    octave: int = DEFAULT_OCTAVE
    beat_duration: float = 1.0
    program: int = 0
    channel: int = 0
    voicing: str = "close"
    time_signature: tuple[int, int] = (4, 4)

    def __post_init__(self) -> None:
        for name in ("velocity", "bass_velocity", "program"):
            value = getattr(self, name)
            if not 0 <= value <= 127:
                raise ValueError(f"{name} must be within 0-127, got {value}")
        if not 0 <= self.channel <= 14:
            raise ValueError(f"channel must be within 0-14, got {self.channel}")
        if not math.isfinite(self.beat_duration) or self.beat_duration <= 0:
            raise ValueError(f"beat_duration must be finite and positive, got {self.beat_duration}")
        if self.voicing not in VOICERS:
            supported = ", ".join(sorted(VOICERS))
            raise ValueError(f"Unsupported voicing '{self.voicing}'. Use one of: {supported}.")
        numerator, denominator = self.time_signature
        if numerator < 1 or denominator < 1 or denominator & (denominator - 1):
            raise ValueError(f"invalid time signature {numerator}/{denominator}")

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> EncoderSettings:
        """
        Build settings from a plain mapping, rejecting unknown keys.

        ``time_signature`` may be given as "3/4" or as a two-item list.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown setting(s): {', '.join(unknown)}")
        values = dict(data)
        ts = values.get("time_signature")
        if isinstance(ts, str):
            num, _, den = ts.partition("/")
            values["time_signature"] = (int(num), int(den))
        elif ts is not None:
            values["time_signature"] = tuple(int(v) for v in ts)
        return cls(**values)

    def merged(self, **overrides: Any) -> EncoderSettings:
        """Copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_settings(path: str | Path) -> EncoderSettings:
    """
    Load EncoderSettings from a YAML (or .json) file.

    An empty file yields the defaults.

    Raises:
        OSError:    If the file cannot be read.
        ValueError: If the content is not a mapping or holds invalid values.
    """
    p = Path(path)
    with open(p, "r", encoding="utf-8") as fh:
        if p.suffix.lower() == ".json":
            data = json.load(fh)
        else:
            data = yaml.safe_load(fh)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"{p}: expected a mapping of settings, got {type(data).__name__}")
    logger.debug("loaded encoder settings from %s: %s", p, data)
    return EncoderSettings.from_mapping(data)
