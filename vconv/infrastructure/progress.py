"""Streaming parser for ffmpeg's stderr progress text.

ffmpeg prints a `Duration: HH:MM:SS.ss` line while opening the input and then
keeps rewriting a status line containing `time=HH:MM:SS.ss`. The parser is fed
one line at a time and applies two capture rules:

- duration: captured once; the first occurrence wins (later inputs/outputs
  print their own Duration lines, which are ignored);
- time: repeating; each match becomes a percentage of the captured duration.

Samples are clamped to [0, 100] and never go below the last emitted sample
(ffmpeg can report a lower position after an internal seek). Without a
duration no samples are produced at all.
"""

import re
from typing import Optional

DURATION_RE = re.compile(r"Duration:\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")
TIME_RE = re.compile(r"time=\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")


def parse_timestamp(hours: str, minutes: str, seconds: str) -> float:
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


class ProgressParser:
    """Turns ffmpeg diagnostic lines into monotonic progress samples."""

    def __init__(self):
        self.duration_seconds: Optional[float] = None
        self.last_sample: Optional[float] = None
        self.samples = 0

    @property
    def indeterminate(self) -> bool:
        return self.duration_seconds is None

    def feed(self, line: str) -> Optional[float]:
        """Consumes one line; returns a new sample or None."""
        if self.duration_seconds is None:
            match = DURATION_RE.search(line)
            if match:
                duration = parse_timestamp(*match.groups())
                if duration > 0:
                    self.duration_seconds = duration

        if self.duration_seconds is None:
            return None

        match = TIME_RE.search(line)
        if not match:
            return None

        position = parse_timestamp(*match.groups())
        sample = max(0.0, min(100.0, position * 100.0 / self.duration_seconds))
        if self.last_sample is not None and sample < self.last_sample:
            sample = self.last_sample

        self.last_sample = sample
        self.samples += 1
        return sample
