"""Parsing of ffmpeg's diagnostic output into progress percentages."""

import math
import re

# ffmpeg status line: "frame=  75 fps= 25 q=28.0 size= 256kB time=00:00:03.00 bitrate=..."
_TIME_RE = re.compile(r"(?<![a-z_])time=(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")

ENCODING_START = 50
ENCODING_CEILING = 95
ENCODING_SPAN = 45


def parse_elapsed_seconds(line: str) -> float | None:
    """Elapsed output time in seconds from one line of ffmpeg output, if present.

    When a line carries several ``time=`` markers the last one wins.
    """
    matches = _TIME_RE.findall(line)
    if not matches:
        return None
    hours, minutes, seconds = matches[-1]
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def encoding_percent(elapsed_s: float, asset_count: int, slide_duration: float) -> int:
    """Overall job progress while encoding: 50..95, never 100."""
    total = asset_count * slide_duration
    if total <= 0:
        return ENCODING_START
    pct = ENCODING_START + math.floor(elapsed_s / total * ENCODING_SPAN)
    return max(ENCODING_START, min(ENCODING_CEILING, pct))


def encoded_fraction(elapsed_s: float, asset_count: int, slide_duration: float) -> int:
    """Share of the reel already encoded, 0..100, for status messages."""
    total = asset_count * slide_duration
    if total <= 0:
        return 0
    return max(0, min(100, math.floor(elapsed_s / total * 100)))


def split_lines(buffer: str) -> tuple[list[str], str]:
    """Split on both \\r and \\n; returns complete lines and the unfinished rest.

    ffmpeg redraws its status line with carriage returns only.
    """
    parts = re.split(r"[\r\n]", buffer)
    return [p for p in parts[:-1] if p], parts[-1]
