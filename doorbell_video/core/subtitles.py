"""WebVTT timestamp track for timelapse videos."""

from collections.abc import Iterable, Iterator
from datetime import timedelta
from pathlib import Path

import doorbell_video.core.constants as c

WEBVTT_HEADER = "WEBVTT\n"


def format_timestamp(seconds: float) -> str:
    """Format a cue time as HH:MM:SS.mmm."""
    millis = round(seconds * 1000)
    hours, millis = divmod(millis, 3_600_000)
    minutes, millis = divmod(millis, 60_000)
    secs, millis = divmod(millis, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"


def caption_for(snapshot: Path) -> str:
    """
    Extract the wall clock time shown for a snapshot.

    snap-14.05.32.123Z.jpg -> 14:05:32
    """
    _, _, time_part = snapshot.stem.partition("-")
    parts = time_part.split(".")
    if len(parts) < 3:
        return time_part
    return ":".join(parts[:3])


def webvtt_cues(
    snapshots: Iterable[Path], framerate: float = c.FRAMERATE
) -> Iterator[str]:
    """
    Generate a WebVTT document, one cue per snapshot.

    Each snapshot becomes one frame of the timelapse, so each cue lasts
    exactly one frame and the cues are contiguous from zero.
    """
    frame = timedelta(seconds=1 / framerate)
    timer = timedelta(0)
    first = True

    for snapshot in snapshots:
        if first:
            yield WEBVTT_HEADER
            first = False
        start = format_timestamp(timer.total_seconds())
        timer += frame
        end = format_timestamp(timer.total_seconds())
        yield "\n".join(["", f"{start} --> {end}", caption_for(snapshot), ""])


def write_webvtt(
    snapshots: Iterable[Path], subfile: Path, framerate: float = c.FRAMERATE
) -> int:
    """Write the subtitle track for `snapshots` into `subfile`. Returns the cue count."""
    cues = 0
    with subfile.open("w", encoding="utf8") as vtt:
        for line in webvtt_cues(snapshots, framerate):
            if line != WEBVTT_HEADER:
                cues += 1
            vtt.write(line)
    return cues
