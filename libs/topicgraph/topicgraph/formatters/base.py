"""Caption formatter base."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from topicgraph.models.topic import TranscriptSegment


@dataclass(frozen=True)
class Cue:
    start: float
    end: float
    text: str


def clip_cues(
    segments: Sequence[TranscriptSegment],
    *,
    clip_start: float,
    clip_end: float,
) -> list[Cue]:
    """Cues for the segments overlapping [clip_start, clip_end], re-timed to the clip start."""
    cues: list[Cue] = []
    for seg in sorted(segments, key=lambda s: (s.start, s.end)):
        if seg.end <= clip_start or seg.start >= clip_end:
            continue
        text = seg.text.strip()
        if not text:
            continue
        start = max(seg.start, clip_start) - clip_start
        end = min(seg.end, clip_end) - clip_start
        if end <= start:
            continue
        cues.append(Cue(start=start, end=end, text=text))
    return cues


class CaptionFormatter(ABC):
    extension: str

    @abstractmethod
    def format(self, cues: Sequence[Cue]) -> str:
        ...


def split_timestamp(seconds: float) -> tuple[int, int, int, int]:
    if seconds < 0:
        seconds = 0.0
    total_ms = int(round(seconds * 1000))
    total_s, ms = divmod(total_ms, 1000)
    total_m, s = divmod(total_s, 60)
    h, m = divmod(total_m, 60)
    return h, m, s, ms
