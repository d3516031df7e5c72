"""Assign diarization speakers to transcript segments."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from topicgraph.models.topic import SpeakerTurn, TranscriptSegment


def _overlap(a_start: float, a_end: float, b_start: float, b_end: float) -> float:
    return max(0.0, min(a_end, b_end) - max(a_start, b_start))


def assign_speakers(
    segments: Sequence[TranscriptSegment], turns: Sequence[SpeakerTurn]
) -> list[TranscriptSegment]:
    """Label each segment with the speaker whose turns overlap it the most.

    Ties go to the speaker seen first. Segments with no overlapping turn keep
    their existing speaker.
    """
    out: list[TranscriptSegment] = []
    for seg in segments:
        totals: dict[str, float] = {}
        for turn in turns:
            ov = _overlap(seg.start, seg.end, turn.start, turn.end)
            if ov > 0:
                totals[turn.speaker] = totals.get(turn.speaker, 0.0) + ov
        if totals:
            best = max(totals, key=lambda spk: totals[spk])
            out.append(replace(seg, speaker=best))
        else:
            out.append(seg)
    return out


def count_speakers(segments: Sequence[TranscriptSegment]) -> int:
    return len({s.speaker for s in segments if s.speaker})
