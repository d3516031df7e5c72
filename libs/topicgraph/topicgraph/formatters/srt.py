"""SRT caption formatter."""

from __future__ import annotations

from collections.abc import Sequence

from topicgraph.formatters.base import CaptionFormatter, Cue, split_timestamp


def format_srt_timestamp(seconds: float) -> str:
    h, m, s, ms = split_timestamp(seconds)
    return f"{h:02d}:{m:02d}:{s:02d},{ms:03d}"


class SRTFormatter(CaptionFormatter):
    extension = "srt"

    def format(self, cues: Sequence[Cue]) -> str:
        lines: list[str] = []
        for index, cue in enumerate(cues, start=1):
            lines.append(str(index))
            lines.append(f"{format_srt_timestamp(cue.start)} --> {format_srt_timestamp(cue.end)}")
            lines.append(cue.text)
            lines.append("")
        return "\n".join(lines).rstrip() + "\n"
