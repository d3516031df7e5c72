"""Caption formatters."""

from topicgraph.exceptions import ConfigurationError
from topicgraph.formatters.base import CaptionFormatter, Cue, clip_cues
from topicgraph.formatters.srt import SRTFormatter
from topicgraph.formatters.vtt import VTTFormatter


def get_caption_formatter(fmt: str) -> CaptionFormatter:
    match str(fmt or "").strip().lower():
        case "srt":
            return SRTFormatter()
        case "vtt":
            return VTTFormatter()
        case other:
            raise ConfigurationError(f"Unknown caption format: {other}")


__all__ = [
    "CaptionFormatter",
    "Cue",
    "SRTFormatter",
    "VTTFormatter",
    "clip_cues",
    "get_caption_formatter",
]
