"""ASR providers."""

from topicgraph.providers.asr.base import ASRProvider
from topicgraph.providers.asr.diarization import assign_speakers, count_speakers

__all__ = ["ASRProvider", "assign_speakers", "count_speakers"]
