"""ASR provider base class."""

from abc import ABC, abstractmethod

from topicgraph.models.topic import SpeakerTurn, TranscriptSegment


class ASRProvider(ABC):
    """Speech-to-text port."""

    provider: str = "asr"
    supports_diarization: bool = False

    @abstractmethod
    async def transcribe(
        self,
        audio_path: str,
        language: str | None = None,
        *,
        word_timestamps: bool = True,
    ) -> list[TranscriptSegment]:
        """Transcribe an audio file into timed segments (ordered by start)."""

    async def diarize(self, audio_path: str) -> list[SpeakerTurn]:
        """Speaker turns; only called when `supports_diarization` is true."""
        raise NotImplementedError(f"{self.provider} does not support diarization")

    async def close(self) -> None:  # pragma: no cover
        return None
