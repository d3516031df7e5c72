"""Media (download/transcode) provider base class."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

SOURCE_TYPES = ("youtube", "vimeo", "direct", "file")


class MediaProvider(ABC):
    """Video codec port. All paths are local filesystem paths."""

    @abstractmethod
    async def download(self, source_url: str, source_type: str, dest: Path) -> Path:
        """Fetch the source video into `dest` (overwrites)."""

    @abstractmethod
    async def normalize(
        self,
        src: Path,
        dest: Path,
        *,
        max_height: int,
        video_codec: str,
        audio_codec: str,
    ) -> Path:
        ...

    @abstractmethod
    async def extract_audio(self, src: Path, dest: Path, *, sample_rate: int) -> Path:
        """Mono PCM WAV at `sample_rate`."""

    @abstractmethod
    async def probe_duration(self, path: Path) -> float:
        ...

    @abstractmethod
    async def detect_scenes(self, path: Path, *, threshold: float) -> list[float]:
        """Timestamps (seconds) of detected scene cuts."""

    @abstractmethod
    async def cut_clip(self, src: Path, dest: Path, *, start: float, end: float) -> Path:
        ...

    @abstractmethod
    async def thumbnail(self, src: Path, dest: Path, *, at_s: float, width: int, height: int) -> Path:
        ...
