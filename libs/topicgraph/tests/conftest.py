from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from topicgraph.config import Settings
from topicgraph.models.manifest import ArtifactManifest
from topicgraph.models.topic import SpeakerTurn, TranscriptSegment
from topicgraph.pipeline.context import StepContext
from topicgraph.providers.asr.base import ASRProvider
from topicgraph.providers.embedding.base import EmbeddingProvider
from topicgraph.providers.embedding.hashing import HashingEmbeddingProvider
from topicgraph.providers.media.base import MediaProvider
from topicgraph.storage.memory import InMemoryStorage


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        data_dir=str(tmp_path / "data"),
        work_dir=str(tmp_path / "work"),
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture()
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture()
def make_ctx(storage, tmp_path) -> Callable[..., StepContext]:
    def _make(manifest: ArtifactManifest | None = None, **payload) -> StepContext:
        return StepContext(
            manifest=manifest or ArtifactManifest.create("vid-1", "job-1"),
            storage=storage,
            work_dir=tmp_path / "work",
            payload=dict(payload),
        )

    return _make


class FakeMediaProvider(MediaProvider):
    """Writes placeholder bytes instead of running ffmpeg; records every call."""

    def __init__(self, duration_s: float = 120.0, scene_cuts: list[float] | None = None) -> None:
        self.duration_s = duration_s
        self.scene_cuts = list(scene_cuts or [])
        self.calls: list[tuple] = []

    def _touch(self, dest: Path, data: bytes) -> Path:
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(data)
        return dest

    async def download(self, source_url: str, source_type: str, dest: Path) -> Path:
        self.calls.append(("download", source_url, source_type))
        return self._touch(dest, b"original")

    async def normalize(self, src, dest, *, max_height, video_codec, audio_codec) -> Path:
        self.calls.append(("normalize", max_height, video_codec, audio_codec))
        return self._touch(dest, b"normalized")

    async def extract_audio(self, src, dest, *, sample_rate) -> Path:
        self.calls.append(("extract_audio", sample_rate))
        return self._touch(dest, b"RIFF")

    async def probe_duration(self, path) -> float:
        return self.duration_s

    async def detect_scenes(self, path, *, threshold) -> list[float]:
        self.calls.append(("detect_scenes", threshold))
        return list(self.scene_cuts)

    async def cut_clip(self, src, dest, *, start, end) -> Path:
        self.calls.append(("cut_clip", start, end))
        return self._touch(dest, f"clip {start}-{end}".encode())

    async def thumbnail(self, src, dest, *, at_s, width, height) -> Path:
        self.calls.append(("thumbnail", at_s, width, height))
        return self._touch(dest, b"jpg")


class FakeASRProvider(ASRProvider):
    provider = "fake"

    def __init__(
        self,
        segments: list[TranscriptSegment],
        turns: list[SpeakerTurn] | None = None,
    ) -> None:
        self.segments = segments
        self.turns = turns
        self.supports_diarization = turns is not None

    async def transcribe(self, audio_path, language=None, *, word_timestamps=True):
        return [
            TranscriptSegment(id=s.id, start=s.start, end=s.end, text=s.text, words=list(s.words))
            for s in self.segments
        ]

    async def diarize(self, audio_path):
        return list(self.turns or [])


class MappedEmbedder(EmbeddingProvider):
    """Returns fixed vectors for known texts and hashes everything else."""

    provider = "fake"
    model = "mapped"

    def __init__(self, mapping: dict[str, list[float]] | None = None, dimension: int = 64) -> None:
        self.mapping = dict(mapping or {})
        self.fallback = HashingEmbeddingProvider(dimension=dimension)
        self.calls = 0

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls += 1
        return [self.mapping.get(t) or self.fallback.embed_one(t) for t in texts]


@pytest.fixture()
def fake_media() -> FakeMediaProvider:
    return FakeMediaProvider()


def lecture_segments() -> list[TranscriptSegment]:
    """10 segments over 0-120s, with a 3s pause after the fifth."""
    texts = [
        "neural networks learn layered representations from training data",
        "training neural networks uses gradient descent on the loss",
        "gradient descent updates network weights using backpropagation",
        "backpropagation computes gradients through every network layer",
        "deeper networks learn richer representations with more training",
        "neural networks learn layered representations from training data",
        "training neural networks uses gradient descent on the loss",
        "gradient descent updates network weights using backpropagation",
        "backpropagation computes gradients through every network layer",
        "deeper networks learn richer representations with more training",
    ]
    bounds = [
        (0.0, 11.0), (11.0, 22.0), (22.0, 33.0), (33.0, 44.0), (44.0, 55.0),
        (58.0, 70.0), (70.0, 82.0), (82.0, 94.0), (94.0, 106.0), (106.0, 120.0),
    ]
    return [
        TranscriptSegment(id=f"seg-{i:05d}", start=a, end=b, text=t)
        for i, ((a, b), t) in enumerate(zip(bounds, texts))
    ]
