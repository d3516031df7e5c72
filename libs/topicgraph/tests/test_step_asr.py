from __future__ import annotations

import pytest

from conftest import FakeASRProvider, lecture_segments
from topicgraph.config import ASRStepConfig
from topicgraph.exceptions import StepExecutionError
from topicgraph.models.manifest import ArtifactKind, ArtifactManifest
from topicgraph.models.topic import SpeakerTurn, WordTiming
from topicgraph.steps.asr import ASRStep
from topicgraph.steps.base import RetryPolicy

ONCE = RetryPolicy(max_attempts=1, delay_s=0.0)
AUDIO = "videos/vid-1/audio/audio.wav"


async def _manifest_with_audio(storage) -> ArtifactManifest:
    await storage.write(AUDIO, b"RIFF")
    return ArtifactManifest.create("vid-1", "job-1").with_paths({ArtifactKind.AUDIO_WAV: AUDIO})


@pytest.mark.asyncio
async def test_asr_step_writes_transcript_and_word_alignment(make_ctx, storage) -> None:
    segments = lecture_segments()
    segments[0].words = [WordTiming("neural", 0.0, 0.5, 0.9)]
    step = ASRStep(ASRStepConfig(_env_file=None), FakeASRProvider(segments), retry=ONCE)

    result = await step.execute_with_retry(make_ctx(await _manifest_with_audio(storage)))

    transcript = await storage.read_json(result.artifacts[ArtifactKind.TRANSCRIPT])
    assert len(transcript) == 10
    assert transcript[0] == {"id": "seg-00000", "start": 0.0, "end": 11.0, "text": segments[0].text}
    alignment = await storage.read_json(result.artifacts[ArtifactKind.WORD_ALIGNMENT])
    assert alignment == [
        {"segment_id": "seg-00000", "words": [{"word": "neural", "start": 0.0, "end": 0.5, "probability": 0.9}]}
    ]
    assert result.metrics == {"transcript_segments": 10, "speaker_count": 0}
    assert ArtifactKind.DIARIZATION not in result.artifacts


@pytest.mark.asyncio
async def test_diarization_labels_segments_by_overlap(make_ctx, storage) -> None:
    turns = [SpeakerTurn("alice", 0.0, 56.0), SpeakerTurn("bob", 56.0, 120.0)]
    step = ASRStep(
        ASRStepConfig(_env_file=None, enable_diarization=True),
        FakeASRProvider(lecture_segments(), turns=turns),
        retry=ONCE,
    )
    result = await step.execute_with_retry(make_ctx(await _manifest_with_audio(storage)))

    transcript = await storage.read_json(result.artifacts[ArtifactKind.TRANSCRIPT])
    assert [s["speaker"] for s in transcript] == ["alice"] * 5 + ["bob"] * 5
    assert result.metrics["speaker_count"] == 2
    assert await storage.read_json(result.artifacts[ArtifactKind.DIARIZATION]) == [
        {"speaker": "alice", "start": 0.0, "end": 56.0},
        {"speaker": "bob", "start": 56.0, "end": 120.0},
    ]


@pytest.mark.asyncio
async def test_diarization_unsupported_is_skipped(make_ctx, storage) -> None:
    step = ASRStep(
        ASRStepConfig(_env_file=None, enable_diarization=True),
        FakeASRProvider(lecture_segments()),
        retry=ONCE,
    )
    result = await step.execute_with_retry(make_ctx(await _manifest_with_audio(storage)))
    assert ArtifactKind.DIARIZATION not in result.artifacts


@pytest.mark.asyncio
async def test_empty_transcription_fails(make_ctx, storage) -> None:
    step = ASRStep(ASRStepConfig(_env_file=None), FakeASRProvider([]), retry=ONCE)
    with pytest.raises(StepExecutionError, match="no segments"):
        await step.execute_with_retry(make_ctx(await _manifest_with_audio(storage)))


def test_asr_step_requires_audio(make_ctx) -> None:
    result = ASRStep(ASRStepConfig(_env_file=None), FakeASRProvider([])).validate(make_ctx())
    assert result.errors == ("Missing required input: audio_wav",)
