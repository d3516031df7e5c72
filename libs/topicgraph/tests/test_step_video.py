from __future__ import annotations

import pytest

from conftest import FakeMediaProvider
from topicgraph.config import VideoStepConfig
from topicgraph.exceptions import StepExecutionError
from topicgraph.models.manifest import ArtifactKind
from topicgraph.steps.base import RetryPolicy
from topicgraph.steps.video import VideoStep, scenes_from_cuts

ONCE = RetryPolicy(max_attempts=1, delay_s=0.0)


def _config(**overrides) -> VideoStepConfig:
    return VideoStepConfig(_env_file=None, **overrides)


@pytest.mark.asyncio
async def test_video_step_writes_original_normalized_and_audio(make_ctx, storage, fake_media) -> None:
    step = VideoStep(_config(), fake_media, retry=ONCE)
    ctx = make_ctx(source_url="/videos/lecture.mp4", source_type="file")

    assert step.validate(ctx).valid
    result = await step.execute_with_retry(ctx)

    assert result.artifacts == {
        ArtifactKind.ORIGINAL_VIDEO: "videos/vid-1/raw/original.mp4",
        ArtifactKind.NORMALIZED_VIDEO: "videos/vid-1/processed/normalized.mp4",
        ArtifactKind.AUDIO_WAV: "videos/vid-1/audio/audio.wav",
    }
    assert result.metrics == {"duration_s": 120.0}
    assert await storage.read("videos/vid-1/audio/audio.wav") == b"RIFF"
    assert ("download", "/videos/lecture.mp4", "file") in fake_media.calls
    assert ("normalize", 720, "libx264", "aac") in fake_media.calls
    assert ("extract_audio", 16000) in fake_media.calls
    assert not ctx.step_work_path("video").exists()


@pytest.mark.asyncio
async def test_scene_detection_writes_scene_index(make_ctx, storage) -> None:
    media = FakeMediaProvider(duration_s=120.0, scene_cuts=[30.0, 200.0])
    step = VideoStep(_config(enable_scene_detection=True, scene_threshold=0.4), media, retry=ONCE)
    result = await step.execute_with_retry(make_ctx(source_url="/v.mp4", source_type="file"))

    assert result.metrics["scene_count"] == 2
    data = await storage.read_json(result.artifacts[ArtifactKind.SCENES])
    assert data["threshold"] == 0.4
    assert [(s["start"], s["end"]) for s in data["scenes"]] == [(0.0, 30.0), (30.0, 120.0)]
    assert ("detect_scenes", 0.4) in media.calls


@pytest.mark.asyncio
async def test_zero_duration_is_a_media_failure(make_ctx) -> None:
    step = VideoStep(_config(), FakeMediaProvider(duration_s=0.0), retry=ONCE)
    with pytest.raises(StepExecutionError, match="no duration"):
        await step.execute_with_retry(make_ctx(source_url="/v.mp4", source_type="file"))


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({"source_type": "file"}, "Missing payload: source_url"),
        ({"source_url": "x", "source_type": "torrent"}, "Unsupported source_type: torrent"),
        ({"source_url": "not a url", "source_type": "direct"}, "Malformed source_url: not a url"),
        (
            {"source_url": "https://vimeo.com/1", "source_type": "youtube"},
            "source_url host vimeo.com does not match source_type youtube",
        ),
    ],
)
def test_payload_validation(make_ctx, fake_media, payload, message) -> None:
    result = VideoStep(_config(), fake_media).validate(make_ctx(**payload))
    assert not result.valid
    assert message in result.errors


def test_youtube_short_host_is_accepted(make_ctx, fake_media) -> None:
    ctx = make_ctx(source_url="https://youtu.be/abc123", source_type="youtube")
    assert VideoStep(_config(), fake_media).validate(ctx).valid


def test_scenes_cover_video_without_gaps() -> None:
    scenes = scenes_from_cuts([0.0, 10.0, 10.0, 25.0], 40.0)
    assert [(s["start"], s["end"]) for s in scenes] == [(0.0, 10.0), (10.0, 25.0), (25.0, 40.0)]
    assert [s["index"] for s in scenes] == [0, 1, 2]
