"""Video step: download, normalize, extract audio, optional scene detection."""

from __future__ import annotations

from pathlib import Path
from urllib.parse import urlparse

from topicgraph.config import VideoStepConfig
from topicgraph.error_codes import ErrorCode
from topicgraph.exceptions import StepExecutionError
from topicgraph.models.manifest import ArtifactKind, StepName
from topicgraph.pipeline.context import StepContext
from topicgraph.providers.media.base import SOURCE_TYPES, MediaProvider
from topicgraph.steps.base import PipelineStep, RetryPolicy, StepResult
from topicgraph.storage.port import artifact_path

_URL_HOSTS = {
    "youtube": ("youtube.com", "youtu.be"),
    "vimeo": ("vimeo.com",),
}


def scenes_from_cuts(cuts: list[float], duration_s: float) -> list[dict[str, float]]:
    """Turn scene-cut timestamps into contiguous `[start, end)` scenes covering the video."""
    bounds = [0.0, *sorted({float(c) for c in cuts if 0.0 < c < duration_s}), duration_s]
    return [
        {"index": i, "start": round(a, 3), "end": round(b, 3)}
        for i, (a, b) in enumerate(zip(bounds, bounds[1:]))
    ]


class VideoStep(PipelineStep):
    name = StepName.VIDEO.value
    description = "Download, normalize and extract audio from the source video"
    tags = ("video", "ingest", "ffmpeg")
    produced_outputs = (
        ArtifactKind.ORIGINAL_VIDEO,
        ArtifactKind.NORMALIZED_VIDEO,
        ArtifactKind.AUDIO_WAV,
        ArtifactKind.SCENES,
    )

    def __init__(
        self,
        config: VideoStepConfig,
        media: MediaProvider,
        *,
        retry: RetryPolicy | None = None,
    ) -> None:
        super().__init__(retry=retry)
        self.config = config
        self.media = media

    def context_errors(self, ctx: StepContext) -> list[str]:
        source_url = str(ctx.payload.get("source_url") or "").strip()
        source_type = str(ctx.payload.get("source_type") or "").strip()
        errors: list[str] = []
        if not source_url:
            errors.append("Missing payload: source_url")
        if source_type not in SOURCE_TYPES:
            errors.append(f"Unsupported source_type: {source_type or '<empty>'}")
            return errors
        if not source_url or source_type == "file":
            return errors
        parsed = urlparse(source_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append(f"Malformed source_url: {source_url}")
        elif source_type in _URL_HOSTS:
            host = parsed.netloc.lower().split(":")[0]
            if not any(host == h or host.endswith("." + h) for h in _URL_HOSTS[source_type]):
                errors.append(f"source_url host {host} does not match source_type {source_type}")
        return errors

    async def cleanup(self, ctx: StepContext) -> None:
        await self.remove_work_dir(ctx)

    async def execute(self, ctx: StepContext) -> StepResult:
        source_url = str(ctx.payload["source_url"]).strip()
        source_type = str(ctx.payload["source_type"]).strip()
        work = ctx.step_work_dir(self.name)
        vid = ctx.video_id
        cfg = self.config
        log = ctx.logger

        log.info("video download start", source_type=source_type)
        await ctx.report(5, "Downloading video")
        suffix = Path(urlparse(source_url).path).suffix if source_type != "file" else Path(source_url).suffix
        original_local = work / f"original{suffix or '.mp4'}"
        await self.media.download(source_url, source_type, original_local)
        original_path = artifact_path(vid, "raw", original_local.name)
        await ctx.storage.upload_from(original_path, original_local)

        ctx.check_aborted()
        await ctx.report(40, "Normalizing video")
        normalized_local = work / f"normalized.{cfg.output_format}"
        await self.media.normalize(
            original_local,
            normalized_local,
            max_height=cfg.max_height,
            video_codec=cfg.video_codec,
            audio_codec=cfg.audio_codec,
        )
        normalized_path = artifact_path(vid, "processed", normalized_local.name)
        await ctx.storage.upload_from(normalized_path, normalized_local)

        ctx.check_aborted()
        await ctx.report(70, "Extracting audio")
        audio_local = work / "audio.wav"
        await self.media.extract_audio(normalized_local, audio_local, sample_rate=cfg.audio_sample_rate)
        audio_path = artifact_path(vid, "audio", "audio.wav")
        await ctx.storage.upload_from(audio_path, audio_local)

        duration_s = await self.media.probe_duration(normalized_local)
        if duration_s <= 0:
            raise StepExecutionError(
                self.name, "normalized video has no duration", video_id=vid, error_code=ErrorCode.MEDIA_FAILED
            )

        artifacts: dict[ArtifactKind, str] = {
            ArtifactKind.ORIGINAL_VIDEO: original_path,
            ArtifactKind.NORMALIZED_VIDEO: normalized_path,
            ArtifactKind.AUDIO_WAV: audio_path,
        }
        metrics: dict[str, float | int] = {"duration_s": round(float(duration_s), 3)}

        if cfg.enable_scene_detection:
            ctx.check_aborted()
            await ctx.report(85, "Detecting scenes")
            cuts = await self.media.detect_scenes(normalized_local, threshold=cfg.scene_threshold)
            scenes = scenes_from_cuts(cuts, float(duration_s))
            scenes_path = artifact_path(vid, "scenes", "scenes.json")
            await ctx.storage.write_json(scenes_path, {"threshold": cfg.scene_threshold, "scenes": scenes})
            artifacts[ArtifactKind.SCENES] = scenes_path
            metrics["scene_count"] = len(scenes)

        log.info("video step done", duration_s=metrics["duration_s"], scenes=metrics.get("scene_count"))
        return self.result(artifacts, metrics)
