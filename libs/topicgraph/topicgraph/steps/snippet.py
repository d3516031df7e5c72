"""Snippet step: one clip (plus thumbnail and captions) per topic."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from topicgraph.config import SnippetStepConfig
from topicgraph.formatters import clip_cues, get_caption_formatter
from topicgraph.models.manifest import ArtifactKind, StepName
from topicgraph.models.serializers import deserialize_topics, deserialize_transcript
from topicgraph.models.topic import Topic
from topicgraph.pipeline.context import StepContext
from topicgraph.providers.media.base import MediaProvider
from topicgraph.steps.base import PipelineStep, RetryPolicy, StepResult
from topicgraph.storage.port import version_artifact_path
from topicgraph.utils.text import sanitize_filename


@dataclass(frozen=True)
class ClipWindow:
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


def clip_window(
    topic: Topic,
    *,
    padding_s: float,
    min_duration_s: float,
    max_duration_s: float,
    video_duration_s: float | None = None,
) -> ClipWindow | None:
    """Padded topic span clamped to [min, max] duration and to the video length."""
    start = max(0.0, topic.start - padding_s)
    end = topic.end + padding_s
    if end - start < min_duration_s:
        end = start + min_duration_s
    if end - start > max_duration_s:
        end = start + max_duration_s
    if video_duration_s:
        end = min(end, video_duration_s)
    if end <= start:
        return None
    return ClipWindow(start=round(start, 3), end=round(end, 3))


class SnippetStep(PipelineStep):
    name = StepName.SNIPPET.value
    description = "Cut a video snippet, thumbnail and captions for each topic"
    tags = ("snippets", "video", "thumbnails", "captions")
    required_inputs = (ArtifactKind.NORMALIZED_VIDEO, ArtifactKind.TOPICS, ArtifactKind.TRANSCRIPT)
    produced_outputs = (ArtifactKind.SNIPPETS, ArtifactKind.THUMBNAILS, ArtifactKind.CAPTIONS)

    def __init__(
        self,
        config: SnippetStepConfig,
        media: MediaProvider,
        *,
        retry: RetryPolicy | None = None,
    ) -> None:
        super().__init__(retry=retry)
        self.config = config
        self.media = media

    async def cleanup(self, ctx: StepContext) -> None:
        await self.remove_work_dir(ctx)

    async def execute(self, ctx: StepContext) -> StepResult:
        cfg = self.config
        vid = ctx.video_id
        gv = ctx.graph_version_id
        if not cfg.enabled:
            ctx.logger.info("snippet generation disabled")
            return self.result({}, {"snippet_count": 0})

        work = ctx.step_work_dir(self.name)
        await ctx.report(5, "Loading topics")
        topics = deserialize_topics(await ctx.storage.read_json(self.require_path(ctx, ArtifactKind.TOPICS)))
        segments = []
        if cfg.generate_captions:
            segments = deserialize_transcript(
                await ctx.storage.read_json(self.require_path(ctx, ArtifactKind.TRANSCRIPT))
            )
        selected = sorted((t for t in topics if t.level >= cfg.min_level), key=lambda t: (t.start, t.level, t.id))

        await ctx.report(10, "Fetching video")
        video_path = self.require_path(ctx, ArtifactKind.NORMALIZED_VIDEO)
        local_video = await ctx.storage.download_to(video_path, work / "source.mp4")
        duration = ctx.manifest.metrics.get("duration_s")
        video_duration_s = float(duration) if isinstance(duration, (int, float)) else None

        formatter = get_caption_formatter(cfg.caption_format) if cfg.generate_captions else None
        snippets: list[dict[str, Any]] = []
        clip_paths: list[str] = []
        thumb_paths: list[str] = []
        caption_paths: list[str] = []

        for index, topic in enumerate(selected):
            ctx.check_aborted()
            window = clip_window(
                topic,
                padding_s=cfg.padding_s,
                min_duration_s=cfg.min_duration_s,
                max_duration_s=cfg.max_duration_s,
                video_duration_s=video_duration_s,
            )
            if window is None:
                ctx.logger.warning("snippet skipped, empty window", topic_id=topic.id)
                continue
            stem = sanitize_filename(topic.id)
            clip_local = await self.media.cut_clip(
                local_video, work / f"{stem}.mp4", start=window.start, end=window.end
            )
            clip_path = version_artifact_path(vid, "snippets", f"{stem}.mp4", gv)
            await ctx.storage.upload_from(clip_path, clip_local)
            clip_paths.append(clip_path)
            info: dict[str, Any] = {
                "topic_id": topic.id,
                "title": topic.title,
                "level": topic.level,
                "start": window.start,
                "end": window.end,
                "duration": round(window.duration, 3),
                "path": clip_path,
            }

            if cfg.generate_thumbnails:
                thumb_local = await self.media.thumbnail(
                    local_video,
                    work / f"{stem}.jpg",
                    at_s=window.start + window.duration / 2,
                    width=cfg.thumbnail_width,
                    height=cfg.thumbnail_height,
                )
                thumb_path = version_artifact_path(vid, "thumbnails", f"{stem}.jpg", gv)
                await ctx.storage.upload_from(thumb_path, thumb_local)
                thumb_paths.append(thumb_path)
                info["thumbnail"] = thumb_path

            if formatter is not None:
                cues = clip_cues(segments, clip_start=window.start, clip_end=window.end)
                caption_path = version_artifact_path(vid, "captions", f"{stem}.{formatter.extension}", gv)
                await ctx.storage.write_text(caption_path, formatter.format(cues))
                caption_paths.append(caption_path)
                info["caption"] = caption_path

            snippets.append(info)
            await ctx.report(10 + int(85 * (index + 1) / len(selected)), f"Snippet {index + 1}/{len(selected)}")

        index_path = version_artifact_path(vid, "snippets", "snippets.json", gv)
        await ctx.storage.write_json(index_path, snippets)

        artifacts: dict[ArtifactKind, list[str]] = {ArtifactKind.SNIPPETS: clip_paths}
        if cfg.generate_thumbnails:
            artifacts[ArtifactKind.THUMBNAILS] = thumb_paths
        if formatter is not None:
            artifacts[ArtifactKind.CAPTIONS] = caption_paths
        ctx.logger.info("snippet step done", snippets=len(snippets), candidates=len(selected))
        return self.result(artifacts, {"snippet_count": len(snippets)})
