"""Export step: render the topic graph as a presentation document."""

from __future__ import annotations

import time

from topicgraph.config import ExportStepConfig
from topicgraph.exceptions import InputValidationError
from topicgraph.export.deck import ExportDeck, SnippetLink, select_topics
from topicgraph.export.renderers import SUPPORTED_FORMATS, UNSUPPORTED_FORMATS, get_renderer
from topicgraph.models.manifest import ArtifactKind, StepName
from topicgraph.models.serializers import deserialize_topics
from topicgraph.pipeline.context import StepContext
from topicgraph.steps.base import PipelineStep, RetryPolicy, StepResult
from topicgraph.storage.port import version_artifact_path

_ALIASES = {"md": "markdown"}


class ExportStep(PipelineStep):
    name = StepName.EXPORT.value
    description = "Render topics and graph metrics to html, markdown or json"
    tags = ("export", "presentation", "html", "markdown")
    required_inputs = (ArtifactKind.TOPICS, ArtifactKind.GRAPH)
    produced_outputs = (ArtifactKind.EXPORTS,)

    def __init__(self, config: ExportStepConfig, *, retry: RetryPolicy | None = None) -> None:
        super().__init__(retry=retry)
        self.config = config
        self._stamp: int | None = None

    def export_format(self, ctx: StepContext) -> str:
        raw = str(ctx.payload.get("export_format") or self.config.default_format).strip().lower()
        return _ALIASES.get(raw, raw)

    def context_errors(self, ctx: StepContext) -> list[str]:
        fmt = self.export_format(ctx)
        if fmt in UNSUPPORTED_FORMATS:
            return [f"Unsupported export format: {fmt} (slide/page layouts are not generated)"]
        if fmt not in SUPPORTED_FORMATS:
            return [f"Unsupported export format: {fmt}"]
        return []

    async def execute(self, ctx: StepContext) -> StepResult:
        errors = self.context_errors(ctx)
        if errors:
            raise InputValidationError(self.name, errors)
        fmt = self.export_format(ctx)
        cfg = self.config
        vid = ctx.video_id
        gv = ctx.graph_version_id

        await ctx.report(10, "Loading graph data")
        topics = deserialize_topics(await ctx.storage.read_json(self.require_path(ctx, ArtifactKind.TOPICS)))
        graph = await ctx.storage.read_json(self.require_path(ctx, ArtifactKind.GRAPH))

        snippets: dict[str, SnippetLink] = {}
        index_path = version_artifact_path(vid, "snippets", "snippets.json", gv)
        if cfg.include_snippets and ctx.manifest.has(ArtifactKind.SNIPPETS):
            if await ctx.storage.exists(index_path):
                for item in await ctx.storage.read_json(index_path):
                    thumb = item.get("thumbnail")
                    snippets[str(item["topic_id"])] = SnippetLink(
                        topic_id=str(item["topic_id"]),
                        video_url=await ctx.storage.get_url(str(item["path"])),
                        thumbnail_url=await ctx.storage.get_url(str(thumb)) if thumb else None,
                    )
            else:
                ctx.logger.warning("snippet index missing", path=index_path)

        ctx.check_aborted()
        await ctx.report(40, f"Rendering {fmt}")
        deck = ExportDeck(
            video_id=vid,
            title=str(ctx.payload.get("title") or f"Video {vid}"),
            topics=select_topics(topics, max_topics=cfg.max_topics),
            metrics=dict(graph.get("metrics") or {}),
            snippets=snippets,
            include_appendix=cfg.include_appendix,
        )
        renderer = get_renderer(fmt, html_theme=cfg.html_theme)
        content = renderer.render(deck)

        # Retries of the same step instance overwrite the same file.
        if self._stamp is None:
            self._stamp = int(time.time() * 1000)
        export_name = f"export-{self._stamp}.{renderer.extension}"
        export_path = version_artifact_path(vid, "exports", export_name, gv)
        await ctx.storage.write_text(export_path, content)

        ctx.logger.info("export step done", format=fmt, topics=len(deck.topics), bytes=len(content))
        return self.result(
            {ArtifactKind.EXPORTS: [export_path]},
            {"export_topics": len(deck.topics)},
        )
