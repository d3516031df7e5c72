"""Topic step: hierarchical segmentation, summaries, keywords and importance."""

from __future__ import annotations

from topicgraph.config import TopicStepConfig
from topicgraph.error_codes import ErrorCode
from topicgraph.exceptions import StepExecutionError
from topicgraph.models.manifest import ArtifactKind, StepName
from topicgraph.models.serializers import deserialize_transcript, serialize_topics
from topicgraph.models.topic import Topic, TranscriptSegment
from topicgraph.pipeline.context import StepContext
from topicgraph.providers.embedding.base import EmbeddingProvider
from topicgraph.steps.base import PipelineStep, RetryPolicy, StepResult
from topicgraph.storage.port import version_artifact_path
from topicgraph.topics.importance import ImportanceWeights, apply_importance
from topicgraph.topics.keywords import extract_keywords
from topicgraph.topics.segmentation import SegmentationParams, build_hierarchy, check_hierarchy
from topicgraph.topics.summarize import HeuristicSummarizer, Summarizer, summarize_topics


def topic_text(topic: Topic, segments_by_id: dict[str, TranscriptSegment]) -> str:
    """Raw transcript text covered by a topic, in segment order."""
    parts = [segments_by_id[sid].text.strip() for sid in topic.transcript_segment_ids if sid in segments_by_id]
    return " ".join(p for p in parts if p)


class TopicStep(PipelineStep):
    name = StepName.TOPIC.value
    description = "Segment the transcript into a topic hierarchy and summarize each topic"
    tags = ("topics", "segmentation", "summarization", "llm")
    required_inputs = (ArtifactKind.TRANSCRIPT,)
    produced_outputs = (ArtifactKind.TOPICS,)

    def __init__(
        self,
        config: TopicStepConfig,
        embedder: EmbeddingProvider,
        summarizer: Summarizer | None = None,
        *,
        retry: RetryPolicy | None = None,
    ) -> None:
        super().__init__(retry=retry)
        self.config = config
        self.embedder = embedder
        self.summarizer = summarizer or HeuristicSummarizer()

    async def execute(self, ctx: StepContext) -> StepResult:
        vid = ctx.video_id
        cfg = self.config
        transcript_path = self.require_path(ctx, ArtifactKind.TRANSCRIPT)

        await ctx.report(5, "Loading transcript")
        segments = deserialize_transcript(await ctx.storage.read_json(transcript_path))
        segments = [s for s in segments if s.text.strip()]
        segments.sort(key=lambda s: (s.start, s.end))
        if not segments:
            raise StepExecutionError(self.name, "transcript has no text", video_id=vid)

        ctx.check_aborted()
        await ctx.report(15, "Embedding transcript segments")
        embeddings = await self.embedder.embed([s.text for s in segments])
        if len(embeddings) != len(segments):
            raise StepExecutionError(
                self.name,
                f"embedder returned {len(embeddings)} vectors for {len(segments)} segments",
                video_id=vid,
                error_code=ErrorCode.EMBEDDING_FAILED,
            )

        ctx.check_aborted()
        await ctx.report(35, "Segmenting topics")
        topics = build_hierarchy(segments, embeddings, SegmentationParams.from_config(cfg))
        problems = check_hierarchy(topics)
        if problems:
            raise StepExecutionError(self.name, "inconsistent hierarchy: " + "; ".join(problems[:5]), video_id=vid)

        segments_by_id = {s.id: s for s in segments}
        for topic in topics:
            topic.keywords = extract_keywords(topic_text(topic, segments_by_id), limit=cfg.keyword_limit)

        ctx.check_aborted()
        await ctx.report(45, "Summarizing topics")

        async def _on_done(done: int, total: int) -> None:
            await ctx.report(45 + int(40 * done / total), f"Summarized {done}/{total} topics")

        await summarize_topics(topics, self.summarizer, concurrency=cfg.summarize_concurrency, on_done=_on_done)

        apply_importance(topics, ImportanceWeights.from_config(cfg))

        await ctx.report(90, "Writing topics")
        topics_path = version_artifact_path(vid, "topics", "topics.json", ctx.graph_version_id)
        await ctx.storage.write_json(topics_path, serialize_topics(topics))

        levels = sorted({t.level for t in topics})
        metrics = {"topic_count": len(topics), "hierarchy_levels": len(levels)}
        ctx.logger.info("topic step done", summarizer=type(self.summarizer).__name__, **metrics)
        return self.result({ArtifactKind.TOPICS: topics_path}, metrics)
